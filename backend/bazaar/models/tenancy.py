from __future__ import annotations

import enum
import uuid

from ..extensions import db
from ..time_utils import to_utc_z
from ..permissions import MemberRole, AccessLevel


class StoreVisibility(str, enum.Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class StoreStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    CLOSED = "CLOSED"


class Store(db.Model):
    """
    A tenant storefront owned by one user.

    LIFECYCLE: ACTIVE -> SUSPENDED <-> ACTIVE, any -> CLOSED.
    Suspended and Closed stores reject every mutating capability except
    status management. Private stores additionally require a membership or
    an active access grant for any access.

    OWNERSHIP: owner_id always names the user holding the store's single
    OWNER membership.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.Index("ix_stores_owner_id", "owner_id"),
        db.Index("ix_stores_visibility", "visibility"),
        db.Index("ix_stores_status", "status"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    visibility = db.Column(db.String(16), nullable=False, default=StoreVisibility.PUBLIC.value)
    status = db.Column(db.String(16), nullable=False, default=StoreStatus.ACTIVE.value)

    # Basis points (e.g., 825 = 8.25%), used by the store_tax_rate pricing policy
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    owner = db.relationship("User", backref=db.backref("owned_stores", lazy=True))

    @property
    def is_private(self) -> bool:
        return self.visibility == StoreVisibility.PRIVATE.value

    @property
    def is_active(self) -> bool:
        return self.status == StoreStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<Store id={self.id} slug={self.slug!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "owner_id": str(self.owner_id),
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "visibility": self.visibility,
            "status": self.status,
            "tax_rate_bps": self.tax_rate_bps,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StoreMember(db.Model):
    """
    Durable (store, user, role) relationship.

    permissions holds the explicit capability codes and is only consulted
    when role is CUSTOM. Removing a member deactivates the row.
    """
    __tablename__ = "store_members"
    __table_args__ = (
        db.UniqueConstraint("store_id", "user_id", name="uq_store_members_store_user"),
        db.Index("ix_store_members_user", "user_id"),
        db.Index("ix_store_members_is_active", "is_active"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    store_id = db.Column(db.Uuid, db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)
    role = db.Column(db.String(16), nullable=False)
    permissions = db.Column(db.JSON, nullable=False, default=list)
    invited_by_user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    joined_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("members", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("memberships", lazy=True))

    @property
    def member_role(self) -> MemberRole:
        return MemberRole(self.role)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "store_id": str(self.store_id),
            "user_id": str(self.user_id),
            "role": self.role,
            "permissions": list(self.permissions or []),
            "invited_by_user_id": str(self.invited_by_user_id) if self.invited_by_user_id else None,
            "is_active": self.is_active,
            "joined_at": to_utc_z(self.joined_at),
        }


class StoreAccessGrant(db.Model):
    """
    Invitation into a private store for a non-member.

    ACTIVE means: is_revoked = false AND (expires_at IS NULL OR expires_at > now).
    At most one non-revoked row exists per (store, user); revocation is a
    state transition and rows are never deleted.
    """
    __tablename__ = "store_access_grants"
    __table_args__ = (
        db.Index("ix_store_access_grants_user", "user_id"),
        db.Index("ix_store_access_grants_is_revoked", "is_revoked"),
        db.Index(
            "uq_store_access_grants_active",
            "store_id",
            "user_id",
            unique=True,
            sqlite_where=db.text("is_revoked = 0"),
            postgresql_where=db.text("is_revoked = false"),
        ),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    store_id = db.Column(db.Uuid, db.ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)
    granted_by_user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)
    access_level = db.Column(db.String(16), nullable=False, default=AccessLevel.VIEW_AND_BUY.value)

    granted_at = db.Column(db.DateTime(timezone=True), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_by_user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True)

    store = db.relationship("Store", backref=db.backref("access_grants", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id])
    granted_by = db.relationship("User", foreign_keys=[granted_by_user_id])

    @property
    def level(self) -> AccessLevel:
        return AccessLevel(self.access_level)

    def is_active_at(self, now) -> bool:
        if self.is_revoked:
            return False
        return self.expires_at is None or self.expires_at > now

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "store_id": str(self.store_id),
            "user_id": str(self.user_id),
            "granted_by_user_id": str(self.granted_by_user_id),
            "access_level": self.access_level,
            "granted_at": to_utc_z(self.granted_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at),
            "revoked_by_user_id": str(self.revoked_by_user_id) if self.revoked_by_user_id else None,
        }
