from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z


class User(db.Model):
    """
    Marketplace user identity.

    Authentication happens upstream; the core only needs a stable id and the
    active flag. Deactivated users (soft-delete) are denied every store
    capability.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_is_active", "is_active"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    full_name = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "full_name": self.full_name,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
