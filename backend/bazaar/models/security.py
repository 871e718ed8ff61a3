from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z


class SecurityEvent(db.Model):
    """
    Security event audit log.

    Records denied capability checks on mutating operations and every
    access/membership change, with the store it concerns.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_store_occurred", "store_id", "occurred_at"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    store_id = db.Column(db.Uuid, db.ForeignKey("stores.id"), nullable=True, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True, index=True)
    target_user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True)

    # PERMISSION_DENIED, ACCESS_GRANTED, ACCESS_REVOKED, MEMBER_INVITED, ...
    event_type = db.Column(db.String(64), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=True)  # e.g. capability code

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "store_id": str(self.store_id) if self.store_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "target_user_id": str(self.target_user_id) if self.target_user_id else None,
            "event_type": self.event_type,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "occurred_at": to_utc_z(self.occurred_at),
        }
