from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class SecurityEvent(db.Model):
    """
    Security event audit log.

    WHY: Track authorization denials, role changes and identity removal.
    Critical for detecting unauthorized access attempts.

    IMMUTABLE: Never update. Only the retention cleanup deletes rows.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_user_type", "user_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Not a foreign key: events outlive deleted identities
    user_id = db.Column(db.String(36), nullable=True, index=True)

    # PERMISSION_DENIED, ROLE_CHANGED, LOGIN_FAILED, IDENTITY_DELETED, ...
    event_type = db.Column(db.String(64), nullable=False, index=True)
    resource = db.Column(db.String(128), nullable=True)  # e.g. "revenue:42"
    action = db.Column(db.String(64), nullable=True)     # e.g. "update"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "resource": self.resource,
            "action": self.action,
            "success": self.success,
            "reason": self.reason,
            "ip_address": self.ip_address,
            "occurred_at": to_utc_z(self.occurred_at),
        }
