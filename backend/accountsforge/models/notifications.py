from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .enums import EntityKind, NotificationType, enum_column_type


class Notification(db.Model):
    """
    Message to one principal, emitted by the approval workflow.

    Only the target may change read_at.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "read_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(
        enum_column_type(NotificationType, "notification_type"),
        nullable=False,
        default=NotificationType.INFO,
    )

    reference_type = db.Column(enum_column_type(EntityKind, "notification_reference_type"), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    read_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "reference_type": self.reference_type.value if self.reference_type else None,
            "reference_id": self.reference_id,
            "is_read": self.read_at is not None,
            "read_at": to_utc_z(self.read_at),
            "created_at": to_utc_z(self.created_at),
        }
