from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class CompanySetting(db.Model):
    """Company-wide key/value settings (currency, default commission rate, ...)."""
    __tablename__ = "company_settings"
    __table_args__ = (
        db.UniqueConstraint("setting_key", name="uq_company_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(128), nullable=False)
    setting_value = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)

    updated_by = db.Column(db.String(36), db.ForeignKey("identities.id", ondelete="SET NULL"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "key": self.setting_key,
            "value": self.setting_value,
            "description": self.description,
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
