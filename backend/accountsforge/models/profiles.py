from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow
from .enums import ProfileStatus, Role, enum_column_type


class Profile(db.Model):
    """
    Identity Store row: exactly one per identity.

    Created at first sign-in (see profile_service.ensure_profile). The unique
    constraint on user_id is what guarantees "one profile per identity";
    profile_service.dedupe_profiles exists only to repair data imported from
    before the constraint.

    Only ``role`` takes part in authorization. Everything else is display or
    payroll data.
    """
    __tablename__ = "profiles"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_profiles_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role = db.Column(enum_column_type(Role, "user_role"), nullable=False)

    full_name = db.Column(db.String(200), nullable=False, default="User")
    phone_number = db.Column(db.String(32), nullable=True)
    department = db.Column(db.String(100), nullable=True)
    hire_date = db.Column(db.Date, nullable=True)
    salary = db.Column(db.Numeric(12, 2), nullable=True)
    # Percent, e.g. 5.00. NULL means "use the company default".
    commission_rate = db.Column(db.Numeric(5, 2), nullable=True)
    status = db.Column(
        enum_column_type(ProfileStatus, "profile_status"),
        nullable=False,
        default=ProfileStatus.ACTIVE,
    )

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    identity = db.relationship("Identity", back_populates="profile")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role.value,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "department": self.department,
            "hire_date": to_iso_date(self.hire_date),
            "salary": str(self.salary) if self.salary is not None else None,
            "commission_rate": str(self.commission_rate) if self.commission_rate is not None else None,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
