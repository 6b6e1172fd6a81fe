from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow
from .enums import PayoutStatus, enum_column_type


class Commission(db.Model):
    """
    Payout owed to a salesman for one approved revenue.

    UNIQUE(revenue_id) is the authoritative guard against a second commission
    for the same sale, whatever the workflow code does.
    """
    __tablename__ = "commissions"
    __table_args__ = (
        db.UniqueConstraint("revenue_id", name="uq_commissions_revenue_id"),
        db.CheckConstraint("commission_amount >= 0", name="ck_commissions_amount_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    salesman_id = db.Column(
        db.String(36),
        db.ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    revenue_id = db.Column(
        db.Integer,
        db.ForeignKey("revenues.id", ondelete="CASCADE"),
        nullable=False,
    )

    commission_amount = db.Column(db.Numeric(12, 2), nullable=False)
    commission_rate = db.Column(db.Numeric(5, 2), nullable=False)

    payout_status = db.Column(
        enum_column_type(PayoutStatus, "payout_status"),
        nullable=False,
        default=PayoutStatus.PENDING,
    )
    payout_date = db.Column(db.Date, nullable=True)
    payout_reference = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    revenue = db.relationship("Revenue", back_populates="commission")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "salesman_id": self.salesman_id,
            "revenue_id": self.revenue_id,
            "commission_amount": str(self.commission_amount),
            "commission_rate": str(self.commission_rate),
            "payout_status": self.payout_status.value,
            "payout_date": to_iso_date(self.payout_date),
            "payout_reference": self.payout_reference,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
