from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z, utcnow
from .enums import ClaimStatus, ClaimType, EntityKind, ReviewStatus, enum_column_type


def _money(value) -> str | None:
    return str(value) if value is not None else None


class LedgerEntryMixin:
    """
    Shape shared by Expense, Revenue and Claim.

    - user_id: owner, immutable after creation
    - amount: positive, two decimal places (CHECK amount > 0)
    - reviewed_by / reviewed_at / admin_comments / rejection_reason: written
      only by the approval workflow
    """

    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def user_id(cls):
        return db.Column(
            db.String(36),
            db.ForeignKey("identities.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    proof_url = db.Column(db.Text, nullable=True)

    @declared_attr
    def reviewed_by(cls):
        return db.Column(
            db.String(36),
            db.ForeignKey("identities.id", ondelete="SET NULL"),
            nullable=True,
        )

    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    admin_comments = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def _base_dict(self) -> dict:
        return {
            "id": self.id,
            "entity": self.ENTITY_KIND.value,
            "user_id": self.user_id,
            "amount": _money(self.amount),
            "status": self.status.value,
            "proof_url": self.proof_url,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": to_utc_z(self.reviewed_at),
            "admin_comments": self.admin_comments,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Expense(LedgerEntryMixin, db.Model):
    """Money spent by an employee, submitted for approval."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        db.Index("ix_expenses_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    ENTITY_KIND = EntityKind.EXPENSE
    STATUS_ENUM = ReviewStatus

    status = db.Column(
        enum_column_type(ReviewStatus, "expense_status"),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    description = db.Column(db.Text, nullable=False)
    category = db.Column(db.String(50), nullable=False, default="general")
    expense_date = db.Column(db.Date, nullable=False, index=True)

    def to_dict(self) -> dict:
        data = self._base_dict()
        data.update({
            "description": self.description,
            "category": self.category,
            "expense_date": to_iso_date(self.expense_date),
        })
        return data


class Revenue(LedgerEntryMixin, db.Model):
    """
    A sale recorded by a salesman.

    commission_rate is a percentage (5.00 == 5 %). commission_amount stays 0
    until the revenue is approved; the Commission row is the record of truth.
    """
    __tablename__ = "revenues"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_revenues_amount_positive"),
        db.CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_revenues_commission_rate_range",
        ),
        db.Index("ix_revenues_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    ENTITY_KIND = EntityKind.REVENUE
    STATUS_ENUM = ReviewStatus

    status = db.Column(
        enum_column_type(ReviewStatus, "revenue_status"),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    customer_name = db.Column(db.String(200), nullable=False)
    customer_email = db.Column(db.String(100), nullable=True)
    customer_phone = db.Column(db.String(20), nullable=True)
    product_service = db.Column(db.String(200), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    invoice_number = db.Column(db.String(100), nullable=True)
    revenue_date = db.Column(db.Date, nullable=False, index=True)

    commission_rate = db.Column(db.Numeric(5, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    commission = db.relationship(
        "Commission",
        back_populates="revenue",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        data = self._base_dict()
        data.update({
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "product_service": self.product_service,
            "quantity": self.quantity,
            "invoice_number": self.invoice_number,
            "revenue_date": to_iso_date(self.revenue_date),
            "commission_rate": _money(self.commission_rate),
            "commission_amount": _money(self.commission_amount),
        })
        return data


class Claim(LedgerEntryMixin, db.Model):
    """
    A payment request (reimbursement, commission payout, bonus).

    Approval does not move money; paying is a separate transition that must
    carry the payment method and reference.
    """
    __tablename__ = "claims"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_claims_amount_positive"),
        db.Index("ix_claims_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    ENTITY_KIND = EntityKind.CLAIM
    STATUS_ENUM = ClaimStatus

    status = db.Column(
        enum_column_type(ClaimStatus, "claim_status"),
        nullable=False,
        default=ClaimStatus.PENDING,
    )
    claim_type = db.Column(enum_column_type(ClaimType, "claim_type"), nullable=False)
    description = db.Column(db.Text, nullable=False)

    expense_id = db.Column(db.Integer, db.ForeignKey("expenses.id", ondelete="SET NULL"), nullable=True, index=True)
    revenue_id = db.Column(db.Integer, db.ForeignKey("revenues.id", ondelete="SET NULL"), nullable=True, index=True)

    submitted_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    paid_date = db.Column(db.Date, nullable=True)
    payment_method = db.Column(db.String(50), nullable=True)
    payment_reference = db.Column(db.String(100), nullable=True)

    expense = db.relationship("Expense")
    revenue = db.relationship("Revenue")

    def to_dict(self) -> dict:
        data = self._base_dict()
        data.update({
            "claim_type": self.claim_type.value,
            "description": self.description,
            "expense_id": self.expense_id,
            "revenue_id": self.revenue_id,
            "submitted_date": to_iso_date(self.submitted_date),
            "notes": self.notes,
            "paid_date": to_iso_date(self.paid_date),
            "payment_method": self.payment_method,
            "payment_reference": self.payment_reference,
        })
        return data


LEDGER_MODELS = {
    EntityKind.EXPENSE: Expense,
    EntityKind.REVENUE: Revenue,
    EntityKind.CLAIM: Claim,
}
