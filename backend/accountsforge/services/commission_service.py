# Overview: Service-layer operations for commissions; computation and payout tracking.

"""
Commission Service

WHY: A commission is the derived payout for one approved revenue. It is
created only by workflow_service.approve (never through the API), and
uq_commissions_revenue_id makes "at most one per revenue" a database
invariant.

MONEY: Decimal throughout. commission = amount * rate / 100, rounded half-up
to the cent (33.33 at 5 % -> 1.67).
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP

from ..errors import NotFoundError, ValidationError, WorkflowViolationError
from ..extensions import db
from ..models import Commission, EntityKind, PayoutStatus, Revenue
from ..policy import Operation, Principal, can_read_all
from ..time_utils import parse_iso_date, today
from . import permission_service

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

PAYOUT_TRANSITIONS = {
    PayoutStatus.PENDING: {PayoutStatus.PAID, PayoutStatus.CANCELLED},
    PayoutStatus.PAID: set(),
    PayoutStatus.CANCELLED: set(),
}


def compute_commission(amount, rate) -> Decimal:
    """rate is a percent: compute_commission(1000, 5) == Decimal("50.00")."""
    amount = Decimal(str(amount))
    rate = Decimal(str(rate))
    return (amount * rate / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def build_for_revenue(revenue: Revenue) -> Commission:
    """
    Stage the commission row and mirror the amount onto the revenue.

    Not committed: the caller's transaction includes the approval itself.
    A second call for the same revenue fails on flush with IntegrityError.
    """
    amount = compute_commission(revenue.amount, revenue.commission_rate)
    commission = Commission(
        salesman_id=revenue.user_id,
        revenue_id=revenue.id,
        commission_amount=amount,
        commission_rate=revenue.commission_rate,
        payout_status=PayoutStatus.PENDING,
    )
    revenue.commission_amount = amount
    db.session.add(commission)
    return commission


def list_commissions(principal: Principal, *, payout_status: str | None = None, salesman_id: str | None = None) -> list[Commission]:
    query = db.session.query(Commission)
    if not can_read_all(principal, EntityKind.COMMISSION):
        query = query.filter(Commission.salesman_id == principal.user_id)
    elif salesman_id:
        query = query.filter(Commission.salesman_id == salesman_id)

    if payout_status:
        try:
            query = query.filter(Commission.payout_status == PayoutStatus(payout_status))
        except ValueError:
            raise ValidationError(
                f"payout_status must be one of: {', '.join(s.value for s in PayoutStatus)}"
            )
    return query.order_by(Commission.created_at.desc(), Commission.id.desc()).all()


def get_commission(principal: Principal, commission_id: int) -> Commission:
    commission = db.session.get(Commission, commission_id)
    if commission is None:
        raise NotFoundError("Commission not found")
    permission_service.require(principal, Operation.READ, EntityKind.COMMISSION, record=commission)
    return commission


def mark_payout(
    principal: Principal,
    commission_id: int,
    *,
    payout_status: str = PayoutStatus.PAID.value,
    payout_reference: str | None = None,
    payout_date: str | None = None,
) -> Commission:
    """Admin records that a commission was paid (or cancelled)."""
    if not isinstance(payout_status, str):
        raise ValidationError("payout_status must be a string")
    if payout_reference is not None and not isinstance(payout_reference, str):
        raise ValidationError("payout_reference must be a string")
    try:
        new_status = PayoutStatus(payout_status)
    except ValueError:
        raise ValidationError(
            f"payout_status must be one of: {', '.join(s.value for s in PayoutStatus)}"
        )
    if new_status == PayoutStatus.PAID and not (payout_reference or "").strip():
        raise ValidationError("payout_reference is required when marking paid")
    try:
        paid_on = parse_iso_date(payout_date) if payout_date else None
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("payout_date must be an ISO-8601 date (YYYY-MM-DD)")

    commission = db.session.get(Commission, commission_id)
    if commission is None:
        raise NotFoundError("Commission not found")
    permission_service.require(
        principal, Operation.UPDATE, EntityKind.COMMISSION,
        record=commission, changed_fields={"payout_status", "payout_date", "payout_reference"},
    )

    if new_status not in PAYOUT_TRANSITIONS[commission.payout_status]:
        raise WorkflowViolationError(
            f"Cannot move commission payout from {commission.payout_status.value} to {new_status.value}",
            reason="illegal_transition",
        )

    commission.payout_status = new_status
    if new_status == PayoutStatus.PAID:
        commission.payout_reference = payout_reference.strip()
        commission.payout_date = paid_on or today()
    db.session.commit()

    logger.info("Commission %s payout -> %s by %s", commission.id, new_status.value, principal.user_id)
    return commission
