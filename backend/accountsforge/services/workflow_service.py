# Overview: Approval workflow; status transitions and their side effects.

"""
Approval Workflow Service

State graphs:
- Expense / Revenue: pending -> approved | rejected (both terminal)
- Claim:             pending -> approved | rejected, approved -> paid

Approving a revenue creates exactly one commission and a notification in
the same transaction as the status change.

CONCURRENCY:
- the row is loaded with SELECT ... FOR UPDATE
- status, review fields, commission and notification commit together
- if the commission insert hits uq_commissions_revenue_id, the transaction
  is rolled back and the row re-read: already approved -> idempotent no-op,
  anything else -> InvariantViolationError
- no retries

Re-approving an approved record is a no-op with no side effects. Every
other move out of a terminal state is a WorkflowViolationError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from ..errors import InvariantViolationError, NotFoundError, ValidationError, WorkflowViolationError
from ..extensions import db
from ..models import (
    LEDGER_MODELS,
    ClaimStatus,
    Commission,
    EntityKind,
    NotificationType,
    ReviewStatus,
)
from ..policy import Operation, Principal
from ..time_utils import parse_iso_date, today, utcnow
from ..validation import json_object
from . import commission_service, notification_service, permission_service
from .concurrency import atomic, lock_for_update

logger = logging.getLogger(__name__)


APPROVED = "approved"
REJECTED = "rejected"
PAID = "paid"

REVIEW_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: set(),
    ReviewStatus.REJECTED: set(),
}

CLAIM_TRANSITIONS = {
    ClaimStatus.PENDING: {ClaimStatus.APPROVED, ClaimStatus.REJECTED},
    ClaimStatus.APPROVED: {ClaimStatus.PAID},
    ClaimStatus.REJECTED: set(),
    ClaimStatus.PAID: set(),
}

TRANSITIONS = {
    EntityKind.EXPENSE: REVIEW_TRANSITIONS,
    EntityKind.REVENUE: REVIEW_TRANSITIONS,
    EntityKind.CLAIM: CLAIM_TRANSITIONS,
}

TITLES = {
    EntityKind.EXPENSE: "Expense",
    EntityKind.REVENUE: "Sale",
    EntityKind.CLAIM: "Claim",
}


@dataclass
class TransitionResult:
    record: object
    applied: bool
    commission: Optional[Commission] = None


def allowed_targets(kind: EntityKind, status) -> set:
    return TRANSITIONS[kind][status]


def _parse_status(kind: EntityKind, value):
    enum_cls = LEDGER_MODELS[kind].STATUS_ENUM
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"status must be one of: {', '.join(s.value for s in enum_cls)}")


def _optional_text(payload: dict, key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _lock(kind: EntityKind, entry_id: int):
    model = LEDGER_MODELS[kind]
    record = lock_for_update(db.session.query(model).filter(model.id == entry_id)).first()
    if record is None:
        raise NotFoundError(f"{kind.value.capitalize()} not found")
    return record


def _check_transition(kind: EntityKind, record, target) -> None:
    if target not in allowed_targets(kind, record.status):
        raise WorkflowViolationError(
            f"Cannot move {kind.value} {record.id} from {record.status.value} to {target.value}",
            reason="illegal_transition",
        )


def _money(value) -> str:
    return f"${value}"


def _reread_after_conflict(kind: EntityKind, entry_id: int) -> TransitionResult:
    """Commission uniqueness tripped: someone else approved concurrently, or the data is bad."""
    model = LEDGER_MODELS[kind]
    record = db.session.get(model, entry_id, populate_existing=True)
    if record is not None and record.status == ReviewStatus.APPROVED:
        logger.info("Concurrent approval of %s %s observed; no-op", kind.value, entry_id)
        return TransitionResult(record=record, applied=False, commission=record.commission)
    raise InvariantViolationError(
        f"A commission already exists for {kind.value} {entry_id}",
        reason="duplicate_commission",
    )


# =============================================================================
# TRANSITIONS
# =============================================================================

def approve(principal: Principal, kind: EntityKind, entry_id: int, payload: dict | None = None) -> TransitionResult:
    """
    pending -> approved.

    Side effects (same transaction):
    - Revenue: one Commission row, revenue.commission_amount set
    - Expense, Revenue: success notification to the owner
    - Claim: status change only; payment is the separate pay_claim step
    """
    payload = json_object(payload)
    admin_comments = _optional_text(payload, "admin_comments")

    record = _lock(kind, entry_id)
    permission_service.require(
        principal, Operation.UPDATE, kind,
        record=record, changed_fields={"status", "reviewed_by", "reviewed_at", "admin_comments"},
    )

    if record.status == APPROVED:
        return TransitionResult(record=record, applied=False, commission=getattr(record, "commission", None))
    target = LEDGER_MODELS[kind].STATUS_ENUM(APPROVED)
    _check_transition(kind, record, target)

    commission = None
    try:
        with atomic():
            record.status = target
            record.reviewed_by = principal.user_id
            record.reviewed_at = utcnow()
            if admin_comments is not None:
                record.admin_comments = admin_comments

            if kind == EntityKind.REVENUE:
                commission = commission_service.build_for_revenue(record)
                db.session.flush()
                message = (
                    f"Your sale of {_money(record.amount)} has been approved. "
                    f"Commission: {_money(commission.commission_amount)}"
                )
            elif kind == EntityKind.EXPENSE:
                message = f"Your expense claim of {_money(record.amount)} has been approved."
            else:
                message = None

            if message is not None:
                notification_service.emit(
                    record.user_id,
                    f"{TITLES[kind]} Approved",
                    message,
                    type=NotificationType.SUCCESS,
                    reference_type=kind,
                    reference_id=record.id,
                )
    except IntegrityError:
        if kind != EntityKind.REVENUE:
            raise
        return _reread_after_conflict(kind, entry_id)

    logger.info("%s %s approved by %s", kind.value, entry_id, principal.user_id)
    return TransitionResult(record=record, applied=True, commission=commission)


def reject(principal: Principal, kind: EntityKind, entry_id: int, payload: dict | None = None) -> TransitionResult:
    """pending -> rejected; the owner is notified with the reason when given."""
    payload = json_object(payload)
    reason = _optional_text(payload, "rejection_reason") or _optional_text(payload, "reason")
    admin_comments = _optional_text(payload, "admin_comments")

    record = _lock(kind, entry_id)
    permission_service.require(
        principal, Operation.UPDATE, kind,
        record=record,
        changed_fields={"status", "reviewed_by", "reviewed_at", "rejection_reason", "admin_comments"},
    )

    target = LEDGER_MODELS[kind].STATUS_ENUM(REJECTED)
    _check_transition(kind, record, target)

    with atomic():
        record.status = target
        record.reviewed_by = principal.user_id
        record.reviewed_at = utcnow()
        record.rejection_reason = reason
        if admin_comments is not None:
            record.admin_comments = admin_comments

        noun = "expense claim" if kind == EntityKind.EXPENSE else kind.value
        message = f"Your {noun} of {_money(record.amount)} has been rejected."
        if reason:
            message += f" Reason: {reason}"
        notification_service.emit(
            record.user_id,
            f"{TITLES[kind]} Rejected",
            message,
            type=NotificationType.ERROR,
            reference_type=kind,
            reference_id=record.id,
        )

    logger.info("%s %s rejected by %s", kind.value, entry_id, principal.user_id)
    return TransitionResult(record=record, applied=True)


def pay_claim(principal: Principal, claim_id: int, payload: dict | None = None) -> TransitionResult:
    """
    approved -> paid. payment_method and payment_reference are required and
    written together with paid_date and the status.
    """
    payload = json_object(payload)
    method = _optional_text(payload, "payment_method")
    reference = _optional_text(payload, "payment_reference")
    missing = [k for k, v in (("payment_method", method), ("payment_reference", reference)) if not v]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if len(method) > 50:
        raise ValidationError("payment_method exceeds max length 50")
    if len(reference) > 100:
        raise ValidationError("payment_reference exceeds max length 100")
    try:
        paid_date = parse_iso_date(payload.get("paid_date")) if payload.get("paid_date") else None
    except (TypeError, ValueError, AttributeError):
        raise ValidationError("paid_date must be an ISO-8601 date (YYYY-MM-DD)")

    kind = EntityKind.CLAIM
    record = _lock(kind, claim_id)
    permission_service.require(
        principal, Operation.UPDATE, kind,
        record=record, changed_fields={"status", "payment_method", "payment_reference", "paid_date"},
    )
    _check_transition(kind, record, ClaimStatus.PAID)

    with atomic():
        record.status = ClaimStatus.PAID
        record.payment_method = method
        record.payment_reference = reference
        record.paid_date = paid_date or today()
        notification_service.emit(
            record.user_id,
            "Claim Paid",
            f"Your claim of {_money(record.amount)} has been paid ({method}, ref {reference}).",
            type=NotificationType.SUCCESS,
            reference_type=kind,
            reference_id=record.id,
        )

    logger.info("claim %s paid by %s", claim_id, principal.user_id)
    return TransitionResult(record=record, applied=True)


def transition(principal: Principal, kind: EntityKind, entry_id: int, target, payload: dict | None = None) -> TransitionResult:
    """Dispatch a generic status change (PATCH status=...) to the named transition."""
    status = _parse_status(kind, target)
    payload = dict(json_object(payload))
    if status.value == APPROVED:
        return approve(principal, kind, entry_id, payload)
    if status.value == REJECTED:
        return reject(principal, kind, entry_id, payload)
    if status.value == PAID:
        return pay_claim(principal, entry_id, payload)

    # Only "pending" is left, and nothing ever moves back to it
    record = _lock(kind, entry_id)
    permission_service.require(principal, Operation.UPDATE, kind, record=record, changed_fields={"status"})
    _check_transition(kind, record, status)
    raise WorkflowViolationError(f"Cannot move {kind.value} {entry_id} to {status.value}", reason="illegal_transition")
