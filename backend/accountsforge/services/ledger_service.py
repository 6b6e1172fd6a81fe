# Overview: Service-layer operations for ledger entries (expenses, revenues, claims).

"""
Ledger Service

Order of checks for every write:
1. validate_payload() against the per-kind policy (malformed input is a
   400 before authorization is evaluated)
2. permission_service.require() with the fields the write touches
3. apply + commit

Status never changes here. A PATCH carrying "status" is handed to
workflow_service.transition(), which owns the state graph and side effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import InvariantViolationError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    LEDGER_MODELS,
    Claim,
    ClaimType,
    EntityKind,
    Expense,
    Profile,
    Revenue,
)
from ..policy import OWNER_FIELD, Operation, Principal, can_read_all
from ..time_utils import parse_iso_date, today
from ..validation import (
    ModelValidationPolicy,
    enforce_commission_rate,
    enforce_positive_amount,
    enforce_quantity,
    validate_payload,
)
from . import permission_service, settings_service, workflow_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerKindPolicy:
    """
    create: fields accepted on POST (user_id included so a foreign owner
            reaches the policy engine and is denied there)
    update: fields accepted on PATCH; review fields are listed so that a
            non-admin gets "forbidden" rather than "field not allowed"
    """
    create: ModelValidationPolicy
    update: ModelValidationPolicy


# Review fields a client may send; reviewed_by/reviewed_at are set by the workflow.
# Payment details arrive only through the pay transition.
CLIENT_REVIEW_FIELDS = frozenset({"status", "admin_comments", "rejection_reason"})

EXPENSE_FIELDS = frozenset({"amount", "description", "category", "expense_date", "proof_url"})
REVENUE_FIELDS = frozenset({
    "amount", "customer_name", "customer_email", "customer_phone", "product_service",
    "quantity", "invoice_number", "revenue_date", "commission_rate", "proof_url",
})
CLAIM_FIELDS = frozenset({
    "amount", "claim_type", "description", "expense_id", "revenue_id",
    "submitted_date", "notes", "proof_url",
})

KIND_POLICIES: dict[EntityKind, LedgerKindPolicy] = {
    EntityKind.EXPENSE: LedgerKindPolicy(
        create=ModelValidationPolicy(
            writable_fields=EXPENSE_FIELDS | {OWNER_FIELD},
            required_on_create=frozenset({"amount", "description"}),
        ),
        update=ModelValidationPolicy(writable_fields=EXPENSE_FIELDS | CLIENT_REVIEW_FIELDS | {OWNER_FIELD}),
    ),
    EntityKind.REVENUE: LedgerKindPolicy(
        create=ModelValidationPolicy(
            writable_fields=REVENUE_FIELDS | {OWNER_FIELD},
            required_on_create=frozenset({"amount", "customer_name"}),
        ),
        update=ModelValidationPolicy(writable_fields=REVENUE_FIELDS | CLIENT_REVIEW_FIELDS | {OWNER_FIELD}),
    ),
    EntityKind.CLAIM: LedgerKindPolicy(
        create=ModelValidationPolicy(
            writable_fields=CLAIM_FIELDS | {OWNER_FIELD},
            required_on_create=frozenset({"amount", "claim_type", "description"}),
        ),
        update=ModelValidationPolicy(
            writable_fields=CLAIM_FIELDS | CLIENT_REVIEW_FIELDS | {OWNER_FIELD},
        ),
    ),
}

# Defaults applied on create when the client leaves the field out
DATE_DEFAULTS = {
    EntityKind.EXPENSE: "expense_date",
    EntityKind.REVENUE: "revenue_date",
    EntityKind.CLAIM: "submitted_date",
}


def _validate(kind: EntityKind, payload, *, partial: bool) -> dict:
    policies = KIND_POLICIES[kind]
    patch = validate_payload(
        model=LEDGER_MODELS[kind],
        payload=payload,
        policy=policies.update if partial else policies.create,
        partial=partial,
    )
    enforce_positive_amount(patch)
    if kind == EntityKind.REVENUE:
        enforce_commission_rate(patch)
        enforce_quantity(patch)
    if kind == EntityKind.CLAIM and patch.get("expense_id") and patch.get("revenue_id"):
        raise ValidationError("A claim may reference an expense or a revenue, not both")
    return patch


def _load(kind: EntityKind, entry_id: int):
    record = db.session.get(LEDGER_MODELS[kind], entry_id)
    if record is None:
        raise NotFoundError(f"{kind.value.capitalize()} not found")
    return record


def _check_claim_links(principal: Principal, owner_id: str, patch: dict) -> None:
    """Linked expense/revenue must exist and belong to the claimant (admins may link any)."""
    for key, model in (("expense_id", Expense), ("revenue_id", Revenue)):
        linked_id = patch.get(key)
        if linked_id is None:
            continue
        linked = db.session.get(model, linked_id)
        if linked is None:
            raise ValidationError(f"{key} does not reference an existing record")
        if linked.user_id != owner_id and not principal.is_admin:
            raise ValidationError(f"{key} must reference one of your own records")


def resolve_commission_rate(owner_id: str) -> Decimal:
    """Owner's profile rate, else the company default_commission_rate."""
    profile = db.session.query(Profile).filter_by(user_id=owner_id).one_or_none()
    if profile is not None and profile.commission_rate is not None:
        return profile.commission_rate
    return settings_service.get_default_commission_rate()


def _parse_date_filter(filters: dict, key: str):
    try:
        return parse_iso_date(filters.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date (YYYY-MM-DD)")


def _commit_or_invariant():
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise InvariantViolationError(f"Constraint violated: {e.orig}")


# =============================================================================
# CRUD
# =============================================================================

def create_entry(principal: Principal, kind: EntityKind, payload: dict):
    patch = _validate(kind, payload, partial=False)
    owner_id = patch.pop(OWNER_FIELD, None) or principal.user_id

    permission_service.require(principal, Operation.INSERT, kind, new_owner_id=owner_id)

    if kind == EntityKind.CLAIM:
        _check_claim_links(principal, owner_id, patch)

    date_field = DATE_DEFAULTS[kind]
    if patch.get(date_field) is None:
        patch[date_field] = today()

    if kind == EntityKind.REVENUE and patch.get("commission_rate") is None:
        patch["commission_rate"] = resolve_commission_rate(owner_id)

    model = LEDGER_MODELS[kind]
    record = model(user_id=owner_id, **patch)
    db.session.add(record)
    _commit_or_invariant()

    logger.info("Created %s %s for %s", kind.value, record.id, owner_id)
    return record


def get_entry(principal: Principal, kind: EntityKind, entry_id: int):
    record = _load(kind, entry_id)
    permission_service.require(principal, Operation.READ, kind, record=record)
    return record


def list_entries(principal: Principal, kind: EntityKind, filters: dict | None = None) -> list:
    """
    Visibility mirrors the read grants: admins see everything, everyone else
    sees only their own rows whatever user_id filter they pass.

    filters: status, user_id, claim_type (claims), date_from / date_to
    """
    filters = filters or {}
    model = LEDGER_MODELS[kind]
    query = db.session.query(model)

    if can_read_all(principal, kind):
        if filters.get("user_id"):
            query = query.filter(model.user_id == filters["user_id"])
    else:
        query = query.filter(model.user_id == principal.user_id)

    status = filters.get("status")
    if status:
        try:
            query = query.filter(model.status == model.STATUS_ENUM(status))
        except ValueError:
            allowed = ", ".join(s.value for s in model.STATUS_ENUM)
            raise ValidationError(f"status must be one of: {allowed}")

    claim_type = filters.get("claim_type")
    if claim_type and kind == EntityKind.CLAIM:
        try:
            query = query.filter(Claim.claim_type == ClaimType(claim_type))
        except ValueError:
            raise ValidationError(f"claim_type must be one of: {', '.join(t.value for t in ClaimType)}")

    date_col = getattr(model, DATE_DEFAULTS[kind])
    date_from = _parse_date_filter(filters, "date_from")
    date_to = _parse_date_filter(filters, "date_to")
    if date_from:
        query = query.filter(date_col >= date_from)
    if date_to:
        query = query.filter(date_col <= date_to)

    return query.order_by(model.created_at.desc(), model.id.desc()).all()


def update_entry(principal: Principal, kind: EntityKind, entry_id: int, payload: dict):
    """
    Owner edits while pending; admin review fields at any status.

    Returns the updated record. A status change is delegated to the workflow.
    """
    patch = _validate(kind, payload, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    if "rejection_reason" in patch and patch.get("status") != workflow_service.REJECTED:
        raise ValidationError("rejection_reason can only be sent with status \"rejected\"")

    record = _load(kind, entry_id)
    permission_service.require(
        principal, Operation.UPDATE, kind,
        record=record, changed_fields=patch.keys(),
    )

    if "status" in patch:
        target = patch.pop("status")
        result = workflow_service.transition(principal, kind, entry_id, target, patch)
        return result.record

    if kind == EntityKind.CLAIM:
        _check_claim_links(principal, record.user_id, patch)

    for k, v in patch.items():
        setattr(record, k, v)
    _commit_or_invariant()
    return record


def delete_entry(principal: Principal, kind: EntityKind, entry_id: int) -> None:
    """Admins delete any entry; owners delete their own pending claims."""
    record = _load(kind, entry_id)
    permission_service.require(principal, Operation.DELETE, kind, record=record)

    db.session.delete(record)
    db.session.commit()
    logger.info("Deleted %s %s by %s", kind.value, entry_id, principal.user_id)
