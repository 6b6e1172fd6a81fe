# Overview: Pure authorization policy for ledger records, profiles, commissions and notifications.

"""
Authorization Policy Engine

authorize(ctx) -> Decision answers one question: may this principal perform
this operation on this kind of record, given the record's owner and status?

DESIGN:
- Pure: no database access, no clock, no request state. Everything the
  decision depends on is in AccessContext, so any decision can be re-derived
  from (principal id, role, operation, entity, target owner/status,
  changed fields).
- Grants are independent and each is sufficient. Forbids override grants.
- Deny by default: no grant -> denied with reason "no_grant".

The services load the principal's role fresh for every request (see
permission_service.load_principal), so an admin changing a role takes
effect on the next call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Callable, Optional

from .models.enums import ClaimStatus, EntityKind, LEDGER_KINDS, ReviewStatus, Role


class Operation(StrEnum):
    READ = "read"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


PENDING = "pending"

# Written only by an admin review or the workflow
LEDGER_REVIEW_FIELDS = frozenset({
    "status", "reviewed_by", "reviewed_at", "admin_comments", "rejection_reason",
    "payment_method", "payment_reference", "paid_date", "commission_amount",
})
OWNER_FIELD = "user_id"
ROLE_FIELD = "role"
COMMISSION_PAYOUT_FIELDS = frozenset({"payout_status", "payout_date", "payout_reference"})
NOTIFICATION_TARGET_FIELDS = frozenset({"read_at"})

# Roles allowed to record revenue
REVENUE_CREATOR_ROLES = frozenset({Role.SALESMAN, Role.ADMIN})


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


@dataclass(frozen=True)
class TargetRef:
    """The two facts about an existing record that authorization may use."""
    owner_id: str
    status: Optional[str] = None


@dataclass(frozen=True)
class AccessContext:
    principal: Principal
    operation: Operation
    entity: EntityKind
    target: Optional[TargetRef] = None
    changed_fields: frozenset[str] = field(default_factory=frozenset)
    # Owner an insert would record
    new_owner_id: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


Rule = Callable[[AccessContext], Optional[str]]


def _status_value(status) -> Optional[str]:
    if status is None:
        return None
    return status.value if isinstance(status, (ReviewStatus, ClaimStatus)) else str(status)


def _owns_target(ctx: AccessContext) -> bool:
    return ctx.target is not None and ctx.target.owner_id == ctx.principal.user_id


def _is_ledger(ctx: AccessContext) -> bool:
    return ctx.entity in LEDGER_KINDS


# =============================================================================
# FORBIDS (checked first, override any grant)
# =============================================================================

def _forbid_owner_reassignment(ctx: AccessContext) -> Optional[str]:
    if ctx.operation == Operation.UPDATE and OWNER_FIELD in ctx.changed_fields:
        return "owner_immutable"
    return None


def _forbid_role_change_by_non_admin(ctx: AccessContext) -> Optional[str]:
    if (
        ctx.entity == EntityKind.PROFILE
        and ctx.operation == Operation.UPDATE
        and ROLE_FIELD in ctx.changed_fields
        and not ctx.principal.is_admin
    ):
        return "role_change_requires_admin"
    return None


def _forbid_review_by_non_admin(ctx: AccessContext) -> Optional[str]:
    if (
        _is_ledger(ctx)
        and ctx.operation == Operation.UPDATE
        and ctx.changed_fields & LEDGER_REVIEW_FIELDS
        and not ctx.principal.is_admin
    ):
        return "review_requires_admin"
    return None


FORBIDS: tuple[Rule, ...] = (
    _forbid_owner_reassignment,
    _forbid_role_change_by_non_admin,
    _forbid_review_by_non_admin,
)


# =============================================================================
# GRANTS (any one suffices)
# =============================================================================

def _grant_ledger_read_own(ctx: AccessContext) -> Optional[str]:
    if _is_ledger(ctx) and ctx.operation == Operation.READ and _owns_target(ctx):
        return "read_own"
    return None


def _grant_ledger_read_all_admin(ctx: AccessContext) -> Optional[str]:
    if _is_ledger(ctx) and ctx.operation == Operation.READ and ctx.principal.is_admin:
        return "read_all_admin"
    return None


def _grant_ledger_insert_own(ctx: AccessContext) -> Optional[str]:
    if not (_is_ledger(ctx) and ctx.operation == Operation.INSERT):
        return None
    if ctx.new_owner_id != ctx.principal.user_id:
        return None
    if ctx.entity == EntityKind.REVENUE and ctx.principal.role not in REVENUE_CREATOR_ROLES:
        return None
    return "insert_own"


def _grant_ledger_update_own_pending(ctx: AccessContext) -> Optional[str]:
    if (
        _is_ledger(ctx)
        and ctx.operation == Operation.UPDATE
        and _owns_target(ctx)
        and _status_value(ctx.target.status) == PENDING
        and not (ctx.changed_fields & LEDGER_REVIEW_FIELDS)
    ):
        return "update_own_pending"
    return None


def _grant_ledger_update_all_admin(ctx: AccessContext) -> Optional[str]:
    if (
        _is_ledger(ctx)
        and ctx.operation == Operation.UPDATE
        and ctx.principal.is_admin
        and ctx.changed_fields <= LEDGER_REVIEW_FIELDS
    ):
        return "update_all_admin"
    return None


def _grant_claim_delete_own_pending(ctx: AccessContext) -> Optional[str]:
    if (
        ctx.entity == EntityKind.CLAIM
        and ctx.operation == Operation.DELETE
        and _owns_target(ctx)
        and _status_value(ctx.target.status) == PENDING
    ):
        return "delete_own_pending"
    return None


def _grant_ledger_delete_all_admin(ctx: AccessContext) -> Optional[str]:
    if _is_ledger(ctx) and ctx.operation == Operation.DELETE and ctx.principal.is_admin:
        return "delete_all_admin"
    return None


def _grant_profile_self_service(ctx: AccessContext) -> Optional[str]:
    if ctx.entity != EntityKind.PROFILE:
        return None
    if ctx.operation == Operation.INSERT:
        # Identity must match; an unconditional self-insert is not allowed.
        return "profile_insert_self" if ctx.new_owner_id == ctx.principal.user_id else None
    if ctx.operation in (Operation.READ, Operation.UPDATE) and _owns_target(ctx):
        return f"profile_{ctx.operation.value}_self"
    return None


def _grant_profile_admin(ctx: AccessContext) -> Optional[str]:
    if (
        ctx.entity == EntityKind.PROFILE
        and ctx.operation in (Operation.READ, Operation.UPDATE)
        and ctx.principal.is_admin
    ):
        return f"profile_{ctx.operation.value}_admin"
    return None


def _grant_commission_read(ctx: AccessContext) -> Optional[str]:
    if ctx.entity != EntityKind.COMMISSION or ctx.operation != Operation.READ:
        return None
    if ctx.principal.is_admin:
        return "read_all_admin"
    if _owns_target(ctx):
        return "read_own"
    return None


def _grant_commission_admin_payout(ctx: AccessContext) -> Optional[str]:
    if ctx.entity != EntityKind.COMMISSION or not ctx.principal.is_admin:
        return None
    if ctx.operation == Operation.UPDATE and ctx.changed_fields <= COMMISSION_PAYOUT_FIELDS:
        return "payout_admin"
    if ctx.operation == Operation.DELETE:
        return "delete_all_admin"
    return None


def _grant_notification_target(ctx: AccessContext) -> Optional[str]:
    if ctx.entity != EntityKind.NOTIFICATION or not _owns_target(ctx):
        return None
    if ctx.operation == Operation.READ:
        return "read_own"
    if ctx.operation == Operation.UPDATE and ctx.changed_fields <= NOTIFICATION_TARGET_FIELDS:
        return "update_own"
    return None


GRANTS: tuple[Rule, ...] = (
    _grant_ledger_read_own,
    _grant_ledger_read_all_admin,
    _grant_ledger_insert_own,
    _grant_ledger_update_own_pending,
    _grant_ledger_update_all_admin,
    _grant_claim_delete_own_pending,
    _grant_ledger_delete_all_admin,
    _grant_profile_self_service,
    _grant_profile_admin,
    _grant_commission_read,
    _grant_commission_admin_payout,
    _grant_notification_target,
)


def authorize(ctx: AccessContext) -> Decision:
    """
    Evaluate forbids, then grants. The first matching forbid denies; otherwise
    the first matching grant allows; otherwise deny with "no_grant".

    Rule order only affects which reason tag is reported, never the outcome.
    """
    for rule in FORBIDS:
        reason = rule(ctx)
        if reason:
            return Decision(False, reason)

    for rule in GRANTS:
        reason = rule(ctx)
        if reason:
            return Decision(True, reason)

    if ctx.operation == Operation.UPDATE and _is_ledger(ctx) and _owns_target(ctx):
        return Decision(False, "not_pending")
    if (
        ctx.operation == Operation.INSERT
        and ctx.entity == EntityKind.REVENUE
        and ctx.new_owner_id == ctx.principal.user_id
    ):
        return Decision(False, "revenue_requires_salesman")
    return Decision(False, "no_grant")


def can_read_all(principal: Principal, entity: EntityKind) -> bool:
    """Whether list queries for this entity may skip the owner filter."""
    any_row = TargetRef(owner_id="", status=None)
    return authorize(AccessContext(principal, Operation.READ, entity, target=any_row)).allowed
