# Overview: Service-layer authorization; resolves principals and enforces the policy engine.

"""
Permission checking and security event logging.

WHY: The policy engine (accountsforge.policy) is pure. This module is the
seam between it and the database:
- load_principal() reads the role fresh on every request, never cached, so
  role changes take effect immediately
- require() evaluates the policy and raises PermissionDeniedError on denial
- denials are written to security_events

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant
- Log denials only: grants are not logged
"""

from __future__ import annotations

import logging

from ..errors import AuthenticationError, PermissionDeniedError
from ..extensions import db
from ..models import EntityKind, Profile, SecurityEvent
from ..policy import AccessContext, Decision, Operation, Principal, TargetRef, authorize
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


def log_security_event(
    user_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    commit: bool = True,
) -> SecurityEvent:
    """
    Append a security event to the audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - ROLE_CHANGED
    - PROFILE_CREATED
    - IDENTITY_DELETED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    if commit:
        db.session.commit()

    return event


def load_principal(user_id: str) -> Principal:
    """
    Resolve the caller's current role from the Identity Store.

    Raises AuthenticationError if the identity has no profile (it is created
    at sign-in, so this means the identity was removed mid-session).
    """
    profile = db.session.query(Profile).filter_by(user_id=user_id).one_or_none()
    if profile is None:
        raise AuthenticationError("No profile for the authenticated identity")
    return Principal(user_id=profile.user_id, role=profile.role)


def target_of(record) -> TargetRef:
    """Build the policy view of an existing row (owner + status only)."""
    owner = getattr(record, "user_id", None) or getattr(record, "salesman_id", None)
    status = getattr(record, "status", None)
    return TargetRef(owner_id=owner, status=status.value if status is not None else None)


def check(
    principal: Principal,
    operation: Operation,
    entity: EntityKind,
    *,
    record=None,
    changed_fields=(),
    new_owner_id: str | None = None,
) -> Decision:
    ctx = AccessContext(
        principal=principal,
        operation=operation,
        entity=entity,
        target=target_of(record) if record is not None else None,
        changed_fields=frozenset(changed_fields),
        new_owner_id=new_owner_id,
    )
    return authorize(ctx)


def require(
    principal: Principal,
    operation: Operation,
    entity: EntityKind,
    *,
    record=None,
    changed_fields=(),
    new_owner_id: str | None = None,
) -> Decision:
    """
    Require a grant, raise PermissionDeniedError if none applies.

    The denial is logged to security_events before raising. Callers raise
    inside their own transaction, so the event is committed on its own.
    """
    decision = check(
        principal,
        operation,
        entity,
        record=record,
        changed_fields=changed_fields,
        new_owner_id=new_owner_id,
    )
    if decision.allowed:
        return decision

    resource = entity.value
    if record is not None and getattr(record, "id", None) is not None:
        resource = f"{entity.value}:{record.id}"

    logger.info(
        "Denied %s on %s for %s (%s): %s",
        operation.value, resource, principal.user_id, principal.role.value, decision.reason,
    )
    # Anything the caller staged must not ride along with the audit commit
    db.session.rollback()
    log_security_event(
        user_id=principal.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=operation.value,
        reason=decision.reason,
    )
    raise PermissionDeniedError(
        f"Permission denied: cannot {operation.value} {entity.value}",
        reason=decision.reason,
    )


def require_admin(principal: Principal, resource: str, action: str) -> None:
    """For admin-only surfaces outside the record model (settings, user removal)."""
    if principal.is_admin:
        return
    db.session.rollback()
    log_security_event(
        user_id=principal.user_id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason="admin_required",
    )
    raise PermissionDeniedError("Admin role required", reason="admin_required")
