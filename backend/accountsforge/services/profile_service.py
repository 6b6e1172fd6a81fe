# Overview: Service-layer operations for the Identity Store (profiles and roles).

"""
Profile Service

Lifecycle:
- ensure_profile(): first sign-in creates the profile with the configured
  DEFAULT_PROFILE_ROLE. There is no implicit fallback role; a missing or
  invalid setting is a ConfigurationError.
- change_role(): admin only, audited as ROLE_CHANGED. Roles are never
  cached, so the change applies to the target's next request.
- dedupe_profiles(): repairs duplicate rows imported from before the
  uq_profiles_user_id constraint, keeping the earliest-created row.
"""

from __future__ import annotations

import logging
from typing import Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConfigurationError, NotFoundError, ValidationError
from ..extensions import db
from ..models import EntityKind, Identity, Profile, Role
from ..policy import Operation, Principal
from ..validation import ModelValidationPolicy, enforce_commission_rate, validate_payload
from . import permission_service

logger = logging.getLogger(__name__)


SELF_EDITABLE_FIELDS = frozenset({"full_name", "phone_number"})

PROFILE_SELF_POLICY = ModelValidationPolicy(writable_fields=SELF_EDITABLE_FIELDS)

PROFILE_ADMIN_POLICY = ModelValidationPolicy(
    writable_fields=SELF_EDITABLE_FIELDS | {
        "department", "hire_date", "salary", "commission_rate", "status",
    },
)


def default_profile_role() -> Role:
    """Read DEFAULT_PROFILE_ROLE from config. Raises ConfigurationError."""
    raw = current_app.config.get("DEFAULT_PROFILE_ROLE")
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ConfigurationError(
            "DEFAULT_PROFILE_ROLE is not configured",
            reason="default_role_missing",
        )
    try:
        return Role(str(raw).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"DEFAULT_PROFILE_ROLE {raw!r} is not a valid role",
            reason="default_role_invalid",
        )


def find_profile(user_id: str) -> Profile | None:
    return db.session.query(Profile).filter_by(user_id=user_id).one_or_none()


def ensure_profile(identity: Identity, role: Role | None = None) -> Profile:
    """
    Return the identity's profile, creating it on first sign-in.

    role is for operator bootstrap (flask users create) only; sign-in and
    sign-up never pass it.

    Two concurrent first sign-ins race on uq_profiles_user_id; the loser
    rolls back and re-reads the winner's row.
    """
    profile = find_profile(identity.id)
    if profile is not None:
        return profile

    role = role or default_profile_role()
    principal = Principal(user_id=identity.id, role=role)
    permission_service.require(
        principal, Operation.INSERT, EntityKind.PROFILE, new_owner_id=identity.id,
    )

    profile = Profile(
        user_id=identity.id,
        role=role,
        full_name=identity.full_name or "User",
        phone_number=identity.phone,
    )
    db.session.add(profile)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        profile = find_profile(identity.id)
        if profile is None:
            raise
        return profile

    logger.info("Created profile for %s with role %s", identity.id, role.value)
    return profile


def get_profile(principal: Principal, user_id: str) -> Profile:
    profile = find_profile(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    permission_service.require(principal, Operation.READ, EntityKind.PROFILE, record=profile)
    return profile


def list_profiles(principal: Principal, role: str | None = None) -> list[Profile]:
    """Admins list everyone; anyone else sees only their own profile."""
    query = db.session.query(Profile)
    if not principal.is_admin:
        query = query.filter(Profile.user_id == principal.user_id)
    if role:
        try:
            query = query.filter(Profile.role == Role(role))
        except ValueError:
            raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}")
    return query.order_by(Profile.created_at.asc(), Profile.id.asc()).all()


def update_profile(principal: Principal, user_id: str, payload: dict) -> Profile:
    """
    Self-service edits are limited to display fields; admins may also edit
    payroll fields. The role is never changed here (see change_role).
    """
    policy = PROFILE_ADMIN_POLICY if principal.is_admin else PROFILE_SELF_POLICY
    if isinstance(payload, dict) and ("role" in payload or "user_id" in payload):
        # Forbid rules decide these (owner_immutable, role_change_requires_admin)
        profile = find_profile(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        permission_service.require(
            principal, Operation.UPDATE, EntityKind.PROFILE,
            record=profile, changed_fields=payload.keys(),
        )
        return change_role(principal, user_id, payload.get("role"), extra=payload)

    patch = validate_payload(model=Profile, payload=payload, policy=policy, partial=True)
    enforce_commission_rate(patch)

    profile = find_profile(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    permission_service.require(
        principal, Operation.UPDATE, EntityKind.PROFILE,
        record=profile, changed_fields=patch.keys(),
    )

    for k, v in patch.items():
        setattr(profile, k, v)
    db.session.commit()
    return profile


def change_role(principal: Principal, user_id: str, role, extra: dict | None = None) -> Profile:
    """
    Admin-only role change, recorded as a ROLE_CHANGED security event.

    extra: other profile fields submitted alongside the role in one PATCH.
    """
    try:
        new_role = Role(role)
    except ValueError:
        raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}")

    patch = {}
    if extra:
        rest = {k: v for k, v in extra.items() if k != "role"}
        patch = validate_payload(model=Profile, payload=rest, policy=PROFILE_ADMIN_POLICY, partial=True)
        enforce_commission_rate(patch)

    profile = find_profile(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    permission_service.require(
        principal, Operation.UPDATE, EntityKind.PROFILE,
        record=profile, changed_fields={"role", *patch.keys()},
    )

    old_role = profile.role
    profile.role = new_role
    for k, v in patch.items():
        setattr(profile, k, v)

    if old_role != new_role:
        permission_service.log_security_event(
            user_id=principal.user_id,
            event_type="ROLE_CHANGED",
            success=True,
            resource=f"profile:{user_id}",
            action="update",
            reason=f"{old_role.value}->{new_role.value}",
            commit=False,
        )
    db.session.commit()

    logger.info("Role of %s changed %s -> %s by %s", user_id, old_role.value, new_role.value, principal.user_id)
    return profile


def set_role_as_operator(user_id: str, role) -> Profile:
    """
    Role change from the CLI (trusted operator, no principal). Still audited
    as ROLE_CHANGED with no acting user.
    """
    try:
        new_role = Role(role)
    except ValueError:
        raise ValidationError(f"role must be one of: {', '.join(r.value for r in Role)}")

    profile = find_profile(user_id)
    if profile is None:
        raise NotFoundError("Profile not found")

    old_role = profile.role
    profile.role = new_role
    permission_service.log_security_event(
        user_id=None,
        event_type="ROLE_CHANGED",
        success=True,
        resource=f"profile:{user_id}",
        action="cli",
        reason=f"{old_role.value}->{new_role.value}",
        commit=False,
    )
    db.session.commit()
    return profile


# =============================================================================
# DUPLICATE CLEANUP
# =============================================================================

def select_duplicate_profiles(profiles: Iterable) -> list:
    """
    Pick the rows to discard: per user_id, everything except the earliest
    by (created_at, id).

    Pure so it can be tested without violating the unique constraint.
    """
    keep: dict[str, object] = {}
    discard = []
    for p in sorted(profiles, key=lambda p: (p.created_at, p.id)):
        if p.user_id in keep:
            discard.append(p)
        else:
            keep[p.user_id] = p
    return discard


def dedupe_profiles(*, dry_run: bool = False) -> list[Profile]:
    """Delete duplicate profile rows. Returns the rows removed (or that would be)."""
    rows = db.session.query(Profile).all()
    discard = select_duplicate_profiles(rows)
    if dry_run or not discard:
        return discard

    for p in discard:
        db.session.delete(p)
    db.session.commit()
    logger.warning("Removed %d duplicate profile rows", len(discard))
    return discard
