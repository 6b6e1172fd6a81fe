# Overview: Service-layer operations for identities; password hashing and sign-in.

"""
Authentication Service

WHY: Every ledger row is attributed to an identity. This module owns the
identity lifecycle: registration, sign-in and removal.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_LOG_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
- Sign-up metadata (full_name, phone) is copied into the profile but never
  chooses a role; the role comes from DEFAULT_PROFILE_ROLE
"""

from __future__ import annotations

import logging
import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Identity
from ..time_utils import utcnow
from . import permission_service, profile_service

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Validate strength, then bcrypt. Cost factor comes from BCRYPT_LOG_ROUNDS
    (12 unless overridden; tests lower it).
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_LOG_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """bcrypt.checkpw is timing-safe. Malformed hashes verify as False."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise ValidationError("A valid email is required")
    return email.strip().lower()


def register_identity(
    email: str,
    password: str,
    full_name: str | None = None,
    phone: str | None = None,
) -> Identity:
    """
    Create an identity. No profile is created here; that happens on first
    sign-in so the two paths (self sign-up, admin-created user) converge.

    Raises:
        ValidationError: bad email, weak password, or email already registered
    """
    email = normalize_email(email)

    existing = db.session.query(Identity).filter_by(email=email).first()
    if existing:
        raise ValidationError("Email already registered")

    identity = Identity(
        email=email,
        password_hash=hash_password(password),
        full_name=(full_name or "").strip() or None,
        phone=(phone or "").strip() or None,
    )
    db.session.add(identity)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Email already registered")

    logger.info("Registered identity %s", identity.id)
    return identity


def authenticate(email: str, password: str) -> Identity | None:
    """
    Authenticate with email and password.

    Returns the Identity if credentials are valid, None otherwise. On success
    last_sign_in_at is updated and the profile is ensured to exist, which
    may raise ConfigurationError when no default role is configured.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None

    identity = db.session.query(Identity).filter_by(email=email.strip().lower()).first()
    if not identity or not verify_password(password, identity.password_hash):
        permission_service.log_security_event(
            user_id=identity.id if identity else None,
            event_type="LOGIN_FAILED",
            success=False,
            resource="auth",
            action="login",
            reason="invalid_credentials",
        )
        return None

    identity.last_sign_in_at = utcnow()
    db.session.commit()

    profile_service.ensure_profile(identity)
    return identity


def get_identity(identity_id: str) -> Identity:
    identity = db.session.get(Identity, identity_id)
    if identity is None:
        raise NotFoundError("Identity not found")
    return identity


def delete_identity(principal, identity_id: str) -> None:
    """
    Admin removal of an identity. The ORM cascade removes its profile and
    session tokens; ledger rows cascade at the database level.
    """
    permission_service.require_admin(principal, resource=f"identity:{identity_id}", action="delete")

    identity = get_identity(identity_id)
    db.session.delete(identity)
    permission_service.log_security_event(
        user_id=principal.user_id,
        event_type="IDENTITY_DELETED",
        success=True,
        resource=f"identity:{identity_id}",
        action="delete",
        commit=False,
    )
    db.session.commit()
    logger.info("Identity %s deleted by %s", identity_id, principal.user_id)
