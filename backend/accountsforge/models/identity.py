from __future__ import annotations

import uuid

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


def _new_identity_id() -> str:
    return str(uuid.uuid4())


class Identity(db.Model):
    """
    An authenticated principal as issued by the identity provider.

    The id is opaque to the rest of the system: ledger rows, profiles and
    notifications reference it, nothing parses it. Sign-up metadata
    (full_name, phone) is copied into the profile on first sign-in.

    Deleting an identity cascades to its profile and session tokens.
    """
    __tablename__ = "identities"

    id = db.Column(db.String(36), primary_key=True, default=_new_identity_id)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)
    phone = db.Column(db.String(32), nullable=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    # Sign-up metadata; never used for authorization
    full_name = db.Column(db.String(200), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_sign_in_at = db.Column(db.DateTime(timezone=True), nullable=True)

    profile = db.relationship(
        "Profile",
        back_populates="identity",
        uselist=False,
        cascade="all, delete-orphan",
    )
    sessions = db.relationship(
        "SessionToken",
        back_populates="identity",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "phone": self.phone,
            "full_name": self.full_name,
            "created_at": to_utc_z(self.created_at),
            "last_sign_in_at": to_utc_z(self.last_sign_in_at),
        }


class SessionToken(db.Model):
    """
    Bearer session for an identity.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - Absolute and idle timeouts (see Config)
    - Revocable on logout
    - Carries no role: the role is re-read from the profile on every request
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_identity_active", "identity_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    identity_id = db.Column(
        db.String(36),
        db.ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    identity = db.relationship("Identity", back_populates="sessions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "identity_id": self.identity_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
        }
