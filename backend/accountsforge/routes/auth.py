# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/accountsforge/routes/auth.py
"""
Authentication API routes

- Self-registration creates an identity only; the profile (and its role)
  is created at first sign-in from DEFAULT_PROFILE_ROLE
- Session management with token-based auth
- Failed logins recorded as security events
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import ForgeError
from ..validation import json_object
from ..services import auth_service
from ..services import profile_service
from ..services import session_service
from ..decorators import require_auth, bearer_token


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Request body:
    {
        "email": "a@example.com",
        "password": "Passw0rd!",
        "full_name": "Ada Lovelace",   (optional)
        "phone": "+15550100"           (optional)
    }

    Any "role" in the body is ignored.
    """
    try:
        data = json_object(request.get_json(silent=True))
        identity = auth_service.register_identity(
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name"),
            phone=data.get("phone"),
        )
        return jsonify({"identity": identity.to_dict()}), 201

    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to register identity")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate and create a session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = json_object(request.get_json(silent=True))
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required", "kind": "validation_failed"}), 400

        identity = auth_service.authenticate(email, password)
        if not identity:
            return jsonify({"error": "Invalid credentials", "kind": "authentication_required"}), 401

        session, token = session_service.create_session(
            identity_id=identity.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        profile = profile_service.find_profile(identity.id)

        return jsonify({
            "identity": identity.to_dict(),
            "profile": profile.to_dict() if profile else None,
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except ForgeError as e:
        if e.http_status >= 500:
            current_app.logger.error("Login failed: %s", e.message)
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to login")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Revoke the session token. WHY: explicit logout prevents token reuse."""
    try:
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required", "kind": "authentication_required"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token", "kind": "authentication_required"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current identity, profile and role (as of this request)."""
    profile = profile_service.find_profile(g.principal.user_id)
    return jsonify({
        "identity": g.identity.to_dict(),
        "profile": profile.to_dict() if profile else None,
        "role": g.principal.role.value,
    }), 200
