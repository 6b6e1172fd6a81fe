# Overview: Flask API routes for profiles and identity removal.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ForgeError
from ..validation import json_object
from ..services import auth_service, profile_service
from ..decorators import require_auth, require_admin


profiles_bp = Blueprint("profiles", __name__, url_prefix="/api")


@profiles_bp.get("/profiles/me")
@require_auth
def get_my_profile_route():
    try:
        profile = profile_service.get_profile(g.principal, g.principal.user_id)
        return jsonify({"profile": profile.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to get profile")
        return jsonify({"error": "Internal server error"}), 500


@profiles_bp.patch("/profiles/me")
@require_auth
def update_my_profile_route():
    """Self-service: full_name, phone_number. Sending "role" is forbidden."""
    try:
        profile = profile_service.update_profile(
            g.principal, g.principal.user_id, request.get_json(silent=True),
        )
        return jsonify({"profile": profile.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500


@profiles_bp.get("/profiles")
@require_auth
def list_profiles_route():
    """Admins see all profiles (optional ?role=), others only their own."""
    try:
        profiles = profile_service.list_profiles(g.principal, role=request.args.get("role"))
        return jsonify({
            "profiles": [p.to_dict() for p in profiles],
            "count": len(profiles),
        }), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list profiles")
        return jsonify({"error": "Internal server error"}), 500


@profiles_bp.get("/profiles/<user_id>")
@require_auth
def get_profile_route(user_id: str):
    try:
        profile = profile_service.get_profile(g.principal, user_id)
        return jsonify({"profile": profile.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to get profile")
        return jsonify({"error": "Internal server error"}), 500


@profiles_bp.patch("/profiles/<user_id>")
@require_auth
def update_profile_route(user_id: str):
    try:
        profile = profile_service.update_profile(g.principal, user_id, request.get_json(silent=True))
        return jsonify({"profile": profile.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500


@profiles_bp.put("/profiles/<user_id>/role")
@require_auth
def change_role_route(user_id: str):
    """
    Admin only. Request body: {"role": "salesman"}

    The change is audited and applies to the target's next request.
    """
    try:
        data = json_object(request.get_json(silent=True))
        profile = profile_service.change_role(g.principal, user_id, data.get("role"))
        return jsonify({"profile": profile.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to change role")
        return jsonify({"error": "Internal server error"}), 500


@profiles_bp.delete("/identities/<user_id>")
@require_auth
@require_admin
def delete_identity_route(user_id: str):
    """Remove an identity; its profile and sessions go with it."""
    try:
        auth_service.delete_identity(g.principal, user_id)
        return jsonify({"message": "Identity deleted"}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete identity")
        return jsonify({"error": "Internal server error"}), 500
