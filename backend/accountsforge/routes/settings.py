# Overview: Flask API routes for company settings.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ForgeError
from ..validation import json_object
from ..services import settings_service
from ..decorators import require_auth, require_admin


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def list_settings_route():
    try:
        return jsonify({"settings": [s.to_dict() for s in settings_service.list_settings()]}), 200
    except Exception:
        current_app.logger.exception("Failed to list settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.put("/<key>")
@require_auth
@require_admin
def set_setting_route(key: str):
    """Request body: {"value": "7.50"}"""
    try:
        data = json_object(request.get_json(silent=True))
        setting = settings_service.set_setting(g.principal, key, data.get("value"))
        return jsonify({"setting": setting.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update setting")
        return jsonify({"error": "Internal server error"}), 500
