# Overview: Flask API routes for the caller's notifications.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ForgeError
from ..services import notification_service
from ..decorators import require_auth


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """Query params: unread=true, limit (default 50, max 200)"""
    try:
        unread_only = request.args.get("unread", "").lower() in ("1", "true", "yes")
        limit = request.args.get("limit", 50, type=int)
        limit = max(1, min(limit, 200))
        notifications = notification_service.list_notifications(
            g.principal, unread_only=unread_only, limit=limit,
        )
        return jsonify({
            "notifications": [n.to_dict() for n in notifications],
            "unread_count": notification_service.unread_count(g.principal),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list notifications")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.post("/<int:notification_id>/read")
@require_auth
def mark_read_route(notification_id: int):
    try:
        notification = notification_service.mark_read(g.principal, notification_id)
        return jsonify({"notification": notification.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to mark notification read")
        return jsonify({"error": "Internal server error"}), 500


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    try:
        updated = notification_service.mark_all_read(g.principal)
        return jsonify({"updated": updated}), 200
    except Exception:
        current_app.logger.exception("Failed to mark notifications read")
        return jsonify({"error": "Internal server error"}), 500
