# Overview: Flask API routes for commissions; read access and payout recording.

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ForgeError
from ..validation import json_object
from ..services import commission_service
from ..decorators import require_auth


commissions_bp = Blueprint("commissions", __name__, url_prefix="/api/commissions")


@commissions_bp.get("")
@require_auth
def list_commissions_route():
    """
    Salesmen see their own commissions, admins see all.

    Query params: payout_status, salesman_id (admin)
    """
    try:
        commissions = commission_service.list_commissions(
            g.principal,
            payout_status=request.args.get("payout_status"),
            salesman_id=request.args.get("salesman_id"),
        )
        return jsonify({
            "commissions": [c.to_dict() for c in commissions],
            "count": len(commissions),
        }), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list commissions")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.get("/<int:commission_id>")
@require_auth
def get_commission_route(commission_id: int):
    try:
        commission = commission_service.get_commission(g.principal, commission_id)
        return jsonify({"commission": commission.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to get commission")
        return jsonify({"error": "Internal server error"}), 500


@commissions_bp.post("/<int:commission_id>/payout")
@require_auth
def payout_route(commission_id: int):
    """
    Admin only.

    Request body:
    {
        "payout_status": "paid",          (default "paid"; or "cancelled")
        "payout_reference": "PAY-2026-01",
        "payout_date": "2026-03-31"       (optional)
    }
    """
    try:
        data = json_object(request.get_json(silent=True))
        commission = commission_service.mark_payout(
            g.principal,
            commission_id,
            payout_status=data.get("payout_status", "paid"),
            payout_reference=data.get("payout_reference"),
            payout_date=data.get("payout_date"),
        )
        return jsonify({"commission": commission.to_dict()}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record commission payout")
        return jsonify({"error": "Internal server error"}), 500
