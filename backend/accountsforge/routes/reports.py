# Overview: Flask API routes for reports; parses input and returns JSON responses.

# backend/accountsforge/routes/reports.py
"""
Reporting API routes.

All figures come from approved records. Admins get company-wide numbers,
everyone else their own.

Query params (where applicable): start, end (YYYY-MM-DD), user_id (admin)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ForgeError
from ..services import reporting_service
from ..decorators import require_auth


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/profit-loss")
@require_auth
def profit_loss_route():
    try:
        report = reporting_service.profit_loss(
            g.principal, start=request.args.get("start"), end=request.args.get("end"),
            user_id=request.args.get("user_id"),
        )
        return jsonify({"report": report}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build profit & loss report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/monthly")
@require_auth
def monthly_route():
    try:
        rows = reporting_service.monthly_breakdown(
            g.principal, start=request.args.get("start"), end=request.args.get("end"),
            user_id=request.args.get("user_id"),
        )
        return jsonify({"months": rows}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build monthly report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/performance")
@require_auth
def performance_route():
    try:
        rows = reporting_service.salesman_performance(
            g.principal,
            start=request.args.get("start"),
            end=request.args.get("end"),
            user_id=request.args.get("user_id"),
        )
        return jsonify({"performance": rows}), 200
    except ForgeError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build performance report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/claims-summary")
@require_auth
def claims_summary_route():
    try:
        return jsonify({"claims": reporting_service.claims_summary(g.principal)}), 200
    except Exception:
        current_app.logger.exception("Failed to build claims summary")
        return jsonify({"error": "Internal server error"}), 500
