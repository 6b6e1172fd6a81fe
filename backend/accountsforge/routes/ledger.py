# Overview: Flask API routes for expenses, revenues and claims, including the approval workflow.

# backend/accountsforge/routes/ledger.py
"""
Ledger API Routes

One blueprint serves the three ledger collections:
    /api/expenses, /api/revenues, /api/claims

DESIGN:
- CRUD goes through ledger_service (validation, then authorization)
- approve / reject / pay go through workflow_service, which commits the
  status change and its side effects (commission, notification) atomically
- Re-approving an approved record answers 200 with "applied": false

SECURITY:
- Every route requires a bearer token
- Grants and forbids are decided per record by the policy engine; denials
  answer 403 and are written to security_events
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ForgeError, NotFoundError
from ..models import EntityKind
from ..services import ledger_service, workflow_service
from ..decorators import require_auth


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api")

COLLECTIONS = {
    "expenses": EntityKind.EXPENSE,
    "revenues": EntityKind.REVENUE,
    "claims": EntityKind.CLAIM,
}


def _kind(collection: str) -> EntityKind:
    kind = COLLECTIONS.get(collection)
    if kind is None:
        raise NotFoundError(f"Unknown collection: {collection}")
    return kind


def _error(e: ForgeError):
    return jsonify(e.to_dict()), e.http_status


# =============================================================================
# CRUD
# =============================================================================

@ledger_bp.get("/<any(expenses, revenues, claims):collection>")
@require_auth
def list_entries_route(collection: str):
    """
    Query params: status, user_id (admin), claim_type (claims), date_from, date_to
    """
    try:
        kind = _kind(collection)
        filters = {
            k: request.args.get(k)
            for k in ("status", "user_id", "claim_type", "date_from", "date_to")
            if request.args.get(k)
        }
        entries = ledger_service.list_entries(g.principal, kind, filters)
        return jsonify({
            collection: [e.to_dict() for e in entries],
            "count": len(entries),
        }), 200
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list %s", collection)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.post("/<any(expenses, revenues, claims):collection>")
@require_auth
def create_entry_route(collection: str):
    """
    Create a pending entry owned by the caller.

    Example (revenue):
    {
        "amount": "2000.00",
        "customer_name": "Acme",
        "commission_rate": "10.00"   (optional, defaults to profile / company rate)
    }

    Returns:
        201: created
        400: invalid input
        403: not allowed (e.g. employee recording revenue)
    """
    try:
        kind = _kind(collection)
        record = ledger_service.create_entry(g.principal, kind, request.get_json(silent=True))
        return jsonify({kind.value: record.to_dict()}), 201
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create %s entry", collection)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.get("/<any(expenses, revenues, claims):collection>/<int:entry_id>")
@require_auth
def get_entry_route(collection: str, entry_id: int):
    try:
        kind = _kind(collection)
        record = ledger_service.get_entry(g.principal, kind, entry_id)
        return jsonify({kind.value: record.to_dict()}), 200
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to get %s %s", collection, entry_id)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.patch("/<any(expenses, revenues, claims):collection>/<int:entry_id>")
@require_auth
def update_entry_route(collection: str, entry_id: int):
    """Owner edits while pending. A "status" field is routed to the workflow (admin)."""
    try:
        kind = _kind(collection)
        record = ledger_service.update_entry(g.principal, kind, entry_id, request.get_json(silent=True))
        return jsonify({kind.value: record.to_dict()}), 200
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update %s %s", collection, entry_id)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.delete("/<any(expenses, revenues, claims):collection>/<int:entry_id>")
@require_auth
def delete_entry_route(collection: str, entry_id: int):
    try:
        kind = _kind(collection)
        ledger_service.delete_entry(g.principal, kind, entry_id)
        return jsonify({"message": f"{kind.value.capitalize()} deleted"}), 200
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to delete %s %s", collection, entry_id)
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# APPROVAL WORKFLOW
# =============================================================================

def _transition_response(kind: EntityKind, result):
    body = {kind.value: result.record.to_dict(), "applied": result.applied}
    if result.commission is not None:
        body["commission"] = result.commission.to_dict()
    return jsonify(body), 200


@ledger_bp.post("/<any(expenses, revenues, claims):collection>/<int:entry_id>/approve")
@require_auth
def approve_route(collection: str, entry_id: int):
    """
    Admin only. pending -> approved.

    Request body (optional): {"admin_comments": "..."}
    Revenue approval returns the created commission.
    """
    try:
        kind = _kind(collection)
        result = workflow_service.approve(g.principal, kind, entry_id, request.get_json(silent=True))
        return _transition_response(kind, result)
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to approve %s %s", collection, entry_id)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.post("/<any(expenses, revenues, claims):collection>/<int:entry_id>/reject")
@require_auth
def reject_route(collection: str, entry_id: int):
    """
    Admin only. pending -> rejected.

    Request body (optional): {"rejection_reason": "...", "admin_comments": "..."}
    """
    try:
        kind = _kind(collection)
        result = workflow_service.reject(g.principal, kind, entry_id, request.get_json(silent=True))
        return _transition_response(kind, result)
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to reject %s %s", collection, entry_id)
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.post("/claims/<int:claim_id>/pay")
@require_auth
def pay_claim_route(claim_id: int):
    """
    Admin only. approved -> paid.

    Request body:
    {
        "payment_method": "bank_transfer",
        "payment_reference": "TX-1001",
        "paid_date": "2026-03-01"   (optional, defaults to today)
    }
    """
    try:
        result = workflow_service.pay_claim(g.principal, claim_id, request.get_json(silent=True))
        return _transition_response(EntityKind.CLAIM, result)
    except ForgeError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to pay claim %s", claim_id)
        return jsonify({"error": "Internal server error"}), 500
