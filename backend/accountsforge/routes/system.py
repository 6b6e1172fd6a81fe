# backend/accountsforge/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the Identity Store can create
profiles (DEFAULT_PROFILE_ROLE configured).
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..errors import ConfigurationError
from ..extensions import db
from ..services import profile_service

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_configuration() -> dict:
    try:
        role = profile_service.default_profile_role()
    except ConfigurationError as e:
        return {"status": "unhealthy", "error": e.message}
    return {"status": "healthy", "default_profile_role": role.value}


@system_bp.get("/health")
def health():
    checks = {
        "database": check_database_health(),
        "configuration": check_configuration(),
    }
    healthy = all(c["status"] == "healthy" for c in checks.values())
    return jsonify({
        "status": "healthy" if healthy else "degraded",
        "checks": checks,
    }), 200 if healthy else 503
