# backend/pharmacy/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Pharmacy, User, SessionToken
from ..permissions import ALL_PERMISSION_CODES, ROLE_HIERARCHY
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity with a few cheap counts."""
    start_time = time.time()
    try:
        pharmacy_count = db.session.query(Pharmacy).count()
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "pharmacies": pharmacy_count,
                "users": user_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_policy_health() -> dict:
    """The permission policy is static; report its size."""
    return {
        "status": "healthy",
        "details": {
            "permissions": len(ALL_PERMISSION_CODES),
            "roles": sorted(ROLE_HIERARCHY),
        }
    }


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: All systems healthy
    - 503: Database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    policy_health = check_policy_health()

    if database_health["status"] == "unhealthy":
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "permission_policy": policy_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
