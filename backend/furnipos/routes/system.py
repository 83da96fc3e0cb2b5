# backend/furnipos/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import ExchangeRate, SessionToken, User, Warehouse
from ..services.register_service import get_register_balances
from furnipos.time_utils import utcnow, today, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Check database connectivity and that bootstrap data exists."""
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        warehouse_count = db.session.query(Warehouse).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000
        details = {
            "users": user_count,
            "warehouses": warehouse_count,
            "active_sessions": active_sessions,
        }
        if user_count == 0:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": "No users; run `flask system init`",
                "details": details,
            }
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": details,
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_exchange_rate_health() -> dict:
    """Sales and purchases need a rate on file; today's rate is expected."""
    try:
        rate = db.session.query(ExchangeRate).order_by(ExchangeRate.rate_date.desc()).first()
    except Exception:
        current_app.logger.exception("Exchange rate health check failed")
        return {"status": "unhealthy", "error": "Database error"}

    if rate is None:
        return {"status": "degraded", "warning": "No exchange rate set"}
    if rate.rate_date != today():
        return {
            "status": "degraded",
            "warning": "Today's exchange rate not set",
            "details": {"latest_rate_date": rate.rate_date.isoformat()},
        }
    return {"status": "healthy", "details": {"rate": float(rate.rate)}}


@system_bp.get("/api/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    checks = {"database": database_health}
    if database_health["status"] != "unhealthy":
        checks["exchange_rate"] = check_exchange_rate_health()
        checks["cash_registers"] = {"status": "healthy", "details": get_register_balances()}

    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status


@system_bp.get("/api/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
