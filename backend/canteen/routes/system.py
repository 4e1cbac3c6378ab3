# backend/canteen/routes/system.py
"""
System health endpoint.

Reports database reachability plus row counts, which is enough for a
deployment probe to tell an empty store from a broken one.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Customer, LedgerTransaction, Product
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        customer_count = db.session.query(Customer).count()
        product_count = db.session.query(Product).count()
        transaction_count = db.session.query(LedgerTransaction).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "customers": customer_count,
                "products": product_count,
                "transactions": transaction_count,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database_health},
    }, http_status
