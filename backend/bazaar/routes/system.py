# backend/bazaar/routes/system.py
"""
System health endpoint.

Reports database connectivity so load balancers and deploy checks can tell
a live process from a usable one.
"""

import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """Run a trivial query and time it."""
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "dialect": db.engine.dialect.name,
            "response_time_ms": round(elapsed_ms, 2),
        }
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning("Database health check failed: %s", exc)
        return {"status": "unhealthy", "error": exc.__class__.__name__}


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    payload = {
        "status": "ok" if healthy else "degraded",
        "checked_at": to_utc_z(utcnow()),
        "database": database,
    }
    return jsonify(payload), 200 if healthy else 503
