# Overview: Flask API routes for system health; service name, version and database check.

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from .. import __version__
from ..extensions import db
from ..responses import success
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/")
def index():
    return success("POS back office API is running", {
        "name": "posoffice",
        "version": __version__,
        "timestamp": to_utc_z(utcnow()),
    })


@system_bp.get("/api/health")
def health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return success("Health check", {"database": database}, status=status)
