# backend/wholesale/routes/system.py
"""System health endpoint."""

import time

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ProductTemplate, User
from wholesale.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        details = {
            "users": db.session.query(User).count(),
            "product_templates": db.session.query(ProductTemplate).count(),
        }
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }
    return {
        "status": "healthy",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "details": details,
    }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = "ok" if database["status"] == "healthy" else "degraded"
    body = {
        "status": status,
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database,
            "insights_gateway": {
                "configured": current_app.extensions.get("insights_gateway") is not None,
            },
        },
    }
    return body, (200 if status == "ok" else 503)
