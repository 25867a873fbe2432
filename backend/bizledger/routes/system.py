# Overview: Flask API routes for service health; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db


system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    """Liveness plus a round-trip to the database."""
    try:
        db.session.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        current_app.logger.exception("Health check database query failed")
        db_ok = False
    finally:
        db.session.rollback()

    status = "ok" if db_ok else "degraded"
    return jsonify({"status": status, "database": db_ok}), (200 if db_ok else 503)
