from flask import Blueprint
from sqlalchemy import text

from app.portal.db import db_session

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON, including DB reachability."""
    db_ok = True
    try:
        db_session().execute(text("SELECT 1"))
    except Exception:
        db_ok = False
    return {"ok": db_ok, "db": "up" if db_ok else "down"}, 200 if db_ok else 503


@bp.get("/healthz")
def healthz():
    """
    Fast liveness probe. No DB access, minimal overhead.
    """
    return "ok", 200
