from flask import Blueprint
from sqlalchemy import text

from routelock_api.extensions import db
from routelock_api.common.http import ok, fail

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.get("/health")
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except Exception as e:
        return fail("database unavailable", status=503, detail=str(e))
    return ok({"status": "ok"})
