# routelock_api/blueprints/routes.py
from __future__ import annotations

import logging

from flask import Blueprint

from routelock_api.extensions import db
from routelock_api.common.auth import requires_perms, current_org_id
from routelock_api.common.http import ok, fail, json_object
from routelock_api.models.master import Route
from routelock_api.models.quota import Quota
from routelock_api.models.schedule import ScheduleBaselineWindow

bp = Blueprint("route_lock_routes", __name__, url_prefix="/api/v1/route-lock/routes")

log = logging.getLogger(__name__)

ROUTE_NAME_MAX = 120


def _row(r: Route):
    return {
        "id": r.id,
        "pc_org_id": r.pc_org_id,
        "route_name": r.route_name,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


@bp.get("")
@requires_perms("route_lock_view", "route_lock_manage", "roster_manage")
def list_routes():
    org_id = current_org_id()
    items = Route.query.filter(Route.pc_org_id == org_id).order_by(Route.route_name.asc()).all()
    return ok([_row(r) for r in items], total=len(items))


@bp.post("")
@requires_perms("roster_manage", "route_lock_manage")
def upsert_route():
    """
    POST /api/v1/route-lock/routes

    Body: {"route_name": "R-12", "route_id": 5}   // route_id optional → rename

    An existing route with the same name in the org is returned as-is.
    """
    org_id = current_org_id()
    d = json_object()
    if d is None:
        return fail("Request body must be a JSON object", 400, code="invalid_body")
    name = str(d.get("route_name") or "").strip()[:ROUTE_NAME_MAX]
    if not name:
        return fail("route_name is required", 400, code="invalid_route_name")

    rid = d.get("route_id")
    if rid not in (None, ""):
        try:
            rid = int(rid)
        except (TypeError, ValueError):
            return fail("Invalid route_id", 400, code="invalid_route_id")
        r = db.session.get(Route, rid)
        if not r:
            return fail("route not found", 404)
        if r.pc_org_id != org_id:
            return fail("forbidden", 403)
        r.route_name = name
        db.session.commit()
        return ok(_row(r))

    r = Route.query.filter_by(pc_org_id=org_id, route_name=name).first()
    if r:
        return ok(_row(r))

    r = Route(pc_org_id=org_id, route_name=name)
    db.session.add(r)
    db.session.commit()
    return ok(_row(r), status=201)


@bp.delete("/<int:route_id>")
@requires_perms("roster_manage", "route_lock_manage")
def delete_route(route_id: int):
    """
    DELETE /api/v1/route-lock/routes/<route_id>

    Quotas on the route go with it; schedule windows keep their days and lose
    the default route.
    """
    org_id = current_org_id()
    r = db.session.get(Route, route_id)
    if not r:
        return fail("route not found", 404)
    if r.pc_org_id != org_id:
        return fail("forbidden", 403)

    Quota.query.filter(Quota.route_id == r.id).delete(synchronize_session=False)
    ScheduleBaselineWindow.query.filter(ScheduleBaselineWindow.default_route_id == r.id).update(
        {ScheduleBaselineWindow.default_route_id: None}, synchronize_session=False
    )
    db.session.delete(r)
    db.session.commit()
    log.info("[route-lock.routes] org=%s deleted route %s", org_id, route_id)
    return ok({"id": route_id, "deleted": True})
