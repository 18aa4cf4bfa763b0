# routelock_api/blueprints/route_lock.py
from __future__ import annotations

from flask import Blueprint, request, current_app

from routelock_api.common.auth import requires_perms, current_org_id
from routelock_api.common.errors import APIError
from routelock_api.common.http import ok, fail, json_object
from routelock_api.services import baseline_writer, forecast, roster
from routelock_api.services import quota as quota_service
from routelock_api.services.org_calendar import add_days, today_in_tz

bp = Blueprint("route_lock", __name__, url_prefix="/api/v1/route-lock")

WRITE_PERMS = ("route_lock_manage", "roster_manage")
READ_PERMS = ("route_lock_view", "route_lock_manage", "roster_manage")


# ---------- helpers ----------
def _id_list(raw: str | None):
    """'1,2,3' → [1, 2, 3]; bad parts raise 422."""
    if not raw:
        return []
    out = []
    for part in [p.strip() for p in raw.split(",") if p.strip()]:
        n = baseline_writer.parse_id(part)
        if n is None:
            raise APIError("invalid_id", f"invalid id: {part}", status_code=422)
        out.append(n)
    return out


# ---------- schedule ----------

@bp.post("/schedule")
@requires_perms(*WRITE_PERMS)
def upsert_schedule():
    """
    POST /api/v1/route-lock/schedule

    Body:
    {
      "start_date": "2024-01-08",      // optional, default = today (org TZ)
      "hoursPerDay": 8,                // optional
      "unitsPerHour": 12,              // optional
      "rows": [
        {"assignment_id": 1, "default_route_id": 4, "days": {"sun": false, "mon": true, ...}}
      ]
    }

    200 → data: {effective_start_date, saved_window_ids, refreshed_windows}
    400 → no_rows | invalid_start_date | invalid_assignment_id | invalid_route_id
    403 → assignment_not_in_org (detail.rejected_assignment_ids)
    500 → storage_error (batch rolled back)
    """
    org_id = current_org_id()
    d = json_object()
    if d is None:
        return fail("Request body must be a JSON object", 400, code="invalid_body")
    cfg = current_app.config

    result = baseline_writer.apply_weekly_baseline(
        org_id,
        d.get("rows"),
        start_date=d.get("start_date"),
        hours_per_day=d.get("hoursPerDay", d.get("hours_per_day", cfg.get("ROUTE_LOCK_HOURS_PER_DAY"))),
        units_per_hour=d.get("unitsPerHour", d.get("units_per_hour", cfg.get("ROUTE_LOCK_UNITS_PER_HOUR"))),
        tz=cfg.get("ROUTE_LOCK_TIMEZONE"),
        clamp_to_today=bool(cfg.get("ROUTE_LOCK_CLAMP_START_TO_TODAY")),
    )
    return ok({
        "effective_start_date": result.effective_start_date.isoformat(),
        "saved_window_ids": result.saved_window_ids,
        "refreshed_windows": [baseline_writer.window_row(w) for w in result.refreshed_windows],
    })


@bp.get("/schedule")
@requires_perms(*READ_PERMS)
def list_schedule():
    """
    GET /api/v1/route-lock/schedule?assignment_id=1,2

    Window history (start date descending) for the given assignments, which
    must belong to the caller's org. Without assignment_id, every assignment
    of the org is returned.
    """
    org_id = current_org_id()
    ids = _id_list(request.args.get("assignment_id") or request.args.get("assignmentId"))

    if ids:
        allowed = roster.assignment_ids_in_org(org_id, ids)
        rejected = [i for i in ids if i not in allowed]
        if rejected:
            return fail(
                "One or more assignments are not in your selected org",
                status=403,
                code="assignment_not_in_org",
                detail={"rejected_assignment_ids": rejected},
            )
    else:
        ids = [r["assignment_id"] for r in roster.roster_rows(org_id)]

    items = baseline_writer.windows_for(ids)
    return ok([baseline_writer.window_row(w) for w in items], total=len(items))


# ---------- forecast ----------

@bp.get("/calendar")
@requires_perms(*READ_PERMS)
def fiscal_month_calendar():
    """
    GET /api/v1/route-lock/calendar

    data: {"fiscal_month": {id, label, start_date, end_date}, "days": [...]}
    """
    org_id = current_org_id()
    return ok(forecast.compute_fiscal_month_forecast(org_id))


@bp.get("/outlook")
@requires_perms(*READ_PERMS)
def near_term_outlook():
    """
    GET /api/v1/route-lock/outlook?days=7

    The next N days (from today, within the current fiscal month) plus totals.
    """
    org_id = current_org_id()
    try:
        n = min(max(int(request.args.get("days", 7)), 1), 31)
    except (TypeError, ValueError):
        n = 7

    cfg = current_app.config
    today = today_in_tz(cfg.get("ROUTE_LOCK_TIMEZONE"))
    out = forecast.compute_fiscal_month_forecast(org_id, today=today)
    lo, hi = today.isoformat(), add_days(today, n - 1).isoformat()
    days = [d for d in out["days"] if lo <= d["date"] <= hi]

    return ok({
        "fiscal_month": out["fiscal_month"],
        "days": days,
        "totals": forecast.summarize_days(
            days,
            hours_per_day=int(cfg.get("ROUTE_LOCK_HOURS_PER_DAY", forecast.HOURS_PER_DAY)),
            units_per_hour=int(cfg.get("ROUTE_LOCK_UNITS_PER_HOUR", forecast.UNITS_PER_HOUR)),
        ),
    })


# ---------- quota ----------

@bp.get("/quota")
@requires_perms(*READ_PERMS)
def list_quota():
    """GET /api/v1/route-lock/quota?fiscal_month_id=3"""
    org_id = current_org_id()
    fm_id = baseline_writer.parse_id(request.args.get("fiscal_month_id") or "")
    items = quota_service.list_quota(org_id, fm_id)
    return ok([quota_service.quota_row(q) for q in items], total=len(items))


@bp.post("/quota")
@requires_perms("roster_manage", "route_lock_manage")
def upsert_quota():
    """
    POST /api/v1/route-lock/quota

    Body: {"rows": [{"route_id": 1, "fiscal_month_id": 3, "qh_sun": 0, ..., "qh_sat": 16}]}
    """
    org_id = current_org_id()
    d = json_object()
    if d is None:
        return fail("Request body must be a JSON object", 400, code="invalid_body")
    saved = quota_service.upsert_quota(org_id, d.get("rows"))
    return ok([quota_service.quota_row(q) for q in saved])
