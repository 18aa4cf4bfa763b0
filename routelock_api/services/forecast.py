# routelock_api/services/forecast.py
"""
Day rollup / forecast for the fiscal month enclosing today.

Per calendar day:
  scheduled_techs   plannable technicians whose baseline is "on" that day
  scheduled_routes  scheduled_techs × routes_per_tech
  quota_hours       demand hours for that weekday (None when 0)
  quota_routes      ceil(quota_hours / hours_per_day) (None when no quota)
  delta_forecast    scheduled_routes - quota_routes (None when no quota)
  delta_band        meets / buffered / exceeds / short / no_quota, with a display label
  util_pct          scheduled_techs / total_headcount, one-decimal percent
  has_sv            shift-validation rows exist for the day (near-term window only)
  has_check_in      always False until a check-in source exists
"""
from __future__ import annotations

from datetime import date
from math import ceil, floor
from typing import Dict, Iterable, List, Optional
import logging

from flask import current_app

from routelock_api.common.errors import UpstreamDataError
from routelock_api.models.schedule import ScheduleBaselineWindow
from routelock_api.services import roster, quota, shift_validation
from routelock_api.services.fiscal_calendar import resolve_fiscal_month, fiscal_month_row
from routelock_api.services.org_calendar import each_day, today_in_tz, weekday_key
from routelock_api.services.readiness import plannable_assignment_ids
from routelock_api.services.schedule_matcher import build_window_index, is_on_for_date

log = logging.getLogger(__name__)

HOURS_PER_DAY = 8
UNITS_PER_HOUR = 12
# one technician works one route-equivalent per day
ROUTES_PER_TECH = 1
SV_WINDOW_DAYS = 14

BAND_MEETS = "meets"
BAND_BUFFERED = "buffered"
BAND_EXCEEDS = "exceeds"
BAND_SHORT = "short"
BAND_NO_QUOTA = "no_quota"

BAND_LABELS = {
    BAND_MEETS: "meets, no cushion",
    BAND_BUFFERED: "buffered",
    BAND_EXCEEDS: "exceeds plan",
    BAND_SHORT: "short",
    BAND_NO_QUOTA: "no quota set",
}


# ---------- numeric helpers ----------

def ceil_routes_from_hours(hours, hours_per_day: int = HOURS_PER_DAY) -> Optional[int]:
    """Route-equivalents for a demand in hours. Zero/absent hours mean no quota."""
    if not hours:
        return None
    return int(ceil(hours / hours_per_day))


def safe_pct(num, den) -> Optional[float]:
    if not den:
        return None
    # half-up, not banker's rounding
    return floor(num / den * 1000 + 0.5) / 10


def forecast_delta(scheduled_routes: int, quota_routes: Optional[int]) -> Optional[int]:
    if quota_routes is None:
        return None
    return scheduled_routes - quota_routes


def delta_band(delta: Optional[int]) -> str:
    if delta is None:
        return BAND_NO_QUOTA
    if delta < 0:
        return BAND_SHORT
    if delta == 0:
        return BAND_MEETS
    if delta <= 2:
        return BAND_BUFFERED
    return BAND_EXCEEDS


def _cfg(key: str, default):
    try:
        return current_app.config.get(key, default)
    except RuntimeError:
        return default


# ---------- data loading ----------

def _windows_overlapping(assignment_ids: List, start: date, end: date) -> List[ScheduleBaselineWindow]:
    if not assignment_ids:
        return []
    return (
        ScheduleBaselineWindow.query
        .filter(
            ScheduleBaselineWindow.assignment_id.in_(assignment_ids),
            ScheduleBaselineWindow.start_date <= end,
            (ScheduleBaselineWindow.end_date.is_(None)) | (ScheduleBaselineWindow.end_date >= start),
        )
        .all()
    )


# ---------- rollup ----------

def build_day_rows(
    days: Iterable[date],
    tech_assignments: List,
    window_index: Dict,
    quota_hours_by_weekday: Dict[str, int],
    sv_dates,
    hours_per_day: int = HOURS_PER_DAY,
    units_per_hour: int = UNITS_PER_HOUR,
    routes_per_tech: int = ROUTES_PER_TECH,
    tz: str | None = None,
) -> List[dict]:
    """Pure part of the engine: everything already fetched."""
    total_headcount = len(tech_assignments)
    out: List[dict] = []
    for d in days:
        techs = 0
        for aid in tech_assignments:
            if is_on_for_date(window_index.get(aid, []), aid, d, tz=tz):
                techs += 1
        routes = techs * routes_per_tech

        qh = int(quota_hours_by_weekday.get(weekday_key(d), 0) or 0)
        q_routes = ceil_routes_from_hours(qh, hours_per_day)
        delta = forecast_delta(routes, q_routes)
        band = delta_band(delta)

        out.append({
            "date": d.isoformat(),
            "quota_hours": qh or None,
            "quota_routes": q_routes,
            "quota_units": qh * units_per_hour if qh else None,
            "scheduled_routes": routes,
            "scheduled_techs": techs,
            "total_headcount": total_headcount,
            "util_pct": safe_pct(techs, total_headcount),
            "delta_forecast": delta,
            "delta_band": band,
            "delta_label": BAND_LABELS[band],
            "has_sv": d in sv_dates,
            "has_check_in": False,
        })
    return out


def compute_fiscal_month_forecast(org_id: int, today: Optional[date] = None) -> dict:
    """
    {"fiscal_month": {...}, "days": [DayForecastRow, ...]} for the fiscal month
    enclosing today (org time zone). Any failed fetch aborts the computation.
    """
    tz = _cfg("ROUTE_LOCK_TIMEZONE", None)
    hours_per_day = int(_cfg("ROUTE_LOCK_HOURS_PER_DAY", HOURS_PER_DAY))
    units_per_hour = int(_cfg("ROUTE_LOCK_UNITS_PER_HOUR", UNITS_PER_HOUR))
    routes_per_tech = int(_cfg("ROUTE_LOCK_ROUTES_PER_TECH", ROUTES_PER_TECH))
    sv_days = int(_cfg("ROUTE_LOCK_SV_WINDOW_DAYS", SV_WINDOW_DAYS))

    today = today or today_in_tz(tz)
    fm = resolve_fiscal_month(today)
    if fm is None:
        raise UpstreamDataError(
            "fiscal_month_unresolved",
            "Could not resolve fiscal month",
            payload={"anchor_date": today.isoformat()},
        )
    days = each_day(fm.start_date, fm.end_date)

    # headcount + tech set
    membership = roster.membership_set(org_id)
    tech_assignments = plannable_assignment_ids(roster.roster_rows(org_id), membership)

    # only windows of plannable assignments that touch this month
    window_index = build_window_index(_windows_overlapping(tech_assignments, fm.start_date, fm.end_date))

    # quota for exactly this fiscal month
    qh = quota.weekday_quota_hours(org_id, fm.id)

    sv_dates = shift_validation.presence_dates(org_id, today, sv_days)

    rows = build_day_rows(
        days,
        tech_assignments,
        window_index,
        qh,
        sv_dates,
        hours_per_day=hours_per_day,
        units_per_hour=units_per_hour,
        routes_per_tech=routes_per_tech,
        tz=tz,
    )
    log.info(
        "[route-lock.forecast] org=%s fiscal_month=%s days=%d headcount=%d",
        org_id, fm.id, len(rows), len(tech_assignments),
    )
    return {"fiscal_month": fiscal_month_row(fm), "days": rows}


def summarize_days(days: List[dict], hours_per_day: int = HOURS_PER_DAY, units_per_hour: int = UNITS_PER_HOUR) -> dict:
    """Totals over a slice of day rows (e.g. the next 7 days)."""
    t = {
        "days": len(days),
        "scheduled_routes": 0,
        "scheduled_hours": 0,
        "scheduled_units": 0,
        "scheduled_techs": 0,
        "quota_hours": 0,
        "quota_routes": 0,
        "quota_units": 0,
        "delta_routes": 0,
        "sv_days": 0,
        "check_in_days": 0,
    }
    headcount_days = 0
    on_days = 0
    for d in days:
        on = d.get("scheduled_routes") or 0
        qh = d.get("quota_hours") or 0
        qr = d.get("quota_routes")

        t["scheduled_routes"] += on
        t["scheduled_hours"] += on * hours_per_day
        t["scheduled_units"] += on * hours_per_day * units_per_hour
        t["scheduled_techs"] += d.get("scheduled_techs") or 0

        t["quota_hours"] += qh
        t["quota_units"] += qh * units_per_hour
        if qr is not None:
            t["quota_routes"] += qr
            # delta only over days that have a target
            t["delta_routes"] += on - qr

        if d.get("total_headcount"):
            headcount_days += d["total_headcount"]
            on_days += d.get("scheduled_techs") or 0

        t["sv_days"] += 1 if d.get("has_sv") else 0
        t["check_in_days"] += 1 if d.get("has_check_in") else 0

    t["util_pct"] = safe_pct(on_days, headcount_days)
    return t
