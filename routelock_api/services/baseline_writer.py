# routelock_api/services/baseline_writer.py
"""
Weekly baseline writer.

Each assignment owns a chain of schedule windows. A submission for start date S
is applied per assignment as:

  A) open window already starts on S   -> overwrite it in place
  B) open window starts elsewhere      -> close it at S - 1, open a new one at S
  C) no open window                    -> open a new one at S

Windows that begin after S are superseded by the new plan, and any window
straddling S is cut back to S - 1, so the chain never overlaps.

The whole batch is one transaction; a storage failure rolls every row back.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional
import logging

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from routelock_api.extensions import db
from routelock_api.common.errors import ValidationError, ScopeError, StorageError
from routelock_api.models.master import Route
from routelock_api.models.schedule import ScheduleBaselineWindow
from routelock_api.services import roster
from routelock_api.services.org_calendar import DAY_KEYS, parse_iso_date, today_in_tz

log = logging.getLogger(__name__)

DEFAULT_HOURS_PER_DAY = 8
DEFAULT_UNITS_PER_HOUR = 12
SCHEDULE_NAME_FALLBACK = "planning_week"
SCHEDULE_NAME_MAX = 140

_MISSING = object()


@dataclass
class BaselineRow:
    assignment_id: int
    default_route_id: Optional[int]
    days: Dict[str, bool]


@dataclass
class WriteResult:
    effective_start_date: date
    saved_window_ids: List[int] = field(default_factory=list)
    refreshed_windows: List[ScheduleBaselineWindow] = field(default_factory=list)


# ---------- parsing ----------

def parse_id(v) -> Optional[int]:
    """Positive integer id (int or digit string); anything else → None."""
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v if v > 0 else None
    if isinstance(v, str):
        s = v.strip()
        if s.isdigit():
            n = int(s)
            return n if n > 0 else None
    return None


def parse_positive_int(v, default: int) -> Optional[int]:
    if v is None:
        return default
    return parse_id(v)


def normalize_days(days) -> Dict[str, bool]:
    """Only a literal True counts as on."""
    days = days if isinstance(days, dict) else {}
    return {k: days.get(k) is True for k in DAY_KEYS}


def derive_day_figures(days: Dict[str, bool], hours_per_day: int, units_per_hour: int) -> dict:
    out = {}
    for k in DAY_KEYS:
        hours = hours_per_day if days.get(k) else 0
        out[f"hours_{k}"] = hours
        out[f"units_{k}"] = hours * units_per_hour
    return out


def schedule_name(tech_id, full_name) -> str:
    parts = [str(x).strip() for x in (tech_id, full_name) if x is not None and str(x).strip()]
    name = " ".join(parts).strip()
    return (name or SCHEDULE_NAME_FALLBACK)[:SCHEDULE_NAME_MAX]


def clean_rows(rows) -> List[BaselineRow]:
    if not isinstance(rows, list) or not rows:
        raise ValidationError("no_rows", "No rows provided")

    clean: List[BaselineRow] = []
    bad_assignments = []
    bad_routes = []
    for r in rows:
        r = r if isinstance(r, dict) else {}
        aid = parse_id(r.get("assignment_id"))
        if aid is None:
            bad_assignments.append(r.get("assignment_id"))

        raw_route = r.get("default_route_id", _MISSING)
        if raw_route is _MISSING or raw_route is None:
            route_id = None
        else:
            route_id = parse_id(raw_route)
            if route_id is None:
                bad_routes.append(raw_route)

        clean.append(BaselineRow(assignment_id=aid, default_route_id=route_id, days=normalize_days(r.get("days"))))

    if bad_assignments:
        raise ValidationError(
            "invalid_assignment_id",
            "Invalid assignment_id (must be a positive integer)",
            payload={"values": [str(x) for x in bad_assignments]},
        )
    if bad_routes:
        raise ValidationError(
            "invalid_route_id",
            "Invalid default_route_id (must be a positive integer or null)",
            payload={"values": [str(x) for x in bad_routes]},
        )
    return clean


def resolve_start_date(raw, tz: str | None = None, clamp_to_today: bool = False, today: Optional[date] = None) -> date:
    today = today or today_in_tz(tz)
    if raw in (None, ""):
        start = today
    else:
        start = parse_iso_date(raw)
        if start is None:
            raise ValidationError("invalid_start_date", "start_date must be YYYY-MM-DD")
    if clamp_to_today and start < today:
        start = today
    return start


# ---------- storage steps ----------

def open_window(assignment_id: int) -> Optional[ScheduleBaselineWindow]:
    return (
        ScheduleBaselineWindow.query
        .filter(
            ScheduleBaselineWindow.assignment_id == assignment_id,
            ScheduleBaselineWindow.end_date.is_(None),
        )
        .first()
    )


def _supersede_from(assignment_id: int, start: date) -> None:
    """Make room for a new open window at `start`."""
    day_before = start - timedelta(days=1)

    later = (
        ScheduleBaselineWindow.query
        .filter(
            ScheduleBaselineWindow.assignment_id == assignment_id,
            ScheduleBaselineWindow.start_date >= start,
        )
        .all()
    )
    for w in later:
        log.warning(
            "[route-lock.baseline] superseding window %s (assignment %s, %s..%s) by plan starting %s",
            w.id, assignment_id, w.start_date, w.end_date, start,
        )
        db.session.delete(w)

    straddling = (
        ScheduleBaselineWindow.query
        .filter(
            ScheduleBaselineWindow.assignment_id == assignment_id,
            ScheduleBaselineWindow.start_date < start,
            or_(
                ScheduleBaselineWindow.end_date.is_(None),
                ScheduleBaselineWindow.end_date >= start,
            ),
        )
        .all()
    )
    for w in straddling:
        w.end_date = day_before

    # closes must land before the insert (one open window per assignment)
    db.session.flush()


def _insert_window(assignment_id: int, start: date, payload: dict) -> ScheduleBaselineWindow:
    w = ScheduleBaselineWindow(assignment_id=assignment_id, start_date=start, end_date=None, **payload)
    db.session.add(w)
    db.session.flush()
    return w


def apply_row(row: BaselineRow, start: date, hours_per_day: int, units_per_hour: int, name: str) -> ScheduleBaselineWindow:
    payload = {
        "schedule_name": name,
        "default_route_id": row.default_route_id,
        **{k: row.days[k] for k in DAY_KEYS},
        **derive_day_figures(row.days, hours_per_day, units_per_hour),
    }

    current = open_window(row.assignment_id)

    # Case A: same start → overwrite in place
    if current is not None and current.start_date == start:
        for k, v in payload.items():
            setattr(current, k, v)
        db.session.flush()
        return current

    # Case B / C: close (if any) then open at start
    _supersede_from(row.assignment_id, start)
    return _insert_window(row.assignment_id, start, payload)


def route_ids_in_org(org_id: int, route_ids: Iterable[int]) -> set:
    ids = list(set(route_ids))
    if not ids:
        return set()
    q = Route.query.with_entities(Route.id).filter(Route.pc_org_id == org_id, Route.id.in_(ids))
    return {int(r[0]) for r in q.all()}


def windows_for(assignment_ids: Iterable[int]) -> List[ScheduleBaselineWindow]:
    ids = list(set(assignment_ids))
    if not ids:
        return []
    return (
        ScheduleBaselineWindow.query
        .filter(ScheduleBaselineWindow.assignment_id.in_(ids))
        .order_by(
            ScheduleBaselineWindow.start_date.desc(),
            ScheduleBaselineWindow.assignment_id.asc(),
            ScheduleBaselineWindow.id.desc(),
        )
        .all()
    )


# ---------- public API ----------

def apply_weekly_baseline(
    org_id: int,
    rows,
    start_date=None,
    hours_per_day=DEFAULT_HOURS_PER_DAY,
    units_per_hour=DEFAULT_UNITS_PER_HOUR,
    tz: str | None = None,
    clamp_to_today: bool = False,
    today: Optional[date] = None,
) -> WriteResult:
    """
    Apply one weekly plan submission for `org_id`.

    rows: [{"assignment_id": 1, "default_route_id": 3 | None, "days": {"mon": True, ...}}]

    Raises ValidationError / ScopeError before anything is written, and
    StorageError (after rolling back the whole batch) when the store fails.
    """
    start = resolve_start_date(start_date, tz=tz, clamp_to_today=clamp_to_today, today=today)

    hpd = parse_positive_int(hours_per_day, DEFAULT_HOURS_PER_DAY)
    if hpd is None:
        raise ValidationError("invalid_hours_per_day", "hoursPerDay must be an integer > 0")
    uph = parse_positive_int(units_per_hour, DEFAULT_UNITS_PER_HOUR)
    if uph is None:
        raise ValidationError("invalid_units_per_hour", "unitsPerHour must be an integer > 0")

    clean = clean_rows(rows)

    # de-duplicated, first-seen order
    assignment_ids = list(dict.fromkeys(r.assignment_id for r in clean))

    route_ids = list(dict.fromkeys(r.default_route_id for r in clean if r.default_route_id is not None))

    try:
        allowed = roster.assignment_ids_in_org(org_id, assignment_ids)
        allowed_routes = route_ids_in_org(org_id, route_ids)
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("[route-lock.baseline] org scope check failed")
        raise StorageError(str(getattr(e, "orig", None) or e))

    rejected = [aid for aid in assignment_ids if aid not in allowed]
    if rejected:
        raise ScopeError(
            "assignment_not_in_org",
            "One or more assignments are not in your selected org",
            payload={"rejected_assignment_ids": rejected},
        )

    # unknown ids land here too
    rejected_routes = [rid for rid in route_ids if rid not in allowed_routes]
    if rejected_routes:
        raise ScopeError(
            "route_not_in_org",
            "One or more default routes are not in your selected org",
            payload={"rejected_route_ids": rejected_routes},
        )

    result = WriteResult(effective_start_date=start)
    try:
        labels = roster.roster_labels(org_id, assignment_ids)
        for r in clean:
            lab = labels.get(r.assignment_id) or {}
            w = apply_row(r, start, hpd, uph, schedule_name(lab.get("tech_id"), lab.get("full_name")))
            result.saved_window_ids.append(w.id)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("[route-lock.baseline] batch for org %s rolled back", org_id)
        raise StorageError(str(getattr(e, "orig", None) or e))

    log.info(
        "[route-lock.baseline] org=%s start=%s rows=%d windows=%s",
        org_id, start.isoformat(), len(clean), result.saved_window_ids,
    )
    result.refreshed_windows = windows_for(assignment_ids)
    return result


def window_row(w: ScheduleBaselineWindow) -> dict:
    return {
        "id": w.id,
        "assignment_id": w.assignment_id,
        "schedule_name": w.schedule_name,
        "default_route_id": w.default_route_id,
        "start_date": w.start_date.isoformat() if w.start_date else None,
        "end_date": w.end_date.isoformat() if w.end_date else None,
        "days": w.day_flags(),
        "hours": {k: getattr(w, f"hours_{k}") for k in DAY_KEYS},
        "units": {k: getattr(w, f"units_{k}") for k in DAY_KEYS},
        "updated_at": w.updated_at.isoformat() if w.updated_at else None,
    }
