# routelock_api/services/schedule_matcher.py
from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from routelock_api.services.org_calendar import to_local_date, weekday_key


def default_on_policy() -> bool:
    """
    Answer for a date no baseline window covers: the assignment counts as
    scheduled ("on"). New assignments are planned until someone says otherwise.
    """
    return True


def _get(w, key):
    if isinstance(w, dict):
        return w.get(key)
    return getattr(w, key, None)


def _as_date(v) -> Optional[date]:
    if v is None or v == "":
        return None
    return to_local_date(v)


def sort_windows(windows: Iterable) -> List:
    """Most recent start first."""
    return sorted(windows, key=lambda w: _as_date(_get(w, "start_date")) or date.min, reverse=True)


def build_window_index(windows: Iterable) -> Dict[object, List]:
    """{assignment_id: [windows, start date descending]}"""
    idx: Dict[object, List] = {}
    for w in windows:
        aid = _get(w, "assignment_id")
        if aid is None:
            continue
        idx.setdefault(aid, []).append(w)
    for aid, arr in idx.items():
        idx[aid] = sort_windows(arr)
    return idx


def window_for_date(windows: Iterable, target: date):
    """First window (in the given order) with start <= target <= end (open end = forever)."""
    for w in windows:
        start = _as_date(_get(w, "start_date"))
        if start is None or start > target:
            continue
        end = _as_date(_get(w, "end_date"))
        if end is None or end >= target:
            return w
    return None


def is_on_for_date(windows: Iterable, assignment_id, target, tz: str | None = None) -> bool:
    """
    Whether `assignment_id` is scheduled on `target`.

    `windows` should be sorted by start date descending; rows belonging to
    other assignments are ignored. `target` may be a date or an aware
    timestamp, which is read in the org time zone `tz`.
    """
    d = to_local_date(target, tz)
    mine = [w for w in windows if _get(w, "assignment_id") in (None, assignment_id)]
    w = window_for_date(mine, d)
    if w is None:
        return default_on_policy()
    return bool(_get(w, weekday_key(d)))
