# routelock_api/services/org_calendar.py
"""
Date helpers that work in the organization's calendar time zone.

Everything route-lock compares is a plain calendar date. The time zone only
matters when turning "now" (or an aware timestamp) into such a date, so it is
passed in explicitly instead of being read from a hidden global.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Iterator, List, Optional
from zoneinfo import ZoneInfo

DEFAULT_TZ = "America/New_York"

# index 0 = Sunday
DAY_KEYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _zone(tz: str | None) -> ZoneInfo:
    return ZoneInfo(tz or DEFAULT_TZ)


def today_in_tz(tz: str | None = None, now: Optional[datetime] = None) -> date:
    """Calendar date in `tz` right now (or at `now`, if given)."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(_zone(tz)).date()


def to_local_date(value, tz: str | None = None) -> date:
    """
    Normalize a date-ish value to an org-local calendar date.
      - date            -> itself
      - aware datetime  -> converted to `tz`, then .date()
      - naive datetime  -> taken as already local
      - 'YYYY-MM-DD'    -> parsed
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(_zone(tz)).date()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"cannot interpret {value!r} as a date")


def parse_iso_date(s) -> Optional[date]:
    """Strict YYYY-MM-DD; anything else → None."""
    if not isinstance(s, str):
        return None
    s = s.strip()
    if len(s) != 10:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def add_days(d: date, days: int) -> date:
    return d + timedelta(days=days)


def iter_days(start: date, end_inclusive: date) -> Iterator[date]:
    cur = start
    while cur <= end_inclusive:
        yield cur
        cur += timedelta(days=1)


def each_day(start: date, end_inclusive: date) -> List[date]:
    return list(iter_days(start, end_inclusive))


def weekday_key(value, tz: str | None = None) -> str:
    """Map a date (or timestamp) to one of sun..sat in the org calendar."""
    d = to_local_date(value, tz)
    # date.weekday(): Monday=0 .. Sunday=6
    return DAY_KEYS[(d.weekday() + 1) % 7]
