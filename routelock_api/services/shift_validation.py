from __future__ import annotations

from datetime import date, timedelta
from typing import Set

from routelock_api.models.shift_validation import ShiftValidationImport


def presence_dates(org_id: int, start: date, days: int = 14) -> Set[date]:
    """Days in [start, start + days) that have at least one imported shift row."""
    end_exclusive = start + timedelta(days=days)
    q = (
        ShiftValidationImport.query
        .with_entities(ShiftValidationImport.shift_date)
        .filter(
            ShiftValidationImport.pc_org_id == org_id,
            ShiftValidationImport.shift_date >= start,
            ShiftValidationImport.shift_date < end_exclusive,
        )
        .distinct()
    )
    return {r[0] for r in q.all() if r[0] is not None}
