from __future__ import annotations
from datetime import date
from typing import Optional

from routelock_api.models.master import FiscalMonth


def resolve_fiscal_month(anchor: date) -> Optional[FiscalMonth]:
    """
    Fiscal month whose [start_date, end_date] encloses `anchor`.
    If months overlap (bad calendar data), the latest start wins.
    """
    return (
        FiscalMonth.query
        .filter(FiscalMonth.start_date <= anchor, FiscalMonth.end_date >= anchor)
        .order_by(FiscalMonth.start_date.desc(), FiscalMonth.id.desc())
        .first()
    )


def fiscal_month_row(fm: FiscalMonth) -> dict:
    return {
        "id": fm.id,
        "label": fm.label,
        "start_date": fm.start_date.isoformat(),
        "end_date": fm.end_date.isoformat(),
    }
