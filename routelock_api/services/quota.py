# routelock_api/services/quota.py
from __future__ import annotations

from typing import Dict, List
import logging

from sqlalchemy.exc import SQLAlchemyError

from routelock_api.extensions import db
from routelock_api.common.errors import ValidationError, ScopeError, StorageError
from routelock_api.models.master import FiscalMonth, Route
from routelock_api.models.quota import Quota
from routelock_api.services.baseline_writer import parse_id
from routelock_api.services.org_calendar import DAY_KEYS

log = logging.getLogger(__name__)

QH_KEYS = tuple(f"qh_{k}" for k in DAY_KEYS)


def int0(v) -> int:
    """Non-negative whole number; junk → 0."""
    try:
        n = float(v)
    except (TypeError, ValueError):
        return 0
    if n != n or n in (float("inf"), float("-inf")):
        return 0
    return max(0, int(n))


def weekday_quota_hours(org_id: int, fiscal_month_id: int) -> Dict[str, int]:
    """
    Demand hours per weekday for one fiscal month, summed over every quota row
    (route) of the org. Keys are sun..sat.
    """
    rows = (
        Quota.query
        .filter(Quota.pc_org_id == org_id, Quota.fiscal_month_id == fiscal_month_id)
        .all()
    )
    out = {k: 0 for k in DAY_KEYS}
    for r in rows:
        for k in DAY_KEYS:
            out[k] += int0(getattr(r, f"qh_{k}"))
    return out


def quota_row(q: Quota) -> dict:
    row = {
        "id": q.id,
        "pc_org_id": q.pc_org_id,
        "route_id": q.route_id,
        "fiscal_month_id": q.fiscal_month_id,
    }
    for k in QH_KEYS:
        row[k] = getattr(q, k)
    row["total_hours"] = sum(getattr(q, k) or 0 for k in QH_KEYS)
    return row


def list_quota(org_id: int, fiscal_month_id: int | None = None) -> List[Quota]:
    q = Quota.query.filter(Quota.pc_org_id == org_id)
    if fiscal_month_id:
        q = q.filter(Quota.fiscal_month_id == fiscal_month_id)
    return q.order_by(Quota.fiscal_month_id.desc(), Quota.route_id.asc()).all()


def upsert_quota(org_id: int, rows) -> List[Quota]:
    """
    rows: [{"route_id": 1, "fiscal_month_id": 2, "qh_sun": 0, ..., "qh_sat": 16}]

    One quota per (org, route, fiscal month); existing rows are updated.
    """
    if not isinstance(rows, list) or not rows:
        raise ValidationError("no_rows", "No rows provided")

    clean = []
    for r in rows:
        r = r if isinstance(r, dict) else {}
        route_id = parse_id(r.get("route_id"))
        fm_id = parse_id(r.get("fiscal_month_id"))
        if route_id is None or fm_id is None:
            raise ValidationError("invalid_quota_row", "Invalid route_id or fiscal_month_id")
        clean.append({"route_id": route_id, "fiscal_month_id": fm_id, **{k: int0(r.get(k)) for k in QH_KEYS}})

    route_ids = sorted({c["route_id"] for c in clean})
    allowed = {
        rid for (rid,) in Route.query.with_entities(Route.id)
        .filter(Route.pc_org_id == org_id, Route.id.in_(route_ids)).all()
    }
    rejected = [rid for rid in route_ids if rid not in allowed]
    if rejected:
        raise ScopeError(
            "route_not_in_org",
            "One or more routes are not in your selected org",
            payload={"rejected_route_ids": rejected},
        )

    fm_ids = sorted({c["fiscal_month_id"] for c in clean})
    known = {fid for (fid,) in FiscalMonth.query.with_entities(FiscalMonth.id).filter(FiscalMonth.id.in_(fm_ids)).all()}
    missing = [fid for fid in fm_ids if fid not in known]
    if missing:
        raise ValidationError("unknown_fiscal_month", "Unknown fiscal_month_id", payload={"fiscal_month_ids": missing})

    saved: List[Quota] = []
    try:
        for c in clean:
            existing = Quota.query.filter_by(
                pc_org_id=org_id, route_id=c["route_id"], fiscal_month_id=c["fiscal_month_id"]
            ).first()
            if existing is None:
                existing = Quota(pc_org_id=org_id, route_id=c["route_id"], fiscal_month_id=c["fiscal_month_id"])
                db.session.add(existing)
            for k in QH_KEYS:
                setattr(existing, k, c[k])
            db.session.flush()
            saved.append(existing)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("[route-lock.quota] upsert for org %s rolled back", org_id)
        raise StorageError(str(getattr(e, "orig", None) or e))
    return saved
