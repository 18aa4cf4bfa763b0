# routelock_api/services/readiness.py
"""
Which roster rows are plannable.

A row is POLA-ready when all four hold:
  P - person:      a non-blank display name
  O - org:         the person is a current member of the org
  L - leadership:  a leader assignment, leader person or leader name is set
  A - assignment:  assignment id present, active, and not terminated

Supervisor / technician classification is independent of readiness; the
plannable set is technician rows that are also POLA-ready.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Mapping, Set

_SUPERVISOR_RE = re.compile(r"supervisor", re.IGNORECASE)
_TECHNICIAN_RE = re.compile(r"technician", re.IGNORECASE)


def _s(v) -> str:
    return "" if v is None else str(v).strip()


# ---- role classifier ----

def role_text(row: Mapping) -> str:
    return _s(row.get("position_title"))


def is_supervisor_row(row: Mapping) -> bool:
    return bool(_SUPERVISOR_RE.search(role_text(row)))


def is_technician_row(row: Mapping) -> bool:
    if _TECHNICIAN_RE.search(role_text(row)):
        return True
    return bool(_s(row.get("tech_id"))) and not is_supervisor_row(row)


# ---- readiness predicates ----

def person_ok(row: Mapping) -> bool:
    return bool(_s(row.get("full_name")))


def org_ok(row: Mapping, membership: Set) -> bool:
    pid = _s(row.get("person_id"))
    if not pid:
        return False
    # membership may hold ints or strings depending on the source
    return pid in membership or row.get("person_id") in membership


def leadership_ok(row: Mapping) -> bool:
    return (
        bool(_s(row.get("reports_to_assignment_id")))
        or bool(_s(row.get("reports_to_person_id")))
        or bool(_s(row.get("reports_to_full_name")))
    )


def assignment_ok(row: Mapping) -> bool:
    return (
        bool(_s(row.get("assignment_id")))
        and bool(row.get("assignment_active"))
        and not _s(row.get("end_date"))
    )


def is_pola_ready(row: Mapping, membership: Set) -> bool:
    return person_ok(row) and org_ok(row, membership) and leadership_ok(row) and assignment_ok(row)


def plannable_assignment_ids(rows: Iterable[Mapping], membership: Set) -> List:
    """Technician + POLA-ready assignment ids, roster order, no duplicates."""
    out: List = []
    seen = set()
    for r in rows:
        if not is_technician_row(r):
            continue
        if not is_pola_ready(r, membership):
            continue
        aid = r.get("assignment_id")
        if aid in seen:
            continue
        seen.add(aid)
        out.append(aid)
    return out
