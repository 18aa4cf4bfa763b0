# routelock_api/services/roster.py
"""
Roster collaborators for route-lock: current membership and the roster
snapshot rows the readiness filter runs over. Rows are plain dicts so the
readiness predicates stay independent of the ORM.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Set

from routelock_api.models.roster import Assignment, OrgMembership, Person


def membership_set(org_id: int) -> Set[int]:
    """Person ids currently members of the org (active, no end date)."""
    q = (
        OrgMembership.query
        .with_entities(OrgMembership.person_id)
        .filter(
            OrgMembership.pc_org_id == org_id,
            OrgMembership.active.is_(True),
            OrgMembership.end_date.is_(None),
        )
    )
    return {int(r[0]) for r in q.all() if r[0] is not None}


def _leader_names(leader_assignment_ids: Iterable[int]) -> Dict[int, str]:
    ids = sorted({i for i in leader_assignment_ids if i})
    if not ids:
        return {}
    q = (
        Assignment.query
        .join(Person, Person.id == Assignment.person_id)
        .with_entities(Assignment.id, Person.full_name)
        .filter(Assignment.id.in_(ids))
    )
    return {int(aid): (name or "") for aid, name in q.all()}


def roster_rows(org_id: int) -> List[dict]:
    """
    Snapshot of every assignment in the org, one dict per assignment:

      assignment_id, person_id, full_name, tech_id, position_title,
      start_date, end_date, assignment_active,
      reports_to_assignment_id, reports_to_person_id, reports_to_full_name
    """
    items = (
        Assignment.query
        .filter(Assignment.pc_org_id == org_id)
        .order_by(Assignment.id.asc())
        .all()
    )
    leaders = _leader_names(a.reports_to_assignment_id for a in items)

    out: List[dict] = []
    for a in items:
        person = a.person
        leader_name = None
        if a.reports_to_person is not None:
            leader_name = a.reports_to_person.full_name
        elif a.reports_to_assignment_id:
            leader_name = leaders.get(a.reports_to_assignment_id)

        out.append({
            "assignment_id": a.id,
            "person_id": a.person_id,
            "full_name": person.full_name if person else None,
            "tech_id": a.tech_id or (person.tech_id if person else None),
            "position_title": a.position_title,
            "start_date": a.start_date.isoformat() if a.start_date else None,
            "end_date": a.end_date.isoformat() if a.end_date else None,
            "assignment_active": bool(a.active),
            "reports_to_assignment_id": a.reports_to_assignment_id,
            "reports_to_person_id": a.reports_to_person_id,
            "reports_to_full_name": leader_name,
        })
    return out


def roster_labels(org_id: int, assignment_ids: Iterable[int]) -> Dict[int, dict]:
    """{assignment_id: {"tech_id", "full_name"}} for schedule naming."""
    ids = sorted(set(assignment_ids))
    if not ids:
        return {}
    q = (
        Assignment.query
        .join(Person, Person.id == Assignment.person_id)
        .with_entities(Assignment.id, Assignment.tech_id, Person.tech_id, Person.full_name)
        .filter(Assignment.pc_org_id == org_id, Assignment.id.in_(ids))
    )
    out: Dict[int, dict] = {}
    for aid, a_tech, p_tech, name in q.all():
        out[int(aid)] = {"tech_id": a_tech or p_tech, "full_name": name}
    return out


def assignment_ids_in_org(org_id: int, assignment_ids: Iterable[int]) -> Set[int]:
    ids = list(set(assignment_ids))
    if not ids:
        return set()
    q = (
        Assignment.query
        .with_entities(Assignment.id)
        .filter(Assignment.pc_org_id == org_id, Assignment.id.in_(ids))
    )
    return {int(r[0]) for r in q.all()}
