import os
from datetime import date

import pytest

from routelock_api import create_app
from routelock_api.extensions import db
from routelock_api.common.errors import UpstreamDataError
from routelock_api.models.master import FiscalMonth, Organization, Route
from routelock_api.models.quota import Quota
from routelock_api.models.roster import Assignment, OrgMembership, Person
from routelock_api.models.shift_validation import ShiftValidationImport
from routelock_api.services.baseline_writer import apply_weekly_baseline
from routelock_api.services.fiscal_calendar import resolve_fiscal_month
from routelock_api.services.forecast import compute_fiscal_month_forecast


def _mk_app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app()
    return app


def _seed():
    """Org with a supervisor, one ready technician and January 2024 as a fiscal month."""
    org = Organization(code="ORG1", name="Org One")
    db.session.add(org); db.session.flush()

    sup = Person(full_name="Dana Supervisor")
    tech = Person(full_name="Alex Tech", tech_id="T001")
    db.session.add_all([sup, tech]); db.session.flush()
    db.session.add_all([
        OrgMembership(person_id=sup.id, pc_org_id=org.id, active=True),
        OrgMembership(person_id=tech.id, pc_org_id=org.id, active=True),
    ])
    sup_a = Assignment(person_id=sup.id, pc_org_id=org.id, position_title="Field Supervisor", active=True)
    db.session.add(sup_a); db.session.flush()
    tech_a = Assignment(person_id=tech.id, pc_org_id=org.id, position_title="Technician",
                        tech_id="T001", active=True, reports_to_assignment_id=sup_a.id)
    db.session.add(tech_a)

    fm = FiscalMonth(label="FY2024-01", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    db.session.add(fm)
    db.session.commit()
    return org, tech_a, fm


def _by_date(out):
    return {d["date"]: d for d in out["days"]}


def test_two_submissions_drive_daily_rollup():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        org, a, fm = _seed()

        apply_weekly_baseline(org.id, [{"assignment_id": a.id, "days": {"mon": True}}],
                              start_date="2024-01-08", today=date(2024, 1, 1))
        apply_weekly_baseline(org.id, [{"assignment_id": a.id, "days": {"tue": True}}],
                              start_date="2024-01-15", today=date(2024, 1, 1))

        out = compute_fiscal_month_forecast(org.id, today=date(2024, 1, 9))
        days = _by_date(out)

        assert out["fiscal_month"]["id"] == fm.id
        assert len(out["days"]) == 31
        assert out["days"][0]["date"] == "2024-01-01"
        assert out["days"][-1]["date"] == "2024-01-31"

        # supervisor is not counted
        assert days["2024-01-09"]["total_headcount"] == 1
        assert days["2024-01-09"]["scheduled_techs"] == 0
        assert days["2024-01-16"]["scheduled_techs"] == 1
        assert days["2024-01-08"]["scheduled_techs"] == 1
        # before any window: default is on
        assert days["2024-01-02"]["scheduled_techs"] == 1
        assert days["2024-01-16"]["util_pct"] == 100.0
        assert days["2024-01-09"]["util_pct"] == 0.0


def test_quota_and_shift_validation_flags():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        org, a, fm = _seed()
        route = Route(pc_org_id=org.id, route_name="R-01")
        db.session.add(route); db.session.flush()
        db.session.add(Quota(pc_org_id=org.id, route_id=route.id, fiscal_month_id=fm.id, qh_tue=8, qh_wed=20))
        db.session.add_all([
            ShiftValidationImport(pc_org_id=org.id, shift_date=date(2024, 1, 10), tech_num="T001"),
            ShiftValidationImport(pc_org_id=org.id, shift_date=date(2024, 1, 30), tech_num="T001"),
        ])
        db.session.commit()

        apply_weekly_baseline(org.id, [{"assignment_id": a.id, "days": {"tue": True, "wed": True}}],
                              start_date="2024-01-01", today=date(2024, 1, 1))

        days = _by_date(compute_fiscal_month_forecast(org.id, today=date(2024, 1, 9)))

        tue = days["2024-01-09"]
        assert tue["quota_hours"] == 8
        assert tue["quota_routes"] == 1
        assert tue["quota_units"] == 96
        assert tue["delta_forecast"] == 0
        assert tue["delta_band"] == "meets"

        wed = days["2024-01-10"]
        assert wed["quota_routes"] == 3
        assert wed["delta_forecast"] == -2
        assert wed["delta_band"] == "short"
        assert wed["has_sv"] is True

        mon = days["2024-01-08"]
        assert mon["quota_hours"] is None
        assert mon["delta_forecast"] is None
        assert mon["delta_band"] == "no_quota"

        # outside the near-term window
        assert days["2024-01-30"]["has_sv"] is False
        assert all(d["has_check_in"] is False for d in days.values())


def test_unready_technicians_are_excluded():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        org, a, fm = _seed()
        # no membership, no leader
        p = Person(full_name="Casey Tech", tech_id="T003")
        db.session.add(p); db.session.flush()
        db.session.add(Assignment(person_id=p.id, pc_org_id=org.id, position_title="Technician", active=True))
        db.session.commit()

        days = _by_date(compute_fiscal_month_forecast(org.id, today=date(2024, 1, 9)))
        assert days["2024-01-09"]["total_headcount"] == 1


def test_unresolved_fiscal_month():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        org, _, _ = _seed()
        with pytest.raises(UpstreamDataError) as ei:
            compute_fiscal_month_forecast(org.id, today=date(2025, 6, 1))
        assert ei.value.code == "fiscal_month_unresolved"
        assert ei.value.status_code == 409


def test_overlapping_fiscal_months_latest_start_wins():
    app = _mk_app()
    with app.app_context():
        db.create_all()
        a = FiscalMonth(label="A", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
        b = FiscalMonth(label="B", start_date=date(2024, 1, 22), end_date=date(2024, 2, 21))
        db.session.add_all([a, b]); db.session.commit()
        assert resolve_fiscal_month(date(2024, 1, 25)).label == "B"
        assert resolve_fiscal_month(date(2024, 1, 10)).label == "A"
        assert resolve_fiscal_month(date(2023, 12, 31)) is None
