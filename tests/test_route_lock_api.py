import os
from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from routelock_api import create_app
from routelock_api.extensions import db
from routelock_api.models.master import FiscalMonth, Organization, Route
from routelock_api.models.quota import Quota
from routelock_api.models.schedule import ScheduleBaselineWindow
from routelock_api.models.roster import Assignment, OrgMembership, Person


@pytest.fixture(scope="function")
def app():
    os.environ["DATABASE_URL"] = "sqlite:///:memory:"
    app = create_app({"TESTING": True})
    with app.app_context():
        db.create_all()
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seeded(app):
    org = Organization(code="ORG1", name="Org One")
    other = Organization(code="ORG2", name="Org Two")
    db.session.add_all([org, other]); db.session.flush()

    people = [Person(full_name="Alex Tech", tech_id="T001"), Person(full_name="Outsider", tech_id="X001")]
    db.session.add_all(people); db.session.flush()
    db.session.add(OrgMembership(person_id=people[0].id, pc_org_id=org.id, active=True))

    mine = Assignment(person_id=people[0].id, pc_org_id=org.id, position_title="Technician",
                      tech_id="T001", active=True, reports_to_person_id=people[1].id)
    theirs = Assignment(person_id=people[1].id, pc_org_id=other.id, position_title="Technician", active=True)
    route = Route(pc_org_id=org.id, route_name="R-01")
    db.session.add_all([mine, theirs, route]); db.session.commit()
    return {"org": org.id, "other": other.id, "mine": mine.id, "theirs": theirs.id, "route": route.id}


def _auth(org_id, perms=("route_lock_manage",), roles=()):
    token = create_access_token(
        identity="1",
        additional_claims={"pc_org_id": org_id, "perms": list(perms), "roles": list(roles)},
    )
    return {"Authorization": f"Bearer {token}"}


def test_health(client):
    r = client.get("/api/v1/health")
    assert r.status_code == 200
    assert r.get_json()["data"]["status"] == "ok"


def test_requires_token(client):
    r = client.post("/api/v1/route-lock/schedule", json={"rows": []})
    assert r.status_code == 401


def test_requires_permission(client, seeded):
    r = client.post("/api/v1/route-lock/schedule", json={"rows": []},
                    headers=_auth(seeded["org"], perms=("something_else",)))
    assert r.status_code == 403
    assert r.get_json()["success"] is False


def test_admin_role_bypasses_permissions(client, seeded):
    r = client.get("/api/v1/route-lock/routes", headers=_auth(seeded["org"], perms=(), roles=("admin",)))
    assert r.status_code == 200
    assert [x["route_name"] for x in r.get_json()["data"]] == ["R-01"]


def test_no_selected_org(client, seeded):
    r = client.get("/api/v1/route-lock/routes", headers=_auth(None))
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "no_selected_org"


def test_upsert_schedule_and_read_back(client, seeded):
    body = {
        "start_date": "2024-01-08",
        "hoursPerDay": 8,
        "unitsPerHour": 12,
        "rows": [{"assignment_id": seeded["mine"], "default_route_id": seeded["route"], "days": {"mon": True}}],
    }
    r = client.post("/api/v1/route-lock/schedule", json=body, headers=_auth(seeded["org"]))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["effective_start_date"] == "2024-01-08"
    assert len(data["saved_window_ids"]) == 1
    w = data["refreshed_windows"][0]
    assert w["end_date"] is None
    assert w["days"]["mon"] is True
    assert w["hours"]["mon"] == 8 and w["units"]["mon"] == 96
    assert w["default_route_id"] == seeded["route"]

    body["start_date"] = "2024-01-15"
    body["rows"][0]["days"] = {"tue": True}
    client.post("/api/v1/route-lock/schedule", json=body, headers=_auth(seeded["org"]))

    r = client.get(f"/api/v1/route-lock/schedule?assignment_id={seeded['mine']}",
                   headers=_auth(seeded["org"], perms=("route_lock_view",)))
    assert r.status_code == 200
    items = r.get_json()["data"]
    assert [(x["start_date"], x["end_date"]) for x in items] == [
        ("2024-01-15", None),
        ("2024-01-08", "2024-01-14"),
    ]


def test_upsert_schedule_validation_envelope(client, seeded):
    r = client.post("/api/v1/route-lock/schedule",
                    json={"start_date": "2024-01-08", "rows": []}, headers=_auth(seeded["org"]))
    assert r.status_code == 400
    err = r.get_json()["error"]
    assert err["code"] == "no_rows"

    r = client.post("/api/v1/route-lock/schedule",
                    json={"start_date": "Jan 8", "rows": [{"assignment_id": seeded["mine"]}]},
                    headers=_auth(seeded["org"]))
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "invalid_start_date"


def test_upsert_schedule_rejects_foreign_assignments(client, seeded):
    r = client.post("/api/v1/route-lock/schedule", json={
        "start_date": "2024-01-08",
        "rows": [{"assignment_id": seeded["theirs"], "days": {"mon": True}}],
    }, headers=_auth(seeded["org"]))
    assert r.status_code == 403
    err = r.get_json()["error"]
    assert err["code"] == "assignment_not_in_org"
    assert err["detail"]["rejected_assignment_ids"] == [seeded["theirs"]]

    r = client.get(f"/api/v1/route-lock/schedule?assignment_id={seeded['theirs']}", headers=_auth(seeded["org"]))
    assert r.status_code == 403


def test_calendar_without_fiscal_month(client, seeded):
    r = client.get("/api/v1/route-lock/calendar", headers=_auth(seeded["org"]))
    assert r.status_code == 409
    assert r.get_json()["error"]["code"] == "fiscal_month_unresolved"


def _seed_current_month():
    # wide enough to enclose "today" in any time zone
    y = date.today().year
    db.session.add(FiscalMonth(label="wide", start_date=date(y - 1, 1, 1), end_date=date(y + 1, 12, 31)))
    db.session.commit()


def test_calendar_and_outlook(client, seeded):
    _seed_current_month()

    r = client.get("/api/v1/route-lock/calendar", headers=_auth(seeded["org"]))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert data["fiscal_month"]["label"] == "wide"
    assert data["days"][0]["total_headcount"] == 1

    r = client.get("/api/v1/route-lock/outlook?days=3", headers=_auth(seeded["org"]))
    assert r.status_code == 200
    data = r.get_json()["data"]
    assert len(data["days"]) == 3
    assert data["totals"]["days"] == len(data["days"])


def test_quota_upsert_and_scope(client, seeded):
    fm = FiscalMonth(label="FY2024-01", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    foreign = Route(pc_org_id=seeded["other"], route_name="Z-01")
    db.session.add_all([fm, foreign]); db.session.commit()

    row = {"route_id": seeded["route"], "fiscal_month_id": fm.id, "qh_mon": 16, "qh_tue": "8"}
    r = client.post("/api/v1/route-lock/quota", json={"rows": [row]}, headers=_auth(seeded["org"]))
    assert r.status_code == 200
    saved = r.get_json()["data"][0]
    assert saved["qh_mon"] == 16 and saved["qh_tue"] == 8 and saved["total_hours"] == 24

    row["qh_mon"] = 24
    client.post("/api/v1/route-lock/quota", json={"rows": [row]}, headers=_auth(seeded["org"]))
    r = client.get(f"/api/v1/route-lock/quota?fiscal_month_id={fm.id}", headers=_auth(seeded["org"]))
    items = r.get_json()["data"]
    assert len(items) == 1 and items[0]["qh_mon"] == 24

    r = client.post("/api/v1/route-lock/quota",
                    json={"rows": [{"route_id": foreign.id, "fiscal_month_id": fm.id}]},
                    headers=_auth(seeded["org"]))
    assert r.status_code == 403
    assert r.get_json()["error"]["code"] == "route_not_in_org"


def test_routes_upsert(client, seeded):
    h = _auth(seeded["org"])
    r = client.post("/api/v1/route-lock/routes", json={"route_name": "R-02"}, headers=h)
    assert r.status_code == 201
    rid = r.get_json()["data"]["id"]

    r = client.post("/api/v1/route-lock/routes", json={"route_name": "R-02"}, headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"]["id"] == rid

    r = client.post("/api/v1/route-lock/routes", json={"route_id": rid, "route_name": "R-03"}, headers=h)
    assert r.get_json()["data"]["route_name"] == "R-03"

    r = client.post("/api/v1/route-lock/routes", json={"route_name": " "}, headers=h)
    assert r.status_code == 400


@pytest.mark.parametrize("url", [
    "/api/v1/route-lock/schedule",
    "/api/v1/route-lock/quota",
    "/api/v1/route-lock/routes",
])
def test_non_object_body_is_rejected(client, seeded, url):
    r = client.post(url, json=[{"assignment_id": seeded["mine"]}], headers=_auth(seeded["org"]))
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "invalid_body"


def test_schedule_rejects_foreign_default_route(client, seeded):
    foreign = Route(pc_org_id=seeded["other"], route_name="Z-01")
    db.session.add(foreign); db.session.commit()

    r = client.post("/api/v1/route-lock/schedule", json={
        "start_date": "2024-01-08",
        "rows": [{"assignment_id": seeded["mine"], "default_route_id": foreign.id, "days": {"mon": True}}],
    }, headers=_auth(seeded["org"]))
    assert r.status_code == 403
    err = r.get_json()["error"]
    assert err["code"] == "route_not_in_org"
    assert err["detail"]["rejected_route_ids"] == [foreign.id]


def test_routes_delete(client, seeded):
    h = _auth(seeded["org"])
    fm = FiscalMonth(label="FY2024-01", start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    foreign = Route(pc_org_id=seeded["other"], route_name="Z-01")
    db.session.add_all([fm, foreign]); db.session.flush()
    db.session.add(Quota(pc_org_id=seeded["org"], route_id=seeded["route"], fiscal_month_id=fm.id, qh_mon=8))
    db.session.commit()
    client.post("/api/v1/route-lock/schedule", json={
        "start_date": "2024-01-08",
        "rows": [{"assignment_id": seeded["mine"], "default_route_id": seeded["route"], "days": {"mon": True}}],
    }, headers=h)

    assert client.delete(f"/api/v1/route-lock/routes/{foreign.id}", headers=h).status_code == 403
    assert client.delete("/api/v1/route-lock/routes/987654", headers=h).status_code == 404

    r = client.delete(f"/api/v1/route-lock/routes/{seeded['route']}", headers=h)
    assert r.status_code == 200
    assert r.get_json()["data"] == {"id": seeded["route"], "deleted": True}

    assert db.session.get(Route, seeded["route"]) is None
    assert Quota.query.count() == 0
    w = ScheduleBaselineWindow.query.filter_by(assignment_id=seeded["mine"]).one()
    assert w.default_route_id is None
    assert w.mon is True

    r = client.get("/api/v1/route-lock/routes", headers=h)
    assert r.get_json()["data"] == []
