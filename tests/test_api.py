import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.auth.security import create_access_token
from app.dependencies import get_db
from app.main import app

from conftest import STAFF

REPORT = {"type": "Human", "description": "Visitor fell", "location": "Trail 3", "date": "2026-10-19", "time": "10:00"}


@pytest.fixture
def client(db_path, staff):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with factory() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth(staff):
    def headers(name: str) -> dict:
        token = create_access_token(getattr(staff, name), STAFF[name][0].value)
        return {"Authorization": f"Bearer {token}"}
    return headers


def _report(client) -> str:
    r = client.post("/emergencies/report", json=REPORT)
    assert r.status_code == 201
    return r.json()["data"]["id"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_public_report(client):
    r = client.post("/emergencies/report", json=REPORT)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Emergency reported successfully"
    assert body["data"]["status"] == "Reported"
    assert body["data"]["category"] == "Medical Emergency"
    assert body["data"]["reporter"]["reportMethod"] == "App Form"
    assert body["data"]["adminNotes"] == []


def test_public_report_missing_fields(client):
    r = client.post("/emergencies/report", json={"type": "Human"})
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert {"description", "location", "date", "time"} <= set(body["errors"])


def test_public_report_bad_type(client):
    r = client.post("/emergencies/report", json={**REPORT, "type": "Flood"})
    assert r.status_code == 400
    assert "Human" in r.json()["errors"]["validTypes"]


def test_public_report_bad_date(client):
    r = client.post("/emergencies/report", json={**REPORT, "date": "yesterday"})
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_token_required(client):
    r = client.get("/emergencies")
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Access token is required"}


def test_garbage_token(client):
    r = client.get("/emergencies", headers={"Authorization": "Bearer nope"})
    assert r.status_code == 401


def test_suspended_account_rejected(client, auth):
    r = client.get("/emergencies/assigned", headers=auth("suspended_officer"))
    assert r.status_code == 401


@pytest.mark.parametrize("path,name", [
    ("/emergencies", "guide"),
    ("/emergencies", "vet"),
    ("/emergencies/stats", "ranger"),
    ("/emergencies/assigned", "operator"),
])
def test_role_gates(client, auth, path, name):
    r = client.get(path, headers=auth(name))
    assert r.status_code == 403
    assert r.json()["message"] == "Insufficient permissions"


def test_dispatch_flow(client, auth, staff):
    emergency_id = _report(client)

    r = client.put(
        f"/emergencies/{emergency_id}/assign",
        json={"userId": str(staff.officer), "userModel": "EmergencyOfficer"},
        headers=auth("operator"),
    )
    assert r.status_code == 200
    assert r.json()["message"] == "Emergency assigned successfully"
    data = r.json()["data"]
    assert data["status"] == "Assigned"
    assert data["assignment"]["assignedRole"] == "Emergency Officer"
    assert data["assignment"]["assignedTo"] == str(staff.officer)

    r = client.put(
        f"/emergencies/{emergency_id}/assign",
        json={"userId": str(staff.vet), "userModel": "Vet"},
        headers=auth("operator"),
    )
    assert r.status_code == 400
    assert r.json()["errors"]["eligibleRoles"] == ["Emergency Officer"]

    r = client.get("/emergencies/assigned", headers=auth("officer"))
    assert [e["id"] for e in r.json()["data"]] == [emergency_id]

    r = client.put(
        f"/emergencies/{emergency_id}/status-simple", json={"status": "In Progress"}, headers=auth("officer"),
    )
    assert r.status_code == 200
    assert r.json()["data"]["response"]["responseStartedAt"] is not None

    r = client.put(
        f"/emergencies/{emergency_id}/status-simple", json={"status": "Resolved"}, headers=auth("other_officer"),
    )
    assert r.status_code == 404
    assert r.json()["message"] == "Emergency not found or not assigned to you"

    r = client.put(
        f"/emergencies/{emergency_id}/status-simple", json={"status": "Resolved"}, headers=auth("officer"),
    )
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "Resolved"

    r = client.get(f"/emergencies/{emergency_id}", headers=auth("operator"))
    assert r.json()["data"]["status"] == "Resolved"

    r = client.get(f"/emergencies/{emergency_id}/assignments", headers=auth("admin"))
    assert [a["assignedTo"] for a in r.json()["data"]] == [str(staff.officer)]


def test_assign_missing_fields(client, auth):
    emergency_id = _report(client)
    r = client.put(f"/emergencies/{emergency_id}/assign", json={}, headers=auth("operator"))
    assert r.status_code == 400
    assert r.json()["message"] == "userId and userModel are required"


def test_full_status_update_with_notes(client, auth):
    r = client.post(
        "/emergencies/call-operator",
        json={
            "type": "Physical", "description": "Grass fire", "location": "Gate 2",
            "priority": "High", "reporterRole": "Safari Driver",
        },
        headers=auth("operator"),
    )
    assert r.status_code == 201
    assert r.json()["message"] == "Emergency logged successfully"
    assert r.json()["data"]["reporter"]["guestRole"] == "Safari Driver"
    emergency_id = r.json()["data"]["id"]

    r = client.put(
        f"/emergencies/{emergency_id}/status",
        json={"status": "Acknowledged", "notes": "Fire crew alerted"},
        headers=auth("operator"),
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["status"] == "Acknowledged"
    assert [n["note"] for n in data["adminNotes"]] == ["Fire crew alerted"]

    r = client.put(
        f"/emergencies/{emergency_id}/status", json={"status": "Reported"}, headers=auth("operator"),
    )
    assert r.status_code == 400

    r = client.put(
        f"/emergencies/{emergency_id}/status", json={"status": "Acknowledged"}, headers=auth("other_operator"),
    )
    assert r.status_code == 403


def test_stats_shape(client, auth):
    _report(client)
    r = client.get("/emergencies/stats?period=week", headers=auth("officer"))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["total"] == 1
    assert data["byStatus"]["reported"] == 1
    assert data["byStatus"]["inProgress"] == 0
    assert data["byPriority"]["medium"] == 1
    assert data["byType"]["Human"] == 1
    assert data["averageResponseMinutes"] is None

    r = client.get("/emergencies/stats?period=decade", headers=auth("admin"))
    assert r.status_code == 400


def test_list_pagination(client, auth):
    for _ in range(3):
        _report(client)
    r = client.get("/emergencies?limit=2&page=2", headers=auth("operator"))
    assert r.status_code == 200
    body = r.json()
    assert body["pagination"] == {"current": 2, "pages": 2, "total": 3}
    assert len(body["data"]) == 1

    r = client.get("/emergencies?status=Closed", headers=auth("operator"))
    assert r.json()["pagination"]["total"] == 0

    r = client.get("/emergencies?limit=500", headers=auth("operator"))
    assert r.status_code == 400


def test_delete(client, auth):
    emergency_id = _report(client)

    r = client.delete(f"/emergencies/{emergency_id}", headers=auth("operator"))
    assert r.status_code == 403
    assert r.json()["message"] == "You can only delete emergencies you created"

    r = client.delete(f"/emergencies/{emergency_id}", headers=auth("admin"))
    assert r.status_code == 200
    assert r.json()["success"] is True

    r = client.get(f"/emergencies/{emergency_id}", headers=auth("admin"))
    assert r.status_code == 404


def test_unknown_and_malformed_ids(client, auth):
    assert client.get(f"/emergencies/{uuid.uuid4()}", headers=auth("admin")).status_code == 404
    assert client.get("/emergencies/not-a-uuid", headers=auth("admin")).status_code == 400
