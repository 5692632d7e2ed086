"""
Tests for the HTTP API
"""

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.db import Base, get_db
from app.schemas.user import UserStatus
from app.services.repositories import UserRepo
from app.utils import security
from main import app
from tests.factories import build_user

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_api.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

def auth(uid):
    # Dev auth mode: the bearer token is the uid
    return {"Authorization": f"Bearer {uid}"}

@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DEV_MODE", True)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    for user in (
        build_user("admin-1", status=UserStatus.ADMIN),
        build_user("social-1", status=UserStatus.SOCIAL),
        build_user("member-a"),
        build_user("pending", approved=False),
    ):
        UserRepo.create(db, user)
    db.close()

    security.rate_limiter.clear()
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def event_id(client):
    response = client.post("/events", json={
        "name": "Spring Social", "date": "2026-04-18", "type": "Mixer", "maxGuests": 1
    }, headers=auth("social-1"))
    assert response.status_code == 201
    return response.json()["data"]["id"]

@pytest.fixture
def open_event_id(client, event_id):
    response = client.put(f"/events/{event_id}/open", json={"open": True}, headers=auth("social-1"))
    assert response.status_code == 200
    return event_id


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"

def test_requires_bearer_token(client):
    assert client.get("/events").status_code in (401, 403)

def test_unregistered_user(client):
    assert client.get("/me", headers=auth("stranger")).status_code == 404

def test_register_and_wait_for_approval(client):
    response = client.post("/me/register", json={
        "displayName": "New Person", "email": "new.person@zmparties.org"
    }, headers=auth("new-uid"))

    assert response.status_code == 201
    assert response.json()["data"]["approved"] is False
    assert client.get("/events", headers=auth("new-uid")).status_code == 403

    client.post("/admin/users/new-uid/approve", headers=auth("social-1"))
    assert client.get("/events", headers=auth("new-uid")).status_code == 200

def test_pending_users_are_blocked(client):
    assert client.get("/events", headers=auth("pending")).status_code == 403

def test_members_cannot_create_events(client):
    response = client.post("/events", json={
        "name": "x", "date": "d", "type": "t", "maxGuests": 1
    }, headers=auth("member-a"))

    assert response.status_code == 403

def test_invalid_event_form(client):
    response = client.post("/events", json={"name": "", "date": "", "type": "", "maxGuests": 0}, headers=auth("admin-1"))

    assert response.status_code == 422
    assert response.json()["error_code"] == "invalid"

def test_add_guests_and_waitlist(client, open_event_id):
    first = client.post(f"/events/{open_event_id}/guests", json={"name": "Alice"}, headers=auth("member-a"))
    second = client.post(f"/events/{open_event_id}/guests", json={"name": "Bob"}, headers=auth("member-a"))

    assert first.status_code == 201
    assert first.json()["message"] == "Added guest to guest list"
    assert second.json()["message"] == "Added guest to waitlist"

    event = client.get(f"/events/{open_event_id}", headers=auth("member-a")).json()["data"]
    assert [g["name"] for g in event["guestList"].values()] == ["Alice"]
    assert [g["name"] for g in event["waitList"].values()] == ["Bob"]
    assert event["remainingQuota"] == 0

def test_closed_event_rejection_envelope(client, event_id):
    response = client.post(f"/events/{event_id}/guests", json={"name": "Alice"}, headers=auth("member-a"))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "closed"
    assert body["message"] == "The event is closed and no guests can be added"

def test_blacklisted_guest(client, open_event_id):
    assert client.post("/admin/blacklist", json={"name": "Dave"}, headers=auth("admin-1")).status_code == 201

    response = client.post(f"/events/{open_event_id}/guests", json={"name": "Dave"}, headers=auth("member-a"))

    assert response.status_code == 400
    assert response.json()["error_code"] == "blacklisted"
    entries = client.get("/admin/blacklist", headers=auth("admin-1")).json()["data"]
    assert entries == [{"name": "Dave", "addedBy": "Admin-1"}]

def test_blacklist_is_admin_only(client):
    assert client.post("/admin/blacklist", json={"name": "Dave"}, headers=auth("social-1")).status_code == 403

def test_approve_waitlisted_guest(client, open_event_id):
    client.post(f"/events/{open_event_id}/guests", json={"name": "Alice"}, headers=auth("member-a"))
    waitlisted = client.post(f"/events/{open_event_id}/guests", json={"name": "Bob"}, headers=auth("member-a"))
    waitlist_id = waitlisted.json()["data"]["guest_id"]

    denied = client.post(f"/events/{open_event_id}/waitlist/{waitlist_id}/approve", headers=auth("member-a"))
    approved = client.post(f"/events/{open_event_id}/waitlist/{waitlist_id}/approve", headers=auth("social-1"))

    assert denied.status_code == 403
    assert approved.status_code == 200
    event = client.get(f"/events/{open_event_id}", headers=auth("member-a")).json()["data"]
    assert sorted(g["name"] for g in event["guestList"].values()) == ["Alice", "Bob"]
    assert event["waitList"] == {}

def test_front_door_checkin_flow(client, event_id):
    assert client.post(f"/events/{event_id}/front-door", headers=auth("admin-1")).json()["data"]["frontDoorMode"] is True
    added = client.post(f"/events/{event_id}/guests", json={"name": "Eve"}, headers=auth("admin-1"))
    guest_id = added.json()["data"]["guest_id"]

    checked = client.post(f"/events/{event_id}/guests/{guest_id}/checkin", headers=auth("admin-1"))
    assert checked.status_code == 200
    assert checked.json()["data"]["checkedIn"] != -1

    unchecked = client.delete(f"/events/{event_id}/guests/{guest_id}/checkin", headers=auth("admin-1"))
    assert unchecked.json()["data"]["checkedIn"] == -1

def test_front_door_needs_closed_list(client, open_event_id):
    response = client.post(f"/events/{open_event_id}/front-door", headers=auth("admin-1"))

    assert response.status_code == 400
    assert response.json()["error_code"] == "event_open"

def test_checkin_is_admin_only(client, event_id):
    client.post(f"/events/{event_id}/front-door", headers=auth("admin-1"))
    guest_id = client.post(f"/events/{event_id}/guests", json={"name": "Eve"}, headers=auth("admin-1")).json()["data"]["guest_id"]

    response = client.post(f"/events/{event_id}/guests/{guest_id}/checkin", headers=auth("social-1"))

    assert response.status_code == 403

def test_personal_guest_list_flow(client, open_event_id):
    staged = client.post("/me/personal-guests", json={"name": "Alice"}, headers=auth("member-a"))
    guest_id = staged.json()["data"]["guest_id"]

    added = client.post(f"/events/{open_event_id}/guests/from-personal", json={"guest_id": guest_id}, headers=auth("member-a"))

    assert added.status_code == 201
    profile = client.get("/me", headers=auth("member-a")).json()["data"]
    assert list(profile["personalGuestList"]) == [guest_id]

def test_remove_guest_only_by_adder_or_admin(client, open_event_id):
    guest_id = client.post(f"/events/{open_event_id}/guests", json={"name": "Alice"}, headers=auth("member-a")).json()["data"]["guest_id"]

    assert client.delete(f"/events/{open_event_id}/guests/{guest_id}", headers=auth("social-1")).status_code == 403
    assert client.delete(f"/events/{open_event_id}/guests/{guest_id}", headers=auth("member-a")).status_code == 200

def test_unknown_event_is_404(client):
    response = client.post("/events/missing/guests", json={"name": "Alice"}, headers=auth("member-a"))

    assert response.status_code == 404
    assert response.json()["error_code"] == "not_found"

def test_stats_and_export(client, event_id):
    client.post(f"/events/{event_id}/front-door", headers=auth("admin-1"))
    guest_id = client.post(f"/events/{event_id}/guests", json={"name": "Eve"}, headers=auth("admin-1")).json()["data"]["guest_id"]
    client.post(f"/events/{event_id}/guests/{guest_id}/checkin", headers=auth("admin-1"))

    stats = client.get(f"/events/{event_id}/stats", headers=auth("social-1")).json()["data"]
    assert stats["total_guests"] == 1
    assert stats["checked_in"] == 1
    assert stats["top_inviter"] == "Admin-1"

    export = client.get(f"/events/{event_id}/export?format=csv", headers=auth("social-1"))
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert export.text.splitlines()[0] == "Guest Name,Added By,List,Checked In"

def test_export_rejects_unknown_format(client, event_id):
    assert client.get(f"/events/{event_id}/export?format=pdf", headers=auth("social-1")).status_code == 422

def test_admin_user_management(client):
    assert client.put("/admin/users/member-a/status", json={"status": "Social"}, headers=auth("admin-1")).status_code == 200
    assert client.put("/admin/users/pending/privileges", json={"privileges": True}, headers=auth("admin-1")).status_code == 422
    assert client.delete("/admin/users/admin-1", headers=auth("admin-1")).status_code == 403

    users = client.get("/admin/users", headers=auth("social-1")).json()["data"]
    assert {u["id"]: u["status"] for u in users}["member-a"] == "Social"

def test_guest_additions_are_rate_limited(client, open_event_id, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_PER_MINUTE", 2)

    codes = [
        client.post(f"/events/{open_event_id}/guests", json={"name": f"Guest {i}"}, headers=auth("admin-1")).status_code
        for i in range(3)
    ]

    assert codes == [201, 201, 429]

def test_websocket_connects_to_existing_event(client, event_id):
    with client.websocket_connect(f"/ws/events/{event_id}?token=member-a") as websocket:
        welcome = websocket.receive_json()
        assert welcome["type"] == "connection"
        assert welcome["event_id"] == event_id

        websocket.send_json({"type": "ping", "timestamp": 1})
        assert websocket.receive_json() == {"type": "pong", "timestamp": 1}

def test_websocket_receives_guest_list_changes(client, open_event_id):
    with client.websocket_connect(f"/ws/events/{open_event_id}?token=member-a") as websocket:
        websocket.receive_json()

        client.post(f"/events/{open_event_id}/guests", json={"name": "Alice"}, headers=auth("member-a"))

        update = websocket.receive_json()
        assert update["type"] == "guest_added"
        assert update["data"]["list"] == "guestList"

@pytest.mark.parametrize("query,close_code", [
    ("", 4401),
    ("?token=", 4401),
    ("?token=stranger", 4403),
    ("?token=pending", 4403),
])
def test_websocket_refuses_unapproved_viewers(client, event_id, query, close_code):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/events/{event_id}{query}") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == close_code

def test_websocket_unknown_event(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/events/missing?token=member-a") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4004

def test_bearer_uid_refused_outside_dev_mode(client, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DEV_MODE", False)

    response = client.post("/admin/blacklist", json={"name": "Mallory"}, headers=auth("admin-1"))

    assert response.status_code == 401
    monkeypatch.setattr(settings, "AUTH_DEV_MODE", True)
    assert client.get("/admin/blacklist", headers=auth("admin-1")).json()["data"] == []

def test_websocket_refused_outside_dev_mode(client, event_id, monkeypatch):
    monkeypatch.setattr(settings, "AUTH_DEV_MODE", False)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/ws/events/{event_id}?token=admin-1") as websocket:
            websocket.receive_json()

    assert exc_info.value.code == 4401

def test_vouch_refused_without_configured_password(client, event_id, monkeypatch):
    monkeypatch.setattr(settings, "VOUCH_PASSWORD", "")
    client.post(f"/events/{event_id}/front-door", headers=auth("admin-1"))

    response = client.post(f"/events/{event_id}/vouch", json={"name": "Walk In", "password": ""}, headers=auth("admin-1"))

    assert response.status_code == 403
    assert response.json()["error_code"] == "forbidden"
