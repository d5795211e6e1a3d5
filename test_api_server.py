"""Tests for the REST API."""

import pytest
from fastapi.testclient import TestClient

from api_server import create_app
from notifications import NotificationCenter
from reminder_scheduler import ReminderScheduler
from schemas import FALLBACK_DISPLAY_NAME


@pytest.fixture
def client(session_factory, store, center, scheduler):
    app = create_app(session_factory, notification_center=center, scheduler=scheduler)
    app.state.store = store
    return TestClient(app)


def add(client, name):
    response = client.post("/people", json={"name": name})
    assert response.status_code == 201
    return response.json()


def listed_names(client):
    return [p["name"] for p in client.get("/people").json()]


def test_healthcheck(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["people"] == 0


def test_help_text(client):
    body = client.get("/help").json()
    assert body["title"] == "People"
    assert body["paragraphs"][1] == "It doesn't do much."


def test_add_person_schedules_weekly_reminder(client):
    body = add(client, "Alice")

    assert body["person"]["name"] == "Alice"
    assert body["person"]["display_name"] == "Alice"
    reminder = body["reminder"]
    assert reminder["trigger"]["type"] == "calendar"
    assert reminder["trigger"]["repeats"] is True

    pending = client.get("/notifications/pending").json()
    assert [p["id"] for p in pending] == [reminder["identifier"]]
    assert pending[0]["title"] == "wei?"
    assert pending[0]["user_info"]["contact_name"] == "Alice"


def test_people_scenario(client, clock):
    alice = add(client, "Alice")["person"]
    clock.advance(seconds=1)
    bob = add(client, "Bob")["person"]
    assert listed_names(client) == ["Alice", "Bob"]

    clock.advance(seconds=1)
    touched = client.post(f"/people/{alice['id']}/touch")
    assert touched.status_code == 200
    assert touched.json()["id"] == alice["id"]
    assert listed_names(client) == ["Bob", "Alice"]

    deleted = client.delete(f"/people/{bob['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["deleted"] is True
    assert listed_names(client) == ["Alice"]

    again = client.delete(f"/people/{bob['id']}")
    assert again.status_code == 200
    assert again.json()["deleted"] is False


def test_missing_names_render_with_fallback(client):
    add(client, "")
    add(client, None)

    people = client.get("/people").json()
    assert [p["name"] for p in people] == ["", None]
    assert all(p["display_name"] == FALLBACK_DISPLAY_NAME for p in people)


def test_unknown_person(client):
    assert client.get("/people/nope").status_code == 404
    assert client.post("/people/nope/touch").status_code == 404


def test_get_person(client):
    alice = add(client, "Alice")["person"]
    response = client.get(f"/people/{alice['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Alice"


def test_add_person_without_notification_permission(session_factory, store, clock):
    center = NotificationCenter(session_factory, authorized=False, clock=clock)
    app = create_app(session_factory, notification_center=center, scheduler=ReminderScheduler(center))
    app.state.store = store
    client = TestClient(app)

    body = add(client, "Alice")

    assert body["reminder"] is None
    assert listed_names(client) == ["Alice"]
    assert client.get("/notifications/pending").json() == []


def test_clear_pending(client):
    add(client, "Alice")
    add(client, "Bob")

    response = client.delete("/notifications/pending")
    assert response.json()["removed"] == 2
    assert client.get("/notifications/pending").json() == []


def test_add_person_survives_reminder_failure(session_factory, store, center):
    scheduler = ReminderScheduler(center, trigger_mode="interval", debug_delay_seconds=0)
    app = create_app(session_factory, notification_center=center, scheduler=scheduler)
    app.state.store = store
    client = TestClient(app)

    body = add(client, "Alice")

    assert body["reminder"] is None
    assert listed_names(client) == ["Alice"]
