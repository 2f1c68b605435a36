from __future__ import annotations

from concurrent.futures import Executor, Future

import pytest

from attendance_sync.main import create_app
from attendance_sync.realtime.bus import LocalRealtimeBus


class InlineExecutor(Executor):
    def submit(self, fn, *args, **kwargs):
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future


@pytest.fixture
def app(monkeypatch, store, scheduler, profiles, clock):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(
        store=store,
        scheduler=scheduler,
        profiles=profiles,
        bus=LocalRealtimeBus(),
        executor=InlineExecutor(),
        clock=clock,
    )
    yield app
    app.extensions["attendance_sync"].tracker.stop()


@pytest.fixture
def client(app):
    return app.test_client()


def test_today_before_clock_in(client):
    data = client.get("/api/session/today").get_json()

    assert data["session"] is None
    assert data["display"]["status"] == "ready"
    assert data["display"]["actions"] == ["clock_in"]
    assert data["elapsed"] == "00:00:00"


def test_clock_in_then_break(client, clock, store):
    resp = client.post(
        "/api/session/clock-in",
        json={"location": {"latitude": -6.2, "longitude": 106.8, "address": "HQ"}, "notes": "hi"},
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["session"]["status"] == "working"
    assert body["session"]["location"]["address"] == "HQ"

    clock.advance(hours=2)
    resp = client.post("/api/session/activities", json={"type": "break_start"})
    assert resp.status_code == 200
    assert resp.get_json()["totals"]["work"] == "02:00"
    assert resp.get_json()["can_start_break"] is False


def test_illegal_action_is_conflict(client):
    resp = client.post("/api/session/activities", json={"type": "break_end"})

    assert resp.status_code == 409
    assert resp.get_json()["error"] == "InvalidTransition"


def test_unknown_activity_type_is_bad_request(client):
    resp = client.post("/api/session/activities", json={"type": "nap"})

    assert resp.status_code == 400


def test_bad_coordinates_are_bad_request(client):
    resp = client.post("/api/session/clock-in", json={"location": {"latitude": 200, "longitude": 0}})

    assert resp.status_code == 400


def test_clock_out_twice(client):
    client.post("/api/session/clock-in", json={})
    assert client.post("/api/session/clock-out", json={}).status_code == 200

    resp = client.post("/api/session/clock-out", json={})

    assert resp.status_code == 409
    assert resp.get_json()["error"] == "NotClockedIn"


def test_history_and_roster(client):
    client.post("/api/session/clock-in", json={})

    history = client.get("/api/history?days=7").get_json()
    roster = client.get("/api/roster").get_json()
    sync = client.get("/api/sync/status").get_json()

    assert len(history["rows"]) == 1
    assert roster["counts"]["online"] == 1
    assert roster["employees"][0]["status_label"] == "Working"
    assert sync["state"] == "connected"


def test_history_rejects_non_numeric_days(client):
    assert client.get("/api/history?days=abc").status_code == 400
