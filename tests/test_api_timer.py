"""
Integration tests for the timer endpoints, including persistence across
requests and recovery of stale state.
"""
import pytest

from timeapp.config import settings
from timeapp.timer import DEV_TAG


@pytest.fixture
def production(monkeypatch):
    monkeypatch.setattr(settings, "app_env", "production")


def test_idle_timer(client):
    state = client.get("/api/timer").json()
    assert state["is_running"] is False
    assert state["elapsed"] == 0
    assert state["elapsed_display"] == "00:00"


def test_full_cycle_saves_session(client, clock, production):
    client.patch("/api/timer", json={"name": "Deep work", "tags": ["writing"]})
    assert client.post("/api/timer/start").json()["is_running"] is True

    clock.advance(minutes=10)
    assert client.post("/api/timer/pause").json()["is_paused"] is True
    clock.advance(minutes=5)
    state = client.get("/api/timer").json()
    assert state["elapsed"] == 600

    client.post("/api/timer/resume")
    clock.advance(minutes=20)
    assert client.get("/api/timer").json()["elapsed_display"] == "30:00"

    resp = client.post("/api/timer/stop")
    assert resp.status_code == 200
    body = resp.json()
    assert body["session"]["duration_seconds"] == 1800
    assert body["session"]["name"] == "Deep work"
    assert body["session"]["tags"] == ["writing"]
    assert body["timer"]["is_running"] is False
    # name and tags carry over to the next session
    assert body["timer"]["session_name"] == "Deep work"

    listed = client.get("/api/sessions").json()
    assert listed["total_items"] == 1


def test_development_tag_outside_production(client, clock):
    client.post("/api/timer/start")
    clock.advance(seconds=30)
    session = client.post("/api/timer/stop").json()["session"]
    assert session["tags"] == [DEV_TAG]


def test_illegal_transitions_conflict(client):
    assert client.post("/api/timer/pause").status_code == 409
    assert client.post("/api/timer/stop").status_code == 409
    client.post("/api/timer/start")
    assert client.post("/api/timer/start").status_code == 409
    assert client.post("/api/timer/resume").status_code == 409


def test_backdated_start(client, clock):
    start = clock.now.replace(hour=8).isoformat()
    state = client.post("/api/timer/start", json={"start_time": start}).json()
    assert state["elapsed"] == 3600
    assert state["start_time_display"] == "08:00"


def test_defaults_from_settings(client):
    client.patch("/api/settings", json={"default_session_name": "Focus", "default_tags": ["daily"], "time_format": "12h"})
    state = client.post("/api/timer/start").json()
    assert state["session_name"] == "Focus"
    assert state["session_tags"] == ["daily"]
    assert state["start_time_display"] == "09:00 AM"


def test_reset_discards_running_session(client, clock):
    client.post("/api/timer/start", json={"name": "Oops"})
    clock.advance(minutes=3)
    state = client.post("/api/timer/reset").json()
    assert state["is_running"] is False
    assert state["session_name"] == "Oops"
    assert client.get("/api/sessions").json()["total_items"] == 0


def test_stale_timer_is_dropped(client, clock):
    client.post("/api/timer/start", json={"name": "Forgotten"})
    clock.advance(hours=25)
    state = client.get("/api/timer").json()
    assert state["is_running"] is False
    assert client.post("/api/timer/stop").status_code == 409


def test_time_format_survives_every_transition(client, clock):
    client.patch("/api/settings", json={"time_format": "12h"})
    client.post("/api/timer/start")
    assert client.post("/api/timer/pause").json()["start_time_display"] == "09:00 AM"
    assert client.patch("/api/timer", json={"name": "Later"}).json()["start_time_display"] == "09:00 AM"
    assert client.post("/api/timer/resume").json()["start_time_display"] == "09:00 AM"
    clock.advance(minutes=1)
    body = client.post("/api/timer/stop").json()
    assert body["session"]["display_start"].endswith("09:00 AM")


def test_rejected_stop_keeps_timer(client, clock):
    client.post("/api/timer/start")
    client.post("/api/timer/pause")
    clock.advance(minutes=5)
    resp = client.post("/api/timer/stop")
    assert resp.status_code == 400
    state = client.get("/api/timer").json()
    assert state["is_running"] is True
    assert state["is_paused"] is True
    assert client.get("/api/sessions").json()["total_items"] == 0
