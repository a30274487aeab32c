"""HTTP and websocket surface over a fake session runtime."""
from __future__ import annotations

import time


def _poll(fn, timeout: float = 5.0, interval: float = 0.02):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        value = fn()
        if value:
            return value
        time.sleep(interval)
    return None


class TestInfo:
    def test_root_lists_endpoints(self, api_client):
        r = api_client.get("/")
        assert r.status_code == 200
        assert r.json()["endpoints"]["session"] == "/api/session"

    def test_health_reports_ports_and_gallery(self, api_client):
        body = api_client.get("/health").json()
        assert body["status"] == "ok"
        assert body["scheduler"] == "stopped"
        assert body["ports"] == ["identity", "gesture", "object"]
        assert body["gallery_labels"] == ["Ana", "Ben"]
        assert body["gallery_missing"] == []


class TestSessionSnapshot:
    def test_empty_session(self, api_client):
        body = api_client.get("/api/session").json()
        assert body["attendance"] == []
        assert body["hand_raise_count"] == 0
        assert body["last_detected_object"] is None
        assert body["latest_cycle"] is None

    def test_no_cycle_yet_is_404(self, api_client):
        assert api_client.get("/api/session/cycle").status_code == 404


class TestSessionControls:
    def test_start_runs_cycles_and_stop_halts(self, api_client):
        r = api_client.post("/api/session/start", json={"period_ms": 10})
        assert r.status_code == 201
        assert r.json()["status"] == "started"
        assert r.json()["period_ms"] == 10

        cycle = _poll(lambda: api_client.get("/api/session/cycle").status_code == 200)
        assert cycle

        body = api_client.get("/api/session").json()
        assert body["attendance"] == ["Ana"]
        assert body["hand_raise_count"] == 1
        assert body["last_detected_object"] == "Textbook"

        r = api_client.post("/api/session/stop")
        assert r.status_code == 200
        assert r.json()["status"] == "stopped"

    def test_start_twice_conflicts(self, api_client):
        assert api_client.post("/api/session/start").status_code == 201
        r = api_client.post("/api/session/start")
        assert r.status_code == 409
        api_client.post("/api/session/stop")

    def test_stop_when_stopped_conflicts(self, api_client):
        assert api_client.post("/api/session/stop").status_code == 409

    def test_invalid_period_rejected(self, api_client):
        r = api_client.post("/api/session/start", json={"period_ms": 0})
        assert r.status_code == 422

    def test_reset_clears_attendance(self, api_client):
        api_client.post("/api/session/start", json={"period_ms": 10})
        assert _poll(lambda: api_client.get("/api/session").json()["attendance"])

        r = api_client.post("/api/session/reset")
        assert r.json() == {"status": "reset"}
        body = api_client.get("/api/session").json()
        assert body["attendance"] == []
        assert body["scheduler"]["state"] == "stopped"


class TestSessionWebsocket:
    def test_initial_snapshot(self, api_client):
        with api_client.websocket_connect("/api/session/ws") as ws:
            message = ws.receive_json()
        assert message["type"] == "session"
        assert message["attendance"] == []

    def test_pushes_updates_after_merges(self, api_client):
        with api_client.websocket_connect("/api/session/ws") as ws:
            ws.receive_json()
            api_client.post("/api/session/start", json={"period_ms": 10})
            update = ws.receive_json()
            api_client.post("/api/session/stop")
        assert update["type"] == "session"
        assert update["cycles_merged"] >= 1
