"""Tests for the HTTP and WebSocket surface."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from shift_pilot.config import Settings
from shift_pilot.main import create_app

from tests.test_sample import M_PER_DEG


def _client(**overrides) -> TestClient:
    cfg = Settings(auto_detect=False, checkpoint_path=None, **overrides)
    return TestClient(create_app(cfg))


def _point(ts: int, east_m: float, speed: float = 10.0) -> dict:
    return {"latitude": 0.0, "longitude": east_m / M_PER_DEG, "speed": speed, "timestamp": ts}


class TestHealth:
    def test_health(self) -> None:
        body = _client().get("/health").json()
        assert body["status"] == "ok"
        assert body["tracking"] is False
        assert body["auto_detect_enabled"] is False
        assert [a["adapter_name"] for a in body["adapters"]] == ["device_location", "track_point"]

    def test_auto_detect_from_settings(self) -> None:
        client = TestClient(create_app(Settings(auto_detect=True)))
        body = client.get("/health").json()
        assert body["auto_detect_enabled"] is True
        assert body["detection_state"] == "idle"


class TestTripEndpoints:
    def test_stop_without_trip_is_conflict(self) -> None:
        client = _client()
        assert client.post("/api/trip/stop/request").status_code == 409
        assert client.post("/api/trip/stop/confirm").status_code == 409

    def test_complete_without_pending_is_conflict(self) -> None:
        response = _client().post("/api/trip/pending/complete", json={"purpose": "work"})
        assert response.status_code == 409

    def test_second_manual_start_is_conflict(self) -> None:
        client = _client()
        first = client.post("/api/trip/manual/start")
        assert first.status_code == 200
        assert first.json()["status"] == "started"
        second = client.post("/api/trip/manual/start")
        assert second.status_code == 409
        assert second.json()["detail"] == "session_active"

    def test_short_manual_trip_is_discarded(self) -> None:
        client = _client()
        client.post("/api/trip/manual/start")
        assert client.post("/api/trip/stop/request").json()["status"] == "confirm_required"
        body = client.post("/api/trip/stop/confirm").json()
        assert body["status"] == "discarded"
        assert body["reason"] == "too_short"
        assert client.app.state.broadcaster.recent[-1]["title"] == "Trip Not Saved"

    def test_cancel_keeps_tracking(self) -> None:
        client = _client()
        client.post("/api/trip/manual/start")
        client.post("/api/trip/stop/request")
        assert client.post("/api/trip/stop/cancel").json() == {"status": "tracking"}
        status = client.get("/api/trip").json()
        assert status["tracking"] is True
        assert status["stop_requested"] is False

    def test_full_manual_trip(self) -> None:
        client = _client(min_trip_duration_ms=0)
        client.post("/api/trip/manual/start")
        with client.websocket_connect("/ws/location") as ws:
            ws.send_json({"locations": [_point(1000, 0.0), _point(2000, 100.0), _point(3000, 200.0)]})
            ack = ws.receive_json()
        assert ack["status"] == "accepted"
        assert ack["delivered"] == 3

        status = client.get("/api/trip").json()
        assert status["session"]["distance_meters"] == pytest.approx(200.0)
        assert status["estimated_deduction"] >= 0.0

        confirmed = client.post("/api/trip/stop/confirm").json()
        assert confirmed["status"] == "pending_classification"
        assert confirmed["sample_count"] == 3

        saved = client.post(
            "/api/trip/pending/complete", json={"purpose": "work", "notes": "warehouse run"}
        ).json()
        assert saved["status"] == "saved"
        assert saved["trip_id"].startswith("trip_")
        assert len(client.app.state.ledger) == 1

    def test_discard_endpoint(self) -> None:
        client = _client()
        client.post("/api/trip/manual/start")
        assert client.post("/api/trip/pending/discard").json() == {"status": "discarded"}
        assert client.get("/api/trip").json()["tracking"] is False

    def test_auto_detect_toggle(self) -> None:
        client = _client()
        assert client.post("/api/auto-detect/enable").json() == {"auto_detect_enabled": True}
        assert client.post("/api/auto-detect/disable").json() == {"auto_detect_enabled": False}

    def test_app_state(self) -> None:
        client = _client()
        assert client.post("/api/app-state", json={"state": "background"}).json() == {
            "state": "background"
        }
        assert client.post("/api/app-state", json={"state": "asleep"}).status_code == 422

    def test_permissions_gate_auto_detect(self) -> None:
        client = _client()
        body = client.post(
            "/api/permissions", json={"foreground": "granted", "background": "denied"}
        ).json()
        assert body == {"foreground_access": True, "background_access": False}
        assert client.post("/api/auto-detect/enable").json() == {"auto_detect_enabled": False}


class TestLocationSocket:
    def test_single_sample(self) -> None:
        client = _client()
        with client.websocket_connect("/ws/location") as ws:
            ws.send_json(_point(1000, 0.0))
            ack = ws.receive_json()
        assert ack["status"] == "accepted"
        assert ack["received"] == 1
        assert ack["errors"] == []
        assert ack["tracking"] is False

    def test_bad_items_are_reported_and_skipped(self) -> None:
        client = _client()
        with client.websocket_connect("/ws/location") as ws:
            ws.send_json({"locations": [_point(1000, 0.0), {"latitude": 500}, "junk"]})
            ack = ws.receive_json()
        assert ack["delivered"] == 1
        assert [e["index"] for e in ack["errors"]] == [1, 2]

    def test_nothing_valid(self) -> None:
        client = _client()
        with client.websocket_connect("/ws/location") as ws:
            ws.send_json({"hello": "world"})
            ack = ws.receive_json()
        assert ack["status"] == "error"

    def test_provider_payload_goes_through_adapter(self) -> None:
        client = _client()
        payload = {
            "coords": {"latitude": 37.77, "longitude": -122.42, "accuracy": 5.0, "speed": None},
            "timestamp": 1000,
        }
        with client.websocket_connect("/ws/location") as ws:
            ws.send_json(payload)
            ack = ws.receive_json()
        assert ack["status"] == "accepted"
        stats = {s["adapter_name"]: s for s in client.get("/health").json()["adapters"]}
        assert stats["device_location"]["accepted_count"] == 1

    def test_denied_permission_drops_samples(self) -> None:
        client = _client()
        client.post("/api/permissions", json={"foreground": "denied", "background": "denied"})
        with client.websocket_connect("/ws/location") as ws:
            ws.send_json(_point(1000, 0.0))
            ack = ws.receive_json()
        assert ack["status"] == "dropped"
        assert ack["delivered"] == 0
        assert client.get("/health").json()["samples_dropped"] == 1


class TestServerEntryPoint:
    def test_main_runs_uvicorn_with_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import shift_pilot.main as main_module

        calls: list[tuple[tuple, dict]] = []
        monkeypatch.setattr(main_module.uvicorn, "run", lambda *a, **kw: calls.append((a, kw)))
        main_module.main()

        assert calls == [(
            ("shift_pilot.main:app",),
            {
                "host": main_module.settings.host,
                "port": main_module.settings.port,
                "reload": main_module.settings.debug,
            },
        )]
