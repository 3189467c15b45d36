"""Tests for src.routes.realtime and the HTTP surface in src.app."""

from __future__ import annotations

import pathlib
from collections.abc import Iterator

import pytest
from fastapi import testclient
from fakes import FakeObserver, FakeResolver, FakeSession, make_request, wait_until

from src import app as app_mod
from src import config
from src.models import traffic
from src.pipeline import monitor as monitor_mod
from src.pipeline.scan import ScanState
from src.routes import realtime


def _settings(**overrides: object) -> config.Settings:
    values: dict[str, object] = {
        "public_dir": "/nonexistent/war-room-public",
        "navigation_timeout_ms": 1000,
        "drain_period_ms": 0,
    }
    values.update(overrides)
    return config.Settings(**values)


def _session_factory() -> FakeSession:
    return FakeSession(
        [make_request("https://cdn.example.net/a.js", resource_type="script")],
        cookies=[traffic.CookieRecord(name="sid", value="1", domain="example.com")],
    )


@pytest.fixture()
def client() -> Iterator[testclient.TestClient]:
    app = app_mod.create_app(_settings(), resolver=FakeResolver(), session_factory=_session_factory)
    with testclient.TestClient(app) as test_client:
        yield test_client


# ── Message dispatch ────────────────────────────────────────────


class TestHandleMessage:
    def _monitor(self) -> monitor_mod.Monitor:
        return monitor_mod.build_monitor(_settings(), resolver=FakeResolver(), session_factory=_session_factory)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [None, "start-tracking", ["event"], {"data": "x"}, {"event": 7}, {"event": ""}])
    async def test_malformed_frames_ignored(self, raw: object) -> None:
        monitor = self._monitor()
        observer = FakeObserver()
        await realtime.handle_message(monitor, observer, raw)
        assert observer.frames == []
        assert monitor.controller.state is ScanState.IDLE

    @pytest.mark.asyncio
    async def test_unknown_event_ignored(self) -> None:
        monitor = self._monitor()
        observer = FakeObserver()
        await realtime.handle_message(monitor, observer, {"event": "stop-tracking"})
        assert observer.frames == []

    @pytest.mark.asyncio
    async def test_non_string_target_rejected_to_sender_only(self) -> None:
        monitor = self._monitor()
        sender, bystander = FakeObserver(), FakeObserver()
        monitor.broadcaster.register(sender)
        monitor.broadcaster.register(bystander)

        await realtime.handle_message(monitor, sender, {"event": "start-tracking", "data": {"url": "x"}})

        assert sender.statuses() == ["Error: Target URL must be a string"]
        assert bystander.frames == []
        assert monitor.controller.state is ScanState.IDLE

    @pytest.mark.asyncio
    async def test_start_tracking_runs_scan(self) -> None:
        monitor = self._monitor()
        observer = FakeObserver()
        monitor.broadcaster.register(observer)

        await realtime.handle_message(monitor, observer, {"event": "start-tracking", "data": "example.com"})
        await wait_until(lambda: monitor.controller.state is ScanState.COMPLETE)

        assert [f["event"] for f in observer.frames] == ["traffic-update", "cookie-update", "status"]
        assert len(monitor.history) == 1
        await monitor.close()

    @pytest.mark.asyncio
    async def test_request_history_replies_with_snapshot(self, sample_event: traffic.TrafficEvent) -> None:
        monitor = self._monitor()
        monitor.history.append(sample_event)
        observer = FakeObserver()

        await realtime.handle_message(monitor, observer, {"event": "request-history"})

        [frame] = observer.frames
        assert frame["event"] == "traffic-history"
        assert frame["data"][0]["domain"] == "cdn.example.net"


# ── WebSocket channel ───────────────────────────────────────────


class TestRealtimeChannel:
    def test_history_empty_before_any_scan(self, client: testclient.TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "request-history"})
            assert ws.receive_json() == {"event": "traffic-history", "data": []}

    def test_bad_frames_do_not_close_connection(self, client: testclient.TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json({"event": "self-destruct"})
            ws.send_json({"event": "request-history"})
            assert ws.receive_json()["event"] == "traffic-history"

    def test_non_string_target(self, client: testclient.TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "start-tracking", "data": 42})
            assert ws.receive_json() == {"event": "status", "data": "Error: Target URL must be a string"}

    def test_scan_streams_to_observer(self, client: testclient.TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "start-tracking", "data": "example.com"})

            update = ws.receive_json()
            assert update["event"] == "traffic-update"
            assert update["data"]["url"] == "https://cdn.example.net/a.js"
            assert update["data"]["resourceType"] == "script"
            assert update["data"]["isTracker"] is False

            cookies = ws.receive_json()
            assert cookies["event"] == "cookie-update"
            assert cookies["data"][0]["name"] == "sid"

            assert ws.receive_json() == {"event": "status", "data": "Scan Complete."}

            ws.send_json({"event": "request-history"})
            history = ws.receive_json()
            assert [e["url"] for e in history["data"]] == ["https://cdn.example.net/a.js"]

    def test_every_observer_receives_broadcasts(self, client: testclient.TestClient) -> None:
        with client.websocket_connect("/ws") as watcher, client.websocket_connect("/ws") as driver:
            driver.send_json({"event": "start-tracking", "data": "example.com"})
            frames = [watcher.receive_json() for _ in range(3)]
            assert [f["event"] for f in frames] == ["traffic-update", "cookie-update", "status"]


# ── HTTP surface ────────────────────────────────────────────────


class TestHttp:
    def test_health(self, client: testclient.TestClient) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "scanState": "idle", "observers": 0, "historySize": 0}

    def test_health_counts_observers(self, client: testclient.TestClient) -> None:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"event": "request-history"})
            ws.receive_json()
            assert client.get("/api/health").json()["observers"] == 1

    def test_static_ui_served(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "index.html").write_text("<h1>War Room</h1>")
        app = app_mod.create_app(_settings(public_dir=str(tmp_path)), resolver=FakeResolver(), session_factory=_session_factory)
        with testclient.TestClient(app) as test_client:
            response = test_client.get("/")
            assert response.status_code == 200
            assert "War Room" in response.text
            assert test_client.get("/api/health").json()["status"] == "ok"
