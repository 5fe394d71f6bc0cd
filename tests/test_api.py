"""
Tests for the HTTP command surface.

The client is used without entering the app lifespan, so no background sweep runs.
"""

import json
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from cache_monitor.core.events.event_bus import DomainEventBus
from cache_monitor.dependencies import (
    get_monitor_registry,
    get_platform_capabilities,
    get_scan_coordinator,
)
from cache_monitor.main import app
from cache_monitor.services.default_monitors import get_default_monitors
from cache_monitor.services.directory_scanner import DirectoryScannerService
from cache_monitor.services.platform import NullPlatformCapabilities
from cache_monitor.services.scan_coordinator import ScanCoordinator
from conftest import RecordingAlertSink, make_monitor


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    path = tmp_path / "config"
    monkeypatch.setenv("CACHE_MONITOR_CONFIG_DIR", str(path))
    return path


@pytest.fixture
def client(config_dir):
    app.dependency_overrides[get_platform_capabilities] = NullPlatformCapabilities
    yield TestClient(app)
    app.dependency_overrides.clear()


def monitor_payload(monitor_id, path, **overrides):
    return make_monitor(monitor_id, path, **overrides).model_dump(mode="json", by_alias=True)


class TestMonitorsEndpoints:

    def test_get_monitors_returns_defaults(self, client):
        response = client.get("/api/monitors")
        assert response.status_code == 200
        ids = [m["id"] for m in response.json()]
        assert ids == [m.id for m in get_default_monitors()]
        assert "thresholdMb" in response.json()[0]

    def test_save_and_reload(self, client, tmp_path, config_dir):
        payload = [monitor_payload("a", tmp_path / "a", max_depth=2)]
        response = client.put("/api/monitors", json=payload)
        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 1}

        assert client.get("/api/monitors").json() == payload
        assert json.loads((config_dir / "monitors.json").read_text(encoding="utf-8")) == payload

    def test_save_duplicate_ids_rejected(self, client, tmp_path):
        payload = [monitor_payload("a", tmp_path), monitor_payload("a", tmp_path)]
        response = client.put("/api/monitors", json=payload)
        assert response.status_code == 400

    def test_save_invalid_body_rejected(self, client):
        response = client.put("/api/monitors", json=[{"id": "a"}])
        assert response.status_code == 422

    def test_restore_defaults(self, client, tmp_path):
        client.put("/api/monitors", json=[monitor_payload("a", tmp_path)])
        response = client.post("/api/monitors/restore-defaults")
        assert response.status_code == 200
        assert len(response.json()) == len(get_default_monitors())

    def test_check_path(self, client, sample_tree):
        response = client.post("/api/monitors/check", json={"path": str(sample_tree), "maxDepth": 1})
        assert response.status_code == 200
        assert response.json() == {"sizeBytes": 30, "fileCount": 2, "error": None}

    def test_check_missing_path_reports_error(self, client, tmp_path):
        response = client.post("/api/monitors/check", json={"path": str(tmp_path / "gone")})
        assert response.status_code == 200
        assert response.json()["error"] == "Path not found"
        assert response.json()["sizeBytes"] == 0

    def test_check_streaming_starts_scan(self, client):
        coordinator = Mock()
        coordinator.start_streaming_scan.return_value = True
        app.dependency_overrides[get_scan_coordinator] = lambda: coordinator

        response = client.post(
            "/api/monitors/check-streaming",
            json={"monitorId": "temp", "path": "%TEMP%", "maxDepth": 0},
        )

        assert response.status_code == 200
        assert response.json() == {"monitorId": "temp", "started": True}
        coordinator.start_streaming_scan.assert_called_once_with("temp", "%TEMP%", 0)

    def test_mute_monitor(self, client, tmp_path):
        client.put("/api/monitors", json=[monitor_payload("a", tmp_path)])

        response = client.post("/api/monitors/a/mute")
        assert response.status_code == 200
        assert client.get("/api/monitors").json()[0]["notify"] is False

    def test_mute_unknown_monitor(self, client, tmp_path):
        client.put("/api/monitors", json=[monitor_payload("a", tmp_path)])
        assert client.post("/api/monitors/nope/mute").status_code == 404

    def test_export_then_import(self, client, tmp_path):
        payload = [monitor_payload("a", tmp_path), monitor_payload("b", tmp_path, enabled=False)]
        client.put("/api/monitors", json=payload)
        export_file = tmp_path / "export.json"

        assert client.post("/api/monitors/export", json={"path": str(export_file)}).status_code == 200
        client.post("/api/monitors/restore-defaults")

        response = client.post("/api/monitors/import", json={"path": str(export_file)})
        assert response.status_code == 200
        assert response.json()["count"] == 2
        assert client.get("/api/monitors").json() == payload

    def test_import_invalid_file_leaves_registry_untouched(self, client, tmp_path):
        payload = [monitor_payload("a", tmp_path)]
        client.put("/api/monitors", json=payload)
        bad = tmp_path / "bad.json"
        bad.write_text('{"not": "a list"}', encoding="utf-8")

        assert client.post("/api/monitors/import", json={"path": str(bad)}).status_code == 400
        assert client.get("/api/monitors").json() == payload

    def test_import_missing_file(self, client, tmp_path):
        response = client.post("/api/monitors/import", json={"path": str(tmp_path / "nope.json")})
        assert response.status_code == 500


class TestSystemEndpoints:

    def test_settings_round_trip(self, client):
        assert client.get("/api/settings").json() == {"minimizeToTray": True, "checkIntervalMinutes": 60}

        response = client.put("/api/settings", json={"minimizeToTray": False, "checkIntervalMinutes": 15})
        assert response.status_code == 200
        assert client.get("/api/settings").json() == {"minimizeToTray": False, "checkIntervalMinutes": 15}

    def test_settings_reject_zero_interval(self, client):
        response = client.put("/api/settings", json={"minimizeToTray": True, "checkIntervalMinutes": 0})
        assert response.status_code == 422

    def test_accent_color_unavailable(self, client):
        assert client.get("/api/accent-color").json() == {"accentColor": None}

    def test_open_config_folder(self, client, config_dir):
        response = client.post("/api/config/open-folder")
        assert response.json() == {"opened": False, "path": str(config_dir)}

    def test_notification_test_goes_through_alert_sink(self, client):
        sink = RecordingAlertSink()
        coordinator = ScanCoordinator(
            get_monitor_registry(), DirectoryScannerService(), sink, DomainEventBus()
        )
        app.dependency_overrides[get_scan_coordinator] = lambda: coordinator

        response = client.post(
            "/api/notifications/test",
            json={"id": "temp", "name": "Temp", "path": "%TEMP%", "currentMb": 1500, "threshold": 1000},
        )

        assert response.status_code == 200
        assert len(sink.alerts) == 1
        assert sink.alerts[0].current_size_bytes == 1500 * 1024 * 1024
        assert sink.alerts[0].threshold_mb == 1000

    def test_status(self, client):
        status = client.get("/api/status").json()
        assert status["is_running"] is False
        assert status["active_streaming_scans"] == []
        assert status["platform"] == "none"
        assert status["websocket_clients"] == 0

    def test_health(self, client):
        response = client.get("/health")
        assert response.json()["sweep_running"] is False
