"""Tests for the local HTTP API."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import make_sessions
from slopboard_tracker import main
from slopboard_tracker.config import Settings
from slopboard_tracker.exceptions import DeliveryError
from slopboard_tracker.tracker_service import TrackerService


@pytest.fixture
def service(tmp_path, store, backend, clock):
    return TrackerService(
        settings=Settings(API_KEY="test-key", DATA_DIR=tmp_path),
        store=store,
        backend=backend,
        clock=clock,
        sleep=AsyncMock(),
    )


@pytest.fixture
def client(service, monkeypatch):
    """Client against the app with a test service and no lifespan."""
    monkeypatch.setattr(main, "tracker_service", service, raising=False)
    return TestClient(main.app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["tracking"] is False


def test_status_reports_queue(client, store):
    store.sessions.extend(make_sessions(4))
    data = client.get("/status").json()
    assert data["tracking"] is False
    assert data["queue"]["queued"] == 4


def test_activity_ignored_when_not_tracking(client):
    response = client.post("/activity", json={"target": {"path": "/work/demo/app.py"}})
    assert response.status_code == 200
    assert response.json() == {"state": "idle"}


def test_start_without_api_key_conflicts(client, backend):
    backend.has_credential = False
    response = client.post("/tracking/start", json={})
    assert response.status_code == 409


def test_invalid_api_key_rejected(client, backend):
    backend.validate_api_key = AsyncMock(return_value=False)
    response = client.post("/config/api-key", json={"api_key": "nope"})
    assert response.status_code == 400


def test_api_key_validation_unreachable(client, backend):
    backend.validate_api_key = AsyncMock(side_effect=DeliveryError("offline"))
    response = client.post("/config/api-key", json={"api_key": "maybe"})
    assert response.status_code == 502


def test_update_config(client, service):
    response = client.patch("/config", json={"idle_threshold_seconds": 300, "upload_batch_size": 20})
    assert response.status_code == 200
    assert response.json()["idle_threshold_seconds"] == 300
    assert service.queue.batch_size == 20


def test_update_config_validates_upload_interval(client):
    response = client.patch("/config", json={"upload_interval_seconds": 10})
    assert response.status_code == 422


def test_sync_sends_queue(client, store, backend):
    store.sessions.extend(make_sessions(3))
    data = client.post("/sync").json()
    assert data == {"status": "sent", "sent": 3, "remaining": 0}
    backend.send_batch.assert_awaited_once()


def test_summary(client):
    data = client.get("/summary").json()
    assert data["today_total"] == 0
    assert data["recent_sessions"] == []
