"""Tests for webhook and call API endpoints."""

import pytest
from unittest.mock import patch, AsyncMock
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.core.exceptions import PersistenceError
from src.models import CallStatus

from tests.conftest import CALL_ID, CAMPAIGN_ID, CANDIDATE_ID


class TestRetellWebhook:
    """Tests for POST /webhook/retell endpoint."""

    def test_call_started(self, client: TestClient, call_store, sample_call_started):
        """Started event is processed and acknowledged."""
        response = client.post("/webhook/retell", json=sample_call_started)

        assert response.status_code == 200
        data = response.json()
        assert data["received"] is True
        assert data["status"] == "processed"
        assert data["result"]["call_record_updated"] is True
        assert data["result"]["call_status"] == "in_progress"
        assert "processed_at" in data
        assert data["duration_ms"] >= 0
        assert call_store.calls[CALL_ID].status == CallStatus.IN_PROGRESS

    def test_full_lifecycle(
        self,
        client: TestClient,
        call_store,
        sample_call_started,
        sample_call_ended,
        sample_call_analyzed
    ):
        """Started, ended and analyzed webhooks update all records."""
        for payload in (sample_call_started, sample_call_ended, sample_call_analyzed):
            assert client.post("/webhook/retell", json=payload).status_code == 200

        record = call_store.calls[CALL_ID]
        assert record.status == CallStatus.COMPLETED
        assert record.duration_seconds == 42
        assert call_store.analyses[CALL_ID].transcript_url.endswith(".txt")

        outcome = call_store.candidates[CANDIDATE_ID]
        assert outcome.available_to_work is True
        assert outcome.interested is False
        assert outcome.knows_referee is True
        assert outcome.custom_responses == {"shift_preference": "nights"}

    def test_native_payload(self, client: TestClient, call_store, sample_native_call_analyzed):
        """Native Retell payloads are accepted too."""
        response = client.post("/webhook/retell", json=sample_native_call_analyzed)

        assert response.status_code == 200
        assert response.json()["result"]["candidate_updated"] is True
        assert call_store.candidates[CANDIDATE_ID].interested is True

    def test_nested_body(self, client: TestClient, sample_call_failed):
        """Body wrapped in {"body": ...} is unwrapped."""
        response = client.post("/webhook/retell", json={"body": sample_call_failed})

        assert response.status_code == 200
        assert response.json()["result"]["call_status"] == "failed"

    def test_empty_call_id_acknowledged_without_writes(self, client: TestClient, call_store):
        """Invalid events are logged and acknowledged, never stored."""
        response = client.post("/webhook/retell", json={"type": "call.started", "call_id": ""})

        assert response.status_code == 200
        data = response.json()
        assert data["received"] is True
        assert data["status"] == "invalid"
        assert call_store.writes == []

    def test_infinite_duration_acknowledged(self, client: TestClient, call_store):
        response = client.post(
            "/webhook/retell",
            content=b'{"type": "call.ended", "call_id": "call_x", "duration": Infinity}',
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "invalid"
        assert call_store.writes == []

    def test_invalid_json(self, client: TestClient):
        response = client.post(
            "/webhook/retell",
            content=b"not json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "invalid"

    def test_unknown_event_ignored(self, client: TestClient, call_store):
        response = client.post(
            "/webhook/retell",
            json={"type": "call.transferred", "call_id": CALL_ID}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ignored"
        assert "call.transferred" in data["message"]
        assert call_store.writes == []

    def test_persistence_error_acknowledged(self, client: TestClient, call_store, sample_call_started):
        """Storage failures are acknowledged by default."""
        error = PersistenceError("get_call_record", CALL_ID, "connection refused")
        with patch.object(call_store, "get_call_record", AsyncMock(side_effect=error)):
            response = client.post("/webhook/retell", json=sample_call_started)

        assert response.status_code == 200
        assert response.json()["status"] == "error"

    def test_persistence_error_strict(self, client: TestClient, call_store, sample_call_started):
        """Storage failures return 500 when acknowledgement is disabled."""
        error = PersistenceError("get_call_record", CALL_ID, "connection refused")
        strict = Settings(ACKNOWLEDGE_ON_PERSISTENCE_ERROR=False)
        with patch.object(call_store, "get_call_record", AsyncMock(side_effect=error)), \
                patch("src.api.webhooks.get_settings", return_value=strict):
            response = client.post("/webhook/retell", json=sample_call_started)

        assert response.status_code == 500
        assert "Failed to process" in response.json()["detail"]

    def test_unexpected_error(self, client: TestClient, call_store, sample_call_started):
        """Unexpected exceptions return 500."""
        with patch.object(call_store, "get_call_record", AsyncMock(side_effect=RuntimeError("bug"))):
            response = client.post("/webhook/retell", json=sample_call_started)

        assert response.status_code == 500

    @pytest.mark.parametrize("method", ["get", "put", "patch", "delete"])
    def test_method_not_allowed(self, client: TestClient, method):
        response = client.request(method.upper(), "/webhook/retell")

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}

    def test_options(self, client: TestClient):
        response = client.options("/webhook/retell")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestCallEndpoints:
    """Tests for /calls endpoints."""

    def test_register_and_get(self, client: TestClient):
        response = client.post(
            "/calls",
            json={"call_id": CALL_ID, "campaign_id": CAMPAIGN_ID, "candidate_id": CANDIDATE_ID}
        )

        assert response.status_code == 201
        assert response.json() == {"call_id": CALL_ID, "registered": True}

        response = client.get(f"/calls/{CALL_ID}")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["candidate_id"] == CANDIDATE_ID

    def test_register_twice(self, client: TestClient):
        client.post("/calls", json={"call_id": CALL_ID})
        response = client.post("/calls", json={"call_id": CALL_ID})

        assert response.json()["registered"] is False

    def test_register_blank_call_id(self, client: TestClient):
        response = client.post("/calls", json={"call_id": " "})

        assert response.status_code == 400

    def test_get_not_found(self, client: TestClient):
        response = client.get("/calls/nonexistent_id")

        assert response.status_code == 404
        assert "not found" in response.json()["detail"]

    def test_cancel_pending(self, client: TestClient, call_store):
        client.post("/calls", json={"call_id": "call_a", "campaign_id": CAMPAIGN_ID})
        client.post("/calls", json={"call_id": "call_b", "campaign_id": CAMPAIGN_ID})

        response = client.post(
            f"/calls/campaigns/{CAMPAIGN_ID}/cancel-pending",
            json={"reason": "Campaign paused"}
        )

        assert response.status_code == 200
        assert response.json() == {"campaign_id": CAMPAIGN_ID, "cancelled": 2}
        assert call_store.calls["call_a"].error_message == "Campaign paused"

    def test_cancel_pending_default_reason(self, client: TestClient, call_store):
        client.post("/calls", json={"call_id": "call_a", "campaign_id": CAMPAIGN_ID})

        response = client.post(f"/calls/campaigns/{CAMPAIGN_ID}/cancel-pending")

        assert response.json()["cancelled"] == 1
        assert call_store.calls["call_a"].error_message == "Batch cancelled by user"


class TestTestEndpoints:
    """Tests for /test/* endpoints."""

    def test_health_check(self, client: TestClient):
        response = client.get("/test/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "call-event-sync"

    def test_replay(self, client: TestClient, sample_call_ended):
        response = client.post("/test/replay", json=sample_call_ended)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["data"]["call_status"] == "completed"

    def test_replay_reports_persistence_error(self, client: TestClient, call_store, sample_call_ended):
        error = PersistenceError("upsert_call_record", CALL_ID, "timeout")
        with patch.object(call_store, "upsert_call_record", AsyncMock(side_effect=error)):
            response = client.post("/test/replay", json=sample_call_ended)

        data = response.json()
        assert data["status"] == "error"
        assert data["data"] == {"operation": "upsert_call_record", "target": CALL_ID}


class TestRootEndpoint:
    """Tests for root endpoint."""

    def test_root_endpoint(self, client: TestClient):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Call Event Sync"
        assert data["version"] == "1.0.0"
        assert data["status"] == "running"
        assert "retell" in data["endpoints"]["webhooks"]
