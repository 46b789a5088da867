"""Pytest fixtures and configuration for Call Event Sync tests."""

import os
import pytest
from datetime import datetime, timezone
from typing import Dict, Any, Generator
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("CALL_STORE_BACKEND", "memory")
os.environ.setdefault("DEBUG", "true")

from src.core.database import InMemoryCallStore, SupabaseCallStore  # noqa: E402
from src.services.call_event_processor import CallEventProcessor  # noqa: E402


CALL_ID = "call_test_12345"
CAMPAIGN_ID = "camp_test_1"
CANDIDATE_ID = "cand_test_9"


# ===========================================
# Sample Data Fixtures
# ===========================================

@pytest.fixture
def event_time() -> datetime:
    """Fixed event timestamp."""
    return datetime(2025, 3, 4, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_call_started() -> Dict[str, Any]:
    """Dashboard-format call.started webhook."""
    return {
        "type": "call.started",
        "call_id": CALL_ID,
        "timestamp": "2025-03-04T10:30:00+00:00",
        "metadata": {"campaign_id": CAMPAIGN_ID, "candidate_id": CANDIDATE_ID},
    }


@pytest.fixture
def sample_call_ended() -> Dict[str, Any]:
    """Dashboard-format call.ended webhook."""
    return {
        "type": "call.ended",
        "call_id": CALL_ID,
        "timestamp": "2025-03-04T10:31:00+00:00",
        "metadata": {"campaign_id": CAMPAIGN_ID, "candidate_id": CANDIDATE_ID},
        "duration": 42,
    }


@pytest.fixture
def sample_call_analyzed() -> Dict[str, Any]:
    """Dashboard-format call.analyzed webhook."""
    return {
        "type": "call.analyzed",
        "call_id": CALL_ID,
        "timestamp": "2025-03-04T10:32:00+00:00",
        "metadata": {"campaign_id": CAMPAIGN_ID, "candidate_id": CANDIDATE_ID},
        "analysis": {
            "answers": ["true", False, True],
            "custom_answers": {"shift_preference": "nights"},
            "summary": "Candidate is available from Monday and knows the referee.",
            "sentiment": 0.9,
            "key_points": ["Available from Monday"],
            "objections": ["Commute is long"],
            "next_steps": "Schedule interview",
        },
        "transcript_url": "https://storage.retell.ai/transcripts/call_test_12345.txt",
        "recording_url": "https://storage.retell.ai/recordings/call_test_12345.wav",
    }


@pytest.fixture
def sample_call_failed() -> Dict[str, Any]:
    """Dashboard-format call.failed webhook."""
    return {
        "type": "call.failed",
        "call_id": CALL_ID,
        "timestamp": "2025-03-04T10:30:05+00:00",
        "error": "Number unreachable",
    }


@pytest.fixture
def sample_native_call_analyzed() -> Dict[str, Any]:
    """Native Retell call_analyzed webhook."""
    return {
        "event": "call_analyzed",
        "call": {
            "call_id": CALL_ID,
            "agent_id": "agent_test",
            "call_status": "ended",
            "start_timestamp": 1700000000000,
            "end_timestamp": 1700000180000,
            "metadata": {"campaign_id": CAMPAIGN_ID, "candidate_id": CANDIDATE_ID},
            "recording_url": "https://storage.retell.ai/recordings/call_test_12345.wav",
            "call_analysis": {
                "call_summary": (
                    "The candidate confirmed availability for the warehouse role. "
                    "They are interested but do not know the referee."
                ),
                "call_successful": True,
                "in_voicemail": False,
                "post_call_analysis_data": {
                    "question_0": "Yes",
                    "question_1": "true",
                    "question_2": "no",
                },
            },
        },
    }


# ===========================================
# Store and Processor Fixtures
# ===========================================

@pytest.fixture
def call_store() -> InMemoryCallStore:
    """Empty in-memory call store."""
    return InMemoryCallStore()


@pytest.fixture
def processor(call_store: InMemoryCallStore) -> CallEventProcessor:
    """Processor over the in-memory store with the default policy."""
    return CallEventProcessor(call_store)


@pytest.fixture
def mock_supabase() -> MagicMock:
    """Mock Supabase client."""
    mock = MagicMock()
    table = mock.table.return_value
    table.select.return_value.eq.return_value.limit.return_value.execute.return_value.data = []
    table.upsert.return_value.execute.return_value.data = [{"retell_call_id": CALL_ID}]
    table.update.return_value.eq.return_value.execute.return_value.data = [{"id": CANDIDATE_ID}]
    table.update.return_value.eq.return_value.eq.return_value.execute.return_value.data = []
    return mock


@pytest.fixture
def supabase_store(mock_supabase: MagicMock) -> SupabaseCallStore:
    """Supabase store wired to the mock client."""
    return SupabaseCallStore(client=mock_supabase)


# ===========================================
# Client Fixtures
# ===========================================

@pytest.fixture
def client(call_store: InMemoryCallStore) -> Generator[TestClient, None, None]:
    """Test client whose processor writes to the in-memory store."""
    from src.main import app
    from src.api.dependencies import get_event_processor

    app.dependency_overrides[get_event_processor] = lambda: CallEventProcessor(call_store)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ===========================================
# Pytest Configuration
# ===========================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
