"""Call stores - persistence for call records, analyses and candidate outcomes."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Optional, Dict, Any, List, Tuple
from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from src.core.config import get_settings
from src.core.exceptions import PersistenceError
from src.models import (
    CallRecord,
    CallStatus,
    CallAnalysisRecord,
    CandidateContactOutcome,
)

logger = logging.getLogger(__name__)


class CallStore(ABC):
    """
    Storage boundary used by the call event processor.

    Implementations own row-level atomicity. Every method either succeeds
    or raises PersistenceError.
    """

    @abstractmethod
    async def get_call_record(self, call_id: str) -> Optional[CallRecord]:
        """Fetch a call record, or None if the call is unknown."""

    @abstractmethod
    async def upsert_call_record(self, call_id: str, fields: Dict[str, Any]) -> None:
        """Create the call record or update the given fields."""

    @abstractmethod
    async def insert_analysis_record(self, call_id: str, fields: Dict[str, Any]) -> bool:
        """Insert the analysis for a call. Returns False if one already exists."""

    @abstractmethod
    async def update_candidate_outcome(self, candidate_id: str, fields: Dict[str, Any]) -> bool:
        """Update a campaign candidate. Returns False if no candidate matched."""

    @abstractmethod
    async def fail_pending_calls(self, campaign_id: str, fields: Dict[str, Any]) -> int:
        """Apply fields to every pending call of a campaign. Returns the count."""


# ===========================================
# In-Memory Store
# ===========================================

class InMemoryCallStore(CallStore):
    """
    Dict-backed store for tests and local runs.

    Candidates are created on first update. Every successful write is
    appended to ``writes`` as (operation, key).
    """

    def __init__(self):
        self.calls: Dict[str, CallRecord] = {}
        self.analyses: Dict[str, CallAnalysisRecord] = {}
        self.candidates: Dict[str, CandidateContactOutcome] = {}
        self.writes: List[Tuple[str, str]] = []

    async def get_call_record(self, call_id: str) -> Optional[CallRecord]:
        record = self.calls.get(call_id)
        return record.model_copy() if record else None

    async def upsert_call_record(self, call_id: str, fields: Dict[str, Any]) -> None:
        current = self.calls.get(call_id) or CallRecord(call_id=call_id)
        self.calls[call_id] = current.model_copy(update=fields)
        self.writes.append(("upsert_call_record", call_id))

    async def insert_analysis_record(self, call_id: str, fields: Dict[str, Any]) -> bool:
        if call_id in self.analyses:
            return False
        self.analyses[call_id] = CallAnalysisRecord(**{**fields, "call_id": call_id})
        self.writes.append(("insert_analysis_record", call_id))
        return True

    async def update_candidate_outcome(self, candidate_id: str, fields: Dict[str, Any]) -> bool:
        current = self.candidates.get(candidate_id) or CandidateContactOutcome()
        self.candidates[candidate_id] = current.model_copy(update=fields)
        self.writes.append(("update_candidate_outcome", candidate_id))
        return True

    async def fail_pending_calls(self, campaign_id: str, fields: Dict[str, Any]) -> int:
        count = 0
        for call_id, record in self.calls.items():
            if record.campaign_id == campaign_id and record.status == CallStatus.PENDING:
                self.calls[call_id] = record.model_copy(update=fields)
                self.writes.append(("fail_pending_calls", call_id))
                count += 1
        return count


# ===========================================
# Supabase Store
# ===========================================

def _serialize(value: Any) -> Any:
    """Convert model values to JSON-safe column values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _to_columns(fields: Dict[str, Any], column_map: Dict[str, str]) -> Dict[str, Any]:
    return {column_map.get(key, key): _serialize(value) for key, value in fields.items()}


class SupabaseCallStore(CallStore):
    """
    Call store backed by Supabase tables.

    Uses the sync Supabase client behind the async interface, like every
    other service in the application.
    """

    CALL_COLUMNS = {"call_id": "retell_call_id", "status": "call_status"}
    ANALYSIS_COLUMNS = {
        "call_id": "retell_call_id",
        "candidate_id": "campaign_candidate_id",
        "knows_referee": "know_referee",
    }
    CANDIDATE_COLUMNS = {
        "knows_referee": "know_referee",
        "last_contact_at": "last_contact",
        "contact_status": "call_status",
    }
    # Stored on the analysis record only; campaign_candidates has no such column
    CANDIDATE_EXCLUDED_FIELDS = {"custom_responses"}

    def __init__(self, client: Optional[Client] = None):
        """Initialize with an optional pre-built Supabase client."""
        settings = get_settings()
        self._client = client
        self.calls_table = settings.CALLS_TABLE
        self.analysis_table = settings.CALL_ANALYSIS_TABLE
        self.candidates_table = settings.CANDIDATES_TABLE

    @property
    def client(self) -> Client:
        """Lazy initialization of Supabase client."""
        if self._client is None:
            settings = get_settings()
            if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
                raise ValueError("Supabase credentials not configured")

            self._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_KEY,
                options=ClientOptions(
                    postgrest_client_timeout=30,
                    storage_client_timeout=30
                )
            )
            logger.info("Supabase client initialized")
        return self._client

    # ===========================================
    # Call Records
    # ===========================================

    async def get_call_record(self, call_id: str) -> Optional[CallRecord]:
        """Fetch call record by Retell call ID."""
        try:
            response = (
                self.client.table(self.calls_table)
                .select("*")
                .eq("retell_call_id", call_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to get call record {call_id}: {e}")
            raise PersistenceError("get_call_record", call_id, str(e)) from e

        if not response.data:
            return None

        row = response.data[0]
        return CallRecord(
            call_id=row["retell_call_id"],
            status=row.get("call_status") or CallStatus.PENDING,
            campaign_id=row.get("campaign_id"),
            candidate_id=row.get("candidate_id"),
            started_at=row.get("started_at"),
            ended_at=row.get("ended_at"),
            duration_seconds=row.get("duration_seconds"),
            error_message=row.get("error_message"),
        )

    async def upsert_call_record(self, call_id: str, fields: Dict[str, Any]) -> None:
        """Insert or update a call record keyed by Retell call ID."""
        row = _to_columns(fields, self.CALL_COLUMNS)
        row["retell_call_id"] = call_id

        try:
            (
                self.client.table(self.calls_table)
                .upsert(row, on_conflict="retell_call_id")
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to upsert call record {call_id}: {e}")
            raise PersistenceError("upsert_call_record", call_id, str(e)) from e

        logger.info(f"Upserted call record {call_id}: {list(fields.keys())}")

    async def fail_pending_calls(self, campaign_id: str, fields: Dict[str, Any]) -> int:
        """Mark all pending calls of a campaign as failed."""
        try:
            response = (
                self.client.table(self.calls_table)
                .update(_to_columns(fields, self.CALL_COLUMNS))
                .eq("campaign_id", campaign_id)
                .eq("call_status", CallStatus.PENDING.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to cancel pending calls for campaign {campaign_id}: {e}")
            raise PersistenceError("fail_pending_calls", campaign_id, str(e)) from e

        return len(response.data or [])

    # ===========================================
    # Analysis Records
    # ===========================================

    async def insert_analysis_record(self, call_id: str, fields: Dict[str, Any]) -> bool:
        """Insert analysis unless the call already has one."""
        row = _to_columns(fields, self.ANALYSIS_COLUMNS)
        row["retell_call_id"] = call_id

        try:
            response = (
                self.client.table(self.analysis_table)
                .upsert(row, on_conflict="retell_call_id", ignore_duplicates=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to save analysis for {call_id}: {e}")
            raise PersistenceError("insert_analysis_record", call_id, str(e)) from e

        created = bool(response.data)
        if not created:
            logger.info(f"Analysis already recorded for {call_id}")
        return created

    # ===========================================
    # Campaign Candidates
    # ===========================================

    async def update_candidate_outcome(self, candidate_id: str, fields: Dict[str, Any]) -> bool:
        """Update a campaign candidate with call outcome fields."""
        fields = {
            key: value for key, value in fields.items()
            if key not in self.CANDIDATE_EXCLUDED_FIELDS
        }
        try:
            response = (
                self.client.table(self.candidates_table)
                .update(_to_columns(fields, self.CANDIDATE_COLUMNS))
                .eq("id", candidate_id)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to update candidate {candidate_id}: {e}")
            raise PersistenceError("update_candidate_outcome", candidate_id, str(e)) from e

        if response.data:
            return True

        logger.warning(f"Update returned no data for candidate {candidate_id}")
        return False


@lru_cache()
def get_call_store() -> CallStore:
    """Get the process-wide call store selected by settings."""
    backend = get_settings().CALL_STORE_BACKEND.lower()
    if backend == "memory":
        logger.info("Using in-memory call store")
        return InMemoryCallStore()
    if backend == "supabase":
        return SupabaseCallStore()
    raise ValueError(f"Unknown call store backend: {backend}")
