"""Call Event Processor - applies call lifecycle events to stored records."""

import logging
from datetime import datetime, timezone
from typing import Optional

from src.core.exceptions import InvalidEvent
from src.core.database import CallStore
from src.models import (
    CallEvent,
    CallAnalyzed,
    CallRecord,
    CallStatus,
    CandidateOutcomePolicy,
    ProcessingResult,
)
from src.services.call_state import (
    plan_call_update,
    resulting_status,
    build_analysis_record,
    build_candidate_outcome,
)

logger = logging.getLogger(__name__)


class CallEventProcessor:
    """
    Applies provider call events to the call store.

    Events arrive at least once and in any order, so every transition is
    safe to repeat. Storage failures propagate as PersistenceError; this
    class never retries.
    """

    def __init__(
        self,
        store: CallStore,
        outcome_policy: CandidateOutcomePolicy = CandidateOutcomePolicy.OVERWRITE
    ):
        self.store = store
        self.outcome_policy = outcome_policy

    async def process_event(self, event: CallEvent) -> ProcessingResult:
        """
        Apply one lifecycle event.

        Args:
            event: Typed call event

        Returns:
            ProcessingResult describing which records were written

        Raises:
            InvalidEvent: call_id is empty
            PersistenceError: the store rejected a read or write
        """
        if not event.call_id or not event.call_id.strip():
            raise InvalidEvent("Event has no call_id", {"type": event.type.value})

        call_id = event.call_id
        logger.info(f"Processing {event.type.value} for call {call_id}")

        record = await self.store.get_call_record(call_id)
        result = ProcessingResult(
            call_id=call_id,
            event_type=event.type,
            call_status=record.status if record else None,
        )

        if isinstance(event, CallAnalyzed):
            await self._apply_analysis(event, result)
            return result

        changes = plan_call_update(record, event)
        if changes:
            await self.store.upsert_call_record(call_id, changes)
            result.call_record_updated = True
            result.call_status = resulting_status(record, changes)
            logger.info(f"Call {call_id} -> {result.call_status.value}: {list(changes.keys())}")
        else:
            logger.info(f"No call record changes for {call_id} ({event.type.value})")

        return result

    async def _apply_analysis(self, event: CallAnalyzed, result: ProcessingResult) -> None:
        """Record the analysis and update the candidate it belongs to."""
        analysis = build_analysis_record(event)
        result.analysis_record_created = await self.store.insert_analysis_record(
            event.call_id,
            analysis.model_dump(exclude={"call_id"})
        )

        if not event.candidate_id:
            logger.info(f"No candidate_id on analysis for {event.call_id} - skipping candidate")
            return

        if (
            self.outcome_policy == CandidateOutcomePolicy.KEEP_FIRST
            and not result.analysis_record_created
        ):
            logger.info(f"Keeping first outcome for candidate {event.candidate_id}")
            return

        outcome = build_candidate_outcome(event)
        result.candidate_updated = await self.store.update_candidate_outcome(
            event.candidate_id,
            outcome.model_dump()
        )

        if result.candidate_updated:
            logger.info(
                f"Candidate {event.candidate_id} contacted: "
                f"available={outcome.available_to_work} "
                f"interested={outcome.interested} "
                f"knows_referee={outcome.knows_referee}"
            )

    # ===========================================
    # Outbound Call Bookkeeping
    # ===========================================

    async def register_call(
        self,
        call_id: str,
        campaign_id: Optional[str] = None,
        candidate_id: Optional[str] = None
    ) -> bool:
        """
        Create a pending call record when an outbound call is placed.

        Returns:
            False if the call is already known (its webhook may have
            arrived first)
        """
        if not call_id or not call_id.strip():
            raise InvalidEvent("Cannot register a call without call_id")

        if await self.store.get_call_record(call_id):
            logger.info(f"Call {call_id} already registered")
            return False

        await self.store.upsert_call_record(call_id, {
            "status": CallStatus.PENDING,
            "campaign_id": campaign_id,
            "candidate_id": candidate_id,
        })
        logger.info(f"Registered pending call {call_id} for campaign {campaign_id}")
        return True

    async def cancel_pending_calls(
        self,
        campaign_id: str,
        reason: str = "Batch cancelled by user"
    ) -> int:
        """
        Fail every pending call of a campaign.

        In-progress calls are left to complete naturally.
        """
        count = await self.store.fail_pending_calls(campaign_id, {
            "status": CallStatus.FAILED,
            "error_message": reason,
            "ended_at": datetime.now(timezone.utc),
        })
        logger.info(f"Cancelled {count} pending calls for campaign {campaign_id}")
        return count

    async def get_call(self, call_id: str) -> Optional[CallRecord]:
        """Fetch the current state of a call."""
        return await self.store.get_call_record(call_id)
