"""
Call lifecycle state machine.

Pure functions from (current call record, event) to the writes the event
implies. Nothing here touches storage; the processor applies the result.

Status only moves forward: pending -> in_progress -> completed | failed.
Once a call is completed or failed, later events may fill in fields that are
still empty but never change the status.
"""

from typing import Any, Dict, Optional

from src.models import (
    CallEvent,
    CallStarted,
    CallEnded,
    CallAnalyzed,
    CallFailed,
    CallRecord,
    CallStatus,
    CallAnalysisRecord,
    CandidateContactOutcome,
    ContactStatus,
)

CONTEXT_FIELDS = ("campaign_id", "candidate_id")


def _proposed_fields(event: CallEvent) -> Dict[str, Any]:
    """Fields the event would write to a non-terminal call record."""
    if isinstance(event, CallStarted):
        return {
            "status": CallStatus.IN_PROGRESS,
            "started_at": event.occurred_at,
        }
    if isinstance(event, CallEnded):
        return {
            "status": CallStatus.COMPLETED,
            "ended_at": event.occurred_at,
            "duration_seconds": event.duration_seconds,
        }
    if isinstance(event, CallFailed):
        return {
            "status": CallStatus.FAILED,
            "ended_at": event.occurred_at,
            "error_message": event.error_message or "Unknown error",
        }
    return {}


def plan_call_update(record: Optional[CallRecord], event: CallEvent) -> Dict[str, Any]:
    """
    Compute the call record changes for an event.

    Args:
        record: Current call record, or None if the call is unknown
        event: Incoming lifecycle event

    Returns:
        Only the fields whose value changes. An empty dict means the event
        is a no-op for the call record (duplicates, analyzed events).
    """
    proposed = _proposed_fields(event)
    if not proposed:
        return {}

    for key in CONTEXT_FIELDS:
        value = getattr(event, key)
        if value and (record is None or getattr(record, key) is None):
            proposed[key] = value

    if record is None:
        return proposed

    if record.status.is_terminal:
        proposed.pop("status")
        if record.status != CallStatus.FAILED:
            proposed.pop("error_message", None)
        return {
            key: value for key, value in proposed.items()
            if getattr(record, key) is None
        }

    return {
        key: value for key, value in proposed.items()
        if getattr(record, key) != value
    }


def resulting_status(record: Optional[CallRecord], changes: Dict[str, Any]) -> Optional[CallStatus]:
    """Status of the call after applying changes."""
    if "status" in changes:
        return changes["status"]
    return record.status if record else None


def build_analysis_record(event: CallAnalyzed) -> CallAnalysisRecord:
    """Flatten an analyzed event into its write-once analysis record."""
    analysis = event.analysis
    return CallAnalysisRecord(
        call_id=event.call_id,
        campaign_id=event.campaign_id,
        candidate_id=event.candidate_id,
        available_to_work=analysis.answers.available_to_work,
        interested=analysis.answers.interested,
        knows_referee=analysis.answers.knows_referee,
        custom_responses=analysis.custom_answers,
        call_summary=analysis.summary,
        sentiment_score=analysis.sentiment,
        key_points=analysis.key_points,
        objections=analysis.objections,
        next_steps=analysis.next_steps or "",
        transcript_url=analysis.transcript_url,
        recording_url=analysis.recording_url,
    )


def build_candidate_outcome(event: CallAnalyzed) -> CandidateContactOutcome:
    """Candidate fields an analyzed call sets."""
    answers = event.analysis.answers
    return CandidateContactOutcome(
        available_to_work=answers.available_to_work,
        interested=answers.interested,
        knows_referee=answers.knows_referee,
        custom_responses=event.analysis.custom_answers,
        last_contact_at=event.occurred_at,
        contact_status=ContactStatus.CONTACTED,
    )
