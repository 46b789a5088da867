"""Models package - All Pydantic models organized by domain."""

from src.models.enums import CallStatus, CallEventType, ContactStatus, CandidateOutcomePolicy
from src.models.call import (
    CallEvent,
    CallStarted,
    CallEnded,
    CallAnalyzed,
    CallFailed,
    CallAnalysisData,
    ScreeningAnswers,
)
from src.models.results import (
    CallRecord,
    CallAnalysisRecord,
    CandidateContactOutcome,
    ProcessingResult,
)

__all__ = [
    # Enums
    "CallStatus",
    "CallEventType",
    "ContactStatus",
    "CandidateOutcomePolicy",
    # Event models
    "CallEvent",
    "CallStarted",
    "CallEnded",
    "CallAnalyzed",
    "CallFailed",
    "CallAnalysisData",
    "ScreeningAnswers",
    # Record models
    "CallRecord",
    "CallAnalysisRecord",
    "CandidateContactOutcome",
    "ProcessingResult",
]
