"""Enumeration types for call event processing."""

from enum import Enum


class CallStatus(str, Enum):
    """Lifecycle status of a single outbound call."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CallStatus.COMPLETED, CallStatus.FAILED)


class CallEventType(str, Enum):
    """Lifecycle events delivered by the voice provider."""
    STARTED = "call.started"
    ENDED = "call.ended"
    ANALYZED = "call.analyzed"
    FAILED = "call.failed"


class ContactStatus(str, Enum):
    """Contact status of a campaign candidate."""
    NOT_CONTACTED = "not_contacted"
    CONTACTED = "contacted"


class CandidateOutcomePolicy(str, Enum):
    """How repeated analyses of a call affect the candidate outcome."""
    OVERWRITE = "overwrite"
    KEEP_FIRST = "keep_first"
