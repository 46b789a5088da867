"""
API Dependencies
Shared dependencies for building the call event processor.
"""
from src.core.config import get_settings
from src.core.database import get_call_store
from src.models import CandidateOutcomePolicy
from src.services.call_event_processor import CallEventProcessor


def get_event_processor() -> CallEventProcessor:
    """
    Build the processor over the configured call store.

    Raises:
        ValueError: If CANDIDATE_OUTCOME_POLICY is not a known policy
    """
    settings = get_settings()
    return CallEventProcessor(
        store=get_call_store(),
        outcome_policy=CandidateOutcomePolicy(settings.CANDIDATE_OUTCOME_POLICY.lower()),
    )
