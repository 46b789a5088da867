"""Call event models - the typed lifecycle events the processor consumes."""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Literal, Union
from pydantic import BaseModel, Field

from src.models.enums import CallEventType


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class ScreeningAnswers(BaseModel):
    """Answers to the three fixed screening questions, keyed by meaning."""
    available_to_work: bool = Field(False, description="Candidate is available to work")
    interested: bool = Field(False, description="Candidate is interested in the role")
    knows_referee: bool = Field(False, description="Candidate knows the referee")


class CallAnalysisData(BaseModel):
    """Post-call analysis produced by the voice provider."""
    answers: ScreeningAnswers = Field(
        default_factory=ScreeningAnswers,
        description="Screening answers"
    )
    custom_answers: Dict[str, str] = Field(
        default_factory=dict,
        description="Answers to job-specific questions"
    )
    summary: str = Field("", description="Call summary")
    sentiment: float = Field(0.5, ge=0.0, le=1.0, description="Sentiment score")
    key_points: List[str] = Field(default_factory=list, description="Key points")
    objections: List[str] = Field(default_factory=list, description="Objections raised")
    next_steps: Optional[str] = Field(None, description="Suggested next steps")
    transcript_url: Optional[str] = Field(None, description="Transcript URL")
    recording_url: Optional[str] = Field(None, description="Recording URL")


class _CallEventBase(BaseModel):
    """Fields shared by every call lifecycle event."""
    call_id: str = Field(..., description="External call identifier")
    occurred_at: datetime = Field(default_factory=utc_now, description="Event timestamp")
    campaign_id: Optional[str] = Field(None, description="Campaign the call belongs to")
    candidate_id: Optional[str] = Field(None, description="Campaign candidate called")


class CallStarted(_CallEventBase):
    type: Literal[CallEventType.STARTED] = CallEventType.STARTED


class CallEnded(_CallEventBase):
    type: Literal[CallEventType.ENDED] = CallEventType.ENDED
    duration_seconds: int = Field(0, ge=0, description="Call duration in seconds")


class CallAnalyzed(_CallEventBase):
    type: Literal[CallEventType.ANALYZED] = CallEventType.ANALYZED
    analysis: CallAnalysisData = Field(
        default_factory=CallAnalysisData,
        description="Analysis payload"
    )


class CallFailed(_CallEventBase):
    type: Literal[CallEventType.FAILED] = CallEventType.FAILED
    error_message: str = Field("Unknown error", description="Failure reason")


CallEvent = Union[CallStarted, CallEnded, CallAnalyzed, CallFailed]
