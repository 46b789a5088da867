"""Result models for processing outcomes and database records."""

from typing import Optional, List, Dict
from datetime import datetime
from pydantic import BaseModel, Field

from src.models.enums import CallStatus, CallEventType, ContactStatus


class CallRecord(BaseModel):
    """Database record for one outbound call."""
    call_id: str = Field(..., description="Retell call ID")
    status: CallStatus = Field(CallStatus.PENDING, description="Current call status")
    campaign_id: Optional[str] = Field(None, description="Campaign ID")
    candidate_id: Optional[str] = Field(None, description="Campaign candidate ID")
    started_at: Optional[datetime] = Field(None, description="Call start time")
    ended_at: Optional[datetime] = Field(None, description="Call end time")
    duration_seconds: Optional[int] = Field(None, description="Call duration")
    error_message: Optional[str] = Field(None, description="Failure reason")

    class Config:
        from_attributes = True


class CallAnalysisRecord(BaseModel):
    """Write-once analysis result for a call."""
    call_id: str = Field(..., description="Retell call ID")
    campaign_id: Optional[str] = Field(None, description="Campaign ID")
    candidate_id: Optional[str] = Field(None, description="Campaign candidate ID")
    available_to_work: bool = Field(False, description="Screening answer 1")
    interested: bool = Field(False, description="Screening answer 2")
    knows_referee: bool = Field(False, description="Screening answer 3")
    custom_responses: Dict[str, str] = Field(default_factory=dict, description="Custom answers")
    call_summary: str = Field("", description="Call summary")
    sentiment_score: float = Field(0.5, description="Sentiment score 0-1")
    key_points: List[str] = Field(default_factory=list, description="Key points")
    objections: List[str] = Field(default_factory=list, description="Objections")
    next_steps: str = Field("", description="Next steps")
    transcript_url: Optional[str] = Field(None, description="Transcript URL")
    recording_url: Optional[str] = Field(None, description="Recording URL")


class CandidateContactOutcome(BaseModel):
    """Campaign candidate fields driven by call analysis."""
    available_to_work: Optional[bool] = Field(None, description="Unknown until analyzed")
    interested: Optional[bool] = Field(None, description="Unknown until analyzed")
    knows_referee: Optional[bool] = Field(None, description="Unknown until analyzed")
    custom_responses: Dict[str, str] = Field(default_factory=dict, description="Custom answers")
    last_contact_at: Optional[datetime] = Field(None, description="Last contact time")
    contact_status: ContactStatus = Field(
        ContactStatus.NOT_CONTACTED,
        description="Contact status"
    )


class ProcessingResult(BaseModel):
    """Which records a single event touched."""
    call_id: str = Field(..., description="Retell call ID")
    event_type: CallEventType = Field(..., description="Processed event type")
    call_status: Optional[CallStatus] = Field(
        None,
        description="Call status after processing, if a record exists"
    )
    call_record_updated: bool = Field(False, description="Call record written")
    analysis_record_created: bool = Field(False, description="Analysis record created")
    candidate_updated: bool = Field(False, description="Candidate outcome written")
