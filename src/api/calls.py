"""Call API Routes - Outbound call bookkeeping and status lookups."""

import logging
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.api.dependencies import get_event_processor
from src.core.exceptions import InvalidEvent, PersistenceError
from src.models import CallRecord
from src.services.call_event_processor import CallEventProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calls", tags=["calls"])


class RegisterCallRequest(BaseModel):
    """Outbound call placed by the campaign launcher."""
    call_id: str = Field(..., description="Retell call ID")
    campaign_id: Optional[str] = Field(None, description="Campaign ID")
    candidate_id: Optional[str] = Field(None, description="Campaign candidate ID")


class CancelPendingRequest(BaseModel):
    """Reason recorded on cancelled calls."""
    reason: str = Field("Batch cancelled by user", description="Error message to record")


@router.post("", status_code=201, summary="Register Outbound Call")
async def register_call(
    body: RegisterCallRequest,
    processor: CallEventProcessor = Depends(get_event_processor)
) -> Dict[str, Any]:
    """Create a pending call record for a newly placed call."""
    try:
        registered = await processor.register_call(
            body.call_id,
            campaign_id=body.campaign_id,
            candidate_id=body.candidate_id
        )
        return {"call_id": body.call_id, "registered": registered}

    except InvalidEvent as e:
        raise HTTPException(status_code=400, detail=e.message)
    except PersistenceError as e:
        logger.error(f"Register call error: {e.message}")
        raise HTTPException(status_code=500, detail=f"Failed to register: {e.message}")


@router.get("/{call_id}", response_model=CallRecord, summary="Get Call Status")
async def get_call(
    call_id: str,
    processor: CallEventProcessor = Depends(get_event_processor)
) -> CallRecord:
    """Get the current state of a call."""
    try:
        record = await processor.get_call(call_id)
    except PersistenceError as e:
        logger.error(f"Call status error: {e.message}")
        raise HTTPException(status_code=500, detail=e.message)

    if not record:
        raise HTTPException(status_code=404, detail=f"Call not found: {call_id}")
    return record


@router.post(
    "/campaigns/{campaign_id}/cancel-pending",
    summary="Cancel Pending Campaign Calls"
)
async def cancel_pending_calls(
    campaign_id: str,
    body: Optional[CancelPendingRequest] = None,
    processor: CallEventProcessor = Depends(get_event_processor)
) -> Dict[str, Any]:
    """Fail every pending call of a campaign. In-progress calls finish naturally."""
    reason = body.reason if body else CancelPendingRequest().reason
    try:
        cancelled = await processor.cancel_pending_calls(campaign_id, reason=reason)
    except PersistenceError as e:
        logger.error(f"Cancel pending calls error: {e.message}")
        raise HTTPException(status_code=500, detail=f"Failed to cancel: {e.message}")

    return {"campaign_id": campaign_id, "cancelled": cancelled}
