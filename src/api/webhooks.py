"""Webhook API Routes - Entry point for Retell call lifecycle webhooks."""

import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.api.dependencies import get_event_processor
from src.core.config import get_settings
from src.core.exceptions import InvalidEvent, PersistenceError, UnhandledEventType
from src.integrations.retell import retell_parser
from src.models import ProcessingResult
from src.services.call_event_processor import CallEventProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])


class RetellWebhookResponse(BaseModel):
    """Acknowledgement returned to Retell."""
    received: bool = True
    status: str
    message: str
    processed_at: datetime
    duration_ms: int
    result: Optional[ProcessingResult] = None


class TestResponse(BaseModel):
    """Response for test endpoints."""
    status: str
    message: str
    data: Dict[str, Any] = {}


def _acknowledge(
    started: float,
    status: str,
    message: str,
    result: Optional[ProcessingResult] = None
) -> RetellWebhookResponse:
    return RetellWebhookResponse(
        status=status,
        message=message,
        processed_at=datetime.now(timezone.utc),
        duration_ms=int((time.monotonic() - started) * 1000),
        result=result,
    )


# ===========================================
# Retell Webhook
# ===========================================

@router.post(
    "/retell",
    response_model=RetellWebhookResponse,
    status_code=200,
    summary="Process Retell Call Webhook"
)
async def retell_webhook(
    request: Request,
    processor: CallEventProcessor = Depends(get_event_processor)
) -> RetellWebhookResponse:
    """
    Handle incoming Retell call lifecycle webhook.

    Processes the event before answering. Anything the webhook sender
    cannot fix by retrying (bad payloads, unknown event types) is logged
    and acknowledged with 200. Storage failures are acknowledged too
    unless ACKNOWLEDGE_ON_PERSISTENCE_ERROR is off.
    """
    started = time.monotonic()

    try:
        raw_data = await request.json()
    except ValueError:
        logger.warning("Retell webhook body is not valid JSON")
        return _acknowledge(started, "invalid", "Body is not valid JSON")

    try:
        event = retell_parser.parse(raw_data)
        logger.info(f"Received Retell webhook: type={event.type.value} call_id={event.call_id}")

        result = await processor.process_event(event)
        return _acknowledge(started, "processed", f"Event '{event.type.value}' processed", result)

    except UnhandledEventType as e:
        logger.info(f"Ignoring Retell event: {e.event_type}")
        return _acknowledge(started, "ignored", f"Event '{e.event_type}' ignored")

    except InvalidEvent as e:
        logger.warning(f"Invalid Retell webhook: {e.message} {e.details}")
        return _acknowledge(started, "invalid", e.message)

    except PersistenceError as e:
        logger.error(f"Retell webhook persistence error: {e.message}")
        if not get_settings().ACKNOWLEDGE_ON_PERSISTENCE_ERROR:
            raise HTTPException(status_code=500, detail=f"Failed to process: {e.message}")
        return _acknowledge(started, "error", e.message)

    except Exception as e:
        logger.error(f"Retell webhook error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to process: {str(e)}")


@router.options("/retell", include_in_schema=False)
async def retell_webhook_options() -> Dict[str, bool]:
    """CORS probe."""
    return {"ok": True}


@router.api_route(
    "/retell",
    methods=["GET", "PUT", "PATCH", "DELETE"],
    include_in_schema=False
)
async def retell_webhook_method_not_allowed() -> JSONResponse:
    return JSONResponse(status_code=405, content={"error": "Method not allowed"})


# ===========================================
# Test Endpoints
# ===========================================

test_router = APIRouter(prefix="/test", tags=["testing"])


@test_router.post("/replay", response_model=TestResponse)
async def replay_event(
    request: Request,
    processor: CallEventProcessor = Depends(get_event_processor)
) -> TestResponse:
    """Replay a logged webhook body and report the outcome verbatim."""
    try:
        raw_data = await request.json()
        event = retell_parser.parse(raw_data)
        result = await processor.process_event(event)

        return TestResponse(
            status="success",
            message=f"Replayed {event.type.value} for {event.call_id}",
            data=result.model_dump(mode="json")
        )

    except UnhandledEventType as e:
        return TestResponse(status="ignored", message=e.message, data={})
    except InvalidEvent as e:
        return TestResponse(status="invalid", message=e.message, data=e.details)
    except PersistenceError as e:
        logger.error(f"Replay failed: {e.message}")
        return TestResponse(
            status="error",
            message=e.message,
            data={"operation": e.operation, "target": e.target}
        )
    except ValueError as e:
        return TestResponse(status="invalid", message=str(e), data={})


@test_router.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "call-event-sync"}
