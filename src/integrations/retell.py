"""Retell AI webhook payload parsing."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.core.config import to_bool, parse_flag
from src.core.exceptions import InvalidEvent, UnhandledEventType
from src.models import (
    CallEvent,
    CallEventType,
    CallStarted,
    CallEnded,
    CallAnalyzed,
    CallFailed,
    CallAnalysisData,
    ScreeningAnswers,
)

logger = logging.getLogger(__name__)

# Dashboard format: {"type": "call.started", "call_id": ..., ...}
DASHBOARD_EVENT_TYPES: Dict[str, CallEventType] = {
    event_type.value: event_type for event_type in CallEventType
}

# Native Retell format: {"event": "call_started", "call": {...}}
NATIVE_EVENT_TYPES: Dict[str, CallEventType] = {
    "call_started": CallEventType.STARTED,
    "call_ended": CallEventType.ENDED,
    "call_analyzed": CallEventType.ANALYZED,
    "call_failed": CallEventType.FAILED,
}

MAX_KEY_POINTS = 5
SUCCESSFUL_CALL_SENTIMENT = 0.8
UNSUCCESSFUL_CALL_SENTIMENT = 0.3
DEFAULT_SENTIMENT = 0.5


def screening_answers_from_list(answers: Any) -> ScreeningAnswers:
    """
    Map the positional answers array onto named screening answers.

    Index 0 is availability, 1 interest, 2 knowing the referee. Missing
    positions count as False.
    """
    values = answers if isinstance(answers, list) else []
    padded = list(values[:3]) + [None] * (3 - len(values[:3]))
    return ScreeningAnswers(
        available_to_work=to_bool(padded[0]),
        interested=to_bool(padded[1]),
        knows_referee=to_bool(padded[2]),
    )


def extract_key_points(summary: Optional[str]) -> List[str]:
    """Pick up to five mid-length sentences from a call summary."""
    if not summary:
        return []

    points = []
    for sentence in re.split(r"[.!?]+", summary):
        trimmed = sentence.strip()
        if 20 < len(trimmed) < 200:
            points.append(trimmed)

    return points[:MAX_KEY_POINTS]


def _from_epoch_ms(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _to_seconds(value: Any, field: str) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise InvalidEvent(f"Invalid {field}: {value!r}")


class RetellWebhookParser:
    """
    Translates webhook bodies into typed call events.

    Accepts both the dashboard's flat format and Retell's native nested
    format, so the processor never sees positional answers or raw
    provider fields.
    """

    def parse(self, raw: Any) -> CallEvent:
        """
        Parse a webhook body.

        Args:
            raw: Decoded JSON body, optionally wrapped in {"body": {...}}

        Returns:
            Typed call event

        Raises:
            InvalidEvent: body is malformed
            UnhandledEventType: event type is not a lifecycle event
        """
        if not isinstance(raw, dict):
            raise InvalidEvent("Webhook body must be a JSON object")

        # Handle nested body structure
        if isinstance(raw.get("body"), dict):
            raw = raw["body"]

        for key in ("type", "event"):
            if raw.get(key) is not None and not isinstance(raw[key], str):
                raise InvalidEvent(f"{key} must be a string")

        try:
            if raw.get("type"):
                return self._parse_dashboard(raw)
            if raw.get("event"):
                return self._parse_native(raw)
        except ValidationError as e:
            raise InvalidEvent("Malformed call event", {"error": str(e)}) from e

        raise InvalidEvent("Missing event type")

    # ===========================================
    # Dashboard Format
    # ===========================================

    def _parse_dashboard(self, raw: Dict[str, Any]) -> CallEvent:
        event_type = DASHBOARD_EVENT_TYPES.get(raw["type"])
        if event_type is None:
            raise UnhandledEventType(raw["type"])

        metadata = raw.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InvalidEvent("metadata must be an object")

        common: Dict[str, Any] = {
            "call_id": str(raw.get("call_id") or "").strip(),
            "campaign_id": metadata.get("campaign_id"),
            "candidate_id": metadata.get("candidate_id"),
        }
        if raw.get("timestamp"):
            common["occurred_at"] = raw["timestamp"]

        if event_type == CallEventType.STARTED:
            return CallStarted(**common)

        if event_type == CallEventType.ENDED:
            duration = raw.get("duration")
            return CallEnded(
                **common,
                duration_seconds=_to_seconds(duration, "duration") if duration is not None else 0
            )

        if event_type == CallEventType.FAILED:
            return CallFailed(**common, error_message=raw.get("error") or "Unknown error")

        analysis = raw.get("analysis") or {}
        if not isinstance(analysis, dict):
            raise InvalidEvent("analysis must be an object")

        sentiment = analysis.get("sentiment")
        custom_answers = analysis.get("custom_answers") or {}
        if not isinstance(custom_answers, dict):
            raise InvalidEvent("custom_answers must be an object")

        return CallAnalyzed(
            **common,
            analysis=CallAnalysisData(
                answers=screening_answers_from_list(analysis.get("answers")),
                custom_answers={str(k): str(v) for k, v in custom_answers.items() if v is not None},
                summary=analysis.get("summary") or "",
                sentiment=DEFAULT_SENTIMENT if sentiment is None else sentiment,
                key_points=analysis.get("key_points") or [],
                objections=analysis.get("objections") or [],
                next_steps=analysis.get("next_steps"),
                transcript_url=raw.get("transcript_url"),
                recording_url=raw.get("recording_url"),
            )
        )

    # ===========================================
    # Native Retell Format
    # ===========================================

    def _parse_native(self, raw: Dict[str, Any]) -> CallEvent:
        event_type = NATIVE_EVENT_TYPES.get(raw["event"])
        if event_type is None:
            raise UnhandledEventType(raw["event"])

        call = raw.get("call") or {}
        if not isinstance(call, dict):
            raise InvalidEvent("call must be an object")
        metadata = call.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InvalidEvent("metadata must be an object")

        common: Dict[str, Any] = {
            "call_id": str(call.get("call_id") or "").strip(),
            "campaign_id": metadata.get("campaign_id"),
            "candidate_id": metadata.get("candidate_id"),
        }

        timestamp_field = (
            "start_timestamp" if event_type == CallEventType.STARTED else "end_timestamp"
        )
        occurred_at = _from_epoch_ms(call.get(timestamp_field))
        if occurred_at:
            common["occurred_at"] = occurred_at

        if event_type == CallEventType.STARTED:
            return CallStarted(**common)

        if event_type == CallEventType.ENDED:
            return CallEnded(**common, duration_seconds=self._native_duration(call))

        if event_type == CallEventType.FAILED:
            return CallFailed(
                **common,
                error_message=call.get("disconnection_reason") or "Unknown error"
            )

        call_analysis = call.get("call_analysis") or raw.get("call_analysis") or {}
        if not isinstance(call_analysis, dict):
            raise InvalidEvent("call_analysis must be an object")
        data = call_analysis.get("post_call_analysis_data") or {}
        if not isinstance(data, dict):
            raise InvalidEvent("post_call_analysis_data must be an object")
        summary = call_analysis.get("call_summary") or ""

        successful = call_analysis.get("call_successful")
        if successful is None:
            sentiment = DEFAULT_SENTIMENT
        elif successful:
            sentiment = SUCCESSFUL_CALL_SENTIMENT
        else:
            sentiment = UNSUCCESSFUL_CALL_SENTIMENT

        logger.debug(f"Native analysis data for {common['call_id']}: {data}")

        return CallAnalyzed(
            **common,
            analysis=CallAnalysisData(
                answers=ScreeningAnswers(
                    available_to_work=parse_flag(data.get("question_0")),
                    interested=parse_flag(data.get("question_1")),
                    knows_referee=parse_flag(data.get("question_2")),
                ),
                custom_answers={str(k): str(v) for k, v in data.items() if v is not None},
                summary=summary,
                sentiment=sentiment,
                key_points=extract_key_points(summary),
                next_steps=(
                    "Left voicemail - follow up"
                    if call_analysis.get("in_voicemail")
                    else "Review analysis"
                ),
                transcript_url=call.get("transcript_url"),
                recording_url=call.get("recording_url"),
            )
        )

    def _native_duration(self, call: Dict[str, Any]) -> int:
        """Duration in seconds from whichever field Retell sent."""
        if call.get("call_duration") is not None:
            return _to_seconds(call["call_duration"], "call_duration")
        if call.get("duration_ms") is not None:
            return _to_seconds(call["duration_ms"], "duration_ms") // 1000

        start = call.get("start_timestamp")
        end = call.get("end_timestamp")
        if start is not None and end is not None:
            return max(0, (_to_seconds(end, "end_timestamp") - _to_seconds(start, "start_timestamp")) // 1000)
        return 0


# Singleton instance
retell_parser = RetellWebhookParser()
