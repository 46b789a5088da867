"""
Call sync exceptions.
"""
from typing import Any, Dict, Optional


class CallSyncError(Exception):
    """Base exception for call event processing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidEvent(CallSyncError):
    """Raised when an event is malformed or has no usable call ID."""

    def __init__(self, message: str = "Invalid call event", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class UnhandledEventType(CallSyncError):
    """Raised for structurally valid events of an unknown type."""

    def __init__(self, event_type: Optional[str], details: Optional[Dict[str, Any]] = None):
        message = f"Unhandled event type: {event_type}"
        super().__init__(message, details)
        self.event_type = event_type


class PersistenceError(CallSyncError):
    """Raised when the call store rejects a write or read."""

    def __init__(self, operation: str, target: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"{operation} failed for {target}: {message}", details)
        self.operation = operation
        self.target = target
