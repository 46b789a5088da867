"""Core infrastructure - configuration, storage and exceptions."""

from src.core.config import Settings, get_settings
from src.core.exceptions import (
    CallSyncError,
    InvalidEvent,
    UnhandledEventType,
    PersistenceError,
)

__all__ = [
    "Settings",
    "get_settings",
    "CallSyncError",
    "InvalidEvent",
    "UnhandledEventType",
    "PersistenceError",
]
