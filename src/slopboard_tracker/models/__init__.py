"""Data models for Slopboard Tracker."""

from .activity import ActivityTarget, is_trackable_target
from .language import Language, unknown_language, UNKNOWN_LANGUAGE_ID
from .messages import (
    ActivityEvent,
    TargetChangedEvent,
    FocusChangedEvent,
    StartTrackingRequest,
    ApiKeyRequest,
    ConfigUpdate,
    SessionView,
)
from .notices import Notice, NoticeKind, NoticeLevel
from .session import Session

__all__ = [
    "ActivityTarget",
    "is_trackable_target",
    "Language",
    "unknown_language",
    "UNKNOWN_LANGUAGE_ID",
    "ActivityEvent",
    "TargetChangedEvent",
    "FocusChangedEvent",
    "StartTrackingRequest",
    "ApiKeyRequest",
    "ConfigUpdate",
    "SessionView",
    "Notice",
    "NoticeKind",
    "NoticeLevel",
    "Session",
]
