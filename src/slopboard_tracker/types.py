"""Common type definitions for Slopboard Tracker.

TypedDicts describe the JSON shapes exchanged with the remote collector;
the callable aliases describe the seams where collaborators are injected.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, TypedDict

if TYPE_CHECKING:
    from .models.activity import ActivityTarget
    from .models.language import Language
    from .models.notices import Notice
    from .models.session import Session


class LanguageDict(TypedDict):
    """Language entry as served by GET /languages."""
    id: int
    name: str
    color: str


class SessionPayload(TypedDict):
    """One session as sent to POST /coding-sessions."""
    language_id: int
    start_time: str
    end_time: str
    duration: int


class BatchPayload(TypedDict):
    """Body of POST /coding-sessions/batch."""
    sessions: List[SessionPayload]


class QueueStatusDict(TypedDict, total=False):
    """Offline queue state reported by /status."""
    queued: int
    drain_in_flight: bool
    consecutive_failures: int
    running: bool
    last_drain_status: Optional[str]


# Injected collaborators
Clock = Callable[[], datetime]
SleepFn = Callable[[float], Awaitable[None]]
TrackablePredicate = Callable[["ActivityTarget"], bool]
LanguageResolverFn = Callable[["ActivityTarget"], "Language"]
SessionCallback = Callable[["Session"], None]
ActiveSessionCallback = Callable[[Optional["Session"]], None]
NoticeCallback = Callable[["Notice"], None]
