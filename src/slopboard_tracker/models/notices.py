"""User-facing notices raised by the tracker core."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class NoticeLevel(str, Enum):
    """Severity shown to the user."""
    INFO = "info"
    WARNING = "warning"


class NoticeKind(str, Enum):
    """What the notice is about."""
    OFFLINE_SAVED = "offline_saved"
    OFFLINE_BACKLOG = "offline_backlog"
    SYNC_PROGRESS = "sync_progress"
    SYNC_COMPLETE = "sync_complete"


class Notice(BaseModel):
    """Informational or warning message for the user."""

    level: NoticeLevel = Field(..., description="Severity")
    kind: NoticeKind = Field(..., description="Notice category")
    message: str = Field(..., description="Human-readable message")
    created_at: datetime = Field(default_factory=datetime.now)
