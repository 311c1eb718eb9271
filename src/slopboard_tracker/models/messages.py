"""Request/response bodies for the local HTTP API used by editor plugins."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .activity import ActivityTarget


class ActivityEvent(BaseModel):
    """Edit or cursor activity on a document."""

    target: ActivityTarget = Field(..., description="Document the user worked on")
    timestamp: Optional[datetime] = Field(
        None, description="Event time (defaults to receive time)"
    )


class TargetChangedEvent(BaseModel):
    """Active editor changed; target is null when no text editor is focused."""

    target: Optional[ActivityTarget] = Field(None, description="New active document")
    timestamp: Optional[datetime] = Field(None, description="Event time")


class FocusChangedEvent(BaseModel):
    """Editor window gained or lost focus."""

    focused: bool = Field(..., description="True if the window gained focus")
    target: Optional[ActivityTarget] = Field(
        None, description="Active document at the time of the change"
    )
    timestamp: Optional[datetime] = Field(None, description="Event time")


class StartTrackingRequest(BaseModel):
    """Explicit start, optionally with the currently open document."""

    target: Optional[ActivityTarget] = Field(None, description="Active document")


class ApiKeyRequest(BaseModel):
    """Set the collector API key."""

    api_key: str = Field(..., min_length=1, description="Collector API key")


class ConfigUpdate(BaseModel):
    """Runtime settings change; omitted fields keep their value."""

    idle_threshold_seconds: Optional[int] = Field(None, gt=0)
    min_session_duration_seconds: Optional[int] = Field(None, ge=0)
    upload_interval_seconds: Optional[int] = Field(None, ge=60)
    upload_batch_size: Optional[int] = Field(None, gt=0)


class SessionView(BaseModel):
    """Session as shown in summaries."""

    id: str
    language: str
    color: str
    project: str
    relative_path: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_seconds: Optional[int] = None
