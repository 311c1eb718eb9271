"""Coding session model."""

import math
import os
import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..exceptions import SessionAlreadyClosedError
from ..types import SessionPayload
from .language import Language


class Session(BaseModel):
    """
    One contiguous span of tracked activity on a single target.

    ``end_time`` and ``duration_seconds`` stay None while the session is open
    and are set together by :meth:`close`. A closed session is never reopened
    and rejects any further assignment.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Session id")
    language: Language = Field(..., description="Resolved language of the target")
    project: str = Field("unknown", description="Project label")
    relative_path: str = Field("", description="File path relative to the project")
    start_time: datetime = Field(..., description="When activity began")
    end_time: Optional[datetime] = Field(None, description="Set once on close")
    duration_seconds: Optional[int] = Field(None, description="Set once on close")

    @field_validator("relative_path")
    @classmethod
    def _reject_absolute_path(cls, value: str) -> str:
        if os.path.isabs(value):
            raise ValueError("relative_path must not be an absolute path")
        return value

    @property
    def is_closed(self) -> bool:
        return self.end_time is not None

    def __setattr__(self, name: str, value: Any) -> None:
        if self.is_closed:
            raise SessionAlreadyClosedError(self.id)
        super().__setattr__(name, value)

    def close(self, end_time: datetime) -> int:
        """
        Stamp the end time and compute the whole-second duration.

        An end time before the start (clock went backwards) is clamped to the
        start, giving a zero-length session.

        Returns:
            The duration in seconds

        Raises:
            SessionAlreadyClosedError: If the session was already closed
        """
        if self.is_closed:
            raise SessionAlreadyClosedError(self.id)

        # Naive times count as local so aware and naive stamps can be mixed
        elapsed = (end_time.astimezone() - self.start_time.astimezone()).total_seconds()
        if elapsed < 0:
            end_time, elapsed = self.start_time, 0

        duration = math.floor(elapsed)
        # end_time last: it is what marks the session closed
        self.duration_seconds = duration
        self.end_time = end_time
        return duration

    def to_payload(self) -> SessionPayload:
        """Wire shape for the collector. Project and path stay local."""
        if not self.is_closed:
            raise ValueError(f"Session {self.id} is still open")
        return {
            "language_id": self.language.id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration_seconds,
        }
