"""Send-time consolidation of queued sessions."""

from datetime import datetime
from typing import Dict, Iterable, List, Tuple

from pydantic import BaseModel, Field

from .models.session import Session
from .types import SessionPayload
from .utils.date_utils import week_start


class GroupedSession(BaseModel):
    """
    Several sessions of one language in one calendar week, summed.

    Built only for a single batch request and never stored.
    """

    language_id: int = Field(..., description="Collector language id")
    start_time: datetime = Field(..., description="Start of the calendar week")
    end_time: datetime = Field(..., description="Latest end time of the members")
    duration: int = Field(0, description="Sum of member durations in seconds")
    session_count: int = Field(0, description="Number of merged sessions")

    def to_payload(self) -> SessionPayload:
        return {
            "language_id": self.language_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration": self.duration,
        }


def group_sessions(sessions: Iterable[Session]) -> List[GroupedSession]:
    """
    Collapse sessions sharing a language and Monday-based week.

    Total duration is preserved exactly; per-session timing is not. Groups
    come out in the order their first member appears.
    """
    groups: Dict[Tuple[int, datetime], GroupedSession] = {}

    for session in sessions:
        if not session.is_closed:
            raise ValueError(f"Cannot group open session {session.id}")

        start = week_start(session.start_time)
        key = (session.language.id, start)

        group = groups.get(key)
        if group is None:
            group = GroupedSession(
                language_id=session.language.id,
                start_time=start,
                end_time=session.end_time,
            )
            groups[key] = group

        group.duration += session.duration_seconds
        group.session_count += 1
        if session.end_time > group.end_time:
            group.end_time = session.end_time

    return list(groups.values())
