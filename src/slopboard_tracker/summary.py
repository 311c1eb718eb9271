"""In-memory daily/weekly summary of tracked sessions."""

from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from .models.messages import SessionView
from .models.session import Session
from .types import Clock
from .utils.date_utils import start_of_day, week_start
from .utils.format_utils import format_duration

RECENT_SESSIONS_LIMIT = 10


def _ended_at(session: Session) -> datetime:
    return session.end_time.astimezone()


def _view(session: Session) -> SessionView:
    return SessionView(
        id=session.id,
        language=session.language.name,
        color=session.language.color,
        project=session.project,
        relative_path=session.relative_path,
        start_time=session.start_time,
        end_time=session.end_time,
        duration_seconds=session.duration_seconds,
    )


class ActivitySummary:
    """
    Aggregates closed sessions for display.

    Keeps the active session, the most recent completed sessions and every
    session of the current week; older sessions are pruned on insert.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or (lambda: datetime.now().astimezone())
        self.active_session: Optional[Session] = None
        self.recent: Deque[Session] = deque(maxlen=RECENT_SESSIONS_LIMIT)
        self._week_sessions: List[Session] = []

    def _now(self) -> datetime:
        return self._clock().astimezone()

    def set_active_session(self, session: Optional[Session]) -> None:
        self.active_session = session

    def add_completed_session(self, session: Session) -> None:
        self.recent.appendleft(session)

        current_week = week_start(self._now())
        self._week_sessions = [
            s for s in self._week_sessions if _ended_at(s) >= current_week
        ]
        if _ended_at(session) >= current_week:
            self._week_sessions.append(session)

    def today_sessions(self) -> List[Session]:
        today = start_of_day(self._now())
        return [s for s in self._week_sessions if _ended_at(s) >= today]

    def week_sessions(self) -> List[Session]:
        current_week = week_start(self._now())
        return [s for s in self._week_sessions if _ended_at(s) >= current_week]

    @property
    def today_total(self) -> int:
        return sum(s.duration_seconds for s in self.today_sessions())

    @property
    def week_total(self) -> int:
        return sum(s.duration_seconds for s in self.week_sessions())

    def today_by_language(self) -> List[Dict[str, Any]]:
        """Today's time per language, longest first."""
        totals: Dict[int, Dict[str, Any]] = {}
        for s in self.today_sessions():
            entry = totals.setdefault(
                s.language.id,
                {"language": s.language.name, "color": s.language.color, "duration": 0},
            )
            entry["duration"] += s.duration_seconds

        result = sorted(totals.values(), key=lambda e: e["duration"], reverse=True)
        for entry in result:
            entry["formatted"] = format_duration(entry["duration"])
        return result

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view for /summary."""
        return {
            "active_session": (
                _view(self.active_session).model_dump(mode="json")
                if self.active_session
                else None
            ),
            "today_total": self.today_total,
            "today_total_formatted": format_duration(self.today_total),
            "week_total": self.week_total,
            "week_total_formatted": format_duration(self.week_total),
            "today_by_language": self.today_by_language(),
            "recent_sessions": [_view(s).model_dump(mode="json") for s in self.recent],
        }
