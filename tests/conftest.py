"""Shared fixtures for tracker tests."""

from datetime import datetime, timedelta
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from slopboard_tracker.backends.base import DeliveryBackend
from slopboard_tracker.models.activity import ActivityTarget
from slopboard_tracker.models.language import Language
from slopboard_tracker.models.session import Session

PYTHON = Language(id=3, name="Python", color="#3572A5")
TYPESCRIPT = Language(id=2, name="TypeScript", color="#007acc")

# Wednesday
T0 = datetime(2024, 1, 10, 9, 0, 0)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class InMemoryStore:
    """List-backed stand-in for SessionQueueStore with the same async API."""

    def __init__(self, sessions: Optional[List[Session]] = None):
        self.sessions: List[Session] = list(sessions or [])
        self.languages = None

    async def initialize(self) -> None:
        pass

    async def append(self, session: Session) -> int:
        self.sessions.append(session)
        return len(self.sessions)

    async def peek(self, limit: int) -> List[Session]:
        return list(self.sessions[:limit])

    async def remove_from_head(self, count: int) -> int:
        removed = min(count, len(self.sessions))
        del self.sessions[:removed]
        return removed

    async def count(self) -> int:
        return len(self.sessions)

    async def clear(self) -> None:
        self.sessions.clear()

    async def cache_languages(self, languages) -> None:
        self.languages = languages

    async def get_cached_languages(self):
        return self.languages


def make_session(
    start: datetime = T0,
    duration: int = 60,
    language: Language = PYTHON,
    relative_path: str = "src/app.py",
) -> Session:
    session = Session(
        language=language,
        project="demo",
        relative_path=relative_path,
        start_time=start,
    )
    session.close(start + timedelta(seconds=duration))
    return session


def make_sessions(count: int, language: Language = PYTHON) -> List[Session]:
    return [
        make_session(start=T0 + timedelta(minutes=i), duration=30, language=language)
        for i in range(count)
    ]


def make_target(path: str = "/work/demo/src/app.py", **kwargs) -> ActivityTarget:
    kwargs.setdefault("project_root", "/work/demo")
    return ActivityTarget(path=path, **kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def backend():
    """Mock collector backend with a configured API key."""
    mock_backend = MagicMock(spec=DeliveryBackend)
    mock_backend.has_credential = True
    mock_backend.send_one = AsyncMock()
    mock_backend.send_batch = AsyncMock()
    mock_backend.validate_api_key = AsyncMock(return_value=True)
    mock_backend.get_languages = AsyncMock(return_value=[])
    mock_backend.aclose = AsyncMock()
    return mock_backend
