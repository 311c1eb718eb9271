"""Tests for the SQLite offline queue store."""

import pytest

from conftest import PYTHON, T0, make_sessions
from slopboard_tracker.models.session import Session
from slopboard_tracker.session_store import SessionQueueStore


@pytest.fixture
async def queue_store(tmp_path):
    """Create a store in a temporary directory."""
    store = SessionQueueStore(data_dir=tmp_path)
    await store.initialize()
    return store


@pytest.mark.asyncio
async def test_append_returns_queue_size(queue_store):
    sessions = make_sessions(3)
    counts = [await queue_store.append(s) for s in sessions]
    assert counts == [1, 2, 3]
    assert await queue_store.count() == 3


@pytest.mark.asyncio
async def test_peek_is_fifo_and_non_destructive(queue_store):
    sessions = make_sessions(5)
    for s in sessions:
        await queue_store.append(s)

    head = await queue_store.peek(3)

    assert [s.id for s in head] == [s.id for s in sessions[:3]]
    assert await queue_store.count() == 5


@pytest.mark.asyncio
async def test_peek_round_trips_session_fields(queue_store):
    original = make_sessions(1)[0]
    await queue_store.append(original)

    restored = (await queue_store.peek(1))[0]

    assert restored.id == original.id
    assert restored.language == PYTHON
    assert restored.project == original.project
    assert restored.relative_path == original.relative_path
    assert restored.start_time == original.start_time
    assert restored.end_time == original.end_time
    assert restored.duration_seconds == original.duration_seconds


@pytest.mark.asyncio
async def test_remove_from_head(queue_store):
    sessions = make_sessions(4)
    for s in sessions:
        await queue_store.append(s)

    removed = await queue_store.remove_from_head(2)

    assert removed == 2
    assert [s.id for s in await queue_store.peek(10)] == [s.id for s in sessions[2:]]


@pytest.mark.asyncio
async def test_remove_nothing(queue_store):
    assert await queue_store.remove_from_head(0) == 0


@pytest.mark.asyncio
async def test_queue_survives_reopen(tmp_path):
    first = SessionQueueStore(data_dir=tmp_path)
    for s in make_sessions(3):
        await first.append(s)

    reopened = SessionQueueStore(data_dir=tmp_path)
    assert await reopened.count() == 3


@pytest.mark.asyncio
async def test_append_open_session_rejected(queue_store):
    with pytest.raises(ValueError):
        await queue_store.append(Session(language=PYTHON, start_time=T0))


@pytest.mark.asyncio
async def test_language_cache(queue_store):
    assert await queue_store.get_cached_languages() is None

    languages = [{"id": 42, "name": "Zig", "color": "#ec915c"}]
    await queue_store.cache_languages(languages)
    assert await queue_store.get_cached_languages() == languages

    await queue_store.cache_languages([{"id": 1, "name": "JavaScript", "color": "#f7df1e"}])
    assert (await queue_store.get_cached_languages())[0]["id"] == 1


@pytest.mark.asyncio
async def test_clear(queue_store):
    for s in make_sessions(2):
        await queue_store.append(s)
    await queue_store.cache_languages([{"id": 1, "name": "JavaScript", "color": "#f7df1e"}])

    await queue_store.clear()

    assert await queue_store.count() == 0
    assert await queue_store.get_cached_languages() is None
