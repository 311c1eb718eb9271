"""Tests for language resolution and the cached language table."""

from unittest.mock import AsyncMock

import pytest

from conftest import InMemoryStore
from slopboard_tracker.exceptions import DeliveryError
from slopboard_tracker.language_service import DEFAULT_LANGUAGES, LanguageResolver
from slopboard_tracker.models.activity import ActivityTarget
from slopboard_tracker.models.language import UNKNOWN_LANGUAGE_ID


@pytest.fixture
def resolver():
    return LanguageResolver()


def test_resolve_by_editor_hint(resolver):
    lang = resolver.resolve(ActivityTarget(path="/work/app.py", language_hint="Python"))
    assert (lang.id, lang.name) == (3, "Python")


def test_hint_takes_priority_over_extension(resolver):
    lang = resolver.resolve(ActivityTarget(path="/work/app.py", language_hint="javascript"))
    assert lang.name == "JavaScript"


def test_resolve_by_extension(resolver):
    assert resolver.resolve(ActivityTarget(path="/work/index.tsx")).name == "TypeScript"
    assert resolver.resolve(ActivityTarget(path="/work/main.RS")).name == "Rust"


def test_unknown_language_keeps_hint(resolver):
    lang = resolver.resolve(ActivityTarget(path="/work/report.cbl", language_hint="cobol"))
    assert lang.id == UNKNOWN_LANGUAGE_ID
    assert lang.is_unknown
    assert lang.name == "cobol"


def test_unknown_without_hint(resolver):
    lang = resolver.resolve(ActivityTarget(path="/work/Makefile"))
    assert lang.id == UNKNOWN_LANGUAGE_ID
    assert lang.name == "Unknown"


def test_get_by_id(resolver):
    assert resolver.get_by_id(9).name == "Go"
    assert resolver.get_by_id(999) is None
    assert len(resolver.all_languages()) == len(DEFAULT_LANGUAGES)


def test_set_languages_replaces_table(resolver):
    resolver.set_languages([{"id": 77, "name": "Python", "color": "#000000"}])
    assert resolver.resolve(ActivityTarget(path="/work/app.py")).id == 77
    assert resolver.resolve(ActivityTarget(path="/work/app.go")).is_unknown


@pytest.mark.asyncio
async def test_initialize_prefers_cache(resolver, backend):
    store = InMemoryStore()
    store.languages = [{"id": 50, "name": "Zig", "color": "#ec915c"}]

    await resolver.initialize(store, backend)

    backend.get_languages.assert_not_awaited()
    assert resolver.get_by_id(50).name == "Zig"


@pytest.mark.asyncio
async def test_initialize_fetches_and_caches(resolver, backend):
    store = InMemoryStore()
    fetched = [{"id": 3, "name": "Python", "color": "#3572A5"}]
    backend.get_languages = AsyncMock(return_value=fetched)

    await resolver.initialize(store, backend)

    assert store.languages == fetched
    assert resolver.all_languages()[0].name == "Python"
    assert len(resolver.all_languages()) == 1


@pytest.mark.asyncio
async def test_initialize_offline_keeps_defaults(resolver, backend):
    backend.get_languages = AsyncMock(side_effect=DeliveryError("offline"))

    await resolver.initialize(InMemoryStore(), backend)

    assert len(resolver.all_languages()) == len(DEFAULT_LANGUAGES)
