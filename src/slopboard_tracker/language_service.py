"""Language lookup table for tracked files."""

import logging
import os
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from .exceptions import TrackerError
from .models.activity import ActivityTarget
from .models.language import Language, unknown_language
from .types import LanguageDict

if TYPE_CHECKING:
    from .backends.base import DeliveryBackend
    from .session_store import SessionQueueStore

logger = logging.getLogger(__name__)

# Fallbacks used until the collector's list is cached
DEFAULT_LANGUAGES: List[LanguageDict] = [
    {"id": 1, "name": "JavaScript", "color": "#f7df1e"},
    {"id": 2, "name": "TypeScript", "color": "#007acc"},
    {"id": 3, "name": "Python", "color": "#3572A5"},
    {"id": 4, "name": "Java", "color": "#b07219"},
    {"id": 5, "name": "C#", "color": "#178600"},
    {"id": 6, "name": "C++", "color": "#f34b7d"},
    {"id": 7, "name": "PHP", "color": "#4F5D95"},
    {"id": 8, "name": "Ruby", "color": "#701516"},
    {"id": 9, "name": "Go", "color": "#00ADD8"},
    {"id": 10, "name": "Rust", "color": "#dea584"},
    {"id": 11, "name": "HTML", "color": "#e34c26"},
    {"id": 12, "name": "CSS", "color": "#563d7c"},
    {"id": 13, "name": "Swift", "color": "#ffac45"},
    {"id": 14, "name": "Kotlin", "color": "#F18E33"},
    {"id": 15, "name": "Dart", "color": "#00B4AB"},
]

# Keyed by lowercase language name
EXTENSIONS: Dict[str, List[str]] = {
    "javascript": [".js", ".mjs", ".cjs"],
    "typescript": [".ts", ".tsx"],
    "python": [".py", ".pyw", ".pyx"],
    "java": [".java"],
    "c#": [".cs"],
    "c++": [".cpp", ".cc", ".cxx", ".hpp", ".h"],
    "php": [".php"],
    "ruby": [".rb"],
    "go": [".go"],
    "rust": [".rs"],
    "html": [".html", ".htm"],
    "css": [".css"],
    "swift": [".swift"],
    "kotlin": [".kt", ".kts"],
    "dart": [".dart"],
}


class LanguageResolver:
    """
    Maps documents to collector languages.

    Matching order: editor language id (by lowercase name), then file
    extension, then the unknown-language sentinel. Never fails.
    """

    def __init__(self, languages: Optional[Iterable[LanguageDict]] = None):
        self._languages: List[Language] = []
        self._by_name: Dict[str, Language] = {}
        self._by_extension: Dict[str, Language] = {}
        self.set_languages(languages if languages is not None else DEFAULT_LANGUAGES)

    def set_languages(self, languages: Iterable[LanguageDict]) -> None:
        """Replace the lookup table."""
        self._languages = [Language(**lang) for lang in languages]
        self._by_name.clear()
        self._by_extension.clear()

        for lang in self._languages:
            name = lang.name.lower()
            self._by_name[name] = lang
            for ext in EXTENSIONS.get(name, []):
                self._by_extension[ext] = lang

    def resolve(self, target: ActivityTarget) -> Language:
        """Resolve the language of a document."""
        if target.language_hint:
            lang = self._by_name.get(target.language_hint.lower())
            if lang:
                return lang

        ext = os.path.splitext(target.path)[1].lower()
        if ext:
            lang = self._by_extension.get(ext)
            if lang:
                return lang

        return unknown_language(target.language_hint)

    def get_by_id(self, language_id: int) -> Optional[Language]:
        for lang in self._languages:
            if lang.id == language_id:
                return lang
        return None

    def all_languages(self) -> List[Language]:
        return list(self._languages)

    async def initialize(
        self,
        store: "SessionQueueStore",
        backend: "DeliveryBackend",
    ) -> None:
        """Load the cached language list, or fetch and cache it from the collector."""
        try:
            cached = await store.get_cached_languages()
        except TrackerError as e:
            logger.warning(f"Could not read language cache: {e}")
            cached = None

        if cached:
            self.set_languages(cached)
            logger.info(f"Loaded {len(cached)} language(s) from cache")
            return

        try:
            languages = await backend.get_languages()
        except TrackerError as e:
            logger.warning(f"Failed to fetch languages, using defaults: {e}")
            return

        if languages:
            self.set_languages(languages)
            try:
                await store.cache_languages(languages)
            except TrackerError as e:
                logger.warning(f"Could not cache languages: {e}")
            logger.info(f"Fetched {len(languages)} language(s) from collector")
