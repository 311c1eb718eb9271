"""SQLite store for the offline session queue."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, List, Optional, Union

import aiosqlite

from .exceptions import QueueStoreError
from .models.language import Language
from .models.session import Session
from .types import LanguageDict

logger = logging.getLogger(__name__)


class SessionQueueStore:
    """
    Durable FIFO of closed sessions waiting to be uploaded.

    Rows are ordered by an autoincrement sequence, so the queue keeps its
    order across restarts. Only the delivery queue mutates it.
    """

    def __init__(self, data_dir: Union[str, Path]):
        self.db_path = Path(data_dir) / "queue.db"
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialized = False
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                yield db
        except aiosqlite.Error as e:
            raise QueueStoreError("Offline queue operation failed", detail=str(e)) from e

    async def initialize(self) -> None:
        """Initialize database schema (idempotent)."""
        async with self._lock:
            if self._initialized:
                return

            async with self._connect() as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS queued_sessions (
                        seq INTEGER PRIMARY KEY AUTOINCREMENT,
                        session_id TEXT NOT NULL,
                        language_id INTEGER NOT NULL,
                        language_name TEXT NOT NULL,
                        language_color TEXT NOT NULL,
                        project TEXT NOT NULL,
                        relative_path TEXT NOT NULL,
                        start_time TEXT NOT NULL,
                        end_time TEXT NOT NULL,
                        duration INTEGER NOT NULL,
                        enqueued_at TEXT NOT NULL
                    )
                """)

                await db.execute("""
                    CREATE TABLE IF NOT EXISTS language_cache (
                        id INTEGER PRIMARY KEY CHECK (id = 1),
                        languages TEXT NOT NULL,
                        cached_at TEXT NOT NULL
                    )
                """)

                await db.commit()
                logger.info(f"SessionQueueStore initialized at {self.db_path}")
                self._initialized = True

    async def append(self, session: Session) -> int:
        """
        Append a closed session to the tail of the queue.

        Returns:
            Queue size after the append
        """
        if not session.is_closed:
            raise ValueError(f"Cannot queue open session {session.id}")

        await self.initialize()

        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO queued_sessions
                    (session_id, language_id, language_name, language_color,
                     project, relative_path, start_time, end_time, duration, enqueued_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.language.id,
                    session.language.name,
                    session.language.color,
                    session.project,
                    session.relative_path,
                    session.start_time.isoformat(),
                    session.end_time.isoformat(),
                    session.duration_seconds,
                    datetime.now().astimezone().isoformat(),
                ),
            )
            await db.commit()

            async with db.execute("SELECT COUNT(*) FROM queued_sessions") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def peek(self, limit: int) -> List[Session]:
        """Oldest ``limit`` sessions, in enqueue order, without removing them."""
        await self.initialize()

        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM queued_sessions ORDER BY seq LIMIT ?", (limit,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_session(row) for row in rows]

    async def remove_from_head(self, count: int) -> int:
        """
        Delete the oldest ``count`` sessions.

        Returns:
            Number of rows removed
        """
        if count <= 0:
            return 0

        await self.initialize()

        async with self._connect() as db:
            cursor = await db.execute(
                """
                DELETE FROM queued_sessions
                WHERE seq IN (
                    SELECT seq FROM queued_sessions ORDER BY seq LIMIT ?
                )
                """,
                (count,),
            )
            removed = cursor.rowcount
            await db.commit()
            logger.debug(f"Removed {removed} session(s) from queue head")
            return removed

    async def count(self) -> int:
        """Number of queued sessions."""
        await self.initialize()

        async with self._connect() as db:
            async with db.execute("SELECT COUNT(*) FROM queued_sessions") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def clear(self) -> None:
        """Drop every queued session and the language cache."""
        await self.initialize()

        async with self._connect() as db:
            await db.execute("DELETE FROM queued_sessions")
            await db.execute("DELETE FROM language_cache")
            await db.commit()
            logger.info("Cleared offline queue and language cache")

    async def cache_languages(self, languages: List[LanguageDict]) -> None:
        """Persist the collector's language list for offline start-up."""
        await self.initialize()

        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO language_cache (id, languages, cached_at)
                VALUES (1, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    languages = excluded.languages,
                    cached_at = excluded.cached_at
                """,
                (json.dumps(languages), datetime.now().astimezone().isoformat()),
            )
            await db.commit()

    async def get_cached_languages(self) -> Optional[List[LanguageDict]]:
        """Cached language list, or None if nothing was cached yet."""
        await self.initialize()

        async with self._connect() as db:
            async with db.execute(
                "SELECT languages FROM language_cache WHERE id = 1"
            ) as cursor:
                row = await cursor.fetchone()
                return json.loads(row[0]) if row else None

    @staticmethod
    def _row_to_session(row: aiosqlite.Row) -> Session:
        return Session(
            id=row["session_id"],
            language=Language(
                id=row["language_id"],
                name=row["language_name"],
                color=row["language_color"],
            ),
            project=row["project"],
            relative_path=row["relative_path"],
            start_time=datetime.fromisoformat(row["start_time"]),
            end_time=datetime.fromisoformat(row["end_time"]),
            duration_seconds=row["duration"],
        )
