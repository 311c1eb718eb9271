"""Offline delivery queue with adaptive batching and backoff."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Set

from .backends.base import DeliveryBackend
from .exceptions import DeliveryError, QueueStoreError
from .grouping import group_sessions
from .models.notices import Notice, NoticeKind, NoticeLevel
from .models.session import Session
from .session_store import SessionQueueStore
from .types import NoticeCallback, QueueStatusDict, SleepFn

logger = logging.getLogger(__name__)

# Backlog sizes above which a drain takes bigger bites
LARGE_BACKLOG = 100
LARGE_BACKLOG_BATCH_SIZE = 50
HUGE_BACKLOG = 500
HUGE_BACKLOG_BATCH_SIZE = 100

# Delay before the next batch while a backlog is draining
FAST_BATCH_DELAY_MS = 500
NORMAL_BATCH_DELAY_MS = 2000
MAX_BATCH_DELAY_MS = 5000
FAST_DRAIN_BACKLOG = 1000

# Backoff after failed drains: 1s, 2s, 4s, 8s, 16s, then back to the periodic timer
BASE_RETRY_DELAY_MS = 1000
MAX_CONSECUTIVE_FAILURES = 5

# Queue sizes that warn the user once when reached exactly
OFFLINE_WARNING_THRESHOLDS = (10, 50, 100, 500)


class DrainStatus(str, Enum):
    """Outcome of one drain attempt."""
    EMPTY = "empty"
    IN_FLIGHT = "in_flight"
    NO_CREDENTIAL = "no_credential"
    SENT = "sent"
    FAILED = "failed"
    STORE_ERROR = "store_error"


@dataclass
class DrainResult:
    """What a drain did and when the next one should run."""
    status: DrainStatus
    sent: int = 0
    remaining: int = 0
    next_delay_ms: Optional[int] = None


class DeliveryQueue:
    """
    Guarantees eventual delivery of closed sessions.

    Each session is first sent on its own; if that fails it is appended to a
    durable FIFO. Drains take batches from the head, group them by language
    and week, and remove exactly the sent rows on success. A failed batch
    leaves the queue untouched and is retried in full.

    Only one drain runs at a time. ``flush()`` chains drains with the
    adaptive delay or backoff each drain asks for; a periodic task started
    by ``start()`` calls ``flush()`` every ``upload_interval_seconds`` as the
    baseline recovery path.
    """

    def __init__(
        self,
        store: SessionQueueStore,
        backend: DeliveryBackend,
        batch_size: int = 10,
        upload_interval_seconds: float = 300,
        has_credential: Optional[Callable[[], bool]] = None,
        notify: Optional[NoticeCallback] = None,
        sleep: Optional[SleepFn] = None,
    ):
        self.store = store
        self.backend = backend
        self.batch_size = batch_size
        self.upload_interval_seconds = upload_interval_seconds
        self._has_credential = has_credential or (lambda: backend.has_credential)
        self._notify = notify
        self._sleep = sleep or asyncio.sleep

        self._drain_in_flight = False
        self._failure_count = 0
        self._stopped = False
        self._last_status: Optional[DrainStatus] = None
        self._upload_task: Optional[asyncio.Task[None]] = None
        self._flush_tasks: Set[asyncio.Task[DrainResult]] = set()

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def drain_in_flight(self) -> bool:
        return self._drain_in_flight

    @property
    def is_running(self) -> bool:
        return self._upload_task is not None

    # Sizing

    def batch_size_for(self, total: int) -> int:
        """Batch size for a backlog of ``total`` sessions."""
        if total > HUGE_BACKLOG:
            return HUGE_BACKLOG_BATCH_SIZE
        if total > LARGE_BACKLOG:
            return LARGE_BACKLOG_BATCH_SIZE
        return self.batch_size

    @staticmethod
    def next_batch_delay_ms(total: int) -> int:
        """Pause before the next batch, given the backlog before this drain."""
        delay = FAST_BATCH_DELAY_MS if total > FAST_DRAIN_BACKLOG else NORMAL_BATCH_DELAY_MS
        return min(max(FAST_BATCH_DELAY_MS, delay), MAX_BATCH_DELAY_MS)

    # Immediate path

    async def deliver(self, session: Session) -> bool:
        """
        Send one closed session, queueing it if the send fails.

        Returns:
            True if the collector accepted the session
        """
        try:
            await self.backend.send_one(session)
            logger.debug(f"Delivered session {session.id}")
            return True
        except DeliveryError as e:
            logger.warning(f"Failed to send session {session.id}, queueing: {e.message}")

        await self.enqueue(session)
        return False

    async def enqueue(self, session: Session) -> bool:
        """
        Append a session to the offline queue.

        Returns:
            False if the store could not be written (the session is lost)
        """
        try:
            count = await self.store.append(session)
        except QueueStoreError as e:
            logger.error(f"Failed to store offline session {session.id}: {e.message} {e.detail}")
            return False

        logger.info(f"Session {session.id} saved offline ({count} queued)")

        if count in OFFLINE_WARNING_THRESHOLDS:
            self._emit(
                NoticeLevel.WARNING,
                NoticeKind.OFFLINE_BACKLOG,
                f"You have {count} coding sessions stored offline. "
                "Please check your internet connection.",
            )
        if count == 1:
            self._emit(
                NoticeLevel.INFO,
                NoticeKind.OFFLINE_SAVED,
                "Session saved offline. It will be sent when connection is restored.",
            )
        return True

    # Draining

    async def drain(self) -> DrainResult:
        """Send one batch from the head of the queue."""
        if self._drain_in_flight:
            return DrainResult(DrainStatus.IN_FLIGHT)

        self._drain_in_flight = True
        try:
            result = await self._drain_once()
        finally:
            self._drain_in_flight = False

        self._last_status = result.status
        return result

    async def _drain_once(self) -> DrainResult:
        try:
            total = await self.store.count()
        except QueueStoreError as e:
            logger.error(f"Could not read offline queue: {e.message} {e.detail}")
            return DrainResult(DrainStatus.STORE_ERROR)

        if total == 0:
            return DrainResult(DrainStatus.EMPTY)

        if not self._has_credential():
            logger.debug(f"No API key configured, leaving {total} session(s) queued")
            return DrainResult(DrainStatus.NO_CREDENTIAL, remaining=total)

        batch_size = self.batch_size_for(total)
        try:
            batch = await self.store.peek(batch_size)
        except QueueStoreError as e:
            logger.error(f"Could not read offline queue: {e.message} {e.detail}")
            return DrainResult(DrainStatus.STORE_ERROR, remaining=total)

        if not batch:
            return DrainResult(DrainStatus.EMPTY)

        groups = group_sessions(batch)
        logger.info(
            f"Sending {len(groups)} grouped session(s) "
            f"(from {len(batch)} of {total} queued)"
        )

        try:
            await self.backend.send_batch(groups)
        except DeliveryError as e:
            logger.warning(f"Failed to send offline sessions: {e.message}")
            return self._record_failure(total)

        self._failure_count = 0

        try:
            await self.store.remove_from_head(len(batch))
            remaining = await self.store.count()
        except QueueStoreError as e:
            # Rows stay queued and will be sent again
            logger.error(f"Sent batch but could not update queue: {e.message} {e.detail}")
            return DrainResult(DrainStatus.STORE_ERROR, sent=len(batch), remaining=total)

        if total > LARGE_BACKLOG:
            self._emit(
                NoticeLevel.INFO,
                NoticeKind.SYNC_PROGRESS,
                f"Syncing coding sessions: {remaining} remaining",
            )

        next_delay_ms = None
        if remaining > 0:
            next_delay_ms = self.next_batch_delay_ms(total)
        elif total >= batch_size:
            self._emit(
                NoticeLevel.INFO,
                NoticeKind.SYNC_COMPLETE,
                f"{total} coding sessions have been synced.",
            )

        return DrainResult(
            DrainStatus.SENT,
            sent=len(batch),
            remaining=remaining,
            next_delay_ms=next_delay_ms,
        )

    def _record_failure(self, total: int) -> DrainResult:
        if self._failure_count < MAX_CONSECUTIVE_FAILURES:
            delay_ms = BASE_RETRY_DELAY_MS * 2 ** self._failure_count
            self._failure_count += 1
            logger.info(
                f"Retrying offline upload in {delay_ms}ms "
                f"(attempt {self._failure_count}/{MAX_CONSECUTIVE_FAILURES})"
            )
            return DrainResult(DrainStatus.FAILED, remaining=total, next_delay_ms=delay_ms)

        logger.info("Giving up retries until the next scheduled upload")
        self._failure_count = 0
        return DrainResult(DrainStatus.FAILED, remaining=total)

    async def flush(self) -> DrainResult:
        """
        Drain repeatedly until the queue is empty, a drain fails for good,
        or the queue is stopped.

        Returns:
            The result of the last drain
        """
        result = await self.drain()
        while result.next_delay_ms is not None and not self._stopped:
            await self._sleep(result.next_delay_ms / 1000)
            if self._stopped:
                break
            result = await self.drain()
        return result

    def schedule_flush(self) -> Optional["asyncio.Task[DrainResult]"]:
        """Start a flush in the background (eager sync)."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; flush not scheduled")
            return None

        task = loop.create_task(self.flush())
        self._flush_tasks.add(task)
        task.add_done_callback(self._on_flush_done)
        return task

    def _on_flush_done(self, task: "asyncio.Task[DrainResult]") -> None:
        self._flush_tasks.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Offline upload failed: {task.exception()}", exc_info=task.exception())

    # Lifecycle

    def start(self) -> None:
        """Start the periodic upload task and kick one eager flush."""
        self._stopped = False
        if self._upload_task is None:
            self._upload_task = asyncio.get_running_loop().create_task(self._upload_loop())
            logger.info(f"Offline upload task started (every {self.upload_interval_seconds}s)")
        self.schedule_flush()

    def stop(self) -> None:
        """
        Cancel the periodic upload task and end retry chains.

        A send already in progress finishes normally; only the follow-up
        drains are skipped.
        """
        self._stopped = True
        if self._upload_task:
            self._upload_task.cancel()
            self._upload_task = None
            logger.info("Offline upload task stopped")

    async def wait_idle(self) -> None:
        """Wait for background flushes to finish."""
        if self._flush_tasks:
            await asyncio.gather(*list(self._flush_tasks), return_exceptions=True)

    def set_upload_interval(self, seconds: float) -> None:
        """Change the periodic upload interval, restarting the task if running."""
        self.upload_interval_seconds = seconds
        if self._upload_task:
            self._upload_task.cancel()
            self._upload_task = asyncio.get_running_loop().create_task(self._upload_loop())
        logger.info(f"Upload interval updated to {seconds} seconds")

    async def _upload_loop(self) -> None:
        """Background task that drains the queue on a fixed cadence."""
        while True:
            try:
                await asyncio.sleep(self.upload_interval_seconds)
                # Separate task so that stop() never aborts a send in progress
                self.schedule_flush()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in upload loop: {e}", exc_info=True)

    async def status(self) -> QueueStatusDict:
        try:
            queued = await self.store.count()
        except QueueStoreError as e:
            logger.error(f"Could not read offline queue: {e.message}")
            queued = -1
        return {
            "queued": queued,
            "drain_in_flight": self._drain_in_flight,
            "consecutive_failures": self._failure_count,
            "running": self.is_running,
            "last_drain_status": self._last_status.value if self._last_status else None,
        }

    def _emit(self, level: NoticeLevel, kind: NoticeKind, message: str) -> None:
        notice = Notice(level=level, kind=kind, message=message)
        if level is NoticeLevel.WARNING:
            logger.warning(message)
        else:
            logger.info(message)
        if self._notify:
            try:
                self._notify(notice)
            except Exception as e:
                logger.error(f"Notice handler failed: {e}", exc_info=True)
