"""Wires the session tracker, offline queue and collector backend together."""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, Optional, Set

from .backends.base import DeliveryBackend
from .config import Settings
from .delivery_queue import DeliveryQueue, DrainResult
from .exceptions import MissingCredentialError
from .language_service import LanguageResolver
from .models.activity import ActivityTarget, is_trackable_target
from .models.notices import Notice
from .models.session import Session
from .session_store import SessionQueueStore
from .session_tracker import SessionTracker
from .summary import ActivitySummary
from .types import Clock, NoticeCallback, SleepFn, TrackablePredicate

logger = logging.getLogger(__name__)

NOTICE_HISTORY_LIMIT = 20


class TrackerService:
    """
    Composition root for one tracked user.

    Features:
    - Closed sessions are delivered in the background, queueing on failure
    - Periodic and eager draining of the offline queue
    - Daily/weekly summary and a short history of user notices
    """

    def __init__(
        self,
        settings: Settings,
        store: SessionQueueStore,
        backend: DeliveryBackend,
        language_resolver: Optional[LanguageResolver] = None,
        is_trackable: TrackablePredicate = is_trackable_target,
        notify: Optional[NoticeCallback] = None,
        clock: Optional[Clock] = None,
        sleep: Optional[SleepFn] = None,
    ):
        self.settings = settings
        self.store = store
        self.backend = backend
        self.language_resolver = language_resolver or LanguageResolver()
        self.summary = ActivitySummary(clock=clock)
        self.notices: Deque[Notice] = deque(maxlen=NOTICE_HISTORY_LIMIT)
        self._notify = notify
        self._pending: Set[asyncio.Task[bool]] = set()

        self.queue = DeliveryQueue(
            store=store,
            backend=backend,
            batch_size=settings.UPLOAD_BATCH_SIZE,
            upload_interval_seconds=settings.UPLOAD_INTERVAL_SECONDS,
            notify=self._on_notice,
            sleep=sleep,
        )
        self.tracker = SessionTracker(
            is_trackable=is_trackable,
            resolve_language=self.language_resolver.resolve,
            on_session_closed=self._on_session_closed,
            on_session_opened=self.summary.set_active_session,
            idle_threshold_seconds=settings.IDLE_THRESHOLD_SECONDS,
            min_session_duration_seconds=settings.MIN_SESSION_DURATION_SECONDS,
            idle_check_interval_seconds=settings.IDLE_CHECK_INTERVAL_SECONDS,
            clock=clock,
        )

        logger.info(f"Initialized TrackerService, collector: {settings.API_URL}")

    async def initialize(self) -> None:
        """Prepare the store and language table."""
        await self.store.initialize()
        await self.language_resolver.initialize(self.store, self.backend)

    # Lifecycle

    def start(self, target: Optional[ActivityTarget] = None) -> None:
        """
        Start tracking and background uploads.

        Raises:
            MissingCredentialError: If no API key is configured
        """
        if not self.backend.has_credential:
            logger.warning("Please set your API key to enable time tracking.")
            raise MissingCredentialError()

        self.tracker.start(target=target)
        self.queue.start()

    def stop(self) -> Optional[Session]:
        """Stop tracking; the open session is closed and delivered."""
        closed = self.tracker.stop()
        self.queue.stop()
        return closed

    async def shutdown(self) -> None:
        """Stop, wait for pending deliveries, and release the HTTP client."""
        self.stop()
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        await self.queue.wait_idle()
        await self.backend.aclose()
        logger.info("TrackerService shut down")

    @property
    def is_tracking(self) -> bool:
        return self.tracker.is_running

    # Activity signals

    def handle_activity(
        self, target: ActivityTarget, timestamp: Optional[datetime] = None
    ) -> None:
        self.tracker.on_activity(target, timestamp)

    def handle_target_changed(
        self, target: Optional[ActivityTarget], timestamp: Optional[datetime] = None
    ) -> None:
        self.tracker.on_target_changed(target, timestamp)

    def handle_focus_changed(
        self,
        focused: bool,
        target: Optional[ActivityTarget] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        self.tracker.on_focus_changed(focused, timestamp=timestamp, target=target)

    # Credentials and settings

    async def set_api_key(self, api_key: str) -> bool:
        """
        Validate and store a new API key, then sync anything queued.

        Returns:
            False if the collector rejected the key

        Raises:
            DeliveryError: If the collector could not be reached
        """
        if not await self.backend.validate_api_key(api_key):
            logger.warning("Invalid API key rejected by collector")
            return False

        self.backend.set_api_key(api_key)
        self.settings.API_KEY = api_key
        logger.info("API key has been saved")
        self.queue.schedule_flush()
        return True

    def update_config(
        self,
        idle_threshold_seconds: Optional[int] = None,
        min_session_duration_seconds: Optional[int] = None,
        upload_interval_seconds: Optional[int] = None,
        upload_batch_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Apply runtime settings changes; None leaves a value unchanged."""
        if idle_threshold_seconds is not None:
            self.settings.IDLE_THRESHOLD_SECONDS = idle_threshold_seconds
            self.tracker.update_idle_threshold(idle_threshold_seconds)
        if min_session_duration_seconds is not None:
            self.settings.MIN_SESSION_DURATION_SECONDS = min_session_duration_seconds
            self.tracker.update_min_session_duration(min_session_duration_seconds)
        if upload_interval_seconds is not None:
            self.settings.UPLOAD_INTERVAL_SECONDS = upload_interval_seconds
            self.queue.set_upload_interval(upload_interval_seconds)
        if upload_batch_size is not None:
            self.settings.UPLOAD_BATCH_SIZE = upload_batch_size
            self.queue.batch_size = upload_batch_size
        return self.config()

    def config(self) -> Dict[str, Any]:
        return {
            "idle_threshold_seconds": self.tracker.idle_threshold_seconds,
            "min_session_duration_seconds": self.tracker.min_session_duration_seconds,
            "upload_interval_seconds": self.queue.upload_interval_seconds,
            "upload_batch_size": self.queue.batch_size,
            "api_url": self.settings.API_URL,
            "has_api_key": self.backend.has_credential,
        }

    # Sync and status

    async def sync_now(self) -> DrainResult:
        """Drain the offline queue now, following batch delays and backoff."""
        return await self.queue.flush()

    async def status(self) -> Dict[str, Any]:
        session = self.tracker.current_session
        return {
            "tracking": self.tracker.is_running,
            "state": self.tracker.state.value,
            "current_session": (
                {
                    "id": session.id,
                    "language": session.language.name,
                    "project": session.project,
                    "relative_path": session.relative_path,
                    "start_time": session.start_time.isoformat(),
                }
                if session
                else None
            ),
            "last_activity": (
                self.tracker.last_activity_time.isoformat()
                if self.tracker.last_activity_time
                else None
            ),
            "queue": await self.queue.status(),
            "notices": [n.model_dump(mode="json") for n in self.notices],
            "config": self.config(),
        }

    # Callbacks

    def _on_session_closed(self, session: Session) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(f"No event loop to deliver session {session.id}")
        else:
            task = loop.create_task(self.queue.deliver(session))
            self._pending.add(task)
            task.add_done_callback(self._on_delivery_done)

        # Display only; delivery above does not depend on it
        try:
            self.summary.add_completed_session(session)
        except Exception as e:
            logger.error(f"Failed to add session {session.id} to summary: {e}", exc_info=True)

    def _on_delivery_done(self, task: "asyncio.Task[bool]") -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception():
            logger.error(f"Session delivery failed: {task.exception()}", exc_info=task.exception())

    def _on_notice(self, notice: Notice) -> None:
        self.notices.append(notice)
        if self._notify:
            self._notify(notice)
