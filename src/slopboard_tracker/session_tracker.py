"""Session lifecycle: turns activity signals into closed coding sessions."""

import asyncio
import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .models.activity import ActivityTarget
from .models.session import Session
from .types import (
    ActiveSessionCallback,
    Clock,
    LanguageResolverFn,
    SessionCallback,
    TrackablePredicate,
)

logger = logging.getLogger(__name__)

# Seconds between idle checks; independent of the idle threshold itself
IDLE_CHECK_INTERVAL_SECONDS = 10.0


def local_now() -> datetime:
    return datetime.now().astimezone()


def as_local(timestamp: datetime) -> datetime:
    """Aware local time; naive timestamps are taken as local already."""
    return timestamp.astimezone()


class TrackerState(str, Enum):
    """Tracker state."""
    IDLE = "idle"            # No open session
    TRACKING = "tracking"    # One open session


class CloseReason(str, Enum):
    """Why a session ended."""
    TARGET_CHANGED = "target_changed"
    NOT_TRACKABLE = "not_trackable"
    IDLE = "idle"
    FOCUS_LOST = "focus_lost"
    STOPPED = "stopped"


class SessionTracker:
    """
    Owns the open session and converts activity events into closed sessions.

    Lifecycle:
    - ``start()`` enables event handling and launches the idle-check task
    - events open, switch and close sessions; at most one is open at a time
    - ``stop()`` closes the open session and cancels the idle check

    Closed sessions shorter than ``min_session_duration_seconds`` are dropped;
    the rest go to ``on_session_closed``. Events arriving while the tracker is
    stopped are ignored.
    """

    def __init__(
        self,
        is_trackable: TrackablePredicate,
        resolve_language: LanguageResolverFn,
        on_session_closed: SessionCallback,
        idle_threshold_seconds: float = 120,
        min_session_duration_seconds: int = 5,
        idle_check_interval_seconds: float = IDLE_CHECK_INTERVAL_SECONDS,
        on_session_opened: Optional[ActiveSessionCallback] = None,
        clock: Optional[Clock] = None,
    ):
        self.is_trackable = is_trackable
        self.resolve_language = resolve_language
        self.on_session_closed = on_session_closed
        self.on_session_opened = on_session_opened
        self.idle_threshold_seconds = idle_threshold_seconds
        self.min_session_duration_seconds = min_session_duration_seconds
        self.idle_check_interval_seconds = idle_check_interval_seconds
        self._clock = clock or local_now

        self._running = False
        self._current_session: Optional[Session] = None
        self._current_target: Optional[ActivityTarget] = None
        self._active_target: Optional[ActivityTarget] = None
        self._last_activity_time: Optional[datetime] = None
        self._idle_task: Optional[asyncio.Task[None]] = None

    @property
    def state(self) -> TrackerState:
        return TrackerState.TRACKING if self._current_session else TrackerState.IDLE

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def current_session(self) -> Optional[Session]:
        return self._current_session

    @property
    def last_activity_time(self) -> Optional[datetime]:
        return self._last_activity_time

    # Lifecycle

    def start(
        self,
        target: Optional[ActivityTarget] = None,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """
        Enable tracking and open a session if a trackable target is active.

        The idle check is only scheduled when called from a running event
        loop; without one, callers drive ``check_idle()`` themselves.
        """
        if self._running:
            return

        now = self._now(timestamp)
        self._running = True
        self._last_activity_time = now
        if target is not None:
            self._active_target = target

        self._start_idle_check()

        if self._active_target is not None and self.is_trackable(self._active_target):
            self._open(self._active_target, now)

        logger.info(
            f"Tracking started (idle threshold {self.idle_threshold_seconds}s, "
            f"min session {self.min_session_duration_seconds}s)"
        )

    def stop(self, timestamp: Optional[datetime] = None) -> Optional[Session]:
        """
        Close the open session and cancel the idle check.

        Returns:
            The emitted session, if one was closed above the minimum duration
        """
        if not self._running:
            return None

        self._running = False
        if self._idle_task:
            self._idle_task.cancel()
            self._idle_task = None

        closed = None
        if self._current_session:
            closed = self._close(self._now(timestamp), CloseReason.STOPPED)

        logger.info("Tracking stopped")
        return closed

    # Activity signals

    def on_activity(
        self, target: ActivityTarget, timestamp: Optional[datetime] = None
    ) -> None:
        """Edit or cursor activity on ``target``."""
        if not self._running:
            return
        self._handle_target(target, self._now(timestamp))

    def on_target_changed(
        self, target: Optional[ActivityTarget], timestamp: Optional[datetime] = None
    ) -> None:
        """
        The active document changed.

        ``None`` means no text editor has focus (e.g. a terminal or panel);
        the open session is left for the idle check to end.
        """
        if not self._running:
            return
        if target is None:
            self._active_target = None
            return
        self._handle_target(target, self._now(timestamp))

    def on_focus_changed(
        self,
        focused: bool,
        timestamp: Optional[datetime] = None,
        target: Optional[ActivityTarget] = None,
    ) -> None:
        """Editor window gained or lost focus."""
        if not self._running:
            return

        now = self._now(timestamp)
        if target is not None:
            self._active_target = target

        if not focused:
            if self._current_session:
                self._close(now, CloseReason.FOCUS_LOST)
            return

        self._last_activity_time = now
        if (
            self._current_session is None
            and self._active_target is not None
            and self.is_trackable(self._active_target)
        ):
            self._open(self._active_target, now)

    def check_idle(self, now: Optional[datetime] = None) -> Optional[Session]:
        """
        End the open session if there was no activity for longer than the threshold.

        The session ends where the idle period began to count, one threshold
        after the last activity, not at the tick that noticed it.

        Returns:
            The emitted session, if one was closed above the minimum duration
        """
        if not self._current_session or not self._last_activity_time:
            return None

        now = self._now(now)
        idle_seconds = (now - self._last_activity_time).total_seconds()
        if idle_seconds > self.idle_threshold_seconds:
            logger.info(f"Idle for {idle_seconds:.0f}s, ending session")
            idle_from = self._last_activity_time + timedelta(
                seconds=self.idle_threshold_seconds
            )
            return self._close(min(now, idle_from), CloseReason.IDLE)
        return None

    # Runtime settings

    def update_idle_threshold(self, seconds: float) -> None:
        """Change the idle threshold and restart the idle check."""
        self.idle_threshold_seconds = seconds
        if self._running:
            if self._idle_task:
                self._idle_task.cancel()
                self._idle_task = None
            self._start_idle_check()
        logger.info(f"Idle threshold updated to {seconds} seconds")

    def update_min_session_duration(self, seconds: int) -> None:
        self.min_session_duration_seconds = seconds
        logger.info(f"Minimum session duration updated to {seconds} seconds")

    # Internals

    def _now(self, timestamp: Optional[datetime] = None) -> datetime:
        # Editors may send timestamps without an offset; all session times are aware
        return as_local(timestamp or self._clock())

    def _handle_target(self, target: ActivityTarget, now: datetime) -> None:
        self._active_target = target

        if not self.is_trackable(target):
            if self._current_session:
                self._close(now, CloseReason.NOT_TRACKABLE)
            return

        self._last_activity_time = now

        if self._current_session is None:
            self._open(target, now)
        elif self._current_target is None or self._current_target.key != target.key:
            self._close(now, CloseReason.TARGET_CHANGED)
            self._open(target, now)

    def _open(self, target: ActivityTarget, now: datetime) -> Session:
        if self._current_session:
            self._close(now, CloseReason.TARGET_CHANGED)

        session = Session(
            language=self.resolve_language(target),
            project=target.project,
            relative_path=target.relative_path,
            start_time=now,
        )
        self._current_session = session
        self._current_target = target
        logger.debug(
            f"Opened session {session.id} ({session.language.name}, {session.relative_path})"
        )
        self._notify_opened(session)
        return session

    def _close(self, now: datetime, reason: CloseReason) -> Optional[Session]:
        session = self._current_session
        if session is None:
            return None

        duration = session.close(now)
        self._current_session = None
        self._current_target = None
        self._notify_opened(None)

        if duration < self.min_session_duration_seconds:
            logger.debug(
                f"Discarded session {session.id} ({duration}s < "
                f"{self.min_session_duration_seconds}s, reason: {reason.value})"
            )
            return None

        logger.info(
            f"Session {session.id} closed: {session.language.name}, "
            f"{duration}s (reason: {reason.value})"
        )
        try:
            self.on_session_closed(session)
        except Exception as e:
            logger.error(f"Session handler failed for {session.id}: {e}", exc_info=True)
        return session

    def _notify_opened(self, session: Optional[Session]) -> None:
        if not self.on_session_opened:
            return
        try:
            self.on_session_opened(session)
        except Exception as e:
            logger.error(f"Active session handler failed: {e}", exc_info=True)

    def _start_idle_check(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; idle check must be driven manually")
            return
        self._idle_task = loop.create_task(self._idle_check_loop())

    async def _idle_check_loop(self) -> None:
        """Background task that ends sessions after inactivity."""
        while True:
            try:
                await asyncio.sleep(self.idle_check_interval_seconds)
                self.check_idle()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in idle check loop: {e}", exc_info=True)
