"""Deferred system shutdown that can be replaced or cancelled before it fires.

At most one shutdown is pending.  Each schedule owns a single-use
:class:`threading.Event` as its cancellation handle; its timer thread races
``handle.wait(delay)`` against the handle being set.  Rescheduling retires
the previous handle and installs the new descriptor under one lock, so the
newest :meth:`ShutdownScheduler.schedule` call always wins.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, NamedTuple, Protocol

from taskgoblin import platform
from taskgoblin.errors import InvalidArgument, Unsupported

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleDescriptor:
    """The one outstanding deferred action; all fields are None when idle."""

    target_timestamp: int | None = None
    duration_secs: float | None = None
    cancellation_handle: threading.Event | None = None


_IDLE = ScheduleDescriptor()


class ShutdownStatus(NamedTuple):
    target_timestamp: int
    duration_secs: float


def format_countdown(seconds: int) -> str:
    """Render *seconds* as ``H:MM:SS`` (an hour or more) or ``M:SS``."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class CountdownIndicator(Protocol):
    """Countdown surface driven by the scheduler.

    Both methods are called with the scheduler lock held, so they must not
    block or call back into the scheduler synchronously.
    """

    def show(
        self,
        get_status: Callable[[], ShutdownStatus],
        on_cancel: Callable[[], None],
    ) -> None: ...

    def close(self) -> None: ...


class ShutdownScheduler:
    """Schedules *action* (system shutdown by default) after a delay.

    Args:
        action: Called exactly once on the timer thread when a schedule fires.
        indicator: Optional countdown surface shown while a schedule is pending.
        supported: Whether the host can shut down; False makes
            :meth:`schedule` raise :class:`Unsupported`.
        clock: Wall-clock source in seconds since the epoch.
    """

    def __init__(
        self,
        action: Callable[[], None] | None = None,
        *,
        indicator: CountdownIndicator | None = None,
        supported: bool = platform.IS_MACOS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._action = action or platform.shut_down
        self._indicator = indicator
        self._supported = supported
        self._clock = clock
        self._lock = threading.Lock()
        # Replaced wholesale, never mutated, so readers need no lock.
        self._descriptor = _IDLE

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_pending(self) -> bool:
        return self._descriptor.cancellation_handle is not None

    def schedule(self, delay_secs: float) -> ShutdownStatus:
        """Schedule the action *delay_secs* from now, superseding any pending one.

        Raises:
            Unsupported: If the host cannot shut down.
            InvalidArgument: If *delay_secs* is not positive.  Any pending
                schedule is left untouched.
        """
        if not self._supported:
            raise Unsupported("Scheduled shutdown is not supported on this OS")
        if delay_secs <= 0:
            raise InvalidArgument("Delay must be greater than 0")

        handle = threading.Event()
        with self._lock:
            previous = self._descriptor.cancellation_handle
            if previous is not None:
                previous.set()
                logger.info("Replacing pending shutdown")
            target = int(self._clock() + delay_secs)
            descriptor = ScheduleDescriptor(
                target_timestamp=target,
                duration_secs=delay_secs,
                cancellation_handle=handle,
            )
            self._descriptor = descriptor
            # Under the lock so a concurrent cancel cannot close the island
            # before it is shown.
            self._show_indicator()

        threading.Thread(
            target=self._race,
            args=(handle, delay_secs),
            name="taskgoblin-shutdown-timer",
            daemon=True,
        ).start()
        logger.info("Shutdown scheduled in %s s (at %d)", delay_secs, target)
        return ShutdownStatus(target, delay_secs)

    def cancel(self) -> None:
        """Cancel the pending shutdown, if any.  Idempotent; never raises."""
        with self._lock:
            handle = self._descriptor.cancellation_handle
            if handle is not None:
                handle.set()
            self._descriptor = _IDLE
            self._close_indicator()
        if handle is not None:
            logger.info("Pending shutdown cancelled")

    def status(self) -> ShutdownStatus:
        """Return ``(target_timestamp, duration_secs)``, ``(0, 0)`` when idle."""
        descriptor = self._descriptor
        return ShutdownStatus(
            descriptor.target_timestamp or 0,
            descriptor.duration_secs or 0,
        )

    def remaining(self, now: float | None = None) -> int:
        """Whole seconds until the pending shutdown fires (0 when idle)."""
        target = self._descriptor.target_timestamp
        if target is None:
            return 0
        if now is None:
            now = self._clock()
        return max(0, int(target - now))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _race(self, handle: threading.Event, delay_secs: float) -> None:
        if handle.wait(delay_secs):
            logger.debug("Shutdown timer aborted (cancelled or replaced)")
            return

        with self._lock:
            # A cancel or reschedule may have won between the timeout and here.
            if self._descriptor.cancellation_handle is not handle or handle.is_set():
                return
            handle.set()
            self._descriptor = _IDLE

        logger.info("Shutdown timer elapsed — running deferred action")
        try:
            self._action()
        except Exception:
            logger.exception("Deferred shutdown action failed")
        finally:
            with self._lock:
                # The action may have scheduled again; that island stays.
                if self._descriptor.cancellation_handle is None:
                    self._close_indicator()

    def _show_indicator(self) -> None:
        if self._indicator is None:
            return
        try:
            self._indicator.show(self.status, self.cancel)
        except Exception:
            logger.debug("Countdown indicator could not be shown", exc_info=True)

    def _close_indicator(self) -> None:
        if self._indicator is None:
            return
        try:
            self._indicator.close()
        except Exception:
            logger.debug("Countdown indicator could not be closed", exc_info=True)
