"""Pointer jiggler: nudges the mouse back and forth while motion is enabled."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from taskgoblin.state import ModeState

logger = logging.getLogger(__name__)

# Relative pointer move: (dx, dy).
Mover = Callable[[int, int], None]


def _pynput_mover() -> Mover:
    from pynput.mouse import Controller

    return Controller().move


class PointerOscillator:
    """Triangle-wave jiggle on a dedicated daemon thread.

    Every *period* seconds the motion flag is read; when set the pointer moves
    by ``±amplitude`` pixels horizontally, alternating sign each tick.  Move
    failures (e.g. Accessibility permission revoked) are swallowed so the loop
    never dies; motion resumes once permission is restored.
    """

    def __init__(
        self,
        state: ModeState,
        mover: Mover | None = None,
        *,
        period: float = 0.05,
        amplitude: int = 1,
    ) -> None:
        self._state = state
        self._mover = mover
        self._period = period
        self._amplitude = amplitude
        self._direction = 1
        self._failing = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def direction(self) -> int:
        return self._direction

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            logger.warning("Oscillator already running")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="taskgoblin-oscillator", daemon=True,
        )
        self._thread.start()
        logger.info("Pointer oscillator started (period=%.0f ms)", self._period * 1000)

    def stop(self) -> None:
        """Stop the loop (quit / test teardown only)."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=1.0)
            self._thread = None

    def tick(self) -> bool:
        """Run one oscillation step.  Returns True if a move was attempted."""
        if not self._state.is_pointer_motion_enabled():
            return False

        dx = self._direction * self._amplitude
        try:
            if self._mover is None:
                self._mover = _pynput_mover()
            self._mover(dx, 0)
        except Exception as exc:
            if not self._failing:
                logger.warning("Pointer move failed (will keep trying): %s", exc)
                self._failing = True
        else:
            if self._failing:
                logger.info("Pointer moves working again")
                self._failing = False
        self._direction = -self._direction
        return True

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stop.wait(self._period):
            try:
                self.tick()
            except Exception:
                logger.exception("Oscillator tick failed")
