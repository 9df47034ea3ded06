"""Global triple-tap gesture detection on a modifier key.

Key state comes from a pynput listener that only records which modifiers are
held; a separate polling loop samples that state every 20 ms, edge-detects
presses and counts rapid repeats.  pynput is imported lazily so this module
can be imported on hosts without a display.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Canonical modifier name -> names of the pynput Key variants (left/right).
_MODIFIER_VARIANTS: dict[str, tuple[str, ...]] = {
    "alt": ("alt", "alt_l", "alt_r", "alt_gr"),
    "ctrl": ("ctrl", "ctrl_l", "ctrl_r"),
    "shift": ("shift", "shift_l", "shift_r"),
    "cmd": ("cmd", "cmd_l", "cmd_r"),
}


def _build_key_map(keyboard: Any) -> dict[Any, str]:
    """Reverse lookup: any pynput Key variant -> canonical modifier name."""
    key_map: dict[Any, str] = {}
    for name, variants in _MODIFIER_VARIANTS.items():
        for variant in variants:
            key = getattr(keyboard.Key, variant, None)
            if key is not None:
                key_map[key] = name
    return key_map


# ---------------------------------------------------------------------------
# Raw key state
# ---------------------------------------------------------------------------


class HeldKeyProbe:
    """Tracks which modifiers are physically held, for polling by the watcher."""

    def __init__(self) -> None:
        self._held: set[str] = set()
        self._lock = threading.Lock()
        self._listener: Any = None
        self._key_map: dict[Any, str] = {}

    def start(self) -> None:
        """Start the pynput listener in a daemon background thread."""
        if self._listener is not None:
            logger.warning("Key probe already running")
            return

        from pynput import keyboard

        self._key_map = _build_key_map(keyboard)
        self._listener = keyboard.Listener(
            on_press=self._on_key_press,
            on_release=self._on_key_release,
        )
        self._listener.daemon = True
        self._listener.start()
        logger.info("Key probe started")

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
            logger.info("Key probe stopped")
        with self._lock:
            self._held.clear()

    def is_down(self, name: str) -> bool:
        """Return True if either variant of modifier *name* is held."""
        with self._lock:
            return name in self._held

    def _on_key_press(self, key: Any) -> None:
        mod = self._key_map.get(key)
        if mod is not None:
            with self._lock:
                self._held.add(mod)

    def _on_key_release(self, key: Any) -> None:
        mod = self._key_map.get(key)
        if mod is not None:
            with self._lock:
                self._held.discard(mod)


# ---------------------------------------------------------------------------
# Tap counting
# ---------------------------------------------------------------------------


class TapCounter:
    """Counts rising edges that follow each other within *window* seconds.

    Only a false→true transition between consecutive samples counts as a tap.
    A tap arriving ``window`` seconds or more after the previous one restarts
    the count at 1.  When the count reaches *taps* it resets to 0 and
    :meth:`update` returns True once.
    """

    def __init__(self, taps: int = 3, window: float = 0.5) -> None:
        self.taps = taps
        self.window = window
        self.tap_count = 0
        self.key_was_down = False
        self._last_tap = float("-inf")

    def update(self, key_down: bool, now: float) -> bool:
        rising = key_down and not self.key_was_down
        self.key_was_down = key_down
        if not rising:
            return False

        if now - self._last_tap < self.window:
            self.tap_count += 1
        else:
            self.tap_count = 1
        self._last_tap = now

        if self.tap_count >= self.taps:
            self.tap_count = 0
            return True
        return False


# ---------------------------------------------------------------------------
# Watcher loop
# ---------------------------------------------------------------------------


class GestureWatcher:
    """Polls *is_key_down* on a dedicated thread and fires *on_trigger* per gesture.

    *on_trigger* runs on its own short-lived daemon thread so a slow pipeline
    never delays the next poll.  Probe and callback failures are logged and
    the loop keeps going.
    """

    def __init__(
        self,
        is_key_down: Callable[[], bool],
        on_trigger: Callable[[], None],
        *,
        taps: int = 3,
        window: float = 0.5,
        poll_interval: float = 0.02,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._is_key_down = is_key_down
        self._on_trigger = on_trigger
        self._counter = TapCounter(taps, window)
        self._poll_interval = poll_interval
        self._clock = clock
        self._probe_failing = False
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            logger.warning("Gesture watcher already running")
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="taskgoblin-gesture", daemon=True,
        )
        self._thread.start()
        logger.info(
            "Gesture watcher started (%d taps within %.0f ms)",
            self._counter.taps,
            self._counter.window * 1000,
        )

    def stop(self) -> None:
        """Stop the loop (quit / test teardown only)."""
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=1.0)
            self._thread = None

    def poll(self) -> bool:
        """Sample the key once.  Returns True if this sample completed a gesture."""
        try:
            key_down = bool(self._is_key_down())
        except Exception as exc:
            if not self._probe_failing:
                logger.warning("Key state unavailable (will keep polling): %s", exc)
                self._probe_failing = True
            key_down = False
        else:
            self._probe_failing = False

        if not self._counter.update(key_down, self._clock()):
            return False

        logger.info("Gesture detected — triggering")
        threading.Thread(
            target=self._fire, name="taskgoblin-gesture-trigger", daemon=True,
        ).start()
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fire(self) -> None:
        try:
            self._on_trigger()
        except Exception:
            logger.exception("Error in gesture trigger callback")

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll()
            self._stop.wait(self._poll_interval)
