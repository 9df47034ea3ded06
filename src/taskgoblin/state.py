"""Process-wide operating modes shared by the background loops and UI commands.

Flags are grouped under two locks:

* the *motion* lock guards ``pointer_motion_enabled`` and is read by the
  oscillator every tick, so it is never held across a slow call;
* the *surface* lock guards pet / paint / dialog mode and is held while the
  matching window side effects run, so nobody observes e.g. ``pet_mode`` set
  while the panel has not been maximized yet.

Window side effects are best-effort: the flag is the authoritative state, and
a failing resize never aborts the flag change or reaches the caller.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from taskgoblin.errors import Unsupported
from taskgoblin.platform import IS_MACOS
from taskgoblin.surface import Surface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModeSnapshot:
    pointer_motion_enabled: bool
    pet_mode: bool
    paint_mode: bool
    dialog_open: bool


class ModeState:
    """Created once at startup and passed to every loop and command."""

    def __init__(
        self,
        surface: Surface,
        *,
        window_modes_supported: bool = IS_MACOS,
        panel_size: tuple[int, int] = (440, 820),
        pointer_motion_enabled: bool = False,
    ) -> None:
        self._surface = surface
        self._window_modes_supported = window_modes_supported
        self._panel_size = panel_size

        self._motion_lock = threading.Lock()
        self._pointer_motion_enabled = pointer_motion_enabled

        self._surface_lock = threading.Lock()
        self._pet_mode = False
        self._paint_mode = False
        self._dialog_open = False

    # ------------------------------------------------------------------
    # Pointer motion
    # ------------------------------------------------------------------

    def is_pointer_motion_enabled(self) -> bool:
        with self._motion_lock:
            return self._pointer_motion_enabled

    def set_pointer_motion(self, enabled: bool) -> None:
        with self._motion_lock:
            self._pointer_motion_enabled = enabled
        logger.info("Pointer motion %s", "enabled" if enabled else "disabled")

    def toggle_pointer_motion(self) -> bool:
        """Invert the motion flag and return the new value."""
        with self._motion_lock:
            self._pointer_motion_enabled = not self._pointer_motion_enabled
            enabled = self._pointer_motion_enabled
        logger.info("Pointer motion %s", "enabled" if enabled else "disabled")
        return enabled

    # ------------------------------------------------------------------
    # Surface modes
    # ------------------------------------------------------------------

    @property
    def pet_mode(self) -> bool:
        with self._surface_lock:
            return self._pet_mode

    @property
    def paint_mode(self) -> bool:
        with self._surface_lock:
            return self._paint_mode

    @property
    def dialog_open(self) -> bool:
        with self._surface_lock:
            return self._dialog_open

    def set_pet_mode(self, active: bool) -> None:
        """Enter or leave pet mode: a full-screen, click-through, topmost panel.

        Raises:
            Unsupported: On platforms without window modes.  The flag is
                still recorded before the error is raised.
        """
        with self._surface_lock:
            self._pet_mode = active
            if self._window_modes_supported:
                if active:
                    self._enter_fullscreen(click_through=True)
                else:
                    self._restore_panel()
        logger.info("Pet mode %s", "on" if active else "off")
        if not self._window_modes_supported:
            raise Unsupported("Pet mode not supported on this OS")

    def set_paint_mode(self, active: bool) -> None:
        """Enter or leave paint mode: a full-screen topmost panel that keeps the mouse.

        Raises:
            Unsupported: On platforms without window modes.  The flag is
                still recorded before the error is raised.
        """
        with self._surface_lock:
            self._paint_mode = active
            if self._window_modes_supported:
                if active:
                    # Not click-through: the toolbar must stay interactive.
                    self._enter_fullscreen(click_through=False)
                else:
                    self._restore_panel()
        logger.info("Paint mode %s", "on" if active else "off")
        if not self._window_modes_supported:
            raise Unsupported("Paint mode not supported on this OS")

    def set_dialog_open(self, open_: bool) -> None:
        with self._surface_lock:
            self._dialog_open = open_

    def set_click_through(self, ignore: bool) -> None:
        self._best_effort("set_click_through", self._surface.set_click_through, ignore)

    def should_auto_hide(self) -> bool:
        """True when losing focus may hide the panel (no mode or modal holds it open)."""
        with self._surface_lock:
            return not (self._pet_mode or self._paint_mode or self._dialog_open)

    def snapshot(self) -> ModeSnapshot:
        with self._motion_lock:
            motion = self._pointer_motion_enabled
        with self._surface_lock:
            return ModeSnapshot(
                pointer_motion_enabled=motion,
                pet_mode=self._pet_mode,
                paint_mode=self._paint_mode,
                dialog_open=self._dialog_open,
            )

    # ------------------------------------------------------------------
    # Side effects (surface lock held)
    # ------------------------------------------------------------------

    def _enter_fullscreen(self, click_through: bool) -> None:
        surface = self._surface
        self._best_effort("set_resizable", surface.set_resizable, True)
        self._best_effort("maximize", surface.maximize)
        self._best_effort("set_always_on_top", surface.set_always_on_top, True)
        self._best_effort("set_click_through", surface.set_click_through, click_through)

    def _restore_panel(self) -> None:
        surface = self._surface
        width, height = self._panel_size
        self._best_effort("set_click_through", surface.set_click_through, False)
        self._best_effort("unmaximize", surface.unmaximize)
        self._best_effort("set_size", surface.set_size, width, height)
        self._best_effort("set_resizable", surface.set_resizable, False)
        self._best_effort("set_always_on_top", surface.set_always_on_top, False)

    @staticmethod
    def _best_effort(name: str, fn: Callable[..., object], *args: object) -> None:
        try:
            fn(*args)
        except Exception as exc:
            logger.debug("Surface %s%r failed (ignored): %s", name, args, exc)
