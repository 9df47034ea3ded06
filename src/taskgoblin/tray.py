"""Menu-bar (system tray) icon with the TaskGoblin command menu."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

import pystray
from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Icon colours for each application state
# ---------------------------------------------------------------------------

_STATUS_COLORS: dict[str, str] = {
    "Ready": "#4CAF50",  # green
    "Moving Mouse": "#2196F3",  # blue
    "Shutdown Pending": "#FF9800",  # orange
    "Error": "#F44336",  # red
}

_DEFAULT_ICON_COLOR = "#4CAF50"

TOGGLE_ON_LABEL = "Stop Moving Mouse"
TOGGLE_OFF_LABEL = "Start Moving Mouse"


def toggle_label(motion_enabled: bool) -> str:
    return TOGGLE_ON_LABEL if motion_enabled else TOGGLE_OFF_LABEL


def preset_label(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} Hour" if hours == 1 else f"{hours} Hours"
    return f"{minutes} Minutes"


# ---------------------------------------------------------------------------
# Icon helper
# ---------------------------------------------------------------------------


def _create_icon_image(color: str = _DEFAULT_ICON_COLOR, size: int = 64) -> Image.Image:
    """Create a simple colored circle icon on a transparent background."""
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    margin = size // 8
    draw.ellipse(
        [margin, margin, size - margin, size - margin],
        fill=color,
    )
    return image


# ---------------------------------------------------------------------------
# System tray application
# ---------------------------------------------------------------------------


@dataclass
class TrayCommands:
    """Callbacks invoked from the tray menu (on pystray's thread)."""

    toggle_mouse: Callable[[], None]
    run_ocr: Callable[[], None]
    schedule_shutdown: Callable[[int], None]  # minutes
    cancel_shutdown: Callable[[], None]
    close_leisure: Callable[[], None]
    close_heavy: Callable[[], None]
    close_all: Callable[[], None]
    toggle_panel: Callable[[], None]
    quit: Callable[[], None]


class TrayApp:
    """pystray-based tray icon.

    The toggle item's label follows *is_motion_enabled*; the status line and
    icon colour follow :meth:`update_status`.
    """

    def __init__(
        self,
        commands: TrayCommands,
        is_motion_enabled: Callable[[], bool],
        *,
        shutdown_presets: Sequence[int] = (15, 30, 60, 120),
    ) -> None:
        self._commands = commands
        self._is_motion_enabled = is_motion_enabled
        self._presets = list(shutdown_presets)
        self._status: str = "Ready"
        self._icon: pystray.Icon | None = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def run(self) -> None:
        """Run the tray icon (**blocks** the calling thread)."""
        self._icon = pystray.Icon(
            name="TaskGoblin",
            icon=_create_icon_image(_STATUS_COLORS.get(self._status, _DEFAULT_ICON_COLOR)),
            title=f"TaskGoblin - {self._status}",
            menu=self._build_menu(),
        )
        logger.info("Starting tray icon")
        self._icon.run()

    def update_status(self, status: str) -> None:
        """Update the status text and icon colour shown in the tray."""
        self._status = status
        icon = self._icon
        if icon is None:
            return

        color = _STATUS_COLORS.get(status, _DEFAULT_ICON_COLOR)
        icon.icon = _create_icon_image(color)
        icon.title = f"TaskGoblin - {status}"

        # Rebuild the menu so the status line and toggle label are current.
        icon.menu = self._build_menu()
        icon.update_menu()
        logger.debug("Tray status updated to %r", status)

    def stop(self) -> None:
        """Stop the tray icon and unblock :meth:`run`."""
        icon = self._icon
        if icon is not None:
            icon.stop()
            logger.info("Tray icon stopped")

    # ------------------------------------------------------------------ #
    # Menu construction
    # ------------------------------------------------------------------ #

    def _build_menu(self) -> pystray.Menu:
        """Build the context menu."""
        shutdown_items = [
            pystray.MenuItem(preset_label(m), self._preset_action(m))
            for m in self._presets
        ]
        shutdown_items += [
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Cancel Shutdown", self._wrap("cancel shutdown", self._commands.cancel_shutdown)),
        ]

        return pystray.Menu(
            pystray.MenuItem(
                f"TaskGoblin - {self._status}",
                action=None,
                enabled=False,
            ),
            # Default (left-click) action where the backend supports one.
            pystray.MenuItem(
                "Show Panel",
                self._wrap("toggle panel", self._commands.toggle_panel),
                default=True,
                visible=False,
            ),
            pystray.MenuItem(
                lambda _item: toggle_label(self._is_motion_enabled()),
                self._on_toggle_clicked,
            ),
            pystray.MenuItem(
                "Extract Text",
                self._wrap("extract text", self._commands.run_ocr),
            ),
            pystray.MenuItem("Shut Down In", pystray.Menu(*shutdown_items)),
            pystray.MenuItem(
                "Close Apps",
                pystray.Menu(
                    pystray.MenuItem("Leisure", self._wrap("close leisure", self._commands.close_leisure)),
                    pystray.MenuItem("Heavy", self._wrap("close heavy", self._commands.close_heavy)),
                    pystray.MenuItem("All", self._wrap("close all", self._commands.close_all)),
                ),
            ),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("Quit", self._on_quit_clicked),
        )

    # ------------------------------------------------------------------ #
    # Menu action handlers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _wrap(name: str, callback: Callable[[], None]) -> Callable[[pystray.Icon, pystray.MenuItem], None]:
        def _action(icon: pystray.Icon, item: pystray.MenuItem) -> None:
            try:
                callback()
            except Exception:
                logger.exception("Tray action %r failed", name)

        return _action

    def _preset_action(self, minutes: int) -> Callable[[pystray.Icon, pystray.MenuItem], None]:
        return self._wrap(
            f"shut down in {minutes} min",
            lambda: self._commands.schedule_shutdown(minutes),
        )

    def _on_toggle_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        try:
            self._commands.toggle_mouse()
        except Exception:
            logger.exception("Tray action 'toggle mouse' failed")
        icon.update_menu()

    def _on_quit_clicked(self, icon: pystray.Icon, item: pystray.MenuItem) -> None:
        """Handle the Quit menu item."""
        logger.info("Quit requested via tray menu")
        try:
            self._commands.quit()
        except Exception:
            logger.exception("Error in quit callback")
        self.stop()
