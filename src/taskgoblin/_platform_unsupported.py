"""Fallback backend for hosts other than macOS.

Every capability raises :class:`~taskgoblin.errors.Unsupported`, except the
accessibility check, which reports ``True`` because no permission gate exists.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

from taskgoblin.errors import Unsupported
from taskgoblin.platform import CommandResult


def _unsupported(what: str) -> Unsupported:
    return Unsupported(f"{what} is only supported on macOS (running on {sys.platform})")


def run_applescript(script: str, timeout: float | None = None) -> CommandResult:
    raise _unsupported("AppleScript")


def open_url(url: str) -> None:
    raise _unsupported("Opening URLs")


def capture_region(path: Path) -> None:
    raise _unsupported("Screen capture")


def recognize_text(
    path: Path,
    languages: Sequence[str] = ("es-ES", "en-US"),
    accurate: bool = True,
    language_correction: bool = True,
) -> str:
    raise _unsupported("OCR")


def shut_down() -> None:
    raise _unsupported("Scheduled shutdown")


def display_notification(title: str, message: str) -> None:
    raise _unsupported("Native notifications")


def request_notification_permission() -> None:
    raise _unsupported("Native notifications")


def is_accessibility_trusted() -> bool:
    return True


def open_settings_pane(pane: str) -> None:
    raise _unsupported("System Settings")
