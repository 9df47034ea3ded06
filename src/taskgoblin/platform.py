"""Platform-specific operations: external commands, screen capture, OCR, shutdown.

This module defines the public API, the shared data classes and the generic
command runner, then dispatches to the correct backend based on
``sys.platform``.  Only macOS has a real backend; every other platform gets a
backend whose functions raise :class:`~taskgoblin.errors.Unsupported`.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Sequence

from taskgoblin.errors import ExternalProcessFailure

logger = logging.getLogger(__name__)

IS_MACOS = sys.platform == "darwin"

# ---------------------------------------------------------------------------
# Shared data classes (platform-agnostic)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one external program invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# ---------------------------------------------------------------------------
# Command runner
# ---------------------------------------------------------------------------


def run_command(
    args: Sequence[str],
    *,
    input_text: str | None = None,
    timeout: float | None = None,
    check: bool = True,
) -> CommandResult:
    """Run an external program to completion and capture its text output.

    This call blocks; callers on a UI or polling thread must hop to a worker
    thread first.

    Raises:
        ExternalProcessFailure: If the program cannot be spawned, times out,
            or (with *check*) exits with a non-zero status.
    """
    argv = tuple(str(a) for a in args)
    name = argv[0] if argv else "?"
    try:
        proc = subprocess.run(
            argv,
            input=input_text,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise ExternalProcessFailure(
            f"{name} timed out after {timeout}s", command=name,
        ) from exc
    except OSError as exc:
        raise ExternalProcessFailure(
            f"Failed to start {name}: {exc}", command=name,
        ) from exc

    result = CommandResult(
        args=argv,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    if check and not result.ok:
        detail = " | ".join(
            part for part in (result.stdout.strip(), result.stderr.strip()) if part
        )
        raise ExternalProcessFailure(
            f"{name} exited with status {result.returncode}"
            + (f": {detail}" if detail else ""),
            command=name,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    logger.debug("%s exited with status %d", name, result.returncode)
    return result


def applescript_quote(value: str) -> str:
    """Return *value* as a double-quoted AppleScript string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# Backend dispatch
# ---------------------------------------------------------------------------

if IS_MACOS:
    from taskgoblin._platform_darwin import (
        capture_region,
        display_notification,
        is_accessibility_trusted,
        open_settings_pane,
        open_url,
        recognize_text,
        request_notification_permission,
        run_applescript,
        shut_down,
    )
else:
    from taskgoblin._platform_unsupported import (
        capture_region,
        display_notification,
        is_accessibility_trusted,
        open_settings_pane,
        open_url,
        recognize_text,
        request_notification_permission,
        run_applescript,
        shut_down,
    )

__all__ = [
    "IS_MACOS",
    "CommandResult",
    "run_command",
    "applescript_quote",
    "capture_region",
    "display_notification",
    "is_accessibility_trusted",
    "open_settings_pane",
    "open_url",
    "recognize_text",
    "request_notification_permission",
    "run_applescript",
    "shut_down",
]
