"""Clipboard transfer for the OCR pipeline.

pyperclip drives ``pbcopy``/``pbpaste`` on macOS, so each call is a short
external-process invocation.
"""

from __future__ import annotations

import pyperclip

from taskgoblin.errors import ExternalProcessFailure


def copy_text(text: str) -> None:
    """Place *text* on the system clipboard.

    Raises:
        ExternalProcessFailure: If no clipboard mechanism is available or the
            copy command fails.
    """
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as exc:
        raise ExternalProcessFailure(str(exc) or "clipboard unavailable", command="pbcopy") from exc
