"""macOS implementation of platform-specific operations.

Every function shells out to a stock macOS tool (``open``, ``osascript``,
``screencapture``, ``swift``) and is therefore blocking.
"""

from __future__ import annotations

import ctypes
import logging
from pathlib import Path
from typing import Sequence

from taskgoblin.errors import InvalidArgument
from taskgoblin.platform import CommandResult, applescript_quote, run_command

logger = logging.getLogger(__name__)

_APPLICATION_SERVICES = (
    "/System/Library/Frameworks/ApplicationServices.framework/ApplicationServices"
)

_SETTINGS_PANES: dict[str, str] = {
    "contacts": "x-apple.systempreferences:com.apple.preference.security?Privacy_Contacts",
    "accessibility": "x-apple.systempreferences:com.apple.preference.security?Privacy_Accessibility",
    "focus": "x-apple.systempreferences:com.apple.Focus-Settings.extension",
}

# Vision text recognition, run through ``swift -e``.  Diagnostics are printed
# to stdout with an ``ERROR:`` prefix so the caller can tell them from text.
_OCR_SCRIPT = """
import Vision
import Cocoa

let imagePath = {path}
guard let image = NSImage(contentsOfFile: imagePath),
      let tiffData = image.tiffRepresentation,
      let bitmap = NSBitmapImageRep(data: tiffData),
      let cgImage = bitmap.cgImage else {{
    print("ERROR: Failed to load image")
    exit(1)
}}

let request = VNRecognizeTextRequest {{ (request, error) in
    guard let observations = request.results as? [VNRecognizedTextObservation] else {{ return }}
    let text = observations.compactMap {{ $0.topCandidates(1).first?.string }}.joined(separator: "\\n")
    print(text)
}}
request.recognitionLevel = {level}
request.usesLanguageCorrection = {correction}
request.recognitionLanguages = [{languages}]

let handler = VNImageRequestHandler(cgImage: cgImage, options: [:])
do {{
    try handler.perform([request])
}} catch {{
    print("ERROR: \\(error)")
    exit(1)
}}
"""


def _swift_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def run_applescript(script: str, timeout: float | None = None) -> CommandResult:
    return run_command(["osascript", "-e", script], timeout=timeout)


def open_url(url: str) -> None:
    run_command(["open", url])


def capture_region(path: Path) -> None:
    """Run interactive region capture (``-i``) without the shutter sound (``-x``).

    If the user presses Escape no file is written; the caller detects that by
    checking whether *path* exists afterwards.
    """
    run_command(["screencapture", "-i", "-x", str(path)], check=False)


def recognize_text(
    path: Path,
    languages: Sequence[str] = ("es-ES", "en-US"),
    accurate: bool = True,
    language_correction: bool = True,
) -> str:
    """Run Vision text recognition on the image at *path*.

    Returns the trimmed stdout of the recognizer, which may be an
    ``ERROR:``-prefixed diagnostic.  A non-zero exit with such a diagnostic is
    reported through the returned text rather than raised.
    """
    script = _OCR_SCRIPT.format(
        path=_swift_string(str(path)),
        level=".accurate" if accurate else ".fast",
        correction="true" if language_correction else "false",
        languages=", ".join(_swift_string(lang) for lang in languages),
    )
    result = run_command(["swift", "-e", script], check=False)
    stdout = result.stdout.strip()
    if stdout.startswith("ERROR:") or result.ok:
        return stdout
    # Crashed before printing a diagnostic of its own.
    stderr = result.stderr.strip() or f"swift exited with status {result.returncode}"
    return f"ERROR: {stderr}"


def shut_down() -> None:
    """Ask System Events to shut the machine down (no root required)."""
    logger.warning("Shutting down the system now")
    run_applescript('tell application "System Events" to shut down')


def display_notification(title: str, message: str) -> None:
    run_applescript(
        f"display notification {applescript_quote(message)} "
        f"with title {applescript_quote(title)}"
    )


def request_notification_permission() -> None:
    """Post an empty notification so macOS asks the user for permission."""
    run_applescript('display notification "" with title "TaskGoblin"')


def is_accessibility_trusted() -> bool:
    lib = ctypes.cdll.LoadLibrary(_APPLICATION_SERVICES)
    lib.AXIsProcessTrusted.restype = ctypes.c_bool
    return bool(lib.AXIsProcessTrusted())


def open_settings_pane(pane: str) -> None:
    try:
        url = _SETTINGS_PANES[pane]
    except KeyError:
        raise InvalidArgument(
            f"Unknown settings pane {pane!r}. "
            f"Supported panes: {', '.join(sorted(_SETTINGS_PANES))}"
        ) from None
    open_url(url)
