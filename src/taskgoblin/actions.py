"""One-shot OS automation actions: messaging, contacts, app closing, settings, PDF conversion.

Each action is a thin wrapper around one or two blocking external calls; the
caller decides which thread runs it.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence
from urllib.parse import quote

from taskgoblin import platform
from taskgoblin.config import AppsConfig
from taskgoblin.errors import ExternalProcessFailure, InvalidArgument, Unsupported
from taskgoblin.events import PROGRESS, EventBus, Progress

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# WhatsApp
# ---------------------------------------------------------------------------

# Return twice: the second press sends a message left sitting in the draft.
_WHATSAPP_SEND_SCRIPT = """
tell application "System Events"
    tell process "WhatsApp"
        set frontmost to true
        key code 36 -- Return
        delay 0.5
        key code 36 -- Return
    end tell
end tell
"""


def sanitize_phone(phone: str) -> str:
    """Keep only digits and ``+`` from *phone*."""
    return "".join(c for c in phone if c.isdigit() or c == "+")


def whatsapp_url(phone: str, message: str) -> str:
    return f"whatsapp://send?phone={sanitize_phone(phone)}&text={quote(message, safe='')}"


def schedule_whatsapp(
    phone: str,
    message: str,
    delay_secs: float,
    *,
    focus_delay: float = 4.0,
    sleep: Callable[[float], None] = time.sleep,
) -> threading.Thread:
    """Send *message* to *phone* through the WhatsApp app after *delay_secs*.

    Returns immediately; the send happens on a daemon thread that opens the
    chat, waits *focus_delay* seconds for WhatsApp to load and presses Return.

    Raises:
        InvalidArgument: If the delay is negative or the phone has no digits.
    """
    sanitized = sanitize_phone(phone)
    if not any(c.isdigit() for c in sanitized):
        raise InvalidArgument(f"Phone number {phone!r} contains no digits")
    if delay_secs < 0:
        raise InvalidArgument("Delay must not be negative")

    url = whatsapp_url(sanitized, message)
    logger.info("Scheduled WhatsApp to %s in %s seconds", sanitized, delay_secs)

    def _send() -> None:
        sleep(delay_secs)
        try:
            platform.open_url(url)
            sleep(focus_delay)
            platform.run_applescript(_WHATSAPP_SEND_SCRIPT)
        except Exception:
            logger.exception("Scheduled WhatsApp message to %s failed", sanitized)
        else:
            logger.info("WhatsApp message to %s sent", sanitized)

    thread = threading.Thread(target=_send, name="taskgoblin-whatsapp", daemon=True)
    thread.start()
    return thread


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------

# Names and phones are fetched separately; mixing them in one filter fails
# with AppleScript error -1728.
_CONTACTS_SCRIPT = """
tell application "Contacts"
    try
        set allNames to name of every person
        set allPhones to value of phones of every person
        set _output to ""
        repeat with i from 1 to count of allNames
            set _n to item i of allNames
            set _ps to item i of allPhones
            repeat with _p in _ps
                set _output to _output & _n & "|" & _p & "\\n"
            end repeat
        end repeat
        return _output
    on error err
        return "ERROR|" & err
    end try
end tell
"""


@dataclass(frozen=True)
class Contact:
    name: str
    phone: str


def parse_contacts(output: str) -> list[Contact]:
    """Parse ``name|phone`` lines, skipping malformed and empty entries.

    Raises:
        ExternalProcessFailure: If *output* is an ``ERROR|`` report.
    """
    if output.startswith("ERROR|"):
        raise ExternalProcessFailure(output[len("ERROR|"):].strip(), command="osascript")

    contacts: list[Contact] = []
    for line in output.splitlines():
        parts = line.split("|")
        if len(parts) != 2:
            continue
        name, phone = parts[0].strip(), parts[1].strip()
        if not name or name == "missing value" or not phone:
            continue
        contacts.append(Contact(name, phone))
    return contacts


def get_contacts() -> list[Contact]:
    """Fetch every (name, phone) pair from the Contacts app.

    Returns an empty list on platforms without a Contacts app.
    """
    if not platform.IS_MACOS:
        return []
    result = platform.run_applescript(_CONTACTS_SCRIPT)
    contacts = parse_contacts(result.stdout)
    logger.info("Fetched %d contacts", len(contacts))
    return contacts


# ---------------------------------------------------------------------------
# Closing apps
# ---------------------------------------------------------------------------


def _applescript_list(names: Sequence[str]) -> str:
    return "{" + ", ".join(platform.applescript_quote(n) for n in names) + "}"


def close_all_script(keep: Sequence[str]) -> str:
    """AppleScript quitting every foreground app whose name is not in *keep*."""
    return f"""
set appsToKeep to {_applescript_list(keep)}
set bundleIdsToQuit to {{}}
tell application "System Events"
    set activeProcs to every application process where background only is false
    repeat with proc in activeProcs
        set pName to name of proc
        if pName is not in appsToKeep then
            try
                set bundleId to bundle identifier of proc
                if bundleId is not missing value then
                    set end of bundleIdsToQuit to bundleId
                end if
            end try
        end if
    end repeat
end tell
repeat with bid in bundleIdsToQuit
    try
        tell application id bid to quit
    end try
end repeat
"""


def close_by_name_script(names: Sequence[str]) -> str:
    """AppleScript quitting the foreground apps named in *names*."""
    return f"""
set appsToQuit to {_applescript_list(names)}
tell application "System Events"
    set activeProcs to every application process where background only is false
    repeat with proc in activeProcs
        set pName to name of proc
        if appsToQuit contains pName then
            try
                set bundleId to bundle identifier of proc
                if bundleId is not missing value then
                    tell application id bundleId to quit
                end if
            end try
        end if
    end repeat
end tell
"""


def close_all_apps(keep: Sequence[str]) -> None:
    logger.info("Closing all apps except %d kept", len(keep))
    platform.run_applescript(close_all_script(keep))


def close_apps_by_name(names: Sequence[str]) -> None:
    if not names:
        return
    logger.info("Closing %d named apps", len(names))
    platform.run_applescript(close_by_name_script(names))


def close_leisure_apps(names: Sequence[str] | None = None) -> None:
    close_apps_by_name(AppsConfig().leisure if names is None else names)


def close_heavy_apps(names: Sequence[str] | None = None) -> None:
    close_apps_by_name(AppsConfig().heavy if names is None else names)


# ---------------------------------------------------------------------------
# Settings & permissions
# ---------------------------------------------------------------------------


def open_settings(pane: str) -> None:
    """Open the System Settings pane ``contacts``, ``accessibility`` or ``focus``."""
    platform.open_settings_pane(pane)


def request_accessibility(mover: Callable[[int, int], None] | None = None) -> None:
    """Trigger the Accessibility permission prompt with a zero-distance pointer move."""
    if not platform.IS_MACOS:
        return
    if mover is None:
        from pynput.mouse import Controller

        mover = Controller().move
    mover(0, 0)


# ---------------------------------------------------------------------------
# PDF → Word
# ---------------------------------------------------------------------------


def convert_pdf_to_word(pdf_path: Path, output_dir: Path, events: EventBus) -> Path:
    """Convert *pdf_path* to ``<output_dir>/<stem>.docx``, emitting progress events.

    Raises:
        InvalidArgument: If the PDF does not exist.
        Unsupported: If the optional ``pdf2docx`` dependency is missing.
        ExternalProcessFailure: If the conversion itself fails.
    """
    pdf_path = Path(pdf_path)
    events.emit(PROGRESS, Progress("Initializing converter...", 0.1))

    if not pdf_path.is_file():
        raise InvalidArgument(f"Selected PDF file does not exist: {pdf_path}")

    try:
        from pdf2docx import Converter
    except ImportError as exc:
        raise Unsupported(
            "PDF conversion needs the 'pdf' extra (pip install taskgoblin[pdf])"
        ) from exc

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{pdf_path.stem}.docx"

    events.emit(PROGRESS, Progress("Converting PDF to Word...", 0.6))
    converter = Converter(str(pdf_path))
    try:
        # Tighter margins keep fonts and positions closer to the source.
        converter.convert(
            str(output_path),
            start=0,
            end=None,
            multi_processing=True,
            line_margin=0.5,
            word_margin=0.2,
            char_margin=0.05,
        )
    except Exception as exc:
        raise ExternalProcessFailure(f"PDF conversion failed: {exc}", command="pdf2docx") from exc
    finally:
        converter.close()

    events.emit(PROGRESS, Progress("Done!", 1.0))
    logger.info("Converted %s -> %s", pdf_path.name, output_path)
    return output_path
