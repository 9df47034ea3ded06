"""Screen-text pipeline: capture → extract (OCR) → clipboard transfer → notify.

Every stage is a blocking external-process call, so :meth:`OcrPipeline.run`
must run on a worker thread; :meth:`OcrPipeline.trigger` does that for you.
Stage failures never escape: they become a :class:`PipelineRun` carrying the
error string, and the same string is shown in the failure toast.
"""

from __future__ import annotations

import enum
import functools
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from taskgoblin import platform
from taskgoblin.clipboard import copy_text
from taskgoblin.errors import ExternalProcessFailure, TaskGoblinError, Unsupported
from taskgoblin.events import TOAST, EventBus, Toast
from taskgoblin.surface import Surface

logger = logging.getLogger(__name__)

DIAGNOSTIC_PREFIX = "ERROR:"

SUCCESS_TITLE = "Text Copied!"
SUCCESS_MESSAGE = "Copied content"
EXTRACT_FAILED_TITLE = "OCR Failed"
TRANSFER_FAILED_TITLE = "OCR Error"


class StageOutcome(enum.Enum):
    CAPTURED = "captured"
    CANCELLED = "cancelled"
    CAPTURE_FAILED = "capture_failed"
    EXTRACTED = "extracted"
    EXTRACT_FAILED = "extract_failed"
    TRANSFERRED = "transferred"
    TRANSFER_FAILED = "transfer_failed"


_FAILURES = {
    StageOutcome.CAPTURE_FAILED,
    StageOutcome.EXTRACT_FAILED,
    StageOutcome.TRANSFER_FAILED,
}


@dataclass
class PipelineRun:
    """Outcome of one triggered run; independent of every other run."""

    outcomes: list[StageOutcome] = field(default_factory=list)
    text: str = ""
    error: str | None = None

    @property
    def cancelled(self) -> bool:
        return StageOutcome.CANCELLED in self.outcomes

    @property
    def failed(self) -> bool:
        return any(o in _FAILURES for o in self.outcomes)

    @property
    def succeeded(self) -> bool:
        return StageOutcome.TRANSFERRED in self.outcomes


class Notifier:
    """Surfaces short user notifications as toast events (and optionally natively)."""

    def __init__(
        self,
        events: EventBus,
        *,
        native: bool = False,
        display: Callable[[str, str], None] | None = None,
    ) -> None:
        self._events = events
        self._native = native
        self._display = display or platform.display_notification

    def notify(self, title: str, message: str) -> None:
        logger.info("Notify: %s: %s", title, message)
        self._events.emit(TOAST, Toast(title, message))
        if self._native:
            try:
                self._display(title, message)
            except TaskGoblinError as exc:
                logger.debug("Native notification failed: %s", exc)


def _stage_message(prefix: str, exc: Exception) -> str:
    if isinstance(exc, Unsupported):
        return str(exc)
    return f"{prefix}: {exc}"


class OcrPipeline:
    """Orchestrates one capture/OCR/clipboard run per trigger.

    Args:
        surface: Main panel; hidden during capture and restored right after.
        notifier: Receives the success / failure notification.
        capture: ``capture(path)`` runs interactive region capture into *path*.
        recognize: ``recognize(path) -> str`` returns recognized text or an
            ``ERROR:``-prefixed diagnostic.
        transfer: ``transfer(text)`` writes text to the clipboard.
        capture_path: Well-known temporary file for the capture.
        settle_delay: Seconds to wait after hiding the panel.
    """

    def __init__(
        self,
        surface: Surface,
        notifier: Notifier,
        *,
        capture: Callable[[Path], None] | None = None,
        recognize: Callable[[Path], str] | None = None,
        transfer: Callable[[str], None] | None = None,
        capture_path: Path = Path("/tmp/taskgoblin_ocr_capture.png"),
        settle_delay: float = 0.3,
        languages: Sequence[str] = ("es-ES", "en-US"),
        accurate: bool = True,
        language_correction: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._surface = surface
        self._notifier = notifier
        self._capture = capture or platform.capture_region
        self._recognize = recognize or functools.partial(
            platform.recognize_text,
            languages=tuple(languages),
            accurate=accurate,
            language_correction=language_correction,
        )
        self._transfer = transfer or copy_text
        self._capture_path = Path(capture_path)
        self._settle_delay = settle_delay
        self._sleep = sleep
        # Only one run at a time.
        self._run_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def trigger(self) -> bool:
        """Start a run on a daemon thread.  Returns False if one is already active."""
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Pipeline already running — ignoring trigger")
            return False
        threading.Thread(
            target=self._run_locked, name="taskgoblin-pipeline", daemon=True,
        ).start()
        return True

    def run(self) -> PipelineRun:
        """Run all stages on the calling thread and return the outcome."""
        result = PipelineRun()

        # 1. Capture
        try:
            captured = self._capture_stage()
        except Exception as exc:
            result.outcomes.append(StageOutcome.CAPTURE_FAILED)
            return self._fail(result, EXTRACT_FAILED_TITLE, _stage_message("Screencapture failed", exc))

        if not captured:
            logger.info("Capture cancelled by user")
            result.outcomes.append(StageOutcome.CANCELLED)
            return result
        result.outcomes.append(StageOutcome.CAPTURED)

        # 2. Extract
        try:
            text = self._extract_stage()
        except Exception as exc:
            result.outcomes.append(StageOutcome.EXTRACT_FAILED)
            message = str(exc) if isinstance(exc, _Diagnostic) else _stage_message(
                "OCR extraction failed", exc,
            )
            return self._fail(result, EXTRACT_FAILED_TITLE, message)
        result.outcomes.append(StageOutcome.EXTRACTED)
        result.text = text

        if not text.strip():
            # No text found: silent, like a cancelled capture.
            logger.info("No text recognized")
            return result

        # 3. Transfer
        try:
            self._transfer(text)
        except Exception as exc:
            result.outcomes.append(StageOutcome.TRANSFER_FAILED)
            return self._fail(result, TRANSFER_FAILED_TITLE, f"Failed to copy: {exc}")
        result.outcomes.append(StageOutcome.TRANSFERRED)

        # 4. Notify
        logger.info("Copied %d chars of recognized text", len(text))
        self._notifier.notify(SUCCESS_TITLE, SUCCESS_MESSAGE)
        return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _capture_stage(self) -> bool:
        """Hide the panel, capture, restore.  Returns True if a file was written."""
        try:
            was_visible = bool(self._surface.is_visible())
        except Exception:
            was_visible = False

        if was_visible:
            self._best_effort(self._surface.hide)
            # Let the window animate away so it is not in the capture.
            self._sleep(self._settle_delay)

        try:
            # A leftover file would make an aborted capture look successful.
            self._capture_path.unlink(missing_ok=True)
            try:
                self._capture(self._capture_path)
            except ExternalProcessFailure as exc:
                if exc.returncode is None:
                    raise
                # screencapture may exit non-zero on Escape; the file decides.
                logger.debug("Capture exited with status %s", exc.returncode)
        finally:
            if was_visible:
                self._best_effort(self._surface.show)
                self._best_effort(self._surface.focus)

        return self._capture_path.exists()

    def _extract_stage(self) -> str:
        try:
            output = self._recognize(self._capture_path).strip()
        finally:
            try:
                self._capture_path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not remove %s: %s", self._capture_path, exc)

        if output.startswith(DIAGNOSTIC_PREFIX):
            raise _Diagnostic(output)
        return output

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_locked(self) -> None:
        try:
            self.run()
        except Exception:
            logger.exception("Pipeline error")
        finally:
            self._run_lock.release()

    def _fail(self, result: PipelineRun, title: str, message: str) -> PipelineRun:
        logger.error("Pipeline failed: %s", message)
        result.error = message
        self._notifier.notify(title, message)
        return result

    @staticmethod
    def _best_effort(fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception as exc:
            logger.debug("Surface call failed (ignored): %s", exc)


class _Diagnostic(ExternalProcessFailure):
    """Recognizer reported an ``ERROR:`` diagnostic on stdout."""
