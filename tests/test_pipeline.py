import threading

from taskgoblin.errors import ExternalProcessFailure, Unsupported
from taskgoblin.events import TOAST, EventBus
from taskgoblin.pipeline import (
    EXTRACT_FAILED_TITLE,
    SUCCESS_TITLE,
    TRANSFER_FAILED_TITLE,
    Notifier,
    OcrPipeline,
    StageOutcome,
)
from taskgoblin.surface import HeadlessSurface


def _writer(path):
    path.write_bytes(b"png")


def _make(tmp_path, *, capture=_writer, recognize=lambda p: "Hola mundo", transfer=None, visible=True):
    events = EventBus()
    toasts = []
    events.subscribe(TOAST, toasts.append)
    copied = []
    surface = HeadlessSurface(visible=visible)
    pipeline = OcrPipeline(
        surface,
        Notifier(events),
        capture=capture,
        recognize=recognize,
        transfer=transfer or copied.append,
        capture_path=tmp_path / "capture.png",
        sleep=lambda _s: None,
    )
    return pipeline, surface, toasts, copied


def test_success_copies_text_and_notifies(tmp_path):
    pipeline, surface, toasts, copied = _make(tmp_path)
    result = pipeline.run()
    assert result.outcomes == [StageOutcome.CAPTURED, StageOutcome.EXTRACTED, StageOutcome.TRANSFERRED]
    assert result.succeeded
    assert copied == ["Hola mundo"]
    assert [t.title for t in toasts] == [SUCCESS_TITLE]
    assert not (tmp_path / "capture.png").exists()


def test_panel_hidden_during_capture_then_restored(tmp_path):
    seen = []

    def capture(path):
        seen.append(surface.visible)
        path.write_bytes(b"png")

    pipeline, surface, _, _ = _make(tmp_path, capture=capture)
    pipeline.run()
    assert seen == [False]
    assert surface.visible is True
    assert surface.calls[-2:] == [("show",), ("focus",)]


def test_hidden_panel_stays_hidden(tmp_path):
    pipeline, surface, _, _ = _make(tmp_path, visible=False)
    pipeline.run()
    assert surface.calls == []
    assert surface.visible is False


def test_cancelled_capture_is_silent(tmp_path):
    pipeline, surface, toasts, copied = _make(tmp_path, capture=lambda path: None)
    result = pipeline.run()
    assert result.cancelled
    assert not result.failed
    assert toasts == []
    assert copied == []
    assert surface.visible is True


def test_stale_capture_file_is_not_reused(tmp_path):
    (tmp_path / "capture.png").write_bytes(b"old")
    pipeline, _, toasts, _ = _make(tmp_path, capture=lambda path: None)
    result = pipeline.run()
    assert result.cancelled
    assert toasts == []


def test_undeletable_capture_path_still_restores_panel(tmp_path):
    # A directory at the capture path makes the pre-capture delete fail.
    (tmp_path / "capture.png").mkdir()
    pipeline, surface, toasts, _ = _make(tmp_path)
    result = pipeline.run()
    assert result.outcomes == [StageOutcome.CAPTURE_FAILED]
    assert surface.visible is True
    assert surface.calls[-2:] == [("show",), ("focus",)]
    assert toasts[0].title == EXTRACT_FAILED_TITLE


def test_nonzero_exit_without_file_is_a_silent_cancel(tmp_path):
    def capture(path):
        raise ExternalProcessFailure(
            "screencapture exited with status 1", command="screencapture", returncode=1,
        )

    pipeline, surface, toasts, copied = _make(tmp_path, capture=capture)
    result = pipeline.run()
    assert result.cancelled
    assert not result.failed
    assert toasts == []
    assert copied == []
    assert surface.visible is True


def test_nonzero_exit_with_file_still_extracts(tmp_path):
    def capture(path):
        path.write_bytes(b"png")
        raise ExternalProcessFailure(
            "screencapture exited with status 1", command="screencapture", returncode=1,
        )

    pipeline, _, toasts, copied = _make(tmp_path, capture=capture)
    result = pipeline.run()
    assert result.succeeded
    assert copied == ["Hola mundo"]
    assert [t.title for t in toasts] == [SUCCESS_TITLE]


def test_capture_failure_restores_visibility(tmp_path):
    def capture(path):
        raise ExternalProcessFailure("screencapture exited with status 1", command="screencapture")

    pipeline, surface, toasts, _ = _make(tmp_path, capture=capture)
    result = pipeline.run()
    assert result.outcomes == [StageOutcome.CAPTURE_FAILED]
    assert result.error.startswith("Screencapture failed")
    assert surface.visible is True
    assert toasts[0].title == EXTRACT_FAILED_TITLE


def test_unsupported_capture_message(tmp_path):
    def capture(path):
        raise Unsupported("Screen capture is only supported on macOS (running on linux)")

    pipeline, _, toasts, _ = _make(tmp_path, capture=capture)
    result = pipeline.run()
    assert result.error == "Screen capture is only supported on macOS (running on linux)"
    assert toasts[0].message == result.error


def test_diagnostic_output_is_reported_verbatim(tmp_path):
    pipeline, surface, toasts, copied = _make(
        tmp_path, recognize=lambda p: "ERROR: Could not load image\n",
    )
    result = pipeline.run()
    assert result.outcomes == [StageOutcome.CAPTURED, StageOutcome.EXTRACT_FAILED]
    assert result.error == "ERROR: Could not load image"
    assert toasts[0].title == EXTRACT_FAILED_TITLE
    assert toasts[0].message == "ERROR: Could not load image"
    assert copied == []
    assert surface.visible is True
    assert not (tmp_path / "capture.png").exists()


def test_recognizer_crash(tmp_path):
    def recognize(path):
        raise ExternalProcessFailure("swift not found", command="swift")

    pipeline, _, toasts, _ = _make(tmp_path, recognize=recognize)
    result = pipeline.run()
    assert result.error == "OCR extraction failed: swift not found"
    assert toasts[0].title == EXTRACT_FAILED_TITLE


def test_empty_text_is_silent(tmp_path):
    pipeline, _, toasts, copied = _make(tmp_path, recognize=lambda p: "  \n")
    result = pipeline.run()
    assert result.outcomes == [StageOutcome.CAPTURED, StageOutcome.EXTRACTED]
    assert not result.failed
    assert toasts == []
    assert copied == []


def test_transfer_failure(tmp_path):
    def transfer(text):
        raise ExternalProcessFailure("pbcopy missing", command="pbcopy")

    pipeline, _, toasts, _ = _make(tmp_path, transfer=transfer)
    result = pipeline.run()
    assert result.outcomes[-1] is StageOutcome.TRANSFER_FAILED
    assert result.error == "Failed to copy: pbcopy missing"
    assert toasts[0].title == TRANSFER_FAILED_TITLE


def test_trigger_rejects_overlapping_runs(tmp_path):
    release = threading.Event()
    entered = threading.Event()

    def capture(path):
        entered.set()
        release.wait(2.0)

    pipeline, _, _, _ = _make(tmp_path, capture=capture)
    assert pipeline.trigger() is True
    assert entered.wait(2.0)
    assert pipeline.is_running
    assert pipeline.trigger() is False
    release.set()
    for _ in range(100):
        if not pipeline.is_running:
            break
        threading.Event().wait(0.02)
    assert pipeline.is_running is False
    assert pipeline.trigger() is True


def test_native_notification_failure_is_ignored():
    events = EventBus()
    toasts = []
    events.subscribe(TOAST, toasts.append)

    def display(title, message):
        raise Unsupported("Native notifications unavailable")

    Notifier(events, native=True, display=display).notify("Title", "Body")
    assert len(toasts) == 1
