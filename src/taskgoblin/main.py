"""Main entry point: wires the TaskGoblin loops, commands and windows together."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from taskgoblin import actions, platform
from taskgoblin.config import AppConfig, load_config
from taskgoblin.errors import TaskGoblinError
from taskgoblin.events import EventBus
from taskgoblin.gesture import GestureWatcher, HeldKeyProbe
from taskgoblin.logsetup import configure_logging
from taskgoblin.oscillator import PointerOscillator
from taskgoblin.overlay import Overlay
from taskgoblin.pipeline import Notifier, OcrPipeline
from taskgoblin.scheduler import CountdownIndicator, ShutdownScheduler, ShutdownStatus
from taskgoblin.state import ModeState
from taskgoblin.surface import Surface
from taskgoblin.tray import TrayApp, TrayCommands

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything the loops and commands share; built once at startup."""

    config: AppConfig
    events: EventBus
    state: ModeState
    scheduler: ShutdownScheduler
    pipeline: OcrPipeline
    notifier: Notifier


def build_context(
    config: AppConfig,
    surface: Surface,
    indicator: CountdownIndicator | None = None,
    *,
    events: EventBus | None = None,
) -> AppContext:
    events = events or EventBus()
    state = ModeState(
        surface,
        panel_size=(config.panel.width, config.panel.height),
        pointer_motion_enabled=config.jiggle.enabled_on_start,
    )
    notifier = Notifier(events, native=config.notifications.native)
    pipeline = OcrPipeline(
        surface,
        notifier,
        capture_path=Path(config.capture.temp_path),
        settle_delay=config.capture.settle_ms / 1000,
        languages=config.ocr.languages,
        accurate=config.ocr.accurate,
        language_correction=config.ocr.language_correction,
    )
    return AppContext(
        config=config,
        events=events,
        state=state,
        scheduler=ShutdownScheduler(indicator=indicator),
        pipeline=pipeline,
        notifier=notifier,
    )


class TaskGoblinApp:
    """Main application orchestrator.

    Owns the overlay (panel, countdown island, toasts), the tray icon, the
    pointer oscillator and the gesture watcher.  The public methods are the
    commands the tray and panel invoke.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        logger.info("Loading configuration...")
        self._config = config or load_config()
        events = EventBus()

        logger.info("Initialising overlay...")
        self._overlay = Overlay(
            events,
            panel_size=(self._config.panel.width, self._config.panel.height),
            actions=self._panel_actions(),
            on_blur=self._on_panel_blur,
        )
        self.ctx = build_context(
            self._config, self._overlay.panel, self._overlay.island, events=events,
        )

        logger.info("Initialising pointer oscillator...")
        self._oscillator = PointerOscillator(
            self.ctx.state,
            period=self._config.jiggle.period_ms / 1000,
            amplitude=self._config.jiggle.amplitude,
        )

        logger.info("Initialising gesture watcher...")
        gesture = self._config.gesture
        self._probe = HeldKeyProbe()
        self._watcher = GestureWatcher(
            lambda: self._probe.is_down(gesture.key),
            self.run_ocr,
            taps=gesture.taps,
            window=gesture.window_ms / 1000,
            poll_interval=gesture.poll_ms / 1000,
        )

        logger.info("Initialising tray...")
        self._tray = TrayApp(
            TrayCommands(
                toggle_mouse=self._guarded("Mouse Error", self.toggle_mouse),
                run_ocr=self.run_ocr,
                schedule_shutdown=self._schedule_preset,
                cancel_shutdown=self.cancel_shutdown,
                close_leisure=self._guarded("Close Apps Error", self.close_leisure_apps),
                close_heavy=self._guarded("Close Apps Error", self.close_heavy_apps),
                close_all=self._guarded("Close Apps Error", self.close_all_apps),
                toggle_panel=self.toggle_panel,
                quit=self._on_quit,
            ),
            self.ctx.state.is_pointer_motion_enabled,
            shutdown_presets=self._config.shutdown.presets_min,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Start the application.

        Starts the background loops, then runs the tray icon which blocks
        until the user quits.
        """
        self._overlay.start()
        try:
            self._probe.start()
        except Exception:
            logger.exception("Keyboard monitoring unavailable — gesture disabled")
        self._watcher.start()
        self._oscillator.start()

        threading.Thread(
            target=self._request_notification_permission,
            name="taskgoblin-notify-permission",
            daemon=True,
        ).start()

        logger.info(
            "TaskGoblin is ready.  Tap %s %d times to extract text.",
            self._config.gesture.key,
            self._config.gesture.taps,
        )
        self._refresh_tray()
        # tray.run() blocks until the user selects Quit.
        self._tray.run()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def toggle_mouse(self) -> bool:
        enabled = self.ctx.state.toggle_pointer_motion()
        self._refresh_tray()
        return enabled

    def run_ocr(self) -> bool:
        return self.ctx.pipeline.trigger()

    def schedule_shutdown(self, delay_secs: float) -> ShutdownStatus:
        status = self.ctx.scheduler.schedule(delay_secs)
        self._refresh_tray()
        return status

    def cancel_shutdown(self) -> None:
        self.ctx.scheduler.cancel()
        self._refresh_tray()

    def shutdown_status(self) -> ShutdownStatus:
        return self.ctx.scheduler.status()

    def set_pet_mode(self, active: bool) -> None:
        self.ctx.state.set_pet_mode(active)

    def set_paint_mode(self, active: bool) -> None:
        self.ctx.state.set_paint_mode(active)

    def set_dialog_open(self, open_: bool) -> None:
        self.ctx.state.set_dialog_open(open_)

    def close_leisure_apps(self) -> None:
        actions.close_leisure_apps(self._config.apps.leisure)

    def close_heavy_apps(self) -> None:
        actions.close_heavy_apps(self._config.apps.heavy)

    def close_all_apps(self) -> None:
        actions.close_all_apps(self._config.apps.keep)

    def schedule_whatsapp(self, phone: str, message: str, delay_secs: float) -> threading.Thread:
        return actions.schedule_whatsapp(
            phone, message, delay_secs,
            focus_delay=self._config.whatsapp.focus_delay_secs,
        )

    def get_contacts(self) -> list[actions.Contact]:
        return actions.get_contacts()

    def convert_pdf(self, pdf_path: Path, output_dir: Path) -> Path:
        return actions.convert_pdf_to_word(pdf_path, output_dir, self.ctx.events)

    def open_settings(self, pane: str) -> None:
        actions.open_settings(pane)

    def request_accessibility(self) -> None:
        actions.request_accessibility()

    def test_toast(self) -> None:
        self.ctx.notifier.notify("TaskGoblin", "Notifications are working")

    def toggle_panel(self) -> None:
        panel = self._overlay.panel
        try:
            if panel.is_visible():
                panel.hide()
            else:
                panel.show()
                panel.focus()
        except Exception as exc:
            logger.debug("Panel toggle failed: %s", exc)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_panel_blur(self) -> None:
        if self.ctx.state.should_auto_hide():
            try:
                self._overlay.panel.hide()
            except Exception as exc:
                logger.debug("Auto-hide failed: %s", exc)

    def _request_notification_permission(self) -> None:
        try:
            platform.request_notification_permission()
        except TaskGoblinError as exc:
            logger.debug("Notification permission not requested: %s", exc)

    def _on_quit(self) -> None:
        """Handle the Quit action from the tray menu."""
        logger.info("Shutting down...")
        self._watcher.stop()
        self._probe.stop()
        self._oscillator.stop()
        self._overlay.stop()
        logger.info("Goodbye.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _panel_actions(self) -> list[tuple[str, Callable[[], None]]]:
        return [
            ("Toggle Mouse Movement", self._guarded("Mouse Error", self.toggle_mouse)),
            ("Extract Text", self.run_ocr),
            ("Shut Down In 30 Minutes", self._guarded(
                "Shutdown Error", lambda: self.schedule_shutdown(30 * 60),
            )),
            ("Cancel Shutdown", self.cancel_shutdown),
            ("Pet Mode", self._guarded(
                "Pet Mode", lambda: self.set_pet_mode(not self.ctx.state.pet_mode),
            )),
            ("Paint Mode", self._guarded(
                "Paint Mode", lambda: self.set_paint_mode(not self.ctx.state.paint_mode),
            )),
            ("Accessibility Settings", self._guarded(
                "Settings Error", lambda: self.open_settings("accessibility"),
            )),
            ("Request Accessibility", self.request_accessibility),
            ("Test Notification", self.test_toast),
        ]

    def _schedule_preset(self, minutes: int) -> None:
        self._guarded("Shutdown Error", lambda: self.schedule_shutdown(minutes * 60))()

    def _guarded(self, title: str, fn: Callable[[], object]) -> Callable[[], None]:
        """Wrap a command so its errors become a toast instead of a traceback."""

        def _run() -> None:
            try:
                fn()
            except TaskGoblinError as exc:
                logger.warning("%s: %s", title, exc)
                self.ctx.notifier.notify(title, str(exc))

        return _run

    def _refresh_tray(self) -> None:
        if self.ctx.scheduler.is_pending:
            status = "Shutdown Pending"
        elif self.ctx.state.is_pointer_motion_enabled():
            status = "Moving Mouse"
        else:
            status = "Ready"
        self._tray.update_status(status)


# ======================================================================
# Entry point
# ======================================================================


def main() -> None:
    """Entry point for the TaskGoblin application."""
    configure_logging()
    app = TaskGoblinApp()
    app.run()


if __name__ == "__main__":
    main()
