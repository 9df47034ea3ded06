"""Typer CLI for taskgoblin."""

from __future__ import annotations

import json
import platform
from dataclasses import asdict
from pathlib import Path

import typer

from taskgoblin import __version__, actions
from taskgoblin.config import get_config_path, get_log_dir, load_config
from taskgoblin.errors import TaskGoblinError
from taskgoblin.events import PROGRESS, TOAST, EventBus, Progress, Toast
from taskgoblin.logsetup import configure_logging
from taskgoblin.platform import IS_MACOS, is_accessibility_trusted
from taskgoblin.surface import HeadlessSurface

app = typer.Typer(no_args_is_help=True)


@app.command()
def run() -> None:
    """Launch the tray application."""

    # Imported here: the GUI stack needs a display.
    from taskgoblin.main import main as launch

    launch()


@app.command()
def doctor() -> None:
    """Print environment diagnostics."""

    configure_logging()
    info = {
        "taskgoblin": __version__,
        "python": platform.python_version(),
        "platform": platform.platform(),
        "macos": IS_MACOS,
        "accessibility_trusted": is_accessibility_trusted(),
        "paths": {
            "config": str(get_config_path()),
            "logs": str(get_log_dir()),
        },
    }
    typer.echo(json.dumps(info, indent=2))


@app.command()
def settings(section: str | None = typer.Argument(None)) -> None:
    """Display current settings or a specific section."""

    data = asdict(load_config())
    if section:
        data = data.get(section, {})
    typer.echo(json.dumps(data, indent=2, default=str))


@app.command()
def ocr() -> None:
    """Capture a screen region, extract its text and copy it to the clipboard."""

    from taskgoblin.main import build_context

    configure_logging()
    ctx = build_context(load_config(), HeadlessSurface())

    def _echo_toast(toast: Toast) -> None:
        typer.echo(f"{toast.title}: {toast.message}")

    ctx.events.subscribe(TOAST, _echo_toast)
    result = ctx.pipeline.run()
    typer.echo(json.dumps(
        {
            "outcomes": [o.value for o in result.outcomes],
            "chars": len(result.text),
            "error": result.error,
        },
        indent=2,
    ))
    if result.failed:
        raise typer.Exit(code=1)


def _abort(exc: TaskGoblinError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command()
def whatsapp(
    phone: str,
    message: str,
    delay: float = typer.Argument(0.0, help="Seconds to wait before sending."),
) -> None:
    """Send a WhatsApp message after DELAY seconds, then exit."""

    configure_logging()
    config = load_config()
    try:
        thread = actions.schedule_whatsapp(
            phone, message, delay, focus_delay=config.whatsapp.focus_delay_secs,
        )
    except TaskGoblinError as exc:
        raise _abort(exc)
    thread.join()


@app.command()
def contacts() -> None:
    """List (name, phone) pairs from the Contacts app as JSON."""

    configure_logging()
    try:
        found = actions.get_contacts()
    except TaskGoblinError as exc:
        raise _abort(exc)
    typer.echo(json.dumps([asdict(c) for c in found], indent=2, ensure_ascii=False))


@app.command()
def pdf(
    path: Path,
    out: Path = typer.Argument(Path("."), help="Directory for the .docx file."),
) -> None:
    """Convert a PDF to Word, printing progress as it goes."""

    configure_logging()
    events = EventBus()

    def _echo_progress(progress: Progress) -> None:
        typer.echo(f"[{progress.progress:>4.0%}] {progress.step}")

    events.subscribe(PROGRESS, _echo_progress)
    try:
        output = actions.convert_pdf_to_word(path, out, events)
    except TaskGoblinError as exc:
        raise _abort(exc)
    typer.echo(str(output))


@app.command("open-settings")
def open_settings(pane: str = typer.Argument(..., help="contacts, accessibility or focus")) -> None:
    """Open a System Settings privacy pane."""

    try:
        actions.open_settings(pane)
    except TaskGoblinError as exc:
        raise _abort(exc)


@app.command("request-accessibility")
def request_accessibility() -> None:
    """Trigger the Accessibility permission prompt."""

    actions.request_accessibility()
    typer.echo(json.dumps({"accessibility_trusted": is_accessibility_trusted()}))
