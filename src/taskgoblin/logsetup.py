"""Logging configuration: console plus a rotating file under ~/.taskgoblin/logs."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from taskgoblin.config import get_log_dir

_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    """Install the console and file handlers once per process."""
    global _configured
    if _configured:
        return

    logging.basicConfig(level=level, format=_FORMAT)

    log_dir = get_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_dir / "taskgoblin.log",
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError:
        logging.getLogger(__name__).warning("Cannot write logs to %s", log_dir)
    else:
        handler.setFormatter(logging.Formatter(_FORMAT))
        logging.getLogger().addHandler(handler)

    _configured = True
