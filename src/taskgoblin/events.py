"""Thread-safe pub/sub bus carrying fire-and-forget events to the presentation layer."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from taskgoblin.errors import InvalidArgument

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]

TOAST = "show-toast"
PROGRESS = "pdf-progress"


@dataclass(frozen=True)
class Toast:
    title: str
    message: str


@dataclass(frozen=True)
class Progress:
    step: str
    progress: float  # 0.0 – 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.progress <= 1.0:
            raise InvalidArgument(f"progress must be within 0.0–1.0 (got {self.progress})")


class EventBus:
    """Minimal event bus; handlers run on the emitting thread."""

    def __init__(self) -> None:
        self._subscribers: defaultdict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.RLock()

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        with self._lock:
            if handler not in self._subscribers[topic]:
                self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)

    def emit(self, topic: str, payload: Any) -> None:
        """Deliver *payload* to every subscriber of *topic*.

        No acknowledgment: a failing handler is logged and the remaining
        handlers still run.
        """
        with self._lock:
            handlers = list(self._subscribers.get(topic, ()))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in %r event handler", topic)
