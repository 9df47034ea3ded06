import pytest

from taskgoblin.errors import InvalidArgument
from taskgoblin.events import PROGRESS, TOAST, EventBus, Progress, Toast


def test_event_bus_dispatch():
    bus = EventBus()
    received = []
    bus.subscribe(TOAST, received.append)
    bus.emit(TOAST, Toast("Title", "Body"))
    assert received == [Toast("Title", "Body")]


def test_event_bus_topics_are_separate():
    bus = EventBus()
    received = []
    bus.subscribe(PROGRESS, received.append)
    bus.emit(TOAST, Toast("a", "b"))
    assert received == []


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    received = []

    def broken(_payload):
        raise RuntimeError("boom")

    bus.subscribe(TOAST, broken)
    bus.subscribe(TOAST, received.append)
    bus.emit(TOAST, Toast("a", "b"))
    assert len(received) == 1


def test_unsubscribe():
    bus = EventBus()
    received = []
    bus.subscribe(TOAST, received.append)
    bus.unsubscribe(TOAST, received.append)
    bus.emit(TOAST, Toast("a", "b"))
    assert received == []


def test_progress_range():
    assert Progress("Done!", 1.0).progress == 1.0
    with pytest.raises(InvalidArgument):
        Progress("bad", 1.5)
    with pytest.raises(InvalidArgument):
        Progress("bad", -0.1)
