import threading
import time

import pytest

from taskgoblin.errors import InvalidArgument, Unsupported
from taskgoblin.scheduler import ShutdownScheduler, format_countdown


class FakeIndicator:
    def __init__(self):
        self.shown = 0
        self.closed = 0
        self.get_status = None
        self.on_cancel = None

    def show(self, get_status, on_cancel):
        self.shown += 1
        self.get_status = get_status
        self.on_cancel = on_cancel

    def close(self):
        self.closed += 1


def _scheduler(**kwargs):
    fired = threading.Event()
    calls = []

    def action():
        calls.append(time.monotonic())
        fired.set()

    return ShutdownScheduler(action, supported=True, **kwargs), fired, calls


def test_idle_status():
    scheduler, _, _ = _scheduler()
    assert tuple(scheduler.status()) == (0, 0)
    assert scheduler.is_pending is False
    assert scheduler.remaining() == 0


def test_schedule_reports_target():
    scheduler, _, _ = _scheduler(clock=lambda: 1_000.0)
    status = scheduler.schedule(600)
    assert status.target_timestamp == 1_600
    assert status.duration_secs == 600
    assert scheduler.status() == status
    assert scheduler.remaining(now=1_100.0) == 500
    scheduler.cancel()


def test_action_fires_once():
    scheduler, fired, calls = _scheduler()
    scheduler.schedule(0.05)
    assert fired.wait(2.0)
    time.sleep(0.1)
    assert len(calls) == 1
    assert tuple(scheduler.status()) == (0, 0)


def test_cancel_prevents_action():
    scheduler, fired, _ = _scheduler()
    scheduler.schedule(0.1)
    scheduler.cancel()
    assert not fired.wait(0.3)
    assert tuple(scheduler.status()) == (0, 0)


def test_cancel_when_idle_is_noop():
    scheduler, _, _ = _scheduler()
    scheduler.cancel()
    scheduler.cancel()
    assert scheduler.is_pending is False


def test_reschedule_replaces_previous():
    scheduler, fired, calls = _scheduler()
    scheduler.schedule(0.1)
    scheduler.schedule(0.3)
    time.sleep(0.2)
    # The first timer would have fired by now.
    assert calls == []
    assert fired.wait(2.0)
    time.sleep(0.1)
    assert len(calls) == 1


def test_invalid_delay_keeps_pending_schedule():
    scheduler, _, _ = _scheduler(clock=lambda: 0.0)
    scheduler.schedule(600)
    with pytest.raises(InvalidArgument):
        scheduler.schedule(0)
    with pytest.raises(InvalidArgument):
        scheduler.schedule(-5)
    assert tuple(scheduler.status()) == (600, 600)
    scheduler.cancel()


def test_unsupported_host():
    scheduler = ShutdownScheduler(lambda: None, supported=False)
    with pytest.raises(Unsupported):
        scheduler.schedule(60)
    assert scheduler.is_pending is False


def test_failing_action_leaves_scheduler_idle():
    done = threading.Event()

    def action():
        done.set()
        raise RuntimeError("osascript failed")

    indicator = FakeIndicator()
    scheduler = ShutdownScheduler(action, indicator=indicator, supported=True)
    scheduler.schedule(0.05)
    assert done.wait(2.0)
    time.sleep(0.1)
    assert scheduler.is_pending is False
    assert indicator.closed == 1


def test_indicator_shown_and_can_cancel():
    indicator = FakeIndicator()
    scheduler, fired, _ = _scheduler(indicator=indicator)
    scheduler.schedule(60)
    assert indicator.shown == 1
    assert indicator.get_status().duration_secs == 60
    indicator.on_cancel()
    assert scheduler.is_pending is False
    assert indicator.closed == 1
    assert not fired.is_set()


def test_action_that_reschedules_keeps_new_indicator():
    indicator = FakeIndicator()
    rescheduled = threading.Event()

    def action():
        scheduler.schedule(60)
        rescheduled.set()

    scheduler = ShutdownScheduler(action, indicator=indicator, supported=True)
    scheduler.schedule(0.05)
    assert rescheduled.wait(2.0)
    time.sleep(0.1)
    assert indicator.shown == 2
    assert indicator.closed == 0
    assert scheduler.is_pending is True
    scheduler.cancel()
    assert indicator.closed == 1


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0:00"), (59, "0:59"), (61, "1:01"), (3599, "59:59"), (3600, "1:00:00"), (7325, "2:02:05"), (-3, "0:00")],
)
def test_format_countdown(seconds, expected):
    assert format_countdown(seconds) == expected
