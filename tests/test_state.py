import threading

import pytest

from taskgoblin.errors import Unsupported
from taskgoblin.state import ModeState
from taskgoblin.surface import HeadlessSurface


class BrokenSurface(HeadlessSurface):
    def maximize(self):
        raise RuntimeError("no window")

    def set_click_through(self, ignore):
        raise RuntimeError("no window")


def test_toggle_pointer_motion():
    state = ModeState(HeadlessSurface(), window_modes_supported=True)
    assert state.is_pointer_motion_enabled() is False
    assert state.toggle_pointer_motion() is True
    assert state.is_pointer_motion_enabled() is True
    assert state.toggle_pointer_motion() is False


def test_concurrent_toggles_are_not_lost():
    state = ModeState(HeadlessSurface(), window_modes_supported=True)

    def flip():
        for _ in range(1000):
            state.toggle_pointer_motion()

    threads = [threading.Thread(target=flip) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    # 4000 toggles: back where we started.
    assert state.is_pointer_motion_enabled() is False


def test_pet_mode_enters_click_through_fullscreen():
    surface = HeadlessSurface()
    state = ModeState(surface, window_modes_supported=True)
    state.set_pet_mode(True)
    assert state.pet_mode is True
    assert ("maximize",) in surface.calls
    assert ("set_always_on_top", True) in surface.calls
    assert ("set_click_through", True) in surface.calls


def test_paint_mode_keeps_mouse_events():
    surface = HeadlessSurface()
    state = ModeState(surface, window_modes_supported=True)
    state.set_paint_mode(True)
    assert state.paint_mode is True
    assert ("set_click_through", False) in surface.calls
    assert ("set_click_through", True) not in surface.calls


def test_leaving_mode_restores_panel():
    surface = HeadlessSurface()
    state = ModeState(surface, window_modes_supported=True, panel_size=(440, 820))
    state.set_pet_mode(True)
    surface.calls.clear()
    state.set_pet_mode(False)
    assert state.pet_mode is False
    assert ("unmaximize",) in surface.calls
    assert ("set_size", 440, 820) in surface.calls
    assert ("set_always_on_top", False) in surface.calls


def test_window_side_effect_failure_still_sets_flag():
    state = ModeState(BrokenSurface(), window_modes_supported=True)
    state.set_pet_mode(True)
    assert state.pet_mode is True


def test_unsupported_platform_records_flag_then_raises():
    surface = HeadlessSurface()
    state = ModeState(surface, window_modes_supported=False)
    with pytest.raises(Unsupported):
        state.set_pet_mode(True)
    assert state.pet_mode is True
    assert surface.calls == []
    with pytest.raises(Unsupported):
        state.set_paint_mode(True)
    assert state.paint_mode is True


def test_should_auto_hide():
    state = ModeState(HeadlessSurface(), window_modes_supported=True)
    assert state.should_auto_hide() is True
    state.set_dialog_open(True)
    assert state.should_auto_hide() is False
    state.set_dialog_open(False)
    state.set_paint_mode(True)
    assert state.should_auto_hide() is False


def test_snapshot():
    state = ModeState(HeadlessSurface(), window_modes_supported=True, pointer_motion_enabled=True)
    state.set_dialog_open(True)
    snap = state.snapshot()
    assert snap.pointer_motion_enabled is True
    assert snap.dialog_open is True
    assert snap.pet_mode is False
