"""Presentation-surface contract used by the mode state and the OCR pipeline.

The core only ever calls these methods as best-effort side effects; it never
depends on their success.
"""

from __future__ import annotations

from typing import Protocol


class Surface(Protocol):
    def is_visible(self) -> bool: ...

    def show(self) -> None: ...

    def hide(self) -> None: ...

    def focus(self) -> None: ...

    def set_size(self, width: int, height: int) -> None: ...

    def set_position(self, x: int, y: int) -> None: ...

    def position(self) -> tuple[int, int]: ...

    def maximize(self) -> None: ...

    def unmaximize(self) -> None: ...

    def set_always_on_top(self, on_top: bool) -> None: ...

    def set_click_through(self, ignore: bool) -> None: ...

    def set_resizable(self, resizable: bool) -> None: ...


class HeadlessSurface:
    """In-memory surface for runs without a window (CLI, tests).

    Every call is appended to :attr:`calls` as ``(name, *args)``.
    """

    def __init__(self, visible: bool = False) -> None:
        self.visible = visible
        self.calls: list[tuple] = []
        self._position = (0, 0)

    def is_visible(self) -> bool:
        return self.visible

    def show(self) -> None:
        self.calls.append(("show",))
        self.visible = True

    def hide(self) -> None:
        self.calls.append(("hide",))
        self.visible = False

    def focus(self) -> None:
        self.calls.append(("focus",))

    def set_size(self, width: int, height: int) -> None:
        self.calls.append(("set_size", width, height))

    def set_position(self, x: int, y: int) -> None:
        self.calls.append(("set_position", x, y))
        self._position = (x, y)

    def position(self) -> tuple[int, int]:
        return self._position

    def maximize(self) -> None:
        self.calls.append(("maximize",))

    def unmaximize(self) -> None:
        self.calls.append(("unmaximize",))

    def set_always_on_top(self, on_top: bool) -> None:
        self.calls.append(("set_always_on_top", on_top))

    def set_click_through(self, ignore: bool) -> None:
        self.calls.append(("set_click_through", ignore))

    def set_resizable(self, resizable: bool) -> None:
        self.calls.append(("set_resizable", resizable))
