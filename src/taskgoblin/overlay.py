"""tkinter windows: the main panel, the shutdown countdown island and toasts.

Runs its own tkinter event loop on a dedicated daemon thread.  All public
methods are thread-safe: they enqueue commands that the tkinter thread drains
via ``after()`` polling.  :meth:`Overlay.invoke` additionally waits (bounded)
for the command to finish, so window side effects have completed when the
caller continues.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
import tkinter as tk
from dataclasses import dataclass, field
from typing import Any, Callable

from taskgoblin.events import PROGRESS, TOAST, EventBus, Progress, Toast
from taskgoblin.scheduler import ShutdownStatus, format_countdown

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dimensions & timing
# ---------------------------------------------------------------------------

_ISLAND_W = 240
_ISLAND_H = 60
_ISLAND_TOP = 20
_PILL_H = 36
_ISLAND_TICK_MS = 1000

_TOAST_W = 300
_TOAST_H = 64
_TOAST_MS = 3000

_POLL_INTERVAL_MS = 16  # ~60 fps queue polling
_BLUR_CHECK_MS = 50
_INVOKE_TIMEOUT = 2.0

_FONT = ("Helvetica Neue", 13)
_FONT_BOLD = ("Helvetica Neue", 15, "bold")
_GREEN = "#28c840"


@dataclass
class _Call:
    fn: Callable[[], Any]
    done: threading.Event = field(default_factory=threading.Event)
    result: Any = None
    error: BaseException | None = None


# ---------------------------------------------------------------------------
# Overlay host
# ---------------------------------------------------------------------------


class Overlay:
    """Owns the tkinter root and every window created on it.

    Parameters
    ----------
    events:
        Toast and progress events are rendered from this bus.
    actions:
        ``(label, callback)`` pairs shown as buttons on the panel.  Callbacks
        run on a worker thread, never on the tkinter thread.
    on_blur:
        Called (from a worker thread) when the panel loses focus.
    """

    def __init__(
        self,
        events: EventBus,
        *,
        panel_size: tuple[int, int] = (440, 820),
        actions: list[tuple[str, Callable[[], None]]] | None = None,
        on_blur: Callable[[], None] | None = None,
    ) -> None:
        self._events = events
        self._panel_size = panel_size
        self._actions = actions or []
        self._on_blur = on_blur

        self._queue: queue.Queue[tuple] = queue.Queue()
        self._thread: threading.Thread | None = None
        self._root: tk.Tk | None = None
        self._started = threading.Event()

        # Widgets (set on overlay thread)
        self._panel: tk.Toplevel | None = None
        self._status_label: tk.Label | None = None
        self._island: tk.Toplevel | None = None
        self._island_canvas: tk.Canvas | None = None
        self._island_text_id: int | None = None
        self._island_status: Callable[[], ShutdownStatus] | None = None

        # Panel geometry before maximize()
        self._saved_geometry: str | None = None
        self._click_through = False

        self.panel = PanelSurface(self)
        self.island = CountdownIsland(self)

    # ------------------------------------------------------------------
    # Thread-safe public API (callable from any thread)
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the overlay thread and wait until the tkinter root is ready."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="taskgoblin-overlay", daemon=True,
        )
        self._thread.start()
        self._started.wait(timeout=5.0)
        self._events.subscribe(TOAST, self._on_toast)
        self._events.subscribe(PROGRESS, self._on_progress)

    def stop(self) -> None:
        """Shut down the overlay thread."""
        self._events.unsubscribe(TOAST, self._on_toast)
        self._events.unsubscribe(PROGRESS, self._on_progress)
        self._queue.put(("QUIT",))

    def post(self, fn: Callable[[], Any]) -> None:
        """Run *fn* on the tkinter thread without waiting."""
        self._queue.put(("CALL", _Call(fn)))

    def invoke(self, fn: Callable[[], Any], timeout: float = _INVOKE_TIMEOUT) -> Any:
        """Run *fn* on the tkinter thread and return its result.

        Raises:
            RuntimeError: If the overlay is not running.
            TimeoutError: If the tkinter thread does not get to it in time.
        """
        if threading.current_thread() is self._thread:
            return fn()
        if self._root is None:
            raise RuntimeError("Overlay is not running")
        call = _Call(fn)
        self._queue.put(("CALL", call))
        if not call.done.wait(timeout):
            raise TimeoutError("Overlay did not respond")
        if call.error is not None:
            raise call.error
        return call.result

    # ------------------------------------------------------------------
    # Event subscribers (any thread)
    # ------------------------------------------------------------------

    def _on_toast(self, toast: Toast) -> None:
        self._queue.put(("TOAST", toast.title, toast.message))

    def _on_progress(self, progress: Progress) -> None:
        self._queue.put(("PROGRESS", progress.step, progress.progress))

    # ------------------------------------------------------------------
    # Overlay thread internals
    # ------------------------------------------------------------------

    def _run(self) -> None:
        """Entry point for the overlay thread; creates the tkinter root."""
        try:
            root = tk.Tk()
            root.withdraw()
            self._root = root

            self._setup_panel(root)
            self._started.set()

            root.after(_POLL_INTERVAL_MS, self._poll_queue)
            root.mainloop()
        except Exception:
            logger.exception("Overlay thread crashed")
            self._started.set()  # unblock start() even on failure

    def _setup_panel(self, root: tk.Tk) -> None:
        """Create the (initially hidden) main panel window."""
        width, height = self._panel_size
        win = tk.Toplevel(root)
        win.title("TaskGoblin")
        win.geometry(f"{width}x{height}+0+30")
        win.resizable(False, False)
        win.protocol("WM_DELETE_WINDOW", win.withdraw)
        win.withdraw()

        frame = tk.Frame(win, padx=16, pady=16)
        frame.pack(fill="both", expand=True)

        tk.Label(frame, text="TaskGoblin", font=_FONT_BOLD).pack(anchor="w", pady=(0, 12))
        for label, callback in self._actions:
            tk.Button(
                frame,
                text=label,
                font=_FONT,
                command=lambda cb=callback, name=label: self._run_action(name, cb),
            ).pack(fill="x", pady=3)

        self._status_label = tk.Label(frame, text="", font=_FONT, fg="#666666")
        self._status_label.pack(anchor="w", pady=(12, 0))

        win.bind("<FocusOut>", self._on_panel_focus_out)
        self._panel = win

    def _run_action(self, name: str, callback: Callable[[], None]) -> None:
        def _target() -> None:
            try:
                callback()
            except Exception:
                logger.exception("Panel action %r failed", name)

        threading.Thread(target=_target, name="taskgoblin-panel-action", daemon=True).start()

    # ------------------------------------------------------------------
    # Queue polling
    # ------------------------------------------------------------------

    def _poll_queue(self) -> None:
        """Drain the command queue and dispatch each command."""
        root = self._root
        if root is None:
            return

        try:
            while True:
                cmd = self._queue.get_nowait()
                self._dispatch(cmd)
                if self._root is None:
                    return
        except queue.Empty:
            pass

        root.after(_POLL_INTERVAL_MS, self._poll_queue)

    def _dispatch(self, cmd: tuple) -> None:
        op = cmd[0]
        if op == "CALL":
            _, call = cmd
            try:
                call.result = call.fn()
            except Exception as exc:
                call.error = exc
                logger.debug("Overlay call failed: %s", exc)
            finally:
                call.done.set()
        elif op == "TOAST":
            _, title, message = cmd
            self._do_show_toast(title, message)
        elif op == "PROGRESS":
            _, step, progress = cmd
            self._do_update_progress(step, progress)
        elif op == "ISLAND_SHOW":
            _, get_status, on_cancel = cmd
            self._do_show_island(get_status, on_cancel)
        elif op == "ISLAND_CLOSE":
            self._do_close_island()
        elif op == "QUIT":
            self._do_quit()

    # ------------------------------------------------------------------
    # Panel (overlay thread only)
    # ------------------------------------------------------------------

    def _require_panel(self) -> tk.Toplevel:
        if self._panel is None:
            raise RuntimeError("Panel window not created")
        return self._panel

    def _on_panel_focus_out(self, event: tk.Event) -> None:  # type: ignore[type-arg]
        root = self._root
        if root is None or event.widget is not self._panel:
            return
        # Focus may only be moving between our own widgets; check once it settles.
        root.after(_BLUR_CHECK_MS, self._check_blur)

    def _check_blur(self) -> None:
        panel = self._panel
        if panel is None or self._on_blur is None:
            return
        try:
            focused = panel.focus_get()
        except (KeyError, tk.TclError):
            focused = None
        if focused is None and panel.winfo_viewable():
            self._run_action("blur", self._on_blur)

    def _do_maximize(self) -> None:
        win = self._require_panel()
        if self._saved_geometry is None:
            self._saved_geometry = win.geometry()
        win.geometry(f"{win.winfo_screenwidth()}x{win.winfo_screenheight()}+0+0")

    def _do_unmaximize(self) -> None:
        win = self._require_panel()
        if self._saved_geometry is not None:
            win.geometry(self._saved_geometry)
            self._saved_geometry = None

    def _do_set_click_through(self, ignore: bool) -> None:
        # Tk has no API for passing mouse events through a window.
        self._click_through = ignore
        logger.debug("Click-through %s requested (not available with Tk)", ignore)

    def _do_update_progress(self, step: str, progress: float) -> None:
        label = self._status_label
        if label is not None:
            label.configure(text=f"{step} ({progress:.0%})")

    # ------------------------------------------------------------------
    # Toasts
    # ------------------------------------------------------------------

    def _do_show_toast(self, title: str, message: str) -> None:
        root = self._root
        if root is None:
            return
        win = tk.Toplevel(root)
        win.overrideredirect(True)
        win.attributes("-topmost", True)
        x = win.winfo_screenwidth() - _TOAST_W - 16
        win.geometry(f"{_TOAST_W}x{_TOAST_H}+{x}+40")

        frame = tk.Frame(win, bg="#2a2a2a", padx=12, pady=8)
        frame.pack(fill="both", expand=True)
        tk.Label(frame, text=title, bg="#2a2a2a", fg="#ffffff", font=_FONT_BOLD, anchor="w").pack(fill="x")
        tk.Label(
            frame, text=message, bg="#2a2a2a", fg="#e0e0e0", font=_FONT,
            anchor="w", wraplength=_TOAST_W - 24, justify="left",
        ).pack(fill="x")

        root.after(_TOAST_MS, win.destroy)

    # ------------------------------------------------------------------
    # Countdown island
    # ------------------------------------------------------------------

    def _do_show_island(
        self,
        get_status: Callable[[], ShutdownStatus],
        on_cancel: Callable[[], None],
    ) -> None:
        root = self._root
        if root is None:
            return
        self._do_close_island()

        win = tk.Toplevel(root)
        win.title("Shutdown Scheduler")
        win.overrideredirect(True)
        win.attributes("-topmost", True)
        win.resizable(False, False)
        x = (win.winfo_screenwidth() - _ISLAND_W) // 2
        win.geometry(f"{_ISLAND_W}x{_ISLAND_H}+{x}+{_ISLAND_TOP}")

        bg = "black"
        try:
            # macOS Aqua: let the corners around the pill show through.
            win.attributes("-transparent", True)
            bg = "systemTransparent"
        except tk.TclError:
            pass
        win.configure(bg=bg)

        canvas = tk.Canvas(
            win, width=_ISLAND_W, height=_ISLAND_H, bg=bg, highlightthickness=0, bd=0,
        )
        canvas.pack(fill="both", expand=True)

        top = 8
        _draw_rounded_rect(
            canvas, 12, top, _ISLAND_W - 12, top + _PILL_H, _PILL_H // 2, fill="#000000",
        )
        self._island_text_id = canvas.create_text(
            40, top + _PILL_H // 2, text="...", fill=_GREEN, font=_FONT_BOLD, anchor="w",
        )
        canvas.create_text(
            28, top + _PILL_H // 2, text="⏻", fill=_GREEN, font=_FONT, anchor="center",
        )
        cancel_id = canvas.create_text(
            _ISLAND_W - 32, top + _PILL_H // 2, text="✕", fill="#ffffff", font=_FONT,
            anchor="center",
        )
        canvas.tag_bind(
            cancel_id, "<Button-1>",
            lambda _e: self._run_action("cancel shutdown", on_cancel),
        )

        self._island = win
        self._island_canvas = canvas
        self._island_status = get_status
        self._tick_island(win)

    def _tick_island(self, win: tk.Toplevel) -> None:
        root = self._root
        if root is None or win is not self._island or self._island_status is None:
            return  # closed or replaced

        try:
            target = self._island_status().target_timestamp
        except Exception:
            logger.debug("Countdown status unavailable", exc_info=True)
            target = None

        if target == 0:
            self._do_close_island()
            return
        if target is not None and self._island_canvas is not None:
            remaining = target - int(time.time())
            self._island_canvas.itemconfigure(self._island_text_id, text=format_countdown(remaining))

        root.after(_ISLAND_TICK_MS, lambda: self._tick_island(win))

    def _do_close_island(self) -> None:
        win = self._island
        self._island = None
        self._island_canvas = None
        self._island_status = None
        if win is not None:
            try:
                win.destroy()
            except tk.TclError:
                pass

    def _do_quit(self) -> None:
        root = self._root
        if root is not None:
            self._do_close_island()
            root.quit()
            root.destroy()
            self._root = None


# ---------------------------------------------------------------------------
# Public window handles
# ---------------------------------------------------------------------------


class PanelSurface:
    """The main panel as a :class:`~taskgoblin.surface.Surface`.

    Each call blocks until the tkinter thread has applied it.
    """

    def __init__(self, overlay: Overlay) -> None:
        self._overlay = overlay

    def _win(self) -> tk.Toplevel:
        return self._overlay._require_panel()

    def is_visible(self) -> bool:
        return bool(self._overlay.invoke(lambda: self._win().winfo_viewable()))

    def show(self) -> None:
        self._overlay.invoke(lambda: self._win().deiconify())

    def hide(self) -> None:
        self._overlay.invoke(lambda: self._win().withdraw())

    def focus(self) -> None:
        def _focus() -> None:
            win = self._win()
            win.lift()
            win.focus_force()

        self._overlay.invoke(_focus)

    def set_size(self, width: int, height: int) -> None:
        def _resize() -> None:
            win = self._win()
            win.geometry(f"{width}x{height}+{win.winfo_x()}+{win.winfo_y()}")

        self._overlay.invoke(_resize)

    def set_position(self, x: int, y: int) -> None:
        self._overlay.invoke(lambda: self._win().geometry(f"+{x}+{y}"))

    def position(self) -> tuple[int, int]:
        return self._overlay.invoke(lambda: (self._win().winfo_x(), self._win().winfo_y()))

    def width(self) -> int:
        return self._overlay.invoke(lambda: self._win().winfo_width())

    def maximize(self) -> None:
        self._overlay.invoke(self._overlay._do_maximize)

    def unmaximize(self) -> None:
        self._overlay.invoke(self._overlay._do_unmaximize)

    def set_always_on_top(self, on_top: bool) -> None:
        self._overlay.invoke(lambda: self._win().attributes("-topmost", on_top))

    def set_click_through(self, ignore: bool) -> None:
        self._overlay.invoke(lambda: self._overlay._do_set_click_through(ignore))

    def set_resizable(self, resizable: bool) -> None:
        self._overlay.invoke(lambda: self._win().resizable(resizable, resizable))


class CountdownIsland:
    """Borderless topmost countdown pill at the top centre of the screen."""

    def __init__(self, overlay: Overlay) -> None:
        self._overlay = overlay

    def show(
        self,
        get_status: Callable[[], ShutdownStatus],
        on_cancel: Callable[[], None],
    ) -> None:
        """Show the island, replacing any previous one."""
        self._overlay._queue.put(("ISLAND_SHOW", get_status, on_cancel))

    def close(self) -> None:
        self._overlay._queue.put(("ISLAND_CLOSE",))


# ---------------------------------------------------------------------------
# Canvas helpers
# ---------------------------------------------------------------------------


def _draw_rounded_rect(
    canvas: tk.Canvas,
    x1: int, y1: int, x2: int, y2: int, r: int,
    **kwargs,
) -> int:
    """Draw a rounded rectangle on *canvas* and return its item id."""
    points = [
        x1 + r, y1,
        x2 - r, y1,
        x2, y1,
        x2, y1 + r,
        x2, y2 - r,
        x2, y2,
        x2 - r, y2,
        x1 + r, y2,
        x1, y2,
        x1, y2 - r,
        x1, y1 + r,
        x1, y1,
        x1 + r, y1,
    ]
    return canvas.create_polygon(points, smooth=True, **kwargs)
