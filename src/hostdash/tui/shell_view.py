"""Shell viewport widget — shows the embedded shell and takes its keys."""

from __future__ import annotations

import logging

from rich.text import Text
from textual import events
from textual.widgets import Static

from hostdash.pty.keys import KeyEvent
from hostdash.pty.manager import ShellController

logger = logging.getLogger(__name__)

PLACEHOLDER = "Press F12 to start the shell."
UNAVAILABLE = "Shell unavailable on this system."

# Keys the app keeps for itself while the shell has focus
APP_KEYS = frozenset({"f1", "f2", "f3", "f4", "f5", "f10", "f12"})


class ShellView(Static, can_focus=True):
    """Renders the tail of the shell's output sized to the widget.

    Every key except the app-level function keys goes to the shell,
    including Tab and Ctrl+C.
    """

    DEFAULT_CSS = """
    ShellView {
        height: 1fr;
        width: 1fr;
    }
    """

    def __init__(self, controller: ShellController, **kwargs) -> None:
        super().__init__(PLACEHOLDER, markup=False, **kwargs)
        self._controller = controller
        self._failed = False
        # Placeholder currently shown instead of shell output, if any
        self.message: str | None = PLACEHOLDER

    def start(self) -> bool:
        """Spawn the shell at the current widget size, if not running."""
        rows, cols = self.viewport_size
        session = self._controller.ensure(rows, cols)
        self._failed = session is None
        self.refresh_output()
        return session is not None

    @property
    def viewport_size(self) -> tuple[int, int]:
        """(rows, cols) available for shell output, at least 1x1."""
        size = self.content_size
        return max(size.height, 1), max(size.width, 1)

    def refresh_output(self) -> None:
        if not self._controller.alive:
            self.message = UNAVAILABLE if self._failed else PLACEHOLDER
            self.update(self.message)
            return
        self.message = None
        rows, cols = self.viewport_size
        lines = self._controller.render(cols, rows)
        self.update(Text("\n".join(lines), no_wrap=True, overflow="crop"))

    def on_resize(self, event: events.Resize) -> None:
        self._controller.resize(*self.viewport_size)
        self.refresh_output()

    def on_key(self, event: events.Key) -> None:
        if event.key in APP_KEYS:
            return
        # Stop here so Tab, q and Ctrl+C never reach app bindings
        event.stop()
        event.prevent_default()
        self._controller.forward(KeyEvent.from_textual(event))
