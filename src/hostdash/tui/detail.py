"""Modal popup for service, process and log details."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Static


class DetailScreen(ModalScreen[None]):
    """Scrollable read-only text over the current tab. Esc or Enter closes."""

    DEFAULT_CSS = """
    DetailScreen {
        align: center middle;
    }

    #detail-box {
        width: 90%;
        height: 80%;
        border: round $accent;
        background: $surface;
    }

    #detail-title {
        height: 1;
        text-style: bold;
        padding: 0 1;
    }

    #detail-body {
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("enter", "dismiss", "Close", show=False),
    ]

    def __init__(self, title: str, body: str, scroll_end: bool = False) -> None:
        super().__init__()
        self.detail_title = title
        self.body = body
        self._scroll_end = scroll_end

    def compose(self) -> ComposeResult:
        with Vertical(id="detail-box"):
            yield Static(self.detail_title, id="detail-title", markup=False)
            with VerticalScroll(id="detail-scroll"):
                yield Static(self.body, id="detail-body", markup=False)

    def on_mount(self) -> None:
        scroll = self.query_one("#detail-scroll", VerticalScroll)
        scroll.focus()
        if self._scroll_end:
            # Logs: newest lines are at the bottom
            self.call_after_refresh(scroll.scroll_end, animate=False)
