"""Main Textual application for the hostdash TUI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.css.query import NoMatches
from textual.timer import Timer
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Static,
    TabbedContent,
    TabPane,
)

from hostdash import logs as logs_mod
from hostdash import services as services_mod
from hostdash.gpu import detect_gpus
from hostdash.metrics import MetricsSampler, bar, human_bytes, process_details, user_prompt
from hostdash.pty.manager import ShellController
from hostdash.session.wire import EventType, Wire, WireEvent
from hostdash.tui.detail import DetailScreen
from hostdash.tui.shell_view import ShellView

if TYPE_CHECKING:
    from hostdash.config import DashConfig

logger = logging.getLogger(__name__)

DASHBOARD_TAB = "dashboard-tab"
PROCESSES_TAB = "processes-tab"
SERVICES_TAB = "services-tab"
LOGS_TAB = "logs-tab"
SHELL_TAB = "shell-tab"

HELP_TEXT = """\
F2 Dashboard, F3 Processes, F4 Services (systemd), F5 Logs,
F12 Shell (embedded PTY), F10 Quit.
Enter on a process, service or log row opens its details; Esc closes.
In the Shell tab every key goes to your shell, Ctrl+C included.
Leaving the Shell tab ends the shell session."""


class TUILogHandler(logging.Handler):
    """Logging handler that shows the last log message in the status bar.

    Writing to stderr would corrupt the Textual display.
    """

    def __init__(self, app: DashApp) -> None:
        super().__init__()
        self._app = app
        self.last_message: str = ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.last_message = self.format(record)
            try:
                self._app.call_from_thread(self._app._update_status)
            except RuntimeError:
                # Already on the app's own thread
                self._app._update_status()
        except Exception:
            self.handleError(record)


class DashApp(App):
    """hostdash TUI — host metrics with an embedded shell."""

    TITLE = "hostdash"
    CSS = """
    #main-tabs {
        height: 1fr;
    }

    #dashboard-pane {
        padding: 0 1;
    }

    #shell-box {
        border: solid $primary;
        height: 1fr;
    }

    #shell-prompt {
        height: 1;
        color: $accent;
        text-style: bold;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("f1", "help", "Help", priority=True),
        Binding("f2", "show_tab('dashboard-tab')", "Dashboard", priority=True),
        Binding("f3", "show_tab('processes-tab')", "Processes", priority=True),
        Binding("f4", "show_tab('services-tab')", "Services", priority=True),
        Binding("f5", "show_tab('logs-tab')", "Logs", priority=True),
        Binding("f12", "show_tab('shell-tab')", "Shell", priority=True),
        Binding("f10", "quit", "Quit", priority=True),
        Binding("q", "quit", "Quit", show=False),
        Binding("ctrl+c", "quit", "Quit", show=False),
    ]

    def __init__(
        self,
        config: DashConfig,
        wire: Wire | None = None,
        controller: ShellController | None = None,
        sampler: MetricsSampler | None = None,
    ) -> None:
        super().__init__()
        self.config = config
        self.wire = wire or Wire()
        self.controller = controller or ShellController(config.shell, wire=self.wire)
        self._sampler = sampler
        self._log_handler: TUILogHandler | None = None
        self._tick_timer: Timer | None = None
        self._metrics_timer: Timer | None = None
        self._current_tab: str | None = DASHBOARD_TAB
        self._log_entries: dict[str, logs_mod.LogEntry] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        with TabbedContent(id="main-tabs"):
            with TabPane("Dashboard", id=DASHBOARD_TAB):
                yield Static(id="dashboard-pane")
            with TabPane("Processes", id=PROCESSES_TAB):
                yield DataTable(id="process-table", cursor_type="row")
            with TabPane("Services", id=SERVICES_TAB):
                yield DataTable(id="services-table", cursor_type="row")
            with TabPane("Logs", id=LOGS_TAB):
                yield DataTable(id="logs-table", cursor_type="row")
            with TabPane("Shell", id=SHELL_TAB):
                with Vertical(id="shell-box"):
                    yield Static(id="shell-prompt", markup=False)
                    yield ShellView(self.controller, id="shell-view")
        yield Static(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self._install_log_handler()

        table = self.query_one("#process-table", DataTable)
        table.add_columns("PID", "Name", "User", "CPU%", "MEM%")
        self.query_one("#services-table", DataTable).add_columns(
            "Unit", "Load", "Active", "Sub", "Description"
        )
        self.query_one("#logs-table", DataTable).add_columns(
            "Name", "Kind", "Size", "Modified"
        )
        self.query_one("#shell-prompt", Static).update(f" {user_prompt()} ")

        if self._sampler is None:
            self._sampler = MetricsSampler()
        self._refresh_metrics()
        self._metrics_timer = self.set_interval(
            self.config.ui.metrics_interval, self._refresh_metrics
        )
        self._tick_timer = self.set_interval(self.config.ui.tick_rate, self._tick)

        self._update_status()
        self._listen_wire()

        if self.config.shell.eager_spawn:
            self.call_after_refresh(self._start_shell, True)

    def on_unmount(self) -> None:
        self.controller.close()
        self.wire.close()
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)

    def _install_log_handler(self) -> None:
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        self._log_handler = TUILogHandler(self)
        self._log_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        root.addHandler(self._log_handler)

    # --- Status bar ---

    def _update_status(self) -> None:
        try:
            status = self.query_one("#status-bar", Static)
        except NoMatches:
            return
        info = self.controller.describe()
        if info["alive"]:
            parts = [
                f"Shell: pid {info['pid']} ({info['cols']}x{info['rows']})",
                f"Buffer: {human_bytes(info['buffered'])}",
            ]
        else:
            parts = ["Shell: not running"]
        if self._log_handler and self._log_handler.last_message:
            last_log = self._log_handler.last_message
            if len(last_log) > 80:
                last_log = last_log[:77] + "..."
            parts.append(f"[dim]{escape(last_log)}[/dim]")
        status.update(" | ".join(parts))

    # --- Tabs ---

    def _shell_view(self) -> ShellView:
        return self.query_one("#shell-view", ShellView)

    def _active_tab(self) -> str:
        return self.query_one("#main-tabs", TabbedContent).active

    def action_show_tab(self, tab_id: str) -> None:
        self.query_one("#main-tabs", TabbedContent).active = tab_id

    def action_help(self) -> None:
        self.notify(HELP_TEXT, title="Help", timeout=8)

    def on_tabbed_content_tab_activated(
        self, event: TabbedContent.TabActivated
    ) -> None:
        previous, self._current_tab = self._current_tab, event.pane.id
        if event.pane.id == SHELL_TAB:
            self.call_after_refresh(self._start_shell)
        elif previous == SHELL_TAB and self.controller.alive:
            logger.info("Left the Shell tab, ending shell session")
            self.controller.close()
            self._shell_view().refresh_output()
            self._update_status()

        if event.pane.id == PROCESSES_TAB:
            self._refresh_processes()
        elif event.pane.id == SERVICES_TAB:
            self._load_services()
        elif event.pane.id == LOGS_TAB:
            self._load_logs()

    # --- Services / Logs ---

    def _load_services(self) -> None:
        table = self.query_one("#services-table", DataTable)
        table.clear()
        units = services_mod.list_services()
        for unit in units:
            table.add_row(
                unit.unit, unit.load, unit.active, unit.sub, Text(unit.description), key=unit.unit
            )
        if not units:
            logger.info("No systemd services found")

    def _load_logs(self) -> None:
        table = self.query_one("#logs-table", DataTable)
        table.clear()
        entries = logs_mod.list_log_files() + logs_mod.list_journal_files()
        self._log_entries = {entry.path: entry for entry in entries}
        for entry in entries:
            table.add_row(
                Text(entry.name),
                "journal" if entry.journal else "file",
                human_bytes(entry.size),
                entry.modified_str,
                key=entry.path,
            )

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        key = event.row_key.value
        if key is None:
            return
        table_id = event.data_table.id
        if table_id == "process-table":
            title, body = process_details(int(key))
            self.push_screen(DetailScreen(f"Process: {title}", body))
        elif table_id == "services-table":
            body = services_mod.service_status(key)
            self.push_screen(DetailScreen(f"Service: {key}", body))
        elif table_id == "logs-table":
            entry = self._log_entries.get(key)
            if entry is None:
                return
            try:
                body = logs_mod.read_entry(entry)
            except logs_mod.LogReadError as e:
                body = f"Failed to read: {e}"
            self.push_screen(DetailScreen(f"Log: {entry.name}", body, scroll_end=True))

    def _start_shell(self, eager: bool = False) -> None:
        """Spawn the shell, unless the Shell tab was left before this ran."""
        on_shell_tab = self._active_tab() == SHELL_TAB
        if not (on_shell_tab or eager):
            return
        view = self._shell_view()
        if not self.controller.alive:
            view.start()
        if on_shell_tab:
            self.controller.resize(*view.viewport_size)
            view.refresh_output()
            view.focus()
        self._update_status()

    # --- Periodic refresh ---

    def _tick(self) -> None:
        if not self.controller.alive:
            return
        # A detected exit arrives as SHELL_EXIT on the wire
        if self.controller.poll():
            return
        if self._active_tab() == SHELL_TAB:
            self._shell_view().refresh_output()

    def _refresh_metrics(self) -> None:
        if self._sampler is None:
            return
        snap = self._sampler.sample()

        grid = Table.grid(padding=(0, 1))
        grid.add_column(style="bold", width=8)
        grid.add_column()
        grid.add_column(justify="right")
        grid.add_row("CPU", bar(snap.cpu_total), f"{snap.cpu_total:5.1f}%")
        for i, pct in enumerate(snap.cpu_per_core):
            grid.add_row(f"  cpu{i}", bar(pct, 10), f"{pct:5.1f}%")
        grid.add_row(
            "Memory",
            bar(snap.mem_percent),
            f"{human_bytes(snap.mem_used)}/{human_bytes(snap.mem_total)}",
        )
        grid.add_row(
            "Swap",
            bar(snap.swap_percent),
            f"{human_bytes(snap.swap_used)}/{human_bytes(snap.swap_total)}",
        )
        grid.add_row(
            "Disk /",
            bar(snap.disk_percent),
            f"{human_bytes(snap.disk_used)}/{human_bytes(snap.disk_total)}",
        )
        grid.add_row(
            "Network",
            Text(f"rx {human_bytes(snap.net_rx_rate)}/s  tx {human_bytes(snap.net_tx_rate)}/s"),
            "",
        )
        load = ", ".join(f"{v:.2f}" for v in snap.load_avg)
        grid.add_row("Load", load, f"up {int(snap.uptime // 3600)}h")
        for gpu in detect_gpus():
            temp = f"{gpu.temp_c:.0f}°C" if gpu.temp_c is not None else ""
            grid.add_row("GPU", Text(f"{gpu.model} [{gpu.driver}]"), temp)
        self.query_one("#dashboard-pane", Static).update(grid)

        if self._active_tab() == PROCESSES_TAB:
            self._refresh_processes()
        self._update_status()

    def _refresh_processes(self) -> None:
        if self._sampler is None:
            return
        table = self.query_one("#process-table", DataTable)
        row = table.cursor_row
        table.clear()
        for proc in self._sampler.top_processes(self.config.ui.process_limit):
            table.add_row(
                str(proc["pid"]),
                Text(proc["name"]),
                proc["user"],
                f"{proc['cpu']:.1f}",
                f"{proc['mem']:.1f}",
                key=str(proc["pid"]),
            )
        if table.row_count:
            table.move_cursor(row=min(row, table.row_count - 1))

    # --- Wire event loop ---

    @work(exclusive=True)
    async def _listen_wire(self) -> None:
        queue = self.wire.subscribe()
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                self._handle_event(event)
        finally:
            self.wire.unsubscribe(queue)

    def _handle_event(self, event: WireEvent) -> None:
        handlers = {
            EventType.SHELL_SPAWNED: self._on_shell_spawned,
            EventType.SHELL_FAILED: self._on_shell_failed,
            EventType.SHELL_EXIT: self._on_shell_exit,
            EventType.ERROR: self._on_error,
            EventType.STATUS: self._on_status,
        }
        handler = handlers.get(event.type)
        if handler:
            handler(event.data)

    def _on_shell_spawned(self, data: dict) -> None:
        logger.info("Shell started: %s (pid %s)", data.get("command", "?"), data.get("pid"))

    def _on_shell_failed(self, data: dict) -> None:
        self.notify("Could not start the shell.", severity="error")

    def _on_shell_exit(self, data: dict) -> None:
        """The shell exited on its own (e.g. ``exit``): go back to the dashboard."""
        exit_code = data.get("exit_code")
        code_str = str(exit_code) if exit_code is not None else "?"
        self.notify(f"Shell exited (code={code_str})")
        self._shell_view().refresh_output()
        if self._active_tab() == SHELL_TAB:
            self.action_show_tab(DASHBOARD_TAB)
        self._update_status()

    def _on_error(self, data: dict) -> None:
        self.notify(data.get("error", "Unknown error"), severity="error")

    def _on_status(self, data: dict) -> None:
        message = data.get("message", "")
        if message:
            logger.info(message)
