"""Tests for the Textual app: shell-tab lifecycle, tabs and detail popups."""

from __future__ import annotations

import pytest
from fakes import FakeSpawner

from hostdash import logs as logs_mod
from hostdash import services as services_mod
from hostdash.config import DashConfig, UIConfig
from hostdash.logs import LogEntry
from hostdash.metrics import MetricsSnapshot
from hostdash.pty.keys import KeyEvent
from hostdash.pty.manager import ShellController
from hostdash.services import ServiceUnit
from hostdash.session.wire import Wire
from hostdash.tui.app import (
    DASHBOARD_TAB,
    LOGS_TAB,
    PROCESSES_TAB,
    SERVICES_TAB,
    SHELL_TAB,
    DashApp,
)
from hostdash.tui.detail import DetailScreen
from hostdash.tui.shell_view import PLACEHOLDER, UNAVAILABLE, ShellView


class FakeSampler:
    def sample(self) -> MetricsSnapshot:
        return MetricsSnapshot(cpu_per_core=[10.0, 20.0], cpu_total=15.0)

    def top_processes(self, limit: int = 15) -> list[dict]:
        return [{"pid": 1, "name": "init", "user": "root", "cpu": 0.5, "mem": 0.1}]


def make_app(spawner: FakeSpawner, eager: bool = False) -> DashApp:
    config = DashConfig(ui=UIConfig(tick_rate=0.05))
    config.shell.eager_spawn = eager
    wire = Wire()
    controller = ShellController(config.shell, wire=wire, spawn=spawner)
    return DashApp(config=config, wire=wire, controller=controller, sampler=FakeSampler())


async def test_shell_tab_spawns_once_and_takes_keys() -> None:
    spawner = FakeSpawner()
    app = make_app(spawner)
    async with app.run_test(size=(100, 30)) as pilot:
        assert not app.controller.alive
        await pilot.press("f12")
        await pilot.pause(0.2)
        assert app._active_tab() == SHELL_TAB
        assert len(spawner.sessions) == 1
        rows, cols = spawner.sessions[0].dimensions
        assert rows >= 1 and cols >= 1

        await pilot.press("a", "ctrl+c", "tab", "q")
        await pilot.pause(0.2)
        forwarded = spawner.sessions[0].forwarded
        assert KeyEvent("a", "a") in forwarded
        assert any(e.ctrl and e.key == "c" for e in forwarded)
        assert any(e.key == "tab" for e in forwarded)
        assert any(e.key == "q" for e in forwarded)
        # Still running: q and Ctrl+C went to the shell, not to the app
        assert app.is_running
        assert len(spawner.sessions) == 1


async def test_leaving_shell_tab_terminates() -> None:
    spawner = FakeSpawner()
    app = make_app(spawner)
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f12")
        await pilot.pause(0.2)
        session = spawner.sessions[0]
        await pilot.press("f2")
        await pilot.pause(0.2)
        assert app._active_tab() == DASHBOARD_TAB
        assert session.terminated
        assert not app.controller.alive


async def test_shell_exit_returns_to_dashboard() -> None:
    spawner = FakeSpawner()
    app = make_app(spawner)
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f12")
        await pilot.pause(0.2)
        spawner.sessions[0].exit(0)
        await pilot.pause(0.3)
        assert not app.controller.alive
        assert app._active_tab() == DASHBOARD_TAB
        assert app.query_one(ShellView).message == PLACEHOLDER


async def test_spawn_failure_shows_placeholder() -> None:
    app = make_app(FakeSpawner(fail=True))
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f12")
        await pilot.pause(0.2)
        assert not app.controller.alive
        assert app.query_one(ShellView).message == UNAVAILABLE


async def test_eager_spawn() -> None:
    spawner = FakeSpawner()
    app = make_app(spawner, eager=True)
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.pause(0.2)
        assert len(spawner.sessions) == 1
        assert app._active_tab() == DASHBOARD_TAB


async def test_quick_tab_flip_spawns_nothing() -> None:
    spawner = FakeSpawner()
    app = make_app(spawner)
    async with app.run_test(size=(100, 30)) as pilot:
        # Leave before the deferred start gets a chance to run
        app.action_show_tab(SHELL_TAB)
        app.action_show_tab(DASHBOARD_TAB)
        await pilot.pause(0.3)
        assert app._active_tab() == DASHBOARD_TAB
        assert not app.controller.alive
        assert spawner.sessions == []


async def test_function_keys_leave_shell_tab(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(services_mod, "list_services", lambda: [])
    spawner = FakeSpawner()
    app = make_app(spawner)
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f12")
        await pilot.pause(0.2)
        await pilot.press("f4")
        await pilot.pause(0.2)
        assert app._active_tab() == SERVICES_TAB
        assert spawner.sessions[0].terminated
        assert spawner.sessions[0].forwarded == []


async def test_process_row_opens_details(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "hostdash.tui.app.process_details", lambda pid: (f"init (PID {pid})", "State: S")
    )
    app = make_app(FakeSpawner())
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f3")
        await pilot.pause(0.2)
        assert app._active_tab() == PROCESSES_TAB
        app.query_one("#process-table").focus()
        await pilot.press("enter")
        await pilot.pause(0.2)
        assert isinstance(app.screen, DetailScreen)
        assert app.screen.detail_title == "Process: init (PID 1)"
        assert app.screen.body == "State: S"
        await pilot.press("escape")
        await pilot.pause(0.2)
        assert not isinstance(app.screen, DetailScreen)


async def test_services_tab_lists_and_shows_status(monkeypatch: pytest.MonkeyPatch) -> None:
    units = [
        ServiceUnit("cron.service", "loaded", "active", "running", "Cron"),
        ServiceUnit("ssh.service", "loaded", "active", "running", "SSH"),
    ]
    monkeypatch.setattr(services_mod, "list_services", lambda: units)
    monkeypatch.setattr(services_mod, "service_status", lambda unit: f"status of {unit}")
    app = make_app(FakeSpawner())
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f4")
        await pilot.pause(0.2)
        table = app.query_one("#services-table")
        assert table.row_count == 2
        table.focus()
        await pilot.press("down", "enter")
        await pilot.pause(0.2)
        assert isinstance(app.screen, DetailScreen)
        assert app.screen.detail_title == "Service: ssh.service"
        assert app.screen.body == "status of ssh.service"


async def test_logs_tab_reads_selected_file(monkeypatch: pytest.MonkeyPatch) -> None:
    entries = [LogEntry("syslog", "/var/log/syslog", 12, 0.0)]
    journal = [LogEntry("m/system.journal", "/var/log/journal/m/system.journal", 8, 0.0, True)]
    monkeypatch.setattr(logs_mod, "list_log_files", lambda: entries)
    monkeypatch.setattr(logs_mod, "list_journal_files", lambda: journal)

    def fail(entry: LogEntry, max_lines: int = 0) -> str:
        raise logs_mod.LogReadError("Permission denied")

    monkeypatch.setattr(logs_mod, "read_entry", fail)
    app = make_app(FakeSpawner())
    async with app.run_test(size=(100, 30)) as pilot:
        await pilot.press("f5")
        await pilot.pause(0.2)
        assert app._active_tab() == LOGS_TAB
        table = app.query_one("#logs-table")
        assert table.row_count == 2
        table.focus()
        await pilot.press("enter")
        await pilot.pause(0.2)
        assert isinstance(app.screen, DetailScreen)
        assert app.screen.detail_title == "Log: syslog"
        assert app.screen.body == "Failed to read: Permission denied"
