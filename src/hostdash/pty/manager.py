"""Shell controller — owns the application's single shell session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from hostdash.config import ShellConfig
from hostdash.pty.formatter import render_lines
from hostdash.pty.keys import KeyEvent
from hostdash.pty.session import ShellSession

if TYPE_CHECKING:
    from hostdash.session.wire import Wire

logger = logging.getLogger(__name__)

SpawnFn = Callable[..., "ShellSession | None"]


class ShellController:
    """Lifecycle of the embedded shell, owned by the top-level app.

    At most one session exists at a time. The controller:
    - Spawns lazily and only once (``ensure``)
    - Clamps sizes to at least 1x1 before they reach the session
    - Tears the session down when the view is left (``close``) or when the
      shell exits on its own (``poll``), firing SHELL_EXIT on the wire
    """

    def __init__(
        self,
        config: ShellConfig | None = None,
        wire: Wire | None = None,
        spawn: SpawnFn | None = None,
    ) -> None:
        self._config = config or ShellConfig()
        self._wire = wire
        self._spawn = spawn or ShellSession.spawn
        self._session: ShellSession | None = None

    def ensure(self, rows: int, cols: int) -> ShellSession | None:
        """Spawn the shell if none is running. Returns the live session."""
        if self._session is not None:
            return self._session
        rows, cols = max(rows, 1), max(cols, 1)
        session = self._spawn(rows, cols, config=self._config)
        if session is None:
            logger.warning("Shell unavailable (%dx%d)", rows, cols)
            if self._wire:
                self._wire.send_shell_failed(rows, cols)
            return None
        self._session = session
        if self._wire:
            self._wire.send_shell_spawned(session.pid, session.command)
        return session

    def resize(self, rows: int, cols: int) -> None:
        """Resize the live session, if any."""
        if self._session is None:
            return
        rows, cols = max(rows, 1), max(cols, 1)
        if self._session.dimensions == (rows, cols):
            return
        self._session.resize(rows, cols)

    def poll(self) -> bool:
        """Check whether the shell exited on its own.

        On exit the session is discarded and SHELL_EXIT is sent.

        Returns:
            True if the shell was found to have exited.
        """
        session = self._session
        if session is None or not session.is_exited():
            return False
        self._session = None
        tail = render_lines(session.buffer.snapshot(), 0, 3)
        last_output = "\n".join(tail)
        session.terminate()
        logger.info("Shell pid=%d exited (code=%s)", session.pid, session.exit_code)
        if self._wire:
            self._wire.send_shell_exit(session.pid, session.exit_code, last_output)
        return True

    def close(self) -> None:
        """Kill the shell, if any, and forget it."""
        session, self._session = self._session, None
        if session is not None:
            session.terminate()

    def forward(self, event: KeyEvent) -> bool:
        if self._session is None:
            return False
        return self._session.forward(event)

    def render(self, width: int, height: int) -> list[str]:
        if self._session is None:
            return []
        return self._session.render(width, height)

    @property
    def session(self) -> ShellSession | None:
        return self._session

    @property
    def alive(self) -> bool:
        return self._session is not None

    def describe(self) -> dict[str, Any]:
        """Summary of the current session for status displays."""
        session = self._session
        if session is None:
            return {"alive": False}
        rows, cols = session.dimensions
        return {
            "alive": True,
            "pid": session.pid,
            "command": " ".join(session.command),
            "rows": rows,
            "cols": cols,
            "buffered": len(session.buffer),
            "evictions": session.buffer.evictions,
        }
