"""Wire protocol — decouples shell lifecycle from the UI.

The shell controller emits lifecycle events; the TUI subscribes and reacts
(for example, leaving the Shell tab when the shell exits on its own).
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any


class EventType(enum.Enum):
    SHELL_SPAWNED = "shell_spawned"
    SHELL_FAILED = "shell_failed"
    SHELL_EXIT = "shell_exit"
    ERROR = "error"
    STATUS = "status"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Async message bus: controller -> UI subscribers.

    Single-producer, multi-consumer broadcast.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[WireEvent | None]] = []
        self._closed: bool = False

    def send(self, event: WireEvent) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed:
            return
        for q in self._subscribers:
            q.put_nowait(event)

    def send_status(self, message: str) -> None:
        self.send(WireEvent(type=EventType.STATUS, data={"message": message}))

    def send_error(self, error: str) -> None:
        self.send(WireEvent(type=EventType.ERROR, data={"error": error}))

    def send_shell_spawned(self, pid: int, command: list[str]) -> None:
        self.send(
            WireEvent(
                type=EventType.SHELL_SPAWNED,
                data={"pid": pid, "command": " ".join(command)},
            )
        )

    def send_shell_failed(self, rows: int, cols: int) -> None:
        self.send(
            WireEvent(type=EventType.SHELL_FAILED, data={"rows": rows, "cols": cols})
        )

    def send_shell_exit(
        self, pid: int, exit_code: int | None, last_output: str = ""
    ) -> None:
        """Notify subscribers that the shell exited on its own."""
        self.send(
            WireEvent(
                type=EventType.SHELL_EXIT,
                data={
                    "pid": pid,
                    "exit_code": exit_code,
                    "last_output": last_output[:500],
                },
            )
        )

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        if q in self._subscribers:
            self._subscribers.remove(q)

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        if self._closed:
            return
        self._closed = True
        for q in self._subscribers:
            q.put_nowait(None)
