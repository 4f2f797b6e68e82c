"""Tests for hostdash.session.wire (Wire, WireEvent, EventType)."""

from __future__ import annotations

import asyncio

from hostdash.session.wire import EventType, Wire, WireEvent


class TestEventType:
    def test_all_variants_exist(self) -> None:
        expected = {"SHELL_SPAWNED", "SHELL_FAILED", "SHELL_EXIT", "ERROR", "STATUS"}
        assert {e.name for e in EventType} == expected

    def test_values_are_lowercase(self) -> None:
        for e in EventType:
            assert e.value == e.name.lower()


class TestWire:
    def test_send_to_subscriber(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send(WireEvent(type=EventType.STATUS, data={"message": "hi"}))
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.STATUS
        assert event.data["message"] == "hi"

    def test_send_to_multiple_subscribers(self) -> None:
        wire = Wire()
        q1 = wire.subscribe()
        q2 = wire.subscribe()
        wire.send_status("ok")
        e1 = q1.get_nowait()
        e2 = q2.get_nowait()
        assert e1 is not None and e2 is not None
        assert e1.type == e2.type == EventType.STATUS

    def test_unsubscribe(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.unsubscribe(q)
        wire.send_status("nobody listening")
        assert q.empty()

    def test_unsubscribe_nonexistent_is_safe(self) -> None:
        wire = Wire()
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        wire.unsubscribe(q)


class TestWireClosedGuard:
    def test_close_sends_none_sentinel(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        assert q.get_nowait() is None

    def test_send_after_close_is_dropped(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        q.get_nowait()
        wire.send_error("too late")
        assert q.empty()

    def test_close_idempotent(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        wire.close()
        assert q.get_nowait() is None
        assert q.empty()


class TestWireConvenience:
    def test_send_error(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_error("something failed")
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.ERROR
        assert event.data["error"] == "something failed"

    def test_send_shell_spawned(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_shell_spawned(123, ["/bin/bash", "-i", "-l"])
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.SHELL_SPAWNED
        assert event.data == {"pid": 123, "command": "/bin/bash -i -l"}

    def test_send_shell_failed(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_shell_failed(24, 80)
        event = q.get_nowait()
        assert event is not None
        assert event.data == {"rows": 24, "cols": 80}

    def test_send_shell_exit_truncates_output(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_shell_exit(7, 130, last_output="x" * 1000)
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.SHELL_EXIT
        assert event.data["exit_code"] == 130
        assert len(event.data["last_output"]) == 500
