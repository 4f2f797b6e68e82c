"""Shell session — an interactive shell running in a pseudo-terminal."""

from __future__ import annotations

import logging
import os
import signal
import struct
import subprocess
import threading
from typing import IO, Sequence

try:
    import fcntl
    import pty
    import termios
except ImportError:  # Windows has no pty module
    fcntl = pty = termios = None  # type: ignore[assignment]

from hostdash.config import ShellConfig
from hostdash.pty.buffer import BoundedBuffer
from hostdash.pty.formatter import render_lines
from hostdash.pty.keys import KeyEvent, forward
from hostdash.pty.resolver import resolve

logger = logging.getLogger(__name__)

DEFAULT_TERM = "xterm-256color"


def _set_winsize(fd: int, rows: int, cols: int) -> None:
    # struct winsize: rows, cols, xpixel, ypixel
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


def _acquire_controlling_tty() -> None:
    """Runs in the child after setsid(): make the pty slave its terminal.

    Called between fork and exec while other threads may hold locks, so
    this must stay a single ioctl: no logging, no imports, no allocation
    beyond the call itself.
    """
    try:
        fcntl.ioctl(0, termios.TIOCSCTTY, 0)
    except OSError:
        pass  # Shell still runs, just without job control


class OutputPump(threading.Thread):
    """Background reader moving pty output into a BoundedBuffer.

    Owns its own duplicate of the master fd and closes it on exit. Ends on
    end-of-stream or on the first read error (EIO once the child hangs up
    on Linux). Never raises into the caller.
    """

    def __init__(
        self, fd: int, buffer: BoundedBuffer, chunk_size: int = 4096, name: str = ""
    ) -> None:
        super().__init__(name=name or f"pty-pump-{fd}", daemon=True)
        self._fd = fd
        self._buffer = buffer
        self._chunk_size = chunk_size
        self.bytes_read = 0

    def run(self) -> None:
        try:
            while True:
                try:
                    data = os.read(self._fd, self._chunk_size)
                except OSError as e:
                    logger.debug("%s read ended: %s", self.name, e)
                    break
                if not data:
                    logger.debug("%s reached end of stream", self.name)
                    break
                self.bytes_read += len(data)
                self._buffer.append(data)
        finally:
            try:
                os.close(self._fd)
            except OSError:
                pass


class ShellSession:
    """A running shell: pty master, input writer, and child process.

    The three OS resources form one unit. ``spawn()`` either acquires all of
    them (the writer may be absent) or returns None; ``terminate()`` releases
    them together. Output is collected by an ``OutputPump`` into
    ``buffer`` and read back with ``render()``.

    Use ``spawn()`` rather than constructing directly.
    """

    def __init__(
        self,
        master_fd: int,
        proc: subprocess.Popen,
        writer: IO[bytes] | None,
        buffer: BoundedBuffer,
        command: Sequence[str],
        rows: int,
        cols: int,
    ) -> None:
        self._master_fd = master_fd
        self._proc = proc
        self._writer = writer
        self._buffer = buffer
        self._command = list(command)
        self._rows = rows
        self._cols = cols
        # start_new_session makes the shell its own group leader
        self._pgid = proc.pid
        self._pump: OutputPump | None = None
        self._terminated = False

    @classmethod
    def spawn(
        cls,
        rows: int,
        cols: int,
        *,
        command: Sequence[str] | None = None,
        config: ShellConfig | None = None,
    ) -> ShellSession | None:
        """Start the user's shell in a new ``rows`` x ``cols`` pty.

        Args:
            rows: Terminal height in character cells (>= 1).
            cols: Terminal width in character cells (>= 1).
            command: Program and arguments; defaults to ``config.command``,
                     then to the platform's resolved shell.
            config: Buffer sizes, read size and TERM.

        Returns:
            The running session, or None if the pty could not be opened or
            the shell could not be started.
        """
        if rows < 1 or cols < 1:
            raise ValueError(f"Terminal size must be at least 1x1, got {rows}x{cols}")
        if pty is None:
            logger.warning("Pseudo-terminals are not supported on this platform")
            return None

        config = config or ShellConfig()
        if command is None:
            if config.command:
                command = config.command
            else:
                program, args = resolve()
                command = [program, *args]
        command = list(command)

        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            logger.warning("Could not open pty: %s", e)
            return None

        env = {**os.environ}
        env["TERM"] = config.term or os.environ.get("TERM") or DEFAULT_TERM

        try:
            try:
                _set_winsize(slave_fd, rows, cols)
            except OSError as e:
                logger.debug("Initial pty resize failed: %s", e)
            proc = subprocess.Popen(
                command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,  # Own session and process group
                preexec_fn=_acquire_controlling_tty,
                env=env,
                close_fds=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Could not start shell %s: %s", command[0], e)
            os.close(master_fd)
            return None
        finally:
            # Parent always closes slave fd
            os.close(slave_fd)

        try:
            reader_fd = os.dup(master_fd)
        except OSError as e:
            logger.warning("Could not attach reader to pty: %s", e)
            _kill_process_group(proc, proc.pid)
            os.close(master_fd)
            return None

        writer = _open_writer(master_fd)

        buffer = BoundedBuffer(
            capacity=config.buffer_capacity, low_watermark=config.low_watermark
        )
        session = cls(master_fd, proc, writer, buffer, command, rows, cols)
        session._pump = OutputPump(
            reader_fd, buffer, chunk_size=config.chunk_size, name=f"pty-pump-{proc.pid}"
        )
        session._pump.start()

        logger.info(
            "Shell started: pid=%d size=%dx%d cmd=%s",
            proc.pid,
            rows,
            cols,
            " ".join(command),
        )
        return session

    def resize(self, rows: int, cols: int) -> None:
        """Tell the pty its new size. Failures are ignored."""
        if rows < 1 or cols < 1:
            raise ValueError(f"Terminal size must be at least 1x1, got {rows}x{cols}")
        self._rows, self._cols = rows, cols
        if self._master_fd < 0:
            return
        try:
            _set_winsize(self._master_fd, rows, cols)
        except OSError as e:
            logger.debug("Resize to %dx%d failed: %s", rows, cols, e)

    def write(self, data: bytes) -> None:
        """Write raw bytes to the shell's input and flush."""
        if self._writer is None or not data:
            return
        try:
            self._writer.write(data)
            self._writer.flush()
        except (OSError, ValueError) as e:
            logger.debug("Write to shell failed: %s", e)

    def forward(self, event: KeyEvent) -> bool:
        """Send a key press to the shell. No-op without an input writer."""
        return forward(self._writer, event)

    def render(self, width: int, height: int) -> list[str]:
        """Most recent output formatted for a ``width`` x ``height`` viewport."""
        return render_lines(self._buffer.snapshot(), width, height)

    def terminate(self) -> None:
        """Kill the shell and release the pty. Does not wait.

        The output pump notices the hang-up on its next read and exits by
        itself.
        """
        if self._terminated:
            return
        self._terminated = True
        _kill_process_group(self._proc, self._pgid)

        if self._writer is not None:
            try:
                self._writer.close()
            except OSError:
                pass
            self._writer = None

        try:
            os.close(self._master_fd)
        except OSError:
            pass
        self._master_fd = -1
        logger.info("Shell terminated: pid=%d", self._proc.pid)

    def is_exited(self) -> bool:
        """Non-blocking check whether the shell has exited.

        A failed status query counts as still running.
        """
        try:
            return self._proc.poll() is not None
        except OSError as e:
            logger.debug("Status check for pid %d failed: %s", self._proc.pid, e)
            return False

    @property
    def exit_code(self) -> int | None:
        return self._proc.returncode

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def pgid(self) -> int:
        return self._pgid

    @property
    def command(self) -> list[str]:
        return list(self._command)

    @property
    def dimensions(self) -> tuple[int, int]:
        """Current (rows, cols) of the pty."""
        return self._rows, self._cols

    @property
    def buffer(self) -> BoundedBuffer:
        return self._buffer

    @property
    def master_fd(self) -> int:
        return self._master_fd

    @property
    def has_writer(self) -> bool:
        return self._writer is not None

    @property
    def pump(self) -> OutputPump | None:
        return self._pump

    @property
    def terminated(self) -> bool:
        return self._terminated

    def __enter__(self) -> ShellSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.terminate()


def _open_writer(master_fd: int) -> IO[bytes] | None:
    """Unbuffered byte stream onto the shell's input, or None."""
    try:
        fd = os.dup(master_fd)
    except OSError as e:
        logger.warning("Shell input unavailable: %s", e)
        return None
    try:
        return open(fd, "wb", buffering=0)
    except OSError as e:
        os.close(fd)
        logger.warning("Shell input unavailable: %s", e)
        return None


def _kill_process_group(proc: subprocess.Popen, pgid: int) -> None:
    """SIGKILL the shell's process group, falling back to the child itself.

    ``pgid`` is recorded at spawn time: once the shell has been reaped its
    pid can no longer be looked up, but jobs it left behind still carry the
    group id.
    """
    try:
        os.killpg(pgid, signal.SIGKILL)
        return
    except ProcessLookupError:
        logger.debug("Process group %d already gone", pgid)
        return
    except OSError as e:
        logger.debug("killpg(%d) failed: %s", pgid, e)
    try:
        proc.kill()
    except OSError as e:
        logger.warning("Error killing shell pid %d: %s", proc.pid, e)
