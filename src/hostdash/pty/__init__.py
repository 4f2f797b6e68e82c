"""Embedded shell — a pseudo-terminal session for the Shell tab.

The shell runs in its own process group behind a pty. A background pump
copies its output into a bounded buffer; the render path formats snapshots
of that buffer, and key presses are encoded as terminal input bytes.
"""

from hostdash.pty.buffer import BoundedBuffer
from hostdash.pty.keys import KeyEvent, encode_key
from hostdash.pty.manager import ShellController
from hostdash.pty.session import OutputPump, ShellSession

__all__ = [
    "BoundedBuffer",
    "KeyEvent",
    "OutputPump",
    "ShellController",
    "ShellSession",
    "encode_key",
]
