"""Display formatting — turn raw shell output into viewport lines."""

from __future__ import annotations

import re

# Order matters: string-type sequences must be consumed before the generic
# two-byte ESC rule eats their introducer.
_ESCAPE_RE = re.compile(
    r"""
    \x1b\[[0-?]*[ -/]*[@-~]                     # CSI
    | \x1b\][^\x07\x1b]*(?:\x07|\x1b\\)?        # OSC, BEL or ST terminated
    | \x1b[PX^_][^\x1b]*(?:\x1b\\)?             # DCS / SOS / PM / APC
    | \x1b[ -/]+[0-~]                           # charset designation, etc.
    | \x1b[0-~]                                 # two-byte sequences
    | \x1b                                      # lone ESC at end of data
    """,
    re.VERBOSE,
)

# C0 controls and DEL, except newline and tab
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

TAB_SIZE = 8


def strip_escapes(data: bytes | str) -> str:
    """Strip terminal escape sequences and control characters.

    Only printable text, tabs and newlines survive. Carriage returns are
    dropped, so pty ``\\r\\n`` line endings come out as plain ``\\n``.
    """
    if isinstance(data, bytes):
        text = data.decode("utf-8", errors="replace")
    else:
        text = data
    text = _ESCAPE_RE.sub("", text)
    return _CONTROL_RE.sub("", text)


def split_lines(text: str) -> list[str]:
    """Split on newlines, keeping an unterminated trailing line.

    A terminating newline does not produce an extra empty entry.
    """
    lines = text.split("\n")
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()
    return lines


def wrap_lines(lines: list[str], width: int) -> list[str]:
    """Hard-wrap every line longer than ``width`` characters.

    Tabs are expanded to ``TAB_SIZE`` stops first so the wrap matches what
    the terminal widget draws. A width of 0 disables wrapping.
    """
    lines = [line.expandtabs(TAB_SIZE) for line in lines]
    if width <= 0:
        return lines
    wrapped: list[str] = []
    for line in lines:
        if len(line) <= width:
            wrapped.append(line)
            continue
        for start in range(0, len(line), width):
            wrapped.append(line[start : start + width])
    return wrapped


def render_lines(data: bytes | str, width: int, height: int) -> list[str]:
    """Format buffered output for a ``width`` x ``height`` viewport.

    Returns at most ``height`` rows, the most recent output last. A height
    of 0 returns every row.
    """
    rows = wrap_lines(split_lines(strip_escapes(data)), width)
    if height > 0 and len(rows) > height:
        return rows[-height:]
    return rows
