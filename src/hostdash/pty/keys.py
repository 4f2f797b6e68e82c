"""Key encoding — translate key presses into terminal input bytes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import IO, Any

logger = logging.getLogger(__name__)

# VT100/xterm sequences for named keys. Modifiers are ignored for these.
_NAMED_KEYS: dict[str, bytes] = {
    "enter": b"\n",
    "backspace": b"\x7f",
    "tab": b"\t",
    "escape": b"\x1b",
    "left": b"\x1b[D",
    "right": b"\x1b[C",
    "up": b"\x1b[A",
    "down": b"\x1b[B",
    "home": b"\x1b[H",
    "end": b"\x1b[F",
    "pageup": b"\x1b[5~",
    "pagedown": b"\x1b[6~",
    "delete": b"\x1b[3~",
    "insert": b"\x1b[2~",
}


@dataclass(frozen=True)
class KeyEvent:
    """A key press routed to the shell view.

    ``key`` is a lowercase key name (``"enter"``, ``"left"``) or a single
    character for character keys. ``character`` is the text the key
    produces, if any.
    """

    key: str
    character: str | None = None
    ctrl: bool = False

    @classmethod
    def from_textual(cls, event: Any) -> KeyEvent:
        """Build from a ``textual.events.Key`` (``"ctrl+c"`` style names)."""
        key = event.key
        ctrl = False
        if key.startswith("ctrl+"):
            ctrl = True
            key = key[len("ctrl+") :]
        return cls(key=key, character=event.character, ctrl=ctrl)


def encode_key(event: KeyEvent) -> bytes | None:
    """Return the bytes a terminal would send for ``event``.

    Returns None for keys that have no terminal encoding.
    """
    named = _NAMED_KEYS.get(event.key)
    if named is not None:
        return named

    if event.ctrl:
        if len(event.key) != 1:
            return None
        code = ord(event.key.upper())
        # ? @ A-Z [ \ ] ^ _  ->  0x7F, 0x00-0x1F
        if 0x3F <= code <= 0x5F:
            return bytes([code ^ 0x40])
        return None

    char = event.character
    if char is None and len(event.key) == 1:
        char = event.key
    if char and char.isprintable():
        return char.encode("utf-8")
    return None


def forward(writer: IO[bytes] | None, event: KeyEvent) -> bool:
    """Encode ``event`` and write it to ``writer``, flushing immediately.

    Returns True if bytes were written. A missing writer or an unmapped
    key is a silent no-op.
    """
    if writer is None:
        return False
    data = encode_key(event)
    if data is None:
        return False
    try:
        writer.write(data)
        writer.flush()
    except (OSError, ValueError) as e:
        # ValueError: writer already closed
        logger.debug("Dropped key %r: %s", event.key, e)
        return False
    return True
