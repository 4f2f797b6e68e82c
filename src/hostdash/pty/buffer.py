"""Bounded byte buffer for shell output."""

from __future__ import annotations

import threading

DEFAULT_CAPACITY = 512 * 1024
DEFAULT_LOW_WATERMARK = 256 * 1024


class BoundedBuffer:
    """Thread-safe append-only byte store with bulk eviction.

    The output pump is the only writer; the render path takes snapshots.
    When an append pushes the length past ``capacity`` the oldest bytes are
    discarded in a single step so that only the newest ``low_watermark``
    bytes remain. Trimming once per overflow (instead of on every append)
    keeps eviction cheap under a flood of output.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        low_watermark: int = DEFAULT_LOW_WATERMARK,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if not 0 <= low_watermark < capacity:
            raise ValueError(
                f"low_watermark must be in [0, {capacity}), got {low_watermark}"
            )
        self._capacity = capacity
        self._low_watermark = low_watermark
        self._data = bytearray()
        self._lock = threading.Lock()
        self._evictions = 0
        self._total_bytes = 0  # Total bytes ever appended

    def append(self, data: bytes) -> bool:
        """Append ``data`` and evict if the capacity was crossed.

        Returns:
            True if this append triggered a bulk eviction.
        """
        if not data:
            return False
        with self._lock:
            self._data.extend(data)
            self._total_bytes += len(data)
            if len(self._data) <= self._capacity:
                return False
            del self._data[: len(self._data) - self._low_watermark]
            self._evictions += 1
            return True

    def snapshot(self) -> bytes:
        """Return a copy of the current contents."""
        with self._lock:
            return bytes(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._evictions = 0
            self._total_bytes = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def low_watermark(self) -> int:
        return self._low_watermark

    @property
    def evictions(self) -> int:
        """Number of bulk evictions performed so far."""
        with self._lock:
            return self._evictions

    @property
    def total_bytes(self) -> int:
        """Total number of bytes ever appended."""
        with self._lock:
            return self._total_bytes
