"""Host metrics sampling via psutil."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any

import psutil

logger = logging.getLogger(__name__)


@dataclass
class MetricsSnapshot:
    """Plain-data view of the host for one dashboard tick."""

    cpu_total: float = 0.0
    cpu_per_core: list[float] = field(default_factory=list)
    mem_percent: float = 0.0
    mem_used: int = 0
    mem_total: int = 0
    swap_percent: float = 0.0
    swap_used: int = 0
    swap_total: int = 0
    disk_percent: float = 0.0
    disk_used: int = 0
    disk_total: int = 0
    net_rx_rate: float = 0.0
    net_tx_rate: float = 0.0
    load_avg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    uptime: float = 0.0


class MetricsSampler:
    """Samples CPU, memory, disk and network counters.

    Network rates are computed against the previous ``sample()`` call, so
    the first sample reports zero.
    """

    def __init__(self, disk_path: str = "/") -> None:
        self._disk_path = disk_path
        self._prev_net: tuple[int, int] | None = None
        self._prev_time: float = 0.0
        # Prime cpu_percent so the first real call has a baseline
        psutil.cpu_percent(interval=None, percpu=True)

    def sample(self) -> MetricsSnapshot:
        snap = MetricsSnapshot()
        per_core = psutil.cpu_percent(interval=None, percpu=True)
        snap.cpu_per_core = list(per_core)
        snap.cpu_total = sum(per_core) / len(per_core) if per_core else 0.0

        mem = psutil.virtual_memory()
        snap.mem_percent, snap.mem_used, snap.mem_total = (
            mem.percent,
            mem.used,
            mem.total,
        )
        swap = psutil.swap_memory()
        snap.swap_percent, snap.swap_used, snap.swap_total = (
            swap.percent,
            swap.used,
            swap.total,
        )

        try:
            disk = psutil.disk_usage(self._disk_path)
            snap.disk_percent, snap.disk_used, snap.disk_total = (
                disk.percent,
                disk.used,
                disk.total,
            )
        except OSError as e:
            logger.debug("disk_usage(%s) failed: %s", self._disk_path, e)

        now = time.monotonic()
        net = psutil.net_io_counters()
        if net is not None:
            current = (net.bytes_recv, net.bytes_sent)
            if self._prev_net is not None:
                elapsed = now - self._prev_time
                if elapsed > 0:
                    snap.net_rx_rate = max(current[0] - self._prev_net[0], 0) / elapsed
                    snap.net_tx_rate = max(current[1] - self._prev_net[1], 0) / elapsed
            self._prev_net = current
            self._prev_time = now

        try:
            snap.load_avg = tuple(psutil.getloadavg())  # type: ignore[assignment]
        except (AttributeError, OSError):
            pass
        snap.uptime = max(time.time() - psutil.boot_time(), 0.0)
        return snap

    def top_processes(self, limit: int = 15) -> list[dict[str, Any]]:
        """Processes sorted by CPU usage, highest first."""
        procs: list[dict[str, Any]] = []
        for p in psutil.process_iter(
            ["pid", "name", "username", "cpu_percent", "memory_percent"]
        ):
            info = p.info
            procs.append(
                {
                    "pid": info["pid"],
                    "name": info.get("name") or "?",
                    "user": info.get("username") or "",
                    "cpu": info.get("cpu_percent") or 0.0,
                    "mem": info.get("memory_percent") or 0.0,
                }
            )
        procs.sort(key=lambda d: d["cpu"], reverse=True)
        return procs[:limit]


def process_details(pid: int) -> tuple[str, str]:
    """Title and multi-line detail text for the process popup.

    Fields the current user may not read are left out. A vanished process
    yields a short message instead of raising.
    """
    try:
        proc = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return f"PID {pid}", "(process no longer exists)"

    lines: list[str] = []

    def add(label: str, getter: Any) -> None:
        try:
            value = getter()
        except (psutil.Error, OSError, AttributeError):
            # AttributeError: accessor missing on this platform (uids, num_fds)
            return
        if value not in (None, "", []):
            lines.append(f"{label}: {value}")

    name = ""
    with proc.oneshot():
        try:
            name = proc.name()
        except psutil.Error:
            pass
        add("Name", lambda: name)
        add("State", proc.status)
        add("PPid", proc.ppid)
        add("User", proc.username)
        add("Uid", lambda: " ".join(str(u) for u in proc.uids()))
        add("Gid", lambda: " ".join(str(g) for g in proc.gids()))
        add("Threads", proc.num_threads)
        add("VmSize", lambda: human_bytes(proc.memory_info().vms))
        add("VmRSS", lambda: human_bytes(proc.memory_info().rss))
        add("Nice", proc.nice)
        add("Exe", proc.exe)
        add("Cwd", proc.cwd)
        add("Cmdline", lambda: " ".join(proc.cmdline()))
        add("FDs", proc.num_fds)

    title = f"{name} (PID {pid})" if name else f"PID {pid}"
    return title, "\n".join(lines) or "(no details)"


def human_bytes(n: float) -> str:
    """Format a byte count as a short human-readable string."""
    if abs(n) < 1024:
        return f"{n:.0f}B"
    for unit in ("K", "M", "G"):
        n /= 1024
        if abs(n) < 1024:
            return f"{n:.1f}{unit}"
    return f"{n / 1024:.1f}T"


def bar(percent: float, width: int = 20) -> str:
    """Fixed-width gauge like ``████░░░░``."""
    percent = min(max(percent, 0.0), 100.0)
    filled = round(percent / 100 * width)
    return "█" * filled + "░" * (width - filled)


def user_prompt() -> str:
    """``user@host:cwd`` label for the shell prompt bar."""
    try:
        user = os.getlogin()
    except OSError:
        user = os.environ.get("USER") or os.environ.get("USERNAME") or "user"
    host = os.uname().nodename if hasattr(os, "uname") else os.environ.get(
        "COMPUTERNAME", "localhost"
    )
    cwd = os.getcwd()
    home = os.path.expanduser("~")
    if cwd.startswith(home):
        cwd = "~" + cwd[len(home) :]
    return f"{user}@{host}:{cwd}"
