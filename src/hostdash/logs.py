"""Log file discovery and capped reading for the Logs tab."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)

LOG_ROOT = "/var/log"
JOURNAL_DIR = "journal"
MAX_LOG_LINES = 5000
JOURNALCTL_TIMEOUT = 20.0


class LogReadError(Exception):
    """A log could not be read (permissions, missing file, journalctl)."""


@dataclass
class LogEntry:
    name: str  # path relative to the listing root
    path: str
    size: int
    modified: float
    journal: bool = False

    @property
    def modified_str(self) -> str:
        return datetime.fromtimestamp(self.modified).strftime("%Y-%m-%d %H:%M")


def _walk(root: str, skip: str | None = None, journal: bool = False) -> list[LogEntry]:
    """Regular files under ``root``, following file symlinks but not
    directory symlinks. ``skip`` prunes a top-level subdirectory."""
    entries: list[LogEntry] = []
    if not os.path.isdir(root):
        return entries
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        if skip and dirpath == root and skip in dirnames:
            dirnames.remove(skip)
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            try:
                st = os.stat(path)  # follows file symlinks
            except OSError:
                continue
            if not os.path.isfile(path):
                continue
            entries.append(
                LogEntry(
                    name=os.path.relpath(path, root),
                    path=path,
                    size=st.st_size,
                    modified=st.st_mtime,
                    journal=journal,
                )
            )
    entries.sort(key=lambda e: e.name)
    return entries


def list_log_files(root: str = LOG_ROOT) -> list[LogEntry]:
    """Plain log files under ``root``, excluding the binary journal."""
    return _walk(root, skip=JOURNAL_DIR)


def list_journal_files(root: str = LOG_ROOT) -> list[LogEntry]:
    """systemd journal files under ``root/journal``."""
    return _walk(os.path.join(root, JOURNAL_DIR), journal=True)


def cap_lines(text: str, max_lines: int = MAX_LOG_LINES) -> str:
    """Keep the last ``max_lines`` lines of ``text``."""
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    return "\n".join(lines[-max_lines:])


def read_log_file(path: str, max_lines: int = MAX_LOG_LINES) -> str:
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            text = f.read()
    except OSError as e:
        raise LogReadError(str(e)) from e
    return cap_lines(text, max_lines)


def read_journal_file(path: str, max_lines: int = MAX_LOG_LINES) -> str:
    """Decode a journal file with ``journalctl --file``."""
    cmd = ["journalctl", "--file", path, "-n", str(max_lines), "-o", "short-iso", "--no-pager"]
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, errors="replace", timeout=JOURNALCTL_TIMEOUT
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise LogReadError(f"Failed to run journalctl: {e}") from e
    if result.returncode != 0:
        raise LogReadError(result.stderr.strip() or "journalctl failed")
    return cap_lines(result.stdout, max_lines)


def read_entry(entry: LogEntry, max_lines: int = MAX_LOG_LINES) -> str:
    """Read a listed entry, dispatching on its kind."""
    if entry.journal:
        return read_journal_file(entry.path, max_lines)
    return read_log_file(entry.path, max_lines)
