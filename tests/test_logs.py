"""Tests for hostdash.logs."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from hostdash.logs import (
    LogEntry,
    LogReadError,
    cap_lines,
    list_journal_files,
    list_log_files,
    read_entry,
    read_journal_file,
    read_log_file,
)


@pytest.fixture
def log_root(tmp_path: Path) -> Path:
    (tmp_path / "syslog").write_text("boot\nready\n")
    (tmp_path / "apt").mkdir()
    (tmp_path / "apt" / "history.log").write_text("install foo\n")
    journal = tmp_path / "journal" / "abc123"
    journal.mkdir(parents=True)
    (journal / "system.journal").write_bytes(b"LPKSHHRH")
    return tmp_path


class TestListing:
    def test_plain_files_skip_journal(self, log_root: Path) -> None:
        entries = list_log_files(str(log_root))
        assert [e.name for e in entries] == [os.path.join("apt", "history.log"), "syslog"]
        syslog = entries[1]
        assert syslog.path == str(log_root / "syslog")
        assert syslog.size == len("boot\nready\n")
        assert syslog.journal is False

    def test_journal_files(self, log_root: Path) -> None:
        entries = list_journal_files(str(log_root))
        assert [e.name for e in entries] == [os.path.join("abc123", "system.journal")]
        assert entries[0].journal is True

    def test_file_symlink_followed_dir_symlink_not(self, log_root: Path) -> None:
        (log_root / "current").symlink_to(log_root / "syslog")
        (log_root / "loop").symlink_to(log_root, target_is_directory=True)
        names = [e.name for e in list_log_files(str(log_root))]
        assert "current" in names
        assert not any(n.startswith("loop") for n in names)

    def test_dangling_symlink_skipped(self, log_root: Path) -> None:
        (log_root / "gone").symlink_to(log_root / "missing")
        assert "gone" not in [e.name for e in list_log_files(str(log_root))]

    def test_missing_root(self, tmp_path: Path) -> None:
        assert list_log_files(str(tmp_path / "nope")) == []
        assert list_journal_files(str(tmp_path / "nope")) == []

    def test_modified_str(self) -> None:
        entry = LogEntry("x", "/x", 0, modified=0.0)
        assert len(entry.modified_str) == len("1970-01-01 00:00")


class TestReading:
    def test_cap_lines(self) -> None:
        text = "\n".join(str(i) for i in range(10))
        assert cap_lines(text, 3) == "7\n8\n9"
        assert cap_lines("a\nb\n", 5) == "a\nb\n"

    def test_read_log_file_capped(self, tmp_path: Path) -> None:
        path = tmp_path / "big.log"
        path.write_text("".join(f"line {i}\n" for i in range(100)))
        assert read_log_file(str(path), max_lines=2) == "line 98\nline 99"

    def test_read_log_file_replaces_bad_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "bin.log"
        path.write_bytes(b"ok\xff\n")
        assert read_log_file(str(path)) == "ok�\n"

    def test_read_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LogReadError):
            read_log_file(str(tmp_path / "missing.log"))

    def test_read_journal_file(self) -> None:
        result = MagicMock(returncode=0, stdout="2024-01-01T00:00:00 host kernel: hi\n", stderr="")
        with patch("subprocess.run", return_value=result) as run:
            text = read_journal_file("/var/log/journal/x/system.journal")
        assert "kernel: hi" in text
        cmd = run.call_args[0][0]
        assert cmd[:3] == ["journalctl", "--file", "/var/log/journal/x/system.journal"]

    def test_read_journal_failure(self) -> None:
        result = MagicMock(returncode=1, stdout="", stderr="Permission denied")
        with patch("subprocess.run", return_value=result):
            with pytest.raises(LogReadError, match="Permission denied"):
                read_journal_file("/j")

    def test_journalctl_missing(self) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError("journalctl")):
            with pytest.raises(LogReadError):
                read_journal_file("/j")

    def test_journalctl_timeout(self) -> None:
        with patch(
            "subprocess.run", side_effect=subprocess.TimeoutExpired("journalctl", 20)
        ):
            with pytest.raises(LogReadError):
                read_journal_file("/j")

    def test_read_entry_dispatches(self, log_root: Path) -> None:
        entry = list_log_files(str(log_root))[1]
        assert read_entry(entry) == "boot\nready\n"
        journal = LogEntry("j", "/j", 0, 0.0, journal=True)
        result = MagicMock(returncode=0, stdout="entry\n", stderr="")
        with patch("subprocess.run", return_value=result):
            assert read_entry(journal) == "entry\n"
