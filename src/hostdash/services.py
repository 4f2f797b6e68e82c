"""systemd service listing for the Services tab.

Thin synchronous wrappers over ``systemctl``. Everything degrades to an
empty listing or an explanatory message when systemd is not there.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SYSTEMCTL_TIMEOUT = 10.0
LIST_ARGS = ["list-units", "--type=service", "--all", "--no-legend", "--no-pager"]

# Marker systemctl puts in front of failed or not-found units
_STATE_MARKERS = ("●", "*", "×")


@dataclass
class ServiceUnit:
    unit: str
    load: str
    active: str
    sub: str
    description: str = ""


def parse_unit_list(output: str) -> list[ServiceUnit]:
    """Parse ``systemctl list-units --no-legend`` output, sorted by unit.

    Columns are UNIT LOAD ACTIVE SUB DESCRIPTION; the description keeps its
    inner spacing collapsed to single spaces. Short lines are skipped.
    """
    units: list[ServiceUnit] = []
    for line in output.splitlines():
        tokens = line.split()
        if tokens and tokens[0] in _STATE_MARKERS:
            tokens = tokens[1:]
        if len(tokens) < 4:
            continue
        units.append(
            ServiceUnit(
                unit=tokens[0],
                load=tokens[1],
                active=tokens[2],
                sub=tokens[3],
                description=" ".join(tokens[4:]),
            )
        )
    units.sort(key=lambda u: u.unit)
    return units


def _systemctl(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["systemctl", *args],
        capture_output=True,
        text=True,
        errors="replace",
        timeout=SYSTEMCTL_TIMEOUT,
    )


def list_services() -> list[ServiceUnit]:
    """All service units known to systemd; empty off Linux or on failure."""
    if not sys.platform.startswith("linux"):
        return []
    try:
        result = _systemctl(*LIST_ARGS)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("systemctl list-units failed: %s", e)
        return []
    if result.returncode != 0:
        logger.debug("systemctl list-units exited %d: %s", result.returncode, result.stderr.strip())
        return []
    return parse_unit_list(result.stdout)


def service_status(unit: str) -> str:
    """Text of ``systemctl status <unit>`` for the details popup.

    ``systemctl status`` exits non-zero for inactive units, so its output
    is shown whatever the exit code, with stderr appended.
    """
    if not sys.platform.startswith("linux"):
        return "Service details are supported on Linux only."
    try:
        result = _systemctl("status", unit, "--no-pager", "--full")
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("systemctl status %s failed: %s", unit, e)
        return "systemctl not available or failed to execute."
    if result.returncode == 0:
        return result.stdout
    parts = [p.rstrip("\n") for p in (result.stdout, result.stderr) if p.strip()]
    return "\n".join(parts) or "(no output)"
