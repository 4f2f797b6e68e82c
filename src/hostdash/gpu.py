"""Best-effort GPU detection from Linux sysfs."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

PCI_VENDORS = {
    "0x10de": "NVIDIA",
    "0x1002": "AMD",
    "0x1022": "AMD",
    "0x8086": "Intel",
}

# Primary DRM nodes only: card0, card1 (not card0-DP-1, renderD128)
_CARD_RE = re.compile(r"^card\d+$")
_TEMP_LABEL_HINTS = ("edge", "gpu", "junction", "hotspot")


@dataclass
class GpuInfo:
    vendor: str
    driver: str
    pci_addr: str
    model: str
    temp_c: float | None = None


def _read(path: str) -> str:
    try:
        with open(path) as f:
            return f.read().strip()
    except OSError:
        return ""


def _nvidia_model(proc_root: str) -> str:
    gpus_dir = os.path.join(proc_root, "driver", "nvidia", "gpus")
    try:
        names = sorted(os.listdir(gpus_dir))
    except OSError:
        return ""
    for name in names:
        for line in _read(os.path.join(gpus_dir, name, "information")).splitlines():
            if line.startswith("Model:"):
                return line[len("Model:") :].strip()
    return ""


def read_gpu_temp(device_dir: str) -> float | None:
    """Hottest GPU-labelled hwmon sensor, else the hottest sensor at all."""
    hwmon_root = os.path.join(device_dir, "hwmon")
    try:
        hwmons = os.listdir(hwmon_root)
    except OSError:
        return None
    temps: list[tuple[str, float]] = []
    for hwmon in hwmons:
        hpath = os.path.join(hwmon_root, hwmon)
        try:
            files = os.listdir(hpath)
        except OSError:
            continue
        for fname in files:
            if not (fname.startswith("temp") and fname.endswith("_input")):
                continue
            try:
                value = float(_read(os.path.join(hpath, fname)))
            except ValueError:
                continue
            if value > 200.0:  # millidegrees
                value /= 1000.0
            label = _read(os.path.join(hpath, fname.replace("_input", "_label")))
            temps.append((label.lower(), value))
    if not temps:
        return None
    preferred = [v for label, v in temps if any(h in label for h in _TEMP_LABEL_HINTS)]
    return max(preferred or [v for _, v in temps])


def detect_gpus(sys_root: str = "/sys", proc_root: str = "/proc") -> list[GpuInfo]:
    drm = os.path.join(sys_root, "class", "drm")
    try:
        cards = sorted(n for n in os.listdir(drm) if _CARD_RE.match(n))
    except OSError:
        return []

    gpus: list[GpuInfo] = []
    for card in cards:
        dev_dir = os.path.join(drm, card, "device")
        vendor_id = _read(os.path.join(dev_dir, "vendor")).lower()
        device_id = _read(os.path.join(dev_dir, "device"))
        vendor = PCI_VENDORS.get(vendor_id, vendor_id or "unknown")
        driver_link = os.path.join(dev_dir, "driver")
        driver = (
            os.path.basename(os.readlink(driver_link))
            if os.path.islink(driver_link)
            else "unknown"
        )
        model = _nvidia_model(proc_root) if vendor == "NVIDIA" else ""
        gpus.append(
            GpuInfo(
                vendor=vendor,
                driver=driver,
                pci_addr=os.path.basename(os.path.realpath(dev_dir)),
                model=model or f"{vendor} GPU ({device_id})",
                temp_c=read_gpu_temp(dev_dir),
            )
        )
    logger.debug("Detected %d GPU(s)", len(gpus))
    return gpus
