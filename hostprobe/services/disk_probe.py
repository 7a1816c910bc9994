import logging
import re
from typing import List, NamedTuple, Optional

import psutil

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services.console import Display
from hostprobe.services.thresholds import classify_percent

logger = logging.getLogger(__name__)

_PERCENT_PATTERN = re.compile(r"[0-9]+")

_SIZE_UNITS = ("K", "M", "G", "T", "P", "E")


class FilesystemRow(NamedTuple):
    """One line of a `df -h` style listing, all fields already formatted."""

    device: str
    size: str
    used: str
    avail: str
    percent: str
    mountpoint: str


def _human_size(num_bytes: int) -> str:
    """
    Format a byte count the way `df -h` does: powers of 1024, rounded up,
    one decimal below 10 units.
    """
    if num_bytes < 1024:
        return str(num_bytes)
    divisor = 1024
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        if num_bytes < divisor * 1024 or unit == _SIZE_UNITS[-1]:
            break
        divisor *= 1024
    tenths = -(-num_bytes * 10 // divisor)
    if tenths < 100:
        return f"{tenths // 10}.{tenths % 10}{unit}"
    return f"{-(-num_bytes // divisor)}{unit}"


def _use_percent(used: int, free: int) -> str:
    """Use% as printed by df: ceil(used / (used + avail)), '-' without capacity."""
    total = used + free
    if total <= 0:
        return "-"
    return f"{-(-used * 100 // total)}%"


def _read_filesystems() -> List[FilesystemRow]:
    """
    List mounted filesystems backed by a device path (rooted at '/').

    Pseudo filesystems (tmpfs, proc, overlay, ...) have no such device and are
    left out. Mountpoints that cannot be stat'ed are skipped.
    """
    rows: List[FilesystemRow] = []
    seen = set()
    for partition in psutil.disk_partitions(all=False):
        if not partition.device.startswith("/") or partition.mountpoint in seen:
            continue
        try:
            usage = psutil.disk_usage(partition.mountpoint)
        except OSError as exc:
            logger.debug("Skipping %s: %s", partition.mountpoint, exc)
            continue
        seen.add(partition.mountpoint)
        rows.append(
            FilesystemRow(
                device=partition.device,
                size=_human_size(usage.total),
                used=_human_size(usage.used),
                avail=_human_size(usage.free),
                percent=_use_percent(usage.used, usage.free),
                mountpoint=partition.mountpoint,
            )
        )
    return rows


def _parse_percent(raw: str) -> Optional[int]:
    text = raw[:-1] if raw.endswith("%") else raw
    if not _PERCENT_PATTERN.fullmatch(text):
        return None
    return int(text)


def check_disk(
    snapshot: ResultSnapshot,
    settings: Settings,
    display: Display,
) -> Severity:
    """
    Classify every device-backed filesystem against the disk threshold.

    Emits one `disk.<mountpoint>` metric per filesystem and returns the worst
    severity found (OK if there is nothing to check).
    """
    logger.debug("Checking disk usage...")
    display.header("DISK USAGE")

    severities: List[Severity] = []
    for row in _read_filesystems():
        usage = _parse_percent(row.percent)
        if usage is None:
            logger.debug("Ignoring %s: unparsable use%% %r", row.mountpoint, row.percent)
            continue

        severity = classify_percent(usage, settings.disk_threshold)
        if severity is Severity.CRIT:
            logger.error("Critical: %s at %s usage", row.mountpoint, row.percent)
        elif severity is Severity.WARN:
            logger.warning("Warning: %s at %s usage", row.mountpoint, row.percent)

        value = f"{row.used}/{row.size} ({row.percent})"
        snapshot.add(f"disk.{row.mountpoint}", value, severity)
        display.status(row.mountpoint, value, severity)
        severities.append(severity)

    return Severity.worst(severities)
