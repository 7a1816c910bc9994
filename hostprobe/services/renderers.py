import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot
from hostprobe.models.record import SnapshotRecord

logger = logging.getLogger(__name__)

CSV_HEADER = "timestamp,metric,value"

_REPORT_RULE = "═" * 67
_REPORT_SUBRULE = "─" * 67


def iso_timestamp(now: Optional[datetime] = None) -> str:
    """Local time with UTC offset at seconds precision, like `date -Iseconds`."""
    now = now or datetime.now()
    return now.astimezone().isoformat(timespec="seconds")


def _require_frozen(snapshot: ResultSnapshot) -> None:
    if not snapshot.frozen:
        raise ValueError("snapshot must be frozen before it is rendered")


def build_record(snapshot: ResultSnapshot, timestamp: str, hostname: str) -> SnapshotRecord:
    _require_frozen(snapshot)
    return SnapshotRecord(timestamp=timestamp, hostname=hostname, results=snapshot.as_dict())


def render_json(snapshot: ResultSnapshot, timestamp: str, hostname: str) -> str:
    """Render the snapshot as {timestamp, hostname, results}. All values are strings."""
    return build_record(snapshot, timestamp, hostname).model_dump_json(indent=2)


def render_csv(snapshot: ResultSnapshot, timestamp: str) -> str:
    """
    Render the snapshot as `timestamp,metric,value` rows.

    Values are written unquoted; metric values never contain commas.
    """
    _require_frozen(snapshot)
    lines = [CSV_HEADER]
    lines.extend(f"{timestamp},{key},{value}" for key, value in snapshot.items())
    return "\n".join(lines)


def render_report(
    snapshot: ResultSnapshot,
    settings: Settings,
    hostname: str,
    kernel: str,
    generated: Optional[datetime] = None,
) -> str:
    """Fixed-layout text report: host, kernel, thresholds and every metric."""
    _require_frozen(snapshot)
    generated = generated or datetime.now()

    lines: List[str] = [
        _REPORT_RULE,
        "              SYSTEM HEALTH REPORT",
        f"              Generated: {generated:%a %b %d %H:%M:%S %Y}",
        _REPORT_RULE,
        "",
        f"HOSTNAME: {hostname}",
        f"KERNEL:   {kernel}",
        "",
        "THRESHOLDS:",
        f"  Disk:   {settings.disk_threshold}%",
        f"  Memory: {settings.memory_threshold}%",
        f"  CPU:    {settings.cpu_threshold}%",
        "",
        _REPORT_SUBRULE,
        "CHECK RESULTS:",
        _REPORT_SUBRULE,
    ]
    lines.extend(f"  {key + ':':<30} {value}" for key, value in snapshot.items())
    lines.extend(
        [
            "",
            _REPORT_RULE,
            "                    END OF REPORT",
            _REPORT_RULE,
        ]
    )
    return "\n".join(lines) + "\n"


def write_report(
    path: Path,
    snapshot: ResultSnapshot,
    settings: Settings,
    hostname: str,
    kernel: str,
) -> Path:
    path = Path(path)
    logger.info("Generating report: %s", path)
    path.write_text(render_report(snapshot, settings, hostname, kernel), encoding="utf-8")
    return path
