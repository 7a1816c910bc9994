import logging
import time
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from pathlib import Path
from typing import List, NamedTuple

import psutil

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services.console import Display
from hostprobe.services.errors import ProbeSourceError
from hostprobe.services.thresholds import CPU_CRITICAL_PERCENT, classify_percent

logger = logging.getLogger(__name__)

LOADAVG_PATH = Path("/proc/loadavg")

TOP_PROCESS_COUNT = 5


class LoadAverage(NamedTuple):
    """Fields of /proc/loadavg, kept as the kernel formats them."""

    load_1: str
    load_5: str
    load_15: str
    processes: str  # "running/total"


def _read_loadavg(path: Path = LOADAVG_PATH) -> LoadAverage:
    """
    Read the load averages from the kernel.

    This source is mandatory: a missing or malformed file raises
    ProbeSourceError instead of producing a degraded metric.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProbeSourceError(f"cannot read load average from {path}: {exc}") from exc

    fields = content.split()
    if len(fields) < 4:
        raise ProbeSourceError(f"unexpected content in {path}: {content.strip()!r}")
    return LoadAverage(*fields[:4])


def _cpu_cores() -> int:
    return psutil.cpu_count(logical=True) or 1


def _load_percent(load_1: str, cores: int) -> int:
    try:
        load = Decimal(load_1)
    except InvalidOperation as exc:
        raise ProbeSourceError(f"1-minute load {load_1!r} is not a number") from exc
    return int((load * 100 / cores).to_integral_value(rounding=ROUND_FLOOR))


def _top_processes(limit: int = TOP_PROCESS_COUNT) -> List[str]:
    """
    Describe the processes with the highest lifetime CPU share, like the
    %CPU column of `ps aux`. Display only.
    """
    now = time.time()
    ranked = []
    for proc in psutil.process_iter(
        ["pid", "username", "name", "cpu_times", "create_time", "memory_percent"]
    ):
        info = proc.info
        cpu_times = info.get("cpu_times")
        created = info.get("create_time")
        if cpu_times is None or not created:
            continue
        elapsed = max(now - created, 1.0)
        share = (cpu_times.user + cpu_times.system) * 100 / elapsed
        ranked.append((share, info))

    ranked.sort(key=lambda item: item[0], reverse=True)

    lines: List[str] = []
    for share, info in ranked[:limit]:
        lines.append(
            f"{info['pid']:>7} {(info.get('username') or '?'):<12} "
            f"{share:5.1f}% {(info.get('memory_percent') or 0.0):5.1f}% "
            f"{info.get('name') or '?'}"
        )
    return lines


def check_cpu(
    snapshot: ResultSnapshot,
    settings: Settings,
    display: Display,
) -> Severity:
    """
    Classify the 1-minute load per core against the CPU threshold.

    Load >= 100% of the available cores is critical. The 5/15-minute averages
    and process counts are shown for information only.
    """
    logger.debug("Checking CPU usage...")
    display.header("CPU STATUS")

    cores = _cpu_cores()
    loadavg = _read_loadavg()
    load_percent = _load_percent(loadavg.load_1, cores)

    severity = classify_percent(load_percent, settings.cpu_threshold, critical=CPU_CRITICAL_PERCENT)
    if severity is Severity.CRIT:
        logger.error("Critical: CPU load at %s%%", load_percent)
    elif severity is Severity.WARN:
        logger.warning("Warning: CPU load at %s%%", load_percent)

    snapshot.add("cpu.load", loadavg.load_1, severity)

    display.status("CPU Cores", str(cores))
    display.status("Load Average (1m)", loadavg.load_1, severity)
    display.status("Load Average (5m)", loadavg.load_5)
    display.status("Load Average (15m)", loadavg.load_15)
    display.status("Running Processes", loadavg.processes)

    if settings.verbose and display.shows_details:
        display.notice("")
        display.notice(f"  Top {TOP_PROCESS_COUNT} CPU consumers:")
        for line in _top_processes():
            display.detail(line)

    return severity
