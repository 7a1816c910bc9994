import logging
from decimal import ROUND_DOWN, Decimal
from typing import Dict

import psutil

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services.console import Display
from hostprobe.services.errors import ProbeSourceError
from hostprobe.services.thresholds import SWAP_WARNING_PERCENT, classify_percent

logger = logging.getLogger(__name__)

_ONE_DECIMAL = Decimal("0.1")
_TWO_DECIMALS = Decimal("0.01")


def _read_meminfo() -> Dict[str, int]:
    """
    Read memory and swap figures in kilobytes, named like /proc/meminfo.

    Keys: MemTotal, MemAvailable, MemFree, Buffers, Cached, SwapTotal, SwapFree.
    """
    vm = psutil.virtual_memory()
    swap = psutil.swap_memory()
    return {
        "MemTotal": vm.total // 1024,
        "MemAvailable": vm.available // 1024,
        "MemFree": vm.free // 1024,
        "Buffers": getattr(vm, "buffers", 0) // 1024,
        "Cached": getattr(vm, "cached", 0) // 1024,
        "SwapTotal": swap.total // 1024,
        "SwapFree": swap.free // 1024,
    }


def _percent(part: int, whole: int) -> Decimal:
    """part * 100 / whole truncated to one decimal place."""
    return (Decimal(part) * 100 / Decimal(whole)).quantize(_ONE_DECIMAL, rounding=ROUND_DOWN)


def _kb_to_gb(kilobytes: int) -> Decimal:
    return (Decimal(kilobytes) / 1024 / 1024).quantize(_TWO_DECIMALS, rounding=ROUND_DOWN)


def check_memory(
    snapshot: ResultSnapshot,
    settings: Settings,
    display: Display,
) -> Severity:
    """
    Classify RAM usage against the memory threshold and swap against a fixed
    80% warning level. Returns the worse of the two.
    """
    logger.debug("Checking memory usage...")
    display.header("MEMORY USAGE")

    info = _read_meminfo()
    mem_total = info.get("MemTotal", 0)
    if mem_total <= 0:
        raise ProbeSourceError("memory information reports a total of 0 kB")

    mem_used = mem_total - info.get("MemAvailable", 0)
    mem_percent = _percent(mem_used, mem_total)
    # classification uses the integer part only
    memory_severity = classify_percent(int(mem_percent), settings.memory_threshold)
    if memory_severity is Severity.CRIT:
        logger.error("Critical: Memory at %s%%", mem_percent)
    elif memory_severity is Severity.WARN:
        logger.warning("Warning: Memory at %s%%", mem_percent)

    snapshot.add("memory.percent", f"{mem_percent}%", memory_severity)
    display.status(
        "RAM Usage",
        f"{_kb_to_gb(mem_used)}GB / {_kb_to_gb(mem_total)}GB ({mem_percent}%)",
        memory_severity,
    )

    swap_total = info.get("SwapTotal", 0)
    if swap_total > 0:
        swap_percent = (swap_total - info.get("SwapFree", 0)) * 100 // swap_total
        swap_severity = Severity.WARN if swap_percent >= SWAP_WARNING_PERCENT else Severity.OK
        if swap_severity is Severity.WARN:
            logger.warning("Warning: Swap at %s%%", swap_percent)
        snapshot.add("swap.percent", f"{swap_percent}%", swap_severity)
        display.status("Swap Usage", f"{swap_percent}%", swap_severity)
    else:
        swap_severity = Severity.OK
        snapshot.add("swap.status", "not configured", swap_severity)
        display.status("Swap", "Not configured", swap_severity)

    return max(memory_severity, swap_severity)
