from hostprobe.models.metric import Severity

# Usage at or above this is critical regardless of the configured threshold
CRITICAL_PERCENT = 95
SWAP_WARNING_PERCENT = 80
CPU_CRITICAL_PERCENT = 100


def classify_percent(percent: int, threshold: int, critical: int = CRITICAL_PERCENT) -> Severity:
    """
    Two-tier classification shared by disk, memory and CPU.

    percent >= critical -> CRIT, threshold <= percent -> WARN, otherwise OK.
    """
    if percent >= critical:
        return Severity.CRIT
    if percent >= threshold:
        return Severity.WARN
    return Severity.OK
