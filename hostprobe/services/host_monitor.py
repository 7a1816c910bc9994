import platform
import socket
import time
from datetime import datetime
from typing import Optional

import psutil

from hostprobe.services.console import Display


def get_hostname() -> str:
    return socket.gethostname()


def get_fqdn() -> str:
    return socket.getfqdn() or get_hostname()


def get_kernel() -> str:
    return platform.release()


def format_uptime(seconds: int) -> str:
    """Render an uptime like `uptime -p`, e.g. 'up 2 days, 3 hours, 1 minute'."""
    minutes_total = max(seconds, 0) // 60
    days, remainder = divmod(minutes_total, 24 * 60)
    hours, minutes = divmod(remainder, 60)

    parts = []
    for amount, unit in ((days, "day"), (hours, "hour"), (minutes, "minute")):
        if amount:
            parts.append(f"{amount} {unit}{'s' if amount != 1 else ''}")
    return "up " + (", ".join(parts) if parts else "0 minutes")


def show_system_info(display: Display, now: Optional[datetime] = None) -> None:
    """
    Print hostname, kernel, uptime and boot time.

    This section is informational; it never contributes metrics or severity.
    """
    now = now or datetime.now()
    boot_time = psutil.boot_time()
    uptime_seconds = int(time.time() - boot_time)

    display.header("SYSTEM INFO")
    display.status("Hostname", get_fqdn())
    display.status("Kernel", get_kernel())
    display.status("Uptime", format_uptime(uptime_seconds))
    display.status("Boot Time", f"{datetime.fromtimestamp(boot_time):%Y-%m-%d %H:%M}")
    display.status("Current Time", f"{now:%Y-%m-%d %H:%M:%S}")
