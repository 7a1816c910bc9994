import logging
import subprocess
from typing import List

import psutil

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.models.service import ServiceState
from hostprobe.services.console import Display

logger = logging.getLogger(__name__)

SYSTEMCTL_TIMEOUT_SECONDS = 5


def _process_running(name: str) -> bool:
    """True if a live process has exactly this command name (like `pgrep -x`)."""
    for proc in psutil.process_iter(["name"]):
        if proc.info.get("name") == name:
            return True
    return False


def _systemd_active(unit: str) -> bool:
    """
    Ask systemd whether a unit is active.

    A missing systemctl binary or a call that exceeds the deadline counts as
    "not active"; the service is then reported as stopped.
    """
    try:
        result = subprocess.run(
            ["systemctl", "is-active", "--quiet", unit],
            check=False,
            capture_output=True,
            text=True,
            timeout=SYSTEMCTL_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.debug("systemctl not available, cannot query unit %s", unit)
        return False
    except subprocess.TimeoutExpired:
        logger.warning("systemctl is-active %s timed out after %ss", unit, SYSTEMCTL_TIMEOUT_SECONDS)
        return False
    return result.returncode == 0


def get_service_state(name: str) -> ServiceState:
    if _process_running(name):
        logger.debug("Service %s is running", name)
        return ServiceState.RUNNING
    if _systemd_active(name):
        logger.debug("Service %s is running (via systemd)", name)
        return ServiceState.RUNNING_SYSTEMD
    logger.warning("Service %s is not running", name)
    return ServiceState.STOPPED


def check_services(
    snapshot: ResultSnapshot,
    settings: Settings,
    display: Display,
) -> Severity:
    """
    Check liveness of every configured service.

    Emits `service.<name>` per service. Returns WARN if any of them is
    stopped, OK otherwise (including when no services are configured).
    """
    logger.debug("Checking services...")
    display.header("SERVICES")

    if not settings.services:
        display.notice("  No services configured to monitor")
        return Severity.OK

    severities: List[Severity] = []
    for name in settings.services:
        state = get_service_state(name)
        snapshot.add(f"service.{name}", state.value, state.severity)
        display.status(name, state.value, state.severity)
        severities.append(state.severity)

    return Severity.worst(severities)
