from enum import Enum

from hostprobe.models.metric import Severity


class ServiceState(str, Enum):
    """Liveness of a monitored service as reported in the snapshot."""

    RUNNING = "running"
    RUNNING_SYSTEMD = "running (systemd)"
    STOPPED = "stopped"

    @property
    def severity(self) -> Severity:
        return Severity.WARN if self is ServiceState.STOPPED else Severity.OK
