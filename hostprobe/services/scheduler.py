"""
Cycle scheduler: runs the probes in a fixed order, aggregates their
severities and hands the finished snapshot to exactly one renderer.

Single-shot mode returns the cycle severity as exit code. Continuous mode
repeats until the CancelToken fires and then returns the cancellation code
(130 for SIGINT, 143 for SIGTERM), never the last severity.
"""

import logging
import sys
import threading
from datetime import datetime
from typing import Dict, NamedTuple, Optional, TextIO

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services import host_monitor
from hostprobe.services.console import Display, NullDisplay
from hostprobe.services.cpu_probe import check_cpu
from hostprobe.services.disk_probe import check_disk
from hostprobe.services.memory_probe import check_memory
from hostprobe.services.renderers import iso_timestamp, render_csv, render_json, write_report
from hostprobe.services.service_probe import check_services

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130
EXIT_TERMINATED = 143


class CancelToken:
    """Cancellation request shared between signal handlers and the scheduler."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._exit_code = EXIT_INTERRUPTED

    def cancel(self, exit_code: int = EXIT_INTERRUPTED) -> None:
        # first request wins
        if not self._event.is_set():
            self._exit_code = exit_code
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def exit_code(self) -> int:
        return self._exit_code

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; returns True as soon as cancelled."""
        return self._event.wait(timeout)


class CycleCancelled(Exception):
    def __init__(self, exit_code: int) -> None:
        super().__init__(f"cycle cancelled (exit code {exit_code})")
        self.exit_code = exit_code


class CycleResult(NamedTuple):
    severity: Severity
    snapshot: ResultSnapshot
    probe_severities: Dict[str, Severity]


class Monitor:
    def __init__(
        self,
        settings: Settings,
        display: Optional[Display] = None,
        cancel: Optional[CancelToken] = None,
        out: Optional[TextIO] = None,
        version: str = "",
    ) -> None:
        self.settings = settings
        self.display = display or NullDisplay()
        self.cancel = cancel or CancelToken()
        self.out = out
        self.version = version

    def _check_cancelled(self) -> None:
        if self.cancel.cancelled:
            raise CycleCancelled(self.cancel.exit_code)

    def run_cycle(self) -> CycleResult:
        """
        Run system info and the four probes in order disk, memory, cpu,
        services. The overall severity is the maximum of the per-probe
        severities; the snapshot is frozen before it is returned.

        Raises CycleCancelled if cancellation is requested between probes.
        """
        probes = (
            ("disk", check_disk),
            ("memory", check_memory),
            ("cpu", check_cpu),
            ("services", check_services),
        )

        snapshot = ResultSnapshot()
        probe_severities: Dict[str, Severity] = {}

        self._check_cancelled()
        host_monitor.show_system_info(self.display)

        for name, probe in probes:
            self._check_cancelled()
            probe_severities[name] = probe(snapshot, self.settings, self.display)
            logger.debug("Probe %s finished: %s", name, probe_severities[name].name)

        severity = Severity.worst(probe_severities.values())
        return CycleResult(severity, snapshot.freeze(), probe_severities)

    def _write(self, text: str) -> None:
        print(text, file=self.out or sys.stdout, flush=True)

    def emit(self, result: CycleResult) -> None:
        """Run the renderer selected by output_format on a finished cycle."""
        fmt = self.settings.output_format
        if fmt == "json":
            self._write(render_json(result.snapshot, iso_timestamp(), host_monitor.get_hostname()))
        elif fmt == "csv":
            self._write(render_csv(result.snapshot, iso_timestamp()))
        else:
            # text output was printed by the probes while they ran
            self.display.summary(result.severity)

    def _write_report(self, snapshot: ResultSnapshot) -> None:
        # a failed report write never replaces the severity or cancellation code
        try:
            path = write_report(
                self.settings.report_path,
                snapshot,
                self.settings,
                host_monitor.get_hostname(),
                host_monitor.get_kernel(),
            )
        except OSError as exc:
            logger.error("Cannot write report to %s: %s", self.settings.report_path, exc)
            return
        self.display.notice(f"Report saved to: {path}")

    def _announce_cancel(self) -> None:
        if self.cancel.exit_code == EXIT_TERMINATED:
            message = "Received termination signal. Exiting..."
        else:
            message = "Interrupted by user. Exiting..."
        logger.info(message)
        self.display.notice(message)

    def _start(self) -> None:
        logger.info("=== System Monitor Started ===")
        logger.debug("Output format: %s", self.settings.output_format)
        self.display.banner(self.version, datetime.now())

    def run_once(self, write_report: bool = False) -> int:
        """Run a single cycle and return its severity as exit code."""
        self._start()
        try:
            result = self.run_cycle()
        except CycleCancelled as exc:
            self._announce_cancel()
            return exc.exit_code

        self.emit(result)
        if write_report:
            self._write_report(result.snapshot)

        logger.info("=== System Monitor Completed (exit: %d) ===", int(result.severity))
        return int(result.severity)

    def run_continuous(self, write_report: bool = False) -> int:
        """
        Repeat cycles every check_interval seconds until cancelled.

        The sleep between cycles returns as soon as the token is cancelled.
        A requested report is written from the last completed cycle before
        returning the cancellation exit code.
        """
        self._start()
        interval = self.settings.check_interval
        logger.info("Starting continuous monitoring (interval: %ss)", interval)
        self.display.notice("Continuous mode - Press Ctrl+C to stop")

        last: Optional[CycleResult] = None
        iteration = 0
        while True:
            iteration += 1
            self.display.iteration(iteration, datetime.now())
            try:
                last = self.run_cycle()
            except CycleCancelled:
                break
            self.emit(last)
            if self.cancel.wait(interval):
                break
            self.display.clear()

        if write_report and last is not None:
            self._write_report(last.snapshot)
        self._announce_cancel()
        return self.cancel.exit_code
