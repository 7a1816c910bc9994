#!/usr/bin/env python3
"""
hostprobe command line interface.

Samples disk, memory, CPU load and service liveness, classifies each against
thresholds and prints the result as text, JSON or CSV, once or continuously.

Exit codes:
    0    all checks passed
    1    one or more warnings
    2    one or more critical alerts
    3    invalid usage, invalid configuration or unusable log file
    4    a mandatory kernel source (/proc/loadavg, memory totals) is unreadable
    130  continuous mode stopped by SIGINT
    143  continuous mode stopped by SIGTERM
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from hostprobe.config import DEFAULT_CONFIG_FILE, Settings, write_sample_config
from hostprobe.services.console import Display, NullDisplay, TextDisplay
from hostprobe.services.errors import ProbeSourceError
from hostprobe.services.scheduler import (
    EXIT_INTERRUPTED,
    EXIT_TERMINATED,
    CancelToken,
    Monitor,
)

__version__ = "1.0.0"

EXIT_USAGE = 3
EXIT_SOURCE_ERROR = 4

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with the usage error code 3 instead of 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = _ArgumentParser(
        prog="hostprobe",
        description=(
            "Monitors system health: disk usage, memory, CPU load and services.\n"
            "Flags override values from the config file and HOSTPROBE_* variables."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "exit codes: 0 all checks passed, 1 warnings, 2 critical alerts,\n"
            "            3 invalid usage, 4 unreadable kernel source,\n"
            "            130/143 continuous mode interrupted"
        ),
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s version {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Show debug/info log lines and the top CPU consumers",
    )
    parser.add_argument(
        "-n",
        "--no-color",
        dest="colorize",
        action="store_false",
        default=None,
        help="Disable coloured output",
    )
    parser.add_argument(
        "-c",
        "--continuous",
        action="store_true",
        help="Run continuously every --interval seconds until interrupted",
    )
    parser.add_argument(
        "-i",
        "--interval",
        dest="check_interval",
        type=int,
        help="Check interval in seconds for continuous mode (default: 5)",
    )
    parser.add_argument(
        "-r",
        "--report",
        action="store_true",
        help="Write a detailed report file after the run",
    )
    parser.add_argument(
        "--report-file",
        dest="report_path",
        type=Path,
        help="Path of the report file (default: report.txt)",
    )
    parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        choices=["text", "json", "csv"],
        help="Output format (default: text)",
    )
    parser.add_argument(
        "-d",
        "--disk",
        dest="disk_threshold",
        type=int,
        help="Disk usage warning threshold in percent, 0-100 (default: 80)",
    )
    parser.add_argument(
        "-m",
        "--memory",
        dest="memory_threshold",
        type=int,
        help="Memory usage warning threshold in percent, 0-100 (default: 80)",
    )
    parser.add_argument(
        "-p",
        "--cpu",
        dest="cpu_threshold",
        type=int,
        help="CPU load warning threshold in percent (default: 90)",
    )
    parser.add_argument(
        "-s",
        "--service",
        dest="services",
        action="append",
        default=[],
        metavar="NAME",
        help="Add a service to monitor (can be used multiple times)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_FILE,
        help=f"Config file to load (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--create-config",
        action="store_true",
        help="Write a sample config file to --config and exit",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Append log lines to this file",
    )
    return parser.parse_args(argv)


def resolve_settings(args: argparse.Namespace) -> Settings:
    """
    Merge config file, environment and flags into validated Settings.

    Raises pydantic.ValidationError for out-of-range or malformed values.
    """
    overrides: Dict[str, Any] = {
        "disk_threshold": args.disk_threshold,
        "memory_threshold": args.memory_threshold,
        "cpu_threshold": args.cpu_threshold,
        "check_interval": args.check_interval,
        "output_format": args.output_format,
        "verbose": args.verbose,
        "colorize": args.colorize,
        "log_file": args.log_file,
        "report_path": args.report_path,
    }
    settings = Settings.from_sources(config_file=args.config, overrides=overrides)
    if args.services:
        # -s adds to the configured services instead of replacing them
        settings = Settings(
            **{**settings.model_dump(), "services": settings.services + args.services}
        )
    return settings


def configure_logging(verbose: bool, log_file: Optional[Path] = None) -> None:
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(formatter)
    handlers: List[logging.Handler] = [console_handler]

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    level = logging.DEBUG if verbose or log_file is not None else logging.WARNING
    logging.basicConfig(level=level, handlers=handlers, force=True)


def install_signal_handlers(cancel: CancelToken) -> None:
    def _handle(signum: int, frame: Any) -> None:
        cancel.cancel(EXIT_TERMINATED if signum == signal.SIGTERM else EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.create_config:
        if write_sample_config(args.config):
            print(f"Created sample config file: {args.config}")
        else:
            print(f"Config file already exists: {args.config}")
        return 0

    try:
        settings = resolve_settings(args)
    except ValidationError as exc:
        print(f"Error: invalid configuration\n{exc}", file=sys.stderr)
        return EXIT_USAGE
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read config file {args.config}: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        configure_logging(settings.verbose, settings.log_file)
    except OSError as exc:
        print(f"Error: cannot open log file {settings.log_file}: {exc}", file=sys.stderr)
        return EXIT_USAGE
    logger.debug("Verbose mode: %s", settings.verbose)

    if settings.output_format == "text":
        display: Display = TextDisplay(colorize=settings.colorize)
    else:
        display = NullDisplay()

    cancel = CancelToken()
    install_signal_handlers(cancel)
    monitor = Monitor(settings, display=display, cancel=cancel, version=__version__)

    try:
        if args.continuous:
            return monitor.run_continuous(write_report=args.report)
        return monitor.run_once(write_report=args.report)
    except ProbeSourceError as exc:
        logger.error("%s", exc)
        return EXIT_SOURCE_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
