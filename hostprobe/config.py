import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("monitor.conf")

ENV_PREFIX = "HOSTPROBE_"

# Config file keys (KEY=VALUE) and their Settings fields; the env var for a
# field is ENV_PREFIX + key, e.g. HOSTPROBE_DISK_THRESHOLD.
CONFIG_KEYS: Dict[str, str] = {
    "DISK_THRESHOLD": "disk_threshold",
    "MEMORY_THRESHOLD": "memory_threshold",
    "CPU_THRESHOLD": "cpu_threshold",
    "CHECK_INTERVAL": "check_interval",
    "SERVICES": "services",
    "OUTPUT_FORMAT": "output_format",
    "VERBOSE": "verbose",
    "COLORIZE": "colorize",
    "LOG_FILE": "log_file",
    "REPORT_FILE": "report_path",
}

SAMPLE_CONFIG = """\
# hostprobe configuration
# Lines are KEY=VALUE; command-line flags override these values.

# Thresholds (percentages)
DISK_THRESHOLD=80
MEMORY_THRESHOLD=80
CPU_THRESHOLD=90

# Monitoring interval for continuous mode (seconds)
CHECK_INTERVAL=5

# Comma separated list of services to check
SERVICES=sshd,cron

# Display options
VERBOSE=false
COLORIZE=true
"""


class Settings(BaseModel):
    """Resolved thresholds and runtime options for one hostprobe run."""

    model_config = ConfigDict(frozen=True)

    disk_threshold: int = Field(
        default=80,
        ge=0,
        le=100,
        description="Disk usage in percent at which a filesystem is reported as WARN",
    )
    memory_threshold: int = Field(
        default=80,
        ge=0,
        le=100,
        description="RAM usage in percent at which memory is reported as WARN",
    )
    cpu_threshold: int = Field(
        default=90,
        ge=0,
        description="1-minute load per core in percent at which CPU is reported as WARN",
    )
    check_interval: int = Field(
        default=5,
        gt=0,
        description="Seconds to sleep between cycles in continuous mode",
    )
    services: List[str] = Field(
        default_factory=lambda: ["sshd", "cron"],
        description="Process or systemd unit names to check, in display order",
    )
    output_format: Literal["text", "json", "csv"] = Field(
        default="text",
        description="Renderer used at the end of each cycle",
    )
    verbose: bool = Field(
        default=False,
        description="Show debug logging and the top CPU consumers",
    )
    colorize: bool = Field(
        default=True,
        description="Colour status indicators in text mode",
    )
    log_file: Optional[Path] = Field(
        default=None,
        description="Optional file that receives a copy of all log lines",
    )
    report_path: Path = Field(
        default=Path("report.txt"),
        description="Where the text report is written when requested",
    )

    @field_validator("services", mode="before")
    @classmethod
    def _split_services(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("services")
    @classmethod
    def _unique_services(cls, value: List[str]) -> List[str]:
        # keep first occurrence, order matters for display
        return list(dict.fromkeys(value))

    @field_validator("log_file", mode="before")
    @classmethod
    def _empty_log_file(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(**_env_values())

    @classmethod
    def from_sources(
        cls,
        config_file: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "Settings":
        """
        Resolve settings from defaults, a config file, the environment and
        explicit overrides (usually command-line flags), in that order.

        Override values of None are treated as "not given".
        """
        values: Dict[str, Any] = {}
        if config_file is not None:
            values.update(load_config_file(config_file))
        values.update(_env_values())
        values.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return cls(**values)


def _env_values() -> Dict[str, str]:
    values: Dict[str, str] = {}
    for key, field in CONFIG_KEYS.items():
        raw = os.getenv(ENV_PREFIX + key)
        if raw is not None:
            values[field] = raw
    return values


def load_config_file(path: Path) -> Dict[str, str]:
    """
    Read a KEY=VALUE config file and return raw values keyed by Settings field.

    Comments (#) and blank lines are skipped, surrounding whitespace and quotes
    are stripped from values. Unknown keys are ignored. A missing file yields
    an empty dict.
    """
    path = Path(path)
    if not path.is_file():
        logger.debug("No config file found at %s, using defaults", path)
        return {}

    logger.info("Loading configuration from %s", path)
    values: Dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw = line.split("=", 1)
        key = key.strip()
        field = CONFIG_KEYS.get(key)
        if field is None:
            logger.debug("Ignoring unknown config key %s", key)
            continue
        values[field] = raw.strip().strip("\"'")
    return values


def write_sample_config(path: Path = DEFAULT_CONFIG_FILE) -> bool:
    """Write the sample config file unless one exists. Returns True if written."""
    path = Path(path)
    if path.exists():
        return False
    path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    logger.info("Created sample config file: %s", path)
    return True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    config_file = Path(os.getenv(ENV_PREFIX + "CONFIG", str(DEFAULT_CONFIG_FILE)))
    return Settings.from_sources(config_file=config_file)
