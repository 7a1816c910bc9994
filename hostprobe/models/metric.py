from enum import IntEnum
from typing import Dict, Iterable, Iterator, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Severity(IntEnum):
    """Ordered health classification. The value doubles as the exit code."""

    OK = 0
    WARN = 1
    CRIT = 2

    @property
    def label(self) -> str:
        # Padded to the width of WARN/CRIT so status columns line up
        return " OK " if self is Severity.OK else self.name

    @classmethod
    def worst(cls, severities: Iterable["Severity"]) -> "Severity":
        return max(severities, default=cls.OK)


class Metric(BaseModel):
    """A single named observation stored in a cycle snapshot."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(
        ...,
        min_length=1,
        description="Dotted metric identifier, e.g. disk./ or service.sshd",
    )
    value: str = Field(
        ...,
        description="Formatted value, kept as a string in every output format",
    )
    severity: Severity = Field(
        Severity.OK,
        description="Classification of this single metric",
    )


class DuplicateMetricError(ValueError):
    """Raised when a second probe tries to write a key already present."""


class SnapshotFrozenError(RuntimeError):
    """Raised when a metric is added after the write phase closed."""


class ResultSnapshot:
    """
    Metrics of one probe cycle, keyed by metric key.

    Probes write into the snapshot while the cycle runs; once the scheduler
    calls freeze() the snapshot is read-only and may be handed to a renderer.
    Keys are write-once: a collision is reported, never silently overwritten.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, Metric] = {}
        self._frozen = False

    def add(self, key: str, value: str, severity: Severity = Severity.OK) -> Metric:
        if self._frozen:
            raise SnapshotFrozenError(f"snapshot is frozen, cannot add {key!r}")
        if key in self._metrics:
            raise DuplicateMetricError(f"metric {key!r} was already recorded in this cycle")
        metric = Metric(key=key, value=value, severity=severity)
        self._metrics[key] = metric
        return metric

    def freeze(self) -> "ResultSnapshot":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def metrics(self) -> List[Metric]:
        return list(self._metrics.values())

    def items(self) -> List[Tuple[str, str]]:
        return [(key, metric.value) for key, metric in self._metrics.items()]

    def as_dict(self) -> Dict[str, str]:
        return dict(self.items())

    def __getitem__(self, key: str) -> Metric:
        return self._metrics[key]

    def __contains__(self, key: object) -> bool:
        return key in self._metrics

    def __iter__(self) -> Iterator[str]:
        return iter(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"<ResultSnapshot {state} metrics={len(self._metrics)}>"
