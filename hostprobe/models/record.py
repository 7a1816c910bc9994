from typing import Dict

from pydantic import BaseModel, Field


class SnapshotRecord(BaseModel):
    """Machine-readable view of one completed probe cycle."""

    timestamp: str = Field(
        ...,
        description="ISO-8601 time the record was rendered, e.g. 2024-05-01T12:00:00+02:00",
    )
    hostname: str = Field(..., description="System hostname")
    results: Dict[str, str] = Field(
        default_factory=dict,
        description="Metric key to formatted value, e.g. {'disk./': '12G/50G (24%)'}",
    )


class ProbeStatus(SnapshotRecord):
    """SnapshotRecord plus the aggregated cycle severity, served by the HTTP view."""

    severity: str = Field(
        ...,
        description="Overall cycle severity: OK, WARN or CRIT",
    )
    exit_code: int = Field(
        ...,
        ge=0,
        le=2,
        description="Exit code a single-shot CLI run would have returned",
    )
