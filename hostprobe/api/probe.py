from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from hostprobe.config import get_settings
from hostprobe.models.record import ProbeStatus
from hostprobe.services import host_monitor
from hostprobe.services.errors import ProbeSourceError
from hostprobe.services.renderers import build_record, iso_timestamp, render_csv
from hostprobe.services.scheduler import CycleResult, Monitor

router = APIRouter()


def _run_cycle() -> CycleResult:
    try:
        return Monitor(get_settings()).run_cycle()
    except ProbeSourceError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("/status", response_model=ProbeStatus, summary="Probe status")
def probe_status() -> ProbeStatus:
    """
    Run one probe cycle and return its snapshot plus the overall severity.

    Thresholds and services come from get_settings() (config file and
    HOSTPROBE_* variables). An unreadable mandatory kernel source maps to
    HTTP 503.
    """
    result = _run_cycle()
    record = build_record(result.snapshot, iso_timestamp(), host_monitor.get_hostname())
    return ProbeStatus(
        **record.model_dump(),
        severity=result.severity.name,
        exit_code=int(result.severity),
    )


@router.get("/status.csv", response_class=PlainTextResponse, summary="Probe status as CSV")
def probe_status_csv() -> PlainTextResponse:
    """Run one probe cycle and return it as timestamp,metric,value rows."""
    result = _run_cycle()
    return PlainTextResponse(render_csv(result.snapshot, iso_timestamp()) + "\n", media_type="text/csv")
