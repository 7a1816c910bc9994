from fastapi.testclient import TestClient

from hostprobe.api import probe
from hostprobe.config import Settings
from hostprobe.main import app
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services.errors import ProbeSourceError
from hostprobe.services.scheduler import CycleResult

client = TestClient(app)


def _fake_cycle() -> CycleResult:
    snapshot = ResultSnapshot()
    snapshot.add("disk./", "8.2G/10G (82%)", Severity.WARN)
    snapshot.add("memory.percent", "75.0%")
    snapshot.add("cpu.load", "0.52")
    return CycleResult(
        severity=Severity.WARN,
        snapshot=snapshot.freeze(),
        probe_severities={"disk": Severity.WARN, "memory": Severity.OK},
    )


def test_probe_status_endpoint_structure(monkeypatch):
    monkeypatch.setattr(probe, "_run_cycle", _fake_cycle)

    response = client.get("/probe/status")
    assert response.status_code == 200

    data = response.json()
    assert set(data) == {"timestamp", "hostname", "results", "severity", "exit_code"}
    assert data["severity"] == "WARN"
    assert data["exit_code"] == 1
    assert data["results"] == {
        "disk./": "8.2G/10G (82%)",
        "memory.percent": "75.0%",
        "cpu.load": "0.52",
    }
    assert data["hostname"].strip() != ""


def test_probe_status_csv_endpoint(monkeypatch):
    monkeypatch.setattr(probe, "_run_cycle", _fake_cycle)

    response = client.get("/probe/status.csv")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")

    lines = response.text.splitlines()
    assert lines[0] == "timestamp,metric,value"
    assert lines[1].endswith(",disk./,8.2G/10G (82%)")
    assert len(lines) == 4


def test_probe_status_source_error_maps_to_503(monkeypatch):
    """
    If a mandatory kernel source cannot be read, the endpoint answers 503
    and carries the error message in `detail`.
    """

    class BrokenMonitor:
        def __init__(self, settings):
            pass

        def run_cycle(self):
            raise ProbeSourceError("cannot read load average from /proc/loadavg")

    monkeypatch.setattr(probe, "Monitor", BrokenMonitor)
    monkeypatch.setattr(probe, "get_settings", lambda: Settings(services=[]))

    response = client.get("/probe/status")

    assert response.status_code == 503
    assert "cannot read load average" in response.json()["detail"]


def test_probe_status_against_live_host(monkeypatch):
    monkeypatch.setattr(probe, "get_settings", lambda: Settings(services=[]))

    response = client.get("/probe/status")
    assert response.status_code == 200

    data = response.json()
    assert "memory.percent" in data["results"]
    assert "cpu.load" in data["results"]
    assert data["results"]["memory.percent"].endswith("%")
    assert data["severity"] in {"OK", "WARN", "CRIT"}
    assert data["exit_code"] in {0, 1, 2}
    assert all(isinstance(value, str) for value in data["results"].values())
