import pytest

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services import cpu_probe
from hostprobe.services.console import NullDisplay
from hostprobe.services.cpu_probe import LoadAverage
from hostprobe.services.errors import ProbeSourceError


def _patch_cpu(monkeypatch, load_1, cores, load_5="0.50", load_15="0.40"):
    monkeypatch.setattr(
        cpu_probe,
        "_read_loadavg",
        lambda: LoadAverage(load_1, load_5, load_15, "2/345"),
    )
    monkeypatch.setattr(cpu_probe, "_cpu_cores", lambda: cores)


def test_read_loadavg_parses_kernel_format(tmp_path):
    path = tmp_path / "loadavg"
    path.write_text("0.52 0.58 0.59 2/1234 5678\n", encoding="utf-8")

    loadavg = cpu_probe._read_loadavg(path)

    assert loadavg == LoadAverage("0.52", "0.58", "0.59", "2/1234")


def test_missing_loadavg_is_fatal(tmp_path):
    with pytest.raises(ProbeSourceError):
        cpu_probe._read_loadavg(tmp_path / "missing")


def test_malformed_loadavg_is_fatal(tmp_path):
    path = tmp_path / "loadavg"
    path.write_text("garbage\n", encoding="utf-8")

    with pytest.raises(ProbeSourceError):
        cpu_probe._read_loadavg(path)


def test_load_percent_uses_exact_decimal_floor():
    # 0.29 * 100 as a float is 28.999...
    assert cpu_probe._load_percent("0.29", 1) == 29
    assert cpu_probe._load_percent("3.70", 4) == 92
    assert cpu_probe._load_percent("0.00", 8) == 0


def test_non_numeric_load_is_fatal():
    with pytest.raises(ProbeSourceError):
        cpu_probe._load_percent("n/a", 2)


@pytest.mark.parametrize(
    "load_1, cores, expected",
    [
        ("0.29", 1, Severity.OK),
        ("3.59", 4, Severity.OK),  # 89%
        ("3.60", 4, Severity.WARN),  # 90%
        ("3.99", 4, Severity.WARN),  # 99%
        ("4.00", 4, Severity.CRIT),  # 100%
        ("12.00", 2, Severity.CRIT),
    ],
)
def test_cpu_classification(monkeypatch, load_1, cores, expected):
    _patch_cpu(monkeypatch, load_1, cores)
    snapshot = ResultSnapshot()

    severity = cpu_probe.check_cpu(snapshot, Settings(cpu_threshold=90), NullDisplay())

    assert severity is expected
    assert snapshot["cpu.load"].value == load_1
    assert list(snapshot) == ["cpu.load"]


def test_cpu_section_reports_informational_figures(monkeypatch, text_display):
    display, buffer = text_display
    _patch_cpu(monkeypatch, "3.60", 4, load_5="9.00", load_15="9.50")

    cpu_probe.check_cpu(ResultSnapshot(), Settings(cpu_threshold=90), display)

    output = buffer.getvalue()
    assert "[WARN] 3.60" in output
    assert "[ OK ] 9.00" in output
    assert "[ OK ] 9.50" in output
    assert "[ OK ] 2/345" in output
    assert "[ OK ] 4" in output


def test_verbose_lists_top_processes_without_storing_them(monkeypatch, text_display):
    display, buffer = text_display
    _patch_cpu(monkeypatch, "0.10", 2)
    monkeypatch.setattr(
        cpu_probe,
        "_top_processes",
        lambda limit=5: ["   4242 root          55.0%   1.2% busyloop"],
    )
    snapshot = ResultSnapshot()

    cpu_probe.check_cpu(snapshot, Settings(verbose=True), display)

    output = buffer.getvalue()
    assert "Top 5 CPU consumers" in output
    assert "busyloop" in output
    assert list(snapshot) == ["cpu.load"]


def test_top_processes_lists_at_most_limit():
    lines = cpu_probe._top_processes(limit=3)
    assert len(lines) <= 3
    assert all(isinstance(line, str) for line in lines)


def test_verbose_skips_process_table_without_text_output(monkeypatch):
    _patch_cpu(monkeypatch, "0.10", 2)

    def fail(limit=5):
        raise AssertionError("process table walked for a silent display")

    monkeypatch.setattr(cpu_probe, "_top_processes", fail)
    snapshot = ResultSnapshot()

    assert cpu_probe.check_cpu(snapshot, Settings(verbose=True), NullDisplay()) is Severity.OK
    assert list(snapshot) == ["cpu.load"]
