from types import SimpleNamespace

import pytest

from hostprobe.config import Settings
from hostprobe.models.metric import ResultSnapshot, Severity
from hostprobe.services import disk_probe
from hostprobe.services.console import NullDisplay
from hostprobe.services.disk_probe import FilesystemRow


def _row(mountpoint: str, percent: str, used: str = "8.2G", size: str = "10G") -> FilesystemRow:
    return FilesystemRow(
        device="/dev/sda1",
        size=size,
        used=used,
        avail="1.8G",
        percent=percent,
        mountpoint=mountpoint,
    )


def _patch_rows(monkeypatch, rows):
    monkeypatch.setattr(disk_probe, "_read_filesystems", lambda: rows)


def test_disk_usage_above_threshold_warns(monkeypatch):
    _patch_rows(monkeypatch, [_row("/", "82%")])
    snapshot = ResultSnapshot()

    severity = disk_probe.check_disk(snapshot, Settings(disk_threshold=80), NullDisplay())

    assert severity is Severity.WARN
    assert snapshot["disk./"].value == "8.2G/10G (82%)"
    assert "82%" in snapshot["disk./"].value
    assert snapshot["disk./"].severity is Severity.WARN


def test_disk_usage_at_97_percent_is_critical(monkeypatch):
    _patch_rows(monkeypatch, [_row("/", "40%"), _row("/data", "97%")])
    snapshot = ResultSnapshot()

    severity = disk_probe.check_disk(snapshot, Settings(), NullDisplay())

    assert severity is Severity.CRIT
    assert snapshot["disk./"].severity is Severity.OK
    assert snapshot["disk./data"].severity is Severity.CRIT


def test_unparsable_percent_rows_are_skipped(monkeypatch):
    _patch_rows(
        monkeypatch,
        [_row("/boot", "-"), _row("/mnt/odd", "12.5%"), _row("/", "10%")],
    )
    snapshot = ResultSnapshot()

    severity = disk_probe.check_disk(snapshot, Settings(), NullDisplay())

    assert severity is Severity.OK
    assert list(snapshot) == ["disk./"]


def test_no_filesystems_is_ok(monkeypatch):
    _patch_rows(monkeypatch, [])
    snapshot = ResultSnapshot()

    assert disk_probe.check_disk(snapshot, Settings(), NullDisplay()) is Severity.OK
    assert len(snapshot) == 0


def test_disk_section_is_printed_inline(monkeypatch, text_display):
    display, buffer = text_display
    _patch_rows(monkeypatch, [_row("/", "82%")])

    disk_probe.check_disk(ResultSnapshot(), Settings(disk_threshold=80), display)

    output = buffer.getvalue()
    assert "DISK USAGE" in output
    assert "[WARN] 8.2G/10G (82%)" in output


@pytest.mark.parametrize(
    "num_bytes, expected",
    [
        (0, "0"),
        (512, "512"),
        (1024, "1.0K"),
        (1536, "1.5K"),
        (10 * 1024, "10K"),
        (20 * 1024**3, "20G"),
        (1024**3 + 1, "1.1G"),
        (3 * 1024**4, "3.0T"),
    ],
)
def test_human_size_matches_df(num_bytes, expected):
    assert disk_probe._human_size(num_bytes) == expected


def test_use_percent_rounds_up_like_df():
    assert disk_probe._use_percent(82, 18) == "82%"
    assert disk_probe._use_percent(1, 2) == "34%"
    assert disk_probe._use_percent(0, 0) == "-"


def test_read_filesystems_filters_pseudo_and_duplicate_mounts(monkeypatch):
    partitions = [
        SimpleNamespace(device="/dev/sda1", mountpoint="/"),
        SimpleNamespace(device="tmpfs", mountpoint="/run"),
        SimpleNamespace(device="/dev/sda1", mountpoint="/"),
        SimpleNamespace(device="/dev/sdb1", mountpoint="/gone"),
        SimpleNamespace(device="/dev/sdc1", mountpoint="/data"),
    ]

    def fake_disk_usage(path):
        if path == "/gone":
            raise PermissionError("permission denied")
        return SimpleNamespace(total=100 * 1024**3, used=82 * 1024**3, free=18 * 1024**3)

    monkeypatch.setattr(disk_probe.psutil, "disk_partitions", lambda all=False: partitions)
    monkeypatch.setattr(disk_probe.psutil, "disk_usage", fake_disk_usage)

    rows = disk_probe._read_filesystems()

    assert [row.mountpoint for row in rows] == ["/", "/data"]
    assert rows[0].size == "100G"
    assert rows[0].used == "82G"
    assert rows[0].percent == "82%"
