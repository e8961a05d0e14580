from pathlib import Path

import pytest

from tarpipe.infra.process.errors import StageExitError
from tarpipe.schemas import (
    ArchiveResult,
    Diagnosis,
    ExitReport,
    Severity,
    StageResult,
)


def _result(name: str, code: int, message: str = "msg") -> StageResult:
    severity = Severity.OK if code == 0 else Severity.ERROR
    return StageResult(name, code, Diagnosis(severity, message))


def test_report_preserves_order_and_lookup():
    report = ExitReport([_result("tar", 0), _result("pv", 0), _result("xz", 1)])
    assert report.names == ["tar", "pv", "xz"]
    assert report.returncodes == [0, 0, 1]
    assert report[2].name == "xz"
    assert report["pv"].returncode == 0
    with pytest.raises(KeyError):
        report["7zz"]


def test_report_ok_and_failures():
    ok = ExitReport([_result("tar", 0), _result("xz", 0)])
    assert ok.ok
    assert ok.failures == []

    bad = ExitReport([_result("tar", 2, "Fatal"), _result("xz", 0)])
    assert not bad.ok
    assert [r.name for r in bad.failures] == ["tar"]


def test_report_concatenation():
    merged = ExitReport([_result("tar", 0), _result("pv", 0)]) + ExitReport(
        [_result("xz", 0)]
    )
    assert merged.names == ["tar", "pv", "xz"]


def test_raise_for_status():
    ExitReport([_result("tar", 0)]).raise_for_status()

    report = ExitReport([_result("tar", 0), _result("xz", 8, "Not enough memory")])
    with pytest.raises(StageExitError) as exc:
        report.raise_for_status()
    assert exc.value.report is report
    assert "Command xz in pipeline failed with exit code 8: Not enough memory" in str(
        exc.value
    )


def test_archive_result_sizes():
    report = ExitReport([_result("tar", 0)])
    result = ArchiveResult("archive", Path("a"), Path("a.tar.xz"), report, 1000, 250)
    assert result.ok
    assert result.size_difference == -750
    assert result.percentage == pytest.approx(-75.0)


def test_archive_result_without_sizes():
    report = ExitReport([_result("tar", 0)])
    result = ArchiveResult("archive", Path("a"), Path("a.tar.xz"), report)
    assert result.size_difference is None
    assert result.percentage is None

    empty = ArchiveResult("archive", Path("a"), Path("a.tar.xz"), report, 0, 32)
    assert empty.size_difference == 32
    assert empty.percentage is None
