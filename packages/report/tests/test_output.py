"""Tests for report file naming, writing and cleanup."""

from datetime import datetime, timezone

from relscope_core.assembler import assemble_build_report
from relscope_core.builds import extract_build_info
from relscope_core.models import CoverageSummary, HealthCheckReport, TestSummary
from relscope_report.output import cleanup_reports, list_reports, report_basename, write_report_files

NOW = datetime(2025, 1, 2, 10, 30, 0, tzinfo=timezone.utc)


def _report():
    build = extract_build_info({"id": 900, "buildNumber": "20250101.1", "result": "succeeded"})
    return assemble_build_report(build, HealthCheckReport(), TestSummary(), CoverageSummary(), [])


def test_basename_uses_utc_timestamp():
    assert report_basename("build", "20250101.1", NOW) == "build-report-20250101.1-2025-01-02T10-30-00"


def test_basename_sanitises_identifier():
    assert report_basename("uat-release", "CSP Release/42", NOW) == "uat-release-report-CSP_Release_42-2025-01-02T10-30-00"


def test_write_creates_json_and_markdown(tmp_path):
    output_dir = tmp_path / "out" / "nested"
    json_path, md_path = write_report_files(_report(), output_dir, "20250101.1", now=NOW)

    assert json_path.name == "build-report-20250101.1-2025-01-02T10-30-00.json"
    assert md_path.name == "build-report-20250101.1-2025-01-02T10-30-00.md"
    assert json_path.read_text(encoding="utf-8").startswith("{")
    assert md_path.read_text(encoding="utf-8").startswith("# Build Report")


def test_list_and_cleanup_leave_other_files(tmp_path):
    write_report_files(_report(), tmp_path, "20250101.1", now=NOW)
    keep = tmp_path / "notes.md"
    keep.write_text("mine")

    assert len(list_reports(tmp_path)) == 2
    removed = cleanup_reports(tmp_path)

    assert len(removed) == 2
    assert keep.exists()
    assert list_reports(tmp_path) == []


def test_list_missing_directory(tmp_path):
    assert list_reports(tmp_path / "absent") == []
