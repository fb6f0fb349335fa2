"""Tests for the JSON and Markdown report writers."""

import json

import pytest

from relscope_core.assembler import assemble_build_report, assemble_production_report, assemble_uat_report
from relscope_core.builds import extract_build_info
from relscope_core.models import (
    PRE_DEPLOY,
    ApprovalRecord,
    BuildArtifact,
    CoverageSummary,
    EnvironmentRecord,
    HealthCheckReport,
    ReleaseRecord,
    TestSummary,
)
from relscope_report import markdown
from relscope_report.json_writer import JsonWriter
from relscope_report.markdown import (
    MarkdownWriter,
    artifacts_section,
    fill_placeholders,
    load_template,
    quality_assessment_section,
)

GENERATED_AT = "2025-01-05T12:00:00+00:00"


def _build(result="succeeded"):
    return extract_build_info(
        {
            "id": 900,
            "buildNumber": "20250101.1",
            "status": "completed",
            "result": result,
            "sourceBranch": "refs/heads/release/v2.2.0",
            "requestedFor": {"displayName": "Ada Lovelace"},
            "startTime": "2025-01-01T00:00:00Z",
            "finishTime": "2025-01-01T00:01:05Z",
        },
        "https://dev.azure.com/org/proj/_build/results?buildId=900",
    )


def _release():
    return ReleaseRecord(
        id="501",
        name="CSP-Release-42",
        status="active",
        created_on="2025-01-02T09:00:00Z",
        created_by="Grace Hopper",
        modified_on="N/A",
        modified_by="Unknown",
        description="",
        definition_name="CSP-Release",
        build_number="20250101.1",
        target_branch="main",
        release_url="https://dev.azure.com/org/proj/_release?releaseId=501",
    )


def _build_report(health=None, testing=None, coverage=None, artifacts=(), result="succeeded"):
    return assemble_build_report(
        _build(result),
        health or HealthCheckReport(lint="✅ No linting errors", build_outcome="✅ Build completed successfully"),
        testing or TestSummary(),
        coverage or CoverageSummary(),
        artifacts,
        generated_at=GENERATED_AT,
    )


def _production_report():
    environments = [
        EnvironmentRecord("4", "MY.FWC", "succeeded", 4, "2025-01-03T09:00:00Z", "2025-01-03T09:30:00Z", "N/A")
    ]
    approvals = [
        ApprovalRecord(
            "11", "Release Manager", "approved", "2025-01-03T08:55:00Z", "2025-01-03T08:55:00Z", "", "MY.FWC", PRE_DEPLOY
        )
    ]
    return assemble_production_report(
        _release(),
        _build(),
        HealthCheckReport(),
        TestSummary(),
        CoverageSummary(),
        [],
        environments,
        approvals,
        generated_at=GENERATED_AT,
    )


class TestJsonWriter:
    def test_kind_and_nested_fields(self):
        data = json.loads(JsonWriter().render(_build_report()))
        assert data["kind"] == "build"
        assert data["build"]["number"] == "20250101.1"
        assert data["health_check"]["lint"] == "✅ No linting errors"
        assert data["generated_at"] == GENERATED_AT

    def test_emoji_kept_verbatim(self):
        assert "✅" in JsonWriter().render(_build_report())

    def test_release_report(self):
        data = json.loads(JsonWriter().render(_production_report()))
        assert data["kind"] == "prod-release"
        assert data["version"] == "v2.2.0"
        assert data["environment_sections"][3]["heading"] == "MY.FWC (Production)"

    def test_write(self, tmp_path):
        path = JsonWriter().write(_build_report(), tmp_path / "r.json")
        assert json.loads(path.read_text(encoding="utf-8"))["kind"] == "build"


class TestPlaceholders:
    def test_fill_replaces_every_occurrence(self):
        assert fill_placeholders("{{A}} and {{A}}", {"A": "x"}) == "x and x"

    def test_empty_values_render_na(self):
        assert fill_placeholders("{{A}}|{{B}}", {"A": None, "B": ""}) == "N/A|N/A"

    def test_unknown_keys_left_alone(self):
        assert fill_placeholders("{{MISSING}}", {}) == "{{MISSING}}"

    def test_placeholder_inside_value_kept_literally(self):
        values = {"A": "see {{B}}", "B": "expanded"}
        assert fill_placeholders("{{A}} / {{B}}", values) == "see {{B}} / expanded"

    def test_missing_template(self):
        with pytest.raises(FileNotFoundError):
            load_template("nightly")


class TestSections:
    def test_no_tests(self):
        assert markdown.testing_section(TestSummary(), CoverageSummary()) == "- No test results available in this build"

    def test_tests_and_coverage(self):
        text = markdown.testing_section(
            TestSummary("Test Files  2 passed | 0 skipped", "Tests  9 passed | 1 skipped", "Duration  3.1s"),
            CoverageSummary(statements="46.35% ( 17478/37706 )"),
        )
        assert "**Tests:** Tests  9 passed | 1 skipped" in text
        assert "**Statements:** 46.35% ( 17478/37706 )" in text
        assert "**Lines:** N/A" in text

    def test_artifacts(self):
        assert artifacts_section(()) == "- No artifacts found"
        text = artifacts_section((BuildArtifact("drop", "Container", "5.1 MB"), BuildArtifact("logs", "Container")))
        assert text.splitlines() == ["- **drop** (Container) - 5.1 MB", "- **logs** (Container)"]

    def test_ready_for_deployment(self):
        text = quality_assessment_section(HealthCheckReport(lint="✅ No linting errors"), _build())
        assert "- Linting: ✅ No linting errors" in text
        assert text.endswith("**Overall Status:** ✅ Ready for Deployment")

    def test_failed_check_requires_review(self):
        health = HealthCheckReport(type_check="❌ 3 TypeScript errors found", lint="⚠️ 1 errors, 0 warnings")
        text = quality_assessment_section(health, _build())
        assert "### ⚠️ Warnings" in text
        assert "### ❌ Failed Checks" in text
        assert "- None" in text
        assert text.endswith("⚠️ Review Required")

    def test_failed_build_requires_review(self):
        text = quality_assessment_section(HealthCheckReport(), _build(result="failed"))
        assert text.endswith("⚠️ Review Required")


class TestMarkdownWriter:
    def test_build_report_has_no_unfilled_placeholders(self):
        text = MarkdownWriter().render(_build_report())
        assert text.startswith("# Build Report: 20250101.1")
        assert "{{" not in text
        assert "- **Linting (ESLint):** ✅ No linting errors" in text
        assert "- **Pull Request:** N/A" in text

    def test_trigger_message_rendered_verbatim(self):
        build = extract_build_info(
            {
                "id": 901,
                "buildNumber": "20250101.2",
                "result": "succeeded",
                "triggerInfo": {"ci.message": "docs: mention {{HEALTH_CHECK_ESLINT}}"},
            }
        )
        report = assemble_build_report(
            build, HealthCheckReport(), TestSummary(), CoverageSummary(), [], generated_at=GENERATED_AT
        )
        text = MarkdownWriter().render(report)
        assert "- **Trigger:** docs: mention {{HEALTH_CHECK_ESLINT}}" in text

    def test_uat_report(self):
        report = assemble_uat_report(
            _release(), _build(), HealthCheckReport(), TestSummary(), CoverageSummary(), [], [], [], GENERATED_AT
        )
        text = MarkdownWriter().render(report)
        assert "{{" not in text
        assert "### MY.DEV" in text
        assert "### MY.UAT" in text
        assert "CSP-Release-42" in text

    def test_production_report(self):
        writer = MarkdownWriter()
        report = _production_report()
        values = writer.values(report)
        text = writer.render(report)

        assert values["VERSION"] == "v2.2.0"
        assert values["TARGET_BRANCH"] == "release/v2.2.0"
        assert "{{" not in text
        assert "### MY.FWC (Production)" in text
        assert "| Deployment | Release Manager | ✅ approved |" in text

    def test_build_report_has_no_release_keys(self):
        assert "RELEASE_NAME" not in MarkdownWriter().values(_build_report())
