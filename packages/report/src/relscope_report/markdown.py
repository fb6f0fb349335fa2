"""Narrative Markdown rendering via ``{{KEY}}`` placeholder templates.

Templates ship alongside this module as ``templates/<kind>-report.template.md``.
Every value is a plain string; sections that repeat (artifacts, environment
tables, the quality assessment) are rendered here and substituted whole.
"""

from __future__ import annotations

import dataclasses
import re
from pathlib import Path
from typing import TYPE_CHECKING

from relscope_core.models import (
    GLYPH_FAILURE,
    GLYPH_SUCCESS,
    GLYPH_WARNING,
    NO_TEST_RESULTS,
    NOT_AVAILABLE,
    BuildArtifact,
    BuildRecord,
    CoverageSummary,
    EnvironmentSummary,
    HealthCheckReport,
    TestSummary,
)
from relscope_core.utils.dates import format_local_date, format_local_datetime

from relscope_report.base import BaseWriter

if TYPE_CHECKING:
    from relscope_core.models import Report

TEMPLATES_DIR = Path(__file__).parent / "templates"

_PLACEHOLDER_RE = re.compile(r"\{\{([A-Z0-9_]+)\}\}")

# Display names for the quality assessment, in report order.
_CHECK_NAMES = {
    "security_audit": "Security Audit",
    "environment_check": "Environment Check",
    "formatting": "Code Formatting",
    "lint": "Linting",
    "type_check": "Type Checking",
    "build_outcome": "Build",
}


def load_template(kind: str) -> str:
    path = TEMPLATES_DIR / f"{kind}-report.template.md"
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileNotFoundError(f"Report template for {kind!r} not found at {path}") from e


def fill_placeholders(template: str, values: dict) -> str:
    """Replace each ``{{KEY}}`` with its value; empty values render as "N/A".

    Substitution is a single pass, so placeholder text inside a value is kept
    literally. Unknown keys are left in place.
    """

    def _value(match: re.Match) -> str:
        key = match.group(1)
        if key not in values:
            return match.group(0)
        value = values[key]
        return str(value) if value not in (None, "") else NOT_AVAILABLE

    return _PLACEHOLDER_RE.sub(_value, template)


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


def testing_section(testing: TestSummary, coverage: CoverageSummary) -> str:
    if testing.tests == NO_TEST_RESULTS:
        return "- No test results available in this build"
    return (
        f"- **Test Files:** {testing.test_files}\n"
        f"- **Tests:** {testing.tests}\n"
        f"- **Duration:** {testing.duration}\n"
        "\n"
        "### Code Coverage\n"
        "\n"
        f"- **Statements:** {coverage.statements}\n"
        f"- **Branches:** {coverage.branches}\n"
        f"- **Functions:** {coverage.functions}\n"
        f"- **Lines:** {coverage.lines}"
    )


def artifacts_section(artifacts: tuple[BuildArtifact, ...]) -> str:
    if not artifacts:
        return "- No artifacts found"
    lines = []
    for artifact in artifacts:
        line = f"- **{artifact.name}** ({artifact.type})"
        if artifact.size:
            line += f" - {artifact.size}"
        lines.append(line)
    return "\n".join(lines)


def environment_sections(sections: tuple[EnvironmentSummary, ...]) -> str:
    blocks = []
    for section in sections:
        lines = [
            f"### {section.heading}",
            "",
            f"- **Status:** {section.status_icon} {section.status_text}",
            "",
            "| Approval Type | Approver | Status | Approval Time |",
            "|---------------|----------|--------|---------------|",
        ]
        lines += [f"| {row.label} | {row.approver} | {row.status} | {row.time} |" for row in section.rows]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def quality_assessment_section(health_check: HealthCheckReport, build: BuildRecord) -> str:
    """Group the health checks by verdict glyph and state overall deployment readiness."""
    checks = [(_CHECK_NAMES[f.name], getattr(health_check, f.name)) for f in dataclasses.fields(health_check)]
    passed = [c for c in checks if GLYPH_SUCCESS in c[1]]
    warnings = [c for c in checks if GLYPH_WARNING in c[1]]
    failed = [c for c in checks if GLYPH_FAILURE in c[1]]

    lines = ["### ✅ Passed Checks", ""]
    lines += [f"- {name}: {status}" for name, status in passed] or ["- None"]
    if warnings:
        lines += ["", "### ⚠️ Warnings", ""]
        lines += [f"- {name}: {status}" for name, status in warnings]
    if failed:
        lines += ["", "### ❌ Failed Checks", ""]
        lines += [f"- {name}: {status}" for name, status in failed]

    ready = build.result == "succeeded" and not failed
    overall = f"{GLYPH_SUCCESS} Ready for Deployment" if ready else f"{GLYPH_WARNING} Review Required"
    lines += ["", f"**Overall Status:** {overall}"]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


def _build_values(report) -> dict:
    build, health = report.build, report.health_check
    return {
        "GENERATED_DATE": format_local_datetime(report.generated_at),
        "BUILD_NUMBER": build.number,
        "BUILD_ID": build.id,
        "BUILD_URL": build.build_url,
        "BUILD_STATUS": build.status,
        "BUILD_RESULT": build.result,
        "BUILD_START_TIME": build.start_time,
        "BUILD_FINISH_TIME": build.finish_time,
        "BUILD_DURATION": build.duration,
        "BUILD_SOURCE_BRANCH": build.source_branch,
        "BUILD_REQUESTED_BY": build.requested_by,
        "BUILD_TRIGGER_INFO": build.trigger_info,
        "BUILD_TRIGGER_PR": build.trigger_pr,
        "BUILD_SOURCE_COMMIT": build.source_commit,
        "HEALTH_CHECK_SECURITY_AUDIT": health.security_audit,
        "HEALTH_CHECK_ENVIRONMENT": health.environment_check,
        "HEALTH_CHECK_PRETTIER": health.formatting,
        "HEALTH_CHECK_ESLINT": health.lint,
        "HEALTH_CHECK_TYPESCRIPT": health.type_check,
        "HEALTH_CHECK_BUILD_SUCCESS": health.build_outcome,
        "TEST_RESULTS_SECTION": testing_section(report.testing, report.coverage),
        "BUILD_ARTIFACTS_SECTION": artifacts_section(report.artifacts),
        "QUALITY_ASSESSMENT_SECTION": quality_assessment_section(health, build),
    }


def _release_values(report) -> dict:
    release = report.release
    values = {
        "RELEASE_NAME": release.name,
        "RELEASE_URL": release.release_url,
        "RELEASE_STATUS": release.status,
        "RELEASE_DEFINITION": release.definition_name,
        "DEPLOYMENT_DATE": report.deployment_date,
        "TARGET_BRANCH": report.target_branch,
        "CREATED_BY": release.created_by,
        "CREATED_DATE": format_local_date(release.created_on),
        "ENVIRONMENT_SECTIONS": environment_sections(report.environment_sections),
    }
    # Production-only header fields.
    if hasattr(report, "version"):
        values["VERSION"] = report.version
        values["DEPLOYMENT_TIME"] = report.deployment_time
    return values


class MarkdownWriter(BaseWriter):
    suffix = ".md"

    def values(self, report: Report) -> dict:
        values = _build_values(report)
        if hasattr(report, "release"):
            values.update(_release_values(report))
        return values

    def render(self, report: Report) -> str:
        return fill_placeholders(load_template(report.kind), self.values(report))
