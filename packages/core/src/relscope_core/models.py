"""Value objects produced by the resolution pipeline.

All records are frozen: they are built once from provider JSON and then
owned by the report that aggregates them. Collections are tuples for the
same reason. Absence is always an explicit sentinel string, never ``""``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"
NO_TEST_RESULTS = "No test results found"

# Status glyphs shared by health checks, deployments and approvals.
GLYPH_INFO = "ℹ️"
GLYPH_SUCCESS = "✅"
GLYPH_WARNING = "⚠️"
GLYPH_FAILURE = "❌"
GLYPH_CANCELED = "🚫"
GLYPH_PENDING = "⏳"
GLYPH_NEUTRAL = "⚪"
GLYPH_PAUSED = "⏸️"

SECURITY_AUDIT_NOT_FOUND = f"{GLYPH_INFO} Security audit not found"
ENVIRONMENT_CHECK_NOT_FOUND = f"{GLYPH_INFO} Environment check not found"
FORMATTING_NOT_FOUND = f"{GLYPH_INFO} Prettier check not found"
LINT_NOT_FOUND = f"{GLYPH_INFO} ESLint check not found"
TYPE_CHECK_NOT_FOUND = f"{GLYPH_INFO} TypeScript check not found"
BUILD_OUTCOME_NOT_FOUND = f"{GLYPH_INFO} Build status unknown"

PRE_DEPLOY = "preDeploy"
POST_DEPLOY = "postDeploy"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class BuildRecord:
    id: str
    number: str
    status: str
    result: str
    start_time: str
    finish_time: str
    duration: str  # "65s (1m 5s)" or "N/A"
    duration_seconds: int | None
    source_branch: str
    requested_by: str
    trigger_info: str
    trigger_pr: str  # "#42" or "N/A"
    source_commit: str
    build_url: str


@dataclass(frozen=True)
class HealthCheckReport:
    security_audit: str = SECURITY_AUDIT_NOT_FOUND
    environment_check: str = ENVIRONMENT_CHECK_NOT_FOUND
    formatting: str = FORMATTING_NOT_FOUND
    lint: str = LINT_NOT_FOUND
    type_check: str = TYPE_CHECK_NOT_FOUND
    build_outcome: str = BUILD_OUTCOME_NOT_FOUND


@dataclass(frozen=True)
class TestSummary:
    __test__ = False  # not a pytest test class

    test_files: str = NO_TEST_RESULTS
    tests: str = NO_TEST_RESULTS
    duration: str = NOT_AVAILABLE


@dataclass(frozen=True)
class CoverageSummary:
    statements: str = NOT_AVAILABLE
    branches: str = NOT_AVAILABLE
    functions: str = NOT_AVAILABLE
    lines: str = NOT_AVAILABLE


@dataclass(frozen=True)
class BuildArtifact:
    name: str
    type: str
    size: str | None = None  # "12.3 MB"


@dataclass(frozen=True)
class ReleaseRecord:
    id: str
    name: str
    status: str
    created_on: str
    created_by: str
    modified_on: str
    modified_by: str
    description: str
    definition_name: str
    build_number: str  # "Unknown" when no artifact path yields one
    target_branch: str
    release_url: str


@dataclass(frozen=True)
class EnvironmentRecord:
    id: str
    name: str
    status: str
    rank: int
    deployment_started: str
    deployment_completed: str  # "N/A" when the environment never finished a deployment
    duration: str


@dataclass(frozen=True)
class ApprovalRecord:
    id: str
    approver: str
    status: str  # pending | approved | rejected | canceled
    created_on: str
    modified_on: str
    comment: str
    environment_name: str
    phase: str  # preDeploy | postDeploy


@dataclass(frozen=True)
class ApprovalRow:
    """One rendered line of an environment's approval table."""

    label: str
    approver: str
    status: str
    time: str


@dataclass(frozen=True)
class EnvironmentSummary:
    heading: str
    status_icon: str
    status_text: str
    rows: tuple[ApprovalRow, ...] = ()


@dataclass(frozen=True)
class BuildReport:
    kind: ClassVar[str] = "build"

    build: BuildRecord
    health_check: HealthCheckReport
    testing: TestSummary
    coverage: CoverageSummary
    artifacts: tuple[BuildArtifact, ...] = ()
    generated_at: str = field(default_factory=_utc_now)


@dataclass(frozen=True)
class UATReleaseReport:
    kind: ClassVar[str] = "uat-release"

    release: ReleaseRecord
    build: BuildRecord
    health_check: HealthCheckReport
    testing: TestSummary
    coverage: CoverageSummary
    artifacts: tuple[BuildArtifact, ...]
    environments: tuple[EnvironmentRecord, ...]
    approvals: tuple[ApprovalRecord, ...]
    environment_sections: tuple[EnvironmentSummary, ...]
    deployment_date: str
    target_branch: str
    generated_at: str = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ProductionReleaseReport:
    kind: ClassVar[str] = "prod-release"

    release: ReleaseRecord
    build: BuildRecord
    health_check: HealthCheckReport
    testing: TestSummary
    coverage: CoverageSummary
    artifacts: tuple[BuildArtifact, ...]
    environments: tuple[EnvironmentRecord, ...]
    approvals: tuple[ApprovalRecord, ...]
    environment_sections: tuple[EnvironmentSummary, ...]
    deployment_date: str
    deployment_time: str
    target_branch: str
    version: str
    generated_at: str = field(default_factory=_utc_now)


Report = BuildReport | UATReleaseReport | ProductionReleaseReport
