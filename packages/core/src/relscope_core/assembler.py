"""Combine resolved records into the three immutable report shapes.

Nothing here touches the network or the filesystem: every input has already
been fetched and every field of the result is derived from those inputs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from relscope_core.approvals import PRODUCTION_POLICY, UAT_POLICY
from relscope_core.deployments import (
    PRODUCTION_SLOTS,
    UAT_SLOTS,
    deployment_date,
    production_deployment_time,
    production_environment_sections,
    target_branch,
    uat_environment_sections,
    version_from_branch,
)
from relscope_core.models import (
    ApprovalRecord,
    BuildArtifact,
    BuildRecord,
    BuildReport,
    CoverageSummary,
    EnvironmentRecord,
    HealthCheckReport,
    ProductionReleaseReport,
    ReleaseRecord,
    TestSummary,
    UATReleaseReport,
)


def _timestamp(generated_at: str | None) -> str:
    return generated_at or datetime.now(timezone.utc).isoformat()


def assemble_build_report(
    build: BuildRecord,
    health_check: HealthCheckReport,
    testing: TestSummary,
    coverage: CoverageSummary,
    artifacts: Sequence[BuildArtifact] = (),
    generated_at: str | None = None,
) -> BuildReport:
    return BuildReport(
        build=build,
        health_check=health_check,
        testing=testing,
        coverage=coverage,
        artifacts=tuple(artifacts),
        generated_at=_timestamp(generated_at),
    )


def assemble_uat_report(
    release: ReleaseRecord,
    build: BuildRecord,
    health_check: HealthCheckReport,
    testing: TestSummary,
    coverage: CoverageSummary,
    artifacts: Sequence[BuildArtifact],
    environments: Sequence[EnvironmentRecord],
    approvals: Sequence[ApprovalRecord],
    generated_at: str | None = None,
) -> UATReleaseReport:
    uat_slot = next(s for s in UAT_SLOTS if s.key == "MY.UAT")
    return UATReleaseReport(
        release=release,
        build=build,
        health_check=health_check,
        testing=testing,
        coverage=coverage,
        artifacts=tuple(artifacts),
        environments=tuple(environments),
        approvals=tuple(approvals),
        environment_sections=uat_environment_sections(environments, approvals, UAT_POLICY),
        deployment_date=deployment_date(environments, release, uat_slot.matches),
        target_branch=target_branch(build, release),
        generated_at=_timestamp(generated_at),
    )


def assemble_production_report(
    release: ReleaseRecord,
    build: BuildRecord,
    health_check: HealthCheckReport,
    testing: TestSummary,
    coverage: CoverageSummary,
    artifacts: Sequence[BuildArtifact],
    environments: Sequence[EnvironmentRecord],
    approvals: Sequence[ApprovalRecord],
    generated_at: str | None = None,
) -> ProductionReleaseReport:
    production_slot = next(s for s in PRODUCTION_SLOTS if s.production)
    branch = target_branch(build, release)
    return ProductionReleaseReport(
        release=release,
        build=build,
        health_check=health_check,
        testing=testing,
        coverage=coverage,
        artifacts=tuple(artifacts),
        environments=tuple(environments),
        approvals=tuple(approvals),
        environment_sections=production_environment_sections(environments, approvals, PRODUCTION_POLICY),
        deployment_date=deployment_date(environments, release, production_slot.matches),
        deployment_time=production_deployment_time(approvals),
        target_branch=branch,
        version=version_from_branch(branch),
        generated_at=_timestamp(generated_at),
    )
