"""End-to-end report generation: resolve, scan logs, reconcile, assemble.

Each call is independent and sequential. The optional ``progress`` callback
receives short human-readable phase descriptions; the CLI binds it to a
spinner, tests usually leave it unset.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from relscope_core.assembler import assemble_build_report, assemble_production_report, assemble_uat_report
from relscope_core.builds import BuildResolver, list_artifacts
from relscope_core.errors import NotFoundError, TransportError
from relscope_core.logs import BuildLogs, apply_build_result, collect_health_checks, collect_test_results
from relscope_core.models import UNKNOWN, BuildRecord, BuildReport, ProductionReleaseReport, UATReleaseReport
from relscope_core.releases import ReleaseResolver, associated_build_id

logger = logging.getLogger(__name__)

Progress = Optional[Callable[[str], None]]

RELEASE_VARIANTS = ("uat", "production")


def _notify(progress: Progress, message: str) -> None:
    logger.info(message)
    if progress is not None:
        progress(message)


def _scan_build(client, build: BuildRecord, config: dict, progress: Progress):
    logs = BuildLogs(client, build.id, config.get("fallback_log_ids"))

    _notify(progress, f"Scanning logs of build {build.number} for health checks")
    health_check = apply_build_result(collect_health_checks(logs), build.result)

    _notify(progress, f"Extracting test results for build {build.number}")
    testing, coverage = collect_test_results(logs)

    _notify(progress, f"Listing artifacts of build {build.number}")
    artifacts = list_artifacts(client, build.id)
    return health_check, testing, coverage, artifacts


def generate_build_report(client, identifier: str, config: dict, progress: Progress = None) -> BuildReport:
    """Resolve a build number or id and assemble its report. Resolution failures are fatal."""
    resolver = BuildResolver(client, recent_builds_top=config.get("recent_builds_top", 100))
    _notify(progress, f"Resolving build {identifier}")
    build = resolver.resolve(identifier)

    health_check, testing, coverage, artifacts = _scan_build(client, build, config, progress)
    return assemble_build_report(build, health_check, testing, coverage, artifacts)


def _release_build(client, release_raw: dict, build_number: str, config: dict) -> BuildRecord:
    resolver = BuildResolver(client, recent_builds_top=config.get("recent_builds_top", 100))
    build_id = associated_build_id(release_raw)
    if build_id:
        try:
            return resolver.resolve_by_id(build_id)
        except NotFoundError as e:
            logger.warning("Artifact build id %s could not be read (%s); searching by number", build_id, e)

    if build_number == UNKNOWN:
        raise NotFoundError(
            "Could not determine the build associated with this release.",
            remediation="Check that the release has a primary build artifact.",
        )
    return resolver.resolve(build_number)


def generate_release_report(
    client,
    release_name: str,
    variant: str,
    config: dict,
    progress: Progress = None,
) -> UATReleaseReport | ProductionReleaseReport:
    """Resolve a release and its build, then assemble the UAT or production report.

    A missing release or build is fatal. Environments and approvals that
    cannot be read degrade to empty tables with a warning.
    """
    if variant not in RELEASE_VARIANTS:
        raise ValueError(f"Unknown release report variant: {variant!r}")

    releases = ReleaseResolver(client)
    _notify(progress, f"Resolving release {release_name}")
    release, raw_release = releases.resolve_by_name(release_name)

    build_number = releases.associated_build_number(release)
    _notify(progress, f"Resolving build {build_number} of release {release.name}")
    build = _release_build(client, raw_release, build_number, config)

    health_check, testing, coverage, artifacts = _scan_build(client, build, config, progress)

    _notify(progress, f"Reading environments of release {release.name}")
    environments = releases.environments(release.id, raw_release)

    _notify(progress, f"Reconciling approvals of release {release.name}")
    try:
        approvals = releases.approvals(release.id, raw_release)
    except TransportError as e:
        logger.warning("Could not read approvals for release %s: %s", release.name, e)
        approvals = []

    assemble = assemble_uat_report if variant == "uat" else assemble_production_report
    return assemble(release, build, health_check, testing, coverage, artifacts, environments, approvals)
