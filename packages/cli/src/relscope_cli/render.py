"""Rich terminal summaries of an assembled report."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from relscope_core.models import (
    BuildRecord,
    CoverageSummary,
    EnvironmentSummary,
    HealthCheckReport,
    TestSummary,
)

console = Console()


def _key_value_table(title: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, show_header=False, title_justify="left", title_style="bold cyan")
    table.add_column("Field", style="bold", no_wrap=True)
    table.add_column("Value")
    for key, value in rows:
        table.add_row(key, value)
    return table


def build_table(build: BuildRecord) -> Table:
    return _key_value_table(
        f"Build {build.number}",
        [
            ("Build ID", build.id),
            ("Status", build.status),
            ("Result", build.result),
            ("Duration", build.duration),
            ("Branch", build.source_branch),
            ("Pull Request", build.trigger_pr),
            ("Requested By", build.requested_by),
            ("Commit", build.source_commit[:12]),
        ],
    )


def health_table(health: HealthCheckReport) -> Table:
    return _key_value_table(
        "Health Checks",
        [
            ("Security Audit", health.security_audit),
            ("Environment", health.environment_check),
            ("Formatting", health.formatting),
            ("Linting", health.lint),
            ("Type Checking", health.type_check),
            ("Build", health.build_outcome),
        ],
    )


def testing_table(testing: TestSummary, coverage: CoverageSummary) -> Table:
    return _key_value_table(
        "Tests & Coverage",
        [
            ("Test Files", testing.test_files),
            ("Tests", testing.tests),
            ("Duration", testing.duration),
            ("Statements", coverage.statements),
            ("Branches", coverage.branches),
            ("Functions", coverage.functions),
            ("Lines", coverage.lines),
        ],
    )


def environment_table(section: EnvironmentSummary) -> Table:
    table = Table(
        title=f"{section.heading}  {section.status_icon} {section.status_text}",
        title_justify="left",
        title_style="bold cyan",
        header_style="bold",
    )
    table.add_column("Approval Type")
    table.add_column("Approver")
    table.add_column("Status")
    table.add_column("Approval Time")
    for row in section.rows:
        table.add_row(row.label, row.approver, row.status, row.time)
    return table


def print_report(report) -> None:
    """Print the build summary, plus the environment tables for release reports."""
    if hasattr(report, "release"):
        release = report.release
        console.print(f"\n[bold]Release {release.name}[/bold]  ({release.status}, {release.definition_name})")
        console.print(f"Target branch: {report.target_branch}   Deployment date: {report.deployment_date}")
        if hasattr(report, "version"):
            console.print(f"Version: {report.version}   Approved at: {report.deployment_time}")
        for section in report.environment_sections:
            console.print(environment_table(section))

    console.print(build_table(report.build))
    console.print(health_table(report.health_check))
    console.print(testing_table(report.testing, report.coverage))
