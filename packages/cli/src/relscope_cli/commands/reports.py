"""build-report, uat-report and prod-report commands."""

from __future__ import annotations

import click
from rich.console import Console

from relscope_cli.context import get_client, get_config, relscope_errors
from relscope_cli.render import print_report
from relscope_core.pipeline import generate_build_report, generate_release_report
from relscope_report.output import write_report_files

console = Console()


def _confirm(what: str, yes: bool) -> None:
    # The only point where a report run can be cancelled.
    if not yes:
        click.confirm(f"Generate {what}?", default=True, abort=True)


def _write_and_print(report, config: dict, identifier: str) -> None:
    paths = write_report_files(report, config.get("output_dir", "output"), identifier)
    print_report(report)
    console.print("\n[green]Report written:[/green]")
    for path in paths:
        console.print(f"  {path}")


@click.command("build-report")
@click.argument("identifier", required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def build_report_cmd(ctx, identifier: str | None, yes: bool):
    """Generate a build report from a build number (YYYYMMDD.N) or build ID."""
    if not identifier:
        console.print("[dim]Examples: 20251013.1 (build number) or 156536 (build ID)[/dim]")
        identifier = click.prompt("Build number or build ID").strip()

    config = get_config(ctx)
    client = get_client(ctx)
    _confirm(f"build report for {identifier}", yes)

    with relscope_errors(), console.status("Connecting to Azure DevOps...") as status:
        report = generate_build_report(client, identifier, config, progress=status.update)
    _write_and_print(report, config, identifier)


def _release_report(ctx, release: str | None, yes: bool, variant: str, label: str) -> None:
    if not release:
        console.print("[dim]Example: Release-42[/dim]")
        release = click.prompt("Release name").strip()

    config = get_config(ctx)
    client = get_client(ctx)
    _confirm(f"{label} report for {release}", yes)

    with relscope_errors(), console.status("Connecting to Azure DevOps...") as status:
        report = generate_release_report(client, release, variant, config, progress=status.update)
    _write_and_print(report, config, release)


@click.command("uat-report")
@click.argument("release", required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def uat_report_cmd(ctx, release: str | None, yes: bool):
    """Generate a UAT release report (MY.DEV and MY.UAT environments)."""
    _release_report(ctx, release, yes, "uat", "UAT release")


@click.command("prod-report")
@click.argument("release", required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def prod_report_cmd(ctx, release: str | None, yes: bool):
    """Generate a production release report (DEV, UAT, STG and production)."""
    _release_report(ctx, release, yes, "production", "production release")
