"""cleanup command: remove generated report files."""

from __future__ import annotations

import click
from rich.console import Console

from relscope_report.output import cleanup_reports, list_reports

console = Console()


@click.command("cleanup")
@click.option("--yes", "-y", is_flag=True, help="Delete without asking.")
@click.pass_context
def cleanup_cmd(ctx, yes: bool):
    """Delete generated report files from the output directory."""
    output_dir = ctx.obj["config"].get("output_dir", "output")
    reports = list_reports(output_dir)
    if not reports:
        console.print(f"[yellow]No report files in {output_dir}.[/yellow]")
        return

    console.print(f"Found {len(reports)} report file(s) in {output_dir}.")
    if not yes and not click.confirm("Delete them?", default=False):
        console.print("[dim]Nothing deleted.[/dim]")
        return

    removed = cleanup_reports(output_dir)
    console.print(f"[green]Deleted {len(removed)} report file(s).[/green]")
