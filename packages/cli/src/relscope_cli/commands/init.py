"""init command: interactive setup wizard writing .relscope.yml."""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

console = Console()


@click.command("init")
@click.option("--organization", default=None, help="Azure DevOps organization name or URL.")
@click.option("--project", default=None, help="Azure DevOps project name.")
@click.pass_context
def init_cmd(ctx, organization: str | None, project: str | None):
    """Create or update the relscope configuration file.

    Existing keys in the file are preserved; only the answered ones change.
    """
    config_path = Path(ctx.obj.get("config_path", ".relscope.yml"))
    existing = _read_existing(config_path)

    console.print("\n[bold cyan]relscope init[/bold cyan]: Azure DevOps report setup\n")

    if organization is None:
        organization = click.prompt("Azure DevOps organization (name or URL)", default=existing.get("organization"))
    if project is None:
        project = click.prompt("Project name", default=existing.get("project"))
    output_dir = click.prompt("Directory for report files", default=existing.get("output_dir", "output"))

    _write_config(config_path, {"organization": organization, "project": project, "output_dir": output_dir})
    console.print(f"[green]Wrote {config_path}[/green]")
    console.print("\nCheck your setup with: [bold]relscope healthcheck[/bold]")


def _read_existing(path: Path) -> dict:
    if not path.exists():
        return {}
    return yaml.safe_load(path.read_text()) or {}


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing = _read_existing(path)
    existing.update(config)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
