"""CLI entry point for relscope.

Commands:
  build-report   build report from a build number or ID
  uat-report     UAT release report
  prod-report    production release report
  healthcheck    verify az CLI, credentials and configuration
  subscriptions  list Azure subscriptions
  resources      list Azure resources in a subscription
  cleanup        delete generated report files
  init           interactive setup wizard

Run without a command in a terminal to get the interactive dashboard.
"""

from __future__ import annotations

import sys

import click
from rich.console import Console

from relscope_cli.commands.cleanup import cleanup_cmd
from relscope_cli.commands.healthcheck import healthcheck_cmd
from relscope_cli.commands.init import init_cmd
from relscope_cli.commands.inventory import resources_cmd, subscriptions_cmd
from relscope_cli.commands.reports import build_report_cmd, prod_report_cmd, uat_report_cmd

console = Console()

# (menu label, command); the dashboard loops until "Exit" is chosen.
_DASHBOARD_ACTIONS = (
    ("Build report", build_report_cmd),
    ("UAT release report", uat_report_cmd),
    ("Production release report", prod_report_cmd),
    ("Health check", healthcheck_cmd),
    ("Azure subscriptions", subscriptions_cmd),
    ("Azure resources", resources_cmd),
    ("Clean up report files", cleanup_cmd),
)


def _is_interactive() -> bool:
    return sys.stdin.isatty()


def run_dashboard(ctx: click.Context) -> None:
    """Numbered menu over the commands, returning to the menu after each action."""
    while True:
        console.print("\n[bold cyan]relscope[/bold cyan]: Azure DevOps build & release reports\n")
        for number, (label, _) in enumerate(_DASHBOARD_ACTIONS, start=1):
            console.print(f"  [bold]{number}[/bold]  {label}")
        console.print("  [bold]0[/bold]  Exit")

        choice = click.prompt("\nChoose an action", type=click.IntRange(0, len(_DASHBOARD_ACTIONS)), default=0)
        if choice == 0:
            console.print("[dim]Bye.[/dim]")
            return

        label, command = _DASHBOARD_ACTIONS[choice - 1]
        try:
            ctx.invoke(command)
        except click.Abort:
            console.print(f"[yellow]{label} cancelled.[/yellow]")
        except click.exceptions.Exit:
            pass
        except click.ClickException as e:
            e.show()


@click.group(invoke_without_command=True)
@click.version_option(package_name="relscope", prog_name="relscope")
@click.option(
    "--config",
    "config_path",
    default=".relscope.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="RELSCOPE_CONFIG",
)
@click.option("--org", "organization", default=None, help="Azure DevOps organization. Overrides config file.")
@click.option("--project", default=None, help="Azure DevOps project. Overrides config file.")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors.")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: str,
    organization: str | None,
    project: str | None,
    verbose: bool,
    quiet: bool,
):
    """Azure DevOps build and release reports."""
    from relscope_cli.logging_config import setup_logging
    from relscope_core.config import load_config

    setup_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = load_config(config_path, cli_overrides={"organization": organization, "project": project})

    if ctx.invoked_subcommand is None:
        if _is_interactive():
            run_dashboard(ctx)
        else:
            click.echo(ctx.get_help())


main.add_command(build_report_cmd)
main.add_command(uat_report_cmd)
main.add_command(prod_report_cmd)
main.add_command(healthcheck_cmd)
main.add_command(subscriptions_cmd)
main.add_command(resources_cmd)
main.add_command(cleanup_cmd)
main.add_command(init_cmd)
