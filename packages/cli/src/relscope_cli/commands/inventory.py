"""subscriptions and resources commands: read-only Azure inventory tables."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.table import Table

from relscope_cli.context import relscope_errors
from relscope_core import inventory

console = Console()


@click.command("subscriptions")
@click.pass_context
def subscriptions_cmd(ctx):
    """List the Azure subscriptions visible to the signed-in account."""
    timeout = ctx.obj["config"].get("az_timeout", 120)
    with relscope_errors():
        subscriptions = inventory.list_subscriptions(timeout=timeout)

    if not subscriptions:
        console.print("[yellow]No subscriptions found.[/yellow]")
        return

    table = Table(title="Azure Subscriptions", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Subscription ID")
    table.add_column("State")
    table.add_column("Default", justify="center")
    for s in subscriptions:
        table.add_row(s.display_name, s.subscription_id, s.state, "✅" if s.is_default else "")
    console.print(table)


@click.command("resources")
@click.option("--subscription", "subscription_id", default=None, help="Subscription ID. Defaults to the active one.")
@click.pass_context
def resources_cmd(ctx, subscription_id: str | None):
    """List resources in a subscription, grouped by type."""
    timeout = ctx.obj["config"].get("az_timeout", 120)
    with relscope_errors():
        resources = inventory.list_resources(subscription_id, timeout=timeout)

    if not resources:
        console.print("[yellow]No resources found.[/yellow]")
        return

    summary = Table(title=f"Resource Types ({len(resources)} resources)", show_header=True, header_style="bold cyan")
    summary.add_column("Type", style="bold")
    summary.add_column("Count", justify="right")
    for resource_type, count in Counter(r.type for r in resources).most_common():
        summary.add_row(resource_type, str(count))
    console.print(summary)

    table = Table(title="Resources", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Location")
    table.add_column("Resource Group")
    for r in sorted(resources, key=lambda r: (r.resource_group.lower(), r.name.lower())):
        table.add_row(r.name, r.type, r.location, r.resource_group)
    console.print(table)
