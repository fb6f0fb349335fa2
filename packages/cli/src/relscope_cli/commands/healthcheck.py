"""healthcheck command: verify the az CLI, credentials and project settings."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from relscope_core.errors import TransportError

console = Console()


@click.command("healthcheck")
@click.pass_context
def healthcheck_cmd(ctx):
    """Check that relscope can reach Azure DevOps with the current setup."""
    from relscope_cli.auth import resolve_azure_devops_token
    from relscope_core.ado.client import run_az
    from relscope_core.config import organization_url
    from relscope_core.inventory import account_info

    config = ctx.obj["config"]
    checks: list[tuple[str, bool, str]] = []

    try:
        version = run_az(["version"], timeout=config.get("az_timeout", 120)) or {}
        checks.append(("Azure CLI", True, f"az {version.get('azure-cli', 'installed')}"))
    except TransportError as e:
        checks.append(("Azure CLI", False, e.remediation or e.message))

    resolved = resolve_azure_devops_token()
    if resolved is None:
        checks.append(("Credentials", False, "Run `az login --allow-no-subscriptions` or set AZURE_DEVOPS_EXT_PAT"))
    else:
        source = "AZURE_DEVOPS_EXT_PAT" if resolved[1] == "pat" else "az login session"
        checks.append(("Credentials", True, f"token from {source}"))

    try:
        account = account_info(timeout=config.get("az_timeout", 120))
        user = (account.get("user") or {}).get("name", "unknown user")
        checks.append(("Signed-in account", True, f"{user} ({account.get('name', 'no subscription')})"))
    except TransportError as e:
        checks.append(("Signed-in account", False, e.message))

    try:
        checks.append(("Organization", True, organization_url(config.get("organization"))))
    except ValueError as e:
        checks.append(("Organization", False, str(e)))
    project = config.get("project")
    checks.append(("Project", bool(project), project or "Set 'project' in .relscope.yml"))

    table = Table(title="relscope health check", show_header=True, header_style="bold cyan")
    table.add_column("Check", style="bold")
    table.add_column("Result", width=6)
    table.add_column("Details")
    for name, ok, details in checks:
        table.add_row(name, "[green]✅[/green]" if ok else "[red]❌[/red]", details)
    console.print(table)

    if not all(ok for _, ok, _ in checks):
        ctx.exit(1)
