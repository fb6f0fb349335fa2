"""Shared per-invocation state: config, the provider client, error translation."""

from __future__ import annotations

from contextlib import contextmanager

import click

from relscope_core.errors import RelscopeError


class RelscopeCommandError(click.ClickException):
    """A core error rendered as a click failure: message, then remediation."""

    def __init__(self, error: RelscopeError):
        message = error.message
        if error.remediation:
            message += f"\nHint: {error.remediation}"
        super().__init__(message)
        self.error = error


@contextmanager
def relscope_errors():
    """Turn core errors raised inside the block into a non-zero click exit."""
    try:
        yield
    except RelscopeError as e:
        raise RelscopeCommandError(e) from e


def get_config(ctx: click.Context) -> dict:
    return ctx.ensure_object(dict)["config"]


def get_client(ctx: click.Context):
    """Build the Azure DevOps client once per invocation (shared by the dashboard)."""
    from relscope_cli.auth import resolve_azure_devops_token
    from relscope_core.ado.client import AzureDevOpsClient

    obj = ctx.ensure_object(dict)
    if obj.get("client") is None:
        resolved = resolve_azure_devops_token()
        if resolved is None:
            raise click.UsageError(
                "No Azure DevOps credentials found. Run `az login --allow-no-subscriptions` "
                "or set AZURE_DEVOPS_EXT_PAT."
            )
        token, kind = resolved
        try:
            obj["client"] = AzureDevOpsClient.from_config(obj["config"], token=token, token_kind=kind)
        except ValueError as e:
            raise click.UsageError(f"{e} Run `relscope init` to create one.") from e
    return obj["client"]
