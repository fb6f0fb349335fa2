"""Azure subscription and resource listings via the signed-in ``az`` session."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from relscope_core.ado.client import run_az
from relscope_core.errors import NotFoundError
from relscope_core.models import UNKNOWN

_RESOURCE_GROUP_RE = re.compile(r"/resourceGroups/([^/]+)", re.IGNORECASE)


@dataclass(frozen=True)
class Subscription:
    subscription_id: str
    display_name: str
    state: str
    is_default: bool = False


@dataclass(frozen=True)
class AzureResource:
    id: str
    name: str
    type: str
    location: str
    resource_group: str
    tags: dict = field(default_factory=dict)


def resource_group_from_id(resource_id: str) -> str:
    match = _RESOURCE_GROUP_RE.search(resource_id or "")
    return match.group(1) if match else UNKNOWN


def account_info(timeout: int = 60) -> dict:
    """Return ``az account show`` for the active login."""
    return run_az(["account", "show"], timeout=timeout) or {}


def list_subscriptions(timeout: int = 60) -> list[Subscription]:
    raw = run_az(["account", "list", "--all"], timeout=timeout) or []
    return [
        Subscription(
            subscription_id=s.get("id", ""),
            display_name=s.get("name", ""),
            state=s.get("state", ""),
            is_default=bool(s.get("isDefault")),
        )
        for s in raw
    ]


def list_resources(subscription_id: str | None = None, timeout: int = 120) -> list[AzureResource]:
    """List resources in a subscription; defaults to the first subscription the login can see."""
    if not subscription_id:
        subscriptions = list_subscriptions(timeout=timeout)
        if not subscriptions:
            raise NotFoundError("No subscriptions found for the signed-in account.")
        default = next((s for s in subscriptions if s.is_default), subscriptions[0])
        subscription_id = default.subscription_id

    raw = run_az(["resource", "list", "--subscription", subscription_id], timeout=timeout) or []
    return [
        AzureResource(
            id=r.get("id", ""),
            name=r.get("name", ""),
            type=r.get("type", ""),
            location=r.get("location", ""),
            resource_group=r.get("resourceGroup") or resource_group_from_id(r.get("id", "")),
            tags=r.get("tags") or {},
        )
        for r in raw
    ]
