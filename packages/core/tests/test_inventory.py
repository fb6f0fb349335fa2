"""Tests for subscription and resource listings."""

import pytest

from relscope_core import inventory
from relscope_core.errors import NotFoundError

SUBSCRIPTIONS = [
    {"id": "sub-1", "name": "Dev", "state": "Enabled", "isDefault": False},
    {"id": "sub-2", "name": "Prod", "state": "Enabled", "isDefault": True},
]


def test_list_subscriptions(mocker):
    run = mocker.patch("relscope_core.inventory.run_az", return_value=SUBSCRIPTIONS)
    subscriptions = inventory.list_subscriptions()

    assert [s.display_name for s in subscriptions] == ["Dev", "Prod"]
    assert subscriptions[1].is_default is True
    run.assert_called_once_with(["account", "list", "--all"], timeout=60)


def test_list_resources_uses_default_subscription(mocker):
    resource_id = "/subscriptions/sub-2/resourceGroups/rg-web/providers/Microsoft.Web/sites/portal"
    run = mocker.patch(
        "relscope_core.inventory.run_az",
        side_effect=[SUBSCRIPTIONS, [{"id": resource_id, "name": "portal", "type": "Microsoft.Web/sites"}]],
    )
    resources = inventory.list_resources()

    assert resources[0].resource_group == "rg-web"
    assert resources[0].tags == {}
    assert run.call_args.args[0] == ["resource", "list", "--subscription", "sub-2"]


def test_list_resources_explicit_subscription(mocker):
    run = mocker.patch(
        "relscope_core.inventory.run_az",
        return_value=[{"id": "x", "name": "kv", "resourceGroup": "rg-sec", "tags": {"env": "prod"}}],
    )
    resources = inventory.list_resources("sub-1")

    assert resources[0].resource_group == "rg-sec"
    assert resources[0].tags == {"env": "prod"}
    run.assert_called_once()


def test_no_subscriptions(mocker):
    mocker.patch("relscope_core.inventory.run_az", return_value=[])
    with pytest.raises(NotFoundError):
        inventory.list_resources()


def test_resource_group_from_id():
    assert inventory.resource_group_from_id("/subscriptions/s/resourcegroups/RG1/providers/x") == "RG1"
    assert inventory.resource_group_from_id("") == "Unknown"


def test_account_info(mocker):
    mocker.patch("relscope_core.inventory.run_az", return_value={"user": {"name": "ada@contoso.com"}})
    assert inventory.account_info()["user"]["name"] == "ada@contoso.com"
