"""Tests for Azure DevOps token resolution."""

import subprocess

import pytest

from relscope_cli.auth import resolve_azure_devops_token
from relscope_core.ado.client import AZURE_DEVOPS_RESOURCE_ID


@pytest.fixture(autouse=True)
def _no_pat(monkeypatch):
    monkeypatch.delenv("AZURE_DEVOPS_EXT_PAT", raising=False)


class TestResolveAzureDevOpsToken:
    def test_pat_env_wins(self, monkeypatch, mocker):
        monkeypatch.setenv("AZURE_DEVOPS_EXT_PAT", "pat-123")
        run = mocker.patch("subprocess.run")
        assert resolve_azure_devops_token() == ("pat-123", "pat")
        run.assert_not_called()

    def test_az_session_token(self, mocker):
        run = mocker.patch("subprocess.run", return_value=subprocess.CompletedProcess([], 0, "eyJ0eXAi\n", ""))
        assert resolve_azure_devops_token() == ("eyJ0eXAi", "bearer")
        command = run.call_args.args[0]
        assert command[:3] == ["az", "account", "get-access-token"]
        assert command[command.index("--resource") + 1] == AZURE_DEVOPS_RESOURCE_ID

    def test_az_not_logged_in(self, mocker):
        mocker.patch(
            "subprocess.run",
            return_value=subprocess.CompletedProcess([], 1, "", "Please run 'az login' to setup account."),
        )
        assert resolve_azure_devops_token() is None

    def test_empty_stdout(self, mocker):
        mocker.patch("subprocess.run", return_value=subprocess.CompletedProcess([], 0, "  \n", ""))
        assert resolve_azure_devops_token() is None

    @pytest.mark.parametrize("error", [FileNotFoundError(), subprocess.TimeoutExpired(cmd="az", timeout=30)])
    def test_az_unavailable(self, mocker, error):
        mocker.patch("subprocess.run", side_effect=error)
        assert resolve_azure_devops_token() is None
