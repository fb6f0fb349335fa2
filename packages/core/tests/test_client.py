"""Tests for the az subprocess wrapper and the REST client."""

import base64
import subprocess
from unittest.mock import MagicMock

import pytest
import requests

from relscope_core.ado.client import AzureDevOpsClient, _release_host, run_az
from relscope_core.errors import AuthenticationError, TransportError


def _completed(stdout="", stderr="", returncode=0):
    return subprocess.CompletedProcess(args=["az"], returncode=returncode, stdout=stdout, stderr=stderr)


def _response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.reason = "reason"
    response.text = text
    response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error")
    return response


def _client(session=None, **kwargs):
    return AzureDevOpsClient("contoso", "My Project", session=session or MagicMock(headers={}), **kwargs)


class TestRunAz:
    def test_parses_json_stdout(self, mocker):
        run = mocker.patch("subprocess.run", return_value=_completed(stdout='[{"id": 1}]'))
        assert run_az(["pipelines", "build", "list"]) == [{"id": 1}]
        command = run.call_args.args[0]
        assert command[:4] == ["az", "pipelines", "build", "list"]
        assert command[-2:] == ["--output", "json"]

    def test_raw_text_when_not_parsing(self, mocker):
        mocker.patch("subprocess.run", return_value=_completed(stdout="2.61.0\n"))
        assert run_az(["version"], parse_json=False) == "2.61.0\n"

    def test_missing_binary(self, mocker):
        mocker.patch("subprocess.run", side_effect=FileNotFoundError())
        with pytest.raises(TransportError) as exc:
            run_az(["version"])
        assert "az extension add" in exc.value.remediation

    def test_timeout(self, mocker):
        mocker.patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="az", timeout=5))
        with pytest.raises(TransportError, match="timed out"):
            run_az(["pipelines", "build", "list"], timeout=5)

    def test_login_failure_is_authentication_error(self, mocker):
        mocker.patch("subprocess.run", return_value=_completed(stderr="Please run 'az login' to setup account.", returncode=1))
        with pytest.raises(AuthenticationError):
            run_az(["account", "show"])

    def test_nonzero_exit_carries_stderr(self, mocker):
        mocker.patch("subprocess.run", return_value=_completed(stderr="TF400813: denied", returncode=1))
        with pytest.raises(TransportError, match="TF400813"):
            run_az(["pipelines", "runs", "show"])

    def test_invalid_json(self, mocker):
        mocker.patch("subprocess.run", return_value=_completed(stdout="not json"))
        with pytest.raises(TransportError, match="invalid JSON"):
            run_az(["account", "list"])


class TestClientConstruction:
    def test_requires_project(self):
        with pytest.raises(ValueError, match="project"):
            AzureDevOpsClient("contoso", None)

    def test_pat_sent_as_basic_auth(self):
        session = MagicMock(headers={})
        _client(session, token="secret", token_kind="pat")
        expected = base64.b64encode(b":secret").decode()
        assert session.headers["Authorization"] == f"Basic {expected}"

    def test_bearer_token(self):
        session = MagicMock(headers={})
        _client(session, token="jwt")
        assert session.headers["Authorization"] == "Bearer jwt"

    def test_urls_quote_project(self):
        client = _client()
        assert client.build_url("7") == "https://dev.azure.com/contoso/My%20Project/_build/results?buildId=7"
        assert client.release_url("9") == "https://dev.azure.com/contoso/My%20Project/_release?releaseId=9"

    def test_from_config(self):
        client = AzureDevOpsClient.from_config(
            {"organization": "https://dev.azure.com/contoso", "project": "Portal", "request_timeout": 5}
        )
        assert client.org_url == "https://dev.azure.com/contoso"
        assert client.project == "Portal"


class TestReleaseHost:
    def test_dev_azure_com(self):
        assert _release_host("https://dev.azure.com/contoso") == "https://vsrm.dev.azure.com/contoso"

    def test_visualstudio_com(self):
        assert _release_host("https://contoso.visualstudio.com") == "https://contoso.vsrm.visualstudio.com"

    def test_other_hosts_unchanged(self):
        assert _release_host("https://ado.internal/tfs") == "https://ado.internal/tfs"


class TestRestCalls:
    def test_json_payload(self):
        session = MagicMock(headers={})
        session.get.return_value = _response(json_data={"value": [{"id": 7}]})
        assert _client(session).get_release_definitions_by_name("CSP-Release") == [{"id": 7}]

        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url == "https://vsrm.dev.azure.com/contoso/My%20Project/_apis/release/definitions"
        assert params == {"api-version": "7.0", "searchText": "CSP-Release"}

    def test_releases_without_definition(self):
        session = MagicMock(headers={})
        session.get.return_value = _response(json_data={"value": []})
        _client(session).get_releases_by_definition(None, "CSP-Release-42")
        assert "definitionId" not in session.get.call_args.kwargs["params"]

    def test_log_content_is_text(self):
        session = MagicMock(headers={})
        session.get.return_value = _response(text="line one\nline two")
        assert _client(session).get_log_content("100", "3") == "line one\nline two"
        assert session.get.call_args.kwargs["headers"] == {"Accept": "text/plain"}

    @pytest.mark.parametrize("status", [401, 403, 203])
    def test_auth_failures(self, status):
        session = MagicMock(headers={})
        session.get.return_value = _response(status_code=status)
        with pytest.raises(AuthenticationError) as exc:
            _client(session).get_build_timeline("100")
        assert exc.value.status_code == status
        assert "az login" in exc.value.remediation

    def test_not_found(self):
        session = MagicMock(headers={})
        session.get.return_value = _response(status_code=404)
        with pytest.raises(TransportError) as exc:
            _client(session).get_log_content("100", "99")
        assert exc.value.status_code == 404
        assert not isinstance(exc.value, AuthenticationError)

    def test_server_error(self):
        session = MagicMock(headers={})
        session.get.return_value = _response(status_code=500)
        with pytest.raises(TransportError) as exc:
            _client(session).get_release_by_id("501")
        assert exc.value.status_code == 500

    def test_connection_error(self):
        session = MagicMock(headers={})
        session.get.side_effect = requests.exceptions.ConnectionError("dns")
        with pytest.raises(TransportError, match="dns"):
            _client(session).get_release_approvals("501")

    def test_invalid_json(self):
        session = MagicMock(headers={})
        response = _response()
        response.json.side_effect = ValueError("no json")
        session.get.return_value = response
        with pytest.raises(TransportError, match="invalid JSON"):
            _client(session).get_release_by_id("501")


class TestAzCommands:
    def test_list_builds_window(self, mocker):
        run = mocker.patch("relscope_core.ado.client.run_az", return_value=[{"id": 1}])
        builds = _client().list_builds(min_time="2025-01-01", max_time="2025-01-02")

        assert builds == [{"id": 1}]
        args = run.call_args.args[0]
        assert args[:3] == ["pipelines", "build", "list"]
        assert args[args.index("--min-time") + 1] == "2025-01-01"
        assert args[args.index("--max-time") + 1] == "2025-01-02"
        assert args[args.index("--project") + 1] == "My Project"
        assert "--top" not in args

    def test_list_builds_top(self, mocker):
        run = mocker.patch("relscope_core.ado.client.run_az", return_value=None)
        assert _client().list_builds(top=50) == []
        args = run.call_args.args[0]
        assert args[args.index("--top") + 1] == "50"
