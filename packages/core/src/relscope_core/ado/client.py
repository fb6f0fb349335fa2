"""Thin Azure DevOps access layer: ``az`` CLI invocations plus authenticated REST GETs.

Every method returns parsed JSON (or text for logs) and raises
``TransportError`` on failure. No retry, caching or interpretation happens
here; the resolvers own all fallback policy.
"""

from __future__ import annotations

import base64
import json
import logging
import subprocess
from urllib.parse import quote, urlsplit

import requests

from relscope_core.config import organization_url
from relscope_core.errors import AuthenticationError, TransportError

logger = logging.getLogger(__name__)

API_VERSION = "7.0"

# Application id of Azure DevOps in Entra ID; tokens must be minted for it.
AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"

_AUTH_STATUS_CODES = (401, 403)


def run_az(args: list[str], timeout: int = 120, parse_json: bool = True):
    """Run ``az <args>`` and return parsed JSON stdout (or raw text)."""
    command = ["az", *args]
    if parse_json:
        command += ["--output", "json"]
    logger.debug("Running: %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise TransportError(
            "Azure CLI (az) is not installed or not on PATH.",
            remediation="Install the Azure CLI and the azure-devops extension: az extension add --name azure-devops",
        )
    except subprocess.TimeoutExpired:
        raise TransportError(f"az {' '.join(args[:3])} timed out after {timeout}s.")

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        if "az login" in stderr or "credentials" in stderr.lower():
            raise AuthenticationError(f"az {' '.join(args[:3])} failed: {stderr}")
        raise TransportError(f"az {' '.join(args[:3])} failed: {stderr or 'exit code ' + str(result.returncode)}")

    if not parse_json:
        return result.stdout
    try:
        return json.loads(result.stdout or "null")
    except json.JSONDecodeError as e:
        raise TransportError(f"az {' '.join(args[:3])} returned invalid JSON: {e}") from e


def _release_host(org_url: str) -> str:
    """Release management lives on the ``vsrm`` host of the organization."""
    parts = urlsplit(org_url)
    host = parts.netloc
    if host == "dev.azure.com":
        return f"{parts.scheme}://vsrm.dev.azure.com{parts.path}"
    if host.endswith(".visualstudio.com"):
        account = host.split(".", 1)[0]
        return f"{parts.scheme}://{account}.vsrm.visualstudio.com{parts.path}"
    return org_url


class AzureDevOpsClient:
    """Provider capabilities consumed by the resolvers, bound to one project."""

    def __init__(
        self,
        organization: str,
        project: str,
        token: str | None = None,
        token_kind: str = "bearer",
        az_timeout: int = 120,
        request_timeout: int = 30,
        session: requests.Session | None = None,
    ):
        if not project:
            raise ValueError("No Azure DevOps project configured. Set 'project' in .relscope.yml.")
        self.org_url = organization_url(organization)
        self.project = project
        self._az_timeout = az_timeout
        self._request_timeout = request_timeout
        self._session = session or requests.Session()
        if token:
            if token_kind == "pat":
                encoded = base64.b64encode(f":{token}".encode()).decode()
                self._session.headers["Authorization"] = f"Basic {encoded}"
            else:
                self._session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_config(cls, config: dict, token: str | None = None, token_kind: str = "bearer") -> "AzureDevOpsClient":
        return cls(
            organization=config.get("organization"),
            project=config.get("project"),
            token=token,
            token_kind=token_kind,
            az_timeout=config.get("az_timeout", 120),
            request_timeout=config.get("request_timeout", 30),
        )

    # ------------------------------------------------------------------ #
    # URLs                                                                 #
    # ------------------------------------------------------------------ #

    @property
    def _project_path(self) -> str:
        return quote(self.project)

    def build_url(self, build_id: str) -> str:
        return f"{self.org_url}/{self._project_path}/_build/results?buildId={build_id}"

    def release_url(self, release_id: str) -> str:
        return f"{self.org_url}/{self._project_path}/_release?releaseId={release_id}"

    # ------------------------------------------------------------------ #
    # Transport                                                            #
    # ------------------------------------------------------------------ #

    def _az(self, args: list[str]):
        return run_az([*args, "--org", self.org_url, "--project", self.project], timeout=self._az_timeout)

    def _get(self, url: str, params: dict | None = None, accept: str = "application/json"):
        query = {"api-version": API_VERSION, **(params or {})}
        try:
            response = self._session.get(url, params=query, headers={"Accept": accept}, timeout=self._request_timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"GET {url} failed: {e}") from e

        # 203 is the HTML sign-in page Azure DevOps serves to anonymous callers.
        if response.status_code in _AUTH_STATUS_CODES or response.status_code == 203:
            raise AuthenticationError(
                f"GET {url} was rejected ({response.status_code} {response.reason})",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise TransportError(f"GET {url} returned 404 Not Found", status_code=404)
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}", status_code=response.status_code) from e

        if accept != "application/json":
            return response.text
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"GET {url} returned invalid JSON") from e

    # ------------------------------------------------------------------ #
    # Builds                                                               #
    # ------------------------------------------------------------------ #

    def list_builds(self, min_time: str | None = None, max_time: str | None = None, top: int | None = None) -> list:
        args = ["pipelines", "build", "list"]
        if min_time:
            args += ["--min-time", min_time]
        if max_time:
            args += ["--max-time", max_time]
        if top:
            args += ["--top", str(top)]
        return self._az(args) or []

    def get_build_by_id(self, build_id: str) -> dict:
        return self._az(["pipelines", "runs", "show", "--id", str(build_id)])

    def get_build_timeline(self, build_id: str) -> dict:
        url = f"{self.org_url}/{self._project_path}/_apis/build/builds/{build_id}/timeline"
        return self._get(url) or {}

    def get_log_content(self, build_id: str, log_id: str) -> str:
        url = f"{self.org_url}/{self._project_path}/_apis/build/builds/{build_id}/logs/{log_id}"
        return self._get(url, accept="text/plain")

    def get_build_artifacts(self, build_id: str) -> list:
        return self._az(["pipelines", "runs", "artifact", "list", "--run-id", str(build_id)]) or []

    # ------------------------------------------------------------------ #
    # Releases                                                             #
    # ------------------------------------------------------------------ #

    @property
    def _release_api(self) -> str:
        return f"{_release_host(self.org_url)}/{self._project_path}/_apis/release"

    def get_release_definitions_by_name(self, search_text: str) -> list:
        data = self._get(f"{self._release_api}/definitions", params={"searchText": search_text})
        return (data or {}).get("value", [])

    def get_releases_by_definition(self, definition_id: str | None, search_text: str) -> list:
        params = {"searchText": search_text}
        if definition_id is not None:
            params["definitionId"] = definition_id
        data = self._get(f"{self._release_api}/releases", params=params)
        return (data or {}).get("value", [])

    def get_release_by_id(self, release_id: str, expand: str | None = None) -> dict:
        params = {"$expand": expand} if expand else None
        return self._get(f"{self._release_api}/releases/{release_id}", params=params) or {}

    def get_release_approvals(self, release_id: str) -> list:
        params = {"releaseIdsFilter": release_id, "statusFilter": "all"}
        data = self._get(f"{self._release_api}/approvals", params=params)
        return (data or {}).get("value", [])
