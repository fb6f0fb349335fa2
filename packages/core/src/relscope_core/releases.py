"""Release lookup by name, plus its build, environments and approvals."""

from __future__ import annotations

import logging
import re

from relscope_core.errors import FormatError, NotFoundError, TransportError
from relscope_core.models import (
    NOT_AVAILABLE,
    POST_DEPLOY,
    PRE_DEPLOY,
    UNKNOWN,
    ApprovalRecord,
    EnvironmentRecord,
    ReleaseRecord,
)
from relscope_core.utils.dates import duration_between, sort_key

logger = logging.getLogger(__name__)

_TRAILING_COUNTER_RE = re.compile(r"[\s\-_.]*\d+$")
_BRANCH_PREFIX = "refs/heads/"
_COMPLETED_STEP_STATUSES = ("succeeded", "partiallySucceeded")

# Flat approvals carry the approver in different places depending on how
# the gate was resolved; the first non-empty one wins.
_FLAT_APPROVER_PATHS = (
    ("approvedBy", "displayName"),
    ("approver", "displayName"),
    ("approvedBy", "uniqueName"),
    ("approver", "uniqueName"),
)


def _nested(data: dict, *keys):
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _strip_branch(branch: str | None) -> str:
    if not branch:
        return UNKNOWN
    return branch[len(_BRANCH_PREFIX) :] if branch.startswith(_BRANCH_PREFIX) else branch


def _primary_artifact(raw_release: dict) -> dict:
    artifacts = raw_release.get("artifacts") or []
    if not artifacts:
        return {}
    return next((a for a in artifacts if a.get("isPrimary")), artifacts[0])


def associated_build_number(raw_release: dict) -> str:
    """Build number of the release's primary artifact, or "Unknown". Never raises."""
    artifact = _primary_artifact(raw_release)
    reference = artifact.get("definitionReference") or {}
    candidates = (
        _nested(reference, "version", "name"),
        _nested(reference, "buildNumber", "name"),
        artifact.get("alias"),
    )
    return next((str(c) for c in candidates if c), UNKNOWN)


def associated_build_id(raw_release: dict) -> str | None:
    reference = _primary_artifact(raw_release).get("definitionReference") or {}
    build_id = _nested(reference, "version", "id")
    return str(build_id) if build_id else None


def _target_branch(raw_release: dict) -> str:
    reference = _primary_artifact(raw_release).get("definitionReference") or {}
    branch = _nested(reference, "branch", "name") or _nested(reference, "branches", "name")
    return _strip_branch(branch)


def _environment_record(raw_env: dict) -> EnvironmentRecord:
    steps = sorted(raw_env.get("deploySteps") or [], key=lambda s: s.get("attempt") or 0)
    latest = steps[-1] if steps else {}
    started = latest.get("queuedOn") or NOT_AVAILABLE
    completed = NOT_AVAILABLE
    if latest.get("status") in _COMPLETED_STEP_STATUSES:
        completed = latest.get("lastModifiedOn") or NOT_AVAILABLE
    duration, _ = duration_between(started, completed)
    return EnvironmentRecord(
        id=str(raw_env.get("id", "")),
        name=raw_env.get("name") or UNKNOWN,
        status=raw_env.get("status") or NOT_AVAILABLE,
        rank=int(raw_env.get("rank") or 0),
        deployment_started=started,
        deployment_completed=completed,
        duration=duration,
    )


def _approval_record(raw: dict, environment_name: str, phase: str, approver: str) -> ApprovalRecord:
    return ApprovalRecord(
        id=str(raw.get("id", "")),
        approver=approver,
        status=raw.get("status") or "pending",
        created_on=raw.get("createdOn") or NOT_AVAILABLE,
        modified_on=raw.get("modifiedOn") or NOT_AVAILABLE,
        comment=raw.get("comments") or "",
        environment_name=environment_name,
        phase=phase,
    )


def _nested_approver(raw: dict) -> str:
    return (
        _nested(raw, "approvedBy", "displayName")
        or _nested(raw, "approver", "displayName")
        or UNKNOWN
    )


def _flat_approver(raw: dict) -> str:
    for path in _FLAT_APPROVER_PATHS:
        name = _nested(raw, *path)
        if name:
            return name
    return UNKNOWN


def approvals_from_environments(raw_release: dict) -> list[ApprovalRecord] | None:
    """Approvals from the per-environment structure; None when the release has no such structure."""
    environments = raw_release.get("environments")
    if not environments:
        return None
    if not any("preDeployApprovals" in env or "postDeployApprovals" in env for env in environments):
        return None

    approvals = []
    for env in environments:
        env_name = env.get("name") or UNKNOWN
        for key, phase in (("preDeployApprovals", PRE_DEPLOY), ("postDeployApprovals", POST_DEPLOY)):
            for raw in env.get(key) or []:
                if raw.get("isAutomated"):
                    continue
                approvals.append(_approval_record(raw, env_name, phase, _nested_approver(raw)))
    return approvals


def approvals_from_flat(raw_approvals: list) -> list[ApprovalRecord]:
    approvals = []
    for raw in raw_approvals:
        if raw.get("isAutomated"):
            continue
        env_name = _nested(raw, "releaseEnvironment", "name") or UNKNOWN
        phase = POST_DEPLOY if raw.get("approvalType") == POST_DEPLOY else PRE_DEPLOY
        approvals.append(_approval_record(raw, env_name, phase, _flat_approver(raw)))
    return approvals


class ReleaseResolver:
    """Finds a release by name and reads its deployment state."""

    def __init__(self, client):
        self._client = client

    def _definition_search_text(self, name: str) -> str:
        # "CSP-Release-42" is an instance of definition "CSP-Release".
        stripped = _TRAILING_COUNTER_RE.sub("", name).strip()
        return stripped or name

    def _find_release_id(self, name: str) -> str:
        definitions = self._client.get_release_definitions_by_name(self._definition_search_text(name))
        definition_ids = [d.get("id") for d in definitions] or [None]
        logger.info("Searching %d release definition(s) for %r", len(definitions), name)

        wanted = name.strip().lower()
        for definition_id in definition_ids:
            releases = self._client.get_releases_by_definition(definition_id, name)
            exact = [r for r in releases if (r.get("name") or "").strip().lower() == wanted]
            if exact:
                return str(exact[0]["id"])
        raise NotFoundError(
            f"Release {name!r} not found.",
            remediation="Check the release name (e.g. 'Release-42') and that you can see its pipeline.",
        )

    def fetch_raw(self, release_id: str) -> dict:
        return self._client.get_release_by_id(release_id)

    def to_record(self, raw: dict) -> ReleaseRecord:
        release_id = str(raw.get("id", ""))
        return ReleaseRecord(
            id=release_id,
            name=raw.get("name") or UNKNOWN,
            status=raw.get("status") or NOT_AVAILABLE,
            created_on=raw.get("createdOn") or NOT_AVAILABLE,
            created_by=_nested(raw, "createdBy", "displayName") or UNKNOWN,
            modified_on=raw.get("modifiedOn") or NOT_AVAILABLE,
            modified_by=_nested(raw, "modifiedBy", "displayName") or UNKNOWN,
            description=raw.get("description") or "",
            definition_name=_nested(raw, "releaseDefinition", "name") or UNKNOWN,
            build_number=associated_build_number(raw),
            target_branch=_target_branch(raw),
            release_url=self._client.release_url(release_id),
        )

    def resolve_by_name(self, name: str) -> tuple[ReleaseRecord, dict]:
        """Return the release record and the raw release it was built from.

        Transport failures propagate unchanged: there is no alternative
        lookup path for a release, so the caller needs the real cause.
        """
        if not name or not name.strip():
            raise FormatError("A release name is required, e.g. 'Release-42'.")
        release_id = self._find_release_id(name)
        raw = self.fetch_raw(release_id)
        if not raw:
            raise NotFoundError(f"Release {name!r} not found.")
        return self.to_record(raw), raw

    def associated_build_number(self, release: ReleaseRecord) -> str:
        return release.build_number or UNKNOWN

    def environments(self, release_id: str, raw_release: dict | None = None) -> list[EnvironmentRecord]:
        raw = raw_release if raw_release is not None else self.fetch_raw(release_id)
        records = [_environment_record(env) for env in raw.get("environments") or []]
        return sorted(records, key=lambda e: e.rank)

    def approvals(self, release_id: str, raw_release: dict | None = None) -> list[ApprovalRecord]:
        raw = raw_release
        if raw is None:
            try:
                raw = self.fetch_raw(release_id)
            except TransportError as e:
                logger.warning("Could not read release %s for approvals: %s", release_id, e)
                raw = {}

        nested = approvals_from_environments(raw)
        if nested is not None:
            return sorted(nested, key=lambda a: sort_key(a.modified_on))

        logger.info("Release %s has no nested approvals; using the approvals endpoint", release_id)
        return approvals_from_flat(self._client.get_release_approvals(release_id))
