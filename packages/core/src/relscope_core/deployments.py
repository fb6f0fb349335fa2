"""Per-environment deployment tables for the UAT and production reports.

Environments and approvals are matched to a fixed set of stage slots
(``MY.DEV``, ``MY.UAT`` ...). Environment records are matched by substring
of their name; approval records by an exact alias of their environment
name. The two report variants differ in slots, status wording, and
approval policy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Sequence

from relscope_core.approvals import PRODUCTION_POLICY, UAT_POLICY, ApprovalPolicy, status_glyph
from relscope_core.models import (
    GLYPH_CANCELED,
    GLYPH_FAILURE,
    GLYPH_NEUTRAL,
    GLYPH_PAUSED,
    GLYPH_PENDING,
    GLYPH_SUCCESS,
    NOT_AVAILABLE,
    POST_DEPLOY,
    PRE_DEPLOY,
    UNKNOWN,
    ApprovalRecord,
    ApprovalRow,
    BuildRecord,
    EnvironmentRecord,
    EnvironmentSummary,
    ReleaseRecord,
)
from relscope_core.utils.dates import format_local_date, format_local_datetime, sort_key

_VERSION_RE = re.compile(r"v?\d+\.\d+\.\d+")
_BRANCH_PREFIX = "refs/heads/"


@dataclass(frozen=True)
class StageSlot:
    key: str
    heading: str
    matches: Callable[[str], bool]  # receives the lower-cased environment name
    aliases: tuple[str, ...]  # upper-cased approval environment names
    production: bool = False


def _is_uat(name: str) -> bool:
    return "uat" in name and "stage" not in name


UAT_SLOTS = (
    StageSlot("MY.DEV", "MY.DEV", lambda n: "my.dev" in n or "mydev" in n, ("MY.DEV", "DEV")),
    StageSlot("MY.UAT", "MY.UAT", _is_uat, ("MY.UAT", "UAT")),
)

_PRODUCTION_ALIASES = ("MY.FWC", "FWC", "PRODUCTION", "MY.PRODUCTION", "PROD", "MY.PROD")

PRODUCTION_SLOTS = (
    StageSlot("MY.DEV", "MY.DEV", lambda n: "dev" in n and "uat" not in n and "prod" not in n, ("MY.DEV", "DEV")),
    StageSlot("MY.UAT", "MY.UAT", _is_uat, ("MY.UAT", "UAT")),
    StageSlot("MY.STG", "MY.STG", lambda n: "stg" in n or "stage" in n, ("MY.STG", "STG", "STAGE")),
    StageSlot(
        "MY.FWC",
        "MY.FWC (Production)",
        lambda n: "prod" in n or "fwc" in n,
        _PRODUCTION_ALIASES,
        production=True,
    ),
)


def find_environment(environments: Sequence[EnvironmentRecord], slot: StageSlot) -> EnvironmentRecord | None:
    return next((e for e in environments if slot.matches(e.name.lower())), None)


def group_approvals(approvals: Sequence[ApprovalRecord], slots: Sequence[StageSlot]) -> dict[str, list[ApprovalRecord]]:
    """Bucket approvals by slot key; approvals for unlisted environments are dropped."""
    grouped: dict[str, list[ApprovalRecord]] = {slot.key: [] for slot in slots}
    for approval in approvals:
        env_name = (approval.environment_name or "").upper()
        slot = next((s for s in slots if env_name in s.aliases), None)
        if slot is not None:
            grouped[slot.key].append(approval)
    return grouped


def has_completed(env: EnvironmentRecord | None) -> bool:
    return env is not None and env.deployment_completed not in ("", NOT_AVAILABLE)


# ---------------------------------------------------------------------------
# Deployment status wording
# ---------------------------------------------------------------------------


def uat_deployment_status(env: EnvironmentRecord | None) -> tuple[str, str]:
    status = env.status if env is not None else None
    if status == "succeeded":
        return GLYPH_SUCCESS, "Successfully deployed"
    if status == "failed":
        return GLYPH_FAILURE, "Deployment failed"
    if status in ("canceled", "cancelled"):
        return GLYPH_CANCELED, "Deployment canceled"
    if status in ("inProgress", "running"):
        return GLYPH_PENDING, "Deployment in progress"
    if status and status != NOT_AVAILABLE:
        return GLYPH_PENDING, status
    return GLYPH_NEUTRAL, "Not deployed"


def production_deployment_status(env: EnvironmentRecord | None) -> tuple[str, str]:
    """Like the UAT wording, but a recorded completion time counts as deployed unless the stage failed."""
    if env is None or env.status in ("", NOT_AVAILABLE):
        return GLYPH_NEUTRAL, "Not deployed"
    deployed = has_completed(env)
    if env.status == "succeeded" or (deployed and env.status != "failed"):
        return GLYPH_SUCCESS, "Successfully deployed"
    if env.status == "failed":
        return GLYPH_FAILURE, "Deployment failed"
    if env.status in ("inProgress", "running"):
        return GLYPH_PENDING, "Deployment in progress"
    if env.status == "notStarted":
        return GLYPH_PAUSED, "Not started"
    if env.status in ("canceled", "cancelled"):
        return GLYPH_CANCELED, "Deployment canceled"
    return GLYPH_PENDING, env.status


# ---------------------------------------------------------------------------
# Approval rows
# ---------------------------------------------------------------------------


def _decided_row(label: str, approval: ApprovalRecord) -> ApprovalRow:
    return ApprovalRow(
        label=label,
        approver=approval.approver,
        status=f"{status_glyph(approval.status)} {approval.status}",
        time=format_local_datetime(approval.modified_on),
    )


def _uat_rows(approvals: Sequence[ApprovalRecord], policy: ApprovalPolicy) -> tuple[ApprovalRow, ...]:
    rows = []
    for label, phase in (("Pre-deployment", PRE_DEPLOY), ("Post-deployment", POST_DEPLOY)):
        selected = policy.select(approvals, phase)
        if selected is None:
            rows.append(ApprovalRow(label, "Pending", "-", "-"))
        elif selected.status == "pending":
            rows.append(ApprovalRow(label, "Pending", f"{GLYPH_PENDING} pending", "-"))
        else:
            rows.append(_decided_row(label, selected))
    return tuple(rows)


def _production_rows(
    approvals: Sequence[ApprovalRecord], policy: ApprovalPolicy, production: bool
) -> tuple[ApprovalRow, ...]:
    deploy_label = "Deployment" if production else "Pre-deployment (Deploy Permission)"
    selected = policy.select(approvals, PRE_DEPLOY)
    if selected is None:
        rows = [ApprovalRow(deploy_label, "No approval required", f"{GLYPH_SUCCESS} automatic", "-")]
    elif selected.status == "pending":
        rows = [ApprovalRow(deploy_label, "Pending approval", f"{GLYPH_PENDING} pending", "-")]
    else:
        rows = [_decided_row(deploy_label, selected)]

    # Production has no post-deployment testing sign-off.
    if not production:
        signoff_label = "Post-deployment (Testing Sign-off)"
        selected = policy.select(approvals, POST_DEPLOY)
        if selected is None:
            rows.append(ApprovalRow(signoff_label, "Pending validation", f"{GLYPH_PENDING} pending", "-"))
        elif selected.status == "pending":
            approver = selected.approver if selected.approver != UNKNOWN else "Tester"
            rows.append(ApprovalRow(signoff_label, approver, f"{GLYPH_PENDING} pending", "-"))
        else:
            rows.append(_decided_row(signoff_label, selected))
    return tuple(rows)


def uat_environment_sections(
    environments: Sequence[EnvironmentRecord],
    approvals: Sequence[ApprovalRecord],
    policy: ApprovalPolicy = UAT_POLICY,
) -> tuple[EnvironmentSummary, ...]:
    grouped = group_approvals(approvals, UAT_SLOTS)
    sections = []
    for slot in UAT_SLOTS:
        icon, text = uat_deployment_status(find_environment(environments, slot))
        sections.append(EnvironmentSummary(slot.heading, icon, text, _uat_rows(grouped[slot.key], policy)))
    return tuple(sections)


def production_environment_sections(
    environments: Sequence[EnvironmentRecord],
    approvals: Sequence[ApprovalRecord],
    policy: ApprovalPolicy = PRODUCTION_POLICY,
) -> tuple[EnvironmentSummary, ...]:
    grouped = group_approvals(approvals, PRODUCTION_SLOTS)
    sections = []
    for slot in PRODUCTION_SLOTS:
        icon, text = production_deployment_status(find_environment(environments, slot))
        rows = _production_rows(grouped[slot.key], policy, slot.production)
        sections.append(EnvironmentSummary(slot.heading, icon, text, rows))
    return tuple(sections)


# ---------------------------------------------------------------------------
# Report header values
# ---------------------------------------------------------------------------


def deployment_date(
    environments: Sequence[EnvironmentRecord], release: ReleaseRecord, matches: Callable[[str], bool]
) -> str:
    """Completion date of the first matching environment, else the release creation date."""
    env = next((e for e in environments if matches(e.name.lower())), None)
    if has_completed(env):
        return format_local_date(env.deployment_completed)
    return format_local_date(release.created_on)


def production_deployment_time(approvals: Sequence[ApprovalRecord]) -> str:
    """When the production deployment was approved, in 12-hour local time."""
    approved = [
        a
        for a in approvals
        if (a.environment_name or "").upper() in _PRODUCTION_ALIASES and a.phase == PRE_DEPLOY and a.status == "approved"
    ]
    if not approved:
        return NOT_AVAILABLE
    latest = max(approved, key=lambda a: sort_key(a.modified_on))
    return format_local_datetime(latest.modified_on, twelve_hour=True)


def target_branch(build: BuildRecord | None, release: ReleaseRecord | None) -> str:
    """Prefer the build's source branch, then the release artifact branch."""
    candidates = (
        build.source_branch if build is not None else None,
        release.target_branch if release is not None else None,
    )
    raw = next((c for c in candidates if c and c not in (NOT_AVAILABLE, UNKNOWN)), "")
    if not raw:
        return UNKNOWN
    return raw[len(_BRANCH_PREFIX) :] if raw.startswith(_BRANCH_PREFIX) else raw


def version_from_branch(branch: str) -> str:
    """``release/v2.2.0`` → ``v2.2.0``; "Unknown" when the branch carries no version."""
    match = _VERSION_RE.search(branch or "")
    if not match:
        return UNKNOWN
    version = match.group(0)
    return version if version.startswith("v") else f"v{version}"
