"""Reduce raw approval records to one representative approval per gate.

Azure DevOps keeps every approval attempt: re-requested, rejected, canceled
and superseded records all come back for the same environment and phase.
Only one of them is shown. Two selection policies exist and are kept apart
on purpose, because the UAT and production reports pick differently for
post-deployment gates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from relscope_core.models import (
    GLYPH_FAILURE,
    GLYPH_NEUTRAL,
    GLYPH_PENDING,
    GLYPH_SUCCESS,
    POST_DEPLOY,
    PRE_DEPLOY,
    ApprovalRecord,
)
from relscope_core.utils.dates import sort_key

Selector = Callable[[Sequence[ApprovalRecord], str], "ApprovalRecord | None"]

_STATUS_GLYPHS = {
    "pending": GLYPH_PENDING,
    "approved": GLYPH_SUCCESS,
    "rejected": GLYPH_FAILURE,
}
_CANCEL_STATUSES = ("canceled", "cancelled", "rejected")


def status_glyph(status: str) -> str:
    return _STATUS_GLYPHS.get(status, GLYPH_NEUTRAL)


def _latest(records: Sequence[ApprovalRecord]) -> ApprovalRecord | None:
    # sorted() is stable: equal timestamps keep provider order, last one wins.
    ordered = sorted(records, key=lambda a: sort_key(a.modified_on))
    return ordered[-1] if ordered else None


def _partition(approvals: Sequence[ApprovalRecord], phase: str) -> list[ApprovalRecord]:
    return [a for a in approvals if a.phase == phase]


def select_latest_approved(approvals: Sequence[ApprovalRecord], phase: str) -> ApprovalRecord | None:
    """Latest approved record in the phase, else the latest record of any status."""
    partition = _partition(approvals, phase)
    if not partition:
        return None
    approved = [a for a in partition if a.status == "approved"]
    return _latest(approved) or _latest(partition)


def select_cancel_priority(approvals: Sequence[ApprovalRecord], phase: str) -> ApprovalRecord | None:
    """Latest canceled/rejected record first, so the report shows who stopped the deployment."""
    partition = _partition(approvals, phase)
    if not partition:
        return None
    stopped = [a for a in partition if a.status in _CANCEL_STATUSES]
    approved = [a for a in partition if a.status == "approved"]
    return _latest(stopped) or _latest(approved) or _latest(partition)


@dataclass(frozen=True)
class ApprovalPolicy:
    name: str
    pre_deploy: Selector
    post_deploy: Selector

    def select(self, approvals: Sequence[ApprovalRecord], phase: str) -> ApprovalRecord | None:
        selector = self.pre_deploy if phase == PRE_DEPLOY else self.post_deploy
        return selector(approvals, phase)


UAT_POLICY = ApprovalPolicy("uat", pre_deploy=select_latest_approved, post_deploy=select_cancel_priority)
PRODUCTION_POLICY = ApprovalPolicy("production", pre_deploy=select_latest_approved, post_deploy=select_latest_approved)


def select_representative(
    approvals: Sequence[ApprovalRecord],
    phase: str,
    policy: ApprovalPolicy = PRODUCTION_POLICY,
) -> ApprovalRecord | None:
    """Pick the approval to display for one gate; None means "pending, no time"."""
    if phase not in (PRE_DEPLOY, POST_DEPLOY):
        raise ValueError(f"Unknown approval phase: {phase!r}")
    return policy.select(approvals, phase)
