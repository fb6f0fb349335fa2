"""Build lookup by ambiguous build number or by id.

Build numbers (``YYYYMMDD.N``) are not globally unique across pipelines, and
the provider's time-filtered search is best-effort. Lookup therefore runs a
fixed sequence of search phases:

    exact day  →  ±1 day window  →  N most recent builds

Each phase is an independent attempt: a transport error or an empty result
moves on to the next phase. Every phase applies the same tie-break chain
(succeeded on a mainline branch → succeeded → provider order).
"""

from __future__ import annotations

import logging
import re
from datetime import date, timedelta
from typing import Callable

from relscope_core.errors import FormatError, NotFoundError, TransportError
from relscope_core.models import NOT_AVAILABLE, BuildArtifact, BuildRecord
from relscope_core.utils.dates import duration_between

logger = logging.getLogger(__name__)

BUILD_NUMBER_RE = re.compile(r"^(\d{8})\.(\d+)$")
_PR_REF_RE = re.compile(r"refs/pull/(\d+)/merge")
_BRANCH_PREFIX = "refs/heads/"
_PR_MESSAGE_RE = re.compile(r"\bPR\s*#?(\d+)", re.IGNORECASE)
_MAINLINE_MARKERS = ("main", "master", "release/")

Tier = Callable[[list], "dict | None"]


def is_build_number(identifier: str) -> bool:
    return bool(BUILD_NUMBER_RE.match(identifier.strip()))


def parse_build_date(build_number: str) -> date:
    """Return the calendar day encoded in a ``YYYYMMDD.N`` build number."""
    match = BUILD_NUMBER_RE.match(build_number.strip())
    if not match:
        raise FormatError(f"Invalid build number format: {build_number}. Expected format: YYYYMMDD.N")
    digits = match.group(1)
    try:
        return date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        raise FormatError(f"Build number {build_number} does not start with a valid date.")


# ---------------------------------------------------------------------------
# Tie-break tiers: each maps a candidate list to one build or None.
# ---------------------------------------------------------------------------


def _is_mainline(build: dict) -> bool:
    branch = build.get("sourceBranch") or ""
    return any(marker in branch for marker in _MAINLINE_MARKERS)


def _first_succeeded_mainline(candidates: list) -> dict | None:
    return next((b for b in candidates if b.get("result") == "succeeded" and _is_mainline(b)), None)


def _first_succeeded(candidates: list) -> dict | None:
    return next((b for b in candidates if b.get("result") == "succeeded"), None)


def _first(candidates: list) -> dict | None:
    return candidates[0] if candidates else None


TIE_BREAK_TIERS: tuple[Tier, ...] = (_first_succeeded_mainline, _first_succeeded, _first)


def select_preferred(candidates: list) -> dict | None:
    """Pick one build among same-numbered candidates; None when the list is empty."""
    for tier in TIE_BREAK_TIERS:
        chosen = tier(candidates)
        if chosen is not None:
            return chosen
    return None


# ---------------------------------------------------------------------------
# Field derivation
# ---------------------------------------------------------------------------


def _display_name(raw: dict) -> str:
    for key in ("requestedFor", "requestedBy"):
        person = raw.get(key) or {}
        if person.get("displayName"):
            return person["displayName"]
    for key in ("requestedFor", "requestedBy"):
        person = raw.get(key) or {}
        if person.get("name"):
            return person["name"]
    return NOT_AVAILABLE


def normalize_branch(source_branch: str | None) -> tuple[str, str | None]:
    """Return ``(display_branch, pr_number)`` for a raw source ref."""
    branch = source_branch or NOT_AVAILABLE
    pr_match = _PR_REF_RE.search(branch)
    if pr_match:
        return f"PR #{pr_match.group(1)}", pr_match.group(1)
    if branch.startswith(_BRANCH_PREFIX):
        return branch[len(_BRANCH_PREFIX) :], None
    return branch, None


def _trigger_pr(raw: dict, ref_pr: str | None) -> str:
    if ref_pr:
        return f"#{ref_pr}"
    trigger = raw.get("triggerInfo") or {}
    if trigger.get("pr.number"):
        return f"#{trigger['pr.number']}"
    message_match = _PR_MESSAGE_RE.search(trigger.get("ci.message") or "")
    if message_match:
        return f"#{message_match.group(1)}"
    return NOT_AVAILABLE


def extract_build_info(raw: dict, build_url: str = NOT_AVAILABLE) -> BuildRecord:
    """Map a raw provider build into a BuildRecord with derived fields."""
    start_time = raw.get("startTime") or NOT_AVAILABLE
    finish_time = raw.get("finishTime") or NOT_AVAILABLE
    duration, duration_seconds = duration_between(start_time, finish_time)
    source_branch, ref_pr = normalize_branch(raw.get("sourceBranch"))
    trigger = raw.get("triggerInfo") or {}

    return BuildRecord(
        id=str(raw.get("id") or NOT_AVAILABLE),
        number=raw.get("buildNumber") or NOT_AVAILABLE,
        status=raw.get("status") or NOT_AVAILABLE,
        result=raw.get("result") or NOT_AVAILABLE,
        start_time=start_time,
        finish_time=finish_time,
        duration=duration,
        duration_seconds=duration_seconds,
        source_branch=source_branch,
        requested_by=_display_name(raw),
        trigger_info=trigger.get("ci.message") or raw.get("reason") or NOT_AVAILABLE,
        trigger_pr=_trigger_pr(raw, ref_pr),
        source_commit=raw.get("sourceVersion") or NOT_AVAILABLE,
        build_url=build_url,
    )


def _artifact_size(properties: dict) -> str | None:
    raw_size = properties.get("artifactsize")
    if raw_size in (None, ""):
        return None
    try:
        size_bytes = float(raw_size)
    except (TypeError, ValueError):
        return None
    return f"{size_bytes / 1024 / 1024:.1f} MB"


def list_artifacts(client, build_id: str) -> list[BuildArtifact]:
    """Return the build's published artifacts; an unreachable list is treated as empty."""
    try:
        raw_artifacts = client.get_build_artifacts(build_id)
    except TransportError as e:
        logger.warning("Could not list artifacts for build %s: %s", build_id, e)
        return []
    artifacts = []
    for artifact in raw_artifacts:
        resource = artifact.get("resource") or {}
        artifacts.append(
            BuildArtifact(
                name=artifact.get("name") or NOT_AVAILABLE,
                type=resource.get("type") or NOT_AVAILABLE,
                size=_artifact_size(resource.get("properties") or {}),
            )
        )
    return artifacts


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class BuildResolver:
    """Finds a single build record by number or id."""

    def __init__(self, client, recent_builds_top: int = 100):
        self._client = client
        self._recent_builds_top = recent_builds_top

    def _search_phases(self, day: date) -> list[tuple[str, dict]]:
        next_day = day + timedelta(days=1)
        return [
            ("exact day", {"min_time": day.isoformat(), "max_time": next_day.isoformat()}),
            (
                "expanded window",
                {"min_time": (day - timedelta(days=1)).isoformat(), "max_time": (day + timedelta(days=2)).isoformat()},
            ),
            ("recent builds", {"top": self._recent_builds_top}),
        ]

    def resolve_by_number(self, build_number: str) -> BuildRecord:
        build_number = build_number.strip()
        day = parse_build_date(build_number)

        last_error: TransportError | None = None
        any_phase_answered = False

        for label, search in self._search_phases(day):
            try:
                builds = self._client.list_builds(**search)
            except TransportError as e:
                logger.warning("Build search (%s) failed, trying next strategy: %s", label, e)
                last_error = e
                continue

            any_phase_answered = True
            matches = [b for b in builds if b.get("buildNumber") == build_number]
            logger.info("Build search (%s): %d build(s) numbered %s", label, len(matches), build_number)
            for b in matches:
                logger.debug(
                    "  candidate id=%s result=%s branch=%s requested by %s",
                    b.get("id"),
                    b.get("result"),
                    b.get("sourceBranch"),
                    (b.get("requestedFor") or {}).get("displayName", "Unknown"),
                )

            selected = select_preferred(matches)
            if selected is not None:
                logger.info("Selected build %s (id %s, %s)", build_number, selected.get("id"), selected.get("result"))
                return extract_build_info(selected, self._client.build_url(selected.get("id")))

        if not any_phase_answered and last_error is not None:
            raise last_error
        raise NotFoundError(
            f"Build number {build_number} not found between {day - timedelta(days=1)} and "
            f"{day + timedelta(days=2)} or in the {self._recent_builds_top} most recent builds.",
            remediation="Verify the build number exists and that you have access to its pipeline.",
        )

    def resolve_by_id(self, build_id: str) -> BuildRecord:
        build_id = str(build_id).strip()
        try:
            raw = self._client.get_build_by_id(build_id)
        except TransportError as e:
            raise NotFoundError(f"Build ID {build_id} not found or invalid: {e}") from e
        if not raw:
            raise NotFoundError(f"Build ID {build_id} not found or invalid.")
        return extract_build_info(raw, self._client.build_url(raw.get("id", build_id)))

    def resolve(self, identifier: str) -> BuildRecord:
        """Dispatch on shape: ``YYYYMMDD.N`` is a number, anything else an id."""
        identifier = identifier.strip()
        if is_build_number(identifier):
            return self.resolve_by_number(identifier)
        return self.resolve_by_id(identifier)
