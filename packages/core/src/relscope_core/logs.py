"""Best-effort quality-gate signals mined from free-text build logs.

Each health-check field has its own rule: a pure function from one log blob
to a patch ``{field: display_string}``. Rules never look at each other, so
any one of them can be tested or replaced in isolation. Patches from
successive logs are merged left to right; a later non-empty value for the
same field overwrites the earlier one.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Callable, Iterator

from relscope_core.errors import TransportError
from relscope_core.models import (
    GLYPH_CANCELED,
    GLYPH_FAILURE,
    GLYPH_SUCCESS,
    GLYPH_WARNING,
    NO_TEST_RESULTS,
    NOT_AVAILABLE,
    CoverageSummary,
    HealthCheckReport,
    TestSummary,
)

logger = logging.getLogger(__name__)

Rule = Callable[[str], dict]

_AUDIT_TRIGGERS = ("npm audit", "yarn audit", "pnpm audit")
_TYPE_CHECK_TRIGGERS = ("tsc", "typecheck", "TypeScript")
_TYPE_CHECK_COMPLETION = ("Compiled successfully", "compiled successfully", "No errors found", "Type check passed")

_VULN_RE = re.compile(r"(\d+) vulnerabilit(?:y|ies)")
_LINT_ERRORS_RE = re.compile(r"(\d+) errors?")
_LINT_WARNINGS_RE = re.compile(r"(\d+) warnings?")
_TSC_FOUND_RE = re.compile(r"Found (\d+) errors?")
_ZERO_ERROR_RE = re.compile(r"\b0 errors?\b")

_TEST_FILES_RE = re.compile(r"Test Files.*passed.*skipped")
_TESTS_RE = re.compile(r"Tests.*passed.*skipped")
_DURATION_RE = re.compile(r"Duration.*s")
_COVERAGE_ANCHOR = "Coverage summary"
_COVERAGE_FIELDS = ("statements", "branches", "functions", "lines")
_COVERAGE_RES = {name: re.compile(rf"{name.capitalize()}\s*:\s*(\d+\.?\d*%\s*\([^)]+\))") for name in _COVERAGE_FIELDS}

BUILD_RESULT_DISPLAY = {
    "succeeded": f"{GLYPH_SUCCESS} Build completed successfully",
    "failed": f"{GLYPH_FAILURE} Build failed",
    "canceled": f"{GLYPH_CANCELED} Build canceled",
    "partiallySucceeded": f"{GLYPH_WARNING} Build partially succeeded",
}

_NOT_FOUND = HealthCheckReport()


# ---------------------------------------------------------------------------
# Health-check rules
# ---------------------------------------------------------------------------


def security_audit_rule(log: str) -> dict:
    if not any(trigger in log for trigger in _AUDIT_TRIGGERS):
        return {}
    if "found 0 vulnerabilities" in log:
        return {"security_audit": f"{GLYPH_SUCCESS} No vulnerabilities found"}
    match = _VULN_RE.search(log)
    if match:
        return {"security_audit": f"{GLYPH_WARNING} {match.group(1)} vulnerabilities found"}
    return {"security_audit": f"{GLYPH_WARNING} Vulnerabilities detected"}


def environment_check_rule(log: str) -> dict:
    if "env" not in log or not ("up to date" in log or "Check" in log):
        return {}
    if "succeeded" in log or GLYPH_SUCCESS in log:
        return {"environment_check": f"{GLYPH_SUCCESS} Environment variables validated"}
    return {"environment_check": f"{GLYPH_FAILURE} Environment validation failed"}


def formatting_rule(log: str) -> dict:
    if "prettier" not in log:
        return {}
    if "All matched files use Prettier code style" in log or "error" not in log:
        return {"formatting": f"{GLYPH_SUCCESS} Code formatting validated"}
    return {"formatting": f"{GLYPH_FAILURE} Code formatting issues found"}


def lint_rule(log: str) -> dict:
    if "eslint" not in log:
        return {}
    if "0 errors, 0 warnings" in log or ("error" not in log and "warning" not in log):
        return {"lint": f"{GLYPH_SUCCESS} No linting errors"}
    errors = _LINT_ERRORS_RE.search(log)
    warnings = _LINT_WARNINGS_RE.search(log)
    error_count = errors.group(1) if errors else "0"
    warning_count = warnings.group(1) if warnings else "0"
    return {"lint": f"{GLYPH_WARNING} {error_count} errors, {warning_count} warnings"}


def type_check_rule(log: str) -> dict:
    if not any(trigger in log for trigger in _TYPE_CHECK_TRIGGERS):
        return {}
    if "Found 0 errors" in log:
        return {"type_check": f"{GLYPH_SUCCESS} No TypeScript errors"}
    found = _TSC_FOUND_RE.search(log)
    if found:
        return {"type_check": f"{GLYPH_FAILURE} {found.group(1)} TypeScript errors found"}
    if "error" in log and not _ZERO_ERROR_RE.search(log):
        return {"type_check": f"{GLYPH_FAILURE} TypeScript errors found"}
    if any(phrase in log for phrase in _TYPE_CHECK_COMPLETION):
        return {"type_check": f"{GLYPH_SUCCESS} No TypeScript errors"}
    # Trigger seen but no verdict: never fall back to "not found".
    return {"type_check": f"{GLYPH_WARNING} TypeScript check inconclusive"}


def build_outcome_rule(log: str) -> dict:
    if "succeeded" in log:
        return {"build_outcome": BUILD_RESULT_DISPLAY["succeeded"]}
    if "failed" in log:
        return {"build_outcome": BUILD_RESULT_DISPLAY["failed"]}
    return {}


HEALTH_RULES: tuple[Rule, ...] = (
    security_audit_rule,
    environment_check_rule,
    formatting_rule,
    lint_rule,
    type_check_rule,
    build_outcome_rule,
)


def scan(log: str) -> dict:
    """Apply every health rule to one log blob. Pure; never raises."""
    patch: dict = {}
    for rule in HEALTH_RULES:
        patch.update(rule(log or ""))
    return patch


def merge_health(report: HealthCheckReport, patch: dict) -> HealthCheckReport:
    values = {name: value for name, value in patch.items() if value}
    return dataclasses.replace(report, **values) if values else report


def missing_health_fields(report: HealthCheckReport) -> list[str]:
    return [f.name for f in dataclasses.fields(report) if getattr(report, f.name) == getattr(_NOT_FOUND, f.name)]


def apply_build_result(report: HealthCheckReport, result: str | None) -> HealthCheckReport:
    """Let the authoritative build result override what the logs suggested.

    A succeeded build cannot have failed to compile, so a failing type-check
    verdict is downgraded to a warning in that case.
    """
    display = BUILD_RESULT_DISPLAY.get(result or "")
    if display is None:
        return report
    report = dataclasses.replace(report, build_outcome=display)
    if result == "succeeded" and report.type_check.startswith(GLYPH_FAILURE):
        report = dataclasses.replace(report, type_check=GLYPH_WARNING + report.type_check[len(GLYPH_FAILURE) :])
    return report


# ---------------------------------------------------------------------------
# Tests and coverage
# ---------------------------------------------------------------------------


def extract_test_results(log: str) -> tuple[TestSummary, CoverageSummary]:
    """Pull vitest-style test counts and istanbul coverage percentages out of one log."""
    log = log or ""
    test_files = _TEST_FILES_RE.search(log)
    tests = _TESTS_RE.search(log)
    duration = _DURATION_RE.search(log)
    testing = TestSummary(
        test_files=test_files.group(0) if test_files else NO_TEST_RESULTS,
        tests=tests.group(0) if tests else NO_TEST_RESULTS,
        duration=duration.group(0) if duration else NOT_AVAILABLE,
    )

    coverage_values = {}
    if _COVERAGE_ANCHOR in log:
        for name, pattern in _COVERAGE_RES.items():
            match = pattern.search(log)
            if match:
                coverage_values[name] = match.group(1).strip()
    return testing, CoverageSummary(**coverage_values)


def _merge_found(current, found, sentinels: dict):
    values = {
        name: getattr(found, name) for name, sentinel in sentinels.items() if getattr(found, name) != sentinel
    }
    return dataclasses.replace(current, **values) if values else current


def _tests_complete(testing: TestSummary) -> bool:
    return testing.tests != NO_TEST_RESULTS


def _coverage_complete(coverage: CoverageSummary) -> bool:
    return all(getattr(coverage, name) != NOT_AVAILABLE for name in _COVERAGE_FIELDS)


# ---------------------------------------------------------------------------
# Log collection
# ---------------------------------------------------------------------------


class BuildLogs:
    """Lazy, memoised view over one build's logs.

    Candidate ids are the timeline's own log ids followed by the configured
    fallback ids. Unreadable logs are skipped and remembered so they are not
    retried by a second scan over the same build.
    """

    def __init__(self, client, build_id: str, fallback_log_ids: list[str] | None = None):
        self._client = client
        self._build_id = build_id
        self._fallback_ids = [str(i) for i in (fallback_log_ids or [])]
        self._timeline_ids: list[str] | None = None
        self._contents: dict[str, str | None] = {}

    def _load_timeline_ids(self) -> list[str]:
        if self._timeline_ids is None:
            try:
                timeline = self._client.get_build_timeline(self._build_id)
            except TransportError as e:
                logger.warning("Could not read timeline for build %s: %s", self._build_id, e)
                timeline = {}
            ids = []
            for record in timeline.get("records") or []:
                log_id = (record.get("log") or {}).get("id")
                if log_id is not None and str(log_id) not in ids:
                    ids.append(str(log_id))
            self._timeline_ids = ids
            logger.debug("Build %s timeline lists %d log(s)", self._build_id, len(ids))
        return self._timeline_ids

    def candidate_ids(self, include_fallback: bool = True) -> list[str]:
        ids = list(self._load_timeline_ids())
        if include_fallback:
            ids += [i for i in self._fallback_ids if i not in ids]
        return ids

    def content(self, log_id: str) -> str | None:
        if log_id not in self._contents:
            try:
                self._contents[log_id] = self._client.get_log_content(self._build_id, log_id)
            except TransportError as e:
                logger.debug("Skipping unreadable log %s of build %s: %s", log_id, self._build_id, e)
                self._contents[log_id] = None
        return self._contents[log_id]

    def iter_logs(self, include_fallback: bool = True) -> Iterator[tuple[str, str]]:
        for log_id in self.candidate_ids(include_fallback):
            text = self.content(log_id)
            if text is not None:
                yield log_id, text


def collect_health_checks(logs: BuildLogs) -> HealthCheckReport:
    """Scan timeline logs, then fallback ids, until every field has a verdict."""
    report = HealthCheckReport()
    scanned = 0

    for _, text in logs.iter_logs():
        scanned += 1
        report = merge_health(report, scan(text))
        if not missing_health_fields(report):
            return report

    missing = missing_health_fields(report)
    if missing:
        logger.info("No log signal for: %s (scanned %d log(s))", ", ".join(missing), scanned)
    return report


def collect_test_results(logs: BuildLogs) -> tuple[TestSummary, CoverageSummary]:
    """Take the first log that reports tests, and fill coverage field by field."""
    coverage_sentinels = {name: NOT_AVAILABLE for name in _COVERAGE_FIELDS}
    testing, coverage = TestSummary(), CoverageSummary()

    for _, text in logs.iter_logs():
        found_testing, found_coverage = extract_test_results(text)
        if not _tests_complete(testing) and _tests_complete(found_testing):
            testing = found_testing
        coverage = _merge_found(coverage, found_coverage, coverage_sentinels)
        if _tests_complete(testing) and _coverage_complete(coverage):
            break
    return testing, coverage
