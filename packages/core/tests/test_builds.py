"""Tests for build lookup, tie-breaking and field derivation."""

from unittest.mock import MagicMock

import pytest

from relscope_core.builds import (
    BuildResolver,
    extract_build_info,
    is_build_number,
    list_artifacts,
    normalize_branch,
    parse_build_date,
    select_preferred,
)
from relscope_core.errors import FormatError, NotFoundError, TransportError


def _raw_build(build_id, number="20250101.1", result="succeeded", branch="refs/heads/main", **extra):
    return {
        "id": build_id,
        "buildNumber": number,
        "status": "completed",
        "result": result,
        "sourceBranch": branch,
        "requestedFor": {"displayName": "Ada Lovelace"},
        "startTime": "2025-01-01T00:00:00Z",
        "finishTime": "2025-01-01T00:01:05Z",
        "sourceVersion": "abc123",
        **extra,
    }


def _client(*list_results):
    """A client whose list_builds returns (or raises) each item in turn."""
    client = MagicMock()
    client.list_builds.side_effect = list(list_results)
    client.build_url.side_effect = lambda build_id: f"https://dev.azure.com/org/proj/_build/results?buildId={build_id}"
    return client


class TestBuildNumberShape:
    def test_valid_build_number(self):
        assert is_build_number("20250101.1") is True

    def test_build_id_is_not_a_number(self):
        assert is_build_number("156536") is False

    def test_parse_build_date(self):
        assert parse_build_date("20250131.7").isoformat() == "2025-01-31"

    def test_bad_shape_raises_format_error(self):
        with pytest.raises(FormatError):
            parse_build_date("2025-01-01.1")

    def test_impossible_date_raises_format_error(self):
        with pytest.raises(FormatError):
            parse_build_date("20251399.1")


class TestSelectPreferred:
    def test_succeeded_main_wins_regardless_of_order(self):
        good = _raw_build(1, result="succeeded", branch="refs/heads/main")
        bad = _raw_build(2, result="failed", branch="refs/heads/feature/x")
        assert select_preferred([good, bad]) is good
        assert select_preferred([bad, good]) is good

    def test_mainline_preferred_among_succeeded(self):
        feature = _raw_build(1, branch="refs/heads/feature/x")
        release = _raw_build(2, branch="refs/heads/release/2.0")
        assert select_preferred([feature, release]) is release

    def test_succeeded_preferred_over_failed_mainline(self):
        failed_main = _raw_build(1, result="failed", branch="refs/heads/main")
        succeeded_feature = _raw_build(2, branch="refs/heads/feature/x")
        assert select_preferred([failed_main, succeeded_feature]) is succeeded_feature

    def test_falls_back_to_provider_order(self):
        first = _raw_build(1, result="failed")
        second = _raw_build(2, result="canceled")
        assert select_preferred([first, second]) is first

    def test_empty_returns_none(self):
        assert select_preferred([]) is None


class TestExtractBuildInfo:
    def test_duration_rendered_in_seconds_and_minutes(self):
        record = extract_build_info(_raw_build(1))
        assert "65s" in record.duration
        assert "1m 5s" in record.duration
        assert record.duration_seconds == 65

    def test_missing_finish_time_gives_sentinel_duration(self):
        record = extract_build_info(_raw_build(1, finishTime=None))
        assert record.duration == "N/A"
        assert record.duration_seconds is None

    def test_pr_branch_normalised(self):
        record = extract_build_info(_raw_build(1, branch="refs/pull/42/merge"))
        assert record.source_branch == "PR #42"
        assert record.trigger_pr == "#42"

    def test_heads_prefix_stripped(self):
        record = extract_build_info(_raw_build(1, branch="refs/heads/release/v2.2.0"))
        assert record.source_branch == "release/v2.2.0"
        assert record.trigger_pr == "N/A"

    def test_pr_reference_from_trigger_message(self):
        raw = _raw_build(1, triggerInfo={"ci.message": "Merged PR 1234: fix login"})
        record = extract_build_info(raw)
        assert record.trigger_pr == "#1234"
        assert record.trigger_info == "Merged PR 1234: fix login"

    def test_pr_reference_from_trigger_info_number(self):
        record = extract_build_info(_raw_build(1, triggerInfo={"pr.number": "77"}))
        assert record.trigger_pr == "#77"

    def test_requested_by_display_name(self):
        assert extract_build_info(_raw_build(1)).requested_by == "Ada Lovelace"

    def test_unknown_branch_passes_through(self):
        assert normalize_branch("develop") == ("develop", None)


class TestResolveByNumber:
    def test_exact_day_match_does_not_widen(self):
        client = _client([_raw_build(10)])
        record = BuildResolver(client).resolve_by_number("20250101.1")

        assert record.id == "10"
        assert client.list_builds.call_count == 1
        assert client.list_builds.call_args.kwargs == {"min_time": "2025-01-01", "max_time": "2025-01-02"}

    def test_widened_window_used_when_exact_day_empty(self):
        client = _client([], [_raw_build(11)])
        record = BuildResolver(client).resolve_by_number("20250101.1")

        assert record.id == "11"
        assert client.list_builds.call_count == 2
        assert client.list_builds.call_args.kwargs == {"min_time": "2024-12-31", "max_time": "2025-01-03"}

    def test_recent_builds_fallback(self):
        client = _client([], [_raw_build(5, number="20250101.2")], [_raw_build(12)])
        record = BuildResolver(client, recent_builds_top=50).resolve_by_number("20250101.1")

        assert record.id == "12"
        assert client.list_builds.call_args.kwargs == {"top": 50}

    def test_transport_error_moves_to_next_phase(self):
        client = _client(TransportError("timeout"), [_raw_build(13)])
        record = BuildResolver(client).resolve_by_number("20250101.1")
        assert record.id == "13"

    def test_not_found_after_all_phases(self):
        client = _client([], [], [])
        with pytest.raises(NotFoundError) as exc_info:
            BuildResolver(client).resolve_by_number("20250101.1")
        assert exc_info.value.remediation

    def test_all_phases_failing_surfaces_transport_error(self):
        client = _client(TransportError("a"), TransportError("b"), TransportError("c"))
        with pytest.raises(TransportError, match="c"):
            BuildResolver(client).resolve_by_number("20250101.1")

    def test_tie_break_applied_in_phase(self):
        failed = _raw_build(1, result="failed", branch="refs/heads/feature/x")
        good = _raw_build(2)
        client = _client([failed, good])
        assert BuildResolver(client).resolve_by_number("20250101.1").id == "2"

    def test_invalid_number_never_queries(self):
        client = _client()
        with pytest.raises(FormatError):
            BuildResolver(client).resolve_by_number("2025.1")
        client.list_builds.assert_not_called()


class TestResolveById:
    def test_direct_fetch(self):
        client = _client()
        client.get_build_by_id.return_value = _raw_build(156536)
        record = BuildResolver(client).resolve_by_id("156536")
        assert record.id == "156536"
        assert record.build_url.endswith("buildId=156536")

    def test_transport_error_wrapped_as_not_found(self):
        client = _client()
        client.get_build_by_id.side_effect = TransportError("404")
        with pytest.raises(NotFoundError):
            BuildResolver(client).resolve_by_id("999")

    def test_resolve_dispatches_on_shape(self):
        client = _client()
        client.get_build_by_id.return_value = _raw_build(7)
        BuildResolver(client).resolve("7")
        client.get_build_by_id.assert_called_once_with("7")
        client.list_builds.assert_not_called()


class TestListArtifacts:
    def test_size_in_megabytes(self):
        client = MagicMock()
        client.get_build_artifacts.return_value = [
            {"name": "drop", "resource": {"type": "Container", "properties": {"artifactsize": "5347737"}}},
            {"name": "logs", "resource": {"type": "Container", "properties": {}}},
        ]
        artifacts = list_artifacts(client, "1")
        assert artifacts[0].size == "5.1 MB"
        assert artifacts[1].size is None

    def test_transport_error_gives_empty_list(self):
        client = MagicMock()
        client.get_build_artifacts.side_effect = TransportError("boom")
        assert list_artifacts(client, "1") == []
