"""Tests for checkpoint encoding and incremental range resolution."""

import types
from unittest.mock import MagicMock

import pytest
from github import GithubException

from prscribe_core.errors import RangeResolutionError
from prscribe_core.state import (
    ReviewStateTracker,
    build_summary_body,
    decode_checkpoint,
    encode_checkpoint,
    find_checkpoint,
)

BASE = "b" * 40


def _comment(body, comment_id=1):
    return types.SimpleNamespace(id=comment_id, body=body)


def _commit(sha):
    return types.SimpleNamespace(sha=sha)


def _page_source(items, page_size=100):
    paginated = MagicMock()
    paginated.get_page.side_effect = lambda page: items[page * page_size : (page + 1) * page_size]
    return paginated


def _make_pr(comments, commits):
    pr = MagicMock()
    pr.number = 7
    pr.base.sha = BASE
    pr.get_issue_comments.return_value = _page_source(comments)
    pr.get_commits.return_value = _page_source(commits)
    return pr


class TestCheckpointCodec:
    def test_encode(self):
        assert encode_checkpoint("abc123") == "[Last reviewed commit: abc123]"

    def test_decode_round_trip(self):
        assert decode_checkpoint(build_summary_body("Summary text", "abc123")) == "abc123"

    def test_decode_returns_none_without_marker(self):
        assert decode_checkpoint("AI Review Summary\n\nno marker") is None

    def test_decode_handles_none(self):
        assert decode_checkpoint(None) is None

    def test_summary_body_layout(self):
        body = build_summary_body("Adds caching.", "abc123")
        assert body == "AI Review Summary\n\nAdds caching.\n\n[Last reviewed commit: abc123]"


class TestFindCheckpoint:
    def test_recovers_sha_from_dict_comments(self):
        comments = [
            {"body": "unrelated"},
            {"body": "AI Review Summary\n...\n[Last reviewed commit: abc123]"},
        ]
        assert find_checkpoint(comments).last_reviewed_commit == "abc123"

    def test_latest_summary_comment_wins(self):
        comments = [
            _comment("AI Review Summary\n[Last reviewed commit: old]", 1),
            _comment("LGTM", 2),
            _comment("AI Review Summary\n[Last reviewed commit: new]", 3),
        ]
        checkpoint = find_checkpoint(comments)
        assert checkpoint.last_reviewed_commit == "new"
        assert checkpoint.comment_id == 3

    def test_marker_outside_summary_comment_is_ignored(self):
        assert find_checkpoint([_comment("[Last reviewed commit: abc123]")]) is None

    def test_summary_without_marker_means_no_checkpoint(self):
        comments = [
            _comment("AI Review Summary\n[Last reviewed commit: old]", 1),
            _comment("AI Review Summary\nmarker was edited away", 2),
        ]
        assert find_checkpoint(comments) is None

    def test_none_body_is_skipped(self):
        assert find_checkpoint([_comment(None)]) is None

    def test_no_comments(self):
        assert find_checkpoint([]) is None


class TestResolve:
    def test_first_run_uses_pr_base(self):
        pr = _make_pr([_comment("hello")], [_commit("c1"), _commit("c2")])
        result = ReviewStateTracker(pr).resolve()
        assert result.base_commit == BASE
        assert result.head_commit == "c2"
        assert result.checkpoint is None
        assert result.has_new_commits

    def test_checkpoint_becomes_base(self):
        pr = _make_pr(
            [_comment("AI Review Summary\n\n[Last reviewed commit: c1]", 42)],
            [_commit("c1"), _commit("c2"), _commit("c3")],
        )
        result = ReviewStateTracker(pr).resolve()
        assert result.base_commit == "c1"
        assert result.head_commit == "c3"
        assert result.pr_base_commit == BASE
        assert result.checkpoint.comment_id == 42

    def test_head_comes_from_commit_listing_not_pr_head(self):
        pr = _make_pr([], [_commit("c1"), _commit("c2")])
        pr.head.sha = "stale"
        result = ReviewStateTracker(pr).resolve()
        assert result.head_commit == "c2"
        assert result.head.sha == "c2"

    def test_no_new_commits(self):
        pr = _make_pr(
            [_comment("AI Review Summary\n\n[Last reviewed commit: c2]")],
            [_commit("c1"), _commit("c2")],
        )
        assert ReviewStateTracker(pr).resolve().has_new_commits is False

    def test_force_full_ignores_checkpoint_sha_but_keeps_comment(self):
        pr = _make_pr(
            [_comment("AI Review Summary\n\n[Last reviewed commit: c1]", 42)],
            [_commit("c1"), _commit("c2")],
        )
        result = ReviewStateTracker(pr, force_full=True).resolve()
        assert result.base_commit == BASE
        assert result.checkpoint.comment_id == 42

    def test_commits_paginated_across_full_pages(self):
        commits = [_commit(f"c{i}") for i in range(150)]
        pr = _make_pr([], commits)
        result = ReviewStateTracker(pr).resolve()
        assert result.head_commit == "c149"
        assert pr.get_commits.return_value.get_page.call_count == 3

    def test_exact_page_multiple_stops_on_empty_page(self):
        commits = [_commit(f"c{i}") for i in range(100)]
        pr = _make_pr([], commits)
        assert ReviewStateTracker(pr).resolve().head_commit == "c99"
        assert pr.get_commits.return_value.get_page.call_count == 2

    def test_listing_failure_raises_range_error(self):
        pr = _make_pr([], [_commit("c1")])
        pr.get_issue_comments.side_effect = GithubException(500, "boom")
        with pytest.raises(RangeResolutionError):
            ReviewStateTracker(pr).resolve()

    def test_pr_without_commits_raises_range_error(self):
        pr = _make_pr([], [])
        with pytest.raises(RangeResolutionError):
            ReviewStateTracker(pr).resolve()


class TestClientPageSize:
    def test_pr_from_default_client_reads_past_first_page(self):
        # PyGithub serves 30 items per page unless the client sets per_page.
        commits = [_commit(f"c{i}") for i in range(45)]
        comments = [_comment("note", i) for i in range(35)]
        comments.append(_comment("AI Review Summary\n\n[Last reviewed commit: c40]", 99))
        pr = MagicMock()
        pr.number = 7
        pr.base.sha = BASE
        pr.get_issue_comments.return_value = _page_source(comments, page_size=30)
        pr.get_commits.return_value = _page_source(commits, page_size=30)

        result = ReviewStateTracker(pr).resolve()

        assert result.head_commit == "c44"
        assert result.base_commit == "c40"
        assert result.checkpoint.comment_id == 99
