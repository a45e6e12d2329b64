"""Incremental review state, persisted in the synopsis comment.

prscribe keeps no database. The synopsis comment it posts on the pull
request starts with ``AI Review Summary`` and ends with a marker naming the
head commit that was reviewed::

    AI Review Summary

    <synopsis text>

    [Last reviewed commit: 3f2c9e1...]

The next run finds the latest such comment, reads the marker, and only
reviews the commits that came after it.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from github import GithubException

from prscribe_core.errors import RangeResolutionError
from prscribe_core.gh.pull_request import list_commits, list_issue_comments

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "AI Review Summary"
_CHECKPOINT_RE = re.compile(r"\[Last reviewed commit: (.*)\]")


def encode_checkpoint(commit_sha: str) -> str:
    return f"[Last reviewed commit: {commit_sha}]"


def decode_checkpoint(body: str | None) -> str | None:
    """Return the commit SHA stored in a comment body, or None."""
    match = _CHECKPOINT_RE.search(body or "")
    if not match:
        return None
    sha = match.group(1).strip()
    return sha or None


def build_summary_body(synopsis: str, head_sha: str) -> str:
    return f"{SUMMARY_PREFIX}\n\n{synopsis}\n\n{encode_checkpoint(head_sha)}"


@dataclass(frozen=True)
class ReviewCheckpoint:
    last_reviewed_commit: str
    comment_id: int | None


@dataclass(frozen=True)
class ReviewRange:
    base_commit: str
    head_commit: str
    pr_base_commit: str
    checkpoint: ReviewCheckpoint | None = None
    head: Any = None  # PyGithub Commit for head_commit

    @property
    def has_new_commits(self) -> bool:
        return self.base_commit != self.head_commit


def _field(comment, name: str):
    # PyGithub objects in production, plain dicts from raw API payloads.
    if isinstance(comment, dict):
        return comment.get(name)
    return getattr(comment, name, None)


def find_checkpoint(comments) -> ReviewCheckpoint | None:
    """Return the checkpoint stored in the latest synopsis comment.

    Comments are expected oldest first, as the API lists them. Only the most
    recent comment starting with SUMMARY_PREFIX counts; if it lacks a
    readable marker there is no checkpoint.
    """
    latest = None
    for comment in comments:
        if (_field(comment, "body") or "").startswith(SUMMARY_PREFIX):
            latest = comment
    if latest is None:
        return None
    sha = decode_checkpoint(_field(latest, "body"))
    if sha is None:
        logger.warning(
            "Synopsis comment %s has no readable commit marker; reviewing the full PR.", _field(latest, "id")
        )
        return None
    return ReviewCheckpoint(last_reviewed_commit=sha, comment_id=_field(latest, "id"))


class ReviewStateTracker:
    """Works out which commits of a pull request still need reviewing."""

    def __init__(self, pr, force_full: bool = False):
        self.pr = pr
        self.force_full = force_full

    def resolve(self) -> ReviewRange:
        try:
            comments = list_issue_comments(self.pr)
            commits = list_commits(self.pr)
        except GithubException as e:
            raise RangeResolutionError(f"Could not list comments or commits of PR #{self.pr.number}: {e}") from e

        if not commits:
            raise RangeResolutionError(f"PR #{self.pr.number} has no commits.")

        # The head comes from the commit listing rather than pr.head.sha, which
        # can lag behind right after a push.
        head = commits[-1]
        pr_base = self.pr.base.sha
        checkpoint = find_checkpoint(comments)

        base = pr_base
        if checkpoint is not None and not self.force_full:
            base = checkpoint.last_reviewed_commit

        return ReviewRange(
            base_commit=base,
            head_commit=head.sha,
            pr_base_commit=pr_base,
            checkpoint=checkpoint,
            head=head,
        )
