"""Resolution of the GitHub token and of the pull request to review.

Token resolution order (stops at first success):
  1. GITHUB_TOKEN environment variable (CI / explicit override)
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)

Inside a GitHub Actions run triggered by a pull_request event, the repository
and PR number come from GITHUB_REPOSITORY and the event payload at
GITHUB_EVENT_PATH, so the workflow does not need to pass them explicitly.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess

logger = logging.getLogger(__name__)


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises — callers should check for None and emit a UsageError.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved GitHub token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        logger.debug("gh CLI not available for token resolution.")

    return None


def resolve_actions_target() -> tuple[str | None, int | None]:
    """Return (repository, PR number) from the GitHub Actions environment.

    Either element is None when it cannot be determined, e.g. outside Actions
    or for events that carry no pull_request payload.
    """
    repo = os.environ.get("GITHUB_REPOSITORY") or None
    event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        return repo, None

    try:
        with open(event_path, encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read GitHub event payload %s: %s", event_path, e)
        return repo, None

    pull_request = payload.get("pull_request") or {}
    number = pull_request.get("number")
    return repo, number if isinstance(number, int) else None
