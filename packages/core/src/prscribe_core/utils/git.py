"""Thin wrapper around the local ``git`` binary.

prscribe never computes diffs itself: it shells out to ``git diff`` in a
checkout that already contains both commits (in GitHub Actions, a checkout
with ``fetch-depth: 0``) and only reformats the output.
"""

from __future__ import annotations

import logging
import subprocess

from prscribe_core.errors import DiffRetrievalError

logger = logging.getLogger(__name__)


class GitDiffSource:
    """Lists changed paths and produces unified diffs between two commits.

    ``function_context`` passes ``-W`` so every hunk is widened to the whole
    enclosing function, which gives the generator far more to work with than
    the default three lines of context.
    """

    def __init__(self, repo_path: str = ".", function_context: bool = True):
        self.repo_path = repo_path
        self.function_context = function_context

    def list_changed_paths(self, base: str, head: str) -> list[str]:
        # -z keeps paths unquoted and NUL-separated, so non-ASCII names come
        # back as-is and can be passed straight to diff_range.
        output = self._run(["diff", "--name-only", "-z", f"{base}..{head}"])
        return [p for p in output.split("\0") if p.strip()]

    def diff_range(self, base: str, head: str, path: str | None = None) -> str:
        args = ["diff"]
        if self.function_context:
            args.append("-W")
        args.append(f"{base}..{head}")
        if path is not None:
            args.extend(["--", path])
        return self._run(args, path=path)

    def _run(self, args: list[str], path: str | None = None) -> str:
        logger.debug("Running git %s in %s", " ".join(args), self.repo_path)
        try:
            result = subprocess.run(
                ["git", "-c", "core.quotepath=off", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
        except FileNotFoundError as e:
            raise DiffRetrievalError(f"git is not available: {e}", path=path) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise DiffRetrievalError(f"git {' '.join(args)} failed: {stderr or e}", path=path) from e
        return result.stdout
