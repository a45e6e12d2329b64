"""Per-file annotated diffs for a commit range."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prscribe_core.annotate import FileDiff, annotate_diff
from prscribe_core.errors import DiffParseError, DiffRetrievalError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileError:
    path: str
    error: str


@dataclass(frozen=True)
class DiffSet:
    whole_range_diff: str
    per_file: tuple[FileDiff, ...] = ()
    errored: tuple[FileError, ...] = ()
    ignored: tuple[str, ...] = ()


class FileDiffSet:
    """Builds the diff payloads for one review run.

    ``source`` is anything with ``list_changed_paths(base, head)`` and
    ``diff_range(base, head, path=None)``, normally a GitDiffSource.
    ``ignore_file`` is the repository path of the ignore list; it is never
    reviewed itself.
    """

    def __init__(self, source, ignore_file: str | None = None):
        self.source = source
        self.ignore_file = ignore_file.strip() if ignore_file else None

    def compute(
        self,
        base: str,
        head: str,
        ignore_patterns: set[str] | frozenset[str] = frozenset(),
        synopsis_base: str | None = None,
    ) -> DiffSet:
        ignored_paths = {p.strip() for p in ignore_patterns if p.strip()}
        if self.ignore_file:
            ignored_paths.add(self.ignore_file)

        # Failing to list paths is a whole-batch failure; let it propagate.
        changed = self.source.list_changed_paths(base, head)

        per_file: list[FileDiff] = []
        errored: list[FileError] = []
        ignored: list[str] = []
        for path in changed:
            if path.strip() in ignored_paths:
                logger.debug("Ignoring %s (listed in ignore file)", path)
                ignored.append(path)
                continue
            try:
                diff_text = self.source.diff_range(base, head, path)
                if not diff_text.strip():
                    raise DiffRetrievalError("git diff produced no output for a listed path", path=path)
                per_file.append(annotate_diff(path, diff_text))
            except (DiffRetrievalError, DiffParseError) as e:
                logger.warning("Skipping %s: %s", path, e)
                errored.append(FileError(path=path, error=str(e)))

        whole_range_diff = self.source.diff_range(synopsis_base or base, head)

        return DiffSet(
            whole_range_diff=whole_range_diff,
            per_file=tuple(per_file),
            errored=tuple(errored),
            ignored=tuple(ignored),
        )
