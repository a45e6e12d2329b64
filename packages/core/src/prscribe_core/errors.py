"""Exceptions raised by the review pipeline.

Fatal errors abort the run and are reported on the CLI. Per-file and
per-record errors are caught where they happen, logged, and recorded in the
run's ReviewReport instead of propagating.
"""

from __future__ import annotations


class PrscribeError(Exception):
    """Base class for every error raised by prscribe_core."""


class RangeResolutionError(PrscribeError):
    """Listing the pull request's comments or commits failed."""


class DiffRetrievalError(PrscribeError):
    """The git diff primitive failed for a range or a single path."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class DiffParseError(PrscribeError):
    """A hunk header in a file's diff could not be parsed."""

    def __init__(self, path: str, header: str):
        super().__init__(f"Malformed hunk header in {path}: {header!r}")
        self.path = path
        self.header = header


class GenerationError(PrscribeError):
    """The text generation provider failed after exhausting its retries."""


class MalformedSuggestions(PrscribeError):
    """The generated suggestions are not a JSON array."""


class PublishError(PrscribeError):
    """Creating or updating the synopsis comment failed."""
