"""Validation and publishing of generated review suggestions.

The generator is asked for a JSON array of objects shaped like::

    {"from_line": 12, "to_line": 14, "side": "RIGHT",
     "filename": "src/app.py", "text": "..."}

Nothing about that output is trusted. Each item is validated on its own and
turned into one review comment; a bad item or a failed API call only affects
that item's PublishOutcome.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, Union

from prscribe_core.errors import MalformedSuggestions
from prscribe_core.gh.pull_request import create_review_remark

logger = logging.getLogger(__name__)


class Side(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class SuggestionRejected(ValueError):
    """A suggestion item failed validation."""


@dataclass(frozen=True)
class SingleLineAnchor:
    line: int
    side: Side

    def as_request(self) -> dict:
        return {"line": self.line, "side": self.side.value}


@dataclass(frozen=True)
class RangeAnchor:
    from_line: int
    to_line: int
    side: Side

    def as_request(self) -> dict:
        return {
            "start_line": self.from_line,
            "start_side": self.side.value,
            "line": self.to_line,
            "side": self.side.value,
        }


RemarkAnchor = Union[SingleLineAnchor, RangeAnchor]


def _line_number(value: Any, name: str) -> int:
    # JSON schemas typed as NUMBER come back as 3.0 from some providers.
    if isinstance(value, bool):
        raise SuggestionRejected(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise SuggestionRejected(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise SuggestionRejected(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class SuggestionRecord:
    from_line: int
    to_line: int
    side: Side
    filename: str
    text: str

    @classmethod
    def from_dict(cls, item: Any) -> SuggestionRecord:
        """Validate one generated item; raises SuggestionRejected."""
        if not isinstance(item, dict):
            raise SuggestionRejected(f"expected an object, got {type(item).__name__}")

        from_line = _line_number(item.get("from_line"), "from_line")
        to_line = _line_number(item.get("to_line"), "to_line")
        if from_line > to_line:
            raise SuggestionRejected(f"from_line {from_line} is after to_line {to_line}")

        side = item.get("side")
        try:
            side = Side(str(side).strip().upper())
        except ValueError:
            raise SuggestionRejected(f"side must be LEFT or RIGHT, got {side!r}")

        filename = str(item.get("filename") or "").strip().strip("/")
        if not filename:
            raise SuggestionRejected("filename is empty")

        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            raise SuggestionRejected("text is empty")

        return cls(from_line=from_line, to_line=to_line, side=side, filename=filename, text=text)

    @property
    def anchor(self) -> RemarkAnchor:
        if self.from_line < self.to_line:
            return RangeAnchor(from_line=self.from_line, to_line=self.to_line, side=self.side)
        return SingleLineAnchor(line=self.to_line, side=self.side)


class OutcomeStatus(str, Enum):
    VALIDATED = "validated"  # passed validation, not posted (shadow mode)
    CREATED = "created"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class PublishOutcome:
    index: int
    status: OutcomeStatus
    record: SuggestionRecord | None = None
    reason: str | None = None


def parse_suggestions(raw: str) -> list:
    """Parse the generator's concatenated output into a list of items.

    Raises MalformedSuggestions if the text is not a JSON array.
    """
    # Strip only an outer ```json ... ``` fence, not backticks inside values.
    cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
    cleaned = re.sub(r"\s*```$", "", cleaned.strip())
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedSuggestions(f"Suggestions are not valid JSON: {e}; output started with {raw[:200]!r}") from e
    if not isinstance(parsed, list):
        raise MalformedSuggestions(f"Suggestions must be a JSON array, got {type(parsed).__name__}")
    return parsed


def _remark_line(comment) -> int | None:
    # line is None once the commented line left the diff (e.g. after a
    # force-push); original_line still identifies it.
    line = getattr(comment, "line", None)
    return line if line is not None else getattr(comment, "original_line", None)


class SuggestionMapper:
    """Publishes validated suggestions as review comments on ``head_commit``."""

    def __init__(self, pr, head_commit, existing_comments: Sequence | None = None):
        self.pr = pr
        self.head_commit = head_commit
        self._seen: set[tuple] = set()
        for comment in existing_comments or ():
            self._seen.add((comment.path, _remark_line(comment), (comment.body or "").strip()))

    def validate(self, items: Sequence) -> list[PublishOutcome]:
        """Validate without publishing (shadow mode); valid items carry their record."""
        outcomes = []
        for index, item in enumerate(items):
            try:
                record = SuggestionRecord.from_dict(item)
            except SuggestionRejected as e:
                outcomes.append(PublishOutcome(index, OutcomeStatus.REJECTED, reason=str(e)))
                continue
            outcomes.append(PublishOutcome(index, OutcomeStatus.VALIDATED, record=record))
        return outcomes

    def publish(self, items: Sequence) -> list[PublishOutcome]:
        outcomes = []
        for outcome in self.validate(items):
            if outcome.record is None:
                logger.warning("Rejected suggestion #%d: %s", outcome.index, outcome.reason)
                outcomes.append(outcome)
                continue
            outcomes.append(self._publish_one(outcome.index, outcome.record))
        return outcomes

    def _publish_one(self, index: int, record: SuggestionRecord) -> PublishOutcome:
        key = (record.filename, record.to_line, record.text.strip())
        if key in self._seen:
            logger.debug("Skipping duplicate remark on %s:%d", record.filename, record.to_line)
            return PublishOutcome(index, OutcomeStatus.REJECTED, record=record, reason="duplicate remark")

        try:
            create_review_remark(
                self.pr,
                self.head_commit,
                record.filename,
                record.text,
                **record.anchor.as_request(),
            )
        except Exception as e:
            # Typically a 422 because the line is no longer part of the diff.
            logger.warning("Could not post remark on %s:%d: %s", record.filename, record.to_line, e)
            return PublishOutcome(index, OutcomeStatus.FAILED, record=record, reason=str(e))

        self._seen.add(key)
        return PublishOutcome(index, OutcomeStatus.CREATED, record=record)
