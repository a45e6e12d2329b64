"""Annotate unified diffs with old/new line numbers.

A raw ``git diff`` only tells you where each hunk starts. The suggestions
prompt needs every line tagged with its real line number on both sides so the
model can anchor remarks with ``from_line``/``to_line`` and a ``LEFT``/``RIGHT``
side. The rendered form looks like::

    @@ -10,3 +10,4 @@
     10 10:def handler(event):
    -11   :    return None
    +   11:    if not event:
    +   12:        return None
     12 13:    return process(event)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Union

from prscribe_core.errors import DiffParseError

HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


@dataclass(frozen=True)
class HunkHeader:
    old_start: int
    old_count: int
    new_start: int
    new_count: int

    @classmethod
    def parse(cls, line: str, path: str = "") -> HunkHeader:
        match = HUNK_HEADER_RE.match(line)
        if match is None:
            raise DiffParseError(path, line)
        old_start, old_count, new_start, new_count = match.groups()
        return cls(
            old_start=int(old_start),
            old_count=int(old_count) if old_count is not None else 1,
            new_start=int(new_start),
            new_count=int(new_count) if new_count is not None else 1,
        )

    @property
    def old_width(self) -> int:
        return len(str(self.old_start + max(self.old_count, 1) - 1))

    @property
    def new_width(self) -> int:
        return len(str(self.new_start + max(self.new_count, 1) - 1))


@dataclass(frozen=True)
class AnnotatedLine:
    """One body line of a hunk with its resolved line numbers.

    ``old_line_number`` is set for REMOVED and CONTEXT rows, ``new_line_number``
    for ADDED and CONTEXT rows. ``text`` excludes the leading marker.
    """

    change_kind: ChangeKind
    old_line_number: int | None
    new_line_number: int | None
    text: str

    @property
    def marker(self) -> str:
        if self.change_kind is ChangeKind.ADDED:
            return "+"
        if self.change_kind is ChangeKind.REMOVED:
            return "-"
        return " "


DiffEntry = Union[AnnotatedLine, str]


@dataclass(frozen=True)
class FileDiff:
    """Annotated diff of one file.

    ``entries`` keeps header lines (plain strings) and annotated rows in their
    original order; ``lines`` and ``raw_header_lines`` are filtered views.
    """

    path: str
    entries: tuple[DiffEntry, ...] = ()

    @property
    def lines(self) -> tuple[AnnotatedLine, ...]:
        return tuple(e for e in self.entries if isinstance(e, AnnotatedLine))

    @property
    def raw_header_lines(self) -> tuple[str, ...]:
        return tuple(e for e in self.entries if isinstance(e, str))

    @property
    def has_new_side_lines(self) -> bool:
        return any(line.new_line_number is not None for line in self.lines)

    def render(self) -> str:
        """Render the diff with both line numbers in aligned columns."""
        old_width = new_width = 1
        out: list[str] = []
        for entry in self.entries:
            if isinstance(entry, str):
                match = HUNK_HEADER_RE.match(entry)
                if match:
                    header = HunkHeader.parse(entry, self.path)
                    old_width, new_width = header.old_width, header.new_width
                out.append(entry)
                continue
            old = "" if entry.old_line_number is None else str(entry.old_line_number)
            new = "" if entry.new_line_number is None else str(entry.new_line_number)
            out.append(f"{entry.marker}{old:>{old_width}} {new:>{new_width}}:{entry.text}")
        return "\n".join(out)


def _is_file_header(line: str) -> bool:
    return line.startswith("---") or line.startswith("+++")


def annotate_diff(path: str, diff_text: str) -> FileDiff:
    """Convert one file's unified diff into a FileDiff.

    Raises DiffParseError when a line starting with ``@@`` is not a valid
    hunk header. Lines before the first hunk, ``---``/``+++`` lines and
    ``\\ No newline at end of file`` markers pass through unannotated.
    """
    entries: list[DiffEntry] = []
    left = right = 0
    old_remaining = new_remaining = 0
    in_hunk = False

    for raw in diff_text.splitlines():
        if raw.startswith("@@"):
            header = HunkHeader.parse(raw, path)
            left, right = header.old_start, header.new_start
            old_remaining, new_remaining = header.old_count, header.new_count
            in_hunk = True
            entries.append(raw)
            continue

        if not in_hunk or raw.startswith("\\"):
            entries.append(raw)
            continue

        # Past the declared counts a line is body content only if it carries a
        # body marker and is not the start of the next file's header.
        if old_remaining <= 0 and new_remaining <= 0:
            if not raw or raw[0] not in "+- " or _is_file_header(raw):
                entries.append(raw)
                continue

        marker, text = raw[:1], raw[1:]
        if marker == "-":
            entries.append(AnnotatedLine(ChangeKind.REMOVED, left, None, text))
            left += 1
            old_remaining -= 1
        elif marker == "+":
            entries.append(AnnotatedLine(ChangeKind.ADDED, None, right, text))
            right += 1
            new_remaining -= 1
        else:
            # Some tools strip the single space of an empty context line.
            entries.append(AnnotatedLine(ChangeKind.CONTEXT, left, right, text if marker == " " else raw))
            left += 1
            right += 1
            old_remaining -= 1
            new_remaining -= 1

    return FileDiff(path=path, entries=tuple(entries))
