"""Base generator implementing the Template Method pattern.

All providers share the same generation algorithm:
    summarize() / suggest() → _build_*_parts()
                            → _collect() → _stream()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _stream: start one streaming request and yield its text chunks

Prompt construction, chunk buffering and retry logic live here so every
provider behaves the same.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Sequence

from prscribe_core.errors import GenerationError

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_MAX_TOKENS = 8192

_DIFF_LEGEND = """The lines that start with a + sign are added lines.
The lines that start with a - sign are deleted lines.
The lines that start with a space are unmodified context."""

SUMMARY_INSTRUCTIONS = f"""Here is a diff for a pull request in a project.
Review the code and create a summary that includes a high level overview of all the changes made in the PR.
{_DIFF_LEGEND}"""

SUGGESTION_INSTRUCTIONS = f"""Here are individual file diffs for a pull request in a project.
Review the code and suggest changes that will make the code more maintainable and less error prone,
while also checking for possible bugs and issues that could arise from the changes in the diff.
For every suggestion give the from_line and to_line and the filename of the code it refers to.
For every suggestion give the side: LEFT for deleted lines, RIGHT for added or unmodified lines.
Strictly avoid repeating suggestions; every suggestion must have a unique text body.
{_DIFF_LEGEND}
After the marker, each body line carries two numbers before the colon: the line number in the old file
and the line number in the new file. Use the old number with LEFT and the new number with RIGHT.

Respond with **only** a valid JSON array:

[
  {{
    "from_line": <first line the suggestion refers to (integer)>,
    "to_line": <last line the suggestion refers to (integer)>,
    "side": "<LEFT|RIGHT>",
    "filename": "<path of the file, as shown in the diff>",
    "text": "<the suggestion, GitHub-flavored markdown>"
  }},
  ...
]

If there is nothing to suggest, return: []"""


class BaseGenerator(ABC):
    MODEL: str = ""
    MAX_RETRIES: int = _MAX_RETRIES
    MAX_TOKENS: int = _MAX_TOKENS
    RETRY_BACKOFF: float = 1.0

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    async def summarize(self, diff: str, context_text: str = "") -> str:
        """Generate the pull request synopsis from the whole-range diff."""
        return await self._collect(self._build_summary_parts(diff, context_text), structured=False)

    async def suggest(self, file_diffs: Sequence[str], context_text: str = "") -> str:
        """Generate suggestions as raw JSON text from the rendered per-file diffs."""
        return await self._collect(self._build_suggestion_parts(file_diffs, context_text), structured=True)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each provider                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _stream(self, prompt_parts: list[str], structured: bool) -> AsyncIterator[str]:
        """Start one streaming request and yield text chunks as they arrive.

        ``structured`` asks for a JSON array of suggestions; providers that
        support a response schema should enforce it. Raise on failure —
        _collect handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    async def _collect(self, prompt_parts: list[str], structured: bool) -> str:
        """Consume a whole stream and return the chunks joined in arrival order.

        A failed attempt discards its partial output and starts over, up to
        MAX_RETRIES times with exponential backoff.
        """
        for attempt in range(self.MAX_RETRIES):
            chunks: list[str] = []
            try:
                async for chunk in self._stream(prompt_parts, structured):
                    logger.debug("%s chunk: %s", self.__class__.__name__, chunk)
                    chunks.append(chunk)
                return "".join(chunks)
            except Exception as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s API failed after %d attempts: %s",
                        self.__class__.__name__,
                        self.MAX_RETRIES,
                        e,
                    )
                    raise GenerationError(f"{self.__class__.__name__} failed: {e}") from e
                delay = self.RETRY_BACKOFF * 2**attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %ss...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
        raise GenerationError(f"{self.__class__.__name__} made no attempts (MAX_RETRIES={self.MAX_RETRIES})")

    def _build_summary_parts(self, diff: str, context_text: str) -> list[str]:
        parts = [SUMMARY_INSTRUCTIONS]
        if context_text:
            parts.append(context_text)
        parts.append(diff)
        return parts

    def _build_suggestion_parts(self, file_diffs: Sequence[str], context_text: str) -> list[str]:
        parts = [SUGGESTION_INSTRUCTIONS]
        if context_text:
            parts.append(context_text)
        parts.extend(file_diffs)
        return parts
