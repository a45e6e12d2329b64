from __future__ import annotations

from typing import AsyncIterator

from prscribe_core.providers.base import BaseGenerator


class AnthropicGenerator(BaseGenerator):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.3

    def __init__(self, api_key: str, model: str | None = None):
        try:
            from anthropic import AsyncAnthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'prscribe[anthropic]'"
            )
        self.client = AsyncAnthropic(api_key=api_key)
        self.model = model or self.MODEL

    async def _stream(self, prompt_parts: list[str], structured: bool) -> AsyncIterator[str]:
        # No response schema on the Messages API; the JSON format is enforced
        # by the suggestion instructions alone.
        content = [{"type": "text", "text": part} for part in prompt_parts]
        async with self.client.messages.stream(
            model=self.model,
            messages=[{"role": "user", "content": content}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        ) as stream:
            async for text in stream.text_stream:
                yield text
