from __future__ import annotations

from typing import AsyncIterator

try:
    from openai import AsyncOpenAI as _AsyncOpenAI
except ImportError:
    _AsyncOpenAI = None  # type: ignore[assignment,misc]

from prscribe_core.providers.base import BaseGenerator


class OpenAIGenerator(BaseGenerator):
    MODEL = "gpt-4o"
    # Lower than the other providers; GPT-4o drifts from the JSON format more
    # readily at higher temperatures.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None):
        if _AsyncOpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install 'prscribe[openai]'"
            )
        self.client = _AsyncOpenAI(api_key=api_key)
        self.model = model or self.MODEL

    async def _stream(self, prompt_parts: list[str], structured: bool) -> AsyncIterator[str]:
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": "\n\n".join(prompt_parts)}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
            stream=True,
        )
        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content
