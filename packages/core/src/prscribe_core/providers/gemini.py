from __future__ import annotations

from typing import AsyncIterator

from prscribe_core.providers.base import BaseGenerator

# Response schema for the suggestions call, in Gemini's OpenAPI subset.
SUGGESTIONS_SCHEMA = {
    "type": "ARRAY",
    "description": "Code suggestions",
    "items": {
        "type": "OBJECT",
        "properties": {
            "from_line": {
                "type": "NUMBER",
                "description": "code line number where the review starts",
                "nullable": False,
            },
            "to_line": {
                "type": "NUMBER",
                "description": "code line number where the review ends",
                "nullable": False,
            },
            "side": {"type": "STRING", "description": "side of the diff", "nullable": False},
            "filename": {"type": "STRING", "description": "name of the file", "nullable": False},
            "text": {"type": "STRING", "description": "main body of the suggestion", "nullable": False},
        },
        "required": ["from_line", "to_line", "side", "filename", "text"],
    },
}

# Diffs routinely contain security-related code; the default filters block
# legitimate reviews of it.
SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_NONE"}
    for category in (
        "HARM_CATEGORY_HARASSMENT",
        "HARM_CATEGORY_HATE_SPEECH",
        "HARM_CATEGORY_DANGEROUS_CONTENT",
        "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    )
]


class GeminiGenerator(BaseGenerator):
    MODEL = "gemini-2.0-flash"
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None):
        try:
            from google import genai
        except ImportError:
            raise ImportError(
                "The 'google-genai' package is required for this provider. "
                "Install it with: pip install 'prscribe[gemini]'"
            )
        self.client = genai.Client(api_key=api_key)
        self.model = model or self.MODEL

    async def _stream(self, prompt_parts: list[str], structured: bool) -> AsyncIterator[str]:
        config: dict = {
            "temperature": self.TEMPERATURE,
            "max_output_tokens": self.MAX_TOKENS,
            "safety_settings": SAFETY_SETTINGS,
        }
        if structured:
            config["response_mime_type"] = "application/json"
            config["response_schema"] = SUGGESTIONS_SCHEMA

        stream = await self.client.aio.models.generate_content_stream(
            model=self.model,
            contents=prompt_parts,
            config=config,
        )
        async for chunk in stream:
            if chunk.text:
                yield chunk.text
