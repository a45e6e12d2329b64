"""Tests for generator provider implementations.

Shared behaviour (prompt assembly, stream buffering, retries) lives in
BaseGenerator and is tested once via a lightweight stub. Provider-specific
tests cover only the SDK setup that differs between implementations.
"""

import asyncio
from unittest.mock import patch

import pytest

from prscribe_core.errors import GenerationError
from prscribe_core.providers.anthropic import AnthropicGenerator
from prscribe_core.providers.base import SUGGESTION_INSTRUCTIONS, SUMMARY_INSTRUCTIONS, BaseGenerator
from prscribe_core.providers.gemini import SUGGESTIONS_SCHEMA, GeminiGenerator
from prscribe_core.providers.openai import OpenAIGenerator


class _StubGenerator(BaseGenerator):
    """Yields fixed chunks and records what it was asked for."""

    RETRY_BACKOFF = 0

    def __init__(self, chunks=("Hello, ", "world")):
        self.chunks = chunks
        self.calls = []

    async def _stream(self, prompt_parts, structured):
        self.calls.append((list(prompt_parts), structured))
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk


# ---------------------------------------------------------------------------
# Shared behaviour — tested once through the stub, not per provider
# ---------------------------------------------------------------------------


class TestBaseGeneratorCollect:
    def test_chunks_concatenated_in_order(self):
        gen = _StubGenerator(chunks=("[", '{"a": 1}', "]"))
        assert asyncio.run(gen.suggest(["diff"])) == '[{"a": 1}]'

    def test_empty_stream_returns_empty_string(self):
        assert asyncio.run(_StubGenerator(chunks=()).summarize("diff")) == ""


class TestBaseGeneratorPrompts:
    def test_summary_parts_order(self):
        gen = _StubGenerator()
        asyncio.run(gen.summarize("the diff", "extra context"))
        parts, structured = gen.calls[0]
        assert parts == [SUMMARY_INSTRUCTIONS, "extra context", "the diff"]
        assert structured is False

    def test_summary_without_context(self):
        gen = _StubGenerator()
        asyncio.run(gen.summarize("the diff"))
        assert gen.calls[0][0] == [SUMMARY_INSTRUCTIONS, "the diff"]

    def test_suggestion_parts_include_every_file(self):
        gen = _StubGenerator()
        asyncio.run(gen.suggest(["a.py diff", "b.py diff"], "ctx"))
        parts, structured = gen.calls[0]
        assert parts == [SUGGESTION_INSTRUCTIONS, "ctx", "a.py diff", "b.py diff"]
        assert structured is True

    def test_suggestion_instructions_describe_output_fields(self):
        for name in ("from_line", "to_line", "side", "filename", "text"):
            assert name in SUGGESTION_INSTRUCTIONS


class TestBaseGeneratorRetry:
    def test_raises_generation_error_after_max_retries(self):
        class _AlwaysFail(_StubGenerator):
            async def _stream(self, prompt_parts, structured):
                raise RuntimeError("network error")
                yield  # pragma: no cover

        with pytest.raises(GenerationError, match="network error"):
            asyncio.run(_AlwaysFail().summarize("diff"))

    def test_partial_output_discarded_on_retry(self):
        attempts = 0

        class _FailMidStream(_StubGenerator):
            async def _stream(self, prompt_parts, structured):
                nonlocal attempts
                attempts += 1
                yield "partial "
                if attempts == 1:
                    raise RuntimeError("connection reset")
                yield "complete"

        assert asyncio.run(_FailMidStream().summarize("diff")) == "partial complete"
        assert attempts == 2


# ---------------------------------------------------------------------------
# Provider-specific — only what differs between providers
# ---------------------------------------------------------------------------


class TestGeminiGenerator:
    def test_raises_import_error_without_sdk(self):
        with patch.dict("sys.modules", {"google": None, "google.genai": None}):
            with pytest.raises(ImportError):
                GeminiGenerator(api_key="key")

    def test_model_is_gemini(self):
        assert "gemini" in GeminiGenerator.MODEL

    def test_schema_requires_every_field(self):
        assert SUGGESTIONS_SCHEMA["type"] == "ARRAY"
        assert set(SUGGESTIONS_SCHEMA["items"]["required"]) == {"from_line", "to_line", "side", "filename", "text"}


class TestAnthropicGenerator:
    def test_raises_import_error_without_sdk(self):
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError):
                AnthropicGenerator(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicGenerator.MODEL


class TestOpenAIGenerator:
    def test_raises_import_error_without_sdk(self):
        import prscribe_core.providers.openai as openai_mod

        real_openai = openai_mod._AsyncOpenAI
        openai_mod._AsyncOpenAI = None
        try:
            with pytest.raises(ImportError):
                OpenAIGenerator(api_key="key")
        finally:
            openai_mod._AsyncOpenAI = real_openai

    def test_model_is_gpt(self):
        assert "gpt" in OpenAIGenerator.MODEL
