"""
Unit tests for jobtrack/common/structured_output.py

Tests the prompt-in, structure-out entry points:
- extract_structured with and without retry and schema
- extract_text for prose call sites
- parse_or_raw lenient path
- Full cycle over an in-memory Ollama transport
"""

from typing import List
from unittest.mock import AsyncMock

import httpx
import pytest
from pydantic import BaseModel

from jobtrack.common.errors import (
    EmptyResponseError,
    NoJsonFoundError,
    SchemaValidationError,
    StructuredOutputError,
)
from jobtrack.common.ollama_client import OllamaClient
from jobtrack.common.structured_output import JSON_ONLY_INSTRUCTION, StructuredOutputClient


class StarCheck(BaseModel):
    follows_star: bool
    missing_components: List[str] = []


class TestExtractStructured:
    """Tests for StructuredOutputClient.extract_structured()."""

    @pytest.mark.asyncio
    async def test_returns_parsed_object(self, fake_ollama):
        ollama = fake_ollama('```json\n{"a":1}\n```')
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_structured("prompt") == {"a": 1}

    @pytest.mark.asyncio
    async def test_appends_json_only_instruction(self, fake_ollama):
        ollama = fake_ollama("[1]")
        extractor = StructuredOutputClient(ollama=ollama)

        await extractor.extract_structured("List numbers", max_tokens=800)

        prompt = ollama.generate.await_args.args[0]
        assert prompt.startswith("List numbers")
        assert prompt.endswith(JSON_ONLY_INSTRUCTION)
        assert ollama.generate.await_args.kwargs["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_uses_config_temperature_by_default(self, fake_ollama, test_config):
        ollama = fake_ollama("{}")
        extractor = StructuredOutputClient(ollama=ollama)

        await extractor.extract_structured("p")

        assert ollama.generate.await_args.kwargs["temperature"] == test_config.temperature

    @pytest.mark.asyncio
    async def test_without_retry_failure_propagates_after_one_call(self, fake_ollama):
        ollama = fake_ollama("no structure here at all", '{"a": 1}')
        extractor = StructuredOutputClient(ollama=ollama)

        with pytest.raises(NoJsonFoundError):
            await extractor.extract_structured("p")
        assert ollama.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_reinvokes_model(self, fake_ollama):
        ollama = fake_ollama("Sorry, I cannot help.", '{"a": 1}')
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_structured("p", retry=True) == {"a": 1}
        assert ollama.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_stops_at_max_attempts(self, fake_ollama):
        ollama = fake_ollama("prose one", "prose two", '{"too": "late"}')
        extractor = StructuredOutputClient(ollama=ollama)

        with pytest.raises(NoJsonFoundError) as exc_info:
            await extractor.extract_structured("p", retry=True, max_attempts=2)

        assert exc_info.value.preview == "prose two"
        assert ollama.generate.await_count == 2

    @pytest.mark.asyncio
    async def test_retry_covers_transport_errors(self, fake_ollama):
        request = httpx.Request("POST", "http://ollama.test/api/generate")
        ollama = fake_ollama(httpx.ConnectError("refused", request=request), "[1, 2, 3]")
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_structured("p", retry=True) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_transport_error_is_not_wrapped(self, fake_ollama):
        request = httpx.Request("POST", "http://ollama.test/api/generate")
        ollama = fake_ollama(httpx.ReadTimeout("slow", request=request))
        extractor = StructuredOutputClient(ollama=ollama)

        with pytest.raises(httpx.ReadTimeout):
            await extractor.extract_structured("p")

    @pytest.mark.asyncio
    async def test_schema_returns_model_instance(self, fake_ollama):
        ollama = fake_ollama("{'follows_star': true, 'missing_components': ['result'],}")
        extractor = StructuredOutputClient(ollama=ollama)

        result = await extractor.extract_structured("p", schema=StarCheck)

        assert isinstance(result, StarCheck)
        assert result.follows_star is True
        assert result.missing_components == ["result"]

    @pytest.mark.asyncio
    async def test_schema_mismatch_raises_typed_error(self, fake_ollama):
        ollama = fake_ollama('{"missing_components": "not a list"}')
        extractor = StructuredOutputClient(ollama=ollama)

        with pytest.raises(SchemaValidationError) as exc_info:
            await extractor.extract_structured("p", schema=StarCheck)

        assert isinstance(exc_info.value, StructuredOutputError)
        assert exc_info.value.errors
        assert "missing_components" in exc_info.value.preview


class TestExtractText:
    """Tests for StructuredOutputClient.extract_text()."""

    @pytest.mark.asyncio
    async def test_strips_fences(self, fake_ollama):
        ollama = fake_ollama("```markdown\nDear hiring team,\nThanks!\n```")
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_text("write a note") == "Dear hiring team,\nThanks!"

    @pytest.mark.asyncio
    async def test_does_not_append_json_instruction(self, fake_ollama):
        ollama = fake_ollama("hello")
        extractor = StructuredOutputClient(ollama=ollama)

        await extractor.extract_text("say hello")

        assert ollama.generate.await_args.args[0] == "say hello"

    @pytest.mark.asyncio
    async def test_empty_raises(self, fake_ollama):
        ollama = fake_ollama("   ")
        extractor = StructuredOutputClient(ollama=ollama)

        with pytest.raises(EmptyResponseError):
            await extractor.extract_text("p")

    @pytest.mark.asyncio
    async def test_empty_then_text_with_retry(self, fake_ollama):
        ollama = fake_ollama("", "Second try worked")
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_text("p", retry=True) == "Second try worked"


class TestParseOrRaw:
    """Tests for StructuredOutputClient.parse_or_raw()."""

    @pytest.mark.asyncio
    async def test_returns_parsed_json(self, fake_ollama):
        extractor = StructuredOutputClient(ollama=fake_ollama('{"skills": ["Python"]}'))

        assert await extractor.parse_or_raw("p") == {"skills": ["Python"]}

    @pytest.mark.asyncio
    async def test_prose_becomes_raw(self, fake_ollama):
        extractor = StructuredOutputClient(ollama=fake_ollama("```\nLooks great overall.\n```"))

        assert await extractor.parse_or_raw("p") == {"raw": "Looks great overall."}

    @pytest.mark.asyncio
    async def test_empty_still_raises(self, fake_ollama):
        extractor = StructuredOutputClient(ollama=fake_ollama(""))

        with pytest.raises(EmptyResponseError):
            await extractor.parse_or_raw("p")


class TestFullCycle:
    """Tests running the real OllamaClient over a mock transport."""

    @pytest.mark.asyncio
    async def test_end_to_end_repair(self, test_config, ollama_transport):
        transport = ollama_transport({"response": "Here you go:\n```json\n{a: 1, b: 'x',}\n```"})
        ollama = OllamaClient(test_config, http_client=httpx.AsyncClient(transport=transport))
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_structured("p") == {"a": 1, "b": "x"}
        assert transport.requests[0]["stream"] is False
        assert transport.requests[0]["model"] == test_config.model

    @pytest.mark.asyncio
    async def test_end_to_end_retry_over_http(self, test_config, ollama_transport):
        transport = ollama_transport(
            {"response": "I am not sure."},
            {"response": '["Add metrics", "Cut filler"]'},
        )
        ollama = OllamaClient(test_config, http_client=httpx.AsyncClient(transport=transport))
        extractor = StructuredOutputClient(ollama=ollama)

        result = await extractor.extract_structured("p", retry=True)

        assert result == ["Add metrics", "Cut filler"]
        assert len(transport.requests) == 2


class TestRetryArguments:
    """Tests for how retry settings are resolved."""

    @pytest.mark.asyncio
    async def test_explicit_zero_attempts_is_rejected(self, fake_ollama):
        ollama = fake_ollama('{"a": 1}')
        extractor = StructuredOutputClient(ollama=ollama)

        with pytest.raises(ValueError, match="max_attempts"):
            await extractor.extract_structured("p", retry=True, max_attempts=0)
        ollama.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_config_attempts_used_when_unset(self, fake_ollama, test_config):
        test_config.max_attempts = 3
        ollama = fake_ollama("prose", "prose", '{"a": 1}', config=test_config)
        extractor = StructuredOutputClient(ollama=ollama)

        assert await extractor.extract_structured("p", retry=True) == {"a": 1}
        assert ollama.generate.await_count == 3


class TestLifecycle:
    """Tests for closing the model client."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self, test_config):
        async with StructuredOutputClient(test_config) as extractor:
            http_client = extractor.ollama._http_client

        assert http_client.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_is_left_open(self, fake_ollama):
        ollama = fake_ollama()
        ollama.aclose = AsyncMock()

        async with StructuredOutputClient(ollama=ollama):
            pass

        ollama.aclose.assert_not_awaited()
