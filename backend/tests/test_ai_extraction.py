"""Tests for the Claude-backed AI extraction service."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from freight_intake.config import Settings
from freight_intake.services.ai_extraction import (
    DEFAULT_CONFIDENCE,
    AIExtractionService,
    _build_content,
    _parse_json_response,
)

SAMPLE_EXTRACTION = {
    "vehicle": {"brand": "Toyota", "model": "Hilux", "year": 2018},
    "shipment": {"origin": "Antwerp", "destination": "Lagos"},
    "confidence": 0.85,
}


def make_mock_message(content_text: str):
    """Create a mock Anthropic message response."""
    mock_content = MagicMock()
    mock_content.text = content_text
    mock_message = MagicMock()
    mock_message.content = [mock_content]
    return mock_message


def make_service(response=None, side_effect=None, **overrides) -> tuple[AIExtractionService, MagicMock]:
    settings = Settings(_env_file=None, ai_enabled=True, anthropic_api_key="test-key", **overrides)
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=response, side_effect=side_effect)
    return AIExtractionService(settings, client=client), client


class TestParseJsonResponse:
    def test_plain(self):
        assert _parse_json_response('{"a": 1}') == {"a": 1}

    def test_markdown_fences(self):
        assert _parse_json_response('Here you go:\n```json\n{"a": 1}\n```') == {"a": 1}
        assert _parse_json_response('```\n{"b": 2}\n```') == {"b": 2}

    def test_invalid(self):
        with pytest.raises(ValueError):
            _parse_json_response("not json at all")


class TestBuildContent:
    def test_images_before_text(self):
        content = _build_content("body", images=[{"base64": "AAAA", "media_type": "image/png"}], extra_text="schema")
        assert content[0] == {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/png", "data": "AAAA"},
        }
        assert content[1] == {"type": "text", "text": "body\n\nschema"}

    def test_blank_text_skipped(self):
        assert _build_content("  ") == []


class TestEnabled:
    def test_disabled_without_key_or_client(self):
        service = AIExtractionService(Settings(_env_file=None, ai_enabled=True, anthropic_api_key=""))
        assert service.enabled is False

    def test_disabled_by_flag(self):
        service = AIExtractionService(Settings(_env_file=None, ai_enabled=False), client=MagicMock())
        assert service.enabled is False

    @pytest.mark.asyncio
    async def test_disabled_returns_none(self):
        service = AIExtractionService(Settings(_env_file=None, ai_enabled=False, anthropic_api_key=""))
        assert await service.extract("Ship a BMW") is None
        assert await service.extract_advanced({"text": "Ship a BMW"}) is None


class TestExtract:
    @pytest.mark.asyncio
    async def test_parses_response(self):
        service, client = make_service(make_mock_message(json.dumps(SAMPLE_EXTRACTION)))
        result = await service.extract("Toyota Hilux to Lagos", options={"document_id": "doc-1", "hints": {"contact": {"name": "Marie"}}})

        assert result["data"] == {
            "vehicle": {"brand": "Toyota", "model": "Hilux", "year": 2018},
            "shipment": {"origin": "Antwerp", "destination": "Lagos"},
        }
        assert result["confidence"] == 0.85
        assert result["metadata"]["mode"] == "text"

        kwargs = client.messages.create.call_args.kwargs
        prompt = kwargs["messages"][0]["content"][0]["text"]
        assert prompt.startswith("Toyota Hilux to Lagos")
        assert '"name": "Marie"' in prompt
        assert kwargs["model"] == service.model

    @pytest.mark.asyncio
    async def test_missing_confidence_defaults(self):
        service, _ = make_service(make_mock_message('{"vehicle": {"brand": "BMW"}}'))
        result = await service.extract("BMW")
        assert result["confidence"] == DEFAULT_CONFIDENCE

    @pytest.mark.asyncio
    async def test_confidence_clamped(self):
        service, _ = make_service(make_mock_message('{"confidence": 7}'))
        assert (await service.extract("BMW"))["confidence"] == 1.0

    @pytest.mark.asyncio
    async def test_empty_content_skips_call(self):
        service, client = make_service(make_mock_message("{}"))
        assert await service.extract("   ") is None
        client.messages.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unparseable_output(self):
        service, _ = make_service(make_mock_message("I cannot help with that"))
        assert await service.extract("BMW") is None

    @pytest.mark.asyncio
    async def test_non_object_json(self):
        service, _ = make_service(make_mock_message("[1, 2, 3]"))
        assert await service.extract("BMW") is None

    @pytest.mark.asyncio
    async def test_api_error(self):
        service, _ = make_service(side_effect=RuntimeError("overloaded"))
        assert await service.extract("BMW") is None

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def _slow(**kwargs):
            await asyncio.sleep(1)

        service, _ = make_service(side_effect=_slow, ai_timeout_seconds=0.05)
        assert await service.extract("BMW") is None


class TestExtractAdvanced:
    @pytest.mark.asyncio
    async def test_vision(self):
        service, client = make_service(make_mock_message(json.dumps(SAMPLE_EXTRACTION)))
        images = [{"base64": "AAAA", "media_type": "image/png"}]
        result = await service.extract_advanced({"images": images, "text": ""}, mode="vision", context={"document_id": "doc-1"})

        assert result["extracted_data"]["vehicle"]["brand"] == "Toyota"
        assert result["metadata"] == {"model": service.model, "mode": "vision", "confidence": 0.85, "images": 1}
        assert client.messages.create.call_args.kwargs["messages"][0]["content"][0]["type"] == "image"

    @pytest.mark.asyncio
    async def test_nothing_to_send(self):
        service, client = make_service(make_mock_message("{}"))
        assert await service.extract_advanced({"images": [], "text": ""}) is None
        client.messages.create.assert_not_awaited()
