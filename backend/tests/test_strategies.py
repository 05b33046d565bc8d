"""Tests for the concrete extraction strategies."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import QUOTE_EMAIL_BODY, make_email, make_png
from freight_intake.config import Settings
from freight_intake.document_extractor.models import Document
from freight_intake.document_extractor.strategies import (
    EmailStrategy,
    EnhancedImageStrategy,
    ImageOcrStrategy,
    SimplePdfStrategy,
)
from freight_intake.exceptions import ExtractionFailed
from freight_intake.services.ai_extraction import AIExtractionService

VISION_RESPONSE = {
    "vehicle": {"brand": "Toyota", "model": "Hilux", "year": 2018},
    "shipment": {"origin": "Antwerp", "destination": "Cotonou", "shipping_type": "roro"},
    "contact": {"name": "Marie Dubois", "email": "marie.dubois@dubois-trading.fr"},
    "confidence": 0.9,
}


def make_mock_message(content_text: str):
    """Create a mock Anthropic message response."""
    mock_content = MagicMock()
    mock_content.text = content_text
    mock_message = MagicMock()
    mock_message.content = [mock_content]
    return mock_message


def mock_ocr(text: str = "", error: Exception | None = None):
    ocr = MagicMock()
    ocr.image_to_text = AsyncMock(return_value=text, side_effect=error)
    return ocr


class TestEmailStrategy:
    @pytest.mark.asyncio
    async def test_quote_email(self, test_settings, storage, engine, make_document, quote_email):
        document = make_document("quote.eml", quote_email, "message/rfc822")
        result = await EmailStrategy(test_settings, storage, engine).extract(document)

        assert result.success is True
        assert result.strategy_used == "email_extraction"
        assert result.data["vehicle"]["brand"] == "BMW"
        assert result.data["contact"]["name"] == "Jan Peeters"
        assert result.metadata["document_type"] == "email"
        assert result.metadata["email_metadata"]["subject"] == "Quote request BMW 7 Series"
        assert "contact" in result.metadata["sections_populated"]
        assert 0 < result.confidence <= 1

    @pytest.mark.asyncio
    async def test_quoted_history_is_not_body_text(self, test_settings, storage, engine, make_document):
        body = "Any news on my quote?\n\nOn Mon, 3 Mar 2025, Jan Peeters wrote:\n> Ship from Antwerp to Lagos please"
        document = make_document("reply.eml", make_email(body, subject="Re: quote"), "message/rfc822")
        result = await EmailStrategy(test_settings, storage, engine).extract(document)

        assert result.success is True
        assert result.data["messages"][0]["content"] == "Ship from Antwerp to Lagos please"
        assert result.data["shipment"]["origin"] == "Antwerp"
        assert result.metadata["sections"]["shipment"]["provenance"]["origin"] == "messages"

    @pytest.mark.asyncio
    async def test_missing_document(self, test_settings, storage, engine):
        document = Document(id="doc-x", filename="gone.eml", mime_type="message/rfc822", storage_location="gone.eml")
        result = await EmailStrategy(test_settings, storage, engine).extract(document)

        assert result.success is False
        assert result.error_type == "document_not_found"
        assert result.metadata["document_id"] == "doc-x"
        assert result.metadata["strategy"] == "email_extraction"

    @pytest.mark.asyncio
    async def test_empty_document(self, test_settings, storage, engine, make_document):
        document = make_document("empty.eml", b"", "message/rfc822")
        result = await EmailStrategy(test_settings, storage, engine).extract(document)

        assert result.error_type == "extraction_failed"
        assert result.error == "Document is empty"

    @pytest.mark.asyncio
    async def test_not_an_email(self, test_settings, storage, engine, make_document):
        document = make_document("junk.eml", b"\x00\x01\x02", "message/rfc822")
        result = await EmailStrategy(test_settings, storage, engine).extract(document)

        assert result.success is False
        assert "no headers" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_failure(self, test_settings, storage, engine, make_document, quote_email):
        strategy = EmailStrategy(test_settings, storage, engine)
        strategy.run_fields = MagicMock(side_effect=RuntimeError("boom"))
        result = await strategy.extract(make_document("quote.eml", quote_email, "message/rfc822"))

        assert result.success is False
        assert result.error_type == "extraction_failed"
        assert result.error == "boom"
        assert result.strategy_used == "email_extraction"

    @pytest.mark.asyncio
    async def test_nothing_extracted(self, test_settings, storage, engine, make_document):
        document = make_document("hi.eml", make_email("Hi"), "message/rfc822")
        strategy = EmailStrategy(test_settings, storage, engine)
        strategy.run_fields = MagicMock(return_value=({"document": {"id": "doc-hi.eml"}, "messages": []}, {}))
        result = await strategy.extract(document)

        assert result.success is False
        assert result.error == "No fields could be extracted"


class TestPdfStrategy:
    @pytest.mark.asyncio
    async def test_simple_pdf(self, test_settings, storage, engine, make_document, quote_pdf):
        document = make_document("quote.pdf", quote_pdf, "application/pdf")
        result = await SimplePdfStrategy(test_settings, storage, engine).extract(document)

        assert result.success is True
        assert result.metadata["extraction_method"] == "pdf-parser"
        assert result.data["vehicle"]["brand"] == "BMW"
        assert result.data["shipment"]["destination"] == "Lagos"

    @pytest.mark.asyncio
    async def test_corrupt_pdf(self, test_settings, storage, engine, make_document):
        document = make_document("broken.pdf", b"%PDF-1.4 nonsense", "application/pdf")
        result = await SimplePdfStrategy(test_settings, storage, engine).extract(document)

        assert result.success is False
        assert result.error_type == "extraction_failed"


class TestImageStrategies:
    @pytest.mark.asyncio
    async def test_ocr_text_goes_through_patterns(self, test_settings, storage, engine, make_document):
        document = make_document("scan.tiff", b"II*\x00fake", "image/tiff")
        strategy = ImageOcrStrategy(test_settings, storage, engine, ocr=mock_ocr(QUOTE_EMAIL_BODY))
        result = await strategy.extract(document)

        assert result.success is True
        assert result.metadata["extraction_method"] == "ocr"
        assert result.data["shipment"]["origin"] == "Antwerp"
        strategy.ocr.image_to_text.assert_awaited_once_with(b"II*\x00fake", suffix=".tiff")

    @pytest.mark.asyncio
    async def test_ocr_without_text_fails(self, test_settings, storage, engine, make_document):
        document = make_document("blank.png", make_png(), "image/png")
        result = await ImageOcrStrategy(test_settings, storage, engine, ocr=mock_ocr("  \n")).extract(document)

        assert result.success is False
        assert result.error == "OCR produced no text"

    @pytest.mark.asyncio
    async def test_enhanced_image_without_ocr_or_ai(self, test_settings, storage, engine, make_document):
        document = make_document("photo.png", make_png(), "image/png")
        ocr = mock_ocr(error=ExtractionFailed("Binary not available: tesseract"))
        result = await EnhancedImageStrategy(test_settings, storage, engine, ocr=ocr).extract(document)

        assert result.success is False
        assert result.error == "No OCR text and AI vision disabled"

    @pytest.mark.asyncio
    async def test_vision_extraction(self, test_settings, storage, engine, make_document):
        settings = Settings(_env_file=None, storage_root=test_settings.storage_root, ai_enabled=True)
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=make_mock_message(json.dumps(VISION_RESPONSE)))
        ai = AIExtractionService(settings, client=client)
        document = make_document("photo.png", make_png(), "image/png")

        strategy = EnhancedImageStrategy(settings, storage, engine, ai, ocr=mock_ocr(""))
        result = await strategy.extract(document)

        assert result.success is True
        assert result.metadata["extraction_method"] == "vision"
        assert result.metadata["ai_enhanced"] is True
        assert result.data["vehicle"]["brand"] == "Toyota"
        assert result.data["shipment"]["destination"] == "Cotonou"
        assert result.metadata["sections"]["vehicle"]["provenance"]["brand"] == "structured_data"

        content = client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert content[0]["type"] == "image"
        assert content[0]["source"]["media_type"] == "image/png"

    @pytest.mark.asyncio
    async def test_vision_failure_keeps_ocr_result(self, test_settings, storage, engine, make_document):
        settings = Settings(_env_file=None, storage_root=test_settings.storage_root, ai_enabled=True)
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=RuntimeError("overloaded"))
        ai = AIExtractionService(settings, client=client)
        document = make_document("photo.png", make_png(), "image/png")

        strategy = EnhancedImageStrategy(settings, storage, engine, ai, ocr=mock_ocr(QUOTE_EMAIL_BODY))
        result = await strategy.extract(document)

        assert result.success is True
        assert result.metadata["ai_enhanced"] is False
        assert result.metadata["extraction_method"] == "ocr"
        assert result.data["vehicle"]["brand"] == "BMW"
