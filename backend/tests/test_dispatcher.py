"""Tests for strategy selection, document models and the error taxonomy."""

import pytest

from freight_intake.document_extractor.dispatcher import StrategyDispatcher
from freight_intake.document_extractor.models import Document, ExtractionResult
from freight_intake.document_extractor.strategies import build_default_strategies
from freight_intake.document_extractor.strategies.base import ExtractionStrategy
from freight_intake.exceptions import DocumentNotFound, ExtractionFailed, SourceUnavailable


def make_strategy(name: str, priority: int, extensions: set[str]) -> ExtractionStrategy:
    class _Fake(ExtractionStrategy):
        def supports(self, document):
            return document.extension in extensions

        async def _extract(self, document):
            return ExtractionResult.ok({"document": {"id": document.id}}, 0.5, self.name)

    _Fake.name = name
    _Fake.priority = priority
    return _Fake(None, None, None)


def doc(filename: str, mime_type: str = "application/octet-stream") -> Document:
    return Document(id="doc-1", filename=filename, mime_type=mime_type, storage_location=filename)


class TestDispatcher:
    def test_priority_order(self):
        dispatcher = StrategyDispatcher([
            make_strategy("low", 10, {"pdf"}),
            make_strategy("high", 90, {"pdf"}),
            make_strategy("images", 95, {"png"}),
        ])
        names = [s.name for s in dispatcher.get_supported_strategies(doc("quote.pdf"))]
        assert names == ["high", "low"]
        assert dispatcher.get_strategy(doc("quote.pdf")).name == "high"

    def test_ties_keep_registration_order(self):
        dispatcher = StrategyDispatcher([make_strategy("first", 50, {"pdf"}), make_strategy("second", 50, {"pdf"})])
        assert dispatcher.get_strategy(doc("quote.pdf")).name == "first"

    def test_no_strategy_is_none(self):
        dispatcher = StrategyDispatcher([make_strategy("pdf", 50, {"pdf"})])
        assert dispatcher.get_strategy(doc("notes.txt")) is None
        assert dispatcher.get_supported_strategies(doc("notes.txt")) == []

    def test_duplicate_name_rejected(self):
        dispatcher = StrategyDispatcher([make_strategy("pdf", 50, {"pdf"})])
        with pytest.raises(ValueError, match="already registered"):
            dispatcher.register(make_strategy("pdf", 60, {"pdf"}))

    def test_describe(self):
        dispatcher = StrategyDispatcher([make_strategy("a", 1, set()), make_strategy("b", 2, set())])
        assert dispatcher.describe() == [{"name": "b", "priority": 2}, {"name": "a", "priority": 1}]


class TestDefaultRegistry:
    @pytest.fixture
    def dispatcher(self, test_settings, storage, engine):
        return StrategyDispatcher(build_default_strategies(test_settings, storage, engine))

    def test_registered_priorities(self, dispatcher):
        assert dispatcher.describe() == [
            {"name": "email_extraction", "priority": 100},
            {"name": "optimized_pdf_extraction", "priority": 96},
            {"name": "simple_pdf_extraction", "priority": 95},
            {"name": "enhanced_pdf_extraction", "priority": 90},
            {"name": "enhanced_image_extraction", "priority": 85},
            {"name": "image_ocr", "priority": 80},
        ]

    def test_email_by_mime_or_extension(self, dispatcher):
        assert dispatcher.get_strategy(doc("mail.eml")).name == "email_extraction"
        assert dispatcher.get_strategy(doc("mail", "message/rfc822")).name == "email_extraction"

    def test_pdf_chain(self, dispatcher):
        names = [s.name for s in dispatcher.get_supported_strategies(doc("quote.pdf", "application/pdf"))]
        assert names == ["optimized_pdf_extraction", "simple_pdf_extraction", "enhanced_pdf_extraction"]

    def test_pdf_without_pdf_mime_skips_optimized(self, dispatcher):
        names = [s.name for s in dispatcher.get_supported_strategies(doc("quote.pdf"))]
        assert names == ["simple_pdf_extraction", "enhanced_pdf_extraction"]

    def test_images(self, dispatcher):
        assert [s.name for s in dispatcher.get_supported_strategies(doc("photo.jpg", "image/jpeg"))] == [
            "enhanced_image_extraction", "image_ocr",
        ]
        assert [s.name for s in dispatcher.get_supported_strategies(doc("scan.tiff", "image/tiff"))] == ["image_ocr"]

    def test_unsupported(self, dispatcher):
        assert dispatcher.get_strategy(doc("notes.txt", "text/plain")) is None


class TestModels:
    def test_document_extension_and_mime(self):
        document = Document(id="1", filename="Quote.PDF", mime_type="Application/PDF; charset=binary", storage_location="x")
        assert document.extension == "pdf"
        assert document.normalized_mime == "application/pdf"
        assert doc("README").extension == ""

    def test_confidence_clamped(self):
        assert ExtractionResult.ok({}, 1.4, "s").confidence == 1.0
        assert ExtractionResult(success=True, confidence=-0.2).confidence == 0.0

    def test_failure_from_error(self):
        error = DocumentNotFound("Document not found: x.pdf", document_id="doc-1")
        result = ExtractionResult.failure(error, strategy="simple_pdf_extraction")
        assert result.success is False
        assert result.error_type == "document_not_found"
        assert result.error == "Document not found: x.pdf"
        assert result.data == {"error": "Document not found: x.pdf"}
        assert result.confidence == 0.0

    def test_failure_from_string(self):
        assert ExtractionResult.failure("boom").error_type == "extraction_failed"


class TestErrors:
    def test_context_and_str(self):
        error = ExtractionFailed("OCR produced no text", document_id="doc-1", strategy="image_ocr")
        assert error.context() == {
            "error_type": "extraction_failed",
            "document_id": "doc-1",
            "strategy": "image_ocr",
            "field": None,
        }
        assert str(error) == "OCR produced no text document_id=doc-1 strategy=image_ocr"

    def test_not_found_is_storage_error(self):
        assert issubclass(DocumentNotFound, SourceUnavailable)
