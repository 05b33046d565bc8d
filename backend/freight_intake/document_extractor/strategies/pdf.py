"""
PDF extraction strategies.

- OptimizedPdfStrategy: samples the first page, picks a text-acquisition
  method, then runs pattern extraction with optional AI text enhancement.
- SimplePdfStrategy: text layer only, patterns only. Cheap and predictable.
- EnhancedPdfStrategy: hybrid text acquisition plus AI vision on the first
  pages when the pattern result is weak.
"""

import asyncio

from freight_intake.document_extractor.memory import MemoryMonitor
from freight_intake.document_extractor.models import Document, ExtractionResult, PdfMethod
from freight_intake.document_extractor.ocr import pdf_page_blocks
from freight_intake.document_extractor.pdf_analyzer import PdfAnalyzer, select_method, selection_reason
from freight_intake.document_extractor.pdf_text import PdfTextExtractor
from freight_intake.document_extractor.strategies.base import ExtractionStrategy
from freight_intake.exceptions import ExtractionFailed
from freight_intake.field_extraction.engine import needs_enhancement
from freight_intake.field_extraction.sources import ExtractionContext

PDF_MIME_TYPE = "application/pdf"


def is_pdf(document: Document) -> bool:
    return document.extension == "pdf" or "pdf" in document.normalized_mime


class _PdfStrategy(ExtractionStrategy):
    def __init__(self, *args, text_extractor: PdfTextExtractor | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.text_extractor = text_extractor or PdfTextExtractor(self.settings)

    def supports(self, document: Document) -> bool:
        return is_pdf(document)

    def _require_text(self, text: str, document: Document, method: PdfMethod) -> str:
        if not text.strip():
            raise ExtractionFailed(
                f"No text could be extracted with method {method.value}",
                document_id=document.id,
                strategy=self.name,
            )
        return text


class OptimizedPdfStrategy(_PdfStrategy):
    name = "optimized_pdf_extraction"
    priority = 96

    def __init__(self, *args, memory: MemoryMonitor | None = None, analyzer: PdfAnalyzer | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.memory = memory
        self.analyzer = analyzer or PdfAnalyzer(self.settings)

    def supports(self, document: Document) -> bool:
        return document.normalized_mime == PDF_MIME_TYPE

    async def _extract(self, document: Document) -> ExtractionResult:
        content = await self.read(document)
        characteristics = await asyncio.to_thread(self.analyzer.analyze, content, document.id)
        prefer_streaming = self.memory.consume_streaming_hint() if self.memory else False
        method = select_method(characteristics, self.settings, prefer_streaming=prefer_streaming)
        reason = selection_reason(characteristics, method, prefer_streaming)
        self.logger.info("Document %s: method %s (%s)", document.id, method.value, reason)

        text = await self.text_extractor.extract(content, method, document.id)
        text = self._require_text(text, document, method)

        context = ExtractionContext(text=text, document_id=document.id)
        data, metadata = self.run_fields(context)
        data, metadata = await self.enhance(context, data, metadata)
        return self.result(
            data,
            metadata,
            document_type="pdf",
            pdf_characteristics=characteristics.to_dict(),
            extraction_method=method.value,
            method_reason=reason,
            text_length=len(text),
        )


class SimplePdfStrategy(_PdfStrategy):
    name = "simple_pdf_extraction"
    priority = 95

    async def _extract(self, document: Document) -> ExtractionResult:
        content = await self.read(document)
        text = await self.text_extractor.extract(content, PdfMethod.PDF_PARSER, document.id)
        text = self._require_text(text, document, PdfMethod.PDF_PARSER)

        data, metadata = self.run_fields(ExtractionContext(text=text, document_id=document.id))
        return self.result(
            data,
            metadata,
            document_type="pdf",
            extraction_method=PdfMethod.PDF_PARSER.value,
            text_length=len(text),
        )


class EnhancedPdfStrategy(_PdfStrategy):
    name = "enhanced_pdf_extraction"
    priority = 90

    async def _extract(self, document: Document) -> ExtractionResult:
        content = await self.read(document)
        try:
            text = await self.text_extractor.extract(content, PdfMethod.HYBRID, document.id)
        except ExtractionFailed as e:
            if not (self.ai and self.ai.enabled):
                raise
            self.logger.warning("No text for document %s, relying on vision: %s", document.id, e)
            text = ""

        context = ExtractionContext(text=text, document_id=document.id)
        data, metadata = self.run_fields(context)

        images = None
        if self.ai and self.ai.enabled and needs_enhancement(data, metadata, self.settings.ai_confidence_threshold):
            try:
                images = await asyncio.to_thread(pdf_page_blocks, content)
            except Exception as e:
                self.logger.warning("Page rendering failed for document %s: %s", document.id, e)
        data, metadata = await self.enhance(context, data, metadata, images=images)
        return self.result(
            data,
            metadata,
            document_type="pdf",
            extraction_method=PdfMethod.HYBRID.value,
            text_length=len(text),
            vision_pages=len(images or []),
        )
