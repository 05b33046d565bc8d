import asyncio

from freight_intake.document_extractor.models import Document, ExtractionResult
from freight_intake.document_extractor.ocr import TesseractOcr, image_block
from freight_intake.document_extractor.strategies.base import ExtractionStrategy
from freight_intake.exceptions import ExtractionFailed
from freight_intake.field_extraction.sources import ExtractionContext

VISION_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
VISION_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
OCR_MIME_TYPES = VISION_MIME_TYPES | {"image/tiff", "image/bmp"}
OCR_EXTENSIONS = VISION_EXTENSIONS | {"tif", "tiff", "bmp"}


class _ImageStrategy(ExtractionStrategy):
    def __init__(self, *args, ocr: TesseractOcr | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.ocr = ocr or TesseractOcr(self.settings)

    async def _ocr_text(self, content: bytes, document: Document) -> str:
        return await self.ocr.image_to_text(content, suffix=f".{document.extension or 'png'}")


class ImageOcrStrategy(_ImageStrategy):
    """Tesseract OCR followed by pattern extraction."""

    name = "image_ocr"
    priority = 80

    def supports(self, document: Document) -> bool:
        return document.normalized_mime in OCR_MIME_TYPES or document.extension in OCR_EXTENSIONS

    async def _extract(self, document: Document) -> ExtractionResult:
        content = await self.read(document)
        text = (await self._ocr_text(content, document)).strip()
        if not text:
            raise ExtractionFailed("OCR produced no text", document_id=document.id, strategy=self.name)

        data, metadata = self.run_fields(ExtractionContext(text=text, document_id=document.id))
        return self.result(data, metadata, document_type="image", extraction_method="ocr", text_length=len(text))


class EnhancedImageStrategy(_ImageStrategy):
    """AI vision with OCR text as pattern input and fallback."""

    name = "enhanced_image_extraction"
    priority = 85

    def supports(self, document: Document) -> bool:
        return document.normalized_mime in VISION_MIME_TYPES or document.extension in VISION_EXTENSIONS

    async def _extract(self, document: Document) -> ExtractionResult:
        content = await self.read(document)
        try:
            text = (await self._ocr_text(content, document)).strip()
        except ExtractionFailed as e:
            self.logger.warning("OCR unavailable for document %s: %s", document.id, e)
            text = ""

        vision = bool(self.ai and self.ai.enabled)
        if not text and not vision:
            raise ExtractionFailed("No OCR text and AI vision disabled", document_id=document.id, strategy=self.name)

        context = ExtractionContext(text=text, document_id=document.id)
        data, metadata = self.run_fields(context)
        if vision:
            try:
                block = await asyncio.to_thread(image_block, content)
            except OSError as e:
                raise ExtractionFailed(f"Unreadable image: {e}", document_id=document.id, strategy=self.name) from e
            data, metadata = await self.enhance(context, data, metadata, images=[block])
        return self.result(
            data,
            metadata,
            document_type="image",
            extraction_method="vision" if metadata.get("ai_enhanced") else "ocr",
            text_length=len(text),
        )
