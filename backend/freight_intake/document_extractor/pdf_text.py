"""Text acquisition for PDFs, one coroutine per PdfMethod."""

import asyncio
import io
import logging
import re

import aiofiles
import pdfplumber

from freight_intake.config import Settings
from freight_intake.document_extractor.models import PdfMethod
from freight_intake.document_extractor.ocr import TesseractOcr
from freight_intake.document_extractor.workspace import run_subprocess, scoped_workspace
from freight_intake.exceptions import ExtractionFailed

logger = logging.getLogger("freight.pdf")


def clean_pdf_text(text: str) -> str:
    text = text.replace("\x00", "").replace("\f", "\n")
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def parse_all_pages(content: bytes) -> str:
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        pages = []
        for page in pdf.pages:
            pages.append(page.extract_text() or "")
            # release per-page layout objects as we go
            page.close()
    return "\n\n".join(pages)


class PdfTextExtractor:
    def __init__(self, settings: Settings, ocr: TesseractOcr | None = None):
        self.settings = settings
        self.ocr = ocr or TesseractOcr(settings)

    async def extract(self, content: bytes, method: PdfMethod, document_id: str | None = None) -> str:
        handlers = {
            PdfMethod.PDF_PARSER: self.parser,
            PdfMethod.STREAMING: self.streaming,
            PdfMethod.OCR_DIRECT: self.ocr_direct,
            PdfMethod.HYBRID: self.hybrid,
        }
        text = await handlers[method](content, document_id)
        return clean_pdf_text(text)

    async def parser(self, content: bytes, document_id: str | None = None) -> str:
        try:
            return await asyncio.to_thread(parse_all_pages, content)
        except Exception as e:
            raise ExtractionFailed(f"PDF parsing failed: {e}", document_id=document_id) from e

    async def streaming(self, content: bytes, document_id: str | None = None) -> str:
        """pdftotext in a scoped workspace, falling back to page-by-page parsing."""
        try:
            async with scoped_workspace("freight-pdf-") as workdir:
                path = workdir / "input.pdf"
                async with aiofiles.open(path, "wb") as f:
                    await f.write(content)
                output = await run_subprocess(
                    [self.settings.pdftotext_binary, "-layout", "-enc", "UTF-8", path.name, "-"],
                    timeout=self.settings.subprocess_timeout_seconds,
                    cwd=workdir,
                )
                return output.decode("utf-8", errors="replace")
        except ExtractionFailed as e:
            logger.warning("Streaming extraction unavailable for document %s, parsing pages: %s", document_id, e)
            return await self.parser(content, document_id)

    async def ocr_direct(self, content: bytes, document_id: str | None = None) -> str:
        try:
            return await self.ocr.pdf_to_text(content)
        except ExtractionFailed as e:
            e.document_id = document_id
            raise
        except Exception as e:
            raise ExtractionFailed(f"PDF OCR failed: {e}", document_id=document_id) from e

    async def hybrid(self, content: bytes, document_id: str | None = None) -> str:
        """Parser first, OCR when the text layer is too thin."""
        text = ""
        try:
            text = await self.parser(content, document_id)
        except ExtractionFailed as e:
            logger.warning("Parser failed in hybrid mode for document %s: %s", document_id, e)

        if len(text.strip()) >= self.settings.pdf_min_text_length:
            return text
        try:
            ocr_text = await self.ocr_direct(content, document_id)
        except ExtractionFailed as e:
            if text.strip():
                logger.warning("OCR failed in hybrid mode for document %s, keeping parser text: %s", document_id, e)
                return text
            raise
        return ocr_text if len(ocr_text.strip()) > len(text.strip()) else text
