import asyncio
import base64
import io
import logging

import aiofiles
import pdfplumber
from PIL import Image

from freight_intake.config import Settings
from freight_intake.document_extractor.workspace import run_subprocess, scoped_workspace

logger = logging.getLogger("freight.pdf")

OCR_RESOLUTION = 200
MAX_OCR_PAGES = 20
# Claude vision accepts images up to this edge length without downscaling
MAX_VISION_EDGE = 1568


class TesseractOcr:
    """OCR through the tesseract binary, one isolated workspace per call."""

    def __init__(self, settings: Settings):
        self.binary = settings.tesseract_binary
        self.language = settings.ocr_language
        self.timeout = settings.subprocess_timeout_seconds

    async def image_to_text(self, content: bytes, suffix: str = ".png") -> str:
        async with scoped_workspace("freight-ocr-") as workdir:
            path = workdir / f"input{suffix}"
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
            return await self._tesseract(path.name, workdir)

    async def pdf_to_text(self, content: bytes, max_pages: int = MAX_OCR_PAGES) -> str:
        async with scoped_workspace("freight-ocr-") as workdir:
            pages = await asyncio.to_thread(_render_pages, content, workdir, max_pages)
            texts = []
            for page in pages:
                texts.append(await self._tesseract(page, workdir))
            return "\n\n".join(t for t in texts if t.strip())

    async def _tesseract(self, filename: str, workdir) -> str:
        output = await run_subprocess(
            [self.binary, filename, "stdout", "-l", self.language],
            timeout=self.timeout,
            cwd=workdir,
        )
        return output.decode("utf-8", errors="replace")


def _render_pages(content: bytes, workdir, max_pages: int) -> list[str]:
    names = []
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for number, page in enumerate(pdf.pages[:max_pages], start=1):
            name = f"page-{number:03d}.png"
            page.to_image(resolution=OCR_RESOLUTION).original.save(workdir / name, format="PNG")
            page.close()
            names.append(name)
    return names


def image_block(content: bytes) -> dict:
    """Normalize an image for vision input: RGB, bounded size, base64 PNG."""
    with Image.open(io.BytesIO(content)) as img:
        img = img.convert("RGB")
        img.thumbnail((MAX_VISION_EDGE, MAX_VISION_EDGE))
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
    return {"base64": base64.standard_b64encode(buffer.getvalue()).decode("ascii"), "media_type": "image/png"}


def pdf_page_blocks(content: bytes, max_pages: int = 3) -> list[dict]:
    blocks = []
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        for page in pdf.pages[:max_pages]:
            buffer = io.BytesIO()
            page.to_image(resolution=OCR_RESOLUTION).original.save(buffer, format="PNG")
            page.close()
            blocks.append(image_block(buffer.getvalue()))
    return blocks
