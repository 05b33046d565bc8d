"""
PDF characteristics analysis and text-acquisition method selection.

Analysis looks at the first page only (its text and a low-resolution render)
so the cost stays flat no matter how large the document is.
"""

import io
import logging

import pdfplumber

from freight_intake.config import Settings
from freight_intake.document_extractor.models import Complexity, PdfCharacteristics, PdfMethod

logger = logging.getLogger("freight.pdf")

MANY_PAGES = 5
VERY_MANY_PAGES = 10
SCANNED_IMAGE_DENSITY = 0.4

# Rendered PNG byte size -> image density
IMAGE_SIZE_BANDS = (
    (500_000, 1.0),
    (200_000, 0.7),
    (50_000, 0.4),
)


def text_density(text: str) -> float:
    words = len(text.split())
    lines = len([line for line in text.splitlines() if line.strip()])
    return min(1.0, len(text) / 1000 + words / 100 + lines / 10)


def image_density(png_size: int) -> float:
    for threshold, density in IMAGE_SIZE_BANDS:
        if png_size > threshold:
            return density
    return 0.1


def classify_complexity(text_dens: float, image_dens: float) -> Complexity:
    if text_dens > 0.7 and image_dens < 0.3:
        return Complexity.LOW
    if text_dens > 0.4 and image_dens < 0.6:
        return Complexity.MEDIUM
    return Complexity.HIGH


class PdfAnalyzer:
    def __init__(self, settings: Settings):
        self.min_text_length = settings.pdf_min_text_length
        self.resolution = settings.pdf_render_resolution

    def analyze(self, content: bytes, document_id: str | None = None) -> PdfCharacteristics:
        """Sample the first page. Any failure yields the conservative assumption."""
        size = len(content)
        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                page_count = len(pdf.pages)
                if not page_count:
                    raise ValueError("PDF has no pages")
                first = pdf.pages[0]
                text = first.extract_text() or ""
                rendered = first.to_image(resolution=self.resolution).original
                buffer = io.BytesIO()
                rendered.save(buffer, format="PNG")
                png_size = buffer.tell()
        except Exception as e:
            logger.warning("PDF analysis failed for document %s, assuming scanned: %s", document_id, e)
            return PdfCharacteristics.conservative(size)

        text = text.strip()
        t_density = round(text_density(text), 4)
        i_density = image_density(png_size)
        has_text_layer = len(text) > self.min_text_length
        characteristics = PdfCharacteristics(
            size=size,
            has_text_layer=has_text_layer,
            is_scanned=not has_text_layer and i_density >= SCANNED_IMAGE_DENSITY,
            complexity=classify_complexity(t_density, i_density),
            text_density=t_density,
            image_density=i_density,
            page_count=page_count,
        )
        logger.debug("PDF characteristics for document %s: %s", document_id, characteristics.to_dict())
        return characteristics


def select_method(
    characteristics: PdfCharacteristics,
    settings: Settings,
    prefer_streaming: bool = False,
) -> PdfMethod:
    """Pick a text-acquisition method. Rules are checked in order, first match wins."""
    c = characteristics
    if c.is_scanned:
        return PdfMethod.OCR_DIRECT
    if c.size > settings.pdf_very_large_threshold_bytes:
        return PdfMethod.STREAMING
    if c.size > settings.pdf_large_threshold_bytes and c.page_count > MANY_PAGES:
        return PdfMethod.STREAMING
    if not c.has_text_layer:
        return PdfMethod.OCR_DIRECT
    # Set after a previous extraction exceeded the memory budget
    if prefer_streaming:
        return PdfMethod.STREAMING
    if c.complexity == Complexity.HIGH or c.page_count > VERY_MANY_PAGES:
        return PdfMethod.HYBRID
    if c.has_text_layer and c.size < settings.pdf_large_threshold_bytes:
        return PdfMethod.PDF_PARSER
    return PdfMethod.PDF_PARSER


def selection_reason(characteristics: PdfCharacteristics, method: PdfMethod, prefer_streaming: bool = False) -> str:
    c = characteristics
    if c.analysis_failed:
        return "Analysis failed, conservative assumption"
    if method == PdfMethod.STREAMING and prefer_streaming:
        return "Memory budget exceeded on a previous document"
    if method == PdfMethod.STREAMING:
        return f"Large file size ({c.size / 1048576:.2f}MB)"
    if method == PdfMethod.OCR_DIRECT:
        return "Scanned PDF detected" if c.is_scanned else "No text layer"
    if method == PdfMethod.HYBRID:
        return "Complex PDF requiring multiple methods"
    return "Standard text-based PDF"
