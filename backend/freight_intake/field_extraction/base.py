import logging

from freight_intake.field_extraction.sources import (
    ExtractionContext,
    ExtractionSource,
    SectionResult,
    SourceOrigin,
    merge_sources,
)
from freight_intake.patterns.catalog import PatternCatalog, get_default_catalog

logger = logging.getLogger("freight.fields")


class FieldExtractor:
    """Base class for per-domain extractors.

    Subclasses implement the from_* hooks; each returns a dict of already
    normalized values (or an empty dict). collect() wraps them as sources in
    trust order and merge_sources() arbitrates.
    """

    section: str = ""
    expected_fields: list[str] = []
    structured_keys: tuple[str, ...] = ()

    def __init__(self, catalog: PatternCatalog | None = None):
        self.catalog = catalog or get_default_catalog()

    def extract(self, context: ExtractionContext) -> SectionResult:
        sources = self.collect(context)
        result = merge_sources(sources, self.expected_fields)
        result.data = self.finalize(result.data, context)
        result.validation = self.validate(result.data)
        logger.debug(
            "Extracted %s for document %s: %d fields, confidence %.2f",
            self.section, context.document_id, len(result.data), result.confidence,
        )
        return result

    def collect(self, context: ExtractionContext) -> list[ExtractionSource]:
        sources: list[ExtractionSource] = []

        structured = self.structured_block(context.structured_data)
        if structured:
            value = self.from_structured(structured)
            if value:
                sources.append(
                    ExtractionSource(SourceOrigin.STRUCTURED_DATA, value, context.structured_confidence)
                )

        if context.metadata:
            value = self.from_metadata(context.metadata)
            if value:
                sources.append(ExtractionSource(SourceOrigin.METADATA, value))

        if context.text:
            value = self.from_text(context.text)
            if value:
                sources.append(ExtractionSource(SourceOrigin.CONTENT_PATTERNS, value))

        history = "\n".join(m.get("content", "") for m in context.messages if m.get("content"))
        if history:
            value = self.from_text(history)
            if value:
                sources.append(ExtractionSource(SourceOrigin.MESSAGES, value))

        return sources

    def structured_block(self, structured_data: dict) -> dict:
        """First dict found under one of structured_keys."""
        for key in self.structured_keys:
            block = structured_data.get(key) if structured_data else None
            if isinstance(block, dict) and block:
                return block
        return {}

    def from_structured(self, data: dict) -> dict:
        return {}

    def from_metadata(self, metadata: dict) -> dict:
        return {}

    def from_text(self, text: str) -> dict:
        return {}

    def finalize(self, data: dict, context: ExtractionContext) -> dict:
        return data

    def validate(self, data: dict) -> dict:
        return {"valid": True, "errors": [], "warnings": []}
