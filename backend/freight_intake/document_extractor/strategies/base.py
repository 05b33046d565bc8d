import logging
from abc import ABC, abstractmethod

from freight_intake.config import Settings
from freight_intake.document_extractor.models import Document, ExtractionResult
from freight_intake.exceptions import ExtractionFailed, FreightIntakeError
from freight_intake.field_extraction.engine import FieldExtractionEngine, needs_enhancement
from freight_intake.field_extraction.sources import ExtractionContext
from freight_intake.services.ai_extraction import AIExtractionService
from freight_intake.services.storage import LocalStorage

AI_MAX_CONFIDENCE = 0.95


class ExtractionStrategy(ABC):
    """Abstract base class for document extraction strategies.

    Concrete strategies declare a name, a priority and a pure supports()
    predicate over MIME type and filename. extract() never raises: any
    error inside _extract() becomes a failed ExtractionResult.
    """

    name: str = ""
    priority: int = 0

    def __init__(
        self,
        settings: Settings,
        storage: LocalStorage,
        engine: FieldExtractionEngine,
        ai: AIExtractionService | None = None,
    ):
        self.settings = settings
        self.storage = storage
        self.engine = engine
        self.ai = ai
        self.logger = logging.getLogger(f"freight.strategies.{self.__class__.__name__}")

    @abstractmethod
    def supports(self, document: Document) -> bool:
        """Whether this strategy can handle the document. Must not touch storage."""

    @abstractmethod
    async def _extract(self, document: Document) -> ExtractionResult:
        """Strategy-specific extraction. May raise; extract() classifies the error."""

    async def extract(self, document: Document) -> ExtractionResult:
        try:
            return await self._extract(document)
        except FreightIntakeError as e:
            e.document_id = e.document_id or document.id
            e.strategy = e.strategy or self.name
            self.logger.warning("Extraction failed: %s", e)
            return ExtractionResult.failure(e, strategy=self.name, metadata=e.context())
        except Exception as e:
            self.logger.exception(
                "Unexpected error in strategy %s for document %s", self.name, document.id,
            )
            error = ExtractionFailed(str(e) or e.__class__.__name__, document_id=document.id, strategy=self.name)
            return ExtractionResult.failure(error, strategy=self.name, metadata=error.context())

    async def read(self, document: Document) -> bytes:
        content = await self.storage.get(document.storage_location)
        if not content:
            raise ExtractionFailed("Document is empty", document_id=document.id, strategy=self.name)
        return content

    def run_fields(self, context: ExtractionContext) -> tuple[dict, dict]:
        return self.engine.extract(context)

    async def enhance(
        self,
        context: ExtractionContext,
        data: dict,
        metadata: dict,
        images: list[dict] | None = None,
    ) -> tuple[dict, dict]:
        """Re-run field extraction with AI output as the top-trust structured source.

        Only called when the pattern result looks weak. Returns the pattern
        result unchanged when AI is disabled, times out or fails.
        """
        if self.ai is None or not self.ai.enabled:
            return data, metadata
        if not images and not needs_enhancement(data, metadata, self.settings.ai_confidence_threshold):
            return data, metadata

        hints = {k: v for k, v in data.items() if k not in ("messages", "document") and v}
        ai_data, ai_confidence, ai_meta = None, 0.0, {}
        if images:
            response = await self.ai.extract_advanced(
                {"images": images, "text": context.text},
                mode="vision",
                context={"document_id": context.document_id, "hints": hints},
            )
            if response:
                ai_data = response["extracted_data"]
                ai_meta = response["metadata"]
                ai_confidence = ai_meta.get("confidence", 0.0)
        else:
            response = await self.ai.extract(
                context.text,
                options={"document_id": context.document_id, "hints": hints},
            )
            if response:
                ai_data = response["data"]
                ai_confidence = response["confidence"]
                ai_meta = response["metadata"]

        if not ai_data:
            self.logger.info("AI enhancement unavailable for document %s, keeping pattern result", context.document_id)
            metadata["ai_enhanced"] = False
            return data, metadata

        merged_structured = {**context.structured_data, **ai_data}
        enhanced_context = ExtractionContext(
            text=context.text,
            structured_data=merged_structured,
            metadata=context.metadata,
            messages=context.messages,
            document_id=context.document_id,
            structured_confidence=min(AI_MAX_CONFIDENCE, ai_confidence),
        )
        data, metadata = self.run_fields(enhanced_context)
        metadata["ai_enhanced"] = True
        metadata["ai"] = ai_meta
        return data, metadata

    def result(self, data: dict, metadata: dict, **extra) -> ExtractionResult:
        """Successful result, or a failure when nothing usable was extracted."""
        populated = [
            name for name, section in data.items()
            if name not in ("messages", "document") and section
        ]
        metadata = {**metadata, **extra, "sections_populated": populated}
        if not populated:
            return ExtractionResult.failure(
                ExtractionFailed(
                    "No fields could be extracted",
                    document_id=data.get("document", {}).get("id"),
                    strategy=self.name,
                ),
                strategy=self.name,
                metadata=metadata,
            )
        return ExtractionResult.ok(data, metadata["overall_confidence"], self.name, metadata)

    def describe(self) -> dict:
        return {"name": self.name, "priority": self.priority}
