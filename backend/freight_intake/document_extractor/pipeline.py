"""
Document extraction-and-mapping pipeline.

Flow:
  1. Dispatch: supported strategies in priority order
  2. Extract: run the best strategy, fall back to the next on failure
  3. Map: apply the mapping configuration to the semantic tree
  4. Report: quality report + pipeline metadata
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

import anthropic

from freight_intake.config import Settings
from freight_intake.document_extractor.dispatcher import StrategyDispatcher
from freight_intake.document_extractor.memory import MemoryMonitor
from freight_intake.document_extractor.models import Document, ExtractionResult
from freight_intake.document_extractor.strategies import ExtractionStrategy, build_default_strategies
from freight_intake.exceptions import UnsupportedDocumentType
from freight_intake.field_extraction.engine import FieldExtractionEngine
from freight_intake.mapping.config import load_mapping_config
from freight_intake.mapping.mapper import FieldMapper, MappingResult
from freight_intake.mapping.quality import build_quality_report
from freight_intake.mapping.transforms import DimensionResolver
from freight_intake.patterns.catalog import PatternCatalog
from freight_intake.services.ai_extraction import AIExtractionService
from freight_intake.services.storage import LocalStorage
from freight_intake.services.vehicle_reference import VehicleReference

logger = logging.getLogger("freight.pipeline")

PIPELINE_VERSION = "1.0"

# Storage failures are not fixed by trying another strategy
NON_RETRYABLE_ERRORS = {"source_unavailable", "document_not_found"}


@dataclass
class PipelineResult:
    """Mapped record, quality report and the extraction result behind them."""

    document_id: str
    extraction: ExtractionResult
    record: dict = field(default_factory=dict)
    quality: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.extraction.success

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "success": self.success,
            "strategy_used": self.extraction.strategy_used,
            "confidence": self.extraction.confidence,
            "error": self.extraction.error,
            "error_type": self.extraction.error_type,
            "record": self.record,
            "quality": self.quality,
            "extracted": self.extraction.data if self.success else {},
            "metadata": self.metadata,
        }


class ExtractionPipeline:
    """Orchestrates dispatch, extraction, mapping and quality scoring."""

    def __init__(
        self,
        settings: Settings,
        dispatcher: StrategyDispatcher,
        mapper: FieldMapper,
        memory: MemoryMonitor | None = None,
    ):
        self.settings = settings
        self.dispatcher = dispatcher
        self.mapper = mapper
        self.memory = memory or MemoryMonitor(settings.memory_warning_threshold_mb)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        ai_client: anthropic.AsyncAnthropic | None = None,
        storage: LocalStorage | None = None,
    ) -> "ExtractionPipeline":
        """Build every collaborator from settings.

        Raises:
            ConfigurationError: Mapping configuration or reference data missing/malformed.
        """
        mapping_config = load_mapping_config(settings.mapping_config_path)
        reference = VehicleReference.from_settings(settings)
        catalog = PatternCatalog.build()
        engine = FieldExtractionEngine(catalog, reference)
        ai = AIExtractionService(settings, client=ai_client)
        memory = MemoryMonitor(settings.memory_warning_threshold_mb)
        strategies = build_default_strategies(
            settings,
            storage or LocalStorage.from_settings(settings),
            engine,
            ai,
            memory,
        )
        mapper = FieldMapper(mapping_config, DimensionResolver(reference))
        logger.info(
            "Pipeline ready: %d strategies, %d patterns, mapping v%s, AI %s",
            len(strategies), len(catalog.names()), mapping_config.version,
            "enabled" if ai.enabled else "disabled",
        )
        return cls(settings, StrategyDispatcher(strategies), mapper, memory)

    def available_strategies(self) -> list[dict]:
        return self.dispatcher.describe()

    def reload_mapping(self) -> dict:
        """Swap in a freshly loaded mapping configuration.

        In-flight requests keep the mapper they started with. On
        ConfigurationError the current mapper stays active.
        """
        config = load_mapping_config(self.settings.mapping_config_path)
        self.mapper = FieldMapper(config, self.mapper.dimensions)
        logger.info("Mapping configuration reloaded: v%s", config.version)
        return self.mapper.get_mapping_summary()

    async def process(self, document: Document) -> PipelineResult:
        """Extract, map and score one document. Never raises for per-document failures."""
        start_time = time.monotonic()
        mapper = self.mapper
        candidates = self.dispatcher.get_supported_strategies(document)

        if candidates:
            result, tried = await self._extract(document, candidates)
        else:
            error = UnsupportedDocumentType(
                f"No extraction strategy supports {document.filename} ({document.mime_type})",
                document_id=document.id,
            )
            logger.warning("%s", error)
            result, tried = ExtractionResult.failure(error, metadata=error.context()), []

        if result.success:
            mapping = await asyncio.to_thread(mapper.map, result.data, document.id)
        else:
            mapping = MappingResult(record={})

        quality = build_quality_report(
            mapping.record,
            mapper.config.required_fields,
            result.confidence,
            extraction_metadata=result.metadata if result.success else None,
            mapping_warnings=mapping.warnings,
            error=result.error,
        )
        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        metadata = {
            "pipeline_version": PIPELINE_VERSION,
            "processing_time_ms": elapsed_ms,
            "strategies_tried": tried,
            "mapping_version": mapper.config.version,
            "extraction": result.metadata,
            "mapping_provenance": mapping.provenance,
        }

        logger.info(
            "Processed document %s: success=%s strategy=%s confidence=%.2f score=%d (%dms)",
            document.id, result.success, result.strategy_used or "-",
            result.confidence, quality["score"], elapsed_ms,
        )
        return PipelineResult(
            document_id=document.id,
            extraction=result,
            record=mapping.record,
            quality=quality,
            metadata=metadata,
        )

    async def process_many(self, documents: list[Document]) -> list[PipelineResult]:
        """Process documents concurrently. Results keep input order."""
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_documents)

        async def _bounded(document: Document) -> PipelineResult:
            async with semaphore:
                return await self.process(document)

        return list(await asyncio.gather(*(_bounded(d) for d in documents)))

    async def _extract(
        self,
        document: Document,
        candidates: list[ExtractionStrategy],
    ) -> tuple[ExtractionResult, list[str]]:
        tried: list[str] = []
        result: ExtractionResult | None = None
        for strategy in candidates:
            tried.append(strategy.name)
            with self.memory.track(document.id, strategy.name):
                result = await strategy.extract(document)
            if result.success:
                break
            logger.warning(
                "Strategy %s failed for document %s (%s): %s",
                strategy.name, document.id, result.error_type, result.error,
            )
            if result.error_type in NON_RETRYABLE_ERRORS:
                break
        return result, tried
