from freight_intake.config import Settings
from freight_intake.document_extractor.memory import MemoryMonitor
from freight_intake.document_extractor.strategies.base import ExtractionStrategy
from freight_intake.document_extractor.strategies.email import EmailStrategy
from freight_intake.document_extractor.strategies.image import EnhancedImageStrategy, ImageOcrStrategy
from freight_intake.document_extractor.strategies.pdf import (
    EnhancedPdfStrategy,
    OptimizedPdfStrategy,
    SimplePdfStrategy,
)
from freight_intake.field_extraction.engine import FieldExtractionEngine
from freight_intake.services.ai_extraction import AIExtractionService
from freight_intake.services.storage import LocalStorage


def build_default_strategies(
    settings: Settings,
    storage: LocalStorage,
    engine: FieldExtractionEngine,
    ai: AIExtractionService | None = None,
    memory: MemoryMonitor | None = None,
) -> list[ExtractionStrategy]:
    collaborators = (settings, storage, engine, ai)
    return [
        EmailStrategy(*collaborators),
        OptimizedPdfStrategy(*collaborators, memory=memory),
        SimplePdfStrategy(*collaborators),
        EnhancedPdfStrategy(*collaborators),
        EnhancedImageStrategy(*collaborators),
        ImageOcrStrategy(*collaborators),
    ]


__all__ = [
    "EmailStrategy",
    "EnhancedImageStrategy",
    "EnhancedPdfStrategy",
    "ExtractionStrategy",
    "ImageOcrStrategy",
    "OptimizedPdfStrategy",
    "SimplePdfStrategy",
    "build_default_strategies",
]
