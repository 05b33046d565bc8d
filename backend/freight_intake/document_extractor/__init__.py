from freight_intake.document_extractor.dispatcher import StrategyDispatcher
from freight_intake.document_extractor.models import Document, ExtractionResult, PdfCharacteristics, PdfMethod
from freight_intake.document_extractor.pipeline import ExtractionPipeline, PipelineResult

__all__ = [
    "Document",
    "ExtractionPipeline",
    "ExtractionResult",
    "PdfCharacteristics",
    "PdfMethod",
    "PipelineResult",
    "StrategyDispatcher",
]
