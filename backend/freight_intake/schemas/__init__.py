from freight_intake.schemas.extraction import (
    ExtractionResponse,
    MappingSummaryResponse,
    QualityReport,
    StrategyInfo,
    StrategyListResponse,
)
from freight_intake.schemas.health import HealthResponse

__all__ = [
    "ExtractionResponse",
    "HealthResponse",
    "MappingSummaryResponse",
    "QualityReport",
    "StrategyInfo",
    "StrategyListResponse",
]
