from typing import Any

from pydantic import BaseModel, Field


class QualityReport(BaseModel):
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    score: int = Field(ge=0, le=100)
    completeness: float = 0.0
    confidence: float = 0.0


class ExtractionResponse(BaseModel):
    document_id: str
    filename: str
    success: bool
    strategy_used: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    error: str | None = None
    error_type: str | None = None
    record: dict[str, Any] = Field(default_factory=dict)
    quality: QualityReport
    extracted: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class StrategyInfo(BaseModel):
    name: str
    priority: int


class StrategyListResponse(BaseModel):
    strategies: list[StrategyInfo]


class MappingSummaryResponse(BaseModel):
    version: str
    sections: dict[str, list[str]]
    field_count: int
    required_fields: list[str]
    transforms: list[str]
    validation_rules: list[str]
    lookup_tables: list[str]
