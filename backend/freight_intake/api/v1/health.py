import os
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from freight_intake.config import settings
from freight_intake.dependencies import get_pipeline
from freight_intake.document_extractor.pipeline import ExtractionPipeline
from freight_intake.schemas.health import HealthResponse

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(pipeline: ExtractionPipeline = Depends(get_pipeline)) -> HealthResponse:
    root = settings.storage_root
    storage_status = "healthy" if os.path.isdir(root) and os.access(root, os.R_OK | os.W_OK) else "unhealthy"
    ai_status = "enabled" if settings.ai_enabled and settings.anthropic_api_key else "disabled"

    return HealthResponse(
        status="healthy" if storage_status == "healthy" else "degraded",
        storage=storage_status,
        ai=ai_status,
        mapping_version=pipeline.mapper.config.version,
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
        version=VERSION,
    )
