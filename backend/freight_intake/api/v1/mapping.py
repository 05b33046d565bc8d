import logging

from fastapi import APIRouter, Depends, HTTPException

from freight_intake.dependencies import get_pipeline
from freight_intake.document_extractor.pipeline import ExtractionPipeline
from freight_intake.exceptions import ConfigurationError
from freight_intake.schemas.extraction import MappingSummaryResponse

logger = logging.getLogger("freight.mapping")

router = APIRouter()


@router.get("/summary", response_model=MappingSummaryResponse)
async def mapping_summary(pipeline: ExtractionPipeline = Depends(get_pipeline)) -> MappingSummaryResponse:
    return MappingSummaryResponse(**pipeline.mapper.get_mapping_summary())


@router.post("/reload", response_model=MappingSummaryResponse)
async def reload_mapping(pipeline: ExtractionPipeline = Depends(get_pipeline)) -> MappingSummaryResponse:
    """Reload the mapping configuration. A broken file leaves the current one active."""
    try:
        summary = pipeline.reload_mapping()
    except ConfigurationError as e:
        logger.error("Mapping reload rejected: %s", e)
        raise HTTPException(status_code=422, detail=e.message) from e
    return MappingSummaryResponse(**summary)
