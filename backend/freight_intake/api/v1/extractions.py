"""
Extraction endpoints: upload a document and run it through the pipeline.

Flow:
1. Validate and store the upload
2. Dispatch to the best strategy (falling back on failure)
3. Map to the target record and build the quality report
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, UploadFile

from freight_intake.config import settings
from freight_intake.dependencies import get_pipeline, get_storage
from freight_intake.document_extractor.models import Document
from freight_intake.document_extractor.pipeline import ExtractionPipeline
from freight_intake.schemas.extraction import ExtractionResponse, StrategyListResponse
from freight_intake.services.storage import LocalStorage, get_mime_type

logger = logging.getLogger("freight.pipeline")

router = APIRouter()

STORAGE_ERROR_STATUS = {"document_not_found": 404, "source_unavailable": 503}


@router.post("", response_model=ExtractionResponse)
async def extract_document(
    file: UploadFile,
    pipeline: ExtractionPipeline = Depends(get_pipeline),
    storage: LocalStorage = Depends(get_storage),
) -> ExtractionResponse:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb}MB",
        )

    mime_type = get_mime_type(file.filename)
    if mime_type == "application/octet-stream" and file.content_type:
        mime_type = file.content_type

    try:
        location = await storage.put(file.filename, content)
    except OSError as e:
        logger.error("Failed to store upload %s: %s", file.filename, e)
        raise HTTPException(status_code=503, detail="Storage unavailable") from e

    document = Document(
        id=str(uuid.uuid4()),
        filename=file.filename,
        mime_type=mime_type,
        storage_location=location,
    )
    try:
        result = await pipeline.process(document)
    finally:
        try:
            await storage.delete(location)
        except OSError as e:
            logger.warning("Failed to remove upload %s: %s", location, e)

    status = STORAGE_ERROR_STATUS.get(result.extraction.error_type or "")
    if status:
        raise HTTPException(status_code=status, detail=result.extraction.error)

    return ExtractionResponse(filename=file.filename, **result.to_dict())


@router.get("/strategies", response_model=StrategyListResponse)
async def list_strategies(pipeline: ExtractionPipeline = Depends(get_pipeline)) -> StrategyListResponse:
    return StrategyListResponse(strategies=pipeline.available_strategies())
