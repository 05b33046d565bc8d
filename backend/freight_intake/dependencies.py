from fastapi import Request

from freight_intake.config import settings
from freight_intake.document_extractor.pipeline import ExtractionPipeline
from freight_intake.services.storage import LocalStorage


def get_pipeline(request: Request) -> ExtractionPipeline:
    # Built once in the app lifespan; mapping reloads swap its mapper in place
    return request.app.state.pipeline


def get_storage() -> LocalStorage:
    return LocalStorage.from_settings(settings)
