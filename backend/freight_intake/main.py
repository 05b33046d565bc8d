import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from freight_intake.api.router import api_router
from freight_intake.config import settings
from freight_intake.document_extractor.pipeline import ExtractionPipeline
from freight_intake.middleware.logging import RequestLoggingMiddleware

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
)

logger = logging.getLogger("freight.pipeline")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # ConfigurationError propagates and aborts startup
    app.state.pipeline = ExtractionPipeline.from_settings(settings)
    logger.info("Starting freight intake backend (env=%s)", settings.environment)
    yield
    logger.info("Shutting down freight intake backend")


app = FastAPI(
    title="Freight Intake - Quotation Extraction",
    description="Extracts freight quotation requests from emails, PDFs and images into structured shipment records",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router, prefix="/api")
