from fastapi import APIRouter

from freight_intake.api.v1 import extractions, health, mapping

api_router = APIRouter()

api_router.include_router(health.router, prefix="/v1", tags=["health"])
api_router.include_router(extractions.router, prefix="/v1/extractions", tags=["extractions"])
api_router.include_router(mapping.router, prefix="/v1/mapping", tags=["mapping"])
