from datetime import datetime

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    storage: str
    ai: str
    mapping_version: str | None
    timestamp: datetime
    environment: str
    version: str
