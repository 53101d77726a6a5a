from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SummarizeRequest(BaseModel):
    """FHIR Bundle to summarize, with an optional focus hint for the model."""

    bundle: Any = None
    context: str | None = None


class SummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    resource_count: int = Field(alias="resourceCount")
    timestamp: str


class ServiceStatus(BaseModel):
    fhir: str = "operational"
    llm: str = "operational"


class HealthResponse(BaseModel):
    status: str  # "healthy" or "degraded"
    timestamp: str
    services: ServiceStatus
