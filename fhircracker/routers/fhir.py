import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from fhircracker.config import APP_NAME, APP_VERSION, SUPPORTED_RESOURCE_TYPES
from fhircracker.errors import InvalidBundle, SummarizationError
from fhircracker.models.summary import (
    HealthResponse,
    ServiceStatus,
    SummarizeRequest,
    SummaryResponse,
)
from fhircracker.services.llm import get_llm_client
from fhircracker.services.narrative import build_narrative
from fhircracker.services.summarizer import health_check, summarize_fhir_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/fhir", tags=["fhir"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.post("/summarize", response_model=SummaryResponse)
async def summarize_bundle(body: SummarizeRequest):
    """Summarize a FHIR Bundle.

    The bundle is flattened to a sectioned narrative (patients, conditions,
    medications, observations, everything else) which is then summarized by
    the configured language model.
    """
    logger.info("Received FHIR batch summarization request")
    try:
        narrative = build_narrative(body.bundle)
    except InvalidBundle as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    logger.info("Processing %d resources for summarization", narrative.resource_entry_count)

    try:
        summary = await summarize_fhir_data(
            narrative.narrative_text,
            body.context,
            narrative.resource_entry_count,
        )
    except SummarizationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from None

    return SummaryResponse(
        summary=summary,
        resource_count=narrative.resource_entry_count,
        timestamp=_now(),
    )


@router.get("/health", response_model=HealthResponse)
async def get_health():
    """Report whether the language model behind summaries is reachable."""
    llm_ok = await health_check()
    return HealthResponse(
        status="healthy" if llm_ok else "degraded",
        timestamp=_now(),
        services=ServiceStatus(llm="operational" if llm_ok else "degraded"),
    )


@router.get("/info")
async def get_info():
    """Describe the service and the resource types it understands."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": "Summarizes batches of FHIR resources using a large language model",
        "ai_model": get_llm_client().model_name(),
        "supported_resources": SUPPORTED_RESOURCE_TYPES,
        "endpoints": {
            "summarize": "POST /api/fhir/summarize",
            "health": "GET /api/fhir/health",
            "info": "GET /api/fhir/info",
        },
    }
