import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fhircracker.config import API_PREFIX, APP_NAME, APP_VERSION, CORS_ORIGIN, LOG_LEVEL
from fhircracker.routers import fhir
from fhircracker.services.llm import get_llm_client

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = get_llm_client()
    logger.info("Starting %s (LLM provider: %s)", APP_NAME, client.provider)
    yield
    logger.info("%s shut down", APP_NAME)


app = FastAPI(
    title=APP_NAME,
    description="Summarizes FHIR Bundles into clinical narratives",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if CORS_ORIGIN == "*" else [o.strip() for o in CORS_ORIGIN.split(",")],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=CORS_ORIGIN != "*",
)

app.include_router(fhir.router, prefix=API_PREFIX)
