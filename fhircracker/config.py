import os

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "FHIRcracker"
APP_VERSION = "1.0.0"

NVIDIA_API_KEY = os.getenv("NVIDIA_API_KEY", "")
NVIDIA_BASE_URL = os.getenv("NVIDIA_BASE_URL", "https://integrate.api.nvidia.com/v1")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")

# LLM configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "auto")
LLM_MODEL = os.getenv("LLM_MODEL", "")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))

# Demo/Debug mode (explicit)
DUMMY_MODE = os.getenv("DUMMY_MODE", "false").lower() in ("1", "true", "yes", "on")

# HTTP surface
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")
API_PREFIX = os.getenv("API_PREFIX", "/api")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Advertised by /info; categorization itself only special-cases a subset.
SUPPORTED_RESOURCE_TYPES = [
    "Patient",
    "Condition",
    "Medication",
    "MedicationRequest",
    "Observation",
    "Procedure",
    "DiagnosticReport",
    "Encounter",
    "AllergyIntolerance",
    "Immunization",
]
