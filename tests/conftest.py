import os

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# No external API keys for tests; the summarizer falls back to offline mode
os.environ["NVIDIA_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["LLM_PROVIDER"] = "auto"
os.environ["LLM_MODEL"] = ""
os.environ["DUMMY_MODE"] = "false"

import fhircracker.services.llm as _llm_mod
from fhircracker.main import app


@pytest.fixture(autouse=True)
def reset_llm_client():
    """Drop the cached LLM client so patches to module config take effect."""
    _llm_mod._client = None
    yield
    _llm_mod._client = None


@pytest.fixture
def client():
    """Provide a synchronous TestClient for HTTP endpoint tests."""
    return TestClient(app)


@pytest.fixture
async def async_client():
    """Provide an async httpx client for async HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def john_doe():
    return {
        "resourceType": "Patient",
        "id": "p1",
        "name": [{"given": ["John"], "family": "Doe"}],
        "gender": "male",
        "birthDate": "1980-01-01",
    }


@pytest.fixture
def diabetes():
    return {
        "resourceType": "Condition",
        "id": "c1",
        "subject": {"reference": "Patient/p1"},
        "code": {
            "coding": [{"system": "http://snomed.info/sct", "code": "44054006", "display": "Diabetes"}],
            "text": "Type 2 diabetes mellitus",
        },
        "clinicalStatus": {"coding": [{"system": "http://terminology.hl7.org/CodeSystem/condition-clinical", "code": "active"}]},
    }


@pytest.fixture
def metformin():
    return {
        "resourceType": "MedicationRequest",
        "id": "m1",
        "subject": {"reference": "Patient/p1"},
        "medicationCodeableConcept": {
            "coding": [{"system": "http://www.nlm.nih.gov/research/umls/rxnorm", "code": "860975", "display": "Metformin 500 MG"}],
        },
    }


@pytest.fixture
def hba1c():
    return {
        "resourceType": "Observation",
        "id": "o1",
        "subject": {"reference": "Patient/p1"},
        "code": {"text": "HbA1c"},
        "valueQuantity": {"value": 7.2, "unit": "%"},
    }


@pytest.fixture
def make_bundle():
    def _make(*resources, bundle_type="batch"):
        return {
            "resourceType": "Bundle",
            "type": bundle_type,
            "entry": [{"resource": r} for r in resources],
        }

    return _make
