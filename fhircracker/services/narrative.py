"""Render categorized FHIR resources as plain text for the summarization model.

Each line is built from small resolvers that pick the first usable value from
an ordered list of candidates, so a sparse resource degrades to a fallback
string instead of failing the whole bundle.
"""

from collections.abc import Callable, Iterable
from typing import Any

from fhircracker.models.fhir import (
    CategorizedResources,
    CodeableConcept,
    ConditionResource,
    MedicationResource,
    NarrativeResult,
    ObservationResource,
    OtherResource,
    PatientResource,
    Reference,
)
from fhircracker.services.fhir_bundle import (
    BundleObserver,
    categorize_resources,
    count_resources,
    validate_bundle,
)

# --- Resolvers ------------------------------------------------------------------


def first_non_empty(candidates: Iterable[str | None], default: str = "") -> str:
    """Return the first truthy candidate, or ``default``."""
    for candidate in candidates:
        if candidate:
            return candidate
    return default


def concept_text(concept: CodeableConcept | None, default: str = "") -> str:
    """Best label for a CodeableConcept: text, then first coding's display, then its code."""
    if concept is None:
        return default
    first = concept.coding[0] if concept.coding else None
    return first_non_empty(
        [
            concept.text,
            first.display if first else None,
            first.code if first else None,
        ],
        default,
    )


def patient_name(patient: PatientResource) -> str:
    if patient.name:
        name = patient.name[0]
        full = f"{' '.join(name.given)} {name.family or ''}".strip()
        if full:
            return full
    return f"Patient ID: {patient.id or 'unknown'}"


def patient_demographics(patient: PatientResource) -> str:
    parts = []
    if patient.gender:
        parts.append(f"Gender: {patient.gender}")
    if patient.birth_date:
        parts.append(f"DOB: {patient.birth_date}")
    return f" ({', '.join(parts)})" if parts else ""


def observation_value(observation: ObservationResource) -> str | None:
    """Observation value by priority: quantity, string, coded text, coded display."""
    quantity = observation.value_quantity
    if quantity is not None:
        return f"{_format_number(quantity.value)} {quantity.unit or ''}"
    if observation.value_string:
        return observation.value_string
    coded = observation.value_codeable_concept
    if coded is not None:
        return first_non_empty(
            [coded.text, coded.coding[0].display if coded.coding else None]
        ) or None
    return None


def _format_number(value: int | float | None) -> str:
    if value is None:
        return "unknown"
    # JSON has a single number type; 5.0 and 5 read the same.
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _patient_suffix(subject: Reference | None) -> str:
    if subject is not None and subject.reference:
        return f" (Patient: {subject.reference})"
    return ""


# --- Line formatters --------------------------------------------------------------


def format_patient(patient: PatientResource) -> str:
    return f"{patient_name(patient)}{patient_demographics(patient)}"


def format_condition(condition: ConditionResource) -> str:
    text = concept_text(condition.code, "Unknown condition")
    text += _patient_suffix(condition.subject)
    status = condition.clinical_status
    if status is not None and status.coding and status.coding[0].code:
        text += f" - Status: {status.coding[0].code}"
    return text


def format_medication(medication: MedicationResource) -> str:
    text = concept_text(medication.medication_codeable_concept, "Unknown medication")
    return text + _patient_suffix(medication.subject)


def format_observation(observation: ObservationResource) -> str:
    text = concept_text(observation.code, "Unknown observation")
    value = observation_value(observation)
    if value is not None:
        text += f": {value}"
    return text + _patient_suffix(observation.subject)


def format_other(resource: OtherResource) -> str:
    return f"{resource.resource_type or 'Unknown'} (ID: {resource.id or 'unknown'})"


# header, bucket, formatter, blank line after the section
_SECTIONS: list[tuple[str, str, Callable[[Any], str], bool]] = [
    ("PATIENTS:", "patients", format_patient, True),
    ("MEDICAL CONDITIONS:", "conditions", format_condition, True),
    ("MEDICATIONS:", "medications", format_medication, True),
    ("OBSERVATIONS/VITAL SIGNS:", "observations", format_observation, True),
    ("OTHER RESOURCES:", "other", format_other, False),
]


def render_narrative(categorized: CategorizedResources) -> str:
    """Render the fixed section layout. Empty buckets produce no output at all."""
    text = ""
    for header, bucket, formatter, blank_after in _SECTIONS:
        resources = getattr(categorized, bucket)
        if not resources:
            continue
        text += f"{header}\n"
        for index, resource in enumerate(resources, start=1):
            text += f"{index}. {formatter(resource)}\n"
        if blank_after:
            text += "\n"
    return text


def build_narrative(raw: Any, observer: BundleObserver | None = None) -> NarrativeResult:
    """Validate, categorize and render a raw bundle in one call.

    Raises:
        InvalidBundle: propagated from validation; nothing is rendered.
    """
    bundle = validate_bundle(raw, observer)
    categorized = categorize_resources(bundle, observer)
    return NarrativeResult(
        narrative_text=render_narrative(categorized),
        resource_entry_count=count_resources(bundle),
    )
