"""Pydantic models for the subset of FHIR R4 the narrative pipeline understands.

Only the fields the renderer reads are modelled. Everything is optional and
unknown keys are ignored, so a sparse or partially malformed resource still
types cleanly and degrades to fallback text when rendered.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class FhirModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class Coding(FhirModel):
    system: str | None = None
    code: str | None = None
    display: str | None = None


class CodeableConcept(FhirModel):
    coding: list[Coding] = []
    text: str | None = None


class Reference(FhirModel):
    reference: str | None = None


class Quantity(FhirModel):
    value: int | float | None = None
    unit: str | None = None
    system: str | None = None
    code: str | None = None


class HumanName(FhirModel):
    given: list[str] = []
    family: str | None = None
    use: str | None = None


# --- Resource variants, keyed by resourceType ---------------------------------


class PatientResource(FhirModel):
    resource_type: Literal["Patient"] = Field("Patient", alias="resourceType")
    id: str | None = None
    name: list[HumanName] = []
    gender: str | None = None
    birth_date: str | None = Field(None, alias="birthDate")


class ConditionResource(FhirModel):
    resource_type: Literal["Condition"] = Field("Condition", alias="resourceType")
    id: str | None = None
    subject: Reference | None = None
    code: CodeableConcept | None = None
    clinical_status: CodeableConcept | None = Field(None, alias="clinicalStatus")


class MedicationResource(FhirModel):
    resource_type: Literal["Medication", "MedicationRequest"] = Field(
        "MedicationRequest", alias="resourceType"
    )
    id: str | None = None
    subject: Reference | None = None
    medication_codeable_concept: CodeableConcept | None = Field(
        None, alias="medicationCodeableConcept"
    )


class ObservationResource(FhirModel):
    resource_type: Literal["Observation"] = Field("Observation", alias="resourceType")
    id: str | None = None
    subject: Reference | None = None
    code: CodeableConcept | None = None
    value_quantity: Quantity | None = Field(None, alias="valueQuantity")
    value_string: str | None = Field(None, alias="valueString")
    value_codeable_concept: CodeableConcept | None = Field(None, alias="valueCodeableConcept")


class OtherResource(FhirModel):
    """Any resource outside the recognized categories. Only its identity survives."""

    resource_type: str | None = Field(None, alias="resourceType")
    id: str | None = None


# --- Containers -----------------------------------------------------------------


class BundleEntry(FhirModel):
    resource: dict[str, Any] | None = None


class Bundle(FhirModel):
    resource_type: Literal["Bundle"] = Field("Bundle", alias="resourceType")
    type: str
    total: int | None = None
    entry: list[BundleEntry] = []


class CategorizedResources(BaseModel):
    """Resources of one bundle partitioned by category, in source order."""

    patients: list[PatientResource] = []
    conditions: list[ConditionResource] = []
    medications: list[MedicationResource] = []
    observations: list[ObservationResource] = []
    other: list[OtherResource] = []

    def counts(self) -> dict[str, int]:
        return {
            "patients": len(self.patients),
            "conditions": len(self.conditions),
            "medications": len(self.medications),
            "observations": len(self.observations),
            "other": len(self.other),
        }


class NarrativeResult(BaseModel):
    """Rendered narrative plus the bundle's entry count, handed to the summarizer."""

    narrative_text: str
    resource_entry_count: int
