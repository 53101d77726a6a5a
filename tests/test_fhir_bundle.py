"""Tests for bundle validation, categorization and counting."""

import copy

import pytest

from fhircracker.errors import InvalidBundle
from fhircracker.models.fhir import (
    ConditionResource,
    MedicationResource,
    ObservationResource,
    OtherResource,
    PatientResource,
)
from fhircracker.services.fhir_bundle import (
    BundleObserver,
    categorize_resources,
    count_resources,
    validate_bundle,
)


class RecordingObserver(BundleObserver):
    def __init__(self) -> None:
        self.entry_counts: list[int] = []
        self.categorized = []

    def bundle_validated(self, entry_count: int) -> None:
        self.entry_counts.append(entry_count)

    def resources_categorized(self, categorized) -> None:
        self.categorized.append(categorized)


# --- Validation ---


class TestValidateBundle:
    @pytest.mark.parametrize("raw", [None, "Bundle", 42, ["resourceType", "Bundle"]])
    def test_not_an_object(self, raw):
        with pytest.raises(InvalidBundle) as exc:
            validate_bundle(raw)
        assert exc.value.reason == "must be an object"
        assert str(exc.value) == "Invalid bundle: must be an object"

    def test_wrong_resource_type(self):
        with pytest.raises(InvalidBundle) as exc:
            validate_bundle({"resourceType": "Patient", "type": "batch"})
        assert exc.value.reason == 'resourceType must be "Bundle"'

    def test_missing_resource_type(self):
        with pytest.raises(InvalidBundle, match="resourceType must be"):
            validate_bundle({"type": "batch", "entry": []})

    @pytest.mark.parametrize("bad_type", [None, ""])
    def test_type_required(self, bad_type):
        raw = {"resourceType": "Bundle", "entry": []}
        if bad_type is not None:
            raw["type"] = bad_type
        with pytest.raises(InvalidBundle) as exc:
            validate_bundle(raw)
        assert exc.value.reason == "type is required"

    def test_resource_type_checked_before_type(self):
        with pytest.raises(InvalidBundle) as exc:
            validate_bundle({"resourceType": "Observation"})
        assert exc.value.reason == 'resourceType must be "Bundle"'

    def test_missing_entry_normalized_to_empty(self):
        bundle = validate_bundle({"resourceType": "Bundle", "type": "batch"})
        assert bundle.entry == []
        assert bundle.type == "batch"
        assert count_resources(bundle) == 0

    def test_non_list_entry_normalized_to_empty(self):
        bundle = validate_bundle({"resourceType": "Bundle", "type": "collection", "entry": "oops"})
        assert bundle.entry == []

    def test_input_not_mutated(self, make_bundle, john_doe):
        raw = {"resourceType": "Bundle", "type": "batch"}
        validate_bundle(raw)
        assert "entry" not in raw

        full = make_bundle(john_doe)
        snapshot = copy.deepcopy(full)
        validate_bundle(full)
        assert full == snapshot

    def test_total_kept_when_integer(self):
        bundle = validate_bundle({"resourceType": "Bundle", "type": "searchset", "total": 3})
        assert bundle.total == 3

    def test_observer_receives_entry_count(self, make_bundle, john_doe):
        observer = RecordingObserver()
        validate_bundle(make_bundle(john_doe, john_doe), observer=observer)
        assert observer.entry_counts == [2]

    def test_logs_entry_count(self, make_bundle, john_doe, caplog):
        with caplog.at_level("INFO", logger="fhircracker.services.fhir_bundle"):
            validate_bundle(make_bundle(john_doe))
        assert "Processing FHIR Bundle with 1 entries" in caplog.text


# --- Categorization ---


class TestCategorizeResources:
    def test_partitions_by_resource_type(self, make_bundle, john_doe, diabetes, metformin, hba1c):
        procedure = {"resourceType": "Procedure", "id": "proc-1"}
        bundle = validate_bundle(make_bundle(hba1c, procedure, metformin, diabetes, john_doe))
        result = categorize_resources(bundle)

        assert [type(r) for r in result.patients] == [PatientResource]
        assert [type(r) for r in result.conditions] == [ConditionResource]
        assert [type(r) for r in result.medications] == [MedicationResource]
        assert [type(r) for r in result.observations] == [ObservationResource]
        assert result.other == [OtherResource(resource_type="Procedure", id="proc-1")]

    def test_medication_and_request_share_bucket(self, make_bundle, metformin):
        plain = {"resourceType": "Medication", "id": "med-1"}
        result = categorize_resources(validate_bundle(make_bundle(metformin, plain)))
        assert [m.resource_type for m in result.medications] == ["MedicationRequest", "Medication"]
        assert [m.id for m in result.medications] == ["m1", "med-1"]

    def test_order_preserved_within_bucket(self, make_bundle):
        patients = [{"resourceType": "Patient", "id": f"p{i}"} for i in range(5)]
        interleaved = []
        for i, p in enumerate(patients):
            interleaved.append(p)
            interleaved.append({"resourceType": "Encounter", "id": f"e{i}"})
        result = categorize_resources(validate_bundle(make_bundle(*interleaved)))
        assert [p.id for p in result.patients] == ["p0", "p1", "p2", "p3", "p4"]
        assert [o.id for o in result.other] == ["e0", "e1", "e2", "e3", "e4"]

    def test_entries_without_resource_skipped_but_counted(self, john_doe):
        raw = {
            "resourceType": "Bundle",
            "type": "transaction",
            "entry": [
                {"request": {"method": "DELETE", "url": "Patient/9"}},
                {"resource": None},
                None,
                {"resource": john_doe},
            ],
        }
        bundle = validate_bundle(raw)
        result = categorize_resources(bundle)
        assert len(result.patients) == 1
        assert sum(result.counts().values()) == 1
        assert count_resources(bundle) == 4

    def test_strict_partition(self, make_bundle, john_doe, diabetes, metformin, hba1c):
        resources = [john_doe, diabetes, metformin, hba1c, {"resourceType": "Encounter"}, {}]
        result = categorize_resources(validate_bundle(make_bundle(*resources)))
        assert sum(result.counts().values()) == len(resources)

    def test_missing_or_unknown_resource_type_goes_to_other(self, make_bundle):
        result = categorize_resources(
            validate_bundle(make_bundle({"id": "x1"}, {"resourceType": ["Patient"], "id": "x2"}))
        )
        assert [(o.resource_type, o.id) for o in result.other] == [(None, "x1"), (None, "x2")]

    def test_empty_bundle_yields_empty_buckets(self):
        result = categorize_resources(validate_bundle({"resourceType": "Bundle", "type": "batch"}))
        assert result.counts() == {
            "patients": 0,
            "conditions": 0,
            "medications": 0,
            "observations": 0,
            "other": 0,
        }

    def test_malformed_field_dropped_not_fatal(self, make_bundle):
        condition = {
            "resourceType": "Condition",
            "id": "c9",
            "code": "diabetes",
            "subject": {"reference": "Patient/p1"},
        }
        result = categorize_resources(validate_bundle(make_bundle(condition)))
        typed = result.conditions[0]
        assert typed.code is None
        assert typed.subject.reference == "Patient/p1"

    def test_malformed_nested_value_pruned_in_place(self, make_bundle):
        patient = {
            "resourceType": "Patient",
            "id": "p1",
            "name": [{"given": ["John"], "family": "Doe"}, "Johnny", {"given": ["J"], "family": {"bad": 1}}],
            "gender": "male",
        }
        result = categorize_resources(validate_bundle(make_bundle(patient)))
        typed = result.patients[0]
        assert [(n.given, n.family) for n in typed.name] == [(["John"], "Doe"), (["J"], None)]
        assert typed.gender == "male"

    def test_pruning_does_not_touch_caller_data(self, make_bundle):
        condition = {"resourceType": "Condition", "code": {"text": "Asthma", "coding": "J45"}}
        raw = make_bundle(condition)
        snapshot = copy.deepcopy(raw)
        result = categorize_resources(validate_bundle(raw))
        assert result.conditions[0].code.text == "Asthma"
        assert result.conditions[0].code.coding == []
        assert raw == snapshot

    def test_numeric_id_coerced_to_string(self, make_bundle):
        result = categorize_resources(validate_bundle(make_bundle({"resourceType": "Patient", "id": 7})))
        assert result.patients[0].id == "7"

    def test_observer_receives_categorized(self, make_bundle, john_doe):
        observer = RecordingObserver()
        bundle = validate_bundle(make_bundle(john_doe), observer=observer)
        result = categorize_resources(bundle, observer=observer)
        assert observer.categorized == [result]


class TestCountResources:
    def test_counts_entries_not_resources(self, make_bundle, john_doe):
        raw = make_bundle(john_doe, john_doe)
        raw["entry"].append({})
        assert count_resources(validate_bundle(raw)) == 3
