"""FHIR Bundle validation and categorization.

Validation is the only fallible step of the pipeline. Once a Bundle has been
accepted, categorizing its entries never raises: resources are typed
leniently and malformed values are pruned rather than rejected.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from fhircracker.errors import InvalidBundle
from fhircracker.models.fhir import (
    Bundle,
    BundleEntry,
    CategorizedResources,
    ConditionResource,
    MedicationResource,
    ObservationResource,
    OtherResource,
    PatientResource,
)

logger = logging.getLogger(__name__)


class BundleObserver:
    """Receives pipeline events. The base implementation ignores them."""

    def bundle_validated(self, entry_count: int) -> None:
        pass

    def resources_categorized(self, categorized: CategorizedResources) -> None:
        pass


class LoggingBundleObserver(BundleObserver):
    def bundle_validated(self, entry_count: int) -> None:
        logger.info("Processing FHIR Bundle with %d entries", entry_count)

    def resources_categorized(self, categorized: CategorizedResources) -> None:
        counts = categorized.counts()
        logger.debug(
            "Extracted resources: %d patients, %d conditions, %d medications, %d observations, %d other",
            counts["patients"],
            counts["conditions"],
            counts["medications"],
            counts["observations"],
            counts["other"],
        )


DEFAULT_OBSERVER = LoggingBundleObserver()

# resourceType -> (bucket on CategorizedResources, model)
_CATEGORIES: dict[str, tuple[str, type[BaseModel]]] = {
    "Patient": ("patients", PatientResource),
    "Condition": ("conditions", ConditionResource),
    "Medication": ("medications", MedicationResource),
    "MedicationRequest": ("medications", MedicationResource),
    "Observation": ("observations", ObservationResource),
}
_OTHER = ("other", OtherResource)


def validate_bundle(raw: Any, observer: BundleObserver | None = None) -> Bundle:
    """Check the container shape and return a normalized copy.

    A missing or non-list ``entry`` becomes an empty list on the returned
    Bundle. The caller's object is left untouched.

    Raises:
        InvalidBundle: not a mapping, resourceType is not "Bundle", or type is absent.
    """
    observer = observer or DEFAULT_OBSERVER

    if not isinstance(raw, Mapping):
        raise InvalidBundle("must be an object")
    if raw.get("resourceType") != "Bundle":
        raise InvalidBundle('resourceType must be "Bundle"')
    bundle_type = raw.get("type")
    if not bundle_type:
        raise InvalidBundle("type is required")

    raw_entries = raw.get("entry")
    if not isinstance(raw_entries, list):
        raw_entries = []
    total = raw.get("total")

    bundle = Bundle(
        type=str(bundle_type),
        total=total if isinstance(total, int) and not isinstance(total, bool) else None,
        entry=[_normalize_entry(e) for e in raw_entries],
    )
    observer.bundle_validated(len(bundle.entry))
    return bundle


def _normalize_entry(raw_entry: Any) -> BundleEntry:
    resource = raw_entry.get("resource") if isinstance(raw_entry, Mapping) else None
    if not isinstance(resource, Mapping):
        return BundleEntry()
    return BundleEntry(resource=dict(resource))


def categorize_resources(
    bundle: Bundle,
    observer: BundleObserver | None = None,
) -> CategorizedResources:
    """Partition bundle entries into typed buckets, keeping source order."""
    observer = observer or DEFAULT_OBSERVER
    categorized = CategorizedResources()

    for entry in bundle.entry:
        resource = entry.resource
        if resource is None:
            continue
        resource_type = resource.get("resourceType")
        if not isinstance(resource_type, str):
            resource_type = None
        bucket, model = _CATEGORIES.get(resource_type, _OTHER)
        getattr(categorized, bucket).append(_to_model(model, resource))

    observer.resources_categorized(categorized)
    return categorized


# Upper bound on single-value repairs before giving up on a resource's bad fields.
_MAX_REPAIRS = 50


def _to_model(model: type[BaseModel], resource: dict[str, Any]) -> BaseModel:
    """Type a resource, pruning malformed values as deep as the error points.

    Each validation error removes only the offending nested key or list item,
    so the valid parts of a field survive. If pruning cannot make the resource
    validate, the remaining bad top-level fields are dropped.
    """
    try:
        return model.model_validate(resource)
    except ValidationError as e:
        error = e

    data = copy.deepcopy(resource)
    for _ in range(_MAX_REPAIRS):
        loc = error.errors()[0]["loc"]
        if not _prune(data, loc):
            break
        logger.debug(
            "Pruned malformed value at %s from %s/%s",
            ".".join(str(step) for step in loc),
            resource.get("resourceType"),
            resource.get("id"),
        )
        try:
            return model.model_validate(data)
        except ValidationError as e:
            error = e

    bad_fields = {err["loc"][0] for err in error.errors() if err["loc"]}
    logger.debug(
        "Dropping malformed fields %s from %s/%s",
        sorted(str(f) for f in bad_fields),
        resource.get("resourceType"),
        resource.get("id"),
    )
    cleaned = {k: v for k, v in data.items() if k not in bad_fields}
    return model.model_validate(cleaned)


def _prune(data: dict[str, Any], loc: tuple) -> bool:
    """Delete the deepest value along ``loc`` that exists in ``data``.

    Steps that do not address a container (pydantic's union member tags, for
    example) end the walk at the last value actually reached.
    """
    parent: dict | list | None = None
    key: str | int | None = None
    node: Any = data
    for step in loc:
        if isinstance(node, dict) and step in node:
            parent, key, node = node, step, node[step]
        elif isinstance(node, list) and isinstance(step, int) and 0 <= step < len(node):
            parent, key, node = node, step, node[step]
        else:
            break
    if parent is None:
        return False
    del parent[key]
    return True


def count_resources(bundle: Bundle) -> int:
    """Number of entries in the bundle, including entries without a resource."""
    return len(bundle.entry)
