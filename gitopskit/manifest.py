"""Manifest helpers used when preparing resources for a diff."""

from __future__ import annotations

import copy
import json
from typing import Any

from gitopskit.objects import get_annotations, nested_get, remove_list_fields, set_nested

LAST_APPLIED_CONFIG_ANNOTATION = "kubectl.kubernetes.io/last-applied-configuration"

_INT64_LIMIT = 2**63


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or re-encoded."""


def get_last_applied_config(live: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return the parsed last-applied-configuration of *live*, or None if it has none."""
    if live is None:
        return None
    raw = get_annotations(live).get(LAST_APPLIED_CONFIG_ANNOTATION)
    if raw is None:
        return None
    name = nested_get(live, "metadata", "name") or ""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ManifestError(
            f"failed to unmarshal {LAST_APPLIED_CONFIG_ANNOTATION} in {name}: {exc}"
        ) from exc
    if not isinstance(parsed, dict):
        raise ManifestError(
            f"failed to unmarshal {LAST_APPLIED_CONFIG_ANNOTATION} in {name}: not an object"
        )
    return parsed


def _parse_number(text: str) -> int | float:
    value = float(text)
    if value.is_integer() and abs(value) < _INT64_LIMIT:
        return int(value)
    return value


def strip_type_information(obj: dict[str, Any]) -> dict[str, Any]:
    """Re-encode *obj* through JSON so that equal numbers compare equal.

    Whole-valued floats become ints, just as they would after a trip through the API.
    """
    try:
        text = json.dumps(obj, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ManifestError(f"object cannot be encoded as JSON: {exc}") from exc
    return json.loads(text, parse_float=_parse_number)


def remove_namespace_annotation(obj: dict[str, Any]) -> dict[str, Any]:
    """Return a copy without metadata.namespace and without empty annotations."""
    result = copy.deepcopy(obj)
    if "metadata" not in result:
        return result
    metadata = result["metadata"]
    if not isinstance(metadata, dict):
        raise ManifestError("metadata must be a map")
    metadata.pop("namespace", None)
    if "annotations" in metadata:
        annotations = metadata["annotations"]
        if annotations is None or (isinstance(annotations, dict) and not annotations):
            del metadata["annotations"]
    return result


def statefulset_workaround(orig: dict[str, Any], live: dict[str, Any]) -> dict[str, Any]:
    """Drop server-defaulted fields from the live volumeClaimTemplates.

    The API server fills in claim template fields that cannot be reproduced on the
    client, so only the fields present in *orig* are kept.
    """
    orig_templates = nested_get(orig, "spec", "volumeClaimTemplates")
    live_templates = nested_get(live, "spec", "volumeClaimTemplates")
    if not isinstance(orig_templates, list) or not isinstance(live_templates, list):
        return live
    result = copy.deepcopy(live)
    set_nested(
        result,
        remove_list_fields(orig_templates, live_templates),
        "spec",
        "volumeClaimTemplates",
    )
    return result