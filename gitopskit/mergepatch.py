"""JSON merge patches: applying them and computing two- and three-way patches."""

from __future__ import annotations

import copy
from typing import Any

_CONFLICT_MESSAGE = "patch includes conflicting changes"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _json_equal(left: Any, right: Any) -> bool:
    """Compare JSON values; numbers compare by value, booleans are not numbers."""
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(_json_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(_json_equal(a, b) for a, b in zip(left, right))
    if _is_number(left) and _is_number(right):
        return left == right
    return type(left) is type(right) and left == right


def _require_object(value: Any, role: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{role} must be a JSON object, got {type(value).__name__}")
    return value


def _prune_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _prune_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_prune_nulls(item) for item in value]
    return value


def _merge(current: Any, patch: Any) -> Any:
    if not isinstance(current, dict):
        return _prune_nulls(patch)
    if not isinstance(patch, dict):
        return patch
    return _merge_objects(current, patch)


def _merge_objects(doc: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    result = dict(doc)
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        elif result.get(key) is None:
            result[key] = _prune_nulls(value)
        else:
            result[key] = _merge(result[key], value)
    return result


def apply_merge_patch(doc: dict[str, Any], patch: dict[str, Any]) -> dict[str, Any]:
    """Apply a JSON merge patch to *doc* and return the result; inputs are not changed."""
    _require_object(doc, "document")
    _require_object(patch, "patch")
    return _merge_objects(copy.deepcopy(doc), copy.deepcopy(patch))


def _diff(original: dict[str, Any], modified: dict[str, Any]) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    for key, new_value in modified.items():
        if key not in original:
            patch[key] = copy.deepcopy(new_value)
            continue
        old_value = original[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            sub = _diff(old_value, new_value)
            if sub:
                patch[key] = sub
        elif not _json_equal(old_value, new_value):
            patch[key] = copy.deepcopy(new_value)
    for key in original:
        if key not in modified:
            patch[key] = None
    return patch


def create_merge_patch(original: dict[str, Any], modified: dict[str, Any]) -> dict[str, Any]:
    """Return the JSON merge patch that turns *original* into *modified*."""
    _require_object(original, "original")
    _require_object(modified, "modified")
    return _diff(original, modified)


def _filter_nulls(patch: dict[str, Any], keep_null: bool) -> dict[str, Any]:
    """Keep only deletions (keep_null) or only additions and changes (not keep_null)."""
    result: dict[str, Any] = {}
    for key, value in patch.items():
        if value is None:
            if keep_null:
                result[key] = None
        elif isinstance(value, dict):
            if not value:
                # An explicitly empty map is a value, not an empty patch.
                if not keep_null:
                    result[key] = value
                continue
            sub = _filter_nulls(value, keep_null)
            if sub:
                result[key] = sub
        elif isinstance(value, (list, str, int, float, bool)):
            if not keep_null:
                result[key] = value
        else:
            raise ValueError(f"unknown type: {type(value).__name__}")
    return result


def _has_conflicts(left: Any, right: Any) -> bool:
    if isinstance(left, dict):
        if not isinstance(right, dict):
            return True
        return any(_has_conflicts(v, right[k]) for k, v in left.items() if k in right)
    if isinstance(left, list):
        if not isinstance(right, list) or len(left) != len(right):
            return True
        return any(_has_conflicts(a, b) for a, b in zip(left, right))
    if left is None or isinstance(left, (str, int, float, bool)):
        return not _json_equal(left, right)
    raise ValueError(f"unknown type: {type(left).__name__}")


def create_three_way_merge_patch(
    original: dict[str, Any] | None,
    modified: dict[str, Any] | None,
    current: dict[str, Any] | None,
) -> dict[str, Any]:
    """Compute a patch that brings *current* to *modified*.

    Fields are deleted only if they were in *original* (the last applied state)
    and are gone from *modified*; other fields in *current* are left alone.
    """
    original = {} if original is None else original
    modified = {} if modified is None else modified
    current = {} if current is None else current

    add_and_change = _filter_nulls(create_merge_patch(current, modified), keep_null=False)
    deletions = _filter_nulls(create_merge_patch(original, modified), keep_null=True)
    if _has_conflicts(add_and_change, deletions):
        raise ValueError(_CONFLICT_MESSAGE)
    return apply_merge_patch(deletions, add_and_change)