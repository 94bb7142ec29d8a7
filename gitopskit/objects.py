"""Helpers for working with unstructured Kubernetes objects held as plain dicts."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


def _parse_group_version(api_version: str) -> tuple[str, str]:
    """Split an apiVersion into group and version; malformed values give empty parts."""
    if not api_version or api_version == "/":
        return "", ""
    parts = api_version.split("/")
    if len(parts) == 1:
        return "", api_version
    if len(parts) == 2:
        return parts[0], parts[1]
    return "", ""


@dataclass(frozen=True)
class GroupVersionKind:
    """The group, version and kind that identify a resource type."""

    group: str = ""
    version: str = ""
    kind: str = ""

    @classmethod
    def from_object(cls, obj: Mapping[str, Any]) -> GroupVersionKind:
        """Read the type of an unstructured object from its apiVersion and kind."""
        api_version = obj.get("apiVersion", "")
        kind = obj.get("kind", "")
        if not isinstance(api_version, str):
            api_version = ""
        if not isinstance(kind, str):
            kind = ""
        group, version = _parse_group_version(api_version)
        return cls(group, version, kind)

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Kind={self.kind}"


def nested_get(obj: Any, *args: str) -> Any:
    """Return the value at the given path, or None when any step is missing."""
    current = obj
    for field in args:
        if not isinstance(current, Mapping) or field not in current:
            return None
        current = current[field]
    return current


def set_nested(obj: dict[str, Any], value: Any, *args: str) -> None:
    """Store a deep copy of *value* at the given path, creating maps on the way."""
    if not args:
        raise ValueError("at least one field is required")
    current = obj
    for depth, field in enumerate(args[:-1]):
        if field in current:
            child = current[field]
            if not isinstance(child, dict):
                path = ".".join(args[: depth + 1])
                raise TypeError(f"value cannot be set because {path} is not a map")
        else:
            child = current[field] = {}
        current = child
    current[args[-1]] = copy.deepcopy(value)


def remove_nested(obj: dict[str, Any], *args: str) -> None:
    """Delete the value at the given path if it exists."""
    if not args:
        return
    current = obj
    for field in args[:-1]:
        child = current.get(field) if isinstance(current, dict) else None
        if not isinstance(child, dict):
            return
        current = child
    current.pop(args[-1], None)


def get_annotations(obj: Mapping[str, Any]) -> dict[str, str]:
    """Return a copy of the object's annotations, empty when absent or malformed."""
    annotations = nested_get(obj, "metadata", "annotations")
    if not isinstance(annotations, Mapping):
        return {}
    if not all(isinstance(v, str) for v in annotations.values()):
        return {}
    return dict(annotations)


def _remove_fields(config: Any, live: Any) -> Any:
    if isinstance(config, Mapping) and isinstance(live, Mapping):
        return remove_map_fields(config, live)
    if isinstance(config, list) and isinstance(live, list):
        return remove_list_fields(config, live)
    return live


def remove_map_fields(config: Mapping[str, Any], live: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only the parts of *live* whose keys also appear in *config*."""
    result: dict[str, Any] = {}
    for key, config_value in config.items():
        if key not in live:
            continue
        live_value = live[key]
        if live_value is not None:
            live_value = _remove_fields(config_value, live_value)
        result[key] = live_value
    return result


def remove_list_fields(config: list[Any], live: list[Any]) -> list[Any]:
    """Trim items of *live* against the matching items of *config*.

    Items beyond the length of *config* are kept unchanged so they show in a diff.
    """
    result = []
    for position, live_value in enumerate(live):
        if position < len(config) and live_value is not None:
            live_value = _remove_fields(config[position], live_value)
        result.append(live_value)
    return result