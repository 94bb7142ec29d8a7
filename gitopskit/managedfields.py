"""Managed field entries: decoding them into per-manager field sets and encoding back."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, NamedTuple

APPLY = "Apply"
UPDATE = "Update"
FIELDS_V1 = "FieldsV1"

# A field set with no paths, in its wire form.
EMPTY_FIELDS: dict[str, Any] = {}


class ManagedFieldsError(ValueError):
    """Raised when managed field entries cannot be decoded or encoded."""


def _parse_time(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ManagedFieldsError(f"time must be a string, got {type(value).__name__}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ManagedFieldsError(f"invalid time {value!r}: {exc}") from exc


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _format_time(moment: datetime) -> str:
    return _as_utc(moment).strftime("%Y-%m-%dT%H:%M:%SZ")


def _compact_json(value: Any) -> str:
    """Encode as compact JSON, escaping HTML-sensitive characters."""
    text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in (
        ("&", "\\u0026"),
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escaped)
    return text


@dataclass
class ManagedFieldsEntry:
    """One entry of metadata.managedFields."""

    manager: str = ""
    operation: str = ""
    api_version: str = ""
    time: datetime | None = None
    fields_type: str = ""
    fields_v1: dict[str, Any] | None = None
    subresource: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ManagedFieldsEntry:
        """Build an entry from its JSON form."""
        if not isinstance(data, Mapping):
            raise ManagedFieldsError(
                f"managed fields entry must be a map, got {type(data).__name__}"
            )

        def text(key: str) -> str:
            value = data.get(key)
            if value is None:
                return ""
            if not isinstance(value, str):
                raise ManagedFieldsError(
                    f"{key} must be a string, got {type(value).__name__}"
                )
            return value

        fields_v1 = data.get("fieldsV1")
        if fields_v1 is not None and not isinstance(fields_v1, Mapping):
            raise ManagedFieldsError(
                f"fieldsV1 must be a map, got {type(fields_v1).__name__}"
            )
        return cls(
            manager=text("manager"),
            operation=text("operation"),
            api_version=text("apiVersion"),
            time=_parse_time(data.get("time")),
            fields_type=text("fieldsType"),
            fields_v1=None if fields_v1 is None else dict(fields_v1),
            subresource=text("subresource"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form, leaving out empty fields."""
        result: dict[str, Any] = {}
        if self.manager:
            result["manager"] = self.manager
        if self.operation:
            result["operation"] = self.operation
        if self.api_version:
            result["apiVersion"] = self.api_version
        if self.time is not None:
            result["time"] = _format_time(self.time)
        if self.fields_type:
            result["fieldsType"] = self.fields_type
        if self.fields_v1 is not None:
            result["fieldsV1"] = self.fields_v1
        if self.subresource:
            result["subresource"] = self.subresource
        return result


class _VersionedSet(NamedTuple):
    fields: dict[str, Any]
    api_version: str
    applied: bool


@dataclass
class Managed:
    """Field sets keyed by manager identifier, with the time of each operation."""

    fields: dict[str, _VersionedSet] = field(default_factory=dict)
    times: dict[str, datetime | None] = field(default_factory=dict)


def _check_path_element(key: str) -> None:
    if key == ".":
        return
    prefix, sep, rest = key.partition(":")
    if not sep:
        raise ManagedFieldsError(f"unexpected path element {key!r}")
    if prefix == "f":
        return
    if prefix == "i":
        try:
            int(rest)
        except ValueError as exc:
            raise ManagedFieldsError(f"invalid index in path element {key!r}") from exc
        return
    if prefix in ("k", "v"):
        try:
            parsed = json.loads(rest)
        except json.JSONDecodeError as exc:
            raise ManagedFieldsError(f"invalid value in path element {key!r}: {exc}") from exc
        if prefix == "k" and not isinstance(parsed, dict):
            raise ManagedFieldsError(f"key in path element {key!r} must be an object")
        return
    raise ManagedFieldsError(f"unknown prefix in path element {key!r}")


def _check_field_set(trie: Any) -> None:
    if not isinstance(trie, Mapping):
        raise ManagedFieldsError(f"field set node must be a map, got {type(trie).__name__}")
    for key, child in trie.items():
        _check_path_element(key)
        _check_field_set(child)


def build_manager_identifier(entry: ManagedFieldsEntry) -> str:
    """Build the identifier of a manager from an entry.

    Field type, fields and time never take part; appliers also leave out their
    API version so that each apply maps to the same manager.
    """
    stripped = replace(entry, fields_type="", fields_v1=None, time=None)
    if entry.operation == APPLY:
        stripped.api_version = ""
    return _compact_json(stripped.to_dict())


def _decode_versioned_set(entry: ManagedFieldsEntry) -> _VersionedSet:
    fields = EMPTY_FIELDS if entry.fields_v1 is None else entry.fields_v1
    try:
        _check_field_set(fields)
    except ManagedFieldsError as exc:
        raise ManagedFieldsError(f"error decoding set: {exc}") from exc
    return _VersionedSet(dict(fields), entry.api_version, entry.operation == APPLY)


def decode_managed_fields(
    entries: Iterable[ManagedFieldsEntry | Mapping[str, Any]],
) -> Managed:
    """Turn wire-format entries into field sets keyed by manager identifier."""
    managed = Managed()
    for position, raw in enumerate(entries):
        entry = raw if isinstance(raw, ManagedFieldsEntry) else ManagedFieldsEntry.from_dict(raw)
        if entry.operation not in (APPLY, UPDATE):
            raise ManagedFieldsError("operation must be `Apply` or `Update`")
        if not entry.api_version:
            raise ManagedFieldsError("apiVersion must not be empty")
        if entry.fields_type == "":
            raise ManagedFieldsError(f"missing fieldsType in managed fields entry {position}")
        if entry.fields_type != FIELDS_V1:
            raise ManagedFieldsError(
                f"invalid fieldsType {json.dumps(entry.fields_type)} "
                f"in managed fields entry {position}"
            )
        manager = build_manager_identifier(entry)
        try:
            managed.fields[manager] = _decode_versioned_set(entry)
        except ManagedFieldsError as exc:
            raise ManagedFieldsError(
                f"error decoding versioned set from {entry.to_dict()}: {exc}"
            ) from exc
        managed.times[manager] = entry.time
    return managed


def _encode_versioned_set(manager: str, versioned: _VersionedSet) -> ManagedFieldsEntry:
    try:
        entry = ManagedFieldsEntry.from_dict(json.loads(manager))
    except (json.JSONDecodeError, ManagedFieldsError) as exc:
        raise ManagedFieldsError(
            f"error unmarshalling manager identifier {manager}: {exc}"
        ) from exc
    entry.api_version = versioned.api_version
    if versioned.applied:
        entry.operation = APPLY
    entry.fields_type = FIELDS_V1
    entry.fields_v1 = dict(versioned.fields)
    return entry


def sort_managed_fields(entries: Iterable[ManagedFieldsEntry]) -> list[ManagedFieldsEntry]:
    """Order entries by operation, time, manager, API version and subresource."""

    def key(entry: ManagedFieldsEntry) -> tuple[str, int, str, str, str]:
        seconds = 0 if entry.time is None else int(_as_utc(entry.time).timestamp())
        return (entry.operation, seconds, entry.manager, entry.api_version, entry.subresource)

    return sorted(entries, key=key)


def encode_managed_fields(managed: Managed) -> list[ManagedFieldsEntry] | None:
    """Turn field sets back into sorted wire-format entries; None when there are none."""
    if not managed.fields:
        return None
    entries = []
    for manager, versioned in managed.fields.items():
        entry = _encode_versioned_set(manager, versioned)
        if manager in managed.times:
            entry.time = managed.times[manager]
        entries.append(entry)
    return sort_managed_fields(entries)