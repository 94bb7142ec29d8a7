"""Health check for horizontal pod autoscalers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from gitopskit.objects import GroupVersionKind, nested_get
from gitopskit.status import HealthCheckError, HealthStatus, HealthStatusCode

_KIND = "HorizontalPodAutoscaler"
_V1 = GroupVersionKind("autoscaling", "v1", _KIND)
_CONDITION_VERSIONS = frozenset(
    GroupVersionKind("autoscaling", version, _KIND) for version in ("v2beta1", "v2beta2", "v2")
)
_CONDITIONS_ANNOTATION = "autoscaling.alpha.kubernetes.io/conditions"
_CONVERSION_PREFIX = "failed to convert unstructured HPA to typed: "
_ANNOTATION_PREFIX = "failed to convert conditions annotation to typed: "

_DEGRADED_STATES = frozenset(
    {
        ("AbleToScale", "FailedGetScale"),
        ("AbleToScale", "FailedUpdateScale"),
        ("ScalingActive", "FailedGetResourceMetric"),
        ("ScalingActive", "InvalidSelector"),
    }
)
_HEALTHY_TYPES = frozenset({"AbleToScale", "ScalingLimited"})
_FIELDS = ("type", "reason", "message", "status")


@dataclass(frozen=True)
class _Condition:
    type: str = ""
    reason: str = ""
    message: str = ""
    status: str = ""

    @property
    def degraded(self) -> bool:
        return (self.type, self.reason) in _DEGRADED_STATES

    @property
    def healthy(self) -> bool:
        return self.type in _HEALTHY_TYPES and self.status == "True"


def _progressing() -> HealthStatus:
    return HealthStatus(HealthStatusCode.PROGRESSING, "Waiting to Autoscale")


def _field_value(item: Mapping[str, Any], field: str, prefix: str, case_insensitive: bool) -> str:
    if field in item:
        value = item[field]
    elif case_insensitive:
        value = next((v for k, v in item.items() if k.lower() == field), None)
    else:
        value = None
    if value is None:
        return ""
    if not isinstance(value, str):
        raise HealthCheckError(f"{prefix}{field} has unexpected type {type(value).__name__}")
    return value


def _to_conditions(items: Any, prefix: str, case_insensitive: bool) -> list[_Condition]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise HealthCheckError(f"{prefix}conditions has unexpected type {type(items).__name__}")
    conditions = []
    for item in items:
        if item is None:
            item = {}
        if not isinstance(item, Mapping):
            raise HealthCheckError(
                f"{prefix}condition has unexpected type {type(item).__name__}"
            )
        conditions.append(
            _Condition(
                **{
                    field: _field_value(item, field, prefix, case_insensitive)
                    for field in _FIELDS
                }
            )
        )
    return conditions


def _check_conditions(conditions: list[_Condition]) -> HealthStatus:
    for condition in conditions:
        if condition.degraded:
            return HealthStatus(HealthStatusCode.DEGRADED, condition.message)
        if condition.healthy:
            return HealthStatus(HealthStatusCode.HEALTHY, condition.message)
    return _progressing()


def _v1_health(obj: Mapping[str, Any]) -> HealthStatus:
    annotations = nested_get(obj, "metadata", "annotations")
    if annotations is None:
        return _progressing()
    if not isinstance(annotations, Mapping):
        raise HealthCheckError(
            f"{_CONVERSION_PREFIX}metadata.annotations has unexpected type "
            f"{type(annotations).__name__}"
        )
    if any(not isinstance(v, str) for v in annotations.values()):
        raise HealthCheckError(f"{_CONVERSION_PREFIX}annotation values must be strings")
    raw = annotations.get(_CONDITIONS_ANNOTATION)
    if raw is None:
        return _progressing()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HealthCheckError(f"{_ANNOTATION_PREFIX}{exc}") from exc
    conditions = _to_conditions(data, _ANNOTATION_PREFIX, case_insensitive=True)
    if not conditions:
        return _progressing()
    return _check_conditions(conditions)


def get_hpa_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess an autoscaler from its conditions.

    autoscaling/v1 keeps its conditions in an annotation; later versions keep
    them in status.conditions.
    """
    gvk = GroupVersionKind.from_object(obj)
    if gvk == _V1:
        return _v1_health(obj)
    if gvk in _CONDITION_VERSIONS:
        items = nested_get(obj, "status", "conditions")
        return _check_conditions(_to_conditions(items, _CONVERSION_PREFIX, case_insensitive=False))
    raise HealthCheckError(f"unsupported HPA GVK: {gvk}")