"""Health checks for ingresses, services, volume claims, workflows and API services."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from gitopskit.objects import GroupVersionKind, nested_get
from gitopskit.status import HealthCheckError, HealthStatus, HealthStatusCode

_SERVICE = GroupVersionKind("", "v1", "Service")
_PVC = GroupVersionKind("", "v1", "PersistentVolumeClaim")
_APISERVICE_VERSIONS = (
    GroupVersionKind("apiregistration.k8s.io", "v1", "APIService"),
    GroupVersionKind("apiregistration.k8s.io", "v1beta1", "APIService"),
)

_PVC_PHASES = {
    "Lost": HealthStatusCode.DEGRADED,
    "Pending": HealthStatusCode.PROGRESSING,
    "Bound": HealthStatusCode.HEALTHY,
}

_WORKFLOW_PHASES = {
    "": HealthStatusCode.PROGRESSING,
    "Pending": HealthStatusCode.PROGRESSING,
    "Running": HealthStatusCode.PROGRESSING,
    "Succeeded": HealthStatusCode.HEALTHY,
    "Failed": HealthStatusCode.DEGRADED,
    "Error": HealthStatusCode.DEGRADED,
}


def _str(obj: Mapping[str, Any], prefix: str, *path: str) -> str:
    value = nested_get(obj, *path)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise HealthCheckError(
            f"{prefix}{'.'.join(path)} has unexpected type {type(value).__name__}"
        )
    return value


def _list(obj: Mapping[str, Any], prefix: str, *path: str) -> list[Any]:
    value = nested_get(obj, *path)
    if value is None:
        return []
    if not isinstance(value, list):
        raise HealthCheckError(
            f"{prefix}{'.'.join(path)} has unexpected type {type(value).__name__}"
        )
    return value


def get_ingress_health(obj: Mapping[str, Any]) -> HealthStatus:
    """An ingress is healthy once a load balancer address has been assigned."""
    ingresses = nested_get(obj, "status", "loadBalancer", "ingress")
    if isinstance(ingresses, list) and ingresses:
        return HealthStatus(HealthStatusCode.HEALTHY)
    return HealthStatus(HealthStatusCode.PROGRESSING)


def get_service_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess a core v1 Service; load balancers wait for an ingress address."""
    gvk = GroupVersionKind.from_object(obj)
    if gvk != _SERVICE:
        raise HealthCheckError(f"unsupported Service GVK: {gvk}")
    prefix = "failed to convert unstructured Service to typed: "
    if _str(obj, prefix, "spec", "type") == "LoadBalancer":
        if _list(obj, prefix, "status", "loadBalancer", "ingress"):
            return HealthStatus(HealthStatusCode.HEALTHY)
        return HealthStatus(HealthStatusCode.PROGRESSING)
    return HealthStatus(HealthStatusCode.HEALTHY)


def get_pvc_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess a core v1 PersistentVolumeClaim from its phase."""
    gvk = GroupVersionKind.from_object(obj)
    if gvk != _PVC:
        raise HealthCheckError(f"unsupported PersistentVolumeClaim GVK: {gvk}")
    prefix = "failed to convert unstructured PersistentVolumeClaim to typed: "
    phase = _str(obj, prefix, "status", "phase")
    return HealthStatus(_PVC_PHASES.get(phase, HealthStatusCode.UNKNOWN))


def get_argo_workflow_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess a workflow from status.phase alone, whatever its API version."""
    status = nested_get(obj, "status")
    if status is not None and not isinstance(status, Mapping):
        raise HealthCheckError(f"status has unexpected type {type(status).__name__}")
    phase = _str(obj, "", "status", "phase")
    message = _str(obj, "", "status", "message")
    return HealthStatus(_WORKFLOW_PHASES.get(phase, HealthStatusCode.UNKNOWN), message)


def get_apiservice_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess an APIService from its Available condition."""
    gvk = GroupVersionKind.from_object(obj)
    if gvk not in _APISERVICE_VERSIONS:
        raise HealthCheckError(f"unsupported APIService GVK: {gvk}")
    prefix = "failed to convert unstructured APIService to typed: "
    for condition in _list(obj, prefix, "status", "conditions"):
        if condition is None:
            condition = {}
        if not isinstance(condition, Mapping):
            raise HealthCheckError(
                f"{prefix}status.conditions has unexpected type {type(condition).__name__}"
            )
        if _str(condition, prefix, "type") != "Available":
            continue
        message = f"{_str(condition, prefix, 'reason')}: {_str(condition, prefix, 'message')}"
        if _str(condition, prefix, "status") == "True":
            return HealthStatus(HealthStatusCode.HEALTHY, message)
        return HealthStatus(HealthStatusCode.PROGRESSING, message)
    return HealthStatus(HealthStatusCode.PROGRESSING, "Waiting to be processed")