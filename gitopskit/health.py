"""Health assessment of Kubernetes resources."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from gitopskit.apps_health import (
    get_daemonset_health,
    get_deployment_health,
    get_job_health,
    get_replicaset_health,
    get_statefulset_health,
)
from gitopskit.hpa_health import get_hpa_health
from gitopskit.objects import GroupVersionKind, nested_get
from gitopskit.pod_health import get_pod_health
from gitopskit.service_health import (
    get_apiservice_health,
    get_argo_workflow_health,
    get_ingress_health,
    get_pvc_health,
    get_service_health,
)
from gitopskit.status import HealthCheckError, HealthStatus, HealthStatusCode

HealthCheck = Callable[[Mapping[str, Any]], HealthStatus]


@runtime_checkable
class HealthOverride(Protocol):
    """Custom health assessment that takes precedence over the built-in checks."""

    def get_resource_health(self, obj: Mapping[str, Any]) -> HealthStatus | None:
        """Return the health of *obj*, or None to use the built-in check."""


_CHECKS: dict[tuple[str, str], HealthCheck] = {
    ("apps", "Deployment"): get_deployment_health,
    ("apps", "StatefulSet"): get_statefulset_health,
    ("apps", "ReplicaSet"): get_replicaset_health,
    ("apps", "DaemonSet"): get_daemonset_health,
    ("extensions", "Ingress"): get_ingress_health,
    ("networking.k8s.io", "Ingress"): get_ingress_health,
    ("argoproj.io", "Workflow"): get_argo_workflow_health,
    ("apiregistration.k8s.io", "APIService"): get_apiservice_health,
    ("", "Service"): get_service_health,
    ("", "PersistentVolumeClaim"): get_pvc_health,
    ("", "Pod"): get_pod_health,
    ("batch", "Job"): get_job_health,
    ("autoscaling", "HorizontalPodAutoscaler"): get_hpa_health,
}


def get_health_check_func(gvk: GroupVersionKind) -> HealthCheck | None:
    """Return the built-in health check for a resource type, or None if there is none."""
    return _CHECKS.get((gvk.group, gvk.kind))


def get_resource_health(
    obj: Mapping[str, Any], health_override: HealthOverride | None = None
) -> HealthStatus | None:
    """Return the health of a resource, or None when its type has no health check.

    Raises HealthCheckError when the assessment fails; the resource's health is
    then unknown.
    """
    if nested_get(obj, "metadata", "deletionTimestamp"):
        return HealthStatus(HealthStatusCode.PROGRESSING, "Pending deletion")

    if health_override is not None:
        try:
            health = health_override.get_resource_health(obj)
        except HealthCheckError:
            raise
        except Exception as exc:
            raise HealthCheckError(str(exc)) from exc
        if health is not None:
            return health

    check = get_health_check_func(GroupVersionKind.from_object(obj))
    if check is None:
        return None
    return check(obj)