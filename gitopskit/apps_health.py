"""Health checks for workload resources: deployments, stateful sets, daemon sets,
replica sets and jobs."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from gitopskit.objects import GroupVersionKind, nested_get
from gitopskit.status import HealthCheckError, HealthStatus, HealthStatusCode

_DEPLOYMENT = GroupVersionKind("apps", "v1", "Deployment")
_STATEFULSET = GroupVersionKind("apps", "v1", "StatefulSet")
_DAEMONSET = GroupVersionKind("apps", "v1", "DaemonSet")
_REPLICASET = GroupVersionKind("apps", "v1", "ReplicaSet")
_JOB = GroupVersionKind("batch", "v1", "Job")


def _conversion_error(kind: str, path: tuple[str, ...], value: Any) -> HealthCheckError:
    return HealthCheckError(
        f"failed to convert unstructured {kind} to typed: "
        f"{'.'.join(path)} has unexpected type {type(value).__name__}"
    )


def _int(obj: Mapping[str, Any], kind: str, *path: str, default: int | None = 0) -> int | None:
    """Read an integer field; absent or null fields give *default*."""
    value = nested_get(obj, *path)
    if value is None:
        return default
    if isinstance(value, bool):
        raise _conversion_error(kind, path, value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise _conversion_error(kind, path, value)


def _str(obj: Mapping[str, Any], kind: str, *path: str) -> str:
    value = nested_get(obj, *path)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _conversion_error(kind, path, value)
    return value


def _bool(obj: Mapping[str, Any], kind: str, *path: str) -> bool:
    value = nested_get(obj, *path)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise _conversion_error(kind, path, value)
    return value


def _map(obj: Mapping[str, Any], kind: str, *path: str) -> Mapping[str, Any] | None:
    value = nested_get(obj, *path)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise _conversion_error(kind, path, value)
    return value


def _conditions(obj: Mapping[str, Any], kind: str) -> list[dict[str, str]]:
    """Read status.conditions as a list of maps with string fields."""
    path = ("status", "conditions")
    value = nested_get(obj, *path)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _conversion_error(kind, path, value)
    conditions = []
    for item in value:
        if item is None:
            item = {}
        if not isinstance(item, Mapping):
            raise _conversion_error(kind, path, item)
        conditions.append(
            {
                field: _str(item, kind, field)
                for field in ("type", "status", "reason", "message")
            }
        )
    return conditions


def _find_condition(conditions: list[dict[str, str]], cond_type: str) -> dict[str, str] | None:
    return next((c for c in conditions if c["type"] == cond_type), None)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _check_gvk(obj: Mapping[str, Any], expected: GroupVersionKind) -> None:
    gvk = GroupVersionKind.from_object(obj)
    if gvk != expected:
        raise HealthCheckError(f"unsupported {expected.kind} GVK: {gvk}")


def get_deployment_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 Deployment."""
    _check_gvk(obj, _DEPLOYMENT)
    kind = "Deployment"
    if _bool(obj, kind, "spec", "paused"):
        return HealthStatus(HealthStatusCode.SUSPENDED, "Deployment is paused")

    generation = _int(obj, kind, "metadata", "generation")
    observed = _int(obj, kind, "status", "observedGeneration")
    if generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for rollout to finish: observed deployment generation less than desired generation",
        )

    name = _str(obj, kind, "metadata", "name")
    spec_replicas = _int(obj, kind, "spec", "replicas", default=None)
    replicas = _int(obj, kind, "status", "replicas")
    updated = _int(obj, kind, "status", "updatedReplicas")
    available = _int(obj, kind, "status", "availableReplicas")
    cond = _find_condition(_conditions(obj, kind), "Progressing")

    if cond is not None and cond["reason"] == "ProgressDeadlineExceeded":
        return HealthStatus(
            HealthStatusCode.DEGRADED,
            f"Deployment {_quote(name)} exceeded its progress deadline",
        )
    if spec_replicas is not None and updated < spec_replicas:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {updated} out of {spec_replicas} "
            "new replicas have been updated...",
        )
    if replicas > updated:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {replicas - updated} old replicas "
            "are pending termination...",
        )
    if available < updated:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {available} of {updated} "
            "updated replicas are available...",
        )
    return HealthStatus(HealthStatusCode.HEALTHY)


def get_statefulset_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 StatefulSet."""
    _check_gvk(obj, _STATEFULSET)
    kind = "StatefulSet"
    generation = _int(obj, kind, "metadata", "generation")
    observed = _int(obj, kind, "status", "observedGeneration")
    if observed == 0 or generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for statefulset spec update to be observed...",
        )

    spec_replicas = _int(obj, kind, "spec", "replicas", default=None)
    ready = _int(obj, kind, "status", "readyReplicas")
    updated = _int(obj, kind, "status", "updatedReplicas")
    current = _int(obj, kind, "status", "currentReplicas")
    update_revision = _str(obj, kind, "status", "updateRevision")
    current_revision = _str(obj, kind, "status", "currentRevision")
    strategy_type = _str(obj, kind, "spec", "updateStrategy", "type")
    rolling_update = _map(obj, kind, "spec", "updateStrategy", "rollingUpdate")

    if spec_replicas is not None and ready < spec_replicas:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for {spec_replicas - ready} pods to be ready...",
        )
    if strategy_type == "RollingUpdate" and rolling_update is not None:
        partition = _int(
            obj, kind, "spec", "updateStrategy", "rollingUpdate", "partition", default=None
        )
        if spec_replicas is not None and partition is not None:
            expected = spec_replicas - partition
            if updated < expected:
                return HealthStatus(
                    HealthStatusCode.PROGRESSING,
                    "Waiting for partitioned roll out to finish: "
                    f"{updated} out of {expected} new pods have been updated...",
                )
        return HealthStatus(
            HealthStatusCode.HEALTHY,
            f"partitioned roll out complete: {updated} new pods have been updated...",
        )
    if strategy_type == "OnDelete":
        return HealthStatus(
            HealthStatusCode.HEALTHY, f"statefulset has {ready} ready pods"
        )
    if update_revision != current_revision:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"waiting for statefulset rolling update to complete {updated} pods "
            f"at revision {update_revision}...",
        )
    return HealthStatus(
        HealthStatusCode.HEALTHY,
        f"statefulset rolling update complete {current} pods at revision {current_revision}...",
    )


def get_daemonset_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 DaemonSet."""
    _check_gvk(obj, _DAEMONSET)
    kind = "DaemonSet"
    generation = _int(obj, kind, "metadata", "generation")
    observed = _int(obj, kind, "status", "observedGeneration")
    if generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for rollout to finish: observed daemon set generation less than desired generation",
        )

    name = _str(obj, kind, "metadata", "name")
    updated = _int(obj, kind, "status", "updatedNumberScheduled")
    desired = _int(obj, kind, "status", "desiredNumberScheduled")
    available = _int(obj, kind, "status", "numberAvailable")
    strategy_type = _str(obj, kind, "spec", "updateStrategy", "type")

    if strategy_type == "OnDelete":
        return HealthStatus(
            HealthStatusCode.HEALTHY,
            f"daemon set {updated} out of {desired} new pods have been updated",
        )
    if updated < desired:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for daemon set {_quote(name)} rollout to finish: "
            f"{updated} out of {desired} new pods have been updated...",
        )
    if available < desired:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for daemon set {_quote(name)} rollout to finish: "
            f"{available} of {desired} updated pods are available...",
        )
    return HealthStatus(HealthStatusCode.HEALTHY)


def get_replicaset_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess the health of an apps/v1 ReplicaSet."""
    _check_gvk(obj, _REPLICASET)
    kind = "ReplicaSet"
    generation = _int(obj, kind, "metadata", "generation")
    observed = _int(obj, kind, "status", "observedGeneration")
    if generation > observed:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            "Waiting for rollout to finish: observed replica set generation less than desired generation",
        )

    spec_replicas = _int(obj, kind, "spec", "replicas", default=None)
    available = _int(obj, kind, "status", "availableReplicas")
    cond = _find_condition(_conditions(obj, kind), "ReplicaFailure")
    if cond is not None and cond["status"] == "True":
        return HealthStatus(HealthStatusCode.DEGRADED, cond["message"])
    if spec_replicas is not None and available < spec_replicas:
        return HealthStatus(
            HealthStatusCode.PROGRESSING,
            f"Waiting for rollout to finish: {available} out of {spec_replicas} "
            "new replicas are available...",
        )
    return HealthStatus(HealthStatusCode.HEALTHY)


def get_job_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess the health of a batch/v1 Job."""
    _check_gvk(obj, _JOB)
    failed = False
    complete = False
    suspended = False
    fail_message = ""
    message = ""
    for condition in _conditions(obj, "Job"):
        cond_type = condition["type"]
        if cond_type == "Failed":
            failed = True
            complete = True
            fail_message = condition["message"]
        elif cond_type == "Complete":
            complete = True
            message = condition["message"]
        elif cond_type == "Suspended":
            complete = True
            message = condition["message"]
            if condition["status"] == "True":
                suspended = True

    if not complete:
        return HealthStatus(HealthStatusCode.PROGRESSING, message)
    if failed:
        return HealthStatus(HealthStatusCode.DEGRADED, fail_message)
    if suspended:
        return HealthStatus(HealthStatusCode.SUSPENDED, fail_message)
    return HealthStatus(HealthStatusCode.HEALTHY, message)