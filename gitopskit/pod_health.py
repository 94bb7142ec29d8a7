"""Health check for pods."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from gitopskit.objects import GroupVersionKind, nested_get
from gitopskit.status import HealthCheckError, HealthStatus, HealthStatusCode

_POD = GroupVersionKind("", "v1", "Pod")

_RESTART_ALWAYS = "Always"
_RESTART_ON_FAILURE = "OnFailure"
_RESTART_NEVER = "Never"


def _conversion_error(path: tuple[str, ...], value: Any) -> HealthCheckError:
    return HealthCheckError(
        "failed to convert unstructured Pod to typed: "
        f"{'.'.join(path)} has unexpected type {type(value).__name__}"
    )


def _str(obj: Mapping[str, Any], *path: str) -> str:
    value = nested_get(obj, *path)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _conversion_error(path, value)
    return value


def _int(obj: Mapping[str, Any], *path: str) -> int:
    value = nested_get(obj, *path)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise _conversion_error(path, value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise _conversion_error(path, value)


def _map(obj: Mapping[str, Any], *path: str) -> Mapping[str, Any] | None:
    value = nested_get(obj, *path)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise _conversion_error(path, value)
    return value


def _items(obj: Mapping[str, Any], *path: str) -> list[Mapping[str, Any]]:
    """Read a list of maps; a missing list is empty and null items are empty maps."""
    value = nested_get(obj, *path)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _conversion_error(path, value)
    result = []
    for item in value:
        if item is None:
            item = {}
        if not isinstance(item, Mapping):
            raise _conversion_error(path, item)
        result.append(item)
    return result


def _is_error_reason(reason: str) -> bool:
    return reason.startswith("Err") or reason.endswith("Error") or reason.endswith("BackOff")


def _fail_message(container: Mapping[str, Any]) -> str:
    terminated = _map(container, "state", "terminated")
    if terminated is None:
        return ""
    message = _str(terminated, "message")
    if message:
        return message
    reason = _str(terminated, "reason")
    if reason == "OOMKilled":
        return reason
    exit_code = _int(terminated, "exitCode")
    if exit_code != 0:
        name = json.dumps(_str(container, "name"), ensure_ascii=False)
        return f"container {name} failed with exit code {exit_code}"
    return ""


def _is_ready(obj: Mapping[str, Any]) -> bool:
    return any(
        _str(cond, "type") == "Ready" and _str(cond, "status") == "True"
        for cond in _items(obj, "status", "conditions")
    )


def get_pod_health(obj: Mapping[str, Any]) -> HealthStatus:
    """Assess the health of a core v1 Pod."""
    gvk = GroupVersionKind.from_object(obj)
    if gvk != _POD:
        raise HealthCheckError(f"unsupported Pod GVK: {gvk}")

    restart_policy = _str(obj, "spec", "restartPolicy")
    phase = _str(obj, "status", "phase")
    message = _str(obj, "status", "message")
    container_statuses = _items(obj, "status", "containerStatuses")
    init_statuses = _items(obj, "status", "initContainerStatuses")

    # Only pods that restart forever are judged by their waiting containers: a
    # hook pod stuck pulling its image must not fail the hook prematurely.
    if restart_policy == _RESTART_ALWAYS:
        messages = []
        for container in container_statuses:
            waiting = _map(container, "state", "waiting")
            if waiting is not None and _is_error_reason(_str(waiting, "reason")):
                messages.append(_str(waiting, "message"))
        if messages:
            return HealthStatus(HealthStatusCode.DEGRADED, ", ".join(messages))

    if phase == "Pending":
        return HealthStatus(HealthStatusCode.PROGRESSING, message)
    if phase == "Succeeded":
        return HealthStatus(HealthStatusCode.HEALTHY, message)
    if phase == "Failed":
        if message:
            return HealthStatus(HealthStatusCode.DEGRADED, message)
        for container in [*init_statuses, *container_statuses]:
            fail_message = _fail_message(container)
            if fail_message:
                return HealthStatus(HealthStatusCode.DEGRADED, fail_message)
        return HealthStatus(HealthStatusCode.DEGRADED, "")
    if phase == "Running":
        if restart_policy == _RESTART_ALWAYS:
            if _is_ready(obj):
                return HealthStatus(HealthStatusCode.HEALTHY, message)
            if any(_map(c, "lastState", "terminated") is not None for c in container_statuses):
                return HealthStatus(HealthStatusCode.DEGRADED, message)
            return HealthStatus(HealthStatusCode.PROGRESSING, message)
        if restart_policy in (_RESTART_ON_FAILURE, _RESTART_NEVER):
            # Pods with a finite life are usually hooks, so they stay Progressing.
            return HealthStatus(HealthStatusCode.PROGRESSING, message)
    return HealthStatus(HealthStatusCode.UNKNOWN, message)