import pytest

from gitopskit.pod_health import get_pod_health
from gitopskit.status import HealthCheckError, HealthStatusCode


def _pod(
    phase=None,
    restart_policy="Always",
    containers=None,
    init_containers=None,
    ready=None,
    message=None,
):
    status = {}
    if phase is not None:
        status["phase"] = phase
    if message is not None:
        status["message"] = message
    if containers is not None:
        status["containerStatuses"] = containers
    if init_containers is not None:
        status["initContainerStatuses"] = init_containers
    if ready is not None:
        status["conditions"] = [{"type": "Ready", "status": "True" if ready else "False"}]
    spec = {"containers": [{"name": "main", "image": "nginx"}]}
    if restart_policy is not None:
        spec["restartPolicy"] = restart_policy
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "my-pod", "namespace": "default"},
        "spec": spec,
        "status": status,
    }


def _waiting(reason, message=""):
    return {"name": "main", "state": {"waiting": {"reason": reason, "message": message}}}


def _terminated(name="main", **fields):
    return {"name": name, "state": {"terminated": fields}}


def test_pending_pod_is_progressing():
    pod = _pod("Pending", containers=[_waiting("ContainerCreating")])
    assert get_pod_health(pod).status == HealthStatusCode.PROGRESSING


def test_running_not_ready_is_progressing():
    pod = _pod("Running", ready=False, containers=[{"name": "main", "state": {"running": {}}}])
    assert get_pod_health(pod).status == HealthStatusCode.PROGRESSING


def test_crashloop_is_degraded():
    pod = _pod(
        "Running",
        ready=False,
        containers=[_waiting("CrashLoopBackOff", "Back-off restarting failed container")],
    )
    health = get_pod_health(pod)
    assert health.status == HealthStatusCode.DEGRADED
    assert health.message == "Back-off restarting failed container"


def test_image_pull_backoff_is_degraded():
    pod = _pod("Pending", containers=[_waiting("ImagePullBackOff", "image not found")])
    health = get_pod_health(pod)
    assert health.status == HealthStatusCode.DEGRADED
    assert health.message == "image not found"


def test_err_reason_is_degraded():
    pod = _pod("Pending", containers=[_waiting("ErrImagePull", "pull failed")])
    assert get_pod_health(pod).status == HealthStatusCode.DEGRADED


def test_create_container_config_error_is_degraded():
    pod = _pod("Pending", containers=[_waiting("CreateContainerConfigError", "bad config")])
    assert get_pod_health(pod).status == HealthStatusCode.DEGRADED


def test_multiple_waiting_messages_are_joined():
    pod = _pod("Pending", containers=[_waiting("ErrImagePull", "a"), _waiting("CrashLoopBackOff", "b")])
    assert get_pod_health(pod).message == "a, b"


def test_running_ready_restart_always_is_healthy():
    pod = _pod("Running", ready=True, containers=[{"name": "main", "state": {"running": {}}}])
    assert get_pod_health(pod).status == HealthStatusCode.HEALTHY


def test_running_not_ready_with_terminated_last_state_is_degraded():
    container = {
        "name": "main",
        "state": {"running": {}},
        "lastState": {"terminated": {"exitCode": 1}},
    }
    pod = _pod("Running", ready=False, containers=[container], message="restarting")
    health = get_pod_health(pod)
    assert health.status == HealthStatusCode.DEGRADED
    assert health.message == "restarting"


@pytest.mark.parametrize("policy", ["Never", "OnFailure"])
def test_running_finite_pods_are_progressing(policy):
    pod = _pod("Running", restart_policy=policy, ready=True)
    assert get_pod_health(pod).status == HealthStatusCode.PROGRESSING


def test_waiting_backoff_ignored_for_never_restart():
    pod = _pod("Pending", restart_policy="Never", containers=[_waiting("ImagePullBackOff")])
    assert get_pod_health(pod).status == HealthStatusCode.PROGRESSING


def test_failed_with_message():
    pod = _pod("Failed", restart_policy="Never", message="The node was low on resource")
    health = get_pod_health(pod)
    assert health.status == HealthStatusCode.DEGRADED
    assert health.message == "The node was low on resource"


def test_failed_with_exit_code():
    pod = _pod("Failed", restart_policy="Never", containers=[_terminated(exitCode=1, reason="Error")])
    health = get_pod_health(pod)
    assert health.status == HealthStatusCode.DEGRADED
    assert health.message == 'container "main" failed with exit code 1'


def test_failed_oom_killed():
    pod = _pod("Failed", restart_policy="Never", containers=[_terminated(reason="OOMKilled", exitCode=137)])
    assert get_pod_health(pod).message == "OOMKilled"


def test_failed_prefers_terminated_message():
    pod = _pod("Failed", restart_policy="Never", containers=[_terminated(message="boom", exitCode=2)])
    assert get_pod_health(pod).message == "boom"


def test_failed_init_container_reported_first():
    pod = _pod(
        "Failed",
        restart_policy="Never",
        init_containers=[_terminated(name="init", exitCode=3)],
        containers=[_terminated(exitCode=1)],
    )
    assert get_pod_health(pod).message == 'container "init" failed with exit code 3'


def test_failed_without_details():
    health = get_pod_health(_pod("Failed", restart_policy="Never"))
    assert health.status == HealthStatusCode.DEGRADED
    assert health.message == ""


def test_succeeded_is_healthy():
    pod = _pod("Succeeded", restart_policy="Never", containers=[_terminated(exitCode=0)])
    assert get_pod_health(pod).status == HealthStatusCode.HEALTHY


def test_unknown_phase():
    health = get_pod_health(_pod("Unknown", message="node lost"))
    assert health.status == HealthStatusCode.UNKNOWN
    assert health.message == "node lost"


def test_running_without_restart_policy_is_unknown():
    pod = _pod("Running", restart_policy=None, ready=True)
    assert get_pod_health(pod).status == HealthStatusCode.UNKNOWN


def test_unsupported_gvk():
    pod = _pod("Running")
    pod["apiVersion"] = "v2"
    with pytest.raises(HealthCheckError, match="unsupported Pod GVK"):
        get_pod_health(pod)


def test_malformed_phase_raises():
    pod = _pod("Running")
    pod["status"]["phase"] = 5
    with pytest.raises(HealthCheckError, match="failed to convert unstructured Pod"):
        get_pod_health(pod)