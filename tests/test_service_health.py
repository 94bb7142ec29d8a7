import pytest

from gitopskit.service_health import (
    get_apiservice_health,
    get_argo_workflow_health,
    get_ingress_health,
    get_pvc_health,
    get_service_health,
)
from gitopskit.status import HealthCheckError, HealthStatusCode


def _service(svc_type=None, ingress=None):
    spec = {"ports": [{"port": 80}]}
    if svc_type is not None:
        spec["type"] = svc_type
    status = {"loadBalancer": {}}
    if ingress is not None:
        status["loadBalancer"]["ingress"] = ingress
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": "svc"},
        "spec": spec,
        "status": status,
    }


def test_service_cluster_ip_is_healthy():
    assert get_service_health(_service("ClusterIP")).status == HealthStatusCode.HEALTHY


def test_service_loadbalancer_assigned_is_healthy():
    svc = _service("LoadBalancer", [{"ip": "10.0.0.1"}])
    assert get_service_health(svc).status == HealthStatusCode.HEALTHY


def test_service_loadbalancer_unassigned_is_progressing():
    assert get_service_health(_service("LoadBalancer")).status == HealthStatusCode.PROGRESSING


def test_service_loadbalancer_nonempty_list_is_healthy():
    svc = _service("LoadBalancer", [{"hostname": "lb.example.com"}, {"ip": "10.0.0.2"}])
    assert get_service_health(svc).status == HealthStatusCode.HEALTHY


def test_service_wrong_gvk():
    svc = _service()
    svc["apiVersion"] = "apps/v1"
    with pytest.raises(HealthCheckError, match="unsupported Service GVK"):
        get_service_health(svc)


def _ingress(ingress=None):
    status = {"loadBalancer": {}}
    if ingress is not None:
        status["loadBalancer"]["ingress"] = ingress
    return {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "Ingress",
        "metadata": {"name": "ing"},
        "status": status,
    }


def test_ingress_health():
    assert get_ingress_health(_ingress([{"ip": "10.0.0.1"}])).status == HealthStatusCode.HEALTHY
    assert get_ingress_health(_ingress()).status == HealthStatusCode.PROGRESSING
    nonempty = _ingress([{"ip": "10.0.0.1"}, {"ip": "10.0.0.2"}])
    assert get_ingress_health(nonempty).status == HealthStatusCode.HEALTHY


def test_ingress_malformed_list_is_progressing():
    assert get_ingress_health(_ingress("oops")).status == HealthStatusCode.PROGRESSING


def _pvc(phase):
    return {
        "apiVersion": "v1",
        "kind": "PersistentVolumeClaim",
        "metadata": {"name": "data"},
        "status": {"phase": phase},
    }


@pytest.mark.parametrize(
    "phase, expected",
    [
        ("Bound", HealthStatusCode.HEALTHY),
        ("Pending", HealthStatusCode.PROGRESSING),
        ("Lost", HealthStatusCode.DEGRADED),
        ("Other", HealthStatusCode.UNKNOWN),
    ],
)
def test_pvc_health(phase, expected):
    assert get_pvc_health(_pvc(phase)).status == expected


def test_pvc_wrong_gvk():
    pvc = _pvc("Bound")
    pvc["kind"] = "PersistentVolume"
    with pytest.raises(HealthCheckError, match="unsupported PersistentVolumeClaim GVK"):
        get_pvc_health(pvc)


def _apiservice(version, status=None):
    obj = {
        "apiVersion": f"apiregistration.k8s.io/{version}",
        "kind": "APIService",
        "metadata": {"name": "v1beta1.metrics.k8s.io"},
    }
    if status is not None:
        obj["status"] = {
            "conditions": [
                {
                    "type": "Available",
                    "status": status,
                    "reason": "Passed",
                    "message": "all checks passed",
                }
            ]
        }
    return obj


@pytest.mark.parametrize("version", ["v1", "v1beta1"])
def test_apiservice_true_is_healthy(version):
    health = get_apiservice_health(_apiservice(version, "True"))
    assert health.status == HealthStatusCode.HEALTHY
    assert health.message == "Passed: all checks passed"


@pytest.mark.parametrize("version", ["v1", "v1beta1"])
def test_apiservice_false_is_progressing(version):
    health = get_apiservice_health(_apiservice(version, "False"))
    assert health.status == HealthStatusCode.PROGRESSING
    assert health.message == "Passed: all checks passed"


def test_apiservice_without_conditions():
    health = get_apiservice_health(_apiservice("v1"))
    assert health.status == HealthStatusCode.PROGRESSING
    assert health.message == "Waiting to be processed"


def test_apiservice_unsupported_version():
    with pytest.raises(HealthCheckError, match="unsupported APIService GVK"):
        get_apiservice_health(_apiservice("v2"))


def test_argo_workflow_running():
    workflow = {
        "spec": {
            "entrypoint": "sampleEntryPoint",
            "extraneousKey": "we are agnostic to extraneous keys",
        },
        "status": {"phase": "Running", "message": "This node is running"},
    }
    health = get_argo_workflow_health(workflow)
    assert health.status == HealthStatusCode.PROGRESSING
    assert health.message == "This node is running"


def test_argo_workflow_succeeded():
    workflow = {
        "spec": {
            "entrypoint": "sampleEntryPoint",
            "extraneousKey": "we are agnostic to extraneous keys",
        },
        "status": {"phase": "Succeeded", "message": "This node is has succeeded"},
    }
    health = get_argo_workflow_health(workflow)
    assert health.status == HealthStatusCode.HEALTHY
    assert health.message == "This node is has succeeded"


def test_argo_workflow_without_status():
    workflow = {
        "spec": {
            "entrypoint": "sampleEntryPoint",
            "extraneousKey": "we are agnostic to extraneous keys",
        },
    }
    health = get_argo_workflow_health(workflow)
    assert health.status == HealthStatusCode.PROGRESSING
    assert health.message == ""


@pytest.mark.parametrize(
    "phase, expected",
    [
        ("Failed", HealthStatusCode.DEGRADED),
        ("Error", HealthStatusCode.DEGRADED),
        ("Pending", HealthStatusCode.PROGRESSING),
        ("Skipped", HealthStatusCode.UNKNOWN),
    ],
)
def test_argo_workflow_phases(phase, expected):
    assert get_argo_workflow_health({"status": {"phase": phase}}).status == expected


def test_argo_workflow_malformed_phase():
    with pytest.raises(HealthCheckError):
        get_argo_workflow_health({"status": {"phase": 3}})