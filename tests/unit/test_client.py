"""Unit tests for the Kubernetes-backed client."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from pool_controller.client import KubernetesClient, translate_api_exception
from pool_controller.exceptions import ConflictError, KubernetesError, NotFoundError
from pool_controller.models import PoolStatus


@pytest.fixture
def apis():
    core_api = MagicMock()
    custom_api = MagicMock()
    return core_api, custom_api, KubernetesClient(core_api, custom_api, event_namespace="pools")


def _v1_node(name="worker-0"):
    return client.V1Node(
        metadata=client.V1ObjectMeta(
            name=name,
            labels={"node-role/worker": ""},
            annotations={"machineconfiguration.openshift.io/currentConfig": "c1"},
            resource_version="7",
        ),
        spec=client.V1NodeSpec(taints=[client.V1Taint(key="dedicated", effect="NoSchedule")]),
        status=client.V1NodeStatus(conditions=[client.V1NodeCondition(type="Ready", status="True")]),
    )


@pytest.mark.parametrize(
    "status,error_type",
    [(404, NotFoundError), (409, ConflictError), (500, KubernetesError), (403, KubernetesError)],
)
def test_translate_api_exception(status, error_type):
    error = translate_api_exception(ApiException(status=status, reason="reason"), "node n0")

    assert type(error) is error_type
    assert "node n0" in error.message


def test_get_node(apis):
    core_api, _, kube = apis
    core_api.read_node.return_value = _v1_node()

    node = kube.get_node("worker-0")

    core_api.read_node.assert_called_once_with("worker-0")
    assert node.current_config == "c1"
    assert node.resource_version == "7"
    assert node.taints[0].key == "dedicated"
    assert node.conditions[0].type == "Ready"


def test_get_missing_node(apis):
    core_api, _, kube = apis
    core_api.read_node.side_effect = ApiException(status=404, reason="Not Found")

    with pytest.raises(NotFoundError):
        kube.get_node("ghost")


def test_patch_conflict_is_translated(apis):
    core_api, _, kube = apis
    core_api.patch_node.side_effect = ApiException(status=409, reason="Conflict")

    with pytest.raises(ConflictError):
        kube.patch_node("worker-0", {"metadata": {"resourceVersion": "6"}})


def test_list_nodes(apis):
    core_api, _, kube = apis
    core_api.list_node.return_value = client.V1NodeList(items=[_v1_node("a"), _v1_node("b")])

    assert [n.name for n in kube.list_nodes()] == ["a", "b"]


def test_list_pools_and_configurations(apis):
    _, custom_api, kube = apis
    custom_api.list_cluster_custom_object.side_effect = [
        {"items": [{"metadata": {"name": "worker"}, "spec": {"configuration": {"name": "c2"}}}]},
        {"items": [{"metadata": {"name": "c2"}, "spec": {}}]},
    ]

    pools = kube.list_pools()
    configurations = kube.list_configurations()

    assert pools[0].configuration == "c2"
    assert configurations[0].name == "c2"
    first_call = custom_api.list_cluster_custom_object.call_args_list[0]
    assert first_call[0] == ("machineconfiguration.openshift.io", "v1", "machineconfigpools")


def test_update_pool_status(apis):
    _, custom_api, kube = apis

    kube.update_pool_status("worker", PoolStatus(configuration="c2", machine_count=3))

    args = custom_api.patch_cluster_custom_object_status.call_args[0]
    assert args[3] == "worker"
    assert args[4]["status"]["machineCount"] == 3


def test_record_event(apis, make_pool):
    core_api, _, kube = apis

    kube.record_event(make_pool("worker"), "Warning", "SelectingAll", "selects all nodes")

    namespace, event = core_api.create_namespaced_event.call_args[0]
    assert namespace == "pools"
    assert event.involved_object.name == "worker"
    assert event.involved_object.kind == "MachineConfigPool"
    assert event.reason == "SelectingAll"
    assert event.type == "Warning"


def test_record_event_failure_is_not_raised(apis, make_pool):
    core_api, _, kube = apis
    core_api.create_namespaced_event.side_effect = ApiException(status=500, reason="boom")

    kube.record_event(make_pool("worker"), "Warning", "SelectingAll", "selects all nodes")


def test_from_kubeconfig_failure():
    with patch("pool_controller.client.config.load_kube_config", side_effect=Exception("no config")):
        with pytest.raises(KubernetesError) as exc_info:
            KubernetesClient.from_kubeconfig("/nonexistent/config")

    assert "Failed to load kubeconfig" in exc_info.value.message
