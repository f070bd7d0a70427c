"""Kubernetes API access for nodes, pools and configurations."""

from datetime import datetime, timezone

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from pool_controller.constants import (
    CONFIGURATION_PLURAL,
    CRD_API_VERSION,
    CRD_GROUP,
    CRD_VERSION,
    EVENT_SOURCE_COMPONENT,
    POOL_KIND,
    POOL_PLURAL,
)
from pool_controller.exceptions import ConflictError, KubernetesError, NotFoundError
from pool_controller.logging_config import get_logger
from pool_controller.models.configuration import Configuration
from pool_controller.models.node import Node
from pool_controller.models.pool import Pool, PoolStatus

logger = get_logger(__name__)


def translate_api_exception(e: ApiException, what: str) -> KubernetesError:
    """Map an API failure onto the controller's error taxonomy."""
    if e.status == 404:
        return NotFoundError(f"{what} not found")
    if e.status == 409:
        return ConflictError(f"conflict updating {what}", e.reason)
    return KubernetesError(f"API request for {what} failed with status {e.status}", e.reason)


class KubernetesClient:
    """Node client and lister backed by the Kubernetes API."""

    def __init__(
        self,
        core_api: client.CoreV1Api,
        custom_api: client.CustomObjectsApi,
        event_namespace: str = "default",
    ):
        self.core_api = core_api
        self.custom_api = custom_api
        self.event_namespace = event_namespace
        self._serializer = client.ApiClient()

    @classmethod
    def from_kubeconfig(
        cls, kubeconfig: str | None = None, event_namespace: str = "default"
    ) -> "KubernetesClient":
        """Create a client from a kubeconfig file.

        Raises:
            KubernetesError: If the kubeconfig cannot be loaded
        """
        try:
            config.load_kube_config(config_file=kubeconfig)
        except Exception as e:
            raise KubernetesError(
                f"Failed to load kubeconfig: {e}",
                "Check that the kubeconfig exists and points at a reachable cluster",
            )
        return cls(client.CoreV1Api(), client.CustomObjectsApi(), event_namespace)

    def _to_dict(self, obj) -> dict:
        return self._serializer.sanitize_for_serialization(obj)

    def get_node(self, name: str) -> Node:
        try:
            obj = self.core_api.read_node(name)
        except ApiException as e:
            raise translate_api_exception(e, f"node {name}")
        return Node.from_dict(self._to_dict(obj))

    def patch_node(self, name: str, patch: dict) -> Node:
        """Submit a strategic merge patch against a node."""
        try:
            obj = self.core_api.patch_node(name, patch)
        except ApiException as e:
            raise translate_api_exception(e, f"node {name}")
        return Node.from_dict(self._to_dict(obj))

    def list_nodes(self) -> list[Node]:
        try:
            response = self.core_api.list_node()
        except ApiException as e:
            raise translate_api_exception(e, "nodes")
        return [Node.from_dict(self._to_dict(n)) for n in response.items]

    def list_pools(self) -> list[Pool]:
        try:
            response = self.custom_api.list_cluster_custom_object(CRD_GROUP, CRD_VERSION, POOL_PLURAL)
        except ApiException as e:
            raise translate_api_exception(e, "pools")
        return [Pool.from_dict(p) for p in response.get("items", [])]

    def list_configurations(self) -> list[Configuration]:
        try:
            response = self.custom_api.list_cluster_custom_object(
                CRD_GROUP, CRD_VERSION, CONFIGURATION_PLURAL
            )
        except ApiException as e:
            raise translate_api_exception(e, "configurations")
        return [Configuration.from_dict(c) for c in response.get("items", [])]

    def update_pool_status(self, name: str, status: PoolStatus) -> None:
        try:
            self.custom_api.patch_cluster_custom_object_status(
                CRD_GROUP, CRD_VERSION, POOL_PLURAL, name, {"status": status.to_dict()}
            )
        except ApiException as e:
            raise translate_api_exception(e, f"pool {name} status")
        logger.debug(f"Updated status of pool {name}")

    def record_event(self, pool: Pool, event_type: str, reason: str, message: str) -> None:
        """Record an event against a pool. Failures are logged, not raised."""
        now = datetime.now(timezone.utc)
        event = client.CoreV1Event(
            metadata=client.V1ObjectMeta(generate_name=f"{pool.name}."),
            involved_object=client.V1ObjectReference(
                api_version=CRD_API_VERSION, kind=POOL_KIND, name=pool.name
            ),
            reason=reason,
            message=message,
            type=event_type,
            source=client.V1EventSource(component=EVENT_SOURCE_COMPONENT),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        try:
            self.core_api.create_namespaced_event(self.event_namespace, event)
        except ApiException as e:
            logger.warning(f"Failed to record {reason} event for pool {pool.name}: {e.reason}")
