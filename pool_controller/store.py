"""In-memory snapshot of pools, nodes and configurations.

``SnapshotStore`` serves both roles the controller needs from the outside
world: the read-only lister (pools, nodes by selector, configurations) and the
node client (get and patch nodes, write pool status, record events). It backs
the ``plan`` and ``simulate`` commands and the test suite.
"""

import itertools
import threading
from pathlib import Path

import yaml
from pydantic import BaseModel

from pool_controller.exceptions import ConflictError, NotFoundError
from pool_controller.logging_config import get_logger
from pool_controller.models.configuration import Configuration
from pool_controller.models.node import Node
from pool_controller.models.pool import Pool, PoolStatus
from pool_controller.patch import apply_merge_patch
from pool_controller.selectors import Selector

logger = get_logger(__name__)


class RecordedEvent(BaseModel):
    """An event recorded against a pool."""

    pool: str
    type: str  # Normal, Warning
    reason: str
    message: str


class NodePatch(BaseModel):
    """A patch submitted against a node."""

    node: str
    patch: dict


class SnapshotStore:
    """Thread-safe in-memory lister and node client."""

    def __init__(
        self,
        pools: list[Pool] | None = None,
        nodes: list[Node] | None = None,
        configurations: list[Configuration] | None = None,
    ):
        self._lock = threading.RLock()
        self._versions = itertools.count(1)
        self._pools: dict[str, Pool] = {}
        self._nodes: dict[str, Node] = {}
        self._configurations: dict[str, Configuration] = {}
        self.patches: list[NodePatch] = []
        self.events: list[RecordedEvent] = []
        self.status_updates: list[tuple[str, PoolStatus]] = []

        for pool in pools or []:
            self.upsert_pool(pool)
        for node in nodes or []:
            self.upsert_node(node)
        for configuration in configurations or []:
            self.upsert_configuration(configuration)

    # Lister

    def list_pools(self) -> list[Pool]:
        with self._lock:
            return list(self._pools.values())

    def get_pool(self, name: str) -> Pool:
        with self._lock:
            try:
                return self._pools[name]
            except KeyError:
                raise NotFoundError(f"pool {name} not found")

    def list_nodes(self, selector: Selector | None = None) -> list[Node]:
        """List nodes in insertion order, optionally filtered by a selector."""
        with self._lock:
            nodes = list(self._nodes.values())
        if selector is None:
            return nodes
        return [n for n in nodes if selector.matches(n.labels)]

    def get_configuration(self, name: str) -> Configuration:
        with self._lock:
            try:
                return self._configurations[name]
            except KeyError:
                raise NotFoundError(f"configuration {name} not found")

    # Cache maintenance

    def upsert_pool(self, pool: Pool) -> None:
        with self._lock:
            self._pools[pool.name] = pool

    def delete_pool(self, name: str) -> None:
        with self._lock:
            self._pools.pop(name, None)

    def upsert_node(self, node: Node) -> None:
        with self._lock:
            if node.resource_version is None:
                node = node.model_copy(update={"resource_version": str(next(self._versions))})
            self._nodes[node.name] = node

    def delete_node(self, name: str) -> None:
        with self._lock:
            self._nodes.pop(name, None)

    def upsert_configuration(self, configuration: Configuration) -> None:
        with self._lock:
            self._configurations[configuration.name] = configuration

    # Node client

    def get_node(self, name: str) -> Node:
        with self._lock:
            try:
                return self._nodes[name].model_copy(deep=True)
            except KeyError:
                raise NotFoundError(f"node {name} not found")

    def patch_node(self, name: str, patch: dict) -> Node:
        """Apply a merge patch to a node.

        Raises:
            NotFoundError: If the node does not exist
            ConflictError: If the patch carries a stale resource version
        """
        with self._lock:
            if name not in self._nodes:
                raise NotFoundError(f"node {name} not found")
            current = self._nodes[name]

            body = dict(patch)
            metadata = dict(body.get("metadata") or {})
            expected = metadata.pop("resourceVersion", None)
            if expected is not None and expected != current.resource_version:
                raise ConflictError(
                    f"Operation cannot be fulfilled on nodes {name!r}: "
                    "the object has been modified; please apply your changes to the latest version"
                )
            if "metadata" in body:
                body["metadata"] = metadata

            updated = Node.from_dict(apply_merge_patch(current.to_dict(), body))
            updated = updated.model_copy(update={"resource_version": str(next(self._versions))})
            self._nodes[name] = updated
            self.patches.append(NodePatch(node=name, patch=patch))
            return updated.model_copy(deep=True)

    def update_pool_status(self, name: str, status: PoolStatus) -> None:
        with self._lock:
            if name not in self._pools:
                raise NotFoundError(f"pool {name} not found")
            self._pools[name] = self._pools[name].model_copy(update={"status": status})
            self.status_updates.append((name, status))

    def record_event(self, pool: Pool, event_type: str, reason: str, message: str) -> None:
        logger.debug(f"Event {event_type} {reason} on pool {pool.name}: {message}")
        with self._lock:
            self.events.append(
                RecordedEvent(pool=pool.name, type=event_type, reason=reason, message=message)
            )

    # Loading

    @classmethod
    def from_dict(cls, data: dict) -> "SnapshotStore":
        """Build a store from ``pools``, ``nodes`` and ``configurations`` lists."""
        return cls(
            pools=[Pool.from_dict(p) for p in data.get("pools") or []],
            nodes=[Node.from_dict(n) for n in data.get("nodes") or []],
            configurations=[Configuration.from_dict(c) for c in data.get("configurations") or []],
        )

    @classmethod
    def load(cls, path: str | Path) -> "SnapshotStore":
        """Load a snapshot from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)
