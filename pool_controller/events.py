"""Watch events and the rules deciding which ones schedule a reconciliation."""

from collections.abc import Callable
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from pool_controller.constants import TRACKED_ANNOTATIONS
from pool_controller.exceptions import PoolControllerError
from pool_controller.logging_config import get_logger
from pool_controller.models.node import Node
from pool_controller.models.pool import Pool
from pool_controller.node_state import check_node_ready, is_node_done, is_node_managed
from pool_controller.resolver import PoolResolver

logger = get_logger(__name__)


class PoolAdded(BaseModel):
    kind: Literal["PoolAdded"] = "PoolAdded"
    pool: Pool


class PoolUpdated(BaseModel):
    kind: Literal["PoolUpdated"] = "PoolUpdated"
    old: Pool
    new: Pool


class PoolDeleted(BaseModel):
    kind: Literal["PoolDeleted"] = "PoolDeleted"
    pool: Pool


class NodeAdded(BaseModel):
    kind: Literal["NodeAdded"] = "NodeAdded"
    node: Node


class NodeUpdated(BaseModel):
    kind: Literal["NodeUpdated"] = "NodeUpdated"
    old: Node
    new: Node


class NodeDeleted(BaseModel):
    """Carries the last known state of the node."""

    kind: Literal["NodeDeleted"] = "NodeDeleted"
    node: Node


Event = Annotated[
    Union[PoolAdded, PoolUpdated, PoolDeleted, NodeAdded, NodeUpdated, NodeDeleted],
    Field(discriminator="kind"),
]

_event_adapter = TypeAdapter(Event)


def parse_event(data: dict) -> Event:
    """Parse an event from its ``kind``-tagged dictionary form."""
    return _event_adapter.validate_python(data)


def node_changes(pool: Pool, old: Node, new: Node) -> list[str]:
    """Describe the tracked changes between two snapshots of a node.

    Tracked changes are readiness transitions, completion of an update, and
    changes to the current, desired or update-state annotations.
    """
    changes = []

    old_ready = check_node_ready(old) or ""
    new_ready = check_node_ready(new) or ""
    if old_ready != new_ready:
        if new_ready:
            changes.append(f"Pool {pool.name}: node {new.name} is now reporting unready: {new_ready}")
        else:
            changes.append(f"Pool {pool.name}: node {new.name} is now reporting ready")

    if old.current_config != old.desired_config and is_node_done(new):
        changes.append(
            f"Pool {pool.name}: node {new.name} has completed update to {new.desired_config}"
        )
    else:
        for annotation in TRACKED_ANNOTATIONS:
            value = new.annotations.get(annotation, "")
            if old.annotations.get(annotation, "") != value:
                changes.append(f"Pool {pool.name}: node {new.name} changed {annotation} = {value}")

    return changes


class EventTriggers:
    """Turns watch events into pool enqueues."""

    def __init__(self, lister, resolver: PoolResolver, enqueue: Callable[[Pool], None]):
        """Initialize the triggers.

        Args:
            lister: Source of the current pool list
            resolver: Resolver used to find a node's pool
            enqueue: Called with each pool that needs reconciling
        """
        self.lister = lister
        self.resolver = resolver
        self.enqueue = enqueue
        self._handlers = {
            "PoolAdded": self.on_pool_added,
            "PoolUpdated": self.on_pool_updated,
            "PoolDeleted": self.on_pool_deleted,
            "NodeAdded": self.on_node_added,
            "NodeUpdated": self.on_node_updated,
            "NodeDeleted": self.on_node_deleted,
        }

    def dispatch(self, event: Event) -> None:
        self._handlers[event.kind](event)

    def on_pool_added(self, event: PoolAdded) -> None:
        logger.debug(f"Adding pool {event.pool.name}")
        self.enqueue(event.pool)

    def on_pool_updated(self, event: PoolUpdated) -> None:
        logger.debug(f"Updating pool {event.old.name}")
        self.enqueue(event.new)

    def on_pool_deleted(self, event: PoolDeleted) -> None:
        # TODO: add finalization once pools carry a finalizer for their nodes
        logger.info(f"Deleting pool {event.pool.name}")

    def on_node_added(self, event: NodeAdded) -> None:
        node = event.node
        if node.deletion_timestamp is not None:
            self.on_node_deleted(NodeDeleted(node=node))
            return

        pool = self._pool_for_node(node)
        if pool is None:
            return
        logger.debug(f"Node {node.name} added")
        self.enqueue(pool)

    def on_node_updated(self, event: NodeUpdated) -> None:
        old, new = event.old, event.new
        if not is_node_managed(new):
            return

        pool = self._pool_for_node(new)
        if pool is None:
            return
        logger.debug(f"Node {new.name} updated")

        changes = node_changes(pool, old, new)
        if not changes:
            return
        for change in changes:
            logger.info(change)
        self.enqueue(pool)

    def on_node_deleted(self, event: NodeDeleted) -> None:
        node = event.node
        pool = self._pool_for_node(node)
        if pool is None:
            return
        logger.debug(f"Node {node.name} deleted")
        self.enqueue(pool)

    def _pool_for_node(self, node: Node) -> Pool | None:
        try:
            return self.resolver.resolve(node, self.lister.list_pools())
        except PoolControllerError as e:
            logger.error(f"Error finding pool for node {node.name}: {e.message}")
            return None
