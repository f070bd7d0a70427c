"""Predicates over the update state a node agent reports through annotations."""

from pool_controller.constants import FAILING_STATES, STATE_DONE, STATE_WORKING
from pool_controller.models.node import Node


def is_node_managed(node: Node) -> bool:
    """A node is managed once its agent has reported a current configuration."""
    return bool(node.current_config)


def is_node_done(node: Node) -> bool:
    """The agent finished applying the desired configuration."""
    if not node.current_config or not node.desired_config:
        return False
    return node.current_config == node.desired_config and node.update_state == STATE_DONE


def is_node_done_at(node: Node, configuration: str) -> bool:
    return is_node_done(node) and node.current_config == configuration


def is_node_failing(node: Node) -> bool:
    """The agent reported a persistent failure."""
    return node.update_state in FAILING_STATES


def check_node_ready(node: Node) -> str | None:
    """Return why a node cannot take workloads, or None if it is ready."""
    for cond in node.conditions:
        if cond.type == "Ready" and cond.status != "True":
            return f"node {node.name} is reporting NotReady={cond.status}"
        if cond.type == "DiskPressure" and cond.status != "False":
            return f"node {node.name} is reporting DiskPressure={cond.status}"
        if cond.type == "NetworkUnavailable" and cond.status != "False":
            return f"node {node.name} is reporting NetworkUnavailable={cond.status}"
    if node.unschedulable:
        return f"node {node.name} is reporting Unschedulable"
    return None


def is_node_unavailable(node: Node) -> bool:
    """A node is unavailable while its agent is working or it is not ready.

    Nodes that have never been assigned a desired configuration are not
    counted, since no update has started on them.
    """
    if not node.current_config or not node.desired_config:
        return False
    if node.current_config != node.desired_config:
        return True
    if node.update_state == STATE_WORKING:
        return True
    return check_node_ready(node) is not None


def get_unavailable_nodes(nodes: list[Node]) -> list[Node]:
    return [n for n in nodes if is_node_unavailable(n)]


def get_updated_nodes(configuration: str, nodes: list[Node]) -> list[Node]:
    return [n for n in nodes if is_node_done_at(n, configuration)]


def get_ready_nodes(configuration: str, nodes: list[Node]) -> list[Node]:
    return [
        n for n in get_updated_nodes(configuration, nodes) if check_node_ready(n) is None
    ]


def get_degraded_nodes(nodes: list[Node]) -> list[Node]:
    return [n for n in nodes if is_node_failing(n)]
