"""Pool status summarization."""

from pool_controller.models.node import Node
from pool_controller.models.pool import Pool, PoolCondition, PoolStatus
from pool_controller.node_state import (
    get_degraded_nodes,
    get_ready_nodes,
    get_unavailable_nodes,
    get_updated_nodes,
)

CONDITION_UPDATED = "Updated"
CONDITION_UPDATING = "Updating"
CONDITION_DEGRADED = "Degraded"


def calculate_status(pool: Pool, members: list[Node]) -> PoolStatus:
    """Summarize the rollout state of a pool's members.

    The reported configuration only advances once every member is updated,
    ready and available on the pool's target.
    """
    target = pool.configuration
    machine_count = len(members)
    updated = len(get_updated_nodes(target, members))
    ready = len(get_ready_nodes(target, members))
    unavailable = len(get_unavailable_nodes(members))
    degraded = len(get_degraded_nodes(members))

    all_updated = (
        bool(target)
        and updated == machine_count
        and ready == machine_count
        and unavailable == 0
    )

    configuration = target if all_updated else pool.status.configuration

    if all_updated:
        updated_condition = PoolCondition(
            type=CONDITION_UPDATED,
            status="True",
            message=f"All nodes are updated with {target}",
        )
        updating_condition = PoolCondition(type=CONDITION_UPDATING, status="False")
    else:
        updated_condition = PoolCondition(type=CONDITION_UPDATED, status="False")
        updating_condition = PoolCondition(
            type=CONDITION_UPDATING,
            status="True",
            message=f"{updated} of {machine_count} nodes updated to {target}",
        )

    if degraded:
        degraded_condition = PoolCondition(
            type=CONDITION_DEGRADED,
            status="True",
            reason="NodeDegraded",
            message=f"{degraded} nodes are reporting degraded status on update",
        )
    else:
        degraded_condition = PoolCondition(type=CONDITION_DEGRADED, status="False")

    return PoolStatus(
        configuration=configuration,
        machine_count=machine_count,
        updated_machine_count=updated,
        ready_machine_count=ready,
        unavailable_machine_count=unavailable,
        degraded_machine_count=degraded,
        conditions=[updated_condition, updating_condition, degraded_condition],
    )
