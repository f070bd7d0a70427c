"""Selection of nodes allowed to start updating."""

from pool_controller.models.node import Node
from pool_controller.models.pool import Pool
from pool_controller.node_state import get_unavailable_nodes, is_node_failing


class CandidateSelector:
    """Picks the out-of-date nodes that fit in the remaining disruption budget."""

    def select(self, pool: Pool, members: list[Node], budget: int) -> list[Node]:
        """Select nodes to move to the pool's target configuration.

        Candidates keep the order of ``members``, so repeated calls over the
        same member list return the same nodes.

        Args:
            pool: Pool being rolled out
            members: Nodes owned by the pool
            budget: Maximum simultaneously unavailable nodes

        Returns:
            Nodes to signal in this pass, possibly empty
        """
        target = pool.configuration

        unavailable = get_unavailable_nodes(members)
        if len(unavailable) >= budget:
            return []
        capacity = budget - len(unavailable)

        failing_this_config = 0
        candidates = []
        for node in members:
            if node.desired_config == target:
                if is_node_failing(node):
                    failing_this_config += 1
                continue
            candidates.append(node)

        # A node stuck on the target holds a slot; if it recovers we must not
        # have started more updates than the budget allows.
        if failing_this_config >= capacity:
            return []
        capacity -= failing_this_config

        return candidates[:capacity]
