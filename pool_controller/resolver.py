"""Pool membership resolution.

A node may be matched by several pool selectors. Resolution picks exactly one
owning pool (or none), with these rules applied in order:

1. More than one matching custom pool is ambiguous.
2. A custom pool together with the master pool is ambiguous; masters may not
   carry a custom role.
3. A single custom pool owns the node.
4. The master pool owns the node, even when the worker pool also matches
   (combined master/worker and single-node deployments).
5. Otherwise the worker pool owns the node, if it matches.
"""

from pool_controller.constants import MASTER_POOL, WORKER_POOL
from pool_controller.exceptions import AmbiguousAssignmentError
from pool_controller.logging_config import get_logger
from pool_controller.models.node import Node
from pool_controller.models.pool import Pool
from pool_controller.selectors import compile_selector

logger = get_logger(__name__)


class PoolResolver:
    """Determines which pool owns a node."""

    def resolve(self, node: Node, pools: list[Pool]) -> Pool | None:
        """Choose the pool that owns a node.

        Args:
            node: Node to place
            pools: All known pools

        Returns:
            The owning pool, or None if no pool manages this node

        Raises:
            AmbiguousAssignmentError: If the node matches an incompatible set of pools
            InvalidSelectorError: If a pool selector cannot be compiled
        """
        master = None
        worker = None
        custom = []

        for pool in pools:
            selector = compile_selector(pool.node_selector)
            # A missing or empty selector matches nothing here, not everything
            if selector.empty() or not selector.matches(node.labels):
                continue

            if pool.name == MASTER_POOL:
                master = pool
            elif pool.name == WORKER_POOL:
                worker = pool
            else:
                custom.append(pool)

        if len(custom) > 1:
            names = [p.name for p in custom]
            raise AmbiguousAssignmentError(
                f"node {node.name} belongs to {len(custom)} custom roles, "
                "cannot proceed with this node",
                node_name=node.name,
                pool_names=names,
                details=f"Matching custom pools: {', '.join(names)}",
            )
        if len(custom) == 1:
            if master is not None:
                raise AmbiguousAssignmentError(
                    f"node {node.name} has both master role and custom role {custom[0].name}",
                    node_name=node.name,
                    pool_names=[master.name, custom[0].name],
                )
            return custom[0]
        if master is not None:
            return master
        return worker

    def nodes_for_pool(self, pool: Pool, nodes: list[Node], pools: list[Pool]) -> list[Node]:
        """Return the nodes a pool actually owns, in the order given.

        Nodes selected by the pool but owned by another pool are left out.
        Ambiguous nodes are skipped while the rest of the list is built, then
        reported together so the whole pass can be retried.

        Raises:
            AmbiguousAssignmentError: If any selected node could not be assigned
            InvalidSelectorError: If a pool selector cannot be compiled
        """
        selector = compile_selector(pool.node_selector)

        members = []
        ambiguous = []
        for node in nodes:
            if not selector.matches(node.labels):
                continue
            try:
                owner = self.resolve(node, pools)
            except AmbiguousAssignmentError as e:
                logger.warning(f"Can't get pool for node {node.name!r}: {e.message}")
                ambiguous.append(e)
                continue
            if owner is None or owner.name != pool.name:
                continue
            members.append(node)

        if ambiguous:
            first = ambiguous[0]
            raise AmbiguousAssignmentError(
                f"pool {pool.name}: {len(ambiguous)} selected node(s) cannot be assigned "
                "to a single pool",
                node_name=first.node_name,
                pool_names=first.pool_names,
                details="; ".join(e.message for e in ambiguous),
            )
        return members
