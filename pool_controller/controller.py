"""Pool reconciliation loop.

Workers pull pool names from a shared rate-limited queue. The queue never
hands the same pool to two workers at once, so reconciliations of one pool
run strictly in sequence while different pools proceed in parallel.

Each pass:

1. resolves the pool's members,
2. computes its disruption budget,
3. selects candidates that fit the budget,
4. converges each candidate's labels and taints and sets its desired
   configuration,
5. writes the pool status.

Paused and deleting pools only get step 5.
"""

import threading
import time
from collections.abc import Callable

from pydantic import BaseModel

from pool_controller.candidates import CandidateSelector
from pool_controller.capacity import CapacityPlanner
from pool_controller.config import ControllerSettings
from pool_controller.constants import (
    EVENT_SOURCE_COMPONENT,
    REASON_MISSING_SELECTOR,
    REASON_SELECTING_ALL,
)
from pool_controller.events import Event, EventTriggers
from pool_controller.exceptions import NotFoundError, PoolControllerError
from pool_controller.logging_config import get_logger
from pool_controller.models.node import Node
from pool_controller.models.pool import Pool
from pool_controller.mutator import NodeMutator
from pool_controller.node_state import get_unavailable_nodes, is_node_failing
from pool_controller.resolver import PoolResolver
from pool_controller.selectors import compile_selector
from pool_controller.status import calculate_status
from pool_controller.workqueue import ItemExponentialFailureRateLimiter, RateLimitingQueue

logger = get_logger(__name__)


class RolloutPlan(BaseModel):
    """What one reconciliation pass decided for a pool."""

    pool: str
    members: list[Node]
    budget: int
    unavailable: list[Node]
    failing: list[Node]
    candidates: list[Node]


class PoolController:
    """Reconciles pools by rolling their target configuration onto nodes."""

    def __init__(
        self,
        lister,
        client,
        settings: ControllerSettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the controller.

        Args:
            lister: Read access to pools, nodes and configurations
            client: Node client for reads, patches, pool status and events
            settings: Controller tunables
            sleep: Sleep function used for the unconfigured-pool pause
        """
        self.settings = settings or ControllerSettings()
        self.lister = lister
        self.client = client
        self._sleep = sleep

        self.queue = RateLimitingQueue(
            ItemExponentialFailureRateLimiter(
                self.settings.rate_limit_base_delay, self.settings.rate_limit_max_delay
            ),
            name=EVENT_SOURCE_COMPONENT,
        )
        self.resolver = PoolResolver()
        self.planner = CapacityPlanner()
        self.selector = CandidateSelector()
        self.mutator = NodeMutator(client, self.settings.node_update_backoff)
        self.triggers = EventTriggers(lister, self.resolver, self.enqueue_default)

        self._workers: list[threading.Thread] = []

    # Enqueueing

    def handle_event(self, event: Event) -> None:
        self.triggers.dispatch(event)

    def enqueue(self, pool: Pool) -> None:
        self.queue.add(pool.name)

    def enqueue_after(self, pool: Pool, after: float) -> None:
        self.queue.add_after(pool.name, after)

    def enqueue_default(self, pool: Pool) -> None:
        self.enqueue_after(pool, self.settings.update_delay)

    # Workers

    def start(self, workers: int | None = None) -> None:
        """Start worker threads."""
        count = workers or self.settings.workers
        logger.info(f"Starting pool controller with {count} workers")
        for i in range(count):
            thread = threading.Thread(target=self.worker, name=f"pool-worker-{i}", daemon=True)
            thread.start()
            self._workers.append(thread)

    def stop(self, timeout: float | None = None) -> None:
        """Shut the queue down and wait for in-flight passes to finish."""
        logger.info("Shutting down pool controller")
        self.queue.shut_down()
        for thread in self._workers:
            thread.join(timeout)
        self._workers = []

    def run(self, stop_event: threading.Event, workers: int | None = None) -> None:
        """Run workers until ``stop_event`` is set."""
        self.start(workers)
        try:
            stop_event.wait()
        finally:
            self.stop()

    def worker(self) -> None:
        while self.process_next_work_item():
            pass

    def process_next_work_item(self) -> bool:
        """Process one queued pool.

        Returns:
            False once the queue has been shut down
        """
        key, shutting_down = self.queue.get()
        if shutting_down:
            return False

        try:
            err = None
            try:
                self.sync_pool(key)
            except PoolControllerError as e:
                err = e
            except Exception as e:
                logger.error(f"Unexpected error syncing pool {key!r}: {e}", exc_info=True)
                err = e
            self.handle_err(err, key)
        finally:
            self.queue.done(key)
        return True

    def handle_err(self, err: Exception | None, key: str) -> None:
        if err is None:
            self.queue.forget(key)
            return

        if self.queue.num_requeues(key) < self.settings.max_retries:
            logger.info(f"Error syncing pool {key}: {err}")
            self.queue.add_rate_limited(key)
            return

        logger.error(f"Dropping pool {key!r} out of the queue: {err}")
        self.queue.forget(key)
        self.queue.add_after(key, self.settings.retry_cooldown)

    # Reconciliation

    def sync_pool(self, key: str) -> None:
        """Reconcile the pool with the given name.

        Not safe to call concurrently for the same key; the queue ensures it
        never is.
        """
        start_time = time.monotonic()
        logger.debug(f"Started syncing pool {key!r}")
        try:
            self._sync_pool(key)
        finally:
            logger.debug(f"Finished syncing pool {key!r} ({time.monotonic() - start_time:.3f}s)")

    def _sync_pool(self, key: str) -> None:
        try:
            cached = self.lister.get_pool(key)
        except NotFoundError:
            logger.info(f"Pool {key} has been deleted")
            return

        if not cached.configuration:
            delay = self.settings.update_delay
            logger.info(f"Pool {key} is unconfigured, pausing {delay}s for renderer to initialize")
            self._sleep(delay)
            return

        # Never mutate the lister's copy
        pool = cached.model_copy(deep=True)

        if pool.node_selector is None:
            self.client.record_event(
                pool,
                "Warning",
                REASON_MISSING_SELECTOR,
                "This pool has no node selector. A non-empty selector is required.",
            )
            return
        if pool.node_selector.is_empty():
            self.client.record_event(
                pool,
                "Warning",
                REASON_SELECTING_ALL,
                "This pool is selecting all nodes. A non-empty selector is required.",
            )
            return

        if pool.is_deleting or pool.paused:
            self.sync_status_only(pool)
            return

        plan = self.plan_pool(pool)
        if plan.candidates:
            configuration = self.lister.get_configuration(pool.configuration)
            for node in plan.candidates:
                self.mutator.converge_labels_and_taints(node, configuration)
                self.mutator.set_desired_configuration(node.name, pool.configuration)

        self.sync_status_only(pool)

    def get_nodes_for_pool(self, pool: Pool) -> list[Node]:
        selector = compile_selector(pool.node_selector)
        return self.resolver.nodes_for_pool(
            pool, self.lister.list_nodes(selector), self.lister.list_pools()
        )

    def plan_pool(self, pool: Pool) -> RolloutPlan:
        """Decide which members of a pool may start updating now."""
        members = self.get_nodes_for_pool(pool)
        budget = self.planner.compute_budget(pool, members)
        candidates = self.selector.select(pool, members, budget)
        return RolloutPlan(
            pool=pool.name,
            members=members,
            budget=budget,
            unavailable=get_unavailable_nodes(members),
            failing=[
                n for n in members
                if n.desired_config == pool.configuration and is_node_failing(n)
            ],
            candidates=candidates,
        )

    def sync_status_only(self, pool: Pool) -> None:
        """Write the pool's status if it changed."""
        members = self.get_nodes_for_pool(pool)
        status = calculate_status(pool, members)
        if status == pool.status:
            return
        self.client.update_pool_status(pool.name, status)
