"""Conflict-safe mutation of node labels, taints and annotations."""

import random
import time
from collections.abc import Callable

from pool_controller.config import Backoff
from pool_controller.constants import DESIRED_CONFIG_ANNOTATION
from pool_controller.exceptions import (
    ConflictError,
    ConflictExhaustedError,
    MutationFailedError,
    PoolControllerError,
)
from pool_controller.logging_config import get_logger
from pool_controller.models.configuration import Configuration, LabelDirective, TaintDirective
from pool_controller.models.node import Node
from pool_controller.patch import create_two_way_merge_patch

logger = get_logger(__name__)


def retry_on_conflict(
    backoff: Backoff,
    fn: Callable[[int], bool],
    sleep: Callable[[float], None] = time.sleep,
    rng: Callable[[], float] = random.random,
) -> bool:
    """Run ``fn`` until it stops failing with a conflict.

    ``fn`` receives the attempt number so the first attempt can work from a
    cached object and later ones re-read it. Errors other than ConflictError
    propagate immediately.

    Raises:
        ConflictExhaustedError: If every attempt ended in a conflict
    """
    delay = backoff.duration
    last_error = None

    for attempt in range(backoff.steps):
        if attempt:
            jittered = delay
            if backoff.jitter > 0:
                jittered = delay + delay * backoff.jitter * rng()
            sleep(jittered)
            delay *= backoff.factor
        try:
            return fn(attempt)
        except ConflictError as e:
            logger.debug(f"Conflict on attempt {attempt + 1}/{backoff.steps}: {e.message}")
            last_error = e

    raise ConflictExhaustedError(
        f"gave up after {backoff.steps} conflicting update attempts",
        last_error.message if last_error else None,
    ) from last_error


def update_labels(node: Node, directives: list[LabelDirective]) -> Node:
    for directive in directives:
        for label, value in directive.labels.items():
            if directive.exist:
                node.labels[label] = value
            else:
                node.labels.pop(label, None)
    return node


def find_taint(node: Node, key: str) -> int | None:
    for i, taint in enumerate(node.taints):
        if taint.key == key:
            return i
    return None


def update_taints(node: Node, directives: list[TaintDirective]) -> Node:
    """Apply taint directives, matching existing taints by key.

    Only the last directive for a key takes effect, so a key removed and then
    re-added keeps its position instead of moving to the end on every pass.
    """
    final: dict[str, TaintDirective] = {}
    for directive in directives:
        final[directive.taint.key] = directive

    for directive in final.values():
        index = find_taint(node, directive.taint.key)
        if directive.exist:
            if index is None:
                node.taints.append(directive.taint.model_copy())
            else:
                # Overwrite rather than compare value and effect
                node.taints[index] = directive.taint.model_copy()
        elif index is not None:
            del node.taints[index]
    return node


class NodeMutator:
    """Applies label, taint and desired-configuration changes to nodes.

    Every change is computed on a private copy, diffed against the observed
    node and sent as a patch carrying the observed resource version. An empty
    diff sends nothing.
    """

    def __init__(
        self,
        client,
        backoff: Backoff | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[], float] = random.random,
    ):
        """Initialize the mutator.

        Args:
            client: Node client providing ``get_node`` and ``patch_node``
            backoff: Conflict retry policy
            sleep: Sleep function used between retries
            rng: Jitter source returning floats in [0, 1)
        """
        self.client = client
        self.backoff = backoff or Backoff()
        self.sleep = sleep
        self.rng = rng

    def converge_labels_and_taints(self, node: Node, configuration: Configuration) -> bool:
        """Make a node's labels and taints match a configuration.

        Args:
            node: Observed node; used for the first attempt, re-read on conflict
            configuration: Configuration declaring the labels and taints

        Returns:
            True if a patch was submitted, False if the node already matched

        Raises:
            MutationFailedError: If the node could not be read or patched
            ConflictExhaustedError: If conflict retries ran out
        """

        def attempt(n: int) -> bool:
            current = node if n == 0 else self.client.get_node(node.name)
            desired = current.model_copy(deep=True)
            desired = update_labels(desired, configuration.labels)
            desired = update_taints(desired, configuration.taints)
            if desired == current:
                return False
            self._submit(current, desired)
            return True

        return self._run(node.name, attempt)

    def set_desired_configuration(self, node_name: str, target: str) -> bool:
        """Signal the node agent to move a node to ``target``.

        Returns:
            True if a patch was submitted, False if already set

        Raises:
            MutationFailedError: If the node could not be read or patched
            ConflictExhaustedError: If conflict retries ran out
        """
        logger.info(f"Setting node {node_name} to desired config {target}")

        def attempt(n: int) -> bool:
            current = self.client.get_node(node_name)
            if current.desired_config == target:
                return False
            desired = current.model_copy(deep=True)
            desired.annotations[DESIRED_CONFIG_ANNOTATION] = target
            self._submit(current, desired)
            return True

        return self._run(node_name, attempt)

    def _run(self, node_name: str, fn: Callable[[int], bool]) -> bool:
        try:
            return retry_on_conflict(self.backoff, fn, self.sleep, self.rng)
        except ConflictExhaustedError as e:
            logger.error(f"Failed to update node {node_name}: {e.message}")
            raise
        except PoolControllerError as e:
            raise MutationFailedError(
                f"failed to update node {node_name}: {e.message}", e.details
            ) from e

    def _submit(self, current: Node, desired: Node) -> None:
        patch = create_two_way_merge_patch(current.to_patch_body(), desired.to_patch_body())
        if current.resource_version:
            patch.setdefault("metadata", {})["resourceVersion"] = current.resource_version
        logger.debug(f"Patching node {current.name}: {patch}")
        self.client.patch_node(current.name, patch)
