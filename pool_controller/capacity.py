"""Disruption budget computation."""

import math

from pool_controller.constants import MASTER_POOL
from pool_controller.exceptions import InvalidBudgetError
from pool_controller.logging_config import get_logger
from pool_controller.models.node import Node
from pool_controller.models.pool import Pool

logger = get_logger(__name__)

DEFAULT_MAX_UNAVAILABLE = 1


def value_from_int_or_percent(value: int | str, total: int, round_up: bool = False) -> int:
    """Resolve an absolute count or a ``"N%"`` string against a total.

    Args:
        value: Integer count or percentage string
        total: Count the percentage applies to
        round_up: Round fractional results up instead of down

    Returns:
        Resolved absolute value

    Raises:
        InvalidBudgetError: If the value is neither a non-negative integer
            nor a percentage string
    """
    if isinstance(value, bool):
        raise InvalidBudgetError(f"invalid value for IntOrString: {value!r}")

    if isinstance(value, int):
        if value < 0:
            raise InvalidBudgetError(f"invalid value {value}: must not be negative")
        return value

    if isinstance(value, str):
        if not value.endswith("%"):
            raise InvalidBudgetError(
                f"invalid value for IntOrString: invalid type: string is not a percentage: {value!r}",
                "Use an integer count or a percentage such as '10%'",
            )
        try:
            percent = int(value[:-1])
        except ValueError:
            raise InvalidBudgetError(f"invalid value for IntOrString: {value!r}")
        if percent < 0:
            raise InvalidBudgetError(f"invalid value {value!r}: must not be negative")
        if round_up:
            return math.ceil(percent * total / 100)
        return percent * total // 100

    raise InvalidBudgetError(f"invalid type for IntOrString: {type(value).__name__}")


def quorum_tolerance(member_count: int) -> int:
    """Members that may be lost while a majority remains."""
    return member_count - (member_count // 2 + 1)


class CapacityPlanner:
    """Computes how many pool members may be unavailable at once."""

    def compute_budget(self, pool: Pool, members: list[Node]) -> int:
        """Compute the maximum number of simultaneously unavailable members.

        An unset budget defaults to 1 and a budget resolving to 0 is raised to
        1. For the master pool the result is clamped to the quorum tolerance.

        Raises:
            InvalidBudgetError: If the configured budget is malformed
        """
        configured = pool.max_unavailable
        if configured is None:
            configured = DEFAULT_MAX_UNAVAILABLE

        max_unavailable = value_from_int_or_percent(configured, len(members))
        if max_unavailable == 0:
            max_unavailable = 1

        if pool.name == MASTER_POOL:
            tolerance = quorum_tolerance(len(members))
            if max_unavailable > tolerance:
                logger.warning(
                    f"Refusing to honor master pool maxUnavailable {max_unavailable} "
                    f"to prevent losing etcd quorum, using {tolerance} instead"
                )
                return tolerance

        return max_unavailable
