"""Pool rollout controller.

Assigns nodes to configuration pools and drives a rolling rollout of each pool's
target configuration within a disruption budget.
"""

__version__ = "0.1.0"
