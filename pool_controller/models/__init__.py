"""Data models for pools, nodes and configurations."""

from pool_controller.models.configuration import Configuration, LabelDirective, TaintDirective
from pool_controller.models.node import Node, NodeCondition, NodeTaint
from pool_controller.models.pool import (
    LabelSelector,
    LabelSelectorRequirement,
    Pool,
    PoolCondition,
    PoolStatus,
)

__all__ = [
    "Configuration",
    "LabelDirective",
    "TaintDirective",
    "Node",
    "NodeCondition",
    "NodeTaint",
    "LabelSelector",
    "LabelSelectorRequirement",
    "Pool",
    "PoolCondition",
    "PoolStatus",
]
