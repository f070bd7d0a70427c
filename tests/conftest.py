"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from pool_controller.constants import (
    CURRENT_CONFIG_ANNOTATION,
    DESIRED_CONFIG_ANNOTATION,
    UPDATE_STATE_ANNOTATION,
)
from pool_controller.models import LabelSelector, Node, NodeCondition, NodeTaint, Pool

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


@pytest.fixture(scope="session")
def make_node():
    """Factory for nodes with update annotations and a Ready condition."""

    def _make(
        name: str,
        labels: dict | None = None,
        current: str | None = None,
        desired: str | None = None,
        state: str | None = None,
        ready: bool = True,
        unschedulable: bool = False,
        taints: list[NodeTaint] | None = None,
    ) -> Node:
        annotations = {}
        if current is not None:
            annotations[CURRENT_CONFIG_ANNOTATION] = current
        if desired is not None:
            annotations[DESIRED_CONFIG_ANNOTATION] = desired
        if state is not None:
            annotations[UPDATE_STATE_ANNOTATION] = state
        return Node(
            name=name,
            labels=labels if labels is not None else {"node-role/worker": ""},
            annotations=annotations,
            taints=taints or [],
            conditions=[NodeCondition(type="Ready", status="True" if ready else "False")],
            unschedulable=unschedulable,
        )

    return _make


@pytest.fixture(scope="session")
def make_pool():
    """Factory for pools selecting on a single role label."""

    def _make(
        name: str,
        role: str | None = None,
        configuration: str = "rendered-worker-1",
        max_unavailable: int | str | None = None,
        paused: bool = False,
    ) -> Pool:
        return Pool(
            name=name,
            node_selector=LabelSelector(match_labels={f"node-role/{role or name}": ""}),
            configuration=configuration,
            max_unavailable=max_unavailable,
            paused=paused,
        )

    return _make


@pytest.fixture
def sample_snapshot_data():
    """Snapshot with a worker pool halfway through a rollout."""
    return {
        "pools": [
            {
                "metadata": {"name": "worker"},
                "spec": {
                    "nodeSelector": {"matchLabels": {"node-role/worker": ""}},
                    "configuration": {"name": "rendered-worker-2"},
                    "maxUnavailable": 1,
                },
            },
            {
                "metadata": {"name": "master"},
                "spec": {
                    "nodeSelector": {"matchLabels": {"node-role/master": ""}},
                    "configuration": {"name": "rendered-master-1"},
                },
            },
        ],
        "nodes": [
            {
                "metadata": {
                    "name": f"worker-{i}",
                    "labels": {"node-role/worker": ""},
                    "annotations": {
                        CURRENT_CONFIG_ANNOTATION: "rendered-worker-1",
                        DESIRED_CONFIG_ANNOTATION: "rendered-worker-1",
                        UPDATE_STATE_ANNOTATION: "Done",
                    },
                },
                "status": {"conditions": [{"type": "Ready", "status": "True"}]},
            }
            for i in range(3)
        ]
        + [
            {
                "metadata": {
                    "name": "master-0",
                    "labels": {"node-role/master": ""},
                    "annotations": {
                        CURRENT_CONFIG_ANNOTATION: "rendered-master-1",
                        DESIRED_CONFIG_ANNOTATION: "rendered-master-1",
                        UPDATE_STATE_ANNOTATION: "Done",
                    },
                },
                "status": {"conditions": [{"type": "Ready", "status": "True"}]},
            }
        ],
        "configurations": [
            {
                "metadata": {"name": "rendered-worker-2"},
                "spec": {
                    "labels": [{"labels": {"tier": "general"}, "exist": True}],
                    "taints": [
                        {
                            "taint": {"key": "dedicated", "value": "infra", "effect": "NoSchedule"},
                            "exist": False,
                        }
                    ],
                },
            },
            {"metadata": {"name": "rendered-master-1"}, "spec": {}},
        ],
    }
