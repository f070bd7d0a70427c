"""Property-based tests for label and taint convergence.

Feature: pool-rollout, Property 6: Idempotent convergence
"""

from hypothesis import given
from hypothesis import strategies as st

from pool_controller.config import Backoff
from pool_controller.models import (
    Configuration,
    LabelDirective,
    Node,
    NodeTaint,
    TaintDirective,
)
from pool_controller.mutator import NodeMutator
from pool_controller.store import SnapshotStore

KEYS = ["tier", "zone", "gpu", "legacy", "dedicated"]

keys = st.sampled_from(KEYS)
values = st.sampled_from(["", "a", "b", "general"])
effects = st.sampled_from(["NoSchedule", "PreferNoSchedule", "NoExecute"])

taints = st.builds(NodeTaint, key=keys, value=values, effect=effects)


@st.composite
def nodes(draw):
    """Generate a node with arbitrary labels and taints with distinct keys."""
    labels = draw(st.dictionaries(keys, values, max_size=5))
    node_taints = draw(st.lists(taints, max_size=4, unique_by=lambda t: t.key))
    return Node(name="worker-0", labels=labels, taints=node_taints)


@st.composite
def configurations(draw):
    """Generate a configuration adding and removing labels and taints."""
    label_directives = draw(
        st.lists(
            st.builds(
                LabelDirective,
                labels=st.dictionaries(keys, values, min_size=1, max_size=3),
                exist=st.booleans(),
            ),
            max_size=4,
        )
    )
    taint_directives = draw(
        st.lists(st.builds(TaintDirective, taint=taints, exist=st.booleans()), max_size=4)
    )
    return Configuration(name="rendered-worker-2", labels=label_directives, taints=taint_directives)


@given(node=nodes(), configuration=configurations())
def test_property_6_idempotent_convergence(node, configuration):
    """
    Feature: pool-rollout, Property 6: Idempotent convergence

    Converging a node twice in succession with unchanged inputs issues no
    patch on the second call.
    """
    store = SnapshotStore(nodes=[node])
    mutator = NodeMutator(store, Backoff(steps=2, duration=0.0, jitter=0.0))

    mutator.converge_labels_and_taints(store.get_node(node.name), configuration)
    patches = len(store.patches)

    assert not mutator.converge_labels_and_taints(store.get_node(node.name), configuration)
    assert len(store.patches) == patches


@given(node=nodes(), configuration=configurations())
def test_convergence_only_touches_declared_keys(node, configuration):
    """Labels and taints not named by the configuration are left alone."""
    store = SnapshotStore(nodes=[node])
    mutator = NodeMutator(store, Backoff(steps=2, duration=0.0, jitter=0.0))

    mutator.converge_labels_and_taints(store.get_node(node.name), configuration)

    declared_labels = {k for d in configuration.labels for k in d.labels}
    declared_taints = {d.taint.key for d in configuration.taints}
    updated = store.get_node(node.name)
    for key, value in node.labels.items():
        if key not in declared_labels:
            assert updated.labels[key] == value
    for taint in node.taints:
        if taint.key not in declared_taints:
            assert taint in updated.taints
