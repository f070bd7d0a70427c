"""Unit tests for pool resolution and membership."""

import pytest

from pool_controller.exceptions import AmbiguousAssignmentError, InvalidSelectorError
from pool_controller.models import LabelSelector, LabelSelectorRequirement, Pool
from pool_controller.resolver import PoolResolver

resolver = PoolResolver()


def test_worker_node_resolves_to_worker(make_node, make_pool):
    node = make_node("w0", labels={"node-role/worker": ""})
    pools = [make_pool("master"), make_pool("worker")]

    assert resolver.resolve(node, pools).name == "worker"


def test_unmatched_node_is_unmanaged(make_node, make_pool):
    node = make_node("n0", labels={"something": "else"})

    assert resolver.resolve(node, [make_pool("master"), make_pool("worker")]) is None


def test_master_and_worker_resolves_to_master(make_node, make_pool):
    node = make_node("m0", labels={"node-role/master": "", "node-role/worker": ""})

    assert resolver.resolve(node, [make_pool("worker"), make_pool("master")]).name == "master"


def test_single_custom_pool_wins_over_worker(make_node, make_pool):
    node = make_node("i0", labels={"node-role/worker": "", "node-role/infra": ""})

    assert resolver.resolve(node, [make_pool("worker"), make_pool("infra")]).name == "infra"


def test_master_with_custom_role_is_ambiguous(make_node, make_pool):
    """A node matching master and custom pool infra cannot be assigned."""
    node = make_node("m0", labels={"node-role/master": "", "node-role/infra": ""})

    with pytest.raises(AmbiguousAssignmentError) as exc_info:
        resolver.resolve(node, [make_pool("master"), make_pool("infra")])

    assert exc_info.value.node_name == "m0"
    assert set(exc_info.value.pool_names) == {"master", "infra"}
    assert "both master role and custom role infra" in str(exc_info.value)


def test_two_custom_pools_are_ambiguous(make_node, make_pool):
    node = make_node("n0", labels={"node-role/infra": "", "node-role/gpu": ""})

    with pytest.raises(AmbiguousAssignmentError) as exc_info:
        resolver.resolve(node, [make_pool("infra"), make_pool("gpu"), make_pool("worker")])

    assert "2 custom roles" in exc_info.value.message


def test_empty_and_missing_selectors_match_nothing(make_node):
    node = make_node("w0", labels={"node-role/worker": ""})
    pools = [
        Pool(name="everything", node_selector=LabelSelector(), configuration="c"),
        Pool(name="unset", node_selector=None, configuration="c"),
    ]

    assert resolver.resolve(node, pools) is None


def test_invalid_selector_propagates(make_node):
    node = make_node("w0")
    pool = Pool(
        name="broken",
        node_selector=LabelSelector(
            match_expressions=[LabelSelectorRequirement(key="a", operator="Near", values=["x"])]
        ),
        configuration="c",
    )

    with pytest.raises(InvalidSelectorError):
        resolver.resolve(node, [pool])


def test_nodes_for_pool_excludes_nodes_owned_elsewhere(make_node, make_pool):
    """Masters also labeled as workers belong only to the master pool."""
    worker, master = make_pool("worker"), make_pool("master")
    nodes = [
        make_node("w0", labels={"node-role/worker": ""}),
        make_node("m0", labels={"node-role/master": "", "node-role/worker": ""}),
        make_node("w1", labels={"node-role/worker": ""}),
    ]

    members = resolver.nodes_for_pool(worker, nodes, [worker, master])

    assert [n.name for n in members] == ["w0", "w1"]
    assert [n.name for n in resolver.nodes_for_pool(master, nodes, [worker, master])] == ["m0"]


def test_nodes_for_pool_reports_ambiguous_nodes(make_node, make_pool):
    master, infra = make_pool("master"), make_pool("infra")
    nodes = [
        make_node("m0", labels={"node-role/master": ""}),
        make_node("m1", labels={"node-role/master": "", "node-role/infra": ""}),
    ]

    with pytest.raises(AmbiguousAssignmentError) as exc_info:
        resolver.nodes_for_pool(master, nodes, [master, infra])

    assert exc_info.value.node_name == "m1"
    assert "cannot be assigned" in exc_info.value.message
