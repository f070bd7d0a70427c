"""Unit tests for pool status summarization."""

from pool_controller.models import PoolStatus
from pool_controller.status import calculate_status

TARGET = "rendered-worker-2"


def test_rollout_in_progress(make_node, make_pool):
    pool = make_pool("worker", configuration=TARGET)
    pool.status = PoolStatus(configuration="rendered-worker-1")
    members = [
        make_node("a", current=TARGET, desired=TARGET, state="Done"),
        make_node("b", current="rendered-worker-1", desired=TARGET, state="Working"),
        make_node("c", current="rendered-worker-1", desired="rendered-worker-1", state="Done"),
    ]

    status = calculate_status(pool, members)

    assert status.machine_count == 3
    assert status.updated_machine_count == 1
    assert status.ready_machine_count == 1
    assert status.unavailable_machine_count == 1
    assert status.degraded_machine_count == 0
    assert status.configuration == "rendered-worker-1"
    assert status.get_condition("Updating").status == "True"
    assert status.get_condition("Updating").message == f"1 of 3 nodes updated to {TARGET}"
    assert status.get_condition("Updated").status == "False"
    assert status.get_condition("Degraded").status == "False"


def test_completed_rollout_advances_configuration(make_node, make_pool):
    pool = make_pool("worker", configuration=TARGET)
    members = [make_node(f"n{i}", current=TARGET, desired=TARGET, state="Done") for i in range(3)]

    status = calculate_status(pool, members)

    assert status.configuration == TARGET
    assert status.get_condition("Updated").status == "True"
    assert status.get_condition("Updating").status == "False"


def test_unready_member_blocks_completion(make_node, make_pool):
    pool = make_pool("worker", configuration=TARGET)
    members = [
        make_node("a", current=TARGET, desired=TARGET, state="Done"),
        make_node("b", current=TARGET, desired=TARGET, state="Done", ready=False),
    ]

    status = calculate_status(pool, members)

    assert status.updated_machine_count == 2
    assert status.ready_machine_count == 1
    assert status.unavailable_machine_count == 1
    assert status.configuration == ""


def test_degraded_members_are_reported(make_node, make_pool):
    pool = make_pool("worker", configuration=TARGET)
    members = [
        make_node("a", current=TARGET, desired=TARGET, state="Degraded"),
        make_node("b", current="old", desired=TARGET, state="Unreconcilable"),
    ]

    status = calculate_status(pool, members)

    degraded = status.get_condition("Degraded")
    assert status.degraded_machine_count == 2
    assert degraded.status == "True"
    assert degraded.reason == "NodeDegraded"


def test_empty_pool(make_pool):
    status = calculate_status(make_pool("worker", configuration=TARGET), [])

    assert status.machine_count == 0
    assert status.configuration == TARGET
