import pytest

from jrpc_core.errors import (
    MaxResourcesReachedError,
    ResourceAtCapacityError,
    ResourceNameAlreadyTakenError,
)
from jrpc_core.server.resource_limiting import RESOURCE_COUNT, Resources


def test_register_sets_tables():
    res = Resources()
    res.register("cpu", 10, 2)
    res.register("mem", 20, 3)
    assert res.labels == ["cpu", "mem"]
    assert res.capacities[:2] == [10, 20]
    assert res.defaults[:2] == [2, 3]
    assert len(res.capacities) == RESOURCE_COUNT


def test_register_duplicate_label_fails():
    res = Resources()
    res.register("cpu", 10, 2)
    with pytest.raises(ResourceNameAlreadyTakenError) as info:
        res.register("cpu", 5, 1)
    assert str(info.value) == "Resource name already taken: cpu"
    assert res.labels == ["cpu"]


def test_register_more_than_eight_fails():
    res = Resources()
    for n in range(RESOURCE_COUNT):
        res.register(f"r{n}", 1, 1)
    with pytest.raises(MaxResourcesReachedError):
        res.register("extra", 1, 1)
    assert len(res.labels) == RESOURCE_COUNT


def test_claim_and_release():
    res = Resources()
    res.register("cpu", 8, 1)
    guard = res.claim([5])
    assert res.in_use()[0] == 5
    with pytest.raises(ResourceAtCapacityError) as info:
        res.claim([4])
    assert info.value.label == "cpu"
    guard.release()
    assert res.in_use() == [0] * RESOURCE_COUNT
    full = res.claim([8])
    assert res.in_use()[0] == 8
    full.release()


def test_failed_claim_leaves_totals_unchanged():
    res = Resources()
    res.register("cpu", 8, 1)
    res.register("mem", 4, 1)
    guard = res.claim([2, 2])
    before = res.in_use()
    with pytest.raises(ResourceAtCapacityError) as info:
        res.claim([1, 3])
    assert info.value.label == "mem"
    assert res.in_use() == before
    guard.release()


def test_release_is_idempotent():
    res = Resources()
    res.register("cpu", 8, 1)
    guard = res.claim([3])
    other = res.claim([2])
    guard.release()
    guard.release()
    assert res.in_use()[0] == 2
    other.release()
    assert res.in_use()[0] == 0


def test_guard_as_context_manager():
    res = Resources()
    res.register("cpu", 4, 1)
    with res.claim([4]) as guard:
        assert guard.units[0] == 4
        with pytest.raises(ResourceAtCapacityError):
            res.claim([1])
    assert res.in_use()[0] == 0


def test_unregistered_index_reports_unknown_label():
    res = Resources()
    res.register("cpu", 4, 1)
    with pytest.raises(ResourceAtCapacityError) as info:
        res.claim([0, 0, 0, 1])
    assert info.value.label == "<UNKNOWN>"


def test_overflow_past_u16_is_rejected():
    res = Resources()
    res.register("cpu", 65535, 0)
    guard = res.claim([65535])
    with pytest.raises(ResourceAtCapacityError):
        res.claim([1])
    guard.release()


def test_invalid_units_rejected():
    res = Resources()
    with pytest.raises(ValueError):
        res.claim([0] * (RESOURCE_COUNT + 1))
    with pytest.raises(ValueError):
        res.register("cpu", 70000, 0)