"""Unit tests for the in-memory SimpleTTLCache."""

import threading

import pytest

from pine_erp.utils.simple_cache import SimpleTTLCache


def test_set_and_get_updates_hit_miss_counters(clock) -> None:
    cache: SimpleTTLCache[dict] = SimpleTTLCache(ttl_seconds=10, clock=clock)

    assert cache.get("missing") is None

    cache.set("key", {"v": 1})
    assert cache.get("key") == {"v": 1}

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["keys"] == 1


def test_values_are_stored_by_reference(clock) -> None:
    cache: SimpleTTLCache[list] = SimpleTTLCache(ttl_seconds=10, clock=clock)
    value = [1, 2]
    cache.set("key", value)

    assert cache.get("key") is value


def test_expired_entry_is_never_returned(clock) -> None:
    cache: SimpleTTLCache[dict] = SimpleTTLCache(ttl_seconds=5, check_period_seconds=3600, clock=clock)
    cache.set("key", {"data": True})

    clock.advance(5)
    assert cache.get("key") == {"data": True}

    clock.advance(1)
    assert cache.get("key") is None
    assert cache.stats()["evictions"] == 1


def test_sweep_evicts_expired_entries_after_check_period(clock) -> None:
    cache: SimpleTTLCache[int] = SimpleTTLCache(ttl_seconds=5, check_period_seconds=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    clock.advance(30)
    cache.set("c", 3)
    # Expired but not yet swept
    assert len(cache) == 3

    clock.advance(31)
    cache.get("c")

    assert len(cache) == 0
    assert cache.stats()["evictions"] == 3


def test_purge_expired_keeps_live_entries(clock) -> None:
    cache: SimpleTTLCache[int] = SimpleTTLCache(ttl_seconds=10, clock=clock)
    cache.set("old", 1)
    clock.advance(8)
    cache.set("new", 2)
    clock.advance(5)

    assert cache.purge_expired() == 1
    assert cache.get("new") == 2


def test_overwrite_replaces_value_and_expiry(clock) -> None:
    cache: SimpleTTLCache[str] = SimpleTTLCache(ttl_seconds=10, clock=clock)
    cache.set("key", "first")
    clock.advance(8)
    cache.set("key", "second")
    clock.advance(8)

    assert cache.get("key") == "second"


def test_clear_drops_entries_but_keeps_counters(clock) -> None:
    cache: SimpleTTLCache[dict] = SimpleTTLCache(ttl_seconds=10, clock=clock)
    cache.set("a", {"v": 1})
    cache.set("b", {"v": 2})
    cache.get("a")

    assert cache.clear() == 2

    assert cache.get("a") is None
    assert cache.get("b") is None
    stats = cache.stats()
    assert stats["keys"] == 0
    assert stats["hits"] == 1
    assert stats["misses"] == 2


def test_delete(clock) -> None:
    cache: SimpleTTLCache[int] = SimpleTTLCache(ttl_seconds=10, clock=clock)
    cache.set("a", 1)

    assert cache.delete("a") is True
    assert cache.delete("a") is False


@pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"ttl_seconds": 10, "check_period_seconds": 0}])
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SimpleTTLCache(**kwargs)


def test_thread_safety_under_concurrent_sets() -> None:
    cache: SimpleTTLCache[dict] = SimpleTTLCache(ttl_seconds=30)
    total_keys = 50

    def _writer(idx: int) -> None:
        cache.set(f"k-{idx}", {"v": idx})

    threads = [threading.Thread(target=_writer, args=(i,)) for i in range(total_keys)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert cache.stats()["keys"] == total_keys
    assert cache.get("k-0") == {"v": 0}
    assert cache.get("k-49") == {"v": 49}
