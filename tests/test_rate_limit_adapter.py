"""Unit tests for the in-memory rate limiter adapter."""

import threading
from unittest.mock import Mock

import pytest

from pine_erp.adapters.rate_limit import InMemoryFixedWindowRateLimiter, RateLimiterRegistry


def test_remaining_counts_down_to_zero() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=5, window_seconds=60, clock=clock)

    remaining = [limiter.consume("1.2.3.4").remaining for _ in range(5)]

    assert remaining == [4, 3, 2, 1, 0]


def test_blocks_request_over_limit() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert limiter.consume("k").allowed is True
    assert limiter.consume("k").allowed is True

    blocked = limiter.consume("k")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.retry_after_seconds == 60
    assert blocked.reset_at == 1060.0


def test_retry_after_rounds_up() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.consume("k")

    clock.return_value = 1030.2
    blocked = limiter.consume("k")

    assert blocked.retry_after_seconds == 30


def test_window_is_anchored_at_first_request() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.consume("k").allowed is True

    # Still inside the window opened at t=1000, even at its exact end
    clock.return_value = 1010.0
    assert limiter.consume("k").allowed is False

    clock.return_value = 1010.001
    fresh = limiter.consume("k")
    assert fresh.allowed is True
    assert fresh.remaining == 0


def test_rollover_ignores_prior_rejections() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    for _ in range(10):
        limiter.consume("k")

    clock.return_value = 1061.0
    result = limiter.consume("k")
    assert result.allowed is True
    assert result.remaining == 2


def test_rejected_requests_keep_counting() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    limiter.consume("k")
    limiter.consume("k")
    limiter.consume("k")

    assert limiter._records["k"].count == 3


def test_burst_across_window_boundary_is_allowed() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    limiter.consume("k")
    clock.return_value = 1059.9
    assert [limiter.consume("k").allowed for _ in range(2)] == [True, True]

    clock.return_value = 1060.1
    assert [limiter.consume("k").allowed for _ in range(3)] == [True, True, True]


def test_isolated_by_key() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.consume("k1").allowed is True
    assert limiter.consume("k1").allowed is False

    assert limiter.consume("k2").allowed is True


def test_sweep_runs_every_nth_call_and_only_drops_expired() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(
        limit=10, window_seconds=10, clock=clock, sweep_every=3
    )

    limiter.consume("old-1")
    limiter.consume("old-2")
    assert limiter.tracked_keys() == 2

    clock.return_value = 1011.0
    # Third call triggers the sweep before counting "new"
    limiter.consume("new")

    assert limiter.tracked_keys() == 1


def test_expired_record_survives_until_swept() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=1, window_seconds=10, clock=clock)

    limiter.consume("k")
    clock.return_value = 1020.0

    assert limiter.tracked_keys() == 1
    assert limiter.purge_expired() == 1
    assert limiter.tracked_keys() == 0


def test_concurrent_consumes_never_lose_a_count() -> None:
    clock = Mock(return_value=1000.0)
    limiter = InMemoryFixedWindowRateLimiter(limit=10_000, window_seconds=60, clock=clock)
    threads_count, calls_per_thread = 8, 500

    def _hammer() -> None:
        for _ in range(calls_per_thread):
            limiter.consume("k")

    threads = [threading.Thread(target=_hammer) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert limiter.consume("k").remaining == 10_000 - (threads_count * calls_per_thread + 1)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": -5, "window_seconds": 60},
        {"limit": 1, "window_seconds": 60, "sweep_every": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        InMemoryFixedWindowRateLimiter(**kwargs)


class TestRateLimiterRegistry:
    def test_same_scope_and_quota_share_a_limiter(self) -> None:
        registry = RateLimiterRegistry()

        first = registry.get("recs", limit=5, window_seconds=60)
        second = registry.get("recs", limit=5, window_seconds=60)

        assert first is second

    def test_scopes_do_not_share_counters(self) -> None:
        clock = Mock(return_value=1000.0)
        registry = RateLimiterRegistry(clock=clock)

        reads = registry.get("reads", limit=1, window_seconds=60)
        admin = registry.get("admin", limit=1, window_seconds=60)

        assert reads.consume("1.2.3.4").allowed is True
        assert reads.consume("1.2.3.4").allowed is False
        assert admin.consume("1.2.3.4").allowed is True
        assert registry.scopes() == ["admin", "reads"]

    def test_purge_expired_covers_all_limiters(self) -> None:
        clock = Mock(return_value=1000.0)
        registry = RateLimiterRegistry(clock=clock)
        registry.get("a", limit=1, window_seconds=10).consume("x")
        registry.get("b", limit=1, window_seconds=60).consume("y")

        clock.return_value = 1030.0

        assert registry.purge_expired() == 1

    def test_sweep_counts_checks_across_all_scopes(self) -> None:
        clock = Mock(return_value=1000.0)
        registry = RateLimiterRegistry(clock=clock, sweep_every=3)
        admin = registry.get("admin", limit=10, window_seconds=10)
        reads = registry.get("reads", limit=10, window_seconds=60)

        admin.consume("idle-client")
        clock.return_value = 1020.0
        reads.consume("a")
        assert admin.tracked_keys() == 1

        # Third check process-wide, none of them on the admin scope
        reads.consume("b")

        assert admin.tracked_keys() == 0
        assert reads.tracked_keys() == 2
