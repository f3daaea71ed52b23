"""Process-wide owner of the per-scope rate limiters."""

from __future__ import annotations

import threading
import time
from typing import Callable

from pine_erp.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter


class RateLimiterRegistry:
    """Hands out one limiter per ``(scope, limit, window)`` triple.

    Endpoints guarded under different scopes never share counters, so a burst
    against the recommendations lookup cannot lock a client out of the cache
    admin endpoints. Limiters are created on first use and live as long as the
    registry (normally the application).

    Checks are counted across every limiter it owns: each ``sweep_every``-th
    one purges expired records from all of them, so a rarely hit scope is
    still cleaned up by traffic elsewhere.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        sweep_every: int = 100,
    ) -> None:
        if sweep_every < 1:
            raise ValueError("sweep_every must be >= 1")
        self._clock = clock
        self._sweep_every = sweep_every
        self._lock = threading.Lock()
        self._calls_lock = threading.Lock()
        self._calls = 0
        self._limiters: dict[tuple[str, int, int], InMemoryFixedWindowRateLimiter] = {}

    def get(self, scope: str, *, limit: int, window_seconds: int) -> InMemoryFixedWindowRateLimiter:
        key = (scope, limit, window_seconds)
        with self._lock:
            limiter = self._limiters.get(key)
            if limiter is None:
                limiter = InMemoryFixedWindowRateLimiter(
                    limit=limit,
                    window_seconds=window_seconds,
                    clock=self._clock,
                    sweep_every=self._sweep_every,
                    on_consume=self._count_check,
                )
                self._limiters[key] = limiter
            return limiter

    def scopes(self) -> list[str]:
        with self._lock:
            return sorted({scope for scope, _, _ in self._limiters})

    def purge_expired(self) -> int:
        with self._lock:
            limiters = list(self._limiters.values())
        return sum(limiter.purge_expired() for limiter in limiters)

    def _count_check(self) -> None:
        with self._calls_lock:
            self._calls += 1
            due = self._calls % self._sweep_every == 0
        if due:
            self.purge_expired()
