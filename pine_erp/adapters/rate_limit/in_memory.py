"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, so sync endpoints running in
  the threadpool never lose increments.
- Windows are anchored at each key's first request, not at clock boundaries.
  A client may therefore get up to ``2 * limit`` requests through around the
  end of one window and the start of the next.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from pine_erp.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key within a fixed window.

    The first request from a key (or the first one after its window has
    ended) opens a window of ``window_seconds``. Every further request inside
    that window increments the counter, including rejected ones; once the
    counter exceeds ``limit`` the request is blocked until the window ends.

    Expired records are treated as absent on lookup and physically removed by
    a sweep that runs every ``sweep_every`` calls to :meth:`consume`. A limiter
    built with ``on_consume`` leaves that counting to the callback instead,
    which is how a registry sweeps on a process-wide call count.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
        sweep_every: int = 100,
        on_consume: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests admitted per window.
            window_seconds: Length of the window in seconds.
            clock: Time source returning UNIX time in seconds.
            sweep_every: Purge expired records every N calls.
            on_consume: Called after every consume, outside the lock. Replaces
                the limiter's own sweep schedule when given.

        Raises:
            ValueError: If any argument is not a positive integer.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        if sweep_every < 1:
            raise ValueError("sweep_every must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._sweep_every = sweep_every
        self._on_consume = on_consume
        self._lock = threading.RLock()
        self._records: dict[str, RateLimitRecord] = {}
        self._calls = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryFixedWindowRateLimiter(limit={self._limit}, "
            f"window_seconds={self._window_seconds}, keys={len(self._records)})"
        )

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def tracked_keys(self) -> int:
        """Number of records currently held, including expired-but-unswept ones."""
        with self._lock:
            return len(self._records)

    def consume(self, key: str) -> RateLimitResult:
        """Count one request for ``key`` and return the admission decision.

        Args:
            key: Client identifier.

        Returns:
            RateLimitResult with the decision and throttling metadata.
        """
        now = self._clock()

        with self._lock:
            result = self._consume_locked(key, now)

        if self._on_consume is not None:
            self._on_consume()
        return result

    def _consume_locked(self, key: str, now: float) -> RateLimitResult:
        if self._on_consume is None:
            self._calls += 1
            if self._calls % self._sweep_every == 0:
                self._purge_expired_locked(now)

        record = self._records.get(key)
        if record is None or now > record.reset_at:
            record = RateLimitRecord(count=1, reset_at=now + self._window_seconds)
            self._records[key] = record
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit - 1,
                reset_at=record.reset_at,
                retry_after_seconds=None,
            )

        record.count += 1

        if record.count > self._limit:
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=0,
                reset_at=record.reset_at,
                retry_after_seconds=math.ceil(record.reset_at - now),
            )

        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=self._limit - record.count,
            reset_at=record.reset_at,
            retry_after_seconds=None,
        )

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_expired_locked(self._clock())

    def _purge_expired_locked(self, now: float) -> int:
        expired = [key for key, record in self._records.items() if now > record.reset_at]
        for key in expired:
            del self._records[key]

        if expired:
            logger.debug(
                "rate_limit.swept",
                extra={"removed": len(expired), "remaining_keys": len(self._records)},
            )
        return len(expired)
