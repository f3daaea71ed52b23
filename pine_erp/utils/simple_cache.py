"""In-memory TTL cache.

Values are stored by reference (no copies are made on ``set`` or ``get``).
Callers must treat whatever they get back as read-only.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class CacheItem(Generic[V]):
    """Container for cached values with expiration metadata."""

    value: V
    expires_at: float


class SimpleTTLCache(Generic[V]):
    """Thread-safe, in-memory cache with a fixed time-to-live.

    Expiry is enforced in two complementary ways:

    - lazily on ``get``: an expired item is never returned, even when it is
      still physically stored;
    - by a sweep that evicts every expired item, run from ``get``/``set``
      whenever ``check_period_seconds`` have elapsed since the previous one.

    Attributes:
        ttl_seconds: Time-to-live applied to all entries.
        check_period_seconds: Minimum interval between sweeps.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        check_period_seconds: int = 60,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")
        if check_period_seconds < 1:
            raise ValueError("check_period_seconds must be >= 1")

        self._ttl = ttl_seconds
        self._check_period = check_period_seconds
        self._clock = clock
        self._store: dict[str, CacheItem[V]] = {}
        self._lock = threading.RLock()
        self._last_sweep = clock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"SimpleTTLCache(ttl_seconds={self._ttl}, "
            f"check_period_seconds={self._check_period}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    @property
    def check_period_seconds(self) -> int:
        return self._check_period

    def get(self, key: str) -> V | None:
        """Retrieve a cached value if it exists and is not expired.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """

        with self._lock:
            now = self._clock()
            self._maybe_sweep_locked(now)

            item = self._store.get(key)
            if item is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key[:64], "reason": "not_found"})
                return None

            if now > item.expires_at:
                self._evict_single(key)
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key[:64], "reason": "expired"})
                return None

            self._hits += 1
            logger.debug("cache.hit", extra={"cache_key": key[:64]})
            return item.value

    def set(self, key: str, value: V) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""

        with self._lock:
            now = self._clock()
            self._maybe_sweep_locked(now)
            self._store[key] = CacheItem(value=value, expires_at=now + self._ttl)

            logger.debug(
                "cache.set",
                extra={
                    "cache_key": key[:64],
                    "size": len(self._store),
                    "ttl_s": self._ttl,
                },
            )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> int:
        """Remove all cached entries; return how many were dropped.

        Hit/miss counters survive a flush so monitoring keeps its history.
        """

        with self._lock:
            dropped = len(self._store)
            self._store.clear()
            logger.info("cache.cleared", extra={"dropped": dropped})
            return dropped

    def purge_expired(self) -> int:
        """Evict every expired entry now; return how many were removed."""

        with self._lock:
            now = self._clock()
            self._last_sweep = now
            return self._evict_expired_locked(now)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> dict[str, int]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "ttl_seconds": self._ttl,
                "check_period_seconds": self._check_period,
                "keys": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _evict_single(self, key: str) -> None:
        if self._store.pop(key, None) is not None:
            self._evictions += 1

    def _maybe_sweep_locked(self, now: float) -> None:
        if now - self._last_sweep < self._check_period:
            return
        self._last_sweep = now
        removed = self._evict_expired_locked(now)
        if removed:
            logger.debug("cache.swept", extra={"removed": removed, "size": len(self._store)})

    def _evict_expired_locked(self, now: float) -> int:
        expired_keys = [k for k, item in self._store.items() if now > item.expires_at]
        for key in expired_keys:
            self._evict_single(key)
        return len(expired_keys)
