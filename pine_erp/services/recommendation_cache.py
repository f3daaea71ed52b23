"""Cache for "recommendations for these products at this location" lookups."""

from __future__ import annotations

import time
from typing import Callable, Iterable, Sequence

from pine_erp.schemas.recommendations import Recommendation
from pine_erp.utils.simple_cache import SimpleTTLCache

CACHE_NAMESPACE = "recs"

RecommendationList = tuple[Recommendation, ...]


def build_recommendation_cache_key(location_id: str, product_ids: Iterable[str]) -> str:
    """Build the canonical cache key for a location and a set of products.

    Product ids are sorted so that the same cart in any order maps to the
    same key.

    Examples:
        >>> build_recommendation_cache_key("loc-1", ["p2", "p1"])
        'recs:loc-1:p1,p2'
    """

    return f"{CACHE_NAMESPACE}:{location_id}:{','.join(sorted(product_ids))}"


class RecommendationCache:
    """TTL cache of recommendation lists keyed by (location, product set).

    Lists are stored without copying and handed back as immutable tuples of
    frozen models. There is no per-product invalidation: recommendations
    derive from order history and stock across the yard, so any upstream
    change goes through :meth:`clear`.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        check_period_seconds: int = 60,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache: SimpleTTLCache[RecommendationList] = SimpleTTLCache(
            ttl_seconds=ttl_seconds,
            check_period_seconds=check_period_seconds,
            clock=clock,
        )

    @staticmethod
    def key(location_id: str, product_ids: Iterable[str]) -> str:
        return build_recommendation_cache_key(location_id, product_ids)

    def get(self, location_id: str, product_ids: Iterable[str]) -> RecommendationList | None:
        return self._cache.get(self.key(location_id, product_ids))

    def set(
        self,
        location_id: str,
        product_ids: Iterable[str],
        recommendations: Sequence[Recommendation],
    ) -> RecommendationList:
        """Store ``recommendations``, overwriting any previous list for the key.

        Returns:
            The stored tuple, i.e. exactly what later ``get`` calls will see.
        """
        stored = tuple(recommendations)
        self._cache.set(self.key(location_id, product_ids), stored)
        return stored

    def clear(self) -> int:
        return self._cache.clear()

    def purge_expired(self) -> int:
        return self._cache.purge_expired()

    def stats(self) -> dict[str, int]:
        return self._cache.stats()
