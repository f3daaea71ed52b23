"""Product recommendation service.

Answers "what else should this cart contain?" for a yard location:
- Input validation and normalization of product ids
- Cache lookup keyed by (location, product set)
- Candidate loading, filtering and ranking on a miss
- Rebuilding the stored links from order history
"""

from __future__ import annotations

import logging
from typing import Iterable

from pine_erp.adapters.catalog.base import AbstractCatalogRepository, RecommendationLink
from pine_erp.core.errors import (
    AppError,
    NotFoundAppError,
    RecommendationAppError,
    ValidationAppError,
)
from pine_erp.schemas.recommendations import ProductSummary, Recommendation
from pine_erp.services.recommendation_cache import RecommendationCache, RecommendationList
from pine_erp.services.recommendation_engine import (
    EngineReport,
    analyze_recommendations,
    seed_demo_recommendations,
)

logger = logging.getLogger(__name__)


def normalize_product_ids(product_ids: Iterable[str]) -> list[str]:
    """Strip whitespace, drop blanks and duplicates, keep first-seen order.

    Examples:
        >>> normalize_product_ids([" p1", "p2", "", "p1"])
        ['p1', 'p2']
    """
    normalized: list[str] = []
    seen: set[str] = set()
    for product_id in product_ids:
        product_id = product_id.strip()
        if product_id and product_id not in seen:
            seen.add(product_id)
            normalized.append(product_id)
    return normalized


class RecommendationService:
    """Service computing and caching product recommendations.

    Attributes:
        repository: Catalog data access.
        cache: Recommendation cache shared by all requests.
    """

    def __init__(
        self,
        repository: AbstractCatalogRepository,
        cache: RecommendationCache,
        *,
        max_results: int = 5,
        candidate_pool: int = 10,
        min_pair_occurrences: int = 3,
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.max_results = max_results
        self.candidate_pool = candidate_pool
        self.min_pair_occurrences = min_pair_occurrences

    def _validate(self, location_id: str, product_ids: list[str]) -> None:
        if not location_id or not location_id.strip():
            raise ValidationAppError(
                code="location_id_required",
                message="locationId is required",
                details={"parameter": "locationId"},
            )
        if not product_ids:
            raise ValidationAppError(
                code="product_ids_required",
                message="productIds required",
                details={"parameter": "productIds"},
            )
        if not self.repository.has_location(location_id):
            raise NotFoundAppError(
                code="location_not_found",
                message=f"Location '{location_id}' does not exist",
                details={"location_id": location_id},
            )

    def _rank(
        self, location_id: str, product_ids: list[str], links: list[RecommendationLink]
    ) -> list[Recommendation]:
        """Filter candidate links and keep the strongest one per product.

        Drops products already in the cart, products unknown to the catalog
        and products with no stock at ``location_id``.
        """
        in_cart = set(product_ids)
        best: dict[str, RecommendationLink] = {}

        for link in links:
            target = link.recommended_product_id
            if target in in_cart:
                continue
            if self.repository.stock_level(target, location_id) <= 0:
                continue
            current = best.get(target)
            if current is None or current.strength < link.strength:
                best[target] = link

        ranked = sorted(best.values(), key=lambda link: link.strength, reverse=True)
        recommendations: list[Recommendation] = []
        for link in ranked:
            product = self.repository.get_product(link.recommended_product_id)
            if product is None:
                # Link outlived its product
                continue
            recommendations.append(
                Recommendation(
                    product=ProductSummary(
                        id=product.id,
                        name=product.name,
                        sku=product.sku,
                        price=product.base_price,
                    ),
                    strength=link.strength,
                    reason=link.reason,
                )
            )
            if len(recommendations) == self.max_results:
                break
        return recommendations

    def recommend(self, location_id: str, product_ids: Iterable[str]) -> RecommendationList:
        """Return recommendations for a cart at a location.

        Args:
            location_id: Yard location the cart is fulfilled from.
            product_ids: Products currently in the cart, any order.

        Returns:
            Immutable tuple of recommendations, strongest first. The tuple may
            be shared with other callers through the cache.

        Raises:
            ValidationAppError: If the location or product ids are missing.
            NotFoundAppError: If the location does not exist.
            RecommendationAppError: If the catalog lookup fails.
        """
        product_ids = normalize_product_ids(product_ids)
        self._validate(location_id, product_ids)

        cached = self.cache.get(location_id, product_ids)
        if cached is not None:
            return cached

        try:
            links = self.repository.find_recommendation_links(
                product_ids, limit=self.candidate_pool
            )
            recommendations = self._rank(location_id, product_ids, links)
        except AppError:
            raise
        except Exception as exc:
            logger.exception(
                "recommendations.lookup_failed",
                extra={"location_id": location_id, "product_count": len(product_ids)},
            )
            raise RecommendationAppError(
                code="recommendations_unavailable",
                message="Failed to fetch recommendations",
                details={"location_id": location_id},
            ) from exc

        logger.info(
            "recommendations.computed",
            extra={
                "location_id": location_id,
                "product_count": len(product_ids),
                "candidates": len(links),
                "returned": len(recommendations),
            },
        )
        return self.cache.set(location_id, product_ids, recommendations)

    def rebuild(self) -> EngineReport:
        """Recompute links from completed orders and flush the cache.

        Raises:
            RecommendationAppError: If the repository cannot be read or written.
        """
        try:
            report = analyze_recommendations(
                self.repository.completed_orders(),
                min_occurrences=self.min_pair_occurrences,
            )
            stored = self.repository.replace_recommendation_links(report.links)
        except Exception as exc:
            logger.exception("recommendations.rebuild_failed")
            raise RecommendationAppError(
                code="recommendations_rebuild_failed",
                message="Failed to rebuild recommendations",
            ) from exc

        cleared = self.cache.clear()
        logger.info(
            "recommendations.rebuilt",
            extra={
                "orders_analyzed": report.orders_analyzed,
                "pairs_found": report.pairs_found,
                "links_stored": stored,
                "cache_entries_cleared": cleared,
            },
        )
        return report

    def seed_demo(self) -> int:
        """Add demo lumber → fastener bundle links; return how many were added.

        Raises:
            RecommendationAppError: If the repository cannot be read or written.
        """
        try:
            added = self.repository.add_recommendation_links(
                seed_demo_recommendations(self.repository.list_products())
            )
        except Exception as exc:
            logger.exception("recommendations.seed_failed")
            raise RecommendationAppError(
                code="recommendations_seed_failed",
                message="Failed to seed demo recommendations",
            ) from exc

        if added:
            self.cache.clear()
        logger.info("recommendations.seeded", extra={"links_added": added})
        return added
