"""Recommendation engine.

Derives "frequently bought together" links from completed orders and seeds
demo "project bundle" links for fresh installations.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable

from pine_erp.adapters.catalog.base import CatalogProduct, OrderSnapshot, RecommendationLink

logger = logging.getLogger(__name__)

FREQUENTLY_BOUGHT_TOGETHER = "frequently_bought_together"
PROJECT_BUNDLE = "project_bundle"
PROJECT_BUNDLE_STRENGTH = 0.8


@dataclass(frozen=True)
class EngineReport:
    orders_analyzed: int
    pairs_found: int
    links: list[RecommendationLink]


def _unique_in_order(product_ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    unique = []
    for product_id in product_ids:
        if product_id not in seen:
            seen.add(product_id)
            unique.append(product_id)
    return unique


def analyze_recommendations(
    orders: Iterable[OrderSnapshot], *, min_occurrences: int = 3
) -> EngineReport:
    """Count product co-occurrences across orders and turn them into links.

    Every unordered pair of distinct products in an order counts once in
    both directions. Pairs seen at least ``min_occurrences`` times become
    links whose strength is their count relative to the most frequent pair.

    Args:
        orders: Orders to analyse (callers pass completed orders only).
        min_occurrences: Threshold below which a pair is considered noise.

    Returns:
        EngineReport with the number of orders and distinct directed pairs
        seen, and the resulting links (strongest first).
    """
    if min_occurrences < 1:
        raise ValueError("min_occurrences must be >= 1")

    pair_counts: Counter[tuple[str, str]] = Counter()
    orders_analyzed = 0

    for order in orders:
        orders_analyzed += 1
        for first, second in combinations(_unique_in_order(order.product_ids), 2):
            pair_counts[(first, second)] += 1
            pair_counts[(second, first)] += 1

    significant = {pair: count for pair, count in pair_counts.items() if count >= min_occurrences}
    links: list[RecommendationLink] = []
    if significant:
        max_count = max(significant.values())
        links = [
            RecommendationLink(
                product_id=source,
                recommended_product_id=target,
                strength=min(count / max_count, 1.0),
                reason=FREQUENTLY_BOUGHT_TOGETHER,
            )
            for (source, target), count in significant.items()
        ]
        links.sort(key=lambda link: link.strength, reverse=True)

    logger.info(
        "recommendations.analyzed",
        extra={
            "orders_analyzed": orders_analyzed,
            "pairs_found": len(pair_counts),
            "significant_pairs": len(significant),
            "min_occurrences": min_occurrences,
        },
    )
    return EngineReport(
        orders_analyzed=orders_analyzed,
        pairs_found=len(pair_counts),
        links=links,
    )


def _is_lumber(product: CatalogProduct) -> bool:
    return "lumber" in product.category.lower()


def _is_fastener(product: CatalogProduct) -> bool:
    name = product.name.lower()
    return "screw" in name or "nail" in name


def seed_demo_recommendations(products: Iterable[CatalogProduct]) -> list[RecommendationLink]:
    """Link every lumber product to the first two screw/nail products."""

    products = list(products)
    fasteners = [product for product in products if _is_fastener(product)][:2]
    return [
        RecommendationLink(
            product_id=lumber.id,
            recommended_product_id=fastener.id,
            strength=PROJECT_BUNDLE_STRENGTH,
            reason=PROJECT_BUNDLE,
        )
        for lumber in products
        if _is_lumber(lumber)
        for fastener in fasteners
    ]
