"""Dict-backed catalog repository.

Per-process only. Used by tests, local development and demos; the data
lives as long as the repository object.
"""

from __future__ import annotations

import threading
from typing import Iterable, Mapping, Sequence

from pine_erp.adapters.catalog.base import (
    AbstractCatalogRepository,
    CatalogProduct,
    OrderSnapshot,
    RecommendationLink,
)

COMPLETED = "COMPLETED"


class InMemoryCatalogRepository(AbstractCatalogRepository):
    def __init__(
        self,
        *,
        locations: Iterable[str] = (),
        products: Iterable[CatalogProduct] = (),
        stock: Mapping[tuple[str, str], int] | None = None,
        orders: Iterable[OrderSnapshot] = (),
        links: Iterable[RecommendationLink] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._locations = set(locations)
        self._products = {product.id: product for product in products}
        # keyed by (product_id, location_id)
        self._stock: dict[tuple[str, str], int] = dict(stock or {})
        self._orders = list(orders)
        self._links = list(links)

    def has_location(self, location_id: str) -> bool:
        return location_id in self._locations

    def get_product(self, product_id: str) -> CatalogProduct | None:
        return self._products.get(product_id)

    def list_products(self) -> list[CatalogProduct]:
        return list(self._products.values())

    def stock_level(self, product_id: str, location_id: str) -> int:
        return self._stock.get((product_id, location_id), 0)

    def set_stock_level(self, product_id: str, location_id: str, units: int) -> None:
        with self._lock:
            self._stock[(product_id, location_id)] = units

    def add_order(self, order: OrderSnapshot) -> None:
        with self._lock:
            self._orders.append(order)

    def find_recommendation_links(
        self, product_ids: Sequence[str], *, limit: int
    ) -> list[RecommendationLink]:
        wanted = set(product_ids)
        with self._lock:
            matching = [link for link in self._links if link.product_id in wanted]
        matching.sort(key=lambda link: link.strength, reverse=True)
        return matching[:limit]

    def completed_orders(self) -> list[OrderSnapshot]:
        with self._lock:
            return [order for order in self._orders if order.status == COMPLETED]

    def replace_recommendation_links(self, links: Iterable[RecommendationLink]) -> int:
        with self._lock:
            self._links = list(links)
            return len(self._links)

    def add_recommendation_links(self, links: Iterable[RecommendationLink]) -> int:
        with self._lock:
            existing = {(link.product_id, link.recommended_product_id) for link in self._links}
            added = 0
            for link in links:
                pair = (link.product_id, link.recommended_product_id)
                if pair in existing:
                    continue
                existing.add(pair)
                self._links.append(link)
                added += 1
            return added


def build_demo_catalog() -> InMemoryCatalogRepository:
    """Small two-yard lumber catalog with enough history to produce pairs."""

    products = [
        CatalogProduct("prod-stud-2x4", "2x4x8 SPF Stud", "LUM-2408", "Lumber", 4.28),
        CatalogProduct("prod-joist-2x6", "2x6x10 #2 Pine", "LUM-2610", "Lumber", 9.75),
        CatalogProduct("prod-ply-34", "3/4 in. 4x8 Plywood", "PLY-3448", "Sheet Goods", 52.10),
        CatalogProduct("prod-deck-screw", "3 in. Deck Screws (5 lb)", "FAS-DS3", "Fasteners", 38.97),
        CatalogProduct("prod-frame-nail", "16d Framing Nails (50 lb)", "FAS-N16", "Fasteners", 74.50),
        CatalogProduct("prod-adhesive", "Construction Adhesive 28 oz", "ADH-28", "Adhesives", 7.48),
        CatalogProduct("prod-hanger", "2x6 Joist Hanger", "HDW-JH26", "Hardware", 1.92),
    ]
    locations = ["loc-main", "loc-north"]

    stock = {(product.id, "loc-main"): 120 for product in products}
    stock.update({(product.id, "loc-north"): 40 for product in products})
    stock[("prod-hanger", "loc-north")] = 0

    orders = [
        OrderSnapshot("ord-1001", COMPLETED, ("prod-stud-2x4", "prod-frame-nail", "prod-adhesive")),
        OrderSnapshot("ord-1002", COMPLETED, ("prod-stud-2x4", "prod-frame-nail")),
        OrderSnapshot("ord-1003", COMPLETED, ("prod-stud-2x4", "prod-frame-nail", "prod-ply-34")),
        OrderSnapshot("ord-1004", COMPLETED, ("prod-joist-2x6", "prod-hanger", "prod-deck-screw")),
        OrderSnapshot("ord-1005", COMPLETED, ("prod-joist-2x6", "prod-hanger")),
        OrderSnapshot("ord-1006", COMPLETED, ("prod-joist-2x6", "prod-hanger", "prod-deck-screw")),
        OrderSnapshot("ord-1007", COMPLETED, ("prod-ply-34", "prod-adhesive", "prod-stud-2x4")),
        OrderSnapshot("ord-1008", "CANCELLED", ("prod-ply-34", "prod-deck-screw")),
        OrderSnapshot("ord-1009", "PENDING", ("prod-ply-34", "prod-deck-screw")),
    ]

    links = [
        RecommendationLink("prod-stud-2x4", "prod-frame-nail", 1.0, "frequently_bought_together"),
        RecommendationLink("prod-frame-nail", "prod-stud-2x4", 1.0, "frequently_bought_together"),
        RecommendationLink("prod-joist-2x6", "prod-hanger", 1.0, "frequently_bought_together"),
        RecommendationLink("prod-hanger", "prod-joist-2x6", 1.0, "frequently_bought_together"),
        RecommendationLink("prod-stud-2x4", "prod-deck-screw", 0.8, "project_bundle"),
        RecommendationLink("prod-joist-2x6", "prod-deck-screw", 0.8, "project_bundle"),
        RecommendationLink("prod-ply-34", "prod-adhesive", 0.67, "frequently_bought_together"),
    ]

    return InMemoryCatalogRepository(
        locations=locations,
        products=products,
        stock=stock,
        orders=orders,
        links=links,
    )
