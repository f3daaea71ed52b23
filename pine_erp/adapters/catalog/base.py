"""Catalog repository interface.

Services read products, stock and order history through this abstraction.
The production deployment backs it with the ERP database; tests and local
development use the in-memory implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Sequence


@dataclass(frozen=True)
class CatalogProduct:
    id: str
    name: str
    sku: str
    category: str
    base_price: float


@dataclass(frozen=True)
class RecommendationLink:
    """A directed "customers who bought X also bought Y" edge."""

    product_id: str
    recommended_product_id: str
    strength: float
    reason: str
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class OrderSnapshot:
    """The parts of an order the recommendation engine looks at."""

    id: str
    status: str
    product_ids: tuple[str, ...]


class AbstractCatalogRepository(ABC):
    """Read/write access to the catalog data recommendations depend on."""

    @abstractmethod
    def has_location(self, location_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_product(self, product_id: str) -> CatalogProduct | None:
        raise NotImplementedError

    @abstractmethod
    def list_products(self) -> list[CatalogProduct]:
        raise NotImplementedError

    @abstractmethod
    def stock_level(self, product_id: str, location_id: str) -> int:
        """Units on hand for a product at a location (0 when untracked)."""
        raise NotImplementedError

    @abstractmethod
    def find_recommendation_links(
        self, product_ids: Sequence[str], *, limit: int
    ) -> list[RecommendationLink]:
        """Return the ``limit`` strongest links whose source is in ``product_ids``.

        Links are ordered by strength, strongest first.
        """
        raise NotImplementedError

    @abstractmethod
    def completed_orders(self) -> list[OrderSnapshot]:
        raise NotImplementedError

    @abstractmethod
    def replace_recommendation_links(self, links: Iterable[RecommendationLink]) -> int:
        """Drop every stored link and insert ``links``; return how many were stored."""
        raise NotImplementedError

    @abstractmethod
    def add_recommendation_links(self, links: Iterable[RecommendationLink]) -> int:
        """Insert ``links``, skipping (source, target) pairs that already exist."""
        raise NotImplementedError
