"""Catalog data access for the recommendation service."""

from pine_erp.adapters.catalog.base import (
    AbstractCatalogRepository,
    CatalogProduct,
    OrderSnapshot,
    RecommendationLink,
)
from pine_erp.adapters.catalog.in_memory import InMemoryCatalogRepository, build_demo_catalog

__all__ = [
    "AbstractCatalogRepository",
    "CatalogProduct",
    "InMemoryCatalogRepository",
    "OrderSnapshot",
    "RecommendationLink",
    "build_demo_catalog",
]
