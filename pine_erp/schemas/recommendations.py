"""Pydantic schemas for product recommendations.

Models are frozen: recommendation lists are cached and shared between
requests without copying, so they must not be mutated after creation.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ProductSummary(BaseModel):
    """Minimal product view embedded in a recommendation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Product id.")
    name: str = Field(..., description="Display name, e.g. '2x4x8 SPF Stud'.")
    sku: str = Field(..., description="Stock keeping unit.")
    price: float = Field(..., ge=0, description="Base unit price.")


class Recommendation(BaseModel):
    """A product suggested alongside the products already in a cart."""

    model_config = ConfigDict(frozen=True)

    product: ProductSummary
    strength: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Relative confidence of the link, 1.0 being the strongest pair observed.",
    )
    reason: str = Field(
        ...,
        description="Why the product is suggested: 'frequently_bought_together', 'project_bundle', ...",
    )


class RebuildSummary(BaseModel):
    """Outcome of a recommendation rebuild from order history."""

    model_config = ConfigDict(populate_by_name=True)

    orders_analyzed: int = Field(..., alias="ordersAnalyzed")
    pairs_found: int = Field(..., alias="pairsFound")
    recommendations_created: int = Field(..., alias="recommendationsCreated")


class CacheStats(BaseModel):
    """Counters exposed by the recommendation cache."""

    ttl_seconds: int
    check_period_seconds: int
    keys: int
    hits: int
    misses: int
    evictions: int


class CacheFlushResult(BaseModel):
    cleared: int = Field(..., description="Number of cached recommendation lists dropped.")
