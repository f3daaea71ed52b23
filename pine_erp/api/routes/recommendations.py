from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from pine_erp.core.rate_limit import RateLimitPresets, rate_limit
from pine_erp.schemas.recommendations import (
    CacheFlushResult,
    CacheStats,
    RebuildSummary,
    Recommendation,
)
from pine_erp.services.recommendation_service import RecommendationService

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


def get_recommendation_service(request: Request) -> RecommendationService:
    """Return the service wired by the application factory."""
    return request.app.state.recommendation_service


ServiceDep = Annotated[RecommendationService, Depends(get_recommendation_service)]


@router.get(
    "",
    response_model=list[Recommendation],
    dependencies=[Depends(rate_limit(RateLimitPresets.STANDARD, scope="recommendations.read"))],
)
def get_recommendations(
    service: ServiceDep,
    location_id: Annotated[
        str,
        Query(alias="locationId", description="Yard location the cart ships from."),
    ] = "",
    product_ids: Annotated[
        str,
        Query(alias="productIds", description="Comma-separated ids of the products in the cart."),
    ] = "",
) -> list[Recommendation]:
    """Suggest products frequently bought with the given cart.

    Missing parameters are reported by the service as ``ValidationAppError``
    so the error body matches the rest of the API.

    Returns:
        Up to ``RECS_MAX_RESULTS`` recommendations, strongest first.
    """
    return list(service.recommend(location_id.strip(), product_ids.split(",")))


@router.post(
    "/rebuild",
    response_model=RebuildSummary,
    dependencies=[Depends(rate_limit(RateLimitPresets.STRICT, scope="recommendations.admin"))],
)
def rebuild_recommendations(service: ServiceDep) -> RebuildSummary:
    """Recompute links from completed orders and invalidate every cached list."""
    report = service.rebuild()
    return RebuildSummary(
        orders_analyzed=report.orders_analyzed,
        pairs_found=report.pairs_found,
        recommendations_created=len(report.links),
    )


@router.post(
    "/seed-demo",
    dependencies=[Depends(rate_limit(RateLimitPresets.STRICT, scope="recommendations.admin"))],
)
def seed_demo_recommendations(service: ServiceDep) -> dict[str, int]:
    return {"added": service.seed_demo()}


@router.get(
    "/cache",
    response_model=CacheStats,
    dependencies=[Depends(rate_limit(RateLimitPresets.GENEROUS, scope="recommendations.cache"))],
)
def get_cache_stats(service: ServiceDep) -> CacheStats:
    return CacheStats(**service.cache.stats())


@router.delete(
    "/cache",
    response_model=CacheFlushResult,
    dependencies=[Depends(rate_limit(RateLimitPresets.STRICT, scope="recommendations.admin"))],
)
def clear_cache(service: ServiceDep) -> CacheFlushResult:
    return CacheFlushResult(cleared=service.cache.clear())
