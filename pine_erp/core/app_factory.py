"""Application factory for the FastAPI app.

The factory is the composition root: it builds the process-wide stores
(rate limiters, recommendation cache) and the catalog repository once and
hangs them off ``app.state`` so route dependencies reach them by reference.
"""

from __future__ import annotations

import time
from typing import Callable

from fastapi import FastAPI

from pine_erp.adapters.catalog import AbstractCatalogRepository, build_demo_catalog
from pine_erp.adapters.rate_limit import RateLimiterRegistry
from pine_erp.api.routes import health_router, recommendations_router
from pine_erp.core.config import settings
from pine_erp.core.exception_handlers import setup_exception_handlers
from pine_erp.core.logging import configure_logging
from pine_erp.core.middleware import request_id_middleware
from pine_erp.core.openapi import apply_openapi_customizations
from pine_erp.services.recommendation_cache import RecommendationCache
from pine_erp.services.recommendation_service import RecommendationService


def create_app(
    *,
    clock: Callable[[], float] = time.time,
    repository: AbstractCatalogRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        clock: Time source shared by the rate limiters and the cache.
        repository: Catalog data access; defaults to the demo catalog.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and state.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Pine ERP API",
        description=(
            "Lumber-yard ERP services: product recommendations per yard "
            "location, guarded by per-client rate limits and backed by a "
            "TTL cache."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    app.state.rate_limiters = RateLimiterRegistry(
        clock=clock,
        sweep_every=settings.app.rate_limit_sweep_every,
    )
    app.state.recommendation_cache = RecommendationCache(
        ttl_seconds=settings.cache.recommendations_ttl_seconds,
        check_period_seconds=settings.cache.recommendations_check_period_seconds,
        clock=clock,
    )
    app.state.catalog = repository if repository is not None else build_demo_catalog()
    app.state.recommendation_service = RecommendationService(
        repository=app.state.catalog,
        cache=app.state.recommendation_cache,
        max_results=settings.recommendations.max_results,
        candidate_pool=settings.recommendations.candidate_pool,
        min_pair_occurrences=settings.recommendations.min_pair_occurrences,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(recommendations_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
