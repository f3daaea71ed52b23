from __future__ import annotations

from pine_erp.api.routes.health import router as health_router
from pine_erp.api.routes.recommendations import router as recommendations_router

__all__ = ["health_router", "recommendations_router"]
