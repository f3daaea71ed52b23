"""Rate limiting adapters.

This package provides a small abstraction layer so the per-process limiter
can later be replaced by a shared store without changing the API layer.
"""

from pine_erp.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from pine_erp.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from pine_erp.adapters.rate_limit.registry import RateLimiterRegistry

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
    "RateLimiterRegistry",
]
