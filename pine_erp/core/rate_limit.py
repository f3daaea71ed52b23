"""Rate limiting for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer:

- ``RateLimitConfig`` / ``RateLimitPresets`` describe quotas per endpoint class.
- ``get_client_identifier`` derives the limiter key from request headers.
- ``check_rate_limit`` performs the admission check and, when the client is
  over quota, pre-builds the 429 response.
- ``rate_limit`` turns a config into a route dependency.

Client identity comes from forwarded headers, which any client can forge.
This is abuse damping in front of expensive endpoints, not an
authentication boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse

from pine_erp.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from pine_erp.adapters.rate_limit.registry import RateLimiterRegistry
from pine_erp.core.config import settings
from pine_erp.core.errors import RateLimitExceededError
from pine_erp.core.logging import hash_for_log

logger = logging.getLogger(__name__)

# Cap on the header-fingerprint fallback so odd clients can't grow keys unbounded
FALLBACK_IDENTIFIER_MAX_CHARS = 100


@dataclass(frozen=True)
class RateLimitConfig:
    """Quota applied to one class of endpoint.

    Attributes:
        max_requests: Requests admitted per window.
        window_seconds: Window length in seconds.
        identifier: Optional callable deriving the client key from the request
            (API key, user id, ...). Defaults to ``get_client_identifier``.
    """

    max_requests: int
    window_seconds: int
    identifier: Callable[[Request], str] | None = None

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


class RateLimitPresets:
    """Preset quotas for common endpoint classes."""

    # Login, signup, password reset
    AUTH = RateLimitConfig(max_requests=5, window_seconds=60)
    # Financial operations, exports, admin actions
    STRICT = RateLimitConfig(max_requests=10, window_seconds=60)
    # Regular CRUD, searches and lookups
    STANDARD = RateLimitConfig(max_requests=100, window_seconds=60)
    # Health checks, webhooks, public read-only data
    GENEROUS = RateLimitConfig(max_requests=1000, window_seconds=60)


@dataclass(frozen=True)
class RateLimitOutcome:
    """Result of ``check_rate_limit``.

    Attributes:
        limited: True when the request must be rejected.
        remaining: Requests left in the client's window (0 when limited).
        response: Ready-to-return 429 response when limited, else None.
        result: The raw limiter decision.
        identifier: Key the request was counted under.
    """

    limited: bool
    remaining: int
    response: JSONResponse | None
    result: RateLimitResult
    identifier: str


def get_client_identifier(request: Request, *, trust_proxy_headers: bool = True) -> str:
    """Derive the limiter key for a request.

    Resolution order:
    1. first entry of ``X-Forwarded-For``
    2. ``X-Real-IP``
    3. ``User-Agent`` and ``Accept-Language`` joined with ``-``, truncated

    With ``trust_proxy_headers=False`` the forwarded headers are skipped and
    the socket peer address is used instead. The function never fails:
    clients sending none of these headers share the degenerate key ``"-"``.
    """

    if trust_proxy_headers:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first = forwarded_for.split(",")[0].strip()
            if first:
                return first

        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip
    elif request.client and request.client.host:
        return request.client.host

    user_agent = request.headers.get("user-agent", "")
    accept_language = request.headers.get("accept-language", "")
    return f"{user_agent}-{accept_language}"[:FALLBACK_IDENTIFIER_MAX_CHARS]


def format_reset_time(reset_at: float) -> str:
    """Render a UNIX timestamp as ISO-8601 UTC with millisecond precision."""
    moment = datetime.fromtimestamp(reset_at, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_rate_limited_response(
    result: RateLimitResult, *, include_headers: bool = True
) -> JSONResponse:
    """Build the 429 response returned to a throttled client."""

    retry_after = result.retry_after_seconds or 0
    headers: dict[str, str] = {}
    if include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = format_reset_time(result.reset_at)

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "Too many requests",
            "message": f"Rate limit exceeded. Try again in {retry_after} seconds.",
            "retryAfter": retry_after,
        },
        headers=headers or None,
    )


def check_rate_limit(
    request: Request,
    config: RateLimitConfig,
    *,
    limiter: AbstractRateLimiter,
    trust_proxy_headers: bool | None = None,
    include_headers: bool | None = None,
) -> RateLimitOutcome:
    """Count ``request`` against its client's quota.

    Args:
        request: Incoming request; only its headers (and peer address) are read.
        config: Quota to apply. Must match the limiter's limit and window.
        limiter: Store holding the counters for this quota.
        trust_proxy_headers: Override ``settings.app.trust_proxy_headers``.
        include_headers: Override ``settings.app.rate_limit_include_headers``.

    Returns:
        RateLimitOutcome. Rejection is a normal outcome, not an exception.
    """

    if trust_proxy_headers is None:
        trust_proxy_headers = settings.app.trust_proxy_headers
    if include_headers is None:
        include_headers = settings.app.rate_limit_include_headers

    if config.identifier is not None:
        identifier = config.identifier(request)
    else:
        identifier = get_client_identifier(request, trust_proxy_headers=trust_proxy_headers)

    result = limiter.consume(identifier)
    if result.allowed:
        return RateLimitOutcome(
            limited=False,
            remaining=result.remaining,
            response=None,
            result=result,
            identifier=identifier,
        )

    return RateLimitOutcome(
        limited=True,
        remaining=0,
        response=build_rate_limited_response(result, include_headers=include_headers),
        result=result,
        identifier=identifier,
    )


def get_rate_limiter_registry(request: Request) -> RateLimiterRegistry:
    """Return the registry owned by the application.

    Apps built without ``create_app`` get one attached on first use.
    """

    registry = getattr(request.app.state, "rate_limiters", None)
    if registry is None:
        registry = RateLimiterRegistry(sweep_every=settings.app.rate_limit_sweep_every)
        request.app.state.rate_limiters = registry
    return registry


def rate_limit(
    config: RateLimitConfig, *, scope: str
) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing ``config`` under ``scope``.

    Usage:
        @router.post(
            "/recommendations/rebuild",
            dependencies=[Depends(rate_limit(RateLimitPresets.STRICT, scope="recs.rebuild"))],
        )

    Raises (from the dependency):
        RateLimitExceededError: carrying the 429 response when over quota.
    """

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.app.rate_limit_enabled:
            return

        limiter = get_rate_limiter_registry(request).get(
            scope,
            limit=config.max_requests,
            window_seconds=config.window_seconds,
        )
        outcome = check_rate_limit(request, config, limiter=limiter)

        log_fields: dict[str, Any] = {
            "scope": scope,
            "key_hash": hash_for_log(outcome.identifier),
            "limit": outcome.result.limit,
            "remaining": outcome.remaining,
            "window_s": config.window_seconds,
        }

        if not outcome.limited:
            logger.debug("rate_limit.allowed", extra=log_fields)
            return

        retry_after = outcome.result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={**log_fields, "retry_after_s": retry_after},
        )
        raise RateLimitExceededError(
            code="rate_limit_exceeded",
            message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            details={"retry_after": retry_after},
            response=outcome.response,
        )

    return enforce_rate_limit
