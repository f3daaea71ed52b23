"""Application-level exception types.

Domain errors raised by services and adapters. The exception handlers in
``pine_erp.core.exception_handlers`` translate them into JSON responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from fastapi.responses import JSONResponse


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    parameter: str
    location_id: str
    product_ids: list[str]
    retry_after: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails validation."""


class NotFoundAppError(AppError):
    """Raised when a referenced entity (e.g. a location) does not exist."""


class RecommendationAppError(AppError):
    """Raised when the catalog repository or recommendation engine fails."""


@dataclass
class RateLimitExceededError(AppError):
    """Raised by the rate limit dependency when a client is over quota.

    Carries the limiter's pre-built 429 response so the handler can return it
    unchanged.
    """

    response: JSONResponse | None = field(default=None, repr=False)
