"""Exception handlers that turn domain errors into JSON responses.

Domain errors share one envelope, ``{"error": {code, message, request_id,
details?}}``. Throttled requests get the limiter's own 429 body instead, and
anything unexpected becomes an opaque 500.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from pine_erp.core.errors import (
    AppError,
    NotFoundAppError,
    RateLimitExceededError,
    RecommendationAppError,
)
from pine_erp.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, NotFoundAppError):
        return 404
    if isinstance(exc, RecommendationAppError):
        return 500
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an ``AppError`` in the shared error envelope."""
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceededError
) -> JSONResponse:
    """Surface the limiter's pre-built 429 response to the client."""
    if exc.response is not None:
        return exc.response

    # Built without a response (e.g. raised directly by a handler)
    return JSONResponse(
        status_code=429,
        content={
            "error": "Too many requests",
            "message": exc.message,
            "retryAfter": (exc.details or {}).get("retry_after", 0),
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure with its traceback and answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=exc,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register the handlers, most specific first."""
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
