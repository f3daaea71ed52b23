"""OpenAPI customization.

Adds tag descriptions and documents the 429 response (with its throttling
headers) on every rate-limited operation.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Recommendations",
        "description": "Frequently-bought-together suggestions and cache administration.",
    },
    {
        "name": "Health",
        "description": "Liveness checks. Never rate limited.",
    },
]

RATE_LIMITED_RESPONSE: Dict[str, Any] = {
    "description": "Too many requests from this client in the current window.",
    "headers": {
        "Retry-After": {"description": "Seconds until the window resets.", "schema": {"type": "integer"}},
        "X-RateLimit-Limit": {"description": "Requests allowed per window.", "schema": {"type": "integer"}},
        "X-RateLimit-Remaining": {"description": "Always 0 on a 429.", "schema": {"type": "integer"}},
        "X-RateLimit-Reset": {
            "description": "ISO-8601 UTC instant at which the window resets.",
            "schema": {"type": "string", "format": "date-time"},
        },
    },
    "content": {
        "application/json": {
            "example": {
                "error": "Too many requests",
                "message": "Rate limit exceeded. Try again in 42 seconds.",
                "retryAfter": 42,
            }
        }
    },
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation with tags and 429 documentation."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        # Everything except health checks sits behind a limiter
        for path, methods in schema.get("paths", {}).items():
            if path.endswith("/health"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj.setdefault("responses", {}).setdefault("429", RATE_LIMITED_RESPONSE)

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
