"""Tests for global exception handlers.

Every domain error maps to a stable status code and the same JSON envelope;
unexpected exceptions never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from pine_erp.core.errors import (
    AppError,
    NotFoundAppError,
    RateLimitExceededError,
    RecommendationAppError,
    ValidationAppError,
)
from pine_erp.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def handler_client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _body(response: JSONResponse) -> dict:
    return json.loads(bytes(response.body).decode())


class TestAppErrorHandler:
    def test_validation_error_returns_400(self, handler_client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def boom():
            raise ValidationAppError(code="location_id_required", message="locationId required")

        response = handler_client.get("/boom")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "location_id_required"
        assert error["message"] == "locationId required"
        assert "request_id" in error
        assert "details" not in error

    def test_details_are_included_when_present(self, handler_client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def boom():
            raise NotFoundAppError(
                code="location_not_found",
                message="Unknown location",
                details={"location_id": "loc-x"},
            )

        response = handler_client.get("/boom")

        assert response.status_code == 404
        assert response.json()["error"]["details"] == {"location_id": "loc-x"}

    def test_recommendation_error_returns_500(self, handler_client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/boom")
        async def boom():
            raise RecommendationAppError(code="recommendations_unavailable", message="try later")

        response = handler_client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "recommendations_unavailable"


class TestRateLimitHandler:
    def test_prebuilt_response_is_returned_verbatim(
        self, handler_client: TestClient, app_with_handlers: FastAPI
    ):
        prebuilt = JSONResponse(
            status_code=429,
            content={"error": "Too many requests", "message": "wait", "retryAfter": 7},
            headers={"Retry-After": "7"},
        )

        @app_with_handlers.get("/limited")
        async def limited():
            raise RateLimitExceededError(
                code="rate_limit_exceeded", message="wait", response=prebuilt
            )

        response = handler_client.get("/limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "7"
        assert response.json()["retryAfter"] == 7

    def test_fallback_without_response(self, handler_client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/limited")
        async def limited():
            raise RateLimitExceededError(
                code="rate_limit_exceeded",
                message="Rate limit exceeded. Try again in 3 seconds.",
                details={"retry_after": 3},
            )

        response = handler_client.get("/limited")

        assert response.status_code == 429
        assert response.json() == {
            "error": "Too many requests",
            "message": "Rate limit exceeded. Try again in 3 seconds.",
            "retryAfter": 3,
        }


class TestGeneralExceptionHandler:
    def test_unexpected_exception_returns_generic_500(
        self, handler_client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/crash")
        async def crash():
            raise RuntimeError("connection to catalog db failed")

        response = handler_client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "catalog db" not in response.text

    def test_handler_never_leaks_stack_trace(self):
        request = AsyncMock()
        request.url.path = "/v1/recommendations"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("secret detail")))

        text = bytes(response.body).decode()
        assert response.status_code == 500
        assert "Traceback" not in text
        assert "ValueError" not in text
        assert "secret detail" not in text
        assert "request_id" in _body(response)["error"]


def test_setup_registers_all_handlers(app_with_handlers: FastAPI):
    for exc_type in (RateLimitExceededError, AppError, Exception):
        assert exc_type in app_with_handlers.exception_handlers


def test_repeated_setup_is_safe():
    app = FastAPI()
    setup_exception_handlers(app)
    setup_exception_handlers(app)

    assert AppError in app.exception_handlers
