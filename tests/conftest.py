"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import that might load settings.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from pine_erp.adapters.catalog import InMemoryCatalogRepository, build_demo_catalog
from pine_erp.core.app_factory import create_app


class FakeClock:
    """Deterministic clock used to test windows and expiration."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> InMemoryCatalogRepository:
    return build_demo_catalog()


@pytest.fixture
def app(clock: FakeClock, catalog: InMemoryCatalogRepository) -> FastAPI:
    return create_app(clock=clock, repository=catalog)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
