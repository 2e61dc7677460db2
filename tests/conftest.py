"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment variables are set before any app import so the settings object
is built with test values.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_API_TOKENS", "editor-token:1,viewer-token:2,admin-token:3")
os.environ.setdefault("APP_ROLE_ASSIGNMENTS", "1:editor,3:super_admin")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.services.rate_limiter import build_rate_limiter


@pytest.fixture
def clock() -> Mock:
    """Controllable time source for the rate limiter."""
    return Mock(return_value=1_000.0)


@pytest.fixture
def app(clock: Mock):
    """Fresh application (fresh buckets, pages and roles) per test."""
    return create_app(rate_limiter=build_rate_limiter(clock=clock))


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def editor_headers() -> dict[str, str]:
    return {"Authorization": "Bearer editor-token"}


@pytest.fixture
def viewer_headers() -> dict[str, str]:
    return {"Authorization": "Bearer viewer-token"}


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": "Bearer admin-token"}
