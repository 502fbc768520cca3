"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
Environment defaults are set before any import that might load settings.
"""

import os

os.environ["APP_ENV"] = "testing"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEY", "test-api-key-123")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")

import pytest

from app.core.rate_limit import reset_rate_limiter


@pytest.fixture(autouse=True)
def _fresh_rate_limiter():
    """Give every test an empty process-wide limiter."""
    reset_rate_limiter()
    yield
    reset_rate_limiter()
