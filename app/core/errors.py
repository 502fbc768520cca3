"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    allowed_types: list[str]
    data_type: str
    limit: int
    remaining: int
    reset_at: int
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
    """Raised when input validation fails."""


class AuthenticationAppError(AppError):
    """Raised when the API key is missing or wrong.

    ``status_code`` distinguishes a missing key (401) from a rejected one (403).
    """

    status_code: int = 403

    def __init__(
        self,
        code: str,
        message: str,
        details: ErrorDetails | None = None,
        *,
        status_code: int = 403,
    ) -> None:
        super().__init__(code=code, message=message, details=details)
        self.status_code = status_code


class ConfigurationAppError(AppError):
    """Raised when the server is missing required configuration."""


class RateLimitExceededError(AppError):
    """Raised by the HTTP layer when a rate limit check is rejected."""

    def __init__(
        self,
        message: str,
        *,
        retry_after: int,
        headers: dict[str, str] | None = None,
        details: ErrorDetails | None = None,
    ) -> None:
        super().__init__(code="rate_limit_exceeded", message=message, details=details)
        self.retry_after = retry_after
        self.headers = headers or {}


class DataNotFoundError(AppError):
    """Raised when a requested strategy document does not exist."""


class DataStoreError(AppError):
    """Raised when reading or writing a strategy document fails."""
