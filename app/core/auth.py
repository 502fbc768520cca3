"""API key authentication logic.

All ``/api/*`` routes (except the health check) require the static shared
secret configured in ``APP_API_KEY`` to be sent in the ``X-API-Key`` header.

Design principles:
- Single Responsibility: only handles API key validation
- Constant-time comparison: ``hmac.compare_digest`` on the encoded key
- Configuration-driven: the key is managed via env vars, not hardcoded
- Testable: pure validation function plus a thin HTTP middleware
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from fastapi import Request, Response

from app.core.client_identity import get_client_id
from app.core.config import settings
from app.core.errors import AuthenticationAppError, ConfigurationAppError
from app.core.exception_handlers import build_error_response

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
PROTECTED_PREFIX = "/api/"
PUBLIC_PATHS = frozenset({"/api/health"})


def keys_match(provided: str, expected: str) -> bool:
    """Compare two keys in constant time.

    Length differences short-circuit inside ``compare_digest``; key length is
    not treated as secret.
    """
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def validate_api_key(provided_key: str | None) -> None:
    """Validate the provided API key against configuration.

    Pure validation logic without HTTP dependencies for easy testing.

    Args:
        provided_key: Value of the X-API-Key header, or None when absent.

    Raises:
        ConfigurationAppError: If auth is required but no key is configured.
        AuthenticationAppError: 401 when the key is missing, 403 when wrong.
    """
    if not settings.app.api_key_required:
        return

    expected = settings.app.api_key
    if not expected:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_key_not_configured"},
        )
        raise ConfigurationAppError(
            code="server_misconfigured",
            message="API authentication not properly configured",
        )

    if not provided_key:
        details = None
        if settings.app.debug:
            details = {"hint": 'Add header: { "X-API-Key": "your-api-key" }'}
        raise AuthenticationAppError(
            code="authentication_required",
            message="Missing API key. Include X-API-Key header in your request.",
            details=details,
            status_code=401,
        )

    if not keys_match(provided_key, expected):
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid API key provided",
            status_code=403,
        )


def requires_api_key(path: str) -> bool:
    """Return True when ``path`` is behind API key authentication."""
    return path.startswith(PROTECTED_PREFIX) and path not in PUBLIC_PATHS


async def api_key_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing API key authentication on ``/api/*``.

    Errors are rendered here rather than raised: exceptions leaving an HTTP
    middleware bypass the application's exception handlers.

    Usage:
        app.middleware("http")(api_key_middleware)
    """
    path = request.url.path
    if not requires_api_key(path):
        return await call_next(request)

    provided = request.headers.get(API_KEY_HEADER)
    try:
        validate_api_key(provided)
    except AuthenticationAppError as exc:
        if exc.code == "invalid_api_key" and provided:
            logger.warning(
                "auth.invalid_key",
                extra={
                    "path": path,
                    "client_id": get_client_id(
                        request.headers,
                        request.client.host if request.client else None,
                    ),
                    "api_key_hash": hashlib.sha256(provided.encode()).hexdigest()[:16],
                },
            )
        else:
            logger.info("auth.missing_key", extra={"path": path})
        return build_error_response(exc)
    except ConfigurationAppError as exc:
        return build_error_response(exc)

    return await call_next(request)
