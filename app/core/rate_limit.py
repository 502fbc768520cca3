"""Rate limiting presets and FastAPI dependencies.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency factory only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Per-endpoint quotas: each route picks an endpoint tag and a named preset.

Rate limiting strategy:
- Sliding window per (endpoint tag, client identity).
- Client identity comes from proxy headers, the peer address, or a hash of
  the user agent (see app.core.client_identity).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import SlidingWindowRateLimiter
from app.core.client_identity import get_client_id, hash_client_id
from app.core.config import RateLimitSettings, settings
from app.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000


@dataclass(frozen=True)
class RateLimitPreset:
    """Named quota: at most ``max_requests`` per ``window_ms``."""

    max_requests: int
    window_ms: int


# Built-in defaults; the first four can be overridden via RATE_LIMIT_* env vars
_DEFAULT_PRESETS: dict[str, RateLimitPreset] = {
    "MARKET_INTELLIGENCE": RateLimitPreset(max_requests=1, window_ms=15 * MINUTE_MS),
    "DATA_OPS": RateLimitPreset(max_requests=10, window_ms=MINUTE_MS),
    "REPORTS": RateLimitPreset(max_requests=5, window_ms=MINUTE_MS),
    "CHAT": RateLimitPreset(max_requests=20, window_ms=MINUTE_MS),
    "DEFAULT": RateLimitPreset(max_requests=10, window_ms=MINUTE_MS),
}


def _parse_override(name: str, raw: str | None, default: int) -> int:
    """Parse a positive integer override, falling back to ``default``."""
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        logger.warning(
            "rate_limit.invalid_override",
            extra={"preset": name, "raw_value": raw, "fallback": default},
        )
        return default
    if value < 1:
        logger.warning(
            "rate_limit.invalid_override",
            extra={"preset": name, "raw_value": raw, "fallback": default},
        )
        return default
    return value


def build_presets(overrides: RateLimitSettings) -> dict[str, RateLimitPreset]:
    """Apply environment overrides to the built-in preset table.

    Args:
        overrides: Raw RATE_LIMIT_* values.

    Returns:
        Mapping of preset name to resolved preset.
    """
    raw_by_name = {
        "MARKET_INTELLIGENCE": overrides.market_intelligence,
        "DATA_OPS": overrides.data_ops,
        "REPORTS": overrides.reports,
        "CHAT": overrides.chat,
    }
    presets = dict(_DEFAULT_PRESETS)
    for name, raw in raw_by_name.items():
        default = _DEFAULT_PRESETS[name]
        presets[name] = RateLimitPreset(
            max_requests=_parse_override(name, raw, default.max_requests),
            window_ms=default.window_ms,
        )
    return presets


# Resolved once at import time (process start)
RATE_LIMIT_PRESETS: dict[str, RateLimitPreset] = build_presets(settings.rate_limit)


def get_rate_limit_preset(name: str) -> RateLimitPreset:
    """Return the named preset, or ``DEFAULT`` for unknown names."""
    return RATE_LIMIT_PRESETS.get(name.upper(), RATE_LIMIT_PRESETS["DEFAULT"])


_limiter: AbstractRateLimiter | None = None


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    """

    global _limiter

    if _limiter is None:
        _limiter = SlidingWindowRateLimiter()
    return _limiter


def reset_rate_limiter() -> None:
    """Drop the process-wide limiter so the next request starts fresh."""

    global _limiter
    _limiter = None


def _build_headers(result: RateLimitResult, preset: RateLimitPreset, retry_after: int | None) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(preset.max_requests),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at // 1000),
    }
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return headers


def rate_limit(endpoint: str, preset_name: str = "DEFAULT") -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing ``preset_name`` on ``endpoint``.

    Usage:
        @router.get("/data", dependencies=[Depends(rate_limit("data-read", "DATA_OPS"))])

    Args:
        endpoint: Tag namespacing the quota (e.g. "data-read").
        preset_name: Name of the preset to apply.

    Returns:
        Async dependency raising RateLimitExceededError when throttled.
    """

    async def enforce_rate_limit(request: Request) -> None:
        if not settings.app.rate_limit_enabled:
            return

        preset = get_rate_limit_preset(preset_name)
        client_id = get_client_id(
            request.headers,
            request.client.host if request.client else None,
        )
        limiter = get_rate_limiter()
        now_ms = limiter.now()
        result = limiter.check(client_id, endpoint, preset.max_requests, preset.window_ms, now=now_ms)
        client_hash = hash_client_id(client_id)

        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "endpoint": endpoint,
                    "client_hash": client_hash,
                    "limit": preset.max_requests,
                    "remaining": result.remaining,
                },
            )
            if settings.app.rate_limit_include_headers:
                request.state.rate_limit_headers = _build_headers(result, preset, None)
            return

        retry_after = result.retry_after_seconds(now_ms)
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "endpoint": endpoint,
                "client_hash": client_hash,
                "limit": preset.max_requests,
                "window_ms": preset.window_ms,
                "retry_after_s": retry_after,
            },
        )

        headers: dict[str, str] = {}
        if settings.app.rate_limit_include_headers:
            headers = _build_headers(result, preset, retry_after)

        raise RateLimitExceededError(
            result.error or "Rate limit exceeded.",
            retry_after=retry_after,
            headers=headers,
            details={"limit": preset.max_requests, "reset_at": result.reset_at},
        )

    return enforce_rate_limit

