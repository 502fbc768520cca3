"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, including the cleanup sweep.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitEntry, RateLimitResult

logger = logging.getLogger(__name__)

# Housekeeping runs lazily on the first check after this interval
CLEANUP_INTERVAL_MS = 5 * 60 * 1000

DEFAULT_MAX_REQUESTS = 10
DEFAULT_WINDOW_MS = 60 * 1000


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def build_key(endpoint: str, client_id: str) -> str:
    """Compose the store key isolating one client on one endpoint."""
    return f"{endpoint}:{client_id}"


class SlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping every accepted timestamp within the window.

    Each ``(endpoint, client_id)`` pair gets its own list of timestamps. On
    every check the list is pruned to the trailing window before deciding,
    so the limit applies to any ``window_ms``-long interval ending now.

    Important:
        This limiter is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], int] = _epoch_ms,
        cleanup_interval_ms: int = CLEANUP_INTERVAL_MS,
    ) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source returning UNIX time in milliseconds.
            cleanup_interval_ms: Minimum delay between two cleanup sweeps.
        """
        self._clock = clock
        self._cleanup_interval_ms = cleanup_interval_ms
        self._lock = threading.RLock()
        self._store: dict[str, RateLimitEntry] = {}
        self._last_cleanup = clock()

    def __len__(self) -> int:
        return len(self._store)

    def now(self) -> int:
        return int(self._clock())

    def check(
        self,
        client_id: str,
        endpoint: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_ms: int = DEFAULT_WINDOW_MS,
        now: int | None = None,
    ) -> RateLimitResult:
        """Check and, when allowed, record one request.

        Rejected calls leave the stored timestamps untouched.

        Args:
            client_id: Opaque client identity (an empty string is still a key).
            endpoint: Caller-chosen tag namespacing the quota.
            max_requests: Maximum accepted requests per window.
            window_ms: Sliding window length in milliseconds.
            now: Current epoch milliseconds; defaults to the limiter clock.

        Returns:
            RateLimitResult with allowance decision and metadata.
        """
        if now is None:
            now = self._clock()
        key = build_key(endpoint, client_id)

        with self._lock:
            if now - self._last_cleanup > self._cleanup_interval_ms:
                self._sweep(now)
                self._last_cleanup = now

            entry = self._store.get(key)
            if entry is None:
                entry = RateLimitEntry(reset_at=now + window_ms, window_ms=window_ms)
                self._store[key] = entry
            entry.window_ms = max(entry.window_ms, window_ms)

            cutoff = now - window_ms
            entry.requests = [ts for ts in entry.requests if ts > cutoff]

            if len(entry.requests) >= max_requests:
                # Timestamps are appended in order, so the first one is the oldest
                reset_at = entry.requests[0] + window_ms if entry.requests else now
                retry_after = math.ceil((reset_at - now) / 1000)
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=reset_at,
                    error=f"Rate limit exceeded. Try again in {retry_after} seconds.",
                )

            entry.requests.append(now)
            entry.reset_at = now + window_ms
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - len(entry.requests),
                reset_at=entry.reset_at,
            )

    def _sweep(self, now: int) -> int:
        stale = [
            key
            for key, entry in self._store.items()
            if not any(ts > now - entry.window_ms for ts in entry.requests)
        ]
        for key in stale:
            del self._store[key]

        if stale:
            logger.info(
                "rate_limit.cleanup",
                extra={"removed_entries": len(stale), "remaining_entries": len(self._store)},
            )
        return len(stale)

    def cleanup(self, now: int | None = None) -> int:
        """Remove entries with no timestamp inside their window.

        Args:
            now: Current epoch milliseconds; defaults to the limiter clock.

        Returns:
            Number of removed entries.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            removed = self._sweep(now)
            self._last_cleanup = now
        return removed

    def reset(self, endpoint: str, client_id: str) -> None:
        with self._lock:
            self._store.pop(build_key(endpoint, client_id), None)

    def get_status(self, endpoint: str, client_id: str) -> RateLimitEntry | None:
        """Return a copy of the stored entry, or None when the key is unknown."""
        with self._lock:
            entry = self._store.get(build_key(endpoint, client_id))
            if entry is None:
                return None
            return RateLimitEntry(
                requests=list(entry.requests),
                reset_at=entry.reset_at,
                window_ms=entry.window_ms,
            )
