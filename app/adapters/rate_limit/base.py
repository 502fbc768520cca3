"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap storage backends later (e.g., Redis) with minimal changes.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class RateLimitEntry:
    """Per-key sliding window state.

    Attributes:
        requests: Accepted request timestamps (epoch ms), oldest first.
        reset_at: Convenience timestamp recomputed on every check.
        window_ms: Largest window this key has been checked against; used by
            the cleanup sweep to decide whether the entry is still live.
    """

    requests: list[int] = field(default_factory=list)
    reset_at: int = 0
    window_ms: int = 0

    @property
    def count(self) -> int:
        return len(self.requests)


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: Epoch milliseconds when the window will have room again.
        error: Human-readable message when blocked.
    """

    allowed: bool
    remaining: int
    reset_at: int
    error: str | None = None

    def retry_after_seconds(self, now_ms: int) -> int:
        """Whole seconds (rounded up) until ``reset_at``, never negative."""
        return max(0, math.ceil((self.reset_at - now_ms) / 1000))


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def now(self) -> int:
        """Current time in epoch milliseconds according to the limiter clock."""
        raise NotImplementedError

    @abstractmethod
    def check(
        self,
        client_id: str,
        endpoint: str,
        max_requests: int = 10,
        window_ms: int = 60_000,
        now: int | None = None,
    ) -> RateLimitResult:
        """Record a request for ``endpoint``/``client_id`` if the quota allows.

        Args:
            client_id: Opaque client identity (IP address, hash, ...).
            endpoint: Caller-chosen tag namespacing the quota.
            max_requests: Maximum accepted requests per window.
            window_ms: Sliding window length in milliseconds.
            now: Current epoch milliseconds; defaults to the limiter clock.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup(self, now: int | None = None) -> int:
        """Drop entries without live timestamps and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def reset(self, endpoint: str, client_id: str) -> None:
        """Forget all state for one key."""
        raise NotImplementedError

    @abstractmethod
    def get_status(self, endpoint: str, client_id: str) -> RateLimitEntry | None:
        """Return a snapshot of the entry for one key, or None."""
        raise NotImplementedError
