"""Client identity derivation for rate limiting.

The limiter treats identities as opaque strings; this module decides which
piece of request metadata becomes that string.
"""

from __future__ import annotations

import hashlib
from typing import Mapping


def _hash_user_agent(user_agent: str) -> str:
    return hashlib.sha256(user_agent.encode("utf-8")).hexdigest()[:12]


def get_client_id(headers: Mapping[str, str], client_host: str | None) -> str:
    """Pick a stable identifier for the caller.

    Preference order: first ``X-Forwarded-For`` address, ``X-Real-IP``, the
    connection peer address, and finally a hash of the ``User-Agent``.

    Args:
        headers: Request headers (case-insensitive mapping, e.g. Starlette's).
        client_host: Peer address reported by the server, if any.

    Returns:
        Client identity string.

    Examples:
        >>> get_client_id({"x-forwarded-for": "203.0.113.7, 10.0.0.1"}, "10.0.0.2")
        '203.0.113.7'
        >>> get_client_id({}, "10.0.0.2")
        '10.0.0.2'
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    if client_host:
        return client_host

    user_agent = headers.get("user-agent") or "unknown"
    return f"ua-{_hash_user_agent(user_agent)}"


def hash_client_id(client_id: str) -> str:
    """Hash a client id for logging without exposing addresses."""
    return hashlib.sha256(client_id.encode("utf-8")).hexdigest()[:16]
