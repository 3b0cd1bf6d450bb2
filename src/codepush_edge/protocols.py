"""Interfaces for the two stores the decision engine depends on.

The interceptor and the gate only ever see these protocols, so tests can swap
in in-memory fakes and deployments can swap in another substrate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from codepush_edge.models.cache import CachedResponse
    from codepush_edge.models.http import ProxyResponse


class LedgerProtocol(Protocol):
    """Durable string map with per-entry TTL."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or ``None`` if absent, expired or unreadable."""
        ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value`` under ``key``. Returns ``False`` on failure, never raises."""
        ...


class ResponseCacheProtocol(Protocol):
    """Response store keyed by a normalized request descriptor."""

    async def match(self, cache_key: str) -> CachedResponse | None: ...

    async def put(self, cache_key: str, response: ProxyResponse, ttl_seconds: int) -> None: ...
