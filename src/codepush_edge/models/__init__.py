from __future__ import annotations

from codepush_edge.models.cache import CachedResponse
from codepush_edge.models.http import ProxyRequest, ProxyResponse
from codepush_edge.models.ledger import ClientIdentity, FreshnessRecord, FreshnessState

__all__ = [
    # ledger
    "ClientIdentity",
    "FreshnessRecord",
    "FreshnessState",
    # cache
    "CachedResponse",
    # http
    "ProxyRequest",
    "ProxyResponse",
]
