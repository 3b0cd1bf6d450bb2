from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import asyncio

    import httpx

    from codepush_edge.cache import ResponseCache
    from codepush_edge.config import Settings
    from codepush_edge.gate import CacheGate
    from codepush_edge.interceptor import UpdateCheckInterceptor
    from codepush_edge.ledger import Ledger
    from codepush_edge.origin import OriginClient
    from codepush_edge.router import Router


@dataclass
class AppState:
    """Everything a request handler needs, built once at startup."""

    settings: Settings
    http_client: httpx.AsyncClient
    ledger: Ledger
    cache: ResponseCache
    origin: OriginClient
    interceptor: UpdateCheckInterceptor
    gate: CacheGate
    router: Router
    background_tasks: set[asyncio.Task[None]] = field(default_factory=set)
