"""Cache gate for status-report endpoints.

The gate consults the freshness ledger before it ever touches the response
cache:

    NO_RECORD  -> origin, no cache reads or writes
    STALE      -> origin, no cache reads or writes
    FRESH      -> cache hit served as-is; on a miss the origin response is
                  returned and, if it is a 200, stored in the background

Any failure inside that flow falls back to a plain origin fetch. Serving a
correct status report always wins over serving a cached one.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

from codepush_edge.freshness import cache_key_for, decode_record, identity_for_status_report
from codepush_edge.models.http import ProxyResponse
from codepush_edge.models.ledger import FreshnessState

if TYPE_CHECKING:
    from collections.abc import Iterable

    from codepush_edge.models.http import ProxyRequest
    from codepush_edge.models.ledger import ClientIdentity
    from codepush_edge.origin import OriginClient
    from codepush_edge.protocols import LedgerProtocol, ResponseCacheProtocol

log = structlog.get_logger()

CACHE_STATUS_HEADER = "x-cache-status"


class CacheStatus(StrEnum):
    BYPASS = "BYPASS"
    HIT = "HIT"
    MISS = "MISS"


class CacheGate:
    def __init__(
        self,
        origin: OriginClient,
        ledger: LedgerProtocol,
        cache: ResponseCacheProtocol,
        *,
        ttl_seconds: int,
        vary_headers: Iterable[str] = (),
    ) -> None:
        self._origin = origin
        self._ledger = ledger
        self._cache = cache
        self._ttl_seconds = ttl_seconds
        self._vary_headers = tuple(vary_headers)
        # Background cache writes still in flight.
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def handle(self, request: ProxyRequest) -> ProxyResponse:
        try:
            response, status = await self._serve(request)
        except Exception:
            log.error("cache_gate_error", path=request.path, exc_info=True)
            response, status = await self._origin.forward(request), CacheStatus.BYPASS
        return response.with_header(CACHE_STATUS_HEADER, status.value)

    async def resolve_state(self, request: ProxyRequest) -> tuple[ClientIdentity, FreshnessState]:
        """Look up the ledger record for the client behind ``request``."""
        identity = identity_for_status_report(request)
        raw = await self._ledger.get(identity.ledger_key)
        record = decode_record(raw, identity.ledger_key) if raw is not None else None
        return identity, FreshnessState.classify(record)

    async def _serve(self, request: ProxyRequest) -> tuple[ProxyResponse, CacheStatus]:
        identity, state = await self.resolve_state(request)

        if state is FreshnessState.NO_RECORD:
            log.info("cache_bypass_no_record", client=str(identity), path=request.path)
            return await self._origin.forward(request), CacheStatus.BYPASS

        if state is FreshnessState.STALE:
            log.info("cache_bypass_update_pending", client=str(identity), path=request.path)
            return await self._origin.forward(request), CacheStatus.BYPASS

        cache_key = cache_key_for(request, self._vary_headers)
        cached = await self._cache.match(cache_key)
        if cached is not None:
            log.info("cache_hit", client=str(identity), path=request.path)
            response = ProxyResponse(
                status_code=cached.status_code,
                headers=cached.headers,
                body=cached.body,
            )
            return response, CacheStatus.HIT

        log.info("cache_miss", client=str(identity), path=request.path)
        response = await self._origin.forward(request)
        if response.status_code == 200:
            self._schedule_store(cache_key, response)
        return response, CacheStatus.MISS

    # ------------------------------------------------------------------
    # Background population
    # ------------------------------------------------------------------

    def _schedule_store(self, cache_key: str, response: ProxyResponse) -> None:
        task = asyncio.create_task(self._cache.put(cache_key, response, self._ttl_seconds))
        self._pending.add(task)
        task.add_done_callback(self._store_done)

    def _store_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning("cache_populate_error", exc_info=exc)

    async def drain(self) -> None:
        """Wait for in-flight cache writes. Called on shutdown and by tests."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
