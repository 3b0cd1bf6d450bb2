"""ASGI application: wiring, lifespan and the catch-all proxy route."""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from fastapi import FastAPI, Request, Response

from codepush_edge.cache import ResponseCache
from codepush_edge.config import Settings
from codepush_edge.gate import CacheGate
from codepush_edge.interceptor import UpdateCheckInterceptor
from codepush_edge.ledger import Ledger
from codepush_edge.models.http import ProxyRequest
from codepush_edge.origin import OriginClient, build_http_client
from codepush_edge.router import Router
from codepush_edge.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

    from codepush_edge.models.http import ProxyResponse

log = structlog.get_logger()

HEALTH_PATH = "/_edge/health"
_PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def build_state(
    settings: Settings,
    db: aiosqlite.Connection,
    http_client: httpx.AsyncClient,
) -> AppState:
    """Create the stores and handlers over an open database and HTTP client."""
    ledger = Ledger(db)
    await ledger.init_db()
    cache = ResponseCache(db)
    await cache.init_db()

    origin = OriginClient(http_client, settings.origin.url)
    interceptor = UpdateCheckInterceptor(origin, ledger, settings.ledger.ttl_seconds)
    gate = CacheGate(
        origin,
        ledger,
        cache,
        ttl_seconds=settings.cache.ttl_seconds,
        vary_headers=settings.cache.vary_headers,
    )
    router = Router(origin, interceptor, gate, settings.routes.base_path)
    return AppState(
        settings=settings,
        http_client=http_client,
        ledger=ledger,
        cache=cache,
        origin=origin,
        interceptor=interceptor,
        gate=gate,
        router=router,
    )


async def cleanup_once(state: AppState) -> None:
    ledger_deleted = await state.ledger.cleanup_expired()
    cache_deleted = await state.cache.cleanup_expired()
    log.info("cleanup_complete", ledger_deleted=ledger_deleted, cache_deleted=cache_deleted)


async def _cleanup_loop(state: AppState) -> None:
    interval = state.settings.cache.cleanup_interval_hours * 3600
    while True:
        await cleanup_once(state)
        await asyncio.sleep(interval)


def _resolve_db_path(db_path: str) -> str:
    if db_path == ":memory:":
        return db_path
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path)


def create_app(settings: Settings | None = None, state: AppState | None = None) -> FastAPI:
    """Build the proxy app.

    When ``state`` is given it is used as-is and the lifespan opens nothing;
    tests rely on this to inject in-memory stores and a mocked HTTP client.
    """
    settings = settings or (state.settings if state is not None else Settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if state is not None:
            yield
            await state.gate.drain()
            return

        async with (
            aiosqlite.connect(_resolve_db_path(settings.cache.db_path)) as db,
            build_http_client(settings.origin) as client,
        ):
            app_state = await build_state(settings, db, client)
            app.state.edge = app_state
            cleanup = asyncio.create_task(_cleanup_loop(app_state))
            app_state.background_tasks.add(cleanup)
            log.info("server_started", origin=settings.origin.url)
            try:
                yield
            finally:
                cleanup.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await cleanup
                await app_state.gate.drain()
                log.info("server_stopped")

    app = FastAPI(title="codepush-edge", lifespan=lifespan, docs_url=None, redoc_url=None)
    if state is not None:
        app.state.edge = state

    @app.get(HEALTH_PATH)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.api_route("/{full_path:path}", methods=_PROXY_METHODS, include_in_schema=False)
    async def proxy(request: Request, full_path: str) -> Response:
        app_state: AppState = request.app.state.edge
        proxy_request = ProxyRequest(
            method=request.method,
            url=str(request.url),
            headers=request.headers.items(),
            body=await request.body(),
        )
        return to_asgi_response(await app_state.router.dispatch(proxy_request))

    return app


def to_asgi_response(response: ProxyResponse) -> Response:
    """Render a ProxyResponse, keeping repeated headers such as set-cookie."""
    asgi_response = Response(content=response.body, status_code=response.status_code)
    asgi_response.raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.headers
    )
    return asgi_response
