from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

import httpx
import structlog

from codepush_edge.models.http import ProxyResponse

if TYPE_CHECKING:
    from codepush_edge.gate import CacheGate
    from codepush_edge.interceptor import UpdateCheckInterceptor
    from codepush_edge.models.http import ProxyRequest
    from codepush_edge.origin import OriginClient

log = structlog.get_logger()

ORIGIN_UNAVAILABLE_BODY = b"Origin unavailable"


class Route(StrEnum):
    UPDATE_CHECK = "update_check"
    GATED_API = "gated_api"
    PASS_THROUGH = "pass_through"


def build_route_table(base_path: str) -> list[tuple[str, Route]]:
    """Prefix table ordered longest first, so the first match is the longest."""
    base_path = base_path.rstrip("/")
    table = [
        (f"{base_path}/update_check", Route.UPDATE_CHECK),
        (f"{base_path}/report_status/deploy", Route.GATED_API),
        (f"{base_path}/report_status/download", Route.GATED_API),
    ]
    return sorted(table, key=lambda entry: len(entry[0]), reverse=True)


def classify(path: str, table: list[tuple[str, Route]]) -> Route:
    for prefix, route in table:
        if path.startswith(prefix):
            return route
    return Route.PASS_THROUGH


class Router:
    """Dispatches each request to the interceptor, the gate, or straight to origin."""

    def __init__(
        self,
        origin: OriginClient,
        interceptor: UpdateCheckInterceptor,
        gate: CacheGate,
        base_path: str,
    ) -> None:
        self._origin = origin
        self._interceptor = interceptor
        self._gate = gate
        self._table = build_route_table(base_path)

    def classify(self, path: str) -> Route:
        return classify(path, self._table)

    async def dispatch(self, request: ProxyRequest) -> ProxyResponse:
        route = self.classify(request.path)
        if route is Route.UPDATE_CHECK:
            log.debug("route_update_check", path=request.path)
            return await self._interceptor.handle(request)

        try:
            if route is Route.GATED_API:
                log.debug("route_gated_api", path=request.path)
                return await self._gate.handle(request)
            return await self._origin.forward(request)
        except httpx.HTTPError:
            log.error("origin_unavailable", path=request.path, route=route.value, exc_info=True)
            return ProxyResponse(
                status_code=502,
                headers=[("content-type", "text/plain; charset=utf-8")],
                body=ORIGIN_UNAVAILABLE_BODY,
            )
