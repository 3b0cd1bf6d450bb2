"""Forwarding to the origin CodePush server.

The inbound path and query string are replayed verbatim against the origin
base URL. No retries: a failed fetch raises ``httpx.HTTPError`` and the caller
decides how to surface it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import httpx
import structlog

from codepush_edge.models.http import ProxyResponse

if TYPE_CHECKING:
    from codepush_edge.config import OriginSettings
    from codepush_edge.models.http import ProxyRequest

log = structlog.get_logger()

# Connection-scoped headers that must not be relayed (RFC 9110 §7.6.1), plus
# host, which httpx sets for the origin.
_HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
    }
)

# httpx returns the decoded body, so the encoding and length no longer apply.
_STRIPPED_RESPONSE_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def build_http_client(settings: OriginSettings | None = None) -> httpx.AsyncClient:
    timeout = settings.timeout_seconds if settings is not None else 10.0
    return httpx.AsyncClient(
        follow_redirects=False,  # redirects are the client's business
        timeout=httpx.Timeout(timeout),
    )


class OriginClient:
    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    def target_url(self, request: ProxyRequest) -> str:
        parts = urlsplit(request.url)
        url = f"{self._base_url}{parts.path}"
        if parts.query:
            url = f"{url}?{parts.query}"
        return url

    async def forward(self, request: ProxyRequest) -> ProxyResponse:
        """Replay ``request`` against the origin and return its full response."""
        url = self.target_url(request)
        # Starlette decodes header bytes as latin-1, so this restores them exactly.
        headers = [
            (k.encode("latin-1"), v.encode("latin-1"))
            for k, v in request.headers
            if k.lower() not in _HOP_BY_HOP
        ]
        response = await self._client.request(
            request.method,
            url,
            headers=headers,
            content=request.body or None,
        )
        log.debug(
            "origin_response",
            method=request.method,
            url=url,
            status_code=response.status_code,
        )
        return ProxyResponse(
            status_code=response.status_code,
            headers=[
                (k.decode("latin-1"), v.decode("latin-1"))
                for k, v in response.headers.raw
                if k.decode("latin-1").lower() not in _STRIPPED_RESPONSE_HEADERS
            ],
            body=response.content,
        )
