"""Update-check interceptor.

Update-checks are never cached. Each one is forwarded to the origin, and the
answer is recorded in the freshness ledger as a side effect. The client always
gets the origin's response back untouched, whatever happens to the ledger
write; only a failed origin fetch produces a synthetic 500.

A body that parses as JSON but is not an object (a list, string or number)
is handled like an unparseable one: no ledger record is written, rather than
recording "no update". Only an object can carry a download_url.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from codepush_edge.freshness import (
    PayloadError,
    build_record,
    identity_from_query,
    parse_json_object,
)
from codepush_edge.models.http import ProxyResponse

if TYPE_CHECKING:
    from codepush_edge.models.http import ProxyRequest
    from codepush_edge.models.ledger import FreshnessRecord
    from codepush_edge.origin import OriginClient
    from codepush_edge.protocols import LedgerProtocol

log = structlog.get_logger()

UPDATE_CHECK_ERROR_BODY = b"Error checking for updates"


class UpdateCheckInterceptor:
    def __init__(self, origin: OriginClient, ledger: LedgerProtocol, ttl_seconds: int) -> None:
        self._origin = origin
        self._ledger = ledger
        self._ttl_seconds = ttl_seconds

    async def handle(self, request: ProxyRequest) -> ProxyResponse:
        try:
            response = await self._origin.forward(request)
        except Exception:
            log.error("update_check_origin_error", path=request.path, exc_info=True)
            return ProxyResponse(
                status_code=500,
                headers=[("content-type", "text/plain; charset=utf-8")],
                body=UPDATE_CHECK_ERROR_BODY,
            )

        try:
            await self.record(request, response)
        except Exception:
            # The origin answer goes back to the client regardless.
            log.error("update_check_record_error", path=request.path, exc_info=True)
        return response

    async def record(self, request: ProxyRequest, response: ProxyResponse) -> FreshnessRecord | None:
        """Write the ledger record implied by ``response``.

        Returns the record written, or ``None`` when the body was not a JSON
        object or the ledger rejected the write.
        """
        try:
            payload = parse_json_object(response.body)
        except PayloadError as exc:
            log.warning(
                "update_check_parse_error",
                path=request.path,
                status_code=response.status_code,
                error=str(exc),
            )
            return None

        identity = identity_from_query(request)
        record = build_record(payload)
        written = await self._ledger.put(
            identity.ledger_key,
            record.model_dump_json(),
            self._ttl_seconds,
        )
        if not written:
            return None

        log.info(
            "update_check_result",
            client=str(identity),
            has_update=record.has_update,
        )
        return record
