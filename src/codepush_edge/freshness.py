"""Rules shared by the update-check interceptor and the cache gate.

Everything here is pure: identity extraction, the has-update rule, the ledger
record codec and the response cache key. No I/O.
"""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from codepush_edge.models.ledger import (
    DEFAULT_APP_VERSION,
    DEFAULT_DEPLOYMENT_KEY,
    ClientIdentity,
    FreshnessRecord,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from codepush_edge.models.http import ProxyRequest

log = structlog.get_logger()

DEPLOYMENT_KEY_FIELD = "deployment_key"
APP_VERSION_FIELD = "app_version"
DOWNLOAD_URL_FIELD = "download_url"


class PayloadError(ValueError):
    """Body could not be decoded as a JSON object."""


def parse_json_object(body: bytes) -> dict[str, Any]:
    """Decode ``body`` as a JSON object or raise PayloadError."""
    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PayloadError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise PayloadError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def has_update(payload: dict[str, Any]) -> bool:
    """An update is pending when the origin hands out a non-empty download URL."""
    return bool(payload.get(DOWNLOAD_URL_FIELD))


def _field(value: Any, default: str) -> str:
    if not value:
        return default
    return value if isinstance(value, str) else str(value)


def identity_from_query(request: ProxyRequest) -> ClientIdentity:
    return ClientIdentity(
        deployment_key=_field(request.query_param(DEPLOYMENT_KEY_FIELD), DEFAULT_DEPLOYMENT_KEY),
        app_version=_field(request.query_param(APP_VERSION_FIELD), DEFAULT_APP_VERSION),
    )


def identity_from_body(request: ProxyRequest) -> ClientIdentity:
    """Identity from a JSON body. Unparseable bodies yield the default identity."""
    try:
        payload = parse_json_object(request.body)
    except PayloadError as exc:
        log.warning("request_body_parse_error", path=request.path, error=str(exc))
        return ClientIdentity()
    return ClientIdentity(
        deployment_key=_field(payload.get(DEPLOYMENT_KEY_FIELD), DEFAULT_DEPLOYMENT_KEY),
        app_version=_field(payload.get(APP_VERSION_FIELD), DEFAULT_APP_VERSION),
    )


def identity_for_status_report(request: ProxyRequest) -> ClientIdentity:
    """GET reads the query string, POST reads the JSON body, anything else is anonymous."""
    method = request.method.upper()
    if method == "GET":
        return identity_from_query(request)
    if method == "POST":
        return identity_from_body(request)
    return ClientIdentity()


def build_record(payload: dict[str, Any]) -> FreshnessRecord:
    update = has_update(payload)
    return FreshnessRecord(
        has_update=update,
        observed_at=datetime.now(UTC),
        update_payload=payload if update else None,
    )


def decode_record(raw: str, key: str) -> FreshnessRecord | None:
    """Decode a stored record. Corrupt records read as absent."""
    try:
        return FreshnessRecord.model_validate_json(raw)
    except ValidationError:
        log.warning("ledger_record_invalid", key=key, exc_info=True)
        return None


def cache_key_for(request: ProxyRequest, vary_headers: Iterable[str]) -> str:
    """SHA-256 over method, full URL and the selected request headers.

    The body never takes part: two POSTs to the same URL with the same headers
    share one entry.
    """
    selected = sorted(
        (name, value)
        for name in {h.lower() for h in vary_headers}
        if (value := request.header(name)) is not None
    )
    descriptor = json.dumps([request.method.upper(), request.url, selected])
    return hashlib.sha256(descriptor.encode("utf-8")).hexdigest()
