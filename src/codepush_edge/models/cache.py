from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CachedResponse(BaseModel):
    """Origin response stored for a gated status-report request."""

    cache_key: str  # SHA-256 of the normalized request descriptor
    status_code: int
    headers: list[tuple[str, str]]
    body: bytes
    stored_at: datetime
    expires_at: datetime
