from __future__ import annotations

from urllib.parse import parse_qsl, urlsplit

from pydantic import BaseModel


class ProxyRequest(BaseModel):
    """Inbound request, detached from the ASGI framework."""

    method: str
    url: str  # Full inbound URL including query string
    headers: list[tuple[str, str]] = []
    body: bytes = b""

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query_string(self) -> str:
        return urlsplit(self.url).query

    def query_param(self, name: str) -> str | None:
        """First value of a query parameter, or None when absent."""
        for key, value in parse_qsl(self.query_string, keep_blank_values=True):
            if key == name:
                return value
        return None

    def header(self, name: str) -> str | None:
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None


class ProxyResponse(BaseModel):
    """Response handed back to the client."""

    status_code: int
    headers: list[tuple[str, str]] = []
    body: bytes = b""

    def with_header(self, name: str, value: str) -> ProxyResponse:
        headers = [(k, v) for k, v in self.headers if k.lower() != name.lower()]
        headers.append((name, value))
        return self.model_copy(update={"headers": headers})
