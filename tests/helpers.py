"""Request builders and constants shared across the test suite."""

from __future__ import annotations

from codepush_edge.models.http import ProxyRequest

ORIGIN = "https://origin.test"
EDGE = "http://edge.test"
BASE_PATH = "/v0.1/public/codepush"
UPDATE_CHECK_PATH = f"{BASE_PATH}/update_check"
DEPLOY_PATH = f"{BASE_PATH}/report_status/deploy"
DOWNLOAD_PATH = f"{BASE_PATH}/report_status/download"


def make_request(
    path: str,
    *,
    method: str = "GET",
    query: str = "",
    headers: list[tuple[str, str]] | None = None,
    body: bytes = b"",
) -> ProxyRequest:
    url = f"{EDGE}{path}"
    if query:
        url = f"{url}?{query}"
    return ProxyRequest(method=method, url=url, headers=headers or [], body=body)
