"""Integration test fixtures.

Provides a fully wired AppState with in-memory SQLite and a real httpx client
(origin traffic is intercepted with respx), plus an ASGI client talking to the
FastAPI app in-process.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest
from helpers import EDGE

from codepush_edge.app import build_state, create_app

if TYPE_CHECKING:
    from codepush_edge.config import Settings
    from codepush_edge.state import AppState


@pytest.fixture()
async def app_state(settings: Settings) -> AppState:
    """Full AppState wired for integration tests."""
    async with aiosqlite.connect(":memory:") as db, httpx.AsyncClient() as client:
        state = await build_state(settings, db, client)
        yield state
        await state.gate.drain()


@pytest.fixture()
async def edge(app_state: AppState) -> httpx.AsyncClient:
    """HTTP client for the proxy app itself."""
    transport = httpx.ASGITransport(app=create_app(state=app_state))
    async with httpx.AsyncClient(transport=transport, base_url=EDGE) as client:
        yield client
