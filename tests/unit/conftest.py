"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

import aiosqlite
import pytest

from codepush_edge.cache import ResponseCache
from codepush_edge.ledger import Ledger


@pytest.fixture()
async def db():
    async with aiosqlite.connect(":memory:") as conn:
        yield conn


@pytest.fixture()
async def ledger(db: aiosqlite.Connection) -> Ledger:
    """In-memory SQLite ledger for unit tests."""
    store = Ledger(db)
    await store.init_db()
    return store


@pytest.fixture()
async def cache(db: aiosqlite.Connection) -> ResponseCache:
    """In-memory SQLite response cache for unit tests."""
    store = ResponseCache(db)
    await store.init_db()
    return store
