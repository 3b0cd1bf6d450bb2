"""Shared fixtures for unit and integration tests."""

from __future__ import annotations

import os

import pytest
from helpers import ORIGIN

from codepush_edge.config import Settings


@pytest.fixture()
def settings() -> Settings:
    return Settings(origin={"url": ORIGIN}, cache={"db_path": ":memory:"})


@pytest.fixture()
def subprocess_env(tmp_path) -> dict[str, str]:
    """Environment for launching the server as a subprocess without a user config."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("CODEPUSH_EDGE__")}
    env["CODEPUSH_EDGE__CACHE__DB_PATH"] = str(tmp_path / "cache.db")
    return env
