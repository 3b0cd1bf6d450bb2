"""Freshness-aware caching proxy for CodePush update and status-report endpoints."""

__version__ = "0.1.0"
