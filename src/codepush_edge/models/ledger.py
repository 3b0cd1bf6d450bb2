from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

LEDGER_KEY_PREFIX = "update-status"
DEFAULT_DEPLOYMENT_KEY = "default"
DEFAULT_APP_VERSION = "unknown"


class ClientIdentity(BaseModel):
    """(deployment key, app version) pair a client reports itself as."""

    model_config = ConfigDict(frozen=True)

    deployment_key: str = DEFAULT_DEPLOYMENT_KEY
    app_version: str = DEFAULT_APP_VERSION

    @property
    def ledger_key(self) -> str:
        return f"{LEDGER_KEY_PREFIX}:{self.deployment_key}:{self.app_version}"

    def __str__(self) -> str:
        return f"{self.deployment_key}@{self.app_version}"


class FreshnessRecord(BaseModel):
    """Outcome of the most recent update-check observed for one client."""

    has_update: bool
    observed_at: datetime
    update_payload: dict[str, Any] | None = None  # Origin update-check body

    @model_validator(mode="after")
    def payload_only_with_update(self) -> FreshnessRecord:
        if self.has_update and self.update_payload is None:
            raise ValueError("update_payload is required when has_update is true")
        if not self.has_update and self.update_payload is not None:
            raise ValueError("update_payload must be absent when has_update is false")
        return self


class FreshnessState(StrEnum):
    NO_RECORD = "no_record"
    FRESH = "fresh"  # Last update-check saw no update; cache reads allowed
    STALE = "stale"  # Update pending; status reports must reach origin

    @classmethod
    def classify(cls, record: FreshnessRecord | None) -> FreshnessState:
        if record is None:
            return cls.NO_RECORD
        return cls.STALE if record.has_update else cls.FRESH
