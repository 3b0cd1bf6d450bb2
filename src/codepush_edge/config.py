"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (CODEPUSH_EDGE__ORIGIN__URL=https://codepush.example.com)
  2. codepush-edge.yaml     (searched in cwd, then the platform user config dir)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_APP_NAME = "codepush-edge"
_DEFAULT_DATA_DIR = platformdirs.user_data_dir(_APP_NAME)
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "cache.db")

# 24 hours, shared by ledger records and cached responses.
DEFAULT_TTL_SECONDS = 86400


def _find_config_file() -> str | None:
    """Return the path of the first codepush-edge.yaml found, or None."""
    candidates = [
        Path(f"{_APP_NAME}.yaml"),
        Path(platformdirs.user_config_dir(_APP_NAME)) / f"{_APP_NAME}.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "0.0.0.0"
    port: int = 8080


class OriginSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = "http://localhost:3000"
    timeout_seconds: float = 10.0

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("origin url must use http or https scheme")
        return v


class RouteSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_path: str = "/v0.1/public/codepush"

    @field_validator("base_path")
    @classmethod
    def validate_base_path(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith("/"):
            raise ValueError("base_path must start with '/'")
        return v


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ttl_seconds: int = DEFAULT_TTL_SECONDS
    db_path: str = _DEFAULT_DB_PATH
    cleanup_interval_hours: int = Field(default=6, gt=0)
    # Request headers that take part in the response cache key.
    vary_headers: list[str] = ["accept", "accept-encoding", "accept-language"]

    @field_validator("vary_headers")
    @classmethod
    def lowercase_headers(cls, v: list[str]) -> list[str]:
        return [h.strip().lower() for h in v if h.strip()]


class LedgerSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ttl_seconds: int = DEFAULT_TTL_SECONDS


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: CODEPUSH_EDGE__SERVER__PORT=9090
        env_prefix="CODEPUSH_EDGE__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    origin: OriginSettings = OriginSettings()
    routes: RouteSettings = RouteSettings()
    cache: CacheSettings = CacheSettings()
    ledger: LedgerSettings = LedgerSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
