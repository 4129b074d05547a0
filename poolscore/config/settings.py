"""Process settings loaded from environment variables and an optional YAML file.

Environment variables use the ``POOLSCORE_`` prefix with ``__`` as the nested
delimiter, e.g. ``POOLSCORE_DATABASE__URL`` or
``POOLSCORE_STANDINGS__DISPLAY_TIMEZONE``. YAML overrides are read from the
path in ``POOLSCORE_CONFIG`` or from ``config/poolscore.yaml`` at the repo
root; explicit keyword arguments and environment variables win over YAML.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .db_url import ensure_config_database_url


class DatabaseSettings(BaseModel):
    url: str | None = None
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    name: str | None = None
    sqlite_path: str | None = None
    echo: bool = False


class StandingsSettings(BaseModel):
    display_timezone: str = "Europe/Amsterdam"
    lookup_ttl_seconds: float = Field(default=60.0, gt=0)
    lookup_cache_size: int = Field(default=1024, ge=1)
    default_page_size: int = Field(default=25, ge=1)
    max_page_size: int = Field(default=200, ge=1)


class LoggingSettings(BaseModel):
    level: str = "INFO"
    events_dir: str | None = None
    events_retention_bytes: int = Field(default=5 * 1024 * 1024, ge=1024)


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _load_yaml_overrides() -> Dict[str, Any]:
    candidates: list[Path] = []
    explicit = os.getenv("POOLSCORE_CONFIG")
    if explicit:
        candidates.append(Path(explicit).resolve())
    candidates.append(_repo_root() / "config" / "poolscore.yaml")

    for path in candidates:
        if not path.exists():
            continue
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if isinstance(data, dict):
            return data
    return {}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="POOLSCORE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    standings: StandingsSettings = Field(default_factory=StandingsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @model_validator(mode="before")
    @classmethod
    def _apply_yaml_overrides(cls, data: Any) -> Any:
        overrides = _load_yaml_overrides()
        if not overrides:
            return data
        merged: Dict[str, Any] = dict(overrides)
        if isinstance(data, dict):
            merged.update(data)
        return merged


def load_settings(**overrides: Any) -> Settings:
    settings = Settings(**overrides)
    ensure_config_database_url(settings.database)
    return settings


__all__ = [
    "DatabaseSettings",
    "StandingsSettings",
    "LoggingSettings",
    "Settings",
    "load_settings",
]
