"""Load .env and settings.yaml, expose all configuration."""

from __future__ import annotations

import logging
import os
from datetime import timedelta
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

log = logging.getLogger(__name__)

DB_FILENAME = "results_cache.db"

# Largest grace a timedelta can hold.
MAX_GRACE_SECONDS = timedelta.max.days * 24 * 60 * 60

ENV_VARS = {
    "db_path": "RESULTS_CACHE_DB",
    "ttl_grace_seconds": "RESULTS_CACHE_TTL_GRACE",
    "log_level": "RESULTS_CACHE_LOG_LEVEL",
}


def _config_dir() -> Path:
    """Configuration and the default database live in the working directory."""
    return Path.cwd()


def _load_env() -> None:
    env_path = _config_dir() / ".env"
    load_dotenv(env_path)


def _load_yaml() -> dict:
    settings_path = _config_dir() / "settings.yaml"
    if settings_path.exists():
        try:
            with open(settings_path) as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError:
            log.warning("Failed to parse settings.yaml, using defaults")
            return {}
    return {}


class Settings(BaseModel):
    db_path: Path = Field(default_factory=lambda: _config_dir() / DB_FILENAME)
    ttl_grace_seconds: float = Field(default=3600, ge=0, le=MAX_GRACE_SECONDS)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level '{v}'")
        return level

    @property
    def ttl_grace(self) -> timedelta:
        """Grace period for TTL sweeps."""
        return timedelta(seconds=self.ttl_grace_seconds)


def load_settings() -> Settings:
    _load_env()
    raw = _load_yaml()
    for field, var in ENV_VARS.items():
        value = os.getenv(var)
        if value:
            raw[field] = value
    return Settings(**raw)
