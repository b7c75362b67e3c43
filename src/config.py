# src/config.py
"""
Environment-based configuration.

Values come from the process environment, with a `.env` file loaded first
for local development.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from src.errors import ConfigurationError


DEFAULT_DATABASE_URL = "sqlite:///./trading_journal.db"


@dataclass(frozen=True)
class Settings:
    """Resolved application settings."""

    database_url: str = DEFAULT_DATABASE_URL
    secret_key: Optional[str] = None
    api_url: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = False
    cache_capacity: int = 2000
    token_max_age: int = 7 * 24 * 3600  # 7 days
    request_timeout: float = 10.0

    def require(self, name: str) -> str:
        """Return a required setting or fail start-up."""
        value = getattr(self, name)
        if not value:
            raise ConfigurationError(f"Missing required setting: {name.upper()}")
        return value


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from `env` (defaults to os.environ after loading .env)."""
    if env is None:
        load_dotenv()
        env = os.environ

    try:
        return Settings(
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            secret_key=env.get("SECRET_KEY"),
            api_url=env.get("JOURNAL_API_URL"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            log_json=_as_bool(env.get("LOG_JSON", "false")),
            cache_capacity=int(env.get("CACHE_CAPACITY", 2000)),
            token_max_age=int(env.get("TOKEN_MAX_AGE", 7 * 24 * 3600)),
            request_timeout=float(env.get("REQUEST_TIMEOUT", 10.0)),
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc
