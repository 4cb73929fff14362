"""Environment-driven settings for the broker integration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_BASE_URL = "https://api.tastytrade.com"
BASE_URL_ENV_VAR = "TASTYTRADE_API_BASE_URL"
CLIENT_ID_ENV_VAR = "TASTYTRADE_CLIENT_ID"
CLIENT_SECRET_ENV_VAR = "TASTYTRADE_CLIENT_SECRET"
REFRESH_TOKEN_ENV_VAR = "TASTYTRADE_REFRESH_TOKEN"


class ConfigurationError(RuntimeError):
    """Raised when required settings are missing."""


@dataclass(frozen=True)
class TastytradeSettings:
    base_url: str
    client_id: str
    client_secret: str
    refresh_token: str


def normalize_base_url(value: str | None) -> str:
    return (value or DEFAULT_BASE_URL).rstrip("/")


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value or not value.strip():
        raise ConfigurationError(f"Missing required environment variable: {name}")
    return value.strip()


def load_settings() -> TastytradeSettings:
    """Read broker credentials from the environment."""
    return TastytradeSettings(
        base_url=normalize_base_url(os.environ.get(BASE_URL_ENV_VAR)),
        client_id=_require_env(CLIENT_ID_ENV_VAR),
        client_secret=_require_env(CLIENT_SECRET_ENV_VAR),
        refresh_token=_require_env(REFRESH_TOKEN_ENV_VAR),
    )


@lru_cache(maxsize=1)
def get_settings() -> TastytradeSettings:
    """Cached settings for the running process; tests call ``get_settings.cache_clear()``."""
    return load_settings()
