# src/taiga_cli/config.py

"""
TAIGA_* settings, read once per process from the environment and a local .env.

Nothing secret lives here: credentials are prompted for by `taiga login` and
kept in the session record under the cache directory.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from dotenv import load_dotenv

ENV_PREFIX = "TAIGA"

DEFAULT_BASE_URL = "https://api.taiga.io/api/v1"
DEFAULT_TOKEN_TTL_SECONDS = 24 * 60 * 60

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})

N = TypeVar("N", int, float)

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """TAIGA_<suffix>"""
    return f"{ENV_PREFIX}_{suffix}"


def _raw(name: str) -> str | None:
    """Env value, or None when unset or blank."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _env(name: str, default: str = "") -> str:
    value = _raw(name)
    return default if value is None else value


def _env_bool(name: str, default: bool) -> bool:
    value = _raw(name)
    return default if value is None else value.lower() in _TRUTHY


def _env_number(name: str, default: N, cast: Callable[[str], N]) -> N:
    value = _raw(name)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return _env_number(name, default, int)


def _env_float(name: str, default: float) -> float:
    return _env_number(name, default, float)


def _env_path(name: str, default: Path) -> Path:
    value = _raw(name)
    return default if value is None else Path(value).expanduser()


def _default_cache_dir() -> Path:
    xdg = _raw("XDG_CACHE_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".cache"
    return base / "taiga"


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path

    # ---- Remote service ----
    base_url: str
    token_ttl_seconds: int
    remember_credentials: bool
    connect_timeout_seconds: float
    read_timeout_seconds: float

    # ---- Local state (session, projects, task snapshots) ----
    cache_dir: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taiga")
        log_level = _env(_k("LOG_LEVEL"), "WARNING")

        base_url = _env(_k("BASE_URL"), DEFAULT_BASE_URL).rstrip("/")
        token_ttl_seconds = _env_int(_k("TOKEN_TTL_SECONDS"), DEFAULT_TOKEN_TTL_SECONDS)
        remember_credentials = _env_bool(_k("REMEMBER_CREDENTIALS"), True)

        connect_timeout = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("READ_TIMEOUT_SECONDS"), 30.0)

        cache_dir = _env_path(_k("CACHE_DIR"), _default_cache_dir())
        log_dir = _env_path(_k("LOG_DIR"), cache_dir)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            log_dir=log_dir,
            base_url=base_url,
            token_ttl_seconds=max(60, token_ttl_seconds),
            remember_credentials=remember_credentials,
            connect_timeout_seconds=connect_timeout,
            read_timeout_seconds=max(read_timeout, connect_timeout),
            cache_dir=cache_dir,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
