"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app, built explicitly with `load_settings()`.
- No module-level singletons: the caller passes Settings where they are needed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKMANAGER"

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///data/tasks.db"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"
    log_dir: Path = Path(".local/taskmanager")
    sql_echo: bool = False


def load_settings(*, dotenv: bool = True) -> Settings:
    """Read Settings from the environment; `.env` in CWD is loaded first (without overriding)."""
    if dotenv:
        load_dotenv(override=False)
    return Settings(
        database_url=_env(_k("DATABASE_URL"), DEFAULT_DATABASE_URL),
        host=_env(_k("HOST"), "127.0.0.1"),
        port=_env_int(_k("PORT"), 3001),
        log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
        log_dir=_env_path(_k("LOG_DIR"), Path(".local/taskmanager")),
        sql_echo=_env_bool(_k("SQL_ECHO"), False),
    )
