# src/taskgraph/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole process.
- Nothing is read at import time except the environment itself.
- Stores never import this module; the composition root passes values in.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKGRAPH"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
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


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    db_path: Path
    db_timeout_seconds: float

    # ---- Graph policy ----
    allow_self_loops: bool

    # ---- Console ----
    console_enabled: bool
    console_list_limit: int

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "taskgraph").strip() or "taskgraph"
        log_level = _env(_k("LOG_LEVEL"), "INFO").strip().upper() or "INFO"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskgraph"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "taskgraph.sqlite3")

        db_timeout_seconds = max(0.0, _env_float(_k("DB_TIMEOUT_SECONDS"), 30.0))

        # Self-loops are accepted by default (historical behaviour).
        allow_self_loops = _env_bool(_k("ALLOW_SELF_LOOPS"), True)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        console_list_limit = max(1, _env_int(_k("CONSOLE_LIST_LIMIT"), 50))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            db_timeout_seconds=db_timeout_seconds,
            allow_self_loops=allow_self_loops,
            console_enabled=console_enabled,
            console_list_limit=console_list_limit,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS


def reset_settings() -> None:
    """Forget the cached Settings (tests change the environment between cases)."""
    global _SETTINGS
    _SETTINGS = None
