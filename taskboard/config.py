"""Settings loaded from TASKBOARD_* environment variables (+ optional .env file)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKBOARD"

DEFAULT_TASK_LIMIT = 20
DEFAULT_REPORT_WINDOW_DAYS = 30


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


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


def _env_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- Storage ----
    database_url: str | None

    # ---- Business rules ----
    task_limit: int
    report_window_days: int

    # ---- Cache ----
    cache_enabled: bool
    cache_ttl_seconds: int

    # ---- Logging ----
    log_level: str
    log_file: Path | None

    @staticmethod
    def from_env(*, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(override=False)

        database_url = _env(_k("DATABASE_URL")).strip() or None

        return Settings(
            database_url=database_url,
            task_limit=_env_int(_k("TASK_LIMIT"), DEFAULT_TASK_LIMIT),
            report_window_days=_env_int(_k("REPORT_WINDOW_DAYS"), DEFAULT_REPORT_WINDOW_DAYS),
            cache_enabled=_env_bool(_k("CACHE_ENABLED"), True),
            cache_ttl_seconds=_env_int(_k("CACHE_TTL_SECONDS"), 60),
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            log_file=_env_path(_k("LOG_FILE")),
        )
