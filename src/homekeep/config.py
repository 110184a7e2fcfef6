# src/homekeep/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is required at import time; every value has a local default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "HOMEKEEP"

load_dotenv(override=False)


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

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_path: Path
    storage_backend: str  # "sqlite" | "memory"

    # ---- Startup ----
    init_max_retries: int
    init_base_delay_seconds: float

    # ---- Writes ----
    serialize_writes: bool

    # ---- Seed data ----
    default_monthly_budget: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "homekeep").strip() or "homekeep"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/homekeep"))
        store_path = _env_path(_k("STORE_PATH"), data_dir / "store.sqlite3")

        backend = _env(_k("STORAGE_BACKEND"), "sqlite").strip().lower()
        if backend not in ("sqlite", "memory"):
            backend = "sqlite"

        init_max_retries = max(1, _env_int(_k("INIT_MAX_RETRIES"), 3))
        init_base_delay_seconds = max(0.0, _env_float(_k("INIT_BASE_DELAY_SECONDS"), 0.5))

        serialize_writes = _env_bool(_k("SERIALIZE_WRITES"), False)
        default_monthly_budget = _env_float(_k("DEFAULT_MONTHLY_BUDGET"), 1500.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            store_path=store_path,
            storage_backend=backend,
            init_max_retries=init_max_retries,
            init_base_delay_seconds=init_base_delay_seconds,
            serialize_writes=serialize_writes,
            default_monthly_budget=default_monthly_budget,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
