# src/homekeep/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the concrete store into HomeData.
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.ports import KeyValueStore
from ..home.service import HomeData
from ..storage.kv_store import MemoryKeyValueStore, SqliteKeyValueStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_path.parent.mkdir(parents=True, exist_ok=True)


def create_store(settings: Settings) -> KeyValueStore:
    if settings.storage_backend == "memory":
        logger.info("Using in-memory store (data is lost on exit)")
        return MemoryKeyValueStore()
    _ensure_local_dirs(settings)
    return SqliteKeyValueStore(settings.store_path)


def create_home_data(*, settings: Settings | None = None, store: KeyValueStore | None = None) -> HomeData:
    """
    Build HomeData from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()
    if store is None:
        store = create_store(settings)
    return HomeData.from_settings(store, settings)
