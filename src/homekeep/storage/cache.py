# src/homekeep/storage/cache.py

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryCache:
    """In-memory view of the last successfully persisted value per cache key."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def invalidate(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class CacheSyncMutator:
    """
    read cache -> transform -> persist -> publish cache.

    The current list always comes from the cache, never from storage. Two
    mutations on the same key that are both in flight read the same snapshot,
    and the later write wins (lost update). With serialize_writes=True each
    storage key gets its own asyncio.Lock, which closes that window.

    Failure is atomic per call:
    - updater raises -> nothing persisted, cache untouched, error propagates
    - store.set raises -> cache untouched, error propagates
    """

    def __init__(self, store: KeyValueStore, cache: QueryCache, *, serialize_writes: bool = False) -> None:
        self._store = store
        self._cache = cache
        self._serialize_writes = serialize_writes
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def cache(self) -> QueryCache:
        return self._cache

    async def mutate(
        self,
        storage_key: str,
        cache_key: str,
        updater: Callable[[list[T]], list[T]],
    ) -> list[T]:
        if not self._serialize_writes:
            return await self._mutate(storage_key, cache_key, updater)

        lock = self._locks.setdefault(storage_key, asyncio.Lock())
        async with lock:
            return await self._mutate(storage_key, cache_key, updater)

    async def _mutate(
        self,
        storage_key: str,
        cache_key: str,
        updater: Callable[[list[T]], list[T]],
    ) -> list[T]:
        current: list[T] = list(self._cache.get(cache_key) or [])
        updated = updater(current)
        payload = json.dumps(updated, ensure_ascii=False)

        try:
            await self._store.set(storage_key, payload)
        except Exception:
            logger.exception("Failed to persist %s", storage_key)
            raise

        self._cache.set(cache_key, updated)
        return updated

    async def replace(self, storage_key: str, cache_key: str, value: Any, *, raw: str | None = None) -> Any:
        """Persist and publish a whole non-list value (profile, scalar budget)."""
        payload = json.dumps(value, ensure_ascii=False) if raw is None else raw
        try:
            await self._store.set(storage_key, payload)
        except Exception:
            logger.exception("Failed to persist %s", storage_key)
            raise
        self._cache.set(cache_key, value)
        return value
