# src/homekeep/storage/repository.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ..core.ports import KeyValueStore
from ..home import models
from . import seed
from .initializer import Initializer
from .keys import Collection, StorageKeys

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CollectionSpec(Generic[T]):
    """How one collection is stored, validated and defaulted."""

    storage_key: str
    parse: Callable[[Any], T | None]
    fallback: Callable[[], T]


# Exactly one parser per collection.
COLLECTIONS: dict[Collection, CollectionSpec[Any]] = {
    Collection.APPLIANCES: CollectionSpec(StorageKeys.APPLIANCES, models.parse_appliances, list),
    Collection.TASKS: CollectionSpec(StorageKeys.TASKS, models.parse_tasks, list),
    Collection.BUDGET_ITEMS: CollectionSpec(StorageKeys.BUDGET_ITEMS, models.parse_budget_items, list),
    Collection.TRUSTED_PROS: CollectionSpec(StorageKeys.TRUSTED_PROS, models.parse_trusted_pros, list),
    Collection.HOME_PROFILE: CollectionSpec(StorageKeys.HOME_PROFILE, models.parse_home_profile, seed.default_profile),
    Collection.RECOMMENDED_GROUPS: CollectionSpec(
        StorageKeys.RECOMMENDED_ITEMS, models.parse_recommended_groups, seed.default_recommended_groups
    ),
}


class TypedRepository:
    """
    Validated load-with-fallback.

    Every load waits for the Initializer first, then degrades to the fallback on
    any problem: missing key, unreadable store, bad JSON, or a shape the parser
    rejects. Loads never raise; they are safe to call on every refresh.
    """

    def __init__(
        self,
        store: KeyValueStore,
        initializer: Initializer,
        *,
        default_monthly_budget: float = seed.DEFAULT_MONTHLY_BUDGET,
    ) -> None:
        self._store = store
        self._initializer = initializer
        self._default_monthly_budget = float(default_monthly_budget)

    async def load(self, key: str, fallback: T, parse: Callable[[Any], T | None]) -> T:
        await self._initializer.ensure_ready()

        try:
            raw = await self._store.get(key)
        except Exception:
            logger.exception("Storage read failed for key %r, returning fallback", key)
            return fallback

        if raw is None:
            return fallback

        try:
            decoded = json.loads(raw)
        except (ValueError, RecursionError) as e:
            logger.warning("JSON decode failed for key %r (%s), returning fallback", key, type(e).__name__)
            return fallback

        try:
            parsed = parse(decoded)
        except Exception:
            logger.exception("Parser crashed for key %r, returning fallback", key)
            return fallback

        if parsed is None:
            logger.warning("Stored value for key %r has an unexpected shape, returning fallback", key)
            return fallback
        return parsed

    async def load_collection(self, collection: Collection) -> Any:
        spec = COLLECTIONS[collection]
        return await self.load(spec.storage_key, spec.fallback(), spec.parse)

    async def load_monthly_budget(self) -> float:
        await self._initializer.ensure_ready()
        try:
            raw = await self._store.get(StorageKeys.MONTHLY_BUDGET)
        except Exception:
            logger.exception("Storage read failed for monthly budget, using default")
            return self._default_monthly_budget
        if raw is None:
            return self._default_monthly_budget
        try:
            return float(raw)
        except ValueError:
            logger.warning("Corrupt monthly budget %r, using default", raw)
            return self._default_monthly_budget
