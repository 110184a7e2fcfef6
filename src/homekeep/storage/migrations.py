# src/homekeep/storage/migrations.py

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from ..core.ports import KeyValueStore, MigrationStep
from .keys import StorageKeys

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 2


class SchemaMigrator:
    """
    Applies ordered migration steps to the persisted data, exactly once each.

    The version marker is written after every step, not once at the end:
    a crash after step v persisted resumes at v+1 and never re-applies v.

    Policy for a failing step: it is logged and the marker still advances past
    it, so startup can never get stuck on one broken step. A failing marker
    write is not swallowed; it propagates to the caller.
    """

    def __init__(self, store: KeyValueStore, *, version_key: str = StorageKeys.SCHEMA_VERSION) -> None:
        self._store = store
        self._version_key = str(version_key)

    async def current_version(self) -> int:
        """Persisted version; 0 when missing, corrupt, negative or unreadable. Never raises."""
        try:
            raw = await self._store.get(self._version_key)
        except Exception:
            logger.exception("Failed to read schema version, assuming 0")
            return 0
        if raw is None or not raw.strip():
            return 0
        try:
            version = int(raw.strip())
        except ValueError:
            logger.warning("Corrupt schema version %r, assuming 0", raw)
            return 0
        return max(0, version)

    async def migrate_to(self, target_version: int, steps: Mapping[int, MigrationStep]) -> list[int]:
        """
        Advance the persisted version to target_version one step at a time.

        Returns the versions whose registered step ran (successfully or not).
        """
        current = await self.current_version()
        if current >= target_version:
            return []

        logger.info("Migrating schema v%d -> v%d", current, target_version)
        ran: list[int] = []

        for v in range(current + 1, target_version + 1):
            step = steps.get(v)
            if step is not None:
                ran.append(v)
                try:
                    logger.info("Running migration to v%d", v)
                    await step(self._store)
                    logger.info("Migration to v%d complete", v)
                except Exception:
                    logger.exception("Migration to v%d failed; advancing version anyway", v)

            await self._store.set(self._version_key, str(v))

        logger.info("All migrations complete, now at v%d", target_version)
        return ran


# ---- registered steps ----


async def _load_list(store: KeyValueStore, key: str) -> list[dict[str, Any]] | None:
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("Unreadable JSON under %r, leaving it for the loader to fall back", key)
        return None
    if not isinstance(data, list):
        return None
    return data


async def _v2_backfill_list_fields(store: KeyValueStore) -> None:
    """Tasks gain `notes`; trusted pros gain `expense_ids` and `private_notes`."""
    tasks = await _load_list(store, StorageKeys.TASKS)
    if tasks is not None:
        migrated = [
            {**t, "notes": t.get("notes") or []} if isinstance(t, dict) else t
            for t in tasks
        ]
        await store.set(StorageKeys.TASKS, json.dumps(migrated, ensure_ascii=False))

    pros = await _load_list(store, StorageKeys.TRUSTED_PROS)
    if pros is not None:
        migrated = [
            {
                **p,
                "expense_ids": p.get("expense_ids") or [],
                "private_notes": p.get("private_notes") or [],
            }
            if isinstance(p, dict)
            else p
            for p in pros
        ]
        await store.set(StorageKeys.TRUSTED_PROS, json.dumps(migrated, ensure_ascii=False))


# Version 1 is the initial layout and has no step.
MIGRATIONS: dict[int, MigrationStep] = {
    2: _v2_backfill_list_fields,
}
