# src/homekeep/storage/initializer.py

from __future__ import annotations

"""
Startup orchestration: migrate, then seed on first run.

ensure_ready() is memoized on an explicit state value owned by one Initializer:

    Uninitialized -> InProgress(task) -> Ready
                                      -> Failed(attempts)   (retry allowed on next call)
                                      -> Failed(max)        (exhausted, never retried)

Concurrent callers share the one in-flight task, and a run orphaned by reset()
is awaited before a new one starts, so seeding and migrations never overlap
against the same store.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from ..core.ports import KeyValueStore, MigrationStep
from .keys import StorageKeys
from .migrations import CURRENT_SCHEMA_VERSION, MIGRATIONS, SchemaMigrator

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Uninitialized:
    pass


@dataclass(frozen=True, slots=True)
class InProgress:
    task: asyncio.Task[None]


@dataclass(frozen=True, slots=True)
class Ready:
    pass


@dataclass(frozen=True, slots=True)
class Failed:
    attempts: int


InitializerState = Uninitialized | InProgress | Ready | Failed


class Initializer:
    def __init__(
        self,
        store: KeyValueStore,
        seeds: Callable[[], Mapping[str, str]],
        *,
        target_version: int = CURRENT_SCHEMA_VERSION,
        steps: Mapping[int, MigrationStep] | None = None,
        max_retries: int = 3,
        base_delay_seconds: float = 0.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._store = store
        self._seeds = seeds
        self._migrator = SchemaMigrator(store)
        self._target_version = int(target_version)
        self._steps = MIGRATIONS if steps is None else steps
        self._max_retries = max(1, int(max_retries))
        self._base_delay = max(0.0, float(base_delay_seconds))
        self._sleep = sleep

        self._state: InitializerState = Uninitialized()
        # Bumped by reset(); a run started before a reset must not publish its outcome.
        self._generation = 0
        self._orphan: asyncio.Task[None] | None = None

    @property
    def state(self) -> InitializerState:
        return self._state

    @property
    def migrator(self) -> SchemaMigrator:
        return self._migrator

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def exhausted(self) -> bool:
        state = self._state
        return isinstance(state, Failed) and state.attempts >= self._max_retries

    async def ensure_ready(self) -> None:
        """Run startup once. Never raises; an exhausted initializer returns immediately."""
        while True:
            state = self._state

            if isinstance(state, Ready) or self.exhausted:
                return

            if isinstance(state, InProgress):
                await asyncio.shield(state.task)
                return

            # A run orphaned by reset() may still be writing; never overlap it.
            orphan = self._orphan
            if orphan is not None and not orphan.done():
                await asyncio.shield(orphan)
                continue
            self._orphan = None

            prior = state.attempts if isinstance(state, Failed) else 0
            task = asyncio.get_running_loop().create_task(self._run(prior, self._generation))
            self._state = InProgress(task)
            await asyncio.shield(task)
            return

    def reset(self) -> None:
        """Forget every outcome (used by a full data reset) so the next call starts over."""
        state = self._state
        if isinstance(state, InProgress) and not state.task.done():
            self._orphan = state.task
        self._generation += 1
        self._state = Uninitialized()
        logger.debug("Initializer reset (generation=%d)", self._generation)

    async def _run(self, prior_attempts: int, generation: int) -> None:
        try:
            await self._migrator.migrate_to(self._target_version, self._steps)

            initialized = await self._store.get(StorageKeys.INITIALIZED)
            if not initialized:
                logger.info("Seeding initial data...")
                for key, value in self._seeds().items():
                    await self._store.set(str(key), value)
                await self._store.set(StorageKeys.INITIALIZED, "true")
                logger.info("Initial data seeded")
        except Exception:
            attempts = prior_attempts + 1
            logger.exception("Initialization failed (attempt %d/%d)", attempts, self._max_retries)

            if attempts >= self._max_retries:
                logger.error("Initialization failed %d times, halting retries", attempts)
                self._publish(generation, Failed(attempts))
                return

            delay = self._base_delay * (2 ** (attempts - 1))
            logger.warning("Will allow retry #%d after %.3fs backoff", attempts, delay)
            await self._sleep(delay)
            self._publish(generation, Failed(attempts))
            return

        self._publish(generation, Ready())

    def _publish(self, generation: int, state: InitializerState) -> None:
        if generation != self._generation:
            return
        self._state = state
