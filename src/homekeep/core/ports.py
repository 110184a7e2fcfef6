# src/homekeep/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The data layer depends on Protocols instead of concrete implementations.
This keeps the durable store swappable (SQLite on disk, in-memory for demos)
and makes testing easier.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol


class KeyValueStore(Protocol):
    """
    Durable async string key -> string value store.

    Values are opaque strings; callers own JSON (de)serialization.
    A missing key reads as None. Removing a missing key is not an error.
    """

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


MigrationStep = Callable[[KeyValueStore], Awaitable[None]]
# One-time transform applied when advancing the schema from version v-1 to v.
