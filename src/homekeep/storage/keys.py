# src/homekeep/storage/keys.py

from __future__ import annotations

from enum import StrEnum


class StorageKeys(StrEnum):
    """
    Persisted key namespace.

    These strings are on disk; they must stay stable across schema versions.
    """

    APPLIANCES = "home_appliances"
    TASKS = "home_tasks"
    BUDGET_ITEMS = "home_budget_items"
    TRUSTED_PROS = "home_trusted_pros"
    HOME_PROFILE = "home_profile"
    MONTHLY_BUDGET = "home_monthly_budget"
    RECOMMENDED_ITEMS = "home_recommended_items"
    INITIALIZED = "home_initialized"
    SCHEMA_VERSION = "home_schema_version"


# Survive reset_all(): migrations already applied to the data stay applied.
RESERVED_KEYS: frozenset[StorageKeys] = frozenset({StorageKeys.SCHEMA_VERSION})


class Collection(StrEnum):
    """Identifier of each persisted entity collection (also its cache key)."""

    APPLIANCES = "appliances"
    TASKS = "tasks"
    BUDGET_ITEMS = "budget_items"
    TRUSTED_PROS = "trusted_pros"
    HOME_PROFILE = "home_profile"
    RECOMMENDED_GROUPS = "recommended_groups"


MONTHLY_BUDGET_CACHE_KEY = "monthly_budget"
