# tests/conftest.py

from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from homekeep.home.service import HomeData

from .fakes import FakeKeyValueStore, RecordingSleep

TODAY = date(2024, 1, 10)


@pytest.fixture()
def store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def settings(tmp_path) -> SimpleNamespace:
    """
    Minimal settings object compatible with HomeData.from_settings and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="homekeep-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        store_path=tmp_path / "store.sqlite3",
        storage_backend="sqlite",
        init_max_retries=3,
        init_base_delay_seconds=0.5,
        serialize_writes=False,
        default_monthly_budget=1500.0,
    )


@pytest.fixture()
def data(store: FakeKeyValueStore, sleep: RecordingSleep) -> HomeData:
    """HomeData over the fake store with a fixed calendar day."""
    return HomeData(store, today=lambda: TODAY, sleep=sleep)
