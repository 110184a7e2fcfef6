# tests/test_commands.py

from __future__ import annotations

import pytest

from homekeep.cli.bootstrap import create_home_data
from homekeep.cli.commands import CommandRegistry, registry
from homekeep.home.service import HomeData
from homekeep.storage.keys import Collection
from homekeep.storage.kv_store import SqliteKeyValueStore
from homekeep.storage.seed import sample_tasks


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(data: HomeData) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    async def h2(data, args):
        called["h2"] += 1
        return "h2"

    async def h3(data, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")
    notes: list[str] = []

    assert await reg.handle(data, "/a x") == "h2"
    assert await reg.handle(data, "/b y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(data: HomeData) -> None:
    reg = CommandRegistry()
    assert await reg.handle(data, "hello") is None
    assert await reg.handle(data, "/Nope") == "No such command: /nope. /help lists the homekeep commands."
    assert "Type a command" in (await reg.handle(data, "/  ") or "")


def test_aliases_resolve_to_the_registered_command() -> None:
    assert registry.lookup("DONE") is registry.lookup("complete")
    assert registry.lookup("?").name == "help"
    assert registry.lookup("nope") is None


@pytest.mark.asyncio
async def test_help_lists_commands_once(data: HomeData) -> None:
    text = await registry.handle(data, "/?")
    assert text is not None
    assert "/complete" in text
    assert "/done" not in text


@pytest.mark.asyncio
async def test_tasks_and_complete(data: HomeData) -> None:
    listing = await registry.handle(data, "/tasks upcoming")
    assert listing is not None
    assert all(t["id"] in listing for t in sample_tasks())

    emitted: list[str] = []
    reply = await registry.handle(data, "/done task-1", emit=emitted.append)
    assert reply == "Completed: Replace HVAC filter. Next due: 2024-05-01"
    assert len(emitted) == 1

    assert await registry.handle(data, "/complete task-1") == "Task task-1 is already completed."
    assert await registry.handle(data, "/complete ghost") == "No task with id ghost."
    assert "Usage" in (await registry.handle(data, "/tasks soon") or "")


@pytest.mark.asyncio
async def test_budget_command(data: HomeData) -> None:
    assert await registry.handle(data, "/budget") == "Spent 193.50 of 1500.00 this month."
    assert await registry.handle(data, "/budget 1800") == "Monthly budget set to 1800.00."
    assert await registry.handle(data, "/budget -1") == "Budget must be zero or positive."
    assert await registry.handle(data, "/budget lots") == "Usage: /budget [amount]"
    assert await data.monthly_budget() == 1800.0


@pytest.mark.asyncio
async def test_reset_requires_confirmation(data: HomeData) -> None:
    await data.delete_task("task-3")

    reply = await registry.handle(data, "/reset")
    assert reply is not None and "/reset confirm" in reply
    assert await data.get_task("task-3") is None

    assert await registry.handle(data, "/reset confirm") == "All data reset to defaults."
    assert await data.items(Collection.TASKS) == sample_tasks()


@pytest.mark.asyncio
async def test_status_reports_schema_version(data: HomeData) -> None:
    text = await registry.handle(data, "/status")
    assert text is not None
    assert "Schema version: v2" in text
    assert "Appliances: 3" in text


def test_bootstrap_builds_sqlite_backed_home_data(settings) -> None:
    data = create_home_data(settings=settings)
    assert isinstance(data.store, SqliteKeyValueStore)
    assert data.store.db_path == settings.store_path
    assert data.initializer.max_retries == settings.init_max_retries
