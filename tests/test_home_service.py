# tests/test_home_service.py

from __future__ import annotations

import json

import pytest

from homekeep.home.service import HomeData
from homekeep.storage.keys import Collection, StorageKeys
from homekeep.storage.seed import default_recommended_groups, sample_appliances, sample_tasks

from .fakes import FakeKeyValueStore


def _task(task_id: str, due: str, **extra):
    task = {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": "",
        "due_date": due,
        "priority": "medium",
        "status": "upcoming",
        "recurring": False,
        "notes": [],
    }
    task.update(extra)
    return task


def _by_id(items, item_id):
    return next(i for i in items if i["id"] == item_id)


# ---- completion flow ----


@pytest.mark.asyncio
async def test_completing_recurring_task_creates_exactly_one_successor(data: HomeData) -> None:
    successor = await data.complete_task("task-1")

    tasks = await data.items(Collection.TASKS)
    assert len(tasks) == len(sample_tasks()) + 1
    done = _by_id(tasks, "task-1")
    assert done["status"] == "completed"
    assert done["completed_date"] == "2024-01-10"

    assert successor is not None
    assert successor["id"] != "task-1"
    assert successor["status"] == "upcoming"
    assert successor["due_date"] == "2024-05-01"
    assert successor["title"] == done["title"]
    assert successor["appliance_id"] == "appliance-1"
    assert _by_id(tasks, successor["id"]) == successor
    assert json.loads(data.store.data[StorageKeys.TASKS]) == tasks


@pytest.mark.asyncio
async def test_completing_twice_does_not_create_a_second_successor(data: HomeData) -> None:
    await data.complete_task("task-1")
    writes = len(data.store.sets_for(StorageKeys.TASKS))

    assert await data.complete_task("task-1") is None
    assert len(await data.items(Collection.TASKS)) == len(sample_tasks()) + 1
    assert len(data.store.sets_for(StorageKeys.TASKS)) == writes


@pytest.mark.asyncio
async def test_completing_one_off_task_creates_no_successor(data: HomeData) -> None:
    assert await data.complete_task("task-3") is None

    tasks = await data.items(Collection.TASKS)
    assert len(tasks) == len(sample_tasks())
    assert _by_id(tasks, "task-3")["status"] == "completed"


@pytest.mark.asyncio
async def test_very_late_completion_schedules_from_today(data: HomeData) -> None:
    await data.add_task(_task("late", "2023-06-01", recurring=True, recurring_interval=30))

    successor = await data.complete_task("late")

    assert successor is not None
    assert successor["due_date"] == "2024-02-09"
    tasks = await data.items(Collection.TASKS)
    assert [t["id"] for t in tasks if t.get("title") == "Task late" and t["status"] == "upcoming"] == [successor["id"]]


@pytest.mark.asyncio
async def test_completing_unknown_task_is_a_noop(data: HomeData) -> None:
    await data.refresh(Collection.TASKS)
    writes = len(data.store.sets_for(StorageKeys.TASKS))

    assert await data.complete_task("nope") is None
    assert len(data.store.sets_for(StorageKeys.TASKS)) == writes


# ---- other task operations ----


@pytest.mark.asyncio
async def test_duplicate_task_is_rejected(data: HomeData) -> None:
    await data.add_task(_task("task-1", "2030-01-01"))
    tasks = await data.items(Collection.TASKS)
    assert [t["id"] for t in tasks].count("task-1") == 1
    assert _by_id(tasks, "task-1")["due_date"] == "2024-02-01"


@pytest.mark.asyncio
async def test_update_and_delete_task(data: HomeData) -> None:
    await data.update_task({**_task("task-3", "2024-02-02"), "title": "Renamed"})
    assert (await data.get_task("task-3"))["title"] == "Renamed"

    await data.delete_task("task-3")
    assert await data.get_task("task-3") is None


@pytest.mark.asyncio
async def test_mark_overdue_tasks(data: HomeData) -> None:
    await data.add_task(_task("past", "2024-01-05"))
    await data.add_task(_task("today", "2024-01-10"))

    assert await data.mark_overdue_tasks() == 1
    assert [t["id"] for t in await data.overdue_tasks()] == ["past"]
    assert (await data.get_task("today"))["status"] == "upcoming"

    writes = len(data.store.sets_for(StorageKeys.TASKS))
    assert await data.mark_overdue_tasks() == 0
    assert len(data.store.sets_for(StorageKeys.TASKS)) == writes


@pytest.mark.asyncio
async def test_archive_and_unarchive(data: HomeData) -> None:
    await data.archive_task("task-2")
    archived = await data.get_task("task-2")
    assert archived["status"] == "archived"
    assert archived["archived_date"] == "2024-01-10"
    assert "task-2" not in [t["id"] for t in await data.active_tasks()]
    assert [t["id"] for t in await data.archived_tasks()] == ["task-2"]

    await data.unarchive_task("task-2")
    restored = await data.get_task("task-2")
    assert restored["status"] == "upcoming"
    assert "archived_date" not in restored


@pytest.mark.asyncio
async def test_task_notes_and_links(data: HomeData) -> None:
    await data.add_task_note("task-1", "first")
    await data.add_task_note("task-1", "second")
    await data.remove_task_note("task-1", 0)
    await data.remove_task_note("task-1", 5)
    await data.update_task_product_link("task-1", "https://example.com/filter")
    await data.update_task_trusted_pro("task-1", "pro-9")

    task = await data.get_task("task-1")
    assert task["notes"] == ["second"]
    assert task["product_link"] == "https://example.com/filter"
    assert task["trusted_pro_id"] == "pro-9"


@pytest.mark.asyncio
async def test_upcoming_tasks_sorted_by_due_date(data: HomeData) -> None:
    due = [t["due_date"] for t in await data.upcoming_tasks()]
    assert due == sorted(due)


@pytest.mark.asyncio
async def test_write_failure_reaches_the_caller(data: HomeData, store: FakeKeyValueStore) -> None:
    before = list(await data.items(Collection.TASKS))
    store.fail_set_keys.add(StorageKeys.TASKS)

    with pytest.raises(OSError):
        await data.add_task(_task("new", "2024-02-01"))
    assert await data.items(Collection.TASKS) == before


# ---- appliances, budget, pros, profile ----


@pytest.mark.asyncio
async def test_appliance_crud(data: HomeData) -> None:
    await data.update_appliance({**sample_appliances()[0], "location": "Side yard"})
    assert (await data.get_appliance("appliance-1"))["location"] == "Side yard"

    await data.delete_appliance("appliance-1")
    assert await data.get_appliance("appliance-1") is None
    assert len(await data.items(Collection.APPLIANCES)) == len(sample_appliances()) - 1


@pytest.mark.asyncio
async def test_budget_totals_and_monthly_limit(data: HomeData) -> None:
    assert await data.total_spent() == pytest.approx(193.5)
    assert await data.total_spent(2023, 12) == 0.0

    await data.add_budget_item(
        {"id": "budget-3", "category": "upgrade", "description": "Thermostat", "amount": 200, "date": "2024-01-22"}
    )
    await data.delete_budget_item("budget-1")
    assert await data.total_spent() == pytest.approx(264.5)

    assert await data.monthly_budget() == 1500.0
    await data.set_monthly_budget(2000)
    assert await data.monthly_budget() == 2000.0
    assert data.store.data[StorageKeys.MONTHLY_BUDGET] == "2000.0"


@pytest.mark.asyncio
async def test_trusted_pro_notes_and_appliance_links(data: HomeData) -> None:
    await data.add_trusted_pro({"id": "pro-1", "name": "Pat", "specialty": "hvac"})

    note = await data.add_pro_private_note("pro-1", "Prefers texts")
    await data.update_pro_private_note("pro-1", note["id"], "Prefers calls")
    await data.link_appliance_to_pro("pro-1", "appliance-1")
    await data.link_appliance_to_pro("pro-1", "appliance-1")
    await data.link_appliance_to_pro("pro-1", "appliance-2")
    await data.unlink_appliance_from_pro("pro-1", "appliance-2")

    pro = _by_id(await data.items(Collection.TRUSTED_PROS), "pro-1")
    assert [n["text"] for n in pro["private_notes"]] == ["Prefers calls"]
    assert pro["linked_appliance_ids"] == ["appliance-1"]

    await data.remove_pro_private_note("pro-1", note["id"])
    await data.update_trusted_pro({**pro, "private_notes": [], "phone": "555-0100"})
    pro = _by_id(await data.items(Collection.TRUSTED_PROS), "pro-1")
    assert pro["phone"] == "555-0100"
    assert pro["private_notes"] == []

    await data.delete_trusted_pro("pro-1")
    assert await data.items(Collection.TRUSTED_PROS) == []


@pytest.mark.asyncio
async def test_household_members(data: HomeData) -> None:
    member = {"id": "m1", "name": "Sam", "role": "partner", "invited_at": "2024-01-09", "status": "pending"}

    await data.add_household_member(member)
    await data.update_household_member({**member, "status": "accepted"})
    profile = await data.home_profile()
    assert profile["household_members"] == [{**member, "status": "accepted"}]
    assert json.loads(data.store.data[StorageKeys.HOME_PROFILE]) == profile

    await data.remove_household_member("m1")
    assert (await data.home_profile())["household_members"] == []


# ---- reset ----


@pytest.mark.asyncio
async def test_reset_all_restores_seed_defaults(data: HomeData, store: FakeKeyValueStore) -> None:
    await data.refresh_all()
    await data.complete_task("task-1")
    await data.delete_appliance("appliance-2")
    await data.set_monthly_budget(99)

    assert await data.reset_all() == 0
    assert not data.cache.has(Collection.TASKS)
    assert StorageKeys.SCHEMA_VERSION in store.data
    assert StorageKeys.SCHEMA_VERSION not in store.remove_calls

    assert await data.items(Collection.TASKS) == sample_tasks()
    assert await data.items(Collection.APPLIANCES) == sample_appliances()
    assert await data.monthly_budget() == 1500.0
    assert len(store.sets_for(StorageKeys.INITIALIZED)) == 2


@pytest.mark.asyncio
async def test_reset_all_reports_keys_it_could_not_remove(data: HomeData, store: FakeKeyValueStore) -> None:
    await data.ensure_ready()
    store.fail_remove_keys.add(StorageKeys.TASKS)

    assert await data.reset_all() == 1
    assert StorageKeys.APPLIANCES not in store.data


@pytest.mark.asyncio
async def test_pro_ratings_and_service_info(data: HomeData) -> None:
    await data.add_trusted_pro({"id": "pro-1", "name": "Pat", "specialty": "hvac"})
    ratings = [{"source": "google", "rating": 4.8, "review_count": 112}]

    await data.update_pro_ratings("pro-1", ratings)
    await data.update_pro_service_info("pro-1", ["hvac", "plumbing"], 25)
    pro = _by_id(await data.items(Collection.TRUSTED_PROS), "pro-1")
    assert pro["ratings"] == ratings
    assert pro["service_categories"] == ["hvac", "plumbing"]
    assert pro["service_radius"] == 25

    await data.update_pro_service_info("pro-1", ["general"])
    pro = _by_id(await data.items(Collection.TRUSTED_PROS), "pro-1")
    assert pro["service_categories"] == ["general"]
    assert "service_radius" not in pro
    assert json.loads(data.store.data[StorageKeys.TRUSTED_PROS]) == [pro]


# ---- recommended appliance checklist ----


def _group(groups, key):
    return next(g for g in groups if g["key"] == key)


@pytest.mark.asyncio
async def test_recommended_groups_default_when_never_saved(data: HomeData) -> None:
    assert await data.recommended_groups() == default_recommended_groups()
    assert StorageKeys.RECOMMENDED_ITEMS not in data.store.data


@pytest.mark.asyncio
async def test_add_and_remove_recommended_item(data: HomeData) -> None:
    item = {"id": "rec-x", "name": "Heat Pump", "category": "hvac", "location": "Exterior", "is_custom": True}

    await data.add_recommended_item("hvac", item)
    hvac = _group(await data.recommended_groups(), "hvac")
    assert hvac["items"][-1] == item
    assert json.loads(data.store.data[StorageKeys.RECOMMENDED_ITEMS]) == await data.recommended_groups()

    await data.remove_recommended_item("hvac", "rec-x")
    await data.remove_recommended_item("hvac", "rec-h1")
    ids = [i["id"] for i in _group(await data.recommended_groups(), "hvac")["items"]]
    assert "rec-x" not in ids
    assert "rec-h1" not in ids
    assert _group(await data.recommended_groups(), "kitchen") == _group(default_recommended_groups(), "kitchen")


@pytest.mark.asyncio
async def test_duplicate_recommended_item_inserts_copy_after_original(data: HomeData) -> None:
    copy = await data.duplicate_recommended_item("kitchen", "rec-k1")

    assert copy is not None
    assert copy["name"] == "Refrigerator (Copy)"
    assert copy["is_custom"] is True
    assert copy["id"] != "rec-k1"
    ids = [i["id"] for i in _group(await data.recommended_groups(), "kitchen")["items"]]
    assert ids[:3] == ["rec-k1", copy["id"], "rec-k2"]

    assert await data.duplicate_recommended_item("kitchen", "missing") is None


@pytest.mark.asyncio
async def test_sync_recommended_item_with_matching_appliance(data: HomeData) -> None:
    # Seeded appliance-3 is "Refrigerator" / kitchen / "Kitchen".
    await data.update_appliance({**sample_appliances()[2], "name": "REFRIGERATOR", "location": "kitchen"})

    appliance = await data.sync_recommended_item("kitchen", "rec-k1")

    assert appliance is not None and appliance["id"] == "appliance-3"
    item = _by_id(_group(await data.recommended_groups(), "kitchen")["items"], "rec-k1")
    assert item["name"] == "REFRIGERATOR"
    assert item["location"] == "kitchen"


@pytest.mark.asyncio
async def test_sync_recommended_item_without_match_writes_nothing(data: HomeData) -> None:
    assert await data.sync_recommended_item("kitchen", "rec-k3") is None
    assert await data.sync_recommended_item("kitchen", "nope") is None
    assert await data.sync_recommended_item("nope", "rec-k1") is None
    assert data.store.sets_for(StorageKeys.RECOMMENDED_ITEMS) == []


@pytest.mark.asyncio
async def test_reset_all_removes_recommended_items(data: HomeData, store: FakeKeyValueStore) -> None:
    await data.remove_recommended_item("kitchen", "rec-k1")
    assert StorageKeys.RECOMMENDED_ITEMS in store.data

    await data.reset_all()

    assert StorageKeys.RECOMMENDED_ITEMS not in store.data
    assert await data.recommended_groups() == default_recommended_groups()
