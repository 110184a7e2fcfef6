# src/homekeep/home/service.py

from __future__ import annotations

"""
HomeData: the application-facing facade over the data layer.

Every create/update/delete goes through CacheSyncMutator, so the cache always
mirrors the last successful write. Collections are loaded into the cache on
first use; a mutation never runs against a collection that was not loaded.
"""

import asyncio
import logging
import secrets
import time
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from ..core.ports import KeyValueStore
from ..storage.cache import CacheSyncMutator, QueryCache
from ..storage.initializer import Initializer, Sleep
from ..storage.keys import MONTHLY_BUDGET_CACHE_KEY, RESERVED_KEYS, Collection, StorageKeys
from ..storage.repository import COLLECTIONS, TypedRepository
from ..storage.seed import DEFAULT_MONTHLY_BUDGET, format_budget, seed_payloads
from .models import (
    Appliance,
    BudgetItem,
    HomeProfile,
    HouseholdMember,
    MaintenanceTask,
    PrivateNote,
    RecommendedGroup,
    RecommendedItem,
    ReviewRating,
    TaskStatus,
    TrustedPro,
)
from .recurrence import build_successor, has_valid_interval, to_date, to_iso

logger = logging.getLogger(__name__)


def new_id(prefix: str) -> str:
    """Fresh entity id: "<prefix>-<ms timestamp>-<random hex>"."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def _append_unique(items: list[Any], item: Any, label: str) -> list[Any]:
    if any(i.get("id") == item["id"] for i in items):
        logger.warning("Duplicate %s rejected: %s", label, item["id"])
        return items
    return [*items, item]


def _replace_by_id(items: list[Any], item: Any) -> list[Any]:
    return [item if i.get("id") == item["id"] else i for i in items]


def _without_id(items: list[Any], item_id: str) -> list[Any]:
    return [i for i in items if i.get("id") != item_id]


def _patch(items: list[Any], item_id: str, fn: Callable[[Any], Any]) -> list[Any]:
    return [fn(i) if i.get("id") == item_id else i for i in items]


class HomeData:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_retries: int = 3,
        base_delay_seconds: float = 0.5,
        serialize_writes: bool = False,
        default_monthly_budget: float = DEFAULT_MONTHLY_BUDGET,
        today: Callable[[], date] = date.today,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.cache = QueryCache()
        self.initializer = Initializer(
            store,
            lambda: seed_payloads(default_monthly_budget),
            max_retries=max_retries,
            base_delay_seconds=base_delay_seconds,
            sleep=sleep,
        )
        self.repository = TypedRepository(store, self.initializer, default_monthly_budget=default_monthly_budget)
        self.mutator = CacheSyncMutator(store, self.cache, serialize_writes=serialize_writes)
        self._today = today

    @classmethod
    def from_settings(cls, store: KeyValueStore, settings: Any, **kwargs: Any) -> HomeData:
        return cls(
            store,
            max_retries=settings.init_max_retries,
            base_delay_seconds=settings.init_base_delay_seconds,
            serialize_writes=settings.serialize_writes,
            default_monthly_budget=settings.default_monthly_budget,
            **kwargs,
        )

    def today(self) -> date:
        return to_date(self._today())

    # ---- loading ----

    async def ensure_ready(self) -> None:
        await self.initializer.ensure_ready()

    async def refresh(self, collection: Collection) -> Any:
        value = await self.repository.load_collection(collection)
        self.cache.set(collection, value)
        return value

    async def refresh_all(self) -> None:
        await asyncio.gather(*(self.refresh(c) for c in Collection), self._refresh_budget())

    async def items(self, collection: Collection) -> Any:
        if self.cache.has(collection):
            return self.cache.get(collection)
        return await self.refresh(collection)

    async def _mutate(self, collection: Collection, updater: Callable[[list[Any]], list[Any]]) -> list[Any]:
        if not self.cache.has(collection):
            await self.refresh(collection)
        return await self.mutator.mutate(COLLECTIONS[collection].storage_key, collection, updater)

    # ---- appliances ----

    async def add_appliance(self, appliance: Appliance) -> list[Appliance]:
        return await self._mutate(Collection.APPLIANCES, lambda items: _append_unique(items, appliance, "appliance"))

    async def update_appliance(self, appliance: Appliance) -> list[Appliance]:
        return await self._mutate(Collection.APPLIANCES, lambda items: _replace_by_id(items, appliance))

    async def delete_appliance(self, appliance_id: str) -> list[Appliance]:
        return await self._mutate(Collection.APPLIANCES, lambda items: _without_id(items, appliance_id))

    async def get_appliance(self, appliance_id: str) -> Appliance | None:
        for a in await self.items(Collection.APPLIANCES):
            if a.get("id") == appliance_id:
                return a
        return None

    # ---- tasks ----

    async def add_task(self, task: MaintenanceTask) -> list[MaintenanceTask]:
        return await self._mutate(Collection.TASKS, lambda items: _append_unique(items, task, "task"))

    async def update_task(self, task: MaintenanceTask) -> list[MaintenanceTask]:
        return await self._mutate(Collection.TASKS, lambda items: _replace_by_id(items, task))

    async def delete_task(self, task_id: str) -> list[MaintenanceTask]:
        return await self._mutate(Collection.TASKS, lambda items: _without_id(items, task_id))

    async def get_task(self, task_id: str) -> MaintenanceTask | None:
        for t in await self.items(Collection.TASKS):
            if t.get("id") == task_id:
                return t
        return None

    async def complete_task(self, task_id: str) -> MaintenanceTask | None:
        """
        Mark a task completed. A recurring template also gets its one successor.

        Returns the successor, or None (not recurring, unknown id, already completed).
        """
        existing = await self.get_task(task_id)
        if existing is None:
            logger.warning("complete_task: unknown task %s", task_id)
            return None
        if existing.get("status") == TaskStatus.COMPLETED:
            logger.info("complete_task: task %s already completed", task_id)
            return None

        today = self.today()
        successor_id = new_id("task")
        created: list[MaintenanceTask] = []

        def updater(items: list[MaintenanceTask]) -> list[MaintenanceTask]:
            created.clear()
            task = next((t for t in items if t.get("id") == task_id), None)
            if task is None or task.get("status") == TaskStatus.COMPLETED:
                return items

            out = _patch(
                items,
                task_id,
                lambda t: {**t, "status": TaskStatus.COMPLETED.value, "completed_date": to_iso(today)},
            )
            if has_valid_interval(task):
                successor = build_successor(task, today=today, new_id=successor_id)
                created.append(successor)
                out.append(successor)
            return out

        await self._mutate(Collection.TASKS, updater)

        if created:
            logger.info("Recurring task completed: %s | next due: %s", existing.get("title"), created[0]["due_date"])
            return created[0]
        return None

    async def archive_task(self, task_id: str) -> list[MaintenanceTask]:
        archived_on = to_iso(self.today())
        return await self._mutate(
            Collection.TASKS,
            lambda items: _patch(
                items,
                task_id,
                lambda t: {**t, "status": TaskStatus.ARCHIVED.value, "archived_date": archived_on},
            ),
        )

    async def unarchive_task(self, task_id: str) -> list[MaintenanceTask]:
        def restore(t: MaintenanceTask) -> MaintenanceTask:
            out = {k: v for k, v in t.items() if k != "archived_date"}
            out["status"] = TaskStatus.UPCOMING.value
            return out  # type: ignore[return-value]

        return await self._mutate(Collection.TASKS, lambda items: _patch(items, task_id, restore))

    async def add_task_note(self, task_id: str, note: str) -> list[MaintenanceTask]:
        return await self._mutate(
            Collection.TASKS,
            lambda items: _patch(items, task_id, lambda t: {**t, "notes": [*(t.get("notes") or []), note]}),
        )

    async def remove_task_note(self, task_id: str, note_index: int) -> list[MaintenanceTask]:
        def drop(t: MaintenanceTask) -> MaintenanceTask:
            notes = list(t.get("notes") or [])
            if 0 <= note_index < len(notes):
                del notes[note_index]
            return {**t, "notes": notes}

        return await self._mutate(Collection.TASKS, lambda items: _patch(items, task_id, drop))

    async def update_task_product_link(self, task_id: str, product_link: str | None) -> list[MaintenanceTask]:
        return await self._mutate(
            Collection.TASKS,
            lambda items: _patch(items, task_id, lambda t: {**t, "product_link": product_link}),
        )

    async def update_task_trusted_pro(self, task_id: str, trusted_pro_id: str | None) -> list[MaintenanceTask]:
        logger.info("Updated trusted pro for task %s: %s", task_id, trusted_pro_id)
        return await self._mutate(
            Collection.TASKS,
            lambda items: _patch(items, task_id, lambda t: {**t, "trusted_pro_id": trusted_pro_id}),
        )

    def _is_past_due(self, task: MaintenanceTask, today: date) -> bool:
        if task.get("status") != TaskStatus.UPCOMING:
            return False
        try:
            return to_date(task["due_date"]) < today
        except (KeyError, ValueError):
            return False

    async def mark_overdue_tasks(self) -> int:
        """upcoming tasks due before today -> overdue. Returns how many changed."""
        today = self.today()
        tasks = await self.items(Collection.TASKS)
        due = [t["id"] for t in tasks if self._is_past_due(t, today)]
        if not due:
            return 0

        logger.info("Detected %d overdue task(s), updating statuses", len(due))

        def updater(items: list[MaintenanceTask]) -> list[MaintenanceTask]:
            return [
                {**t, "status": TaskStatus.OVERDUE.value} if self._is_past_due(t, today) else t
                for t in items
            ]

        await self._mutate(Collection.TASKS, updater)
        return len(due)

    async def tasks_with_status(self, status: TaskStatus) -> list[MaintenanceTask]:
        return [t for t in await self.items(Collection.TASKS) if t.get("status") == status]

    async def upcoming_tasks(self) -> list[MaintenanceTask]:
        return sorted(await self.tasks_with_status(TaskStatus.UPCOMING), key=lambda t: t.get("due_date", ""))

    async def overdue_tasks(self) -> list[MaintenanceTask]:
        return await self.tasks_with_status(TaskStatus.OVERDUE)

    async def completed_tasks(self) -> list[MaintenanceTask]:
        return await self.tasks_with_status(TaskStatus.COMPLETED)

    async def archived_tasks(self) -> list[MaintenanceTask]:
        return await self.tasks_with_status(TaskStatus.ARCHIVED)

    async def active_tasks(self) -> list[MaintenanceTask]:
        return [t for t in await self.items(Collection.TASKS) if t.get("status") != TaskStatus.ARCHIVED]

    # ---- budget ----

    async def add_budget_item(self, item: BudgetItem) -> list[BudgetItem]:
        return await self._mutate(Collection.BUDGET_ITEMS, lambda items: _append_unique(items, item, "budget item"))

    async def update_budget_item(self, item: BudgetItem) -> list[BudgetItem]:
        return await self._mutate(Collection.BUDGET_ITEMS, lambda items: _replace_by_id(items, item))

    async def delete_budget_item(self, item_id: str) -> list[BudgetItem]:
        return await self._mutate(Collection.BUDGET_ITEMS, lambda items: _without_id(items, item_id))

    async def _refresh_budget(self) -> float:
        amount = await self.repository.load_monthly_budget()
        self.cache.set(MONTHLY_BUDGET_CACHE_KEY, amount)
        return amount

    async def monthly_budget(self) -> float:
        if self.cache.has(MONTHLY_BUDGET_CACHE_KEY):
            return float(self.cache.get(MONTHLY_BUDGET_CACHE_KEY))
        return await self._refresh_budget()

    async def set_monthly_budget(self, amount: float) -> float:
        value = float(amount)
        return await self.mutator.replace(
            StorageKeys.MONTHLY_BUDGET,
            MONTHLY_BUDGET_CACHE_KEY,
            value,
            raw=format_budget(value),
        )

    async def total_spent(self, year: int | None = None, month: int | None = None) -> float:
        """Sum of budget items dated in the given month (default: the current month)."""
        today = self.today()
        year = today.year if year is None else year
        month = today.month if month is None else month

        total = 0.0
        for item in await self.items(Collection.BUDGET_ITEMS):
            try:
                d = to_date(item["date"])
            except (KeyError, ValueError):
                continue
            if d.year == year and d.month == month:
                total += float(item["amount"])
        return total

    # ---- trusted pros ----

    async def add_trusted_pro(self, pro: TrustedPro) -> list[TrustedPro]:
        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _append_unique(items, pro, "trusted pro"))

    async def update_trusted_pro(self, pro: TrustedPro) -> list[TrustedPro]:
        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _replace_by_id(items, pro))

    async def delete_trusted_pro(self, pro_id: str) -> list[TrustedPro]:
        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _without_id(items, pro_id))

    async def add_pro_private_note(self, pro_id: str, text: str) -> PrivateNote:
        note: PrivateNote = {
            "id": new_id("note"),
            "text": text,
            "created_at": datetime.now().astimezone().isoformat(timespec="seconds"),
        }
        await self._mutate(
            Collection.TRUSTED_PROS,
            lambda items: _patch(
                items, pro_id, lambda p: {**p, "private_notes": [*(p.get("private_notes") or []), note]}
            ),
        )
        logger.info("Added private note to pro %s", pro_id)
        return note

    async def update_pro_private_note(self, pro_id: str, note_id: str, text: str) -> list[TrustedPro]:
        def edit(p: TrustedPro) -> TrustedPro:
            notes = [{**n, "text": text} if n.get("id") == note_id else n for n in p.get("private_notes") or []]
            return {**p, "private_notes": notes}  # type: ignore[typeddict-item]

        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _patch(items, pro_id, edit))

    async def remove_pro_private_note(self, pro_id: str, note_id: str) -> list[TrustedPro]:
        def drop(p: TrustedPro) -> TrustedPro:
            return {**p, "private_notes": [n for n in p.get("private_notes") or [] if n.get("id") != note_id]}

        logger.info("Removed private note %s from pro %s", note_id, pro_id)
        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _patch(items, pro_id, drop))

    async def link_appliance_to_pro(self, pro_id: str, appliance_id: str) -> list[TrustedPro]:
        def link(p: TrustedPro) -> TrustedPro:
            existing = list(p.get("linked_appliance_ids") or [])
            if appliance_id in existing:
                return p
            return {**p, "linked_appliance_ids": [*existing, appliance_id]}

        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _patch(items, pro_id, link))

    async def unlink_appliance_from_pro(self, pro_id: str, appliance_id: str) -> list[TrustedPro]:
        def unlink(p: TrustedPro) -> TrustedPro:
            return {**p, "linked_appliance_ids": [a for a in p.get("linked_appliance_ids") or [] if a != appliance_id]}

        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _patch(items, pro_id, unlink))

    async def update_pro_ratings(self, pro_id: str, ratings: list[ReviewRating]) -> list[TrustedPro]:
        logger.info("Updated ratings for pro %s", pro_id)
        return await self._mutate(
            Collection.TRUSTED_PROS,
            lambda items: _patch(items, pro_id, lambda p: {**p, "ratings": list(ratings)}),
        )

    async def update_pro_service_info(
        self,
        pro_id: str,
        service_categories: list[str],
        service_radius: float | None = None,
    ) -> list[TrustedPro]:
        def apply(p: TrustedPro) -> TrustedPro:
            out = {k: v for k, v in p.items() if k != "service_radius"}
            out["service_categories"] = list(service_categories)
            if service_radius is not None:
                out["service_radius"] = service_radius
            return out  # type: ignore[return-value]

        return await self._mutate(Collection.TRUSTED_PROS, lambda items: _patch(items, pro_id, apply))

    # ---- recommended appliance checklist ----

    async def recommended_groups(self) -> list[RecommendedGroup]:
        return await self.items(Collection.RECOMMENDED_GROUPS)

    async def update_recommended_groups(self, groups: list[RecommendedGroup]) -> list[RecommendedGroup]:
        return await self._mutate(Collection.RECOMMENDED_GROUPS, lambda _: list(groups))

    async def add_recommended_item(self, group_key: str, item: RecommendedItem) -> list[RecommendedGroup]:
        logger.info("Adding recommended item %s to group %s", item.get("name"), group_key)
        return await self._mutate(
            Collection.RECOMMENDED_GROUPS,
            lambda groups: [{**g, "items": [*g["items"], item]} if g.get("key") == group_key else g for g in groups],
        )

    async def remove_recommended_item(self, group_key: str, item_id: str) -> list[RecommendedGroup]:
        logger.info("Removing recommended item %s from group %s", item_id, group_key)
        return await self._mutate(
            Collection.RECOMMENDED_GROUPS,
            lambda groups: [
                {**g, "items": _without_id(g["items"], item_id)} if g.get("key") == group_key else g for g in groups
            ],
        )

    async def duplicate_recommended_item(self, group_key: str, item_id: str) -> RecommendedItem | None:
        """Insert a custom copy right after the original. Returns the copy, or None if not found."""
        copy_id = new_id("rec-custom")
        created: list[RecommendedItem] = []

        def updater(groups: list[RecommendedGroup]) -> list[RecommendedGroup]:
            created.clear()
            out = []
            for g in groups:
                idx = next((i for i, it in enumerate(g["items"]) if it.get("id") == item_id), None)
                if g.get("key") != group_key or idx is None:
                    out.append(g)
                    continue
                original = g["items"][idx]
                copy = {**original, "id": copy_id, "name": f"{original['name']} (Copy)", "is_custom": True}
                created.append(copy)  # type: ignore[arg-type]
                out.append({**g, "items": [*g["items"][: idx + 1], copy, *g["items"][idx + 1 :]]})
            return out

        await self._mutate(Collection.RECOMMENDED_GROUPS, updater)
        return created[0] if created else None

    async def sync_recommended_item(self, group_key: str, item_id: str) -> Appliance | None:
        """
        Copy name, category and location from the matching appliance onto a
        checklist item. Match: same name (case-insensitive), same category when
        the item has one, same location when both have one. No match, no write.
        """
        groups = await self.recommended_groups()
        group = next((g for g in groups if g.get("key") == group_key), None)
        item = next((i for i in group["items"] if i.get("id") == item_id), None) if group else None
        if item is None:
            return None

        def matches(a: Appliance) -> bool:
            if a.get("name", "").lower() != item["name"].lower():
                return False
            if item.get("category") and a.get("category") != item["category"]:
                return False
            if item.get("location") and a.get("location"):
                return a["location"].lower() == item["location"].lower()
            return True

        appliance = next((a for a in await self.items(Collection.APPLIANCES) if matches(a)), None)
        if appliance is None:
            return None

        synced = {"name": appliance["name"], "category": appliance["category"], "location": appliance.get("location", "")}
        await self._mutate(
            Collection.RECOMMENDED_GROUPS,
            lambda gs: [
                {**g, "items": _patch(g["items"], item_id, lambda i: {**i, **synced})} if g.get("key") == group_key else g
                for g in gs
            ],
        )
        logger.info("Synced recommended item %s with appliance %s", item_id, appliance["id"])
        return appliance

    # ---- home profile ----

    async def home_profile(self) -> HomeProfile:
        return await self.items(Collection.HOME_PROFILE)

    async def update_home_profile(self, profile: HomeProfile) -> HomeProfile:
        return await self.mutator.replace(StorageKeys.HOME_PROFILE, Collection.HOME_PROFILE, profile)

    async def add_household_member(self, member: HouseholdMember) -> HomeProfile:
        current = await self.home_profile()
        members = [*(current.get("household_members") or []), member]
        logger.info("Added household member %s", member.get("name"))
        return await self.update_home_profile({**current, "household_members": members})

    async def update_household_member(self, member: HouseholdMember) -> HomeProfile:
        current = await self.home_profile()
        members = [member if m.get("id") == member["id"] else m for m in current.get("household_members") or []]
        return await self.update_home_profile({**current, "household_members": members})

    async def remove_household_member(self, member_id: str) -> HomeProfile:
        current = await self.home_profile()
        members = [m for m in current.get("household_members") or [] if m.get("id") != member_id]
        logger.info("Removed household member %s", member_id)
        return await self.update_home_profile({**current, "household_members": members})

    # ---- reset ----

    async def reset_all(self) -> int:
        """
        Remove every known key except the reserved ones and forget the startup
        outcome, so the next load seeds again. Returns the number of keys that
        failed to remove (logged, not raised).
        """
        logger.info("Resetting all data to defaults...")
        self.initializer.reset()
        self.cache.clear()

        keys = [k for k in StorageKeys if k not in RESERVED_KEYS]
        results = await asyncio.gather(*(self.store.remove(k) for k in keys), return_exceptions=True)
        failures = [(k, r) for k, r in zip(keys, results) if isinstance(r, BaseException)]
        for key, err in failures:
            logger.error("Failed to remove %s during reset: %r", key, err)

        logger.info("Reset complete, will re-seed on next load")
        return len(failures)
