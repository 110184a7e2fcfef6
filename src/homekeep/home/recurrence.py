# src/homekeep/home/recurrence.py

from __future__ import annotations

"""
Recurring task rescheduling.

Completing a recurring task produces exactly one successor. Its due date is
chained from the old due date, unless that lands in the past: then it is
re-anchored on today with a single jump. A 30-day task completed 200 days
late yields one task due 30 days from today, not six backlog instances.
"""

from datetime import date, datetime, timedelta

from .models import MaintenanceTask, TaskStatus

DateLike = date | datetime | str


def to_date(value: DateLike) -> date:
    """Calendar day of value; datetimes are truncated to the start of their day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value.strip()[:10])


def to_iso(day: date) -> str:
    return day.isoformat()


def next_due_date(current_due_date: DateLike, interval_days: int, today: DateLike) -> date:
    """
    Next due date of a recurring task; always >= start of today.

    >>> next_due_date("2024-01-01", 30, "2024-01-10")
    datetime.date(2024, 1, 31)
    >>> next_due_date("2024-01-01", 30, "2024-08-01")
    datetime.date(2024, 8, 31)
    """
    if isinstance(interval_days, bool) or int(interval_days) <= 0:
        raise ValueError(f"interval_days must be a positive number of days, got {interval_days!r}")

    step = timedelta(days=int(interval_days))
    start_of_today = to_date(today)

    candidate = to_date(current_due_date) + step
    if candidate < start_of_today:
        candidate = start_of_today + step
    return candidate


def has_valid_interval(task: MaintenanceTask) -> bool:
    interval = task.get("recurring_interval")
    return (
        bool(task.get("recurring"))
        and isinstance(interval, int)
        and not isinstance(interval, bool)
        and interval > 0
    )


def build_successor(task: MaintenanceTask, *, today: DateLike, new_id: str) -> MaintenanceTask:
    """The single follow-up instance of a completed recurring task."""
    interval = int(task["recurring_interval"])  # type: ignore[arg-type]
    successor: MaintenanceTask = {
        "id": new_id,
        "title": task["title"],
        "description": task.get("description", ""),
        "due_date": to_iso(next_due_date(task["due_date"], interval, today)),
        "priority": task["priority"],
        "status": TaskStatus.UPCOMING.value,
        "recurring": True,
        "recurring_interval": interval,
        "notes": [],
    }
    for link in ("estimated_cost", "appliance_id", "trusted_pro_id", "product_link"):
        if task.get(link) is not None:
            successor[link] = task[link]  # type: ignore[literal-required]
    return successor
