# src/homekeep/home/models.py

from __future__ import annotations

"""
Entity shapes and their validating parsers.

Entities are persisted as plain JSON objects, so they are typed as TypedDicts
rather than dataclasses: fields this version does not know about survive a
load -> mutate -> persist round trip untouched.

Parsers are structural only ("a list of objects whose required fields have the
right primitive types"). They never check date formats or cross references.
"""

from enum import StrEnum
from typing import Any, NotRequired, TypedDict


class TaskStatus(StrEnum):
    UPCOMING = "upcoming"
    OVERDUE = "overdue"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Appliance(TypedDict):
    id: str
    name: str
    category: str
    brand: NotRequired[str]
    model: NotRequired[str]
    serial_number: NotRequired[str]
    purchase_date: NotRequired[str]
    warranty_expiry: NotRequired[str]
    location: NotRequired[str]
    notes: NotRequired[str]


class MaintenanceTask(TypedDict):
    id: str
    title: str
    description: str
    due_date: str  # YYYY-MM-DD, local calendar day
    priority: str
    status: str
    recurring: bool
    recurring_interval: NotRequired[int | None]  # days
    estimated_cost: NotRequired[float | None]
    appliance_id: NotRequired[str | None]
    trusted_pro_id: NotRequired[str | None]
    product_link: NotRequired[str | None]
    notes: NotRequired[list[str]]
    completed_date: NotRequired[str]
    archived_date: NotRequired[str]


class BudgetItem(TypedDict):
    id: str
    category: str
    description: str
    amount: float
    date: str
    appliance_id: NotRequired[str | None]
    notes: NotRequired[str]
    tax_deductible: NotRequired[bool]


class PrivateNote(TypedDict):
    id: str
    text: str
    created_at: str


class ReviewRating(TypedDict):
    source: str  # google | yelp | angies_list | bbb | homeadvisor | thumbtack
    rating: float
    review_count: NotRequired[int]
    url: NotRequired[str]


class TrustedPro(TypedDict):
    id: str
    name: str
    specialty: str
    phone: NotRequired[str]
    email: NotRequired[str]
    notes: NotRequired[str]
    expense_ids: NotRequired[list[str]]
    created_at: NotRequired[str]
    ratings: NotRequired[list[ReviewRating]]
    linked_appliance_ids: NotRequired[list[str]]
    private_notes: NotRequired[list[PrivateNote]]
    service_categories: NotRequired[list[str]]
    service_radius: NotRequired[float]  # miles
    license_number: NotRequired[str]
    insurance_verified: NotRequired[bool]


class HouseholdMember(TypedDict):
    id: str
    name: str
    role: str
    invited_at: str
    status: str
    email: NotRequired[str]
    phone: NotRequired[str]


class HomeProfile(TypedDict):
    id: str
    nickname: str
    address: str
    home_type: str
    year_built: int | None
    household_members: NotRequired[list[HouseholdMember]]
    notes: NotRequired[str]


class RecommendedItem(TypedDict):
    id: str
    name: str
    category: str
    location: str
    is_custom: NotRequired[bool]


class RecommendedGroup(TypedDict):
    """Suggested appliances for one area of the house (one checklist section)."""

    key: str
    label: str
    icon: str
    color: str
    items: list[RecommendedItem]


# ---- structural checks ----

_NUMBER = "number"
_STR = str
_BOOL = bool
_LIST = list


def _has_type(value: Any, expected: Any) -> bool:
    if expected == _NUMBER:
        # bool is an int subclass; a flag is never a valid amount.
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


def _record_ok(item: Any, required: dict[str, Any], optional: dict[str, Any]) -> bool:
    if not isinstance(item, dict):
        return False
    for name, expected in required.items():
        if name not in item or not _has_type(item[name], expected):
            return False
    for name, expected in optional.items():
        value = item.get(name)
        if value is not None and not _has_type(value, expected):
            return False
    return True


def _parse_records(raw: Any, required: dict[str, Any], optional: dict[str, Any] | None = None) -> list[Any] | None:
    if not isinstance(raw, list):
        return None
    opt = optional or {}
    if all(_record_ok(item, required, opt) for item in raw):
        return raw
    return None


def parse_appliances(raw: Any) -> list[Appliance] | None:
    return _parse_records(raw, {"id": _STR, "name": _STR, "category": _STR})


def parse_tasks(raw: Any) -> list[MaintenanceTask] | None:
    return _parse_records(
        raw,
        {
            "id": _STR,
            "title": _STR,
            "due_date": _STR,
            "priority": _STR,
            "status": _STR,
            "recurring": _BOOL,
        },
        {"recurring_interval": int, "estimated_cost": _NUMBER, "notes": _LIST},
    )


def parse_budget_items(raw: Any) -> list[BudgetItem] | None:
    return _parse_records(
        raw,
        {"id": _STR, "category": _STR, "description": _STR, "amount": _NUMBER, "date": _STR},
    )


def parse_trusted_pros(raw: Any) -> list[TrustedPro] | None:
    return _parse_records(
        raw,
        {"id": _STR, "name": _STR, "specialty": _STR},
        {
            "expense_ids": _LIST,
            "ratings": _LIST,
            "linked_appliance_ids": _LIST,
            "private_notes": _LIST,
            "service_categories": _LIST,
            "service_radius": _NUMBER,
        },
    )


def parse_home_profile(raw: Any) -> HomeProfile | None:
    if not _record_ok(raw, {"id": _STR, "nickname": _STR}, {"household_members": _LIST}):
        return None
    return raw


def parse_recommended_groups(raw: Any) -> list[RecommendedGroup] | None:
    groups = _parse_records(raw, {"key": _STR, "label": _STR, "items": _LIST})
    if groups is None:
        return None
    for group in groups:
        if _parse_records(group["items"], {"id": _STR, "name": _STR}) is None:
            return None
    return groups
