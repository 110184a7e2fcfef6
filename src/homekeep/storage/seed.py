# src/homekeep/storage/seed.py

"""First-run datasets and the defaults a missing key loads as."""

from __future__ import annotations

import json

from ..home.models import (
    Appliance,
    BudgetItem,
    HomeProfile,
    MaintenanceTask,
    RecommendedGroup,
    TrustedPro,
)
from .keys import StorageKeys

DEFAULT_MONTHLY_BUDGET = 1500.0

DEFAULT_PROFILE: HomeProfile = {
    "id": "home-1",
    "nickname": "My Home",
    "address": "",
    "home_type": "single-family",
    "year_built": None,
    "household_members": [],
    "notes": "",
}


def default_profile() -> HomeProfile:
    return {**DEFAULT_PROFILE, "household_members": []}


def sample_appliances() -> list[Appliance]:
    return [
        {
            "id": "appliance-1",
            "name": "Central Air Conditioner",
            "category": "hvac",
            "brand": "Carrier",
            "model": "24ACC636A003",
            "serial_number": "",
            "purchase_date": "2021-05-14",
            "warranty_expiry": "2031-05-14",
            "location": "Backyard",
            "notes": "",
        },
        {
            "id": "appliance-2",
            "name": "Water Heater",
            "category": "plumbing",
            "brand": "Rheem",
            "model": "XE50T10H45U0",
            "serial_number": "",
            "purchase_date": "2019-09-02",
            "warranty_expiry": "2025-09-02",
            "location": "Garage",
            "notes": "",
        },
        {
            "id": "appliance-3",
            "name": "Refrigerator",
            "category": "kitchen",
            "brand": "LG",
            "model": "LRMVS3006S",
            "serial_number": "",
            "purchase_date": "2022-11-25",
            "warranty_expiry": "2027-11-25",
            "location": "Kitchen",
            "notes": "",
        },
    ]


def sample_tasks() -> list[MaintenanceTask]:
    return [
        {
            "id": "task-1",
            "title": "Replace HVAC filter",
            "description": "Swap the return-air filter (16x25x1).",
            "due_date": "2024-02-01",
            "priority": "medium",
            "status": "upcoming",
            "recurring": True,
            "recurring_interval": 90,
            "estimated_cost": 25.0,
            "appliance_id": "appliance-1",
            "notes": [],
        },
        {
            "id": "task-2",
            "title": "Flush water heater",
            "description": "Drain sediment from the tank.",
            "due_date": "2024-03-15",
            "priority": "low",
            "status": "upcoming",
            "recurring": True,
            "recurring_interval": 365,
            "estimated_cost": 0.0,
            "appliance_id": "appliance-2",
            "notes": [],
        },
        {
            "id": "task-3",
            "title": "Clean refrigerator coils",
            "description": "Vacuum the condenser coils behind the kick plate.",
            "due_date": "2024-01-20",
            "priority": "low",
            "status": "upcoming",
            "recurring": False,
            "appliance_id": "appliance-3",
            "notes": [],
        },
    ]


def sample_budget_items() -> list[BudgetItem]:
    return [
        {
            "id": "budget-1",
            "category": "maintenance",
            "description": "HVAC tune-up",
            "amount": 129.0,
            "date": "2024-01-08",
            "appliance_id": "appliance-1",
        },
        {
            "id": "budget-2",
            "category": "repair",
            "description": "Water heater anode rod",
            "amount": 64.5,
            "date": "2024-01-17",
            "appliance_id": "appliance-2",
        },
    ]


def sample_trusted_pros() -> list[TrustedPro]:
    return []


# Appliance checklist shown until the user edits it. Never written by the seed:
# a missing key loads as these defaults.
# group key -> (label, color, [(item id, name, location), ...])
_RECOMMENDED: dict[str, tuple[str, str, list[tuple[str, str, str]]]] = {
    "kitchen": (
        "Kitchen",
        "#C4826D",
        [
            ("rec-k1", "Refrigerator", "Kitchen"),
            ("rec-k2", "Oven / Range", "Kitchen"),
            ("rec-k3", "Dishwasher", "Kitchen"),
            ("rec-k4", "Microwave", "Kitchen"),
            ("rec-k5", "Garbage Disposal", "Kitchen"),
            ("rec-k6", "Range Hood", "Kitchen"),
        ],
    ),
    "laundry": (
        "Laundry",
        "#A08670",
        [
            ("rec-l1", "Washing Machine", "Laundry Room"),
            ("rec-l2", "Dryer", "Laundry Room"),
        ],
    ),
    "hvac": (
        "Heating & Cooling",
        "#5A8A60",
        [
            ("rec-h1", "Central AC Unit", "Exterior"),
            ("rec-h2", "Furnace", "Basement"),
            ("rec-h3", "Thermostat", "Hallway"),
            ("rec-h6", "Dehumidifier", "Basement"),
        ],
    ),
    "plumbing": (
        "Plumbing",
        "#7BABC4",
        [
            ("rec-p1", "Water Heater", "Garage"),
            ("rec-p2", "Sump Pump", "Basement"),
            ("rec-p3", "Water Softener", "Utility Room"),
        ],
    ),
    "electrical": (
        "Electrical",
        "#C9943A",
        [
            ("rec-e1", "Electrical Panel", "Garage"),
            ("rec-e3", "Smoke Detectors", "Throughout Home"),
            ("rec-e4", "CO Detector", "Hallway"),
        ],
    ),
    "outdoor": (
        "Outdoor",
        "#6B8F71",
        [
            ("rec-od1", "Lawn Mower", "Garage"),
            ("rec-od2", "Sprinkler System", "Yard"),
        ],
    ),
    "garage": (
        "Garage",
        "#7A7D8E",
        [("rec-g1", "Garage Door Opener", "Garage")],
    ),
    "roofing": (
        "Roof & Exterior",
        "#8B7355",
        [
            ("rec-r1", "Roof", "Exterior"),
            ("rec-r2", "Gutters", "Exterior"),
        ],
    ),
}


def default_recommended_groups() -> list[RecommendedGroup]:
    return [
        {
            "key": key,
            "label": label,
            "icon": key,
            "color": color,
            "items": [
                {"id": item_id, "name": name, "category": key, "location": location}
                for item_id, name, location in items
            ],
        }
        for key, (label, color, items) in _RECOMMENDED.items()
    ]


def seed_payloads(monthly_budget: float = DEFAULT_MONTHLY_BUDGET) -> dict[str, str]:
    """Storage key -> serialized first-run value, for every seeded key."""
    return {
        StorageKeys.APPLIANCES: json.dumps(sample_appliances(), ensure_ascii=False),
        StorageKeys.TASKS: json.dumps(sample_tasks(), ensure_ascii=False),
        StorageKeys.BUDGET_ITEMS: json.dumps(sample_budget_items(), ensure_ascii=False),
        StorageKeys.TRUSTED_PROS: json.dumps(sample_trusted_pros(), ensure_ascii=False),
        StorageKeys.HOME_PROFILE: json.dumps(default_profile(), ensure_ascii=False),
        StorageKeys.MONTHLY_BUDGET: format_budget(monthly_budget),
    }


def format_budget(amount: float) -> str:
    return repr(float(amount))
