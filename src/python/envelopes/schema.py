"""Store layout and payload field constants."""

from __future__ import annotations

USERS_ROOT = "users"

CYCLES_COLLECTION = "financialCycles"
TRIPS_COLLECTION = "trips"
POINTERS_COLLECTION = "pointers"
CATEGORIES_COLLECTION = "categories"

CURRENT_PERIOD_FIELD = "currentPeriodId"
CATEGORY_NAMES_FIELD = "names"

PERIOD_FIELDS = [
    "name",
    "initialAmount",
    "remainingAmount",
    "totalSpent",
    "startDate",
    "endDate",
    "expenses",
    "notes",
]

EXPENSE_FIELDS = [
    "id",
    "amount",
    "category",
    "date",
    "description",
    "createdAt",
]

CYCLE_EXPENSE_FIELDS = EXPENSE_FIELDS + ["isRecurrent"]

DEFAULT_CYCLE_CATEGORIES = [
    "Food",
    "Transport",
    "Utilities",
    "Entertainment",
    "Health",
    "Education",
    "Clothing",
    "Home",
    "Other",
]

DEFAULT_TRIP_CATEGORIES = [
    "Hotel",
    "Food",
    "Transport",
    "Supplies",
    "Other",
]

RECORD_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS Record (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    collection TEXT NOT NULL,
    key TEXT NOT NULL,
    payload TEXT NOT NULL,
    UNIQUE (collection, key)
)
"""


def collection_path(owner_id: str, collection: str) -> str:
    """Return the owner-scoped path for a collection."""
    return f"{USERS_ROOT}/{owner_id}/{collection}"
