"""Ordering of task records for list views."""

from __future__ import annotations

from datetime import date
from functools import cmp_to_key
from typing import Callable, Iterable

from taskline.constants import DEFAULT_PRIORITY
from taskline.records import TaskRecord

SORT_FIELDS = (
    "priority",
    "description",
    "created_date",
    "start_date",
    "scheduled_date",
    "due_date",
    "completion_date",
)
SORT_ORDERS = ("asc", "desc")

PRIORITY_WEIGHTS = {
    "highest": 5,
    "high": 4,
    "medium": 3,
    "normal": 2,
    "low": 1,
    "lowest": 0,
}


def _compare_dates(a: date | None, b: date | None) -> int:
    # Undated tasks go last in either direction.
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    return (a > b) - (a < b)


def _date_comparator(name: str) -> Callable[[TaskRecord, TaskRecord], int]:
    return lambda a, b: _compare_dates(getattr(a, name), getattr(b, name))


def _compare_priority(a: TaskRecord, b: TaskRecord) -> int:
    return PRIORITY_WEIGHTS.get(a.priority or DEFAULT_PRIORITY, 2) - PRIORITY_WEIGHTS.get(
        b.priority or DEFAULT_PRIORITY, 2
    )


def _compare_description(a: TaskRecord, b: TaskRecord) -> int:
    left, right = a.description.casefold(), b.description.casefold()
    return (left > right) - (left < right)


_COMPARATORS: dict[str, Callable[[TaskRecord, TaskRecord], int]] = {
    "priority": _compare_priority,
    "description": _compare_description,
    **{name: _date_comparator(name) for name in SORT_FIELDS if name.endswith("_date")},
}


def sort_tasks(
    records: Iterable[TaskRecord], field: str, order: str = "asc"
) -> list[TaskRecord]:
    """Return a new list sorted by ``field``; the input is left untouched."""
    if field not in _COMPARATORS:
        raise ValueError(f"Unsupported sort field: {field}")
    if order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sort order: {order}")

    base = _COMPARATORS[field]
    if order == "asc":
        comparator = base
    elif field.endswith("_date"):
        # Reverse dated tasks only; undated ones stay at the end.
        def comparator(a, b):
            if getattr(a, field) is None or getattr(b, field) is None:
                return base(a, b)
            return -base(a, b)
    else:
        def comparator(a, b):
            return -base(a, b)

    return sorted(records, key=cmp_to_key(comparator))


def toggle_sort(current: tuple[str, str], field: str) -> tuple[str, str]:
    """Flip the order when re-selecting the same field, else start ascending."""
    current_field, current_order = current
    if current_field == field:
        return field, "desc" if current_order == "asc" else "asc"
    return field, "asc"
