from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date
from typing import Any

from ..recommendations.entities import Item


class AvailabilityChecker(ABC):
    @abstractmethod
    def is_available(self, item_id: str, check_in: date, check_out: date) -> bool:
        pass


class InMemoryAvailability(AvailabilityChecker):
    """Reserved date ranges per item, treated as half-open ``[start, end)``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reserved: dict[str, list[tuple[date, date]]] = defaultdict(list)

    def reserve(self, item_id: str, check_in: date, check_out: date) -> None:
        with self._lock:
            self._reserved[item_id].append((check_in, check_out))

    def is_available(self, item_id: str, check_in: date, check_out: date) -> bool:
        with self._lock:
            ranges = list(self._reserved.get(item_id, ()))
        return not any(check_in < end and check_out > start for start, end in ranges)


def has_date_range(filters: dict[str, Any]) -> bool:
    return filters.get("check_in") is not None and filters.get("check_out") is not None


def requested_capacity(filters: dict[str, Any]) -> int | None:
    for key in ("party_size", "group_size"):
        if filters.get(key) is not None:
            return int(filters[key])
    return None


def fits_capacity(item: Item, size: int | None) -> bool:
    """Items without a capacity attribute always fit."""
    if size is None:
        return True
    capacity = item.attributes.get("capacity")
    if capacity is None:
        return True
    return int(capacity) >= size
