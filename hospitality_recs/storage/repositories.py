from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime
from typing import Iterable

from ..recommendations.entities import Interaction, Item


# Repository interfaces; the engine only ever talks to these.
class ItemRepository(ABC):
    @abstractmethod
    def get(self, item_id: str) -> Item | None:
        """Return the item or ``None`` when it does not exist."""

    @abstractmethod
    def list_items(self, available_only: bool = True) -> list[Item]:
        pass

    @abstractmethod
    def save(self, item: Item) -> None:
        pass

    @abstractmethod
    def update_rating_stats(
        self, item_id: str, average_rating: float, total_ratings: int, popularity_score: float,
    ) -> None:
        pass

    @abstractmethod
    def increment_attribute(self, item_id: str, name: str) -> None:
        pass


class InteractionRepository(ABC):
    @abstractmethod
    def append(self, interaction: Interaction) -> None:
        pass

    @abstractmethod
    def for_user(self, user_id: str, since: datetime | None = None) -> list[Interaction]:
        """Interactions of *user_id*, oldest first, optionally from *since* on."""

    @abstractmethod
    def highly_rated(self, exclude_user_id: str, min_rating: int) -> list[Interaction]:
        """
        Other users' interactions whose rating, or weight when unrated, is at
        least *min_rating*, in stored order.
        """

    @abstractmethod
    def all(self) -> list[Interaction]:
        pass


class InMemoryItemRepository(ItemRepository):
    def __init__(self, items: Iterable[Item] = ()) -> None:
        self._lock = threading.RLock()
        self._items: dict[str, Item] = {}
        for item in items:
            self.save(item)

    def get(self, item_id: str) -> Item | None:
        with self._lock:
            item = self._items.get(item_id)
            return _copy(item) if item else None

    def list_items(self, available_only: bool = True) -> list[Item]:
        with self._lock:
            return [
                _copy(item) for item in self._items.values()
                if item.available or not available_only
            ]

    def save(self, item: Item) -> None:
        with self._lock:
            self._items[item.id] = _copy(item)

    def update_rating_stats(
        self, item_id: str, average_rating: float, total_ratings: int, popularity_score: float,
    ) -> None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return
            item.average_rating = average_rating
            item.total_ratings = total_ratings
            item.popularity_score = popularity_score

    def increment_attribute(self, item_id: str, name: str) -> None:
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                return
            item.attributes[name] = int(item.attributes.get(name) or 0) + 1


class InMemoryInteractionRepository(InteractionRepository):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._interactions: list[Interaction] = []

    def append(self, interaction: Interaction) -> None:
        with self._lock:
            self._interactions.append(interaction)

    def for_user(self, user_id: str, since: datetime | None = None) -> list[Interaction]:
        with self._lock:
            found = [
                i for i in self._interactions
                if i.user_id == user_id and (since is None or i.timestamp >= since)
            ]
        return sorted(found, key=lambda i: i.timestamp)

    def highly_rated(self, exclude_user_id: str, min_rating: int) -> list[Interaction]:
        with self._lock:
            return [
                i for i in self._interactions
                if i.user_id != exclude_user_id and i.signal is not None and i.signal >= min_rating
            ]

    def all(self) -> list[Interaction]:
        with self._lock:
            return list(self._interactions)


def _copy(item: Item) -> Item:
    return replace(item, attributes=dict(item.attributes))
