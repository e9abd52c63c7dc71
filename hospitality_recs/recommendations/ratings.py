from __future__ import annotations

import logging
import math
import threading

from ..storage.repositories import ItemRepository

logger = logging.getLogger(__name__)


def popularity_score(average_rating: float, total_ratings: int) -> float:
    """Rewards both quality and volume of ratings."""
    return round(average_rating * math.log(total_ratings + 1), 4)


class RatingAggregator:
    """
    Maintains each item's running average rating.

    Updates for the same item are serialised so the read of the old
    average/count pair and the write of the new one cannot interleave.
    """

    def __init__(self, items: ItemRepository) -> None:
        self.items = items
        self._guard = threading.Lock()
        self._item_locks: dict[str, threading.Lock] = {}

    def _lock_for(self, item_id: str) -> threading.Lock:
        with self._guard:
            return self._item_locks.setdefault(item_id, threading.Lock())

    def update_rating(self, item_id: str, new_rating: int) -> None:
        with self._lock_for(item_id):
            item = self.items.get(item_id)
            if item is None:
                logger.debug("Rating for unknown item %s ignored", item_id)
                return

            old_total = item.total_ratings or 0
            new_total = old_total + 1
            new_average = ((item.average_rating or 0.0) * old_total + new_rating) / new_total

            self.items.update_rating_stats(
                item_id,
                average_rating=round(new_average, 2),
                total_ratings=new_total,
                popularity_score=popularity_score(new_average, new_total),
            )
