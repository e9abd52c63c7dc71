"""Core value types shared by every domain the engine serves."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InteractionType(str, Enum):
    view = "view"
    order = "order"
    booking = "booking"
    rating = "rating"
    favorite = "favorite"
    inquiry = "inquiry"


class Reason(str, Enum):
    popularity = "popularity"
    collaborative_filtering = "collaborative_filtering"
    content_based = "content_based"


class Confidence(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


@dataclass(frozen=True)
class Interaction:
    user_id: str
    item_id: str
    interaction_type: InteractionType
    timestamp: datetime
    rating: int | None = None
    weight: float | None = None
    # group_size, duration, occasion, party_size ... opaque to the core
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def signal(self) -> float | None:
        """Explicit rating when given, otherwise the interaction weight."""
        if self.rating is not None:
            return float(self.rating)
        return self.weight


@dataclass
class Item:
    id: str
    attributes: dict[str, Any] = field(default_factory=dict)
    available: bool = True
    average_rating: float = 0.0
    total_ratings: int = 0
    popularity_score: float = 0.0

    @property
    def price(self) -> float | None:
        value = self.attributes.get("price")
        return float(value) if value is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "attributes": dict(self.attributes),
            "available": self.available,
            "average_rating": self.average_rating,
            "total_ratings": self.total_ratings,
            "popularity_score": self.popularity_score,
        }


@dataclass(frozen=True)
class Recommendation:
    """One ranked suggestion. Refers to its item by id only."""

    item_id: str
    score: float
    reason: Reason
    confidence: Confidence
    rank: int = 0


@dataclass(frozen=True)
class PreferenceProfile:
    total_interactions: int = 0
    average_rating: float = 0.0
    # attribute name -> {value: count}, values kept in first-seen order
    histograms: dict[str, dict[str, int]] = field(default_factory=dict)
    average_group_size: float = 0.0
    average_duration: float = 0.0
    rating_distribution: dict[int, int] = field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )

    @property
    def is_new_user(self) -> bool:
        return self.total_interactions == 0

    def top_value(self, attribute: str) -> str | None:
        """Most frequent value of *attribute*; ties go to the first seen."""
        best: str | None = None
        best_count = 0
        for value, count in self.histograms.get(attribute, {}).items():
            if count > best_count:
                best, best_count = value, count
        return best

    def to_dict(self) -> dict[str, Any]:
        return {
            "new_user": self.is_new_user,
            "total_interactions": self.total_interactions,
            "average_rating": round(self.average_rating, 2),
            "histograms": {k: dict(v) for k, v in self.histograms.items()},
            "average_group_size": round(self.average_group_size, 2),
            "average_duration": round(self.average_duration, 2),
            "rating_distribution": {str(k): v for k, v in self.rating_distribution.items()},
        }
