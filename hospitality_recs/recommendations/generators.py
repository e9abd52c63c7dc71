"""
Candidate generators.

Each generator is independent of the others and returns its own ranked,
reason-tagged slice of recommendations; the blender decides how they mix.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

from ..storage.availability import (
    AvailabilityChecker,
    fits_capacity,
    has_date_range,
    requested_capacity,
)
from ..storage.repositories import InteractionRepository, ItemRepository
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .domains import DomainSpec
from .entities import Confidence, Item, PreferenceProfile, Reason, Recommendation

logger = logging.getLogger(__name__)


def _price_key(item: Item) -> float:
    price = item.price
    return price if price is not None else float("inf")


class CandidateGenerators:
    def __init__(
        self,
        domain: DomainSpec,
        items: ItemRepository,
        interactions: InteractionRepository,
        availability: AvailabilityChecker | None = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> None:
        self.domain = domain
        self.items = items
        self.interactions = interactions
        self.availability = availability
        self.config = config

    # --- shared helpers ---

    def _score(self, item: Item) -> float:
        return item.average_rating or self.config.neutral_score

    def _candidates(self, filters: dict[str, Any]) -> list[Item]:
        size = requested_capacity(filters)
        return [i for i in self.items.list_items(available_only=True) if fits_capacity(i, size)]

    def _take_available(
        self, ranked: list[Item], count: int, filters: dict[str, Any],
    ) -> list[Item]:
        """
        Keep the first *count* ranked items free for the requested dates.

        Candidates are checked in batches of ``count * overfetch_factor`` so a
        heavily booked catalog is walked further instead of coming up short.
        """
        if count <= 0:
            return []
        if not has_date_range(filters) or self.availability is None:
            return ranked[:count]

        check_in, check_out = filters["check_in"], filters["check_out"]
        batch = max(count * self.config.overfetch_factor, 1)
        kept: list[Item] = []
        for start in range(0, len(ranked), batch):
            for item in ranked[start:start + batch]:
                if self.availability.is_available(item.id, check_in, check_out):
                    kept.append(item)
                    if len(kept) == count:
                        return kept
        return kept

    def _to_recommendations(
        self, items: Iterable[Item], reason: Reason, confidence: Confidence,
    ) -> list[Recommendation]:
        return [
            Recommendation(item_id=i.id, score=self._score(i), reason=reason, confidence=confidence)
            for i in items
        ]

    # --- generators ---

    def popular(self, count: int, filters: dict[str, Any] | None = None) -> list[Recommendation]:
        """Domain-wide ranking by rating, then engagement, then cheapest first."""
        filters = filters or {}
        ranked = sorted(
            self._candidates(filters),
            key=lambda i: (-i.average_rating, -self.domain.engagement(i), _price_key(i)),
        )
        chosen = self._take_available(ranked, count, filters)
        return self._to_recommendations(chosen, Reason.popularity, Confidence.medium)

    def collaborative(
        self, user_id: str, preferences: PreferenceProfile, count: int,
    ) -> list[Recommendation]:
        """
        Items other guests rated highly, first rating per item wins.

        "Similar" users are simply everyone else who left a high rating; the
        target user's own history is not compared. Unrated interactions count
        through their weight, so weighted bookings and favourites surface too.
        """
        if count <= 0:
            return []
        recommendations: list[Recommendation] = []
        seen: set[str] = set()
        for interaction in self.interactions.highly_rated(
            user_id, self.config.high_rating_threshold,
        ):
            if interaction.item_id in seen:
                continue
            item = self.items.get(interaction.item_id)
            if item is None or not item.available:
                continue
            seen.add(item.id)
            recommendations.append(Recommendation(
                item_id=item.id,
                score=float(interaction.signal or 0),
                reason=Reason.collaborative_filtering,
                confidence=Confidence.high,
            ))
            if len(recommendations) == count:
                break
        return recommendations

    def content_based(
        self,
        preferences: PreferenceProfile,
        count: int,
        filters: dict[str, Any] | None = None,
    ) -> list[Recommendation]:
        """Items sharing the user's single favourite value of each matched attribute."""
        filters = filters or {}
        wanted: dict[str, str] = {}
        for attribute in self.domain.filter_attributes:
            top = preferences.top_value(attribute)
            if top is not None:
                wanted[attribute] = top
        logger.debug("Content filter for %s: %s", self.domain.name, wanted)

        matching = [
            item for item in self._candidates(filters)
            if all(self.domain.attribute_value(item, a) == v for a, v in wanted.items())
        ]
        ranked = sorted(matching, key=lambda i: (-i.average_rating, _price_key(i)))
        chosen = self._take_available(ranked, count, filters)
        return self._to_recommendations(chosen, Reason.content_based, Confidence.medium)
