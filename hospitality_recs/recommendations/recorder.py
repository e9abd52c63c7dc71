from __future__ import annotations

import logging
from typing import Any

from ..storage.repositories import InteractionRepository, ItemRepository
from .domains import DomainSpec
from .entities import Clock, Interaction, InteractionType, utc_now
from .errors import StorageError, ValidationError
from .ratings import RatingAggregator

logger = logging.getLogger(__name__)


def require_identifier(value: Any, name: str) -> str:
    """Non-empty identifier with surrounding whitespace removed."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


def _parse_type(value: Any) -> InteractionType:
    try:
        return InteractionType(value)
    except ValueError as exc:
        allowed = ", ".join(t.value for t in InteractionType)
        raise ValidationError(f"interaction_type must be one of: {allowed}") from exc


def _parse_rating(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("rating must be an integer from 1 to 5")
    if not 1 <= value <= 5:
        raise ValidationError("rating must be an integer from 1 to 5")
    return value


def _parse_weight(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError("weight must be a non-negative number")
    return float(value)


class InteractionRecorder:
    def __init__(
        self,
        domain: DomainSpec,
        items: ItemRepository,
        interactions: InteractionRepository,
        aggregator: RatingAggregator,
        clock: Clock = utc_now,
    ) -> None:
        self.domain = domain
        self.items = items
        self.interactions = interactions
        self.aggregator = aggregator
        self.clock = clock

    def record(
        self,
        user_id: Any,
        item_id: Any,
        interaction_type: Any,
        rating: Any = None,
        context: dict[str, Any] | None = None,
        weight: float | None = None,
    ) -> Interaction:
        """
        Validate and append one interaction.

        Ratings then update the item's aggregate and bookings bump the item's
        booking counter where the domain tracks one. Those follow-ups are
        best-effort: the interaction stays recorded even if they fail.
        Recorded interactions never touch the recommendation cache.
        """
        kind = _parse_type(interaction_type)
        interaction = Interaction(
            user_id=require_identifier(user_id, "user_id"),
            item_id=require_identifier(item_id, "item_id"),
            interaction_type=kind,
            rating=_parse_rating(rating) if rating is not None or kind is InteractionType.rating else None,
            weight=_parse_weight(weight),
            context=self.domain.normalize_context(dict(context or {})),
            timestamp=self.clock(),
        )

        try:
            self.interactions.append(interaction)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"could not record interaction: {exc}") from exc

        try:
            if kind is InteractionType.rating:
                self.aggregator.update_rating(interaction.item_id, interaction.rating)
            elif kind is InteractionType.booking and self.domain.counts_bookings:
                self.items.increment_attribute(interaction.item_id, "total_bookings")
        except Exception:
            logger.warning(
                "Aggregate update failed for %s item %s",
                self.domain.name, interaction.item_id, exc_info=True,
            )

        return interaction
