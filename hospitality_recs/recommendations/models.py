from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .domains import DomainSpec
from .entities import Interaction, Item, PreferenceProfile, Reason, Recommendation


class InteractionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    item_id: str = Field(..., min_length=1)
    interaction_type: str = Field(..., description="view, order, booking, rating, favorite or inquiry")
    rating: int | None = Field(default=None, description="1-5, required for rating interactions")
    weight: float | None = None
    context: dict[str, Any] = Field(
        default_factory=dict,
        description="Domain context such as group_size, duration, occasion, party_size",
    )


class InteractionOut(BaseModel):
    user_id: str
    item_id: str
    interaction_type: str
    rating: int | None
    weight: float | None
    context: dict[str, Any]
    timestamp: datetime

    @classmethod
    def from_interaction(cls, interaction: Interaction) -> InteractionOut:
        return cls(
            user_id=interaction.user_id,
            item_id=interaction.item_id,
            interaction_type=interaction.interaction_type.value,
            rating=interaction.rating,
            weight=interaction.weight,
            context=dict(interaction.context),
            timestamp=interaction.timestamp,
        )


class ItemOut(BaseModel):
    id: str
    attributes: dict[str, Any]
    available: bool
    average_rating: float
    total_ratings: int
    popularity_score: float

    @classmethod
    def from_item(cls, item: Item) -> ItemOut:
        return cls(**item.to_dict())


class RecommendationOut(BaseModel):
    item_id: str
    score: float
    reason: str
    confidence: str
    rank: int
    explanation: str
    item: ItemOut | None = None


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationOut]
    preferences: dict[str, Any] | None = None
    cached: bool
    generated_at: datetime
    fallback: bool = False


class PopularResponse(BaseModel):
    popular_items: list[RecommendationOut]


class HistoryResponse(BaseModel):
    history: list[InteractionOut]
    preferences: dict[str, Any]
    period_days: int


def explain(
    recommendation: Recommendation,
    domain: DomainSpec,
    preferences: PreferenceProfile | None = None,
) -> str:
    label = domain.item_label
    if recommendation.reason is Reason.collaborative_filtering:
        return f"Guests with similar tastes rated this {label} highly"
    if recommendation.reason is Reason.content_based:
        liked = []
        if preferences is not None:
            for attribute in domain.filter_attributes:
                value = preferences.top_value(attribute)
                if value:
                    liked.append(value)
        if liked:
            return f"Matches your preferred {', '.join(liked)}"
        return f"Matches the kind of {label} you usually choose"
    return f"Popular {label} with high ratings"


def to_recommendation_out(
    recommendation: Recommendation,
    domain: DomainSpec,
    item: Item | None,
    preferences: PreferenceProfile | None = None,
) -> RecommendationOut:
    return RecommendationOut(
        item_id=recommendation.item_id,
        score=round(float(recommendation.score), 4),
        reason=recommendation.reason.value,
        confidence=recommendation.confidence.value,
        rank=recommendation.rank,
        explanation=explain(recommendation, domain, preferences),
        item=ItemOut.from_item(item) if item else None,
    )
