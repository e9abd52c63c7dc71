from __future__ import annotations

from typing import Iterable, Mapping

from .domains import DomainSpec
from .entities import Interaction, Item, PreferenceProfile


def _context_number(interaction: Interaction, *keys: str) -> float | None:
    for key in keys:
        value = interaction.context.get(key)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def analyze_preferences(
    interactions: Iterable[Interaction],
    items: Mapping[str, Item],
    domain: DomainSpec,
) -> PreferenceProfile:
    """
    Reduce a window of one user's interactions into a preference profile.

    *items* resolves the item each interaction references; interactions whose
    item is unknown still count towards the totals and averages but not the
    attribute histograms.
    """
    interactions = list(interactions)
    histograms: dict[str, dict[str, int]] = {a: {} for a in domain.histogram_attributes}
    rating_distribution = {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    rating_total = rating_count = 0
    group_total = 0.0
    group_count = 0
    duration_total = 0.0
    duration_count = 0

    for interaction in interactions:
        if interaction.rating:
            rating_total += interaction.rating
            rating_count += 1
            if interaction.rating in rating_distribution:
                rating_distribution[interaction.rating] += 1

        group_size = _context_number(interaction, "group_size", "party_size")
        if group_size:
            group_total += group_size
            group_count += 1

        duration = _context_number(interaction, "duration", "booking_duration")
        if duration:
            duration_total += duration
            duration_count += 1

        item = items.get(interaction.item_id)
        if item is None:
            continue
        for attribute, counts in histograms.items():
            value = domain.attribute_value(item, attribute)
            if value is not None:
                counts[value] = counts.get(value, 0) + 1

    return PreferenceProfile(
        total_interactions=len(interactions),
        average_rating=rating_total / rating_count if rating_count else 0.0,
        histograms=histograms,
        average_group_size=group_total / group_count if group_count else 0.0,
        average_duration=duration_total / duration_count if duration_count else 0.0,
        rating_distribution=rating_distribution,
    )
