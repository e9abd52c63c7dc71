from __future__ import annotations

from datetime import date, datetime, timezone

from hospitality_recs.recommendations.config import EngineConfig
from hospitality_recs.recommendations.domains import MENU, ROOMS, TABLES
from hospitality_recs.recommendations.entities import (
    Confidence,
    Interaction,
    InteractionType,
    PreferenceProfile,
    Reason,
)
from hospitality_recs.recommendations.generators import CandidateGenerators
from hospitality_recs.storage.availability import InMemoryAvailability
from hospitality_recs.storage.repositories import (
    InMemoryInteractionRepository,
    InMemoryItemRepository,
)

T0 = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _generators(domain, items, availability=None, interactions=None):
    return CandidateGenerators(
        domain,
        InMemoryItemRepository(items),
        interactions or InMemoryInteractionRepository(),
        availability,
        EngineConfig(),
    )


def _rating(user_id, item_id, rating):
    return Interaction(
        user_id=user_id,
        item_id=item_id,
        interaction_type=InteractionType.rating,
        rating=rating,
        timestamp=T0,
    )


def test_popular_ranks_by_rating_engagement_then_price(menu_items):
    recs = _generators(MENU, menu_items).popular(10)
    assert [r.item_id for r in recs] == ["a", "d", "b", "g", "c", "e"]
    assert all(r.reason is Reason.popularity for r in recs)
    assert all(r.confidence is Confidence.medium for r in recs)


def test_popular_scores_unrated_items_with_neutral_default(menu_items):
    recs = {r.item_id: r for r in _generators(MENU, menu_items).popular(10)}
    assert recs["a"].score == 4.8
    assert recs["e"].score == 3.5


def test_popular_truncates_to_count(menu_items):
    assert len(_generators(MENU, menu_items).popular(2)) == 2


def test_popular_date_filter_walks_past_booked_items(room_items):
    availability = InMemoryAvailability()
    # The four best rooms are taken; a 2x over-fetch of count=2 only sees them.
    for item_id in ("r6", "r4", "r3", "r5"):
        availability.reserve(item_id, date(2024, 7, 1), date(2024, 7, 5))
    generators = _generators(ROOMS, room_items, availability)

    recs = generators.popular(2, {"check_in": date(2024, 7, 2), "check_out": date(2024, 7, 4)})
    assert [r.item_id for r in recs] == ["r2", "r1"]

    later = generators.popular(2, {"check_in": date(2024, 7, 5), "check_out": date(2024, 7, 6)})
    assert [r.item_id for r in later] == ["r6", "r4"]


def test_popular_capacity_filter(room_items):
    recs = _generators(ROOMS, room_items).popular(10, {"group_size": 4})
    assert {r.item_id for r in recs} == {"r5", "r6"}


def test_table_popularity_uses_bookings_as_engagement(table_items):
    recs = _generators(TABLES, table_items).popular(10)
    assert [r.item_id for r in recs] == ["t4", "t2", "t1", "t3"]


def test_collaborative_uses_other_users_high_ratings(menu_items):
    interactions = InMemoryInteractionRepository()
    for user_id, item_id, rating in [
        ("u2", "c", 5),
        ("u1", "a", 5),   # own rating, ignored
        ("u3", "b", 3),   # below threshold
        ("u3", "c", 4),   # duplicate item, first wins
        ("u4", "f", 5),   # unavailable
        ("u4", "d", 4),
        ("u5", "g", 5),
    ]:
        interactions.append(_rating(user_id, item_id, rating))

    recs = _generators(MENU, menu_items, interactions=interactions).collaborative(
        "u1", PreferenceProfile(total_interactions=1), 10,
    )
    assert [(r.item_id, r.score) for r in recs] == [("c", 5.0), ("d", 4.0), ("g", 5.0)]
    assert all(r.confidence is Confidence.high for r in recs)
    assert all(r.reason is Reason.collaborative_filtering for r in recs)


def test_collaborative_respects_count(menu_items):
    interactions = InMemoryInteractionRepository()
    for item_id in ("a", "b", "c", "d"):
        interactions.append(_rating("u2", item_id, 5))
    recs = _generators(MENU, menu_items, interactions=interactions).collaborative(
        "u1", PreferenceProfile(total_interactions=1), 2,
    )
    assert [r.item_id for r in recs] == ["a", "b"]


def test_content_based_filters_on_top_attribute_values(menu_items):
    profile = PreferenceProfile(
        total_interactions=3,
        histograms={
            "cuisine": {"Chinese": 1, "Pakistani": 2},
            "spice_level": {"medium": 2, "hot": 1},
        },
    )
    recs = _generators(MENU, menu_items).content_based(profile, 10)
    # Pakistani + medium, by rating then price
    assert [r.item_id for r in recs] == ["a", "g", "e"]
    assert all(r.reason is Reason.content_based for r in recs)


def test_content_based_filters_rooms_by_price_tier(room_items):
    profile = PreferenceProfile(
        total_interactions=2,
        histograms={"room_type": {}, "price_tier": {"Standard": 2}},
    )
    recs = _generators(ROOMS, room_items).content_based(profile, 10)
    assert [r.item_id for r in recs] == ["r4", "r3"]


def test_content_based_without_preferences_ranks_everything(menu_items):
    recs = _generators(MENU, menu_items).content_based(PreferenceProfile(total_interactions=1), 3)
    # Rating desc, then price asc: d (1300) loses to b (1200) on price
    assert [r.item_id for r in recs] == ["a", "b", "d"]


def test_collaborative_scores_unrated_interactions_by_weight(table_items):
    interactions = InMemoryInteractionRepository()
    for user_id, item_id, kind, weight in [
        ("u2", "t3", InteractionType.booking, 5.0),
        ("u3", "t1", InteractionType.favorite, 4.0),
        ("u4", "t2", InteractionType.view, 1.0),    # below threshold
        ("u1", "t4", InteractionType.booking, 5.0),  # own booking, ignored
    ]:
        interactions.append(Interaction(
            user_id=user_id,
            item_id=item_id,
            interaction_type=kind,
            weight=weight,
            timestamp=T0,
        ))

    recs = _generators(TABLES, table_items, interactions=interactions).collaborative(
        "u1", PreferenceProfile(total_interactions=1), 5,
    )
    assert [(r.item_id, r.score) for r in recs] == [("t3", 5.0), ("t1", 4.0)]


def test_explicit_rating_wins_over_weight(menu_items):
    interactions = InMemoryInteractionRepository()
    interactions.append(Interaction(
        user_id="u2",
        item_id="c",
        interaction_type=InteractionType.rating,
        rating=2,
        weight=5.0,
        timestamp=T0,
    ))
    recs = _generators(MENU, menu_items, interactions=interactions).collaborative(
        "u1", PreferenceProfile(total_interactions=1), 5,
    )
    assert recs == []
