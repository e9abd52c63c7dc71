from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from hospitality_recs.recommendations.config import EngineConfig
from hospitality_recs.recommendations.domains import MENU, ROOMS, TABLES
from hospitality_recs.recommendations.engine import RecommendationEngine
from hospitality_recs.recommendations.entities import Item
from hospitality_recs.storage.availability import InMemoryAvailability


class FrozenClock:
    def __init__(self, start: datetime = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _menu(item_id, cuisine, category, spice, price, rating, total, available=True):
    return Item(
        id=item_id,
        attributes={"cuisine": cuisine, "category": category, "spice_level": spice, "price": price},
        available=available,
        average_rating=rating,
        total_ratings=total,
    )


def _room(item_id, room_type, price, capacity, rating, total, available=True):
    return Item(
        id=item_id,
        attributes={"room_type": room_type, "price": price, "capacity": capacity},
        available=available,
        average_rating=rating,
        total_ratings=total,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def menu_items() -> list[Item]:
    # Popularity order: a, d, b, g, c, e  (f is unavailable)
    return [
        _menu("a", "Pakistani", "Main Course", "medium", 800, 4.8, 10),
        _menu("b", "Pakistani", "Main Course", "hot", 1200, 4.5, 20),
        _menu("c", "Chinese", "Main Course", "medium", 900, 4.2, 5),
        _menu("d", "Italian", "Main Course", "mild", 1300, 4.5, 30),
        _menu("e", "Pakistani", "Dessert", "medium", 300, 0.0, 0),
        _menu("f", "Chinese", "Starter", "hot", 450, 4.0, 8, available=False),
        _menu("g", "Pakistani", "Starter", "medium", 500, 4.2, 5),
    ]


@pytest.fixture
def room_items() -> list[Item]:
    return [
        _room("r1", "Standard", 4500, 2, 4.1, 10),
        _room("r2", "Standard", 5000, 2, 4.3, 10),
        _room("r3", "Deluxe", 8500, 3, 4.5, 10),
        _room("r4", "Deluxe", 9500, 3, 4.6, 10),
        _room("r5", "Family", 12000, 5, 4.4, 10),
        _room("r6", "Suite", 22000, 4, 4.9, 10),
    ]


@pytest.fixture
def table_items() -> list[Item]:
    def table(item_id, table_type, ambiance, capacity, rating, bookings):
        return Item(
            id=item_id,
            attributes={
                "table_type": table_type,
                "location": "Main Hall",
                "ambiance": ambiance,
                "capacity": capacity,
                "price": 3000,
                "total_bookings": bookings,
            },
            average_rating=rating,
            total_ratings=5,
        )

    return [
        table("t1", "indoor", "Intimate", 2, 4.5, 10),
        table("t2", "indoor", "Casual", 4, 4.5, 30),
        table("t3", "outdoor", "Casual", 6, 4.2, 5),
        table("t4", "private", "Formal", 10, 4.8, 2),
    ]


@pytest.fixture
def make_engine(clock):
    engines: list[RecommendationEngine] = []

    def factory(domain=MENU, items=(), config: EngineConfig | None = None, **kwargs):
        engine = RecommendationEngine(
            domain,
            config=config or EngineConfig(),
            clock=clock,
            availability=kwargs.pop("availability", InMemoryAvailability()),
            **kwargs,
        )
        engine.load(items)
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.close()


@pytest.fixture
def menu_engine(make_engine, menu_items):
    return make_engine(MENU, menu_items)


@pytest.fixture
def room_engine(make_engine, room_items):
    return make_engine(ROOMS, room_items)


@pytest.fixture
def table_engine(make_engine, table_items):
    return make_engine(TABLES, table_items)

