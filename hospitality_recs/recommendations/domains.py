"""
Per-domain parameters for the generic engine.

The menu, room and table recommenders only differ in which item attributes
shape a guest's preferences and how request context is sanitised.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable

from .entities import Item
from .errors import ValidationError

PRICE_TIER_ATTRIBUTE = "price_tier"

# (tier, inclusive upper bound); the last tier is unbounded.
PRICE_TIERS: tuple[tuple[str, float | None], ...] = (
    ("Budget", 5000),
    ("Standard", 10000),
    ("Premium", 20000),
    ("Luxury", None),
)


def price_tier(price: float | int | None) -> str | None:
    """Bucket a continuous price into a named tier."""
    if price is None:
        return None
    try:
        value = float(price)
    except (TypeError, ValueError):
        return None

    for tier, upper in PRICE_TIERS:
        if upper is None or value <= upper:
            return tier
    return None


def _passthrough(context: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in context.items() if v is not None and v != ""}


def _parse_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be an integer") from exc


def _parse_date(value: Any, name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError(f"{name} must be an ISO date (YYYY-MM-DD)") from exc


def normalize_room_context(context: dict[str, Any]) -> dict[str, Any]:
    out = _passthrough(context)
    check_in = out.get("check_in")
    check_out = out.get("check_out")
    if check_in is not None or check_out is not None:
        if check_in is None or check_out is None:
            raise ValidationError("check_in and check_out must be supplied together")
        out["check_in"] = _parse_date(check_in, "check_in")
        out["check_out"] = _parse_date(check_out, "check_out")
        if out["check_out"] <= out["check_in"]:
            raise ValidationError("check_out must be after check_in")
    if "group_size" in out:
        out["group_size"] = _parse_int(out["group_size"], "group_size")
        if out["group_size"] < 1:
            raise ValidationError("group_size must be at least 1")
    return out


OCCASIONS = ("Romantic", "Business", "Family", "Friends", "Celebration", "Casual")
TIME_SLOT_ALIASES = {
    "lunch": "Lunch",
    "early": "Early Dinner",
    "early dinner": "Early Dinner",
    "evening": "Prime Dinner",
    "prime": "Prime Dinner",
    "prime dinner": "Prime Dinner",
    "dinner": "Prime Dinner",
    "late": "Late Dinner",
    "late dinner": "Late Dinner",
}
MAX_PARTY_SIZE = 20


def normalize_table_context(context: dict[str, Any]) -> dict[str, Any]:
    out = _passthrough(context)

    occasion = str(out.get("occasion") or "").strip().capitalize()
    out["occasion"] = occasion if occasion in OCCASIONS else "Casual"

    time_slot = str(out.get("time_slot") or "").strip().lower()
    out["time_slot"] = TIME_SLOT_ALIASES.get(time_slot, "Prime Dinner")

    party_size = _parse_int(out.get("party_size", 2), "party_size")
    if not 1 <= party_size <= MAX_PARTY_SIZE:
        raise ValidationError(f"party_size must be between 1 and {MAX_PARTY_SIZE}")
    out["party_size"] = party_size
    return out


@dataclass(frozen=True)
class DomainSpec:
    name: str
    item_label: str
    tracked_attributes: tuple[str, ...]
    match_attributes: tuple[str, ...]
    uses_price_tiers: bool = False
    engagement_attribute: str = "total_ratings"
    counts_bookings: bool = False
    normalize_context: Callable[[dict[str, Any]], dict[str, Any]] = field(
        default=_passthrough, compare=False
    )

    @property
    def histogram_attributes(self) -> tuple[str, ...]:
        if self.uses_price_tiers:
            return self.tracked_attributes + (PRICE_TIER_ATTRIBUTE,)
        return self.tracked_attributes

    @property
    def filter_attributes(self) -> tuple[str, ...]:
        if self.uses_price_tiers:
            return self.match_attributes + (PRICE_TIER_ATTRIBUTE,)
        return self.match_attributes

    def attribute_value(self, item: Item, attribute: str) -> str | None:
        if attribute == PRICE_TIER_ATTRIBUTE:
            return price_tier(item.price)
        value = item.attributes.get(attribute)
        if value is None or value == "":
            return None
        return str(value)

    def engagement(self, item: Item) -> float:
        if self.engagement_attribute == "total_ratings":
            return float(item.total_ratings)
        value = item.attributes.get(self.engagement_attribute)
        return float(value) if value is not None else 0.0


MENU = DomainSpec(
    name="menu",
    item_label="dish",
    tracked_attributes=("cuisine", "category", "spice_level"),
    match_attributes=("cuisine", "spice_level"),
)

ROOMS = DomainSpec(
    name="rooms",
    item_label="room",
    tracked_attributes=("room_type",),
    match_attributes=("room_type",),
    uses_price_tiers=True,
    normalize_context=normalize_room_context,
)

TABLES = DomainSpec(
    name="tables",
    item_label="table",
    tracked_attributes=("table_type", "location", "ambiance"),
    match_attributes=("table_type", "ambiance"),
    uses_price_tiers=True,
    engagement_attribute="total_bookings",
    counts_bookings=True,
    normalize_context=normalize_table_context,
)

DOMAINS: dict[str, DomainSpec] = {d.name: d for d in (MENU, ROOMS, TABLES)}
