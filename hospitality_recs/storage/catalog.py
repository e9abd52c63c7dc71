"""
Seed item catalogs from CSV.

Each row becomes one ``Item``. The reserved columns map onto the item's own
fields; every other column becomes an attribute.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List

import pandas as pd

from ..recommendations.entities import Item
from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig

logger = logging.getLogger(__name__)

RESERVED_COLUMNS: List[str] = [
    "id",
    "available",
    "average_rating",
    "total_ratings",
    "popularity_score",
]
NUMERIC_ATTRIBUTES: List[str] = ["price", "capacity", "total_bookings", "preparation_time"]

_TRUTHY = {"true", "1", "yes", "available"}


def _normalize_availability(value: Any) -> bool:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _normalize_rating(rating: Any) -> float:
    if rating is None or pd.isna(rating):
        return 0.0
    try:
        value = float(rating)
    except (TypeError, ValueError):
        return 0.0

    # Clamp to [0, 5]
    return max(0.0, min(5.0, value))


def load_catalog_frame(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"id": str})
    df["id"] = df["id"].fillna("").astype(str).str.strip()
    df = df[df["id"] != ""].copy()

    for col in NUMERIC_ATTRIBUTES:
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    df["available"] = (
        df["available"].apply(_normalize_availability) if "available" in df.columns else True
    )
    df["average_rating"] = (
        df["average_rating"].apply(_normalize_rating) if "average_rating" in df.columns else 0.0
    )
    if "total_ratings" in df.columns:
        df["total_ratings"] = pd.to_numeric(df["total_ratings"], errors="coerce").fillna(0).astype(int)
    else:
        df["total_ratings"] = 0
    if "popularity_score" in df.columns:
        df["popularity_score"] = pd.to_numeric(df["popularity_score"], errors="coerce").fillna(0.0)
    else:
        df["popularity_score"] = 0.0

    # A rated item must carry an average in [1, 5]; otherwise treat it as unrated.
    bad = (df["total_ratings"] > 0) & ~df["average_rating"].between(1.0, 5.0)
    if bad.any():
        logger.warning(
            "Resetting rating stats of %d item(s) with no valid average: %s",
            int(bad.sum()), ", ".join(df.loc[bad, "id"]),
        )
        df.loc[bad, ["average_rating", "popularity_score"]] = 0.0
        df.loc[bad, "total_ratings"] = 0

    return df.drop_duplicates(subset="id", keep="first")


def frame_to_items(df: pd.DataFrame) -> list[Item]:
    attribute_columns = [c for c in df.columns if c not in RESERVED_COLUMNS]
    items: list[Item] = []
    for _, row in df.iterrows():
        attributes: dict[str, Any] = {}
        for col in attribute_columns:
            value = row[col]
            if pd.isna(value):
                continue
            if col in NUMERIC_ATTRIBUTES and float(value).is_integer():
                value = int(value)
            attributes[col] = value.item() if hasattr(value, "item") else value
        items.append(Item(
            id=row["id"],
            attributes=attributes,
            available=bool(row["available"]),
            average_rating=float(row["average_rating"]),
            total_ratings=int(row["total_ratings"]),
            popularity_score=float(row["popularity_score"]),
        ))
    return items


def load_catalog(domain: str, config: CatalogConfig = DEFAULT_CATALOG_CONFIG) -> list[Item]:
    """Load the seed catalog for *domain*; a missing file gives an empty catalog."""
    path = config.catalog_path(domain)
    if not path.is_file():
        logger.warning("No catalog file for domain %s at %s", domain, path)
        return []
    items = frame_to_items(load_catalog_frame(path))
    logger.info("Loaded %d %s items from %s", len(items), domain, path)
    return items
