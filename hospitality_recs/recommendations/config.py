from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class EngineConfig:
    cache_ttl_seconds: float = _env_float("RECS_CACHE_TTL_SECONDS", 3600.0)
    history_window_days: int = int(_env_float("RECS_HISTORY_WINDOW_DAYS", 30))

    # Share of ``count`` requested from each generator, rounded up.
    collaborative_share: float = 0.6
    content_share: float = 0.3
    popularity_share: float = 0.1
    # Earlier sources win when the same item is proposed twice.
    blend_priority: tuple[str, ...] = (
        "collaborative_filtering",
        "content_based",
        "popularity",
    )

    high_rating_threshold: int = 4
    neutral_score: float = 3.5
    overfetch_factor: int = 2
    generator_timeout_seconds: float = _env_float("RECS_GENERATOR_TIMEOUT_SECONDS", 2.0)
    max_count: int = 50
    # Request events kept per engine for analytics.
    event_log_size: int = 10_000


DEFAULT_ENGINE_CONFIG = EngineConfig()
