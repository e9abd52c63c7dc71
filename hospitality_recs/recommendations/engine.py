from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable

from ..analytics.aggregator import compute_analytics
from ..analytics.store import EventLog
from ..storage.availability import AvailabilityChecker
from ..storage.repositories import (
    InMemoryInteractionRepository,
    InMemoryItemRepository,
    InteractionRepository,
    ItemRepository,
)
from .blender import Blender, assign_ranks
from .cache import CacheEntry, RecommendationCache
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .domains import DomainSpec
from .entities import Clock, Interaction, Item, PreferenceProfile, Recommendation, utc_now
from .errors import EngineNotReady, StorageError, ValidationError
from .generators import CandidateGenerators
from .preferences import analyze_preferences
from .ratings import RatingAggregator
from .recorder import InteractionRecorder, require_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationResult:
    recommendations: list[Recommendation]
    preferences: PreferenceProfile | None
    cached: bool
    generated_at: datetime
    fallback: bool = False
    error: str | None = None


class RecommendationEngine:
    """
    One domain's recommendation service.

    Construct it with its collaborators, call ``load()`` once, then share the
    instance across requests. Every public operation is thread-safe.
    """

    def __init__(
        self,
        domain: DomainSpec,
        items: ItemRepository | None = None,
        interactions: InteractionRepository | None = None,
        availability: AvailabilityChecker | None = None,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        clock: Clock = utc_now,
        cache: RecommendationCache | None = None,
        events: EventLog | None = None,
    ) -> None:
        self.domain = domain
        self.items = items if items is not None else InMemoryItemRepository()
        self.interactions = interactions if interactions is not None else InMemoryInteractionRepository()
        self.availability = availability
        self.config = config
        self.clock = clock
        self.cache = cache if cache is not None else RecommendationCache(config, clock)
        self.events = events if events is not None else EventLog(config.event_log_size)

        self.aggregator = RatingAggregator(self.items)
        self.recorder = InteractionRecorder(
            domain, self.items, self.interactions, self.aggregator, clock,
        )
        self.generators = CandidateGenerators(
            domain, self.items, self.interactions, availability, config,
        )
        self._executor: ThreadPoolExecutor | None = None
        self.blender: Blender | None = None
        self._ready = False

    # --- lifecycle ---

    def load(self, catalog: Iterable[Item] = ()) -> RecommendationEngine:
        """Seed the item repository and start the generator pool."""
        loaded = 0
        for item in catalog:
            self.items.save(item)
            loaded += 1
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=6, thread_name_prefix=f"recs-{self.domain.name}",
            )
        self.blender = Blender(self.generators, self._executor, self.config)
        self._ready = True
        logger.info("%s engine ready (%d catalog items loaded)", self.domain.name, loaded)
        return self

    def is_ready(self) -> bool:
        return self._ready

    def close(self) -> None:
        self._ready = False
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _require_ready(self) -> Blender:
        if not self._ready or self.blender is None:
            raise EngineNotReady(f"{self.domain.name} engine is not loaded")
        return self.blender

    # --- operations ---

    def record_interaction(
        self,
        user_id: Any,
        item_id: Any,
        interaction_type: Any,
        rating: Any = None,
        context: dict[str, Any] | None = None,
        weight: float | None = None,
    ) -> Interaction:
        self._require_ready()
        return self.recorder.record(user_id, item_id, interaction_type, rating, context, weight)

    def _check_count(self, count: int) -> int:
        if not isinstance(count, int) or isinstance(count, bool) or count < 1:
            raise ValidationError("count must be a positive integer")
        if count > self.config.max_count:
            raise ValidationError(f"count must not exceed {self.config.max_count}")
        return count

    def preferences_for(self, user_id: str, days: int | None = None) -> tuple[list[Interaction], PreferenceProfile]:
        window = days if days is not None else self.config.history_window_days
        since = self.clock() - timedelta(days=window)
        history = self.interactions.for_user(user_id, since)
        catalog = {item.id: item for item in self.items.list_items(available_only=False)}
        return history, analyze_preferences(history, catalog, self.domain)

    def recommend(
        self, user_id: str, count: int = 10, context: dict[str, Any] | None = None,
    ) -> RecommendationResult:
        blender = self._require_ready()
        user_id = require_identifier(user_id, "user_id")
        count = self._check_count(count)
        filters = self.domain.normalize_context(dict(context or {}))
        cache_context = {**filters, "count": count}
        start_time = time.time()

        entry = self.cache.get(self.domain.name, user_id, cache_context)
        if entry is None:
            with self.cache.lock_for(self.domain.name, user_id, cache_context):
                # Another request may have filled it while we waited.
                entry = self.cache.peek(self.domain.name, user_id, cache_context)
                if entry is None:
                    entry = self._generate(blender, user_id, count, filters)
                    self.cache.put(self.domain.name, user_id, cache_context, entry)
                    cached = False
                else:
                    cached = True
        else:
            cached = True
        logger.debug("%s recommendations for %s (cached=%s)", self.domain.name, user_id, cached)

        self.events.record("recommendation", {
            "user_id": user_id,
            "count": count,
            "results_returned": len(entry.recommendations),
            "cache_hit": cached,
            "fallback": entry.fallback,
            "response_time_ms": round((time.time() - start_time) * 1000, 3),
        })
        return RecommendationResult(
            recommendations=entry.recommendations,
            preferences=entry.preferences,
            cached=cached,
            generated_at=entry.generated_at,
            fallback=entry.fallback,
            error=entry.error,
        )

    def _generate(
        self, blender: Blender, user_id: str, count: int, filters: dict[str, Any],
    ) -> CacheEntry:
        try:
            _, preferences = self.preferences_for(user_id)
        except Exception as exc:
            logger.warning("Could not load history for %s, using popularity", user_id, exc_info=True)
            result = blender.blend(user_id, None, count, filters)
            return CacheEntry(
                recommendations=result.recommendations,
                preferences=None,
                generated_at=self.clock(),
                fallback=True,
                error=f"{type(exc).__name__}: {exc}",
            )

        result = blender.blend(user_id, preferences, count, filters)
        return CacheEntry(
            recommendations=result.recommendations,
            preferences=preferences,
            generated_at=self.clock(),
            fallback=result.fallback,
            error=result.error,
        )

    def popular(self, count: int = 10, context: dict[str, Any] | None = None) -> list[Recommendation]:
        self._require_ready()
        count = self._check_count(count)
        filters = self.domain.normalize_context(dict(context or {}))
        return assign_ranks(self.generators.popular(count, filters))

    def history(self, user_id: str, days: int = 30) -> dict[str, Any]:
        self._require_ready()
        user_id = require_identifier(user_id, "user_id")
        if not isinstance(days, int) or days < 1:
            raise ValidationError("days must be a positive integer")
        interactions, preferences = self.preferences_for(user_id, days)
        return {
            "history": sorted(interactions, key=lambda i: i.timestamp, reverse=True),
            "preferences": preferences,
            "period_days": days,
        }

    def analytics(self) -> dict[str, Any]:
        self._require_ready()
        try:
            interactions = self.interactions.all()
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"could not read interactions: {exc}") from exc
        return compute_analytics(interactions, self.events.events())

    def get_item(self, item_id: str) -> Item | None:
        return self.items.get(item_id)

    def model_info(self) -> dict[str, Any]:
        return {
            "domain": self.domain.name,
            "loaded": self._ready,
            "catalog_size": len(self.items.list_items(available_only=False)),
            "available_items": len(self.items.list_items(available_only=True)),
            "cache": self.cache.stats(),
            "cache_ttl_seconds": self.config.cache_ttl_seconds,
            "history_window_days": self.config.history_window_days,
        }
