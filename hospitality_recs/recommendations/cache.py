from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .entities import Clock, PreferenceProfile, Recommendation, utc_now


@dataclass(frozen=True)
class CacheEntry:
    recommendations: list[Recommendation]
    preferences: PreferenceProfile | None
    generated_at: datetime
    fallback: bool = False
    error: str | None = None


def make_key(domain: str, user_id: str, context: dict[str, Any]) -> str:
    normalized = json.dumps(
        {"domain": domain, "user_id": user_id, "context": context},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


class RecommendationCache:
    """
    Last blended result per (domain, user, context) key.

    Expiry is checked on read only; stale entries stay until the next write
    for the same key replaces them.
    """

    def __init__(
        self,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        clock: Clock = utc_now,
    ) -> None:
        self._ttl = timedelta(seconds=config.cache_ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._hits = 0
        self._misses = 0

    def get(self, domain: str, user_id: str, context: dict[str, Any]) -> CacheEntry | None:
        key = make_key(domain, user_id, context)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry and now - entry.generated_at <= self._ttl:
                self._hits += 1
                return entry
            self._misses += 1
            return None

    def put(self, domain: str, user_id: str, context: dict[str, Any], entry: CacheEntry) -> None:
        key = make_key(domain, user_id, context)
        with self._lock:
            self._entries[key] = entry

    def lock_for(self, domain: str, user_id: str, context: dict[str, Any]) -> threading.Lock:
        """Per-key lock so concurrent misses compute once."""
        key = make_key(domain, user_id, context)
        with self._lock:
            return self._key_locks.setdefault(key, threading.Lock())

    def peek(self, domain: str, user_id: str, context: dict[str, Any]) -> CacheEntry | None:
        """Fresh entry or ``None``, without touching the hit/miss counters."""
        key = make_key(domain, user_id, context)
        with self._lock:
            entry = self._entries.get(key)
        if entry and self._clock() - entry.generated_at <= self._ttl:
            return entry
        return None

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()
            self._hits = 0
            self._misses = 0
