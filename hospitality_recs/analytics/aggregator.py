from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from ..recommendations.entities import Interaction


def compute_analytics(
    interactions: Iterable[Interaction],
    events: list[dict[str, Any]],
) -> dict[str, Any]:
    interactions = list(interactions)
    total_interactions = len(interactions)
    total_users = len({i.user_id for i in interactions})
    avg_per_user = total_interactions / total_users if total_users > 0 else 0.0

    type_counter: Counter[str] = Counter(i.interaction_type.value for i in interactions)

    # Recommendation requests served
    requests = [e for e in events if e["type"] == "recommendation"]
    total = len(requests)
    times = [r["response_time_ms"] for r in requests if "response_time_ms" in r]
    cache_hits = sum(1 for r in requests if r.get("cache_hit"))
    fallbacks = sum(1 for r in requests if r.get("fallback"))

    return {
        "total_users": total_users,
        "total_interactions": total_interactions,
        "avg_interactions_per_user": round(avg_per_user, 2),
        "interaction_types": dict(type_counter),
        "requests": {
            "total": total,
            "avg_response_time_ms": round(sum(times) / len(times), 1) if times else 0.0,
            "cache_hits": cache_hits,
            "cache_hit_rate": round(cache_hits / total * 100, 1) if total else 0.0,
            "fallbacks": fallbacks,
        },
    }
