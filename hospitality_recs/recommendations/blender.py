from __future__ import annotations

import logging
import math
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable

from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .entities import PreferenceProfile, Reason, Recommendation
from .errors import RecommendationUnavailable
from .generators import CandidateGenerators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlendResult:
    recommendations: list[Recommendation]
    fallback: bool = False
    error: str | None = None


def quota(count: int, share: float) -> int:
    # Rounded first so 10 * 0.3 asks for 3, not 4.
    return math.ceil(round(count * share, 6))


def deduplicate(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    """Drop repeated items, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[Recommendation] = []
    for rec in recommendations:
        if rec.item_id in seen:
            continue
        seen.add(rec.item_id)
        unique.append(rec)
    return unique


def assign_ranks(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    return [replace(rec, rank=index) for index, rec in enumerate(recommendations, start=1)]


class Blender:
    """
    Merge the three candidate sources into one ranked list.

    Generators run concurrently on a shared pool. If any of them raises or
    misses the deadline, or nothing survives the merge, the whole answer is
    replaced by plain popularity so the caller still gets a full list.
    """

    def __init__(
        self,
        generators: CandidateGenerators,
        executor: ThreadPoolExecutor,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
    ) -> None:
        self.generators = generators
        self.executor = executor
        self.config = config

    def quotas(self, count: int) -> dict[Reason, int]:
        return {
            Reason.collaborative_filtering: quota(count, self.config.collaborative_share),
            Reason.content_based: quota(count, self.config.content_share),
            Reason.popularity: quota(count, self.config.popularity_share),
        }

    def blend(
        self,
        user_id: str,
        preferences: PreferenceProfile | None,
        count: int,
        filters: dict[str, Any] | None = None,
    ) -> BlendResult:
        filters = filters or {}

        if preferences is None or preferences.is_new_user:
            return BlendResult(self._popular_or_fail(count, filters))

        quotas = self.quotas(count)
        tasks: dict[Reason, Callable[[], list[Recommendation]]] = {
            Reason.collaborative_filtering: lambda: self.generators.collaborative(
                user_id, preferences, quotas[Reason.collaborative_filtering],
            ),
            Reason.content_based: lambda: self.generators.content_based(
                preferences, quotas[Reason.content_based], filters,
            ),
            Reason.popularity: lambda: self.generators.popular(
                quotas[Reason.popularity], filters,
            ),
        }

        try:
            results = self._run_all(tasks)
        except Exception as exc:
            logger.warning(
                "Candidate generation failed for user %s, falling back to popularity",
                user_id, exc_info=True,
            )
            return self._fallback(count, filters, f"{type(exc).__name__}: {exc}")

        merged: list[Recommendation] = []
        for reason in self.config.blend_priority:
            merged.extend(results.get(Reason(reason), []))
        blended = assign_ranks(deduplicate(merged)[:count])

        if not blended:
            logger.info("No candidates for user %s, falling back to popularity", user_id)
            return self._fallback(count, filters, "no candidates")
        return BlendResult(blended)

    def _run_all(
        self, tasks: dict[Reason, Callable[[], list[Recommendation]]],
    ) -> dict[Reason, list[Recommendation]]:
        futures: dict[Reason, Future] = {
            reason: self.executor.submit(task) for reason, task in tasks.items()
        }
        done, pending = wait(
            futures.values(),
            timeout=self.config.generator_timeout_seconds,
            return_when=FIRST_EXCEPTION,
        )
        for future in pending:
            future.cancel()

        for future in done:
            if future.exception() is not None:
                raise future.exception()
        results: dict[Reason, list[Recommendation]] = {}
        for reason, future in futures.items():
            if future not in done:
                raise TimeoutError(f"{reason.value} generator timed out")
            results[reason] = future.result()
        return results

    def _fallback(self, count: int, filters: dict[str, Any], error: str) -> BlendResult:
        return BlendResult(self._popular_or_fail(count, filters), fallback=True, error=error)

    def _popular_or_fail(self, count: int, filters: dict[str, Any]) -> list[Recommendation]:
        try:
            return assign_ranks(self.generators.popular(count, filters))
        except Exception as exc:
            raise RecommendationUnavailable("popularity generation failed") from exc
