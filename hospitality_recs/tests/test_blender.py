from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from hospitality_recs.recommendations.blender import Blender, deduplicate, quota
from hospitality_recs.recommendations.config import EngineConfig
from hospitality_recs.recommendations.entities import (
    Confidence,
    PreferenceProfile,
    Reason,
    Recommendation,
)
from hospitality_recs.recommendations.errors import RecommendationUnavailable, StorageError

RETURNING = PreferenceProfile(total_interactions=3)


def _recs(ids, reason, confidence=Confidence.medium):
    return [Recommendation(item_id=i, score=4.0, reason=reason, confidence=confidence) for i in ids]


def _popular(count, filters=None):
    return _recs([f"p{n}" for n in range(count)], Reason.popularity)


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=3)
    yield pool
    pool.shutdown(wait=False)


def _blender(executor, generators, **config):
    return Blender(generators, executor, EngineConfig(**config))


def _generators(collaborative=(), content=(), popular=_popular):
    generators = MagicMock()
    generators.collaborative.side_effect = (
        collaborative if callable(collaborative)
        else lambda user_id, prefs, count: _recs(collaborative, Reason.collaborative_filtering, Confidence.high)[:count]
    )
    generators.content_based.side_effect = (
        content if callable(content)
        else lambda prefs, count, filters=None: _recs(content, Reason.content_based)[:count]
    )
    generators.popular.side_effect = popular
    return generators


def test_quota_rounds_up_without_float_drift():
    assert quota(10, 0.6) == 6
    assert quota(10, 0.3) == 3
    assert quota(10, 0.1) == 1
    assert quota(1, 0.1) == 1
    assert quota(5, 0.3) == 2


def test_returning_user_quotas_for_count_ten(executor):
    generators = _generators(collaborative=["a"], content=["b"])
    _blender(executor, generators).blend("u1", RETURNING, 10)

    generators.collaborative.assert_called_once_with("u1", RETURNING, 6)
    generators.content_based.assert_called_once_with(RETURNING, 3, {})
    generators.popular.assert_called_once_with(1, {})


def test_new_user_gets_popularity_only(executor):
    generators = _generators(collaborative=["a"], content=["b"])
    result = _blender(executor, generators).blend("u1", PreferenceProfile(), 10)

    assert len(result.recommendations) == 10
    assert all(r.reason is Reason.popularity for r in result.recommendations)
    assert not result.fallback
    generators.collaborative.assert_not_called()
    generators.content_based.assert_not_called()


def test_dedup_keeps_first_source_and_ranks_final_order(executor):
    generators = _generators(collaborative=["x", "y"], content=["y", "z"], popular=lambda c, f=None: _recs(["x", "w"], Reason.popularity))
    result = _blender(executor, generators).blend("u1", RETURNING, 10)

    recs = result.recommendations
    assert [r.item_id for r in recs] == ["x", "y", "z", "w"]
    assert [r.reason for r in recs[:2]] == [Reason.collaborative_filtering] * 2
    assert [r.rank for r in recs] == [1, 2, 3, 4]
    assert len({r.item_id for r in recs}) == len(recs)


def test_blend_truncates_to_count(executor):
    generators = _generators(
        collaborative=["a", "b", "c"],
        content=["d", "e"],
        popular=lambda c, f=None: _recs(["f"], Reason.popularity),
    )
    result = _blender(executor, generators).blend("u1", RETURNING, 3)

    # quotas for count=3 are 2 collaborative, 1 content-based, 1 popular
    generators.collaborative.assert_called_once_with("u1", RETURNING, 2)
    generators.content_based.assert_called_once_with(RETURNING, 1, {})
    generators.popular.assert_called_once_with(1, {})
    assert [r.item_id for r in result.recommendations] == ["a", "b", "d"]
    assert [r.rank for r in result.recommendations] == [1, 2, 3]


def test_blend_priority_is_configurable(executor):
    generators = _generators(collaborative=["x"], content=["x"])
    result = _blender(
        executor, generators,
        blend_priority=("content_based", "collaborative_filtering", "popularity"),
    ).blend("u1", RETURNING, 10)
    assert result.recommendations[0].reason is Reason.content_based


def test_collaborative_failure_falls_back_to_popularity(executor):
    def boom(user_id, prefs, count):
        raise StorageError("interaction store down")

    generators = _generators(collaborative=boom, content=["b"])
    result = _blender(executor, generators).blend("u1", RETURNING, 10)

    assert result.fallback
    assert "interaction store down" in result.error
    assert len(result.recommendations) == 10
    assert all(r.reason is Reason.popularity for r in result.recommendations)
    assert [r.rank for r in result.recommendations] == list(range(1, 11))


def test_slow_generator_times_out_into_fallback(executor):
    def slow(prefs, count, filters=None):
        time.sleep(0.5)
        return _recs(["late"], Reason.content_based)

    generators = _generators(collaborative=["a"], content=slow)
    result = _blender(executor, generators, generator_timeout_seconds=0.05).blend("u1", RETURNING, 4)

    assert result.fallback
    assert "timed out" in result.error
    assert all(r.reason is Reason.popularity for r in result.recommendations)


def test_empty_blend_falls_back(executor):
    calls = []

    def popular(count, filters=None):
        calls.append(count)
        return [] if count == 1 else _popular(count)

    generators = _generators(popular=popular)
    result = _blender(executor, generators).blend("u1", RETURNING, 10)

    assert result.fallback
    assert calls == [1, 10]
    assert len(result.recommendations) == 10


def test_total_failure_is_raised(executor):
    def broken(count, filters=None):
        raise StorageError("catalog down")

    generators = _generators(collaborative=["a"], popular=broken)
    with pytest.raises(RecommendationUnavailable):
        _blender(executor, generators).blend("u1", RETURNING, 10)


def test_deduplicate_preserves_order():
    recs = _recs(["a", "b", "a", "c", "b"], Reason.popularity)
    assert [r.item_id for r in deduplicate(recs)] == ["a", "b", "c"]
