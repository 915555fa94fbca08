"""Tests for the fusion weight cache, learning stores and weight learning."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from app.models.fusion_weight import FusionWeight
from app.services.nesy.types import ContextType, FusionStrategy, FusionWeights
from app.services.nesy.weight_cache import (
    DEFAULT_WEIGHTS,
    FusionWeightCache,
    InMemoryWeightStore,
    SqlWeightStore,
    adjust_weights,
    learn_from_fusion,
    normalize_weights,
)


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _SlowStore(InMemoryWeightStore):
    def get_weights(self, context_type):
        time.sleep(0.3)
        return FusionWeights(0.2, 0.8)


def _get(cache: FusionWeightCache, context_type: ContextType = ContextType.NORMAL) -> FusionWeights:
    return asyncio.run(cache.get_weights(context_type))


class TestNormalize:
    def test_neural_is_complement(self) -> None:
        assert normalize_weights(FusionWeights(0.6, 0.9)) == FusionWeights(0.6, pytest.approx(0.4))

    def test_clamped(self) -> None:
        assert normalize_weights(FusionWeights(1.4, 0.0)).symbolic_weight == 1.0
        assert normalize_weights(FusionWeights(-0.2, 0.0)).symbolic_weight == 0.0


class TestFusionWeightCache:
    def test_default_without_store(self) -> None:
        assert _get(FusionWeightCache()) == DEFAULT_WEIGHTS

    def test_store_result_cached_within_ttl(self) -> None:
        store = MagicMock()
        store.get_weights.return_value = FusionWeights(0.6, 0.4)
        clock = _FakeClock()
        cache = FusionWeightCache(store, ttl_seconds=60, clock=clock)

        assert _get(cache).symbolic_weight == pytest.approx(0.6)
        clock.now += 30
        _get(cache)
        assert store.get_weights.call_count == 1

        clock.now += 31
        _get(cache)
        assert store.get_weights.call_count == 2

    def test_nothing_learned_uses_default(self) -> None:
        assert _get(FusionWeightCache(InMemoryWeightStore())) == DEFAULT_WEIGHTS

    def test_slow_store_falls_back_within_timeout(self) -> None:
        cache = FusionWeightCache(_SlowStore(), timeout=0.05)
        start = time.monotonic()
        weights = asyncio.run(asyncio.wait_for(cache.get_weights(ContextType.NORMAL), 0.2))
        assert weights == DEFAULT_WEIGHTS
        assert time.monotonic() - start < 1.0

    def test_failing_store_uses_last_known(self, caplog: pytest.LogCaptureFixture) -> None:
        store = MagicMock()
        store.get_weights.side_effect = RuntimeError("db down")
        clock = _FakeClock()
        cache = FusionWeightCache(store, ttl_seconds=10, clock=clock)
        cache.put(ContextType.NORMAL, FusionWeights(0.65, 0.35))
        clock.now += 11

        assert _get(cache).symbolic_weight == pytest.approx(0.65)
        assert "failed" in caplog.text

    def test_failure_is_cached_for_ttl(self) -> None:
        store = MagicMock()
        store.get_weights.side_effect = RuntimeError("db down")
        cache = FusionWeightCache(store, ttl_seconds=60, clock=_FakeClock())
        _get(cache)
        _get(cache)
        assert store.get_weights.call_count == 1

    def test_invalidate(self) -> None:
        cache = FusionWeightCache()
        cache.put(ContextType.NORMAL, FusionWeights(0.6, 0.4))
        cache.put(ContextType.GREETING, FusionWeights(0.8, 0.2))
        cache.invalidate(ContextType.NORMAL)
        assert cache.last_known(ContextType.NORMAL) == DEFAULT_WEIGHTS
        assert cache.last_known(ContextType.GREETING).symbolic_weight == pytest.approx(0.8)
        cache.invalidate()
        assert cache.last_known(ContextType.GREETING) == DEFAULT_WEIGHTS


class TestLearning:
    @pytest.mark.parametrize(
        "start,strategy,expected",
        [
            (0.7, FusionStrategy.NEURAL_ENHANCED, 0.65),
            (0.7, FusionStrategy.SYMBOLIC_FALLBACK, 0.75),
            (0.7, FusionStrategy.WEIGHTED_BLEND, 0.7),
            (0.88, FusionStrategy.SYMBOLIC_FALLBACK, 0.9),
            (0.12, FusionStrategy.NEURAL_ENHANCED, 0.1),
        ],
    )
    def test_adjust_weights(self, start, strategy, expected) -> None:
        weights = adjust_weights(FusionWeights(start, 1 - start), strategy, 0.05)
        assert weights.symbolic_weight == pytest.approx(expected)
        assert weights.symbolic_weight + weights.neural_weight == pytest.approx(1.0)

    def test_repeated_learning_stays_bounded(self) -> None:
        store = InMemoryWeightStore()
        for _ in range(40):
            learn_from_fusion(store, ContextType.NORMAL, FusionStrategy.SYMBOLIC_FALLBACK, 0.05)
        assert store.get_weights(ContextType.NORMAL).symbolic_weight == pytest.approx(0.9)
        for _ in range(40):
            learn_from_fusion(store, ContextType.NORMAL, FusionStrategy.NEURAL_ENHANCED, 0.05)
        assert store.get_weights(ContextType.NORMAL).symbolic_weight == pytest.approx(0.1)
        assert store.sample_counts[ContextType.NORMAL] == 80

    def test_updates_cache(self) -> None:
        store = InMemoryWeightStore()
        cache = FusionWeightCache(store)
        learn_from_fusion(
            store, ContextType.NORMAL, FusionStrategy.NEURAL_ENHANCED, 0.05, cache=cache
        )
        assert cache.last_known(ContextType.NORMAL).symbolic_weight == pytest.approx(0.65)

    def test_crisis_context_never_learned(self) -> None:
        store = InMemoryWeightStore()
        learn_from_fusion(store, ContextType.CRISIS, FusionStrategy.NEURAL_ENHANCED, 0.05)
        assert store.get_weights(ContextType.CRISIS) is None


class TestSqlWeightStore:
    def test_save_and_load(self, db) -> None:
        store = SqlWeightStore()
        assert store.get_weights(ContextType.GREETING) is None

        store.save_weights(ContextType.GREETING, FusionWeights(0.8, 0.2))
        store.save_weights(ContextType.GREETING, FusionWeights(0.75, 0.25))

        assert store.get_weights(ContextType.GREETING) == FusionWeights(0.75, 0.25)
        row = db.query(FusionWeight).filter(FusionWeight.context_type == "greeting").one()
        assert row.sample_count == 2

    def test_cache_over_sql_store(self, db) -> None:
        store = SqlWeightStore()
        store.save_weights(ContextType.NORMAL, FusionWeights(0.6, 0.4))
        assert _get(FusionWeightCache(store, timeout=2.0)).symbolic_weight == pytest.approx(0.6)
