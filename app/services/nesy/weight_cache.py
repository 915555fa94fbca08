"""Fusion weight cache and learning stores.

The cache is the only suspension point inside fusion. A lookup never waits
longer than the configured timeout: on a slow or failing store it returns the
last-known weights for the context type, else the 0.7/0.3 default.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.services.nesy.constants import (
    DEFAULT_NEURAL_WEIGHT,
    DEFAULT_SYMBOLIC_WEIGHT,
    MAX_LEARNED_WEIGHT,
    MIN_LEARNED_WEIGHT,
)
from app.services.nesy.types import ContextType, FusionStrategy, FusionWeights

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = FusionWeights(
    symbolic_weight=DEFAULT_SYMBOLIC_WEIGHT, neural_weight=DEFAULT_NEURAL_WEIGHT
)


def normalize_weights(weights: FusionWeights) -> FusionWeights:
    """Clamp symbolic weight to [0, 1] and derive neural as its complement."""
    symbolic = max(0.0, min(1.0, float(weights.symbolic_weight)))
    return FusionWeights(symbolic_weight=symbolic, neural_weight=1.0 - symbolic)


class WeightLearningStore(ABC):
    """Backing store for learned per-context fusion weights."""

    @abstractmethod
    def get_weights(self, context_type: ContextType) -> FusionWeights | None:
        """Return stored weights, or None if nothing was learned for context_type."""
        ...

    @abstractmethod
    def save_weights(self, context_type: ContextType, weights: FusionWeights) -> None:
        """Persist weights for context_type."""
        ...


class InMemoryWeightStore(WeightLearningStore):
    """Process-local store. Default when no database is wired in."""

    def __init__(self, initial: dict[ContextType, FusionWeights] | None = None) -> None:
        self._lock = threading.Lock()
        self._weights: dict[ContextType, FusionWeights] = dict(initial or {})
        self.sample_counts: dict[ContextType, int] = {}

    def get_weights(self, context_type: ContextType) -> FusionWeights | None:
        with self._lock:
            return self._weights.get(context_type)

    def save_weights(self, context_type: ContextType, weights: FusionWeights) -> None:
        with self._lock:
            self._weights[context_type] = weights
            self.sample_counts[context_type] = self.sample_counts.get(context_type, 0) + 1


class SqlWeightStore(WeightLearningStore):
    """fusion_weights table store. Each call opens its own session."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from app.db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    def get_weights(self, context_type: ContextType) -> FusionWeights | None:
        from app.models.fusion_weight import FusionWeight

        db = self._session_factory()
        try:
            row = (
                db.query(FusionWeight)
                .filter(FusionWeight.context_type == context_type.value)
                .first()
            )
            if row is None:
                return None
            return FusionWeights(
                symbolic_weight=row.symbolic_weight, neural_weight=row.neural_weight
            )
        finally:
            db.close()

    def save_weights(self, context_type: ContextType, weights: FusionWeights) -> None:
        from app.models.fusion_weight import FusionWeight

        db = self._session_factory()
        try:
            row = (
                db.query(FusionWeight)
                .filter(FusionWeight.context_type == context_type.value)
                .first()
            )
            if row is None:
                row = FusionWeight(context_type=context_type.value, sample_count=0)
                db.add(row)
            row.symbolic_weight = weights.symbolic_weight
            row.neural_weight = weights.neural_weight
            row.sample_count = (row.sample_count or 0) + 1
            row.updated_at = datetime.now(UTC)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class FusionWeightCache:
    """TTL cache over a WeightLearningStore with a timeout-bounded lookup."""

    def __init__(
        self,
        store: WeightLearningStore | None = None,
        ttl_seconds: float = 300.0,
        timeout: float = 0.25,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._clock = clock
        self._entries: dict[ContextType, tuple[FusionWeights, float]] = {}

    def last_known(self, context_type: ContextType) -> FusionWeights:
        entry = self._entries.get(context_type)
        return entry[0] if entry else DEFAULT_WEIGHTS

    async def get_weights(self, context_type: ContextType) -> FusionWeights:
        """Return weights for context_type; never raises, never exceeds the timeout."""
        now = self._clock()
        entry = self._entries.get(context_type)
        if entry is not None and now - entry[1] < self.ttl_seconds:
            return entry[0]
        if self.store is None:
            return self.last_known(context_type)

        try:
            stored = await asyncio.wait_for(
                asyncio.to_thread(self.store.get_weights, context_type),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning(
                "Weight store lookup for %s exceeded %.2fs; using cached/default weights",
                context_type.value,
                self.timeout,
            )
            weights = self.last_known(context_type)
        except Exception:
            logger.exception(
                "Weight store lookup for %s failed; using cached/default weights",
                context_type.value,
            )
            weights = self.last_known(context_type)
        else:
            weights = normalize_weights(stored) if stored is not None else DEFAULT_WEIGHTS

        # Failed lookups are cached too so a down store is retried once per TTL
        self._entries[context_type] = (weights, now)
        return weights

    def put(self, context_type: ContextType, weights: FusionWeights) -> None:
        self._entries[context_type] = (normalize_weights(weights), self._clock())

    def invalidate(self, context_type: ContextType | None = None) -> None:
        if context_type is None:
            self._entries.clear()
        else:
            self._entries.pop(context_type, None)


def adjust_weights(
    current: FusionWeights, strategy: FusionStrategy, learning_rate: float
) -> FusionWeights:
    """Nudge symbolic weight by learning_rate toward the branch the strategy favoured.

    neural_enhanced lowers it, symbolic_fallback raises it, weighted_blend keeps
    it. The result stays in [0.1, 0.9] and sums to 1.
    """
    symbolic = current.symbolic_weight
    if strategy == FusionStrategy.NEURAL_ENHANCED:
        symbolic -= learning_rate
    elif strategy == FusionStrategy.SYMBOLIC_FALLBACK:
        symbolic += learning_rate
    symbolic = round(max(MIN_LEARNED_WEIGHT, min(MAX_LEARNED_WEIGHT, symbolic)), 4)
    return FusionWeights(symbolic_weight=symbolic, neural_weight=round(1.0 - symbolic, 4))


def learn_from_fusion(
    store: WeightLearningStore,
    context_type: ContextType,
    strategy: FusionStrategy,
    learning_rate: float,
    cache: FusionWeightCache | None = None,
) -> FusionWeights:
    """Update the stored weights for context_type after an accepted response.

    Crisis context is never learned: its weights are overridden by the safety
    rule on every run.
    """
    current = store.get_weights(context_type) or DEFAULT_WEIGHTS
    if context_type == ContextType.CRISIS:
        return current
    updated = adjust_weights(current, strategy, learning_rate)
    store.save_weights(context_type, updated)
    if cache is not None:
        cache.put(context_type, updated)
    logger.info(
        "Fusion weights learned: %s symbolic=%.4f neural=%.4f (%s)",
        context_type.value,
        updated.symbolic_weight,
        updated.neural_weight,
        strategy.value,
    )
    return updated
