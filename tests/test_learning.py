"""Tests for post-response learning: seed usage, decision log and weight updates."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from unittest.mock import patch

from app.models.decision_log import DecisionLog
from app.models.seed import Seed as SeedRow
from app.services.learning import MAX_LOGGED_INPUT_CHARS, record_outcome, write_decision_log
from app.services.nesy.constants import STRICTNESS_CONFIGS
from app.services.nesy.pipeline import PipelineState, process
from app.services.nesy.types import ContextType, StrictnessLevel
from app.services.nesy.weight_cache import FusionWeightCache, InMemoryWeightStore
from app.services.seed_store import get_seed_catalogue
from tests.factories import STRESS_RESPONSE


class _EchoGenerator:
    def generate(self, seed_text, user_input, emotion="", label="", interventions=()):
        return seed_text + " Je staat er niet alleen voor."


def _outcome(text: str = "Ik ben zo gestrest", generator=None):
    state = PipelineState(weight_cache=FusionWeightCache(), generator=generator)
    return asyncio.run(
        process(
            text,
            get_seed_catalogue().snapshot(),
            [],
            STRICTNESS_CONFIGS[StrictnessLevel.FLEXIBLE],
            state,
        )
    )


class TestDecisionLog:
    def test_row_written(self, seeded_db) -> None:
        outcome = _outcome()
        write_decision_log(seeded_db, "Ik ben zo gestrest", outcome)

        row = seeded_db.query(DecisionLog).one()
        assert row.response_type == "symbolic"
        assert row.seed_id == "stress-overwhelm"
        assert row.fusion_strategy == "symbolic_fallback"
        assert row.constraint_ok is True
        assert row.constraint_reason == "sat"
        assert row.violations == []
        assert row.final_text == STRESS_RESPONSE

    def test_input_truncated(self, db) -> None:
        outcome = _outcome("x" * 2000)
        row = write_decision_log(db, "x" * 2000, outcome)
        assert len(row.input_text) == MAX_LOGGED_INPUT_CHARS


class TestRecordOutcome:
    def test_accepted_seed_usage_recorded(self, seeded_db) -> None:
        outcome = _outcome()
        record_outcome("Ik ben zo gestrest", outcome, seed_catalogue=get_seed_catalogue())

        seeded_db.expire_all()
        assert seeded_db.get(SeedRow, "stress-overwhelm").usage_count == 1
        catalogue_seed = next(
            s for s in get_seed_catalogue().snapshot() if s.id == "stress-overwhelm"
        )
        assert catalogue_seed.usage_count == 1
        assert seeded_db.query(DecisionLog).count() == 1

    def test_fallback_does_not_count_usage(self, seeded_db) -> None:
        outcome = replace(_outcome(), used_fallback=True)
        record_outcome("Ik ben zo gestrest", outcome)

        seeded_db.expire_all()
        assert seeded_db.get(SeedRow, "stress-overwhelm").usage_count == 0
        assert seeded_db.query(DecisionLog).one().used_fallback is True

    def test_usage_failure_still_logs_decision(self, seeded_db) -> None:
        outcome = _outcome()
        with patch("app.services.learning.record_seed_usage", side_effect=RuntimeError("locked")):
            record_outcome("Ik ben zo gestrest", outcome)
        assert seeded_db.query(DecisionLog).count() == 1

    def test_no_learning_without_generated_variant(self, seeded_db) -> None:
        store = InMemoryWeightStore()
        record_outcome("Ik ben zo gestrest", _outcome(), weight_store=store)
        assert store.sample_counts == {}

    def test_learns_from_generated_variant(self, seeded_db) -> None:
        store = InMemoryWeightStore()
        cache = FusionWeightCache(store)
        outcome = _outcome(generator=_EchoGenerator())
        assert outcome.fusion.context_type == ContextType.HIGH_CONFIDENCE

        record_outcome(
            "Ik ben zo gestrest", outcome, weight_store=store, weight_cache=cache, learning_rate=0.05
        )

        learned = store.get_weights(ContextType.HIGH_CONFIDENCE)
        assert learned.symbolic_weight == 0.65
        assert cache.last_known(ContextType.HIGH_CONFIDENCE).symbolic_weight == 0.65

    def test_learning_failure_is_swallowed(self, seeded_db) -> None:
        outcome = _outcome(generator=_EchoGenerator())
        with patch("app.services.learning.learn_from_fusion", side_effect=RuntimeError("down")):
            record_outcome("Ik ben zo gestrest", outcome, weight_store=InMemoryWeightStore())
        assert seeded_db.query(DecisionLog).count() == 1

    def test_session_open_failure_is_swallowed(self, seeded_db) -> None:
        store = InMemoryWeightStore()
        outcome = _outcome(generator=_EchoGenerator())

        def _unavailable():
            raise RuntimeError("pool exhausted")

        record_outcome(
            "Ik ben zo gestrest", outcome, weight_store=store, session_factory=_unavailable
        )

        assert seeded_db.query(DecisionLog).count() == 0
        assert store.get_weights(ContextType.HIGH_CONFIDENCE).symbolic_weight == 0.65
