"""Tests for the hybrid decision policy and disliked-label avoidance."""

from __future__ import annotations

import pytest

from app.services.nesy.constants import FALLBACK_RESPONSE
from app.services.nesy.hybrid_decision import decide, substitute_label
from app.services.nesy.types import (
    DecisionContext,
    NeuralMatch,
    ResponseType,
    SeedLabel,
    SymbolicMatch,
)
from tests.factories import make_seed, make_similarity


def _symbolic(confidence: float, label: SeedLabel = SeedLabel.VALIDATE) -> SymbolicMatch:
    seed = make_seed("seed-1", response="Symbolisch antwoord.", label=label)
    return SymbolicMatch(seed=seed, score=10.0, matched_triggers=("stress",), confidence=confidence)


def _neural(fit: float) -> NeuralMatch:
    return NeuralMatch(
        similarity=make_similarity(fit, text="Neuraal antwoord."),
        relevance_score=fit,
        contextual_fit=fit,
    )


class TestSelectionPolicy:
    def test_no_matches_uses_generated_fallback(self) -> None:
        decision = decide([], [])
        assert decision.response_type == ResponseType.GENERATED
        assert decision.confidence == 0.3
        assert decision.response_text == FALLBACK_RESPONSE
        assert decision.seed is None

    def test_symbolic_only(self) -> None:
        decision = decide([_symbolic(0.5)], [])
        assert decision.response_type == ResponseType.SYMBOLIC
        assert decision.response_text == "Symbolisch antwoord."
        assert decision.seed.id == "seed-1"
        assert (decision.symbolic_contribution, decision.neural_contribution) == (1.0, 0.0)

    def test_strong_symbolic_beats_strong_neural(self) -> None:
        decision = decide([_symbolic(0.9)], [_neural(0.95)])
        assert decision.response_type == ResponseType.SYMBOLIC

    def test_strong_neural(self) -> None:
        decision = decide([_symbolic(0.8)], [_neural(0.85)])
        assert decision.response_type == ResponseType.NEURAL
        assert decision.response_text == "Neuraal antwoord."
        assert decision.confidence == pytest.approx(0.85)
        assert decision.seed is None

    def test_neural_only_strong(self) -> None:
        assert decide([], [_neural(0.9)]).response_type == ResponseType.NEURAL

    def test_hybrid_favouring_symbolic(self) -> None:
        decision = decide([_symbolic(0.7)], [_neural(0.7)])
        assert decision.response_type == ResponseType.HYBRID
        assert decision.response_text == "Symbolisch antwoord."
        assert decision.confidence == pytest.approx((0.42 + 0.28) / 2)
        assert decision.symbolic_contribution == pytest.approx(0.6)
        assert decision.neural_contribution == pytest.approx(0.4)
        assert decision.seed is not None

    def test_hybrid_favouring_neural(self) -> None:
        decision = decide([_symbolic(0.3)], [_neural(0.8)])
        assert decision.response_type == ResponseType.HYBRID
        assert decision.response_text == "Neuraal antwoord."
        assert decision.neural_contribution > decision.symbolic_contribution
        assert decision.seed is None

    def test_weak_neural_only(self) -> None:
        decision = decide([], [_neural(0.6)])
        assert decision.response_type == ResponseType.NEURAL
        assert decision.reasoning.startswith("Fallback")

    def test_decide_is_pure(self) -> None:
        symbolic = [_symbolic(0.5)]
        decide(symbolic, [])
        assert symbolic[0].seed.usage_count == 0


class TestDislikedLabel:
    def test_alternative_seed_replaces_disliked_response(self) -> None:
        question = SymbolicMatch(
            seed=make_seed("seed-2", response="Wat helpt jou?", label=SeedLabel.REFLECTIVE_QUESTION),
            score=5.0,
            matched_triggers=("stress",),
            confidence=0.4,
        )
        decision = decide(
            [_symbolic(0.5, SeedLabel.VALIDATE), question],
            [],
            DecisionContext(disliked_label=SeedLabel.VALIDATE),
        )
        assert decision.label == SeedLabel.REFLECTIVE_QUESTION
        assert decision.seed.id == "seed-2"
        assert decision.response_text == "Wat helpt jou?"
        assert decision.response_type == ResponseType.SYMBOLIC
        assert "avoided" in decision.reasoning

    def test_no_alternative_seed_uses_generated_fallback(self) -> None:
        decision = decide(
            [_symbolic(0.5, SeedLabel.SUGGESTION)],
            [],
            DecisionContext(disliked_label=SeedLabel.SUGGESTION),
        )
        assert decision.label == SeedLabel.VALIDATE
        assert decision.response_text == FALLBACK_RESPONSE
        assert decision.response_type == ResponseType.GENERATED
        assert decision.seed is None
        assert decision.confidence == 0.3

    def test_other_label_untouched(self) -> None:
        decision = decide(
            [_symbolic(0.5, SeedLabel.SUGGESTION)],
            [],
            DecisionContext(disliked_label=SeedLabel.VALIDATE),
        )
        assert decision.label == SeedLabel.SUGGESTION
        assert "avoided" not in decision.reasoning

    @pytest.mark.parametrize(
        "label,disliked,expected",
        [
            (SeedLabel.VALIDATE, None, SeedLabel.VALIDATE),
            (SeedLabel.REFLECTIVE_QUESTION, SeedLabel.REFLECTIVE_QUESTION, SeedLabel.VALIDATE),
            (SeedLabel.INTERVENTION, SeedLabel.INTERVENTION, SeedLabel.VALIDATE),
        ],
    )
    def test_substitute_label(self, label, disliked, expected) -> None:
        assert substitute_label(label, disliked) == expected
