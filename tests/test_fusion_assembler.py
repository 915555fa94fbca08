"""Tests for fusion: context typing, weight overrides, strategies and intent checks."""

from __future__ import annotations

import asyncio

import pytest

from app.services.nesy.fusion_assembler import (
    assemble_fusion,
    calculate_preservation,
    determine_context_type,
    extract_therapeutic_intent,
    validate_seed_preservation,
    weighted_blend,
)
from app.services.nesy.text_similarity import jaccard_similarity, split_sentences
from app.services.nesy.types import ContextType, FusionStrategy, FusionWeights
from app.services.nesy.weight_cache import FusionWeightCache
from tests.factories import STRESS_RESPONSE, make_fusion_context

NOVEL_SENTENCE = "Misschien kan een korte wandeling buiten je helpen"
PARTIAL_VARIANT = (
    "Ik begrijp dat het je nu allemaal te veel wordt. Dat voelt heel zwaar. " + NOVEL_SENTENCE + "."
)


def _fuse(ctx, cache: FusionWeightCache | None = None):
    return asyncio.run(assemble_fusion(ctx, cache or FusionWeightCache()))


class TestTextSimilarity:
    def test_split_sentences(self) -> None:
        assert split_sentences("Hoi!! Hoe gaat het? Goed.") == ["Hoi", "Hoe gaat het", "Goed"]
        assert split_sentences("") == []

    def test_jaccard_ignores_short_words(self) -> None:
        assert jaccard_similarity("ik ben moe", "je bent moe") == pytest.approx(1 / 3)
        assert jaccard_similarity("ik je", "ik je") == 0.0


class TestContextType:
    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({"emotion": "neutraal", "confidence": 0.95, "validated": False}, ContextType.GREETING),
            ({"constraints_ok": False}, ContextType.CRISIS),
            ({"validated": False}, ContextType.CRISIS),
            ({"confidence": 0.5}, ContextType.LOW_CONFIDENCE),
            ({"confidence": 0.8}, ContextType.HIGH_CONFIDENCE),
            ({"confidence": 0.7, "td_score": 0.2}, ContextType.USER_AGENCY_HIGH),
            ({"confidence": 0.7, "td_score": 0.5}, ContextType.NORMAL),
            ({"confidence": 0.7}, ContextType.NORMAL),
        ],
    )
    def test_first_matching_rule_wins(self, kwargs, expected) -> None:
        assert determine_context_type(make_fusion_context(**kwargs)) == expected


class TestPreservation:
    def test_identical_text_fully_preserved(self) -> None:
        assert calculate_preservation(STRESS_RESPONSE, STRESS_RESPONSE) == 1.0

    def test_monotonic_in_kept_sentences(self) -> None:
        sentences = split_sentences(STRESS_RESPONSE)
        scores = [
            calculate_preservation(STRESS_RESPONSE, ". ".join(sentences[:k]))
            for k in range(len(sentences) + 1)
        ]
        assert scores == sorted(scores)
        assert scores[0] == 0.0

    def test_empty_symbolic(self) -> None:
        assert calculate_preservation("", "Iets anders.") == 0.0


class TestWeightedBlend:
    def test_keeps_core_and_adds_novel_sentence(self) -> None:
        blended = weighted_blend(STRESS_RESPONSE, PARTIAL_VARIANT, 0.7)
        assert blended == (
            "Ik begrijp dat het je nu allemaal te veel wordt. Dat voelt heel zwaar. "
            "Wat helpt jou meestal om even op adem te komen. " + NOVEL_SENTENCE + "."
        )

    def test_at_most_two_novel_sentences(self) -> None:
        neural = "Eerste nieuwe gedachte hier. Tweede nieuwe gedachte daar. Derde nieuwe idee."
        blended = weighted_blend("Korte kern.", neural, 1.0)
        assert blended == "Korte kern. Eerste nieuwe gedachte hier. Tweede nieuwe gedachte daar."

    def test_empty_blend_returns_symbolic(self) -> None:
        assert weighted_blend("Alleen dit.", "", 0.0) == "Alleen dit."


class TestAssembleFusion:
    def test_no_neural_branch_is_symbolic_fallback(self) -> None:
        result = _fuse(make_fusion_context(confidence=0.7))
        assert result.strategy == FusionStrategy.SYMBOLIC_FALLBACK
        assert result.fused_response == STRESS_RESPONSE
        assert result.preservation_score == 0.0
        assert result.symbolic_weight == pytest.approx(0.7)
        assert result.fused_confidence == pytest.approx(0.7 * 0.7)

    def test_empty_neural_text_is_symbolic_fallback(self) -> None:
        result = _fuse(make_fusion_context(neural_text="  "))
        assert result.strategy == FusionStrategy.SYMBOLIC_FALLBACK

    def test_neural_enhanced_uses_neural_text(self) -> None:
        variant = STRESS_RESPONSE + " Je staat er niet alleen voor."
        result = _fuse(make_fusion_context(neural_text=variant))
        assert result.strategy == FusionStrategy.NEURAL_ENHANCED
        assert result.fused_response == variant

    def test_weighted_blend_strategy(self) -> None:
        result = _fuse(make_fusion_context(neural_text=PARTIAL_VARIANT))
        assert result.strategy == FusionStrategy.WEIGHTED_BLEND
        assert result.preservation_score == pytest.approx(2 / 3)
        assert result.fused_response.endswith(NOVEL_SENTENCE + ".")

    def test_poor_preservation_keeps_symbolic(self) -> None:
        result = _fuse(make_fusion_context(neural_text="Ga lekker sporten vandaag."))
        assert result.strategy == FusionStrategy.SYMBOLIC_FALLBACK
        assert result.fused_response == STRESS_RESPONSE
        assert result.fused_confidence == pytest.approx(0.7 * 0.7 + 0.8 * 0.3)

    def test_safety_override(self) -> None:
        result = _fuse(make_fusion_context(neural_text=STRESS_RESPONSE, constraints_ok=False))
        assert result.context_type == ContextType.CRISIS
        assert result.symbolic_weight == pytest.approx(0.9)
        assert result.neural_weight == pytest.approx(0.1)

    def test_low_confidence_nudge(self) -> None:
        result = _fuse(make_fusion_context(confidence=0.5))
        assert result.context_type == ContextType.LOW_CONFIDENCE
        assert result.symbolic_weight == pytest.approx(0.6)

    def test_low_confidence_nudge_floored(self) -> None:
        cache = FusionWeightCache()
        cache.put(ContextType.LOW_CONFIDENCE, FusionWeights(0.55, 0.45))
        result = _fuse(make_fusion_context(confidence=0.5), cache)
        assert result.symbolic_weight == 0.5

    def test_learned_weights_used(self) -> None:
        cache = FusionWeightCache()
        cache.put(ContextType.HIGH_CONFIDENCE, FusionWeights(0.6, 0.4))
        result = _fuse(make_fusion_context(confidence=0.9), cache)
        assert result.symbolic_weight == pytest.approx(0.6)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {},
            {"confidence": 0.2, "neural_text": PARTIAL_VARIANT},
            {"validated": False, "neural_text": STRESS_RESPONSE},
            {"emotion": "neutral", "confidence": 0.95},
        ],
    )
    def test_weights_sum_to_one(self, kwargs) -> None:
        result = _fuse(make_fusion_context(**kwargs))
        assert result.symbolic_weight + result.neural_weight == pytest.approx(1.0)


class TestTherapeuticIntent:
    def test_extract(self) -> None:
        intent = extract_therapeutic_intent("Ik begrijp het. Probeer eens rust te nemen.")
        assert intent.validation
        assert intent.suggestion
        assert not intent.reflection

    def test_seed_preserved(self) -> None:
        check = validate_seed_preservation(STRESS_RESPONSE, STRESS_RESPONSE)
        assert check.preserved
        assert check.similarity == 1.0
        assert check.deviations == ()

    def test_lost_intent_reported(self) -> None:
        check = validate_seed_preservation("Wat vervelend. Ga lekker wandelen.", STRESS_RESPONSE)
        assert not check.preserved
        assert check.deviations == ("validation", "empathy")

    def test_lost_reflection_reported(self) -> None:
        seed = "Misschien helpt het om erover te praten."
        check = validate_seed_preservation("Praat erover met iemand.", seed)
        assert "reflection" in check.deviations
