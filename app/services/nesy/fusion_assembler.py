"""Merge the symbolic response core with a generated variant.

Weights come from the learned-weight cache for the run's context type, then:
- safety override: failed validation or constraints → symbolic 0.9
- low symbolic confidence (<0.6) → symbolic −0.1, floored at 0.5

Strategy from the preservation score:
- > 0.7 → neural text verbatim (neural_enhanced)
- > 0.4 → sentence-level weighted blend (weighted_blend)
- else  → symbolic text verbatim (symbolic_fallback)

With no neural branch (generation failed or disabled) the result is always
symbolic_fallback.
"""

from __future__ import annotations

import logging
import math
import re

from app.services.nesy.constants import (
    BLEND_MAX_NEURAL_SENTENCES,
    BLEND_NOVELTY_SIMILARITY,
    GREETING_CONFIDENCE,
    GREETING_EMOTIONS,
    HIGH_CONFIDENCE_THRESHOLD,
    LOW_CONFIDENCE_NUDGE,
    LOW_CONFIDENCE_THRESHOLD,
    MIN_NUDGED_SYMBOLIC_WEIGHT,
    NEURAL_ENHANCED_PRESERVATION,
    SAFETY_SYMBOLIC_WEIGHT,
    SEED_PRESERVED_SIMILARITY,
    SENTENCE_PRESERVED_SIMILARITY,
    USER_AGENCY_TD_THRESHOLD,
    WEIGHTED_BLEND_PRESERVATION,
)
from app.services.nesy.text_similarity import jaccard_similarity, split_sentences
from app.services.nesy.types import (
    ContextType,
    FusionContext,
    FusionResult,
    FusionStrategy,
    PreservationCheck,
    TherapeuticIntent,
)
from app.services.nesy.weight_cache import FusionWeightCache

logger = logging.getLogger(__name__)

# Dutch intent markers, matched against lower-cased text
_VALIDATION_RE = re.compile(r"begrijp|herken|voelt|is logisch|normaal")
_REFLECTION_RE = re.compile(r"vraag|denk|overweeg|zou kunnen|misschien")
_SUGGESTION_RE = re.compile(r"probeer|kun je|zou je kunnen|stel voor")
_EMPATHY_RE = re.compile(r"voel|moeilijk|snap|hier voor je")


def _validation_failed(ctx: FusionContext) -> bool:
    return not ctx.validation.validated or not ctx.validation.constraints_ok


def determine_context_type(ctx: FusionContext) -> ContextType:
    """Classify the run for weight lookup. First matching rule wins."""
    symbolic = ctx.symbolic
    if (
        (symbolic.emotion or "").strip().lower() in GREETING_EMOTIONS
        and symbolic.confidence > GREETING_CONFIDENCE
    ):
        return ContextType.GREETING
    if _validation_failed(ctx):
        return ContextType.CRISIS
    if symbolic.confidence < LOW_CONFIDENCE_THRESHOLD:
        return ContextType.LOW_CONFIDENCE
    if symbolic.confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return ContextType.HIGH_CONFIDENCE
    td_score = ctx.validation.td_score
    if td_score is not None and td_score < USER_AGENCY_TD_THRESHOLD:
        return ContextType.USER_AGENCY_HIGH
    return ContextType.NORMAL


def calculate_preservation(symbolic: str, neural: str) -> float:
    """Fraction of symbolic sentences with a neural sentence of Jaccard > 0.6."""
    symbolic_sentences = split_sentences(symbolic)
    if not symbolic_sentences:
        return 0.0
    neural_sentences = split_sentences(neural)
    preserved = sum(
        1
        for s in symbolic_sentences
        if any(jaccard_similarity(s, n) > SENTENCE_PRESERVED_SIMILARITY for n in neural_sentences)
    )
    return preserved / len(symbolic_sentences)


def weighted_blend(symbolic: str, neural: str, symbolic_weight: float) -> str:
    """Keep the leading ceil(n × weight) symbolic sentences, add up to 2 novel neural ones."""
    symbolic_sentences = split_sentences(symbolic)
    neural_sentences = split_sentences(neural)

    core = symbolic_sentences[: math.ceil(len(symbolic_sentences) * symbolic_weight)]
    novel = [
        n
        for n in neural_sentences
        if all(jaccard_similarity(s, n) <= BLEND_NOVELTY_SIMILARITY for s in symbolic_sentences)
    ]
    blended = ". ".join(core + novel[:BLEND_MAX_NEURAL_SENTENCES]).strip()
    if not blended:
        return symbolic
    return blended if blended.endswith(".") else blended + "."


async def assemble_fusion(ctx: FusionContext, cache: FusionWeightCache) -> FusionResult:
    """Fuse the symbolic and neural branches of ctx into one response."""
    context_type = determine_context_type(ctx)
    learned = await cache.get_weights(context_type)
    symbolic_weight = learned.symbolic_weight

    if _validation_failed(ctx):
        symbolic_weight = SAFETY_SYMBOLIC_WEIGHT
    elif ctx.symbolic.confidence < LOW_CONFIDENCE_THRESHOLD:
        symbolic_weight = max(MIN_NUDGED_SYMBOLIC_WEIGHT, symbolic_weight - LOW_CONFIDENCE_NUDGE)
    neural_weight = 1.0 - symbolic_weight

    if ctx.neural is None or not ctx.neural.response.strip():
        preservation = 0.0
        neural_confidence = 0.0
        fused_response = ctx.symbolic.response
        strategy = FusionStrategy.SYMBOLIC_FALLBACK
    else:
        neural_confidence = ctx.neural.confidence
        preservation = calculate_preservation(ctx.symbolic.response, ctx.neural.response)
        if preservation > NEURAL_ENHANCED_PRESERVATION:
            fused_response = ctx.neural.response
            strategy = FusionStrategy.NEURAL_ENHANCED
        elif preservation > WEIGHTED_BLEND_PRESERVATION:
            fused_response = weighted_blend(
                ctx.symbolic.response, ctx.neural.response, symbolic_weight
            )
            strategy = FusionStrategy.WEIGHTED_BLEND
        else:
            fused_response = ctx.symbolic.response
            strategy = FusionStrategy.SYMBOLIC_FALLBACK

    if strategy == FusionStrategy.SYMBOLIC_FALLBACK and ctx.neural is not None:
        logger.warning("Poor seed preservation (%.2f); using symbolic core", preservation)

    result = FusionResult(
        fused_response=fused_response,
        fused_confidence=ctx.symbolic.confidence * symbolic_weight
        + neural_confidence * neural_weight,
        symbolic_weight=symbolic_weight,
        neural_weight=neural_weight,
        preservation_score=preservation,
        strategy=strategy,
        context_type=context_type,
    )
    logger.info(
        "Fusion complete: %s (%d%%/%d%%) context=%s preservation=%.2f",
        strategy.value,
        round(symbolic_weight * 100),
        round(neural_weight * 100),
        context_type.value,
        preservation,
    )
    return result


def extract_therapeutic_intent(text: str) -> TherapeuticIntent:
    lowered = (text or "").lower()
    return TherapeuticIntent(
        validation=bool(_VALIDATION_RE.search(lowered)),
        reflection=bool(_REFLECTION_RE.search(lowered)),
        suggestion=bool(_SUGGESTION_RE.search(lowered)),
        empathy=bool(_EMPATHY_RE.search(lowered)),
    )


def validate_seed_preservation(generated: str, seed_text: str) -> PreservationCheck:
    """Check that generated text keeps the seed's wording and therapeutic intent.

    Informational only: deviations are logged and reported, never blocking.
    """
    similarity = jaccard_similarity(seed_text, generated)
    seed_intent = extract_therapeutic_intent(seed_text)
    generated_intent = extract_therapeutic_intent(generated)

    deviations: list[str] = []
    if seed_intent.validation and not generated_intent.validation:
        deviations.append("validation")
    if seed_intent.reflection and not generated_intent.reflection:
        deviations.append("reflection")
    if seed_intent.empathy and not generated_intent.empathy:
        deviations.append("empathy")

    return PreservationCheck(
        preserved=similarity > SEED_PRESERVED_SIMILARITY and not deviations,
        similarity=similarity,
        deviations=tuple(deviations),
    )
