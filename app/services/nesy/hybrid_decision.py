"""Pick a response source and blend weights.

Selection policy, evaluated in order:
1. No matches of either kind → generated fallback, confidence 0.3.
2. Top symbolic and (no neural or symbolic confidence > 0.8) → symbolic.
3. Top neural with contextual fit > 0.8 → neural.
4. Both present → hybrid; weights symbolic×0.6 vs neural×0.4, larger wins.
5. Otherwise best single match.

Then a one-shot disliked-label avoidance: the best seed with the substitute
label replaces the disliked response, else the generated fallback. Pure: seed
usage is updated by the caller only after the decision is accepted.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.services.nesy.constants import (
    FALLBACK_CONFIDENCE,
    FALLBACK_RESPONSE,
    HYBRID_NEURAL_FACTOR,
    HYBRID_SYMBOLIC_FACTOR,
    LABEL_SUBSTITUTION_ORDER,
    STRONG_NEURAL_FIT,
    STRONG_SYMBOLIC_CONFIDENCE,
)
from app.services.nesy.types import (
    DecisionContext,
    HybridDecision,
    NeuralMatch,
    ResponseType,
    SeedLabel,
    SymbolicMatch,
)

logger = logging.getLogger(__name__)


def _symbolic_decision(top: SymbolicMatch, reasoning: str) -> HybridDecision:
    return HybridDecision(
        response_text=top.seed.response,
        response_type=ResponseType.SYMBOLIC,
        confidence=top.confidence,
        reasoning=reasoning,
        symbolic_contribution=1.0,
        neural_contribution=0.0,
        label=top.seed.label,
        seed=top.seed,
    )


def _neural_decision(top: NeuralMatch, reasoning: str) -> HybridDecision:
    return HybridDecision(
        response_text=top.similarity.content_text,
        response_type=ResponseType.NEURAL,
        confidence=top.contextual_fit,
        reasoning=reasoning,
        symbolic_contribution=0.0,
        neural_contribution=1.0,
    )


def _select(
    symbolic_matches: Sequence[SymbolicMatch],
    neural_matches: Sequence[NeuralMatch],
) -> HybridDecision:
    top_symbolic = symbolic_matches[0] if symbolic_matches else None
    top_neural = neural_matches[0] if neural_matches else None

    # 1. Nothing matched
    if top_symbolic is None and top_neural is None:
        return HybridDecision(
            response_text=FALLBACK_RESPONSE,
            response_type=ResponseType.GENERATED,
            confidence=FALLBACK_CONFIDENCE,
            reasoning="No symbolic or neural matches; using fallback response",
            symbolic_contribution=0.0,
            neural_contribution=0.0,
        )

    # 2. Strong or uncontested symbolic
    if top_symbolic is not None and (
        top_neural is None or top_symbolic.confidence > STRONG_SYMBOLIC_CONFIDENCE
    ):
        return _symbolic_decision(
            top_symbolic,
            f"Strong symbolic match: {', '.join(top_symbolic.matched_triggers)}",
        )

    # 3. Strong neural
    if top_neural is not None and top_neural.contextual_fit > STRONG_NEURAL_FIT:
        return _neural_decision(
            top_neural,
            f"Strong neural similarity: {top_neural.similarity.similarity_score:.2f}",
        )

    # 4. Hybrid
    if top_symbolic is not None and top_neural is not None:
        symbolic_weight = top_symbolic.confidence * HYBRID_SYMBOLIC_FACTOR
        neural_weight = top_neural.contextual_fit * HYBRID_NEURAL_FACTOR
        total = symbolic_weight + neural_weight
        confidence = total / 2
        symbolic_share = symbolic_weight / total if total else 0.5
        neural_share = neural_weight / total if total else 0.5
        if symbolic_weight > neural_weight:
            return HybridDecision(
                response_text=top_symbolic.seed.response,
                response_type=ResponseType.HYBRID,
                confidence=confidence,
                reasoning=(
                    f"Hybrid decision favoring symbolic "
                    f"({symbolic_weight:.2f} vs {neural_weight:.2f})"
                ),
                symbolic_contribution=symbolic_share,
                neural_contribution=neural_share,
                label=top_symbolic.seed.label,
                seed=top_symbolic.seed,
            )
        return HybridDecision(
            response_text=top_neural.similarity.content_text,
            response_type=ResponseType.HYBRID,
            confidence=confidence,
            reasoning=(
                f"Hybrid decision favoring neural ({neural_weight:.2f} vs {symbolic_weight:.2f})"
            ),
            symbolic_contribution=symbolic_share,
            neural_contribution=neural_share,
        )

    # 5. Best single match (only a weak neural match remains here)
    if top_symbolic is not None:
        return _symbolic_decision(top_symbolic, "Fallback to best available symbolic match")
    return _neural_decision(top_neural, "Fallback to best available neural match")


def substitute_label(label: SeedLabel, disliked: SeedLabel | None) -> SeedLabel:
    """Return label, or the first allowed alternative when it is the disliked one."""
    if disliked is None or label != disliked:
        return label
    for candidate in LABEL_SUBSTITUTION_ORDER:
        if candidate != disliked:
            return candidate
    return label


def _alternative_decision(
    disliked_decision: HybridDecision,
    label: SeedLabel,
    symbolic_matches: Sequence[SymbolicMatch],
) -> HybridDecision:
    """Replace a disliked response with the best seed carrying label.

    Without such a seed the generated fallback is used under label, so the
    disliked text is never returned again.
    """
    avoided = f"label {disliked_decision.label.value} avoided → {label.value}"
    for m in symbolic_matches:
        if m.seed.label == label:
            return _symbolic_decision(
                m, f"{disliked_decision.reasoning}; {avoided} via seed {m.seed.id}"
            )
    return HybridDecision(
        response_text=FALLBACK_RESPONSE,
        response_type=ResponseType.GENERATED,
        confidence=FALLBACK_CONFIDENCE,
        reasoning=f"{disliked_decision.reasoning}; {avoided}, no seed with that label",
        symbolic_contribution=0.0,
        neural_contribution=0.0,
        label=label,
    )


def decide(
    symbolic_matches: Sequence[SymbolicMatch],
    neural_matches: Sequence[NeuralMatch],
    context: DecisionContext | None = None,
) -> HybridDecision:
    """Return the hybrid decision for the ranked symbolic and neural matches."""
    decision = _select(symbolic_matches, neural_matches)

    disliked = context.disliked_label if context else None
    label = substitute_label(decision.label, disliked)
    if label != decision.label:
        decision = _alternative_decision(decision, label, symbolic_matches)

    logger.info(
        "Hybrid decision: %s confidence=%.2f",
        decision.response_type.value,
        decision.confidence,
        extra={
            "response_type": decision.response_type.value,
            "label": decision.label.value,
            "seed_id": decision.seed.id if decision.seed else None,
        },
    )
    return decision
