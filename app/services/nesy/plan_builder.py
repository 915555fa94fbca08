"""Build the verifiable plan for a fused response, and pick safe fallbacks."""

from __future__ import annotations

from collections.abc import Sequence

from app.services.nesy.constants import (
    CRISIS_NO_SELF_HELP,
    CRISIS_REFERRAL_RESPONSE,
    SAFETY_FALLBACK_RESPONSE,
)
from app.services.nesy.constraint_verifier import detect_pii
from app.services.nesy.fusion_assembler import extract_therapeutic_intent
from app.services.nesy.types import (
    HybridDecision,
    Plan,
    PlanStrategy,
    ResponseType,
    RubricSnapshot,
    SeedLabel,
)

LABEL_STRATEGIES: dict[SeedLabel, PlanStrategy] = {
    SeedLabel.VALIDATE: PlanStrategy.VALIDATION,
    SeedLabel.REFLECTIVE_QUESTION: PlanStrategy.REFLECTION,
    SeedLabel.SUGGESTION: PlanStrategy.SELF_HELP,
    SeedLabel.INTERVENTION: PlanStrategy.REFER,
    SeedLabel.ERROR: PlanStrategy.VALIDATION,
}


def plan_strategy(decision: HybridDecision, text: str) -> PlanStrategy:
    """Strategy for the plan.

    Unseeded neural text that suggests something is direct advice. A seeded
    response follows its seed label; everything else the decision label.
    """
    if (
        decision.seed is None
        and decision.response_type != ResponseType.GENERATED
        and extract_therapeutic_intent(text).suggestion
    ):
        return PlanStrategy.DIRECT_ADVICE
    label = decision.seed.label if decision.seed is not None else decision.label
    return LABEL_STRATEGIES.get(label, PlanStrategy.VALIDATION)


def build_plan(
    decision: HybridDecision,
    final_text: str,
    interventions: Sequence[str] = (),
) -> Plan:
    return Plan(
        strategy=plan_strategy(decision, final_text),
        contains_pii=bool(detect_pii(final_text)),
        length=len(final_text),
        interventions=tuple(interventions),
    )


def select_safe_fallback(snapshot: RubricSnapshot) -> str:
    """Pre-approved text returned whenever verification vetoes a plan."""
    if snapshot.crisis > CRISIS_NO_SELF_HELP:
        return CRISIS_REFERRAL_RESPONSE
    return SAFETY_FALLBACK_RESPONSE
