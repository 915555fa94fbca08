"""Decision-and-fusion pipeline.

text → rubric assessment → {symbolic matching, neural evaluation} → hybrid
decision → (optional) seed variant generation → fusion → constraint
verification → approved text or a fixed safe fallback.

The only terminal states are a constraint-approved response or a fixed safe
fallback. Collaborator failures (generation, weight store) degrade; unexpected
errors fail closed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from app.services.nesy import (
    constraint_verifier,
    fusion_assembler,
    hybrid_decision,
    neural_evaluator,
    rubric_assessor,
    symbolic_matcher,
)
from app.services.nesy.constants import SAFETY_FALLBACK_RESPONSE
from app.services.nesy.plan_builder import build_plan, select_safe_fallback
from app.services.nesy.rubric_assessor import RiskProfile
from app.services.nesy.types import (
    ConstraintContext,
    ConstraintResult,
    DecisionContext,
    FusionContext,
    FusionResult,
    FusionValidation,
    HybridDecision,
    NeuralBranch,
    NeuralMatch,
    PreservationCheck,
    ResponseType,
    RubricAssessment,
    RubricSnapshot,
    Seed,
    StrictnessConfig,
    SymbolicBranch,
    SymbolicMatch,
)
from app.services.nesy.weight_cache import FusionWeightCache

if TYPE_CHECKING:
    from app.llm.generator import SeedVariantGenerator
    from app.rubrics.loader import RubricCatalogue

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class PipelineState:
    """Process-wide collaborators passed into every run.

    Tests build their own state instead of relying on module globals.
    """

    weight_cache: FusionWeightCache = field(default_factory=FusionWeightCache)
    generator: SeedVariantGenerator | None = None
    generation_timeout: float = 8.0
    clock: Callable[[], datetime] = _utcnow


@dataclass(frozen=True)
class PipelineOutcome:
    final_text: str
    decision: HybridDecision | None
    fusion: FusionResult | None
    constraint_result: ConstraintResult
    assessments: tuple[RubricAssessment, ...] = ()
    rubric_snapshot: RubricSnapshot | None = None
    risk: RiskProfile | None = None
    preservation: PreservationCheck | None = None
    used_fallback: bool = False
    processing_ms: int = 0

    @property
    def accepted_seed_id(self) -> str | None:
        """Seed whose usage should be recorded: set only for approved responses."""
        if self.used_fallback or self.decision is None or self.decision.seed is None:
            return None
        return self.decision.seed.id


@dataclass(frozen=True)
class Diagnostics:
    assessments: tuple[RubricAssessment, ...]
    symbolic_matches: tuple[SymbolicMatch, ...]
    neural_matches: tuple[NeuralMatch, ...]
    overall_risk: float
    rubric_snapshot: RubricSnapshot
    risk: RiskProfile


def _resolve_catalogue(catalogue: RubricCatalogue | None) -> RubricCatalogue:
    if catalogue is not None:
        return catalogue
    from app.rubrics.loader import get_rubric_catalogue

    return get_rubric_catalogue()


async def _generate_variant(
    state: PipelineState,
    decision: HybridDecision,
    user_text: str,
    interventions: Sequence[str],
) -> str | None:
    """Return a generated variant of the decision text, or None on any failure."""
    generator = state.generator
    if generator is None or decision.response_type == ResponseType.GENERATED:
        return None
    try:
        text = await asyncio.wait_for(
            asyncio.to_thread(
                generator.generate,
                decision.response_text,
                user_text,
                decision.seed.emotion if decision.seed else "",
                decision.label.value,
                tuple(interventions),
            ),
            timeout=state.generation_timeout,
        )
    except TimeoutError:
        logger.warning(
            "Seed variant generation exceeded %.1fs; using symbolic core",
            state.generation_timeout,
        )
        return None
    except Exception:
        logger.exception("Seed variant generation failed; using symbolic core")
        return None
    return text or None


async def _run(
    user_text: str,
    seeds: Sequence[Seed],
    similarities: Sequence[Any],
    config: StrictnessConfig,
    state: PipelineState,
    catalogue: RubricCatalogue | None,
    context: DecisionContext | None,
    td_score: float | None,
) -> PipelineOutcome:
    catalogue = _resolve_catalogue(catalogue)
    now = state.clock()

    assessments = rubric_assessor.assess(user_text, catalogue)
    risk = rubric_assessor.classify_risk(assessments, config, catalogue)
    snapshot = rubric_assessor.build_rubric_snapshot(assessments)

    symbolic, neural = await asyncio.gather(
        asyncio.to_thread(symbolic_matcher.match, user_text, seeds, now),
        asyncio.to_thread(neural_evaluator.evaluate, similarities),
    )
    decision = hybrid_decision.decide(symbolic, neural, context)
    seed_match_score = symbolic[0].confidence if symbolic else 0.0

    # Pre-check the unfused decision: its verdict drives the fusion safety override
    pre_check = constraint_verifier.verify(
        ConstraintContext(
            rubric_snapshot=snapshot,
            seed_match_score=seed_match_score,
            plan=build_plan(decision, decision.response_text, risk.interventions),
        )
    )

    generated = await _generate_variant(state, decision, user_text, risk.interventions)
    preservation = None
    neural_branch = None
    if generated is not None:
        preservation = fusion_assembler.validate_seed_preservation(
            generated, decision.response_text
        )
        if preservation.deviations:
            logger.info("Generated variant lost intent: %s", ", ".join(preservation.deviations))
        neural_branch = NeuralBranch(
            response=generated,
            confidence=neural[0].contextual_fit if neural else decision.confidence,
        )

    fusion = await fusion_assembler.assemble_fusion(
        FusionContext(
            symbolic=SymbolicBranch(
                response=decision.response_text,
                emotion=decision.seed.emotion if decision.seed else "",
                confidence=decision.confidence,
            ),
            neural=neural_branch,
            validation=FusionValidation(
                validated=generated is None or not constraint_verifier.detect_pii(generated),
                constraints_ok=pre_check.ok,
                td_score=td_score,
            ),
        ),
        state.weight_cache,
    )

    plan = build_plan(decision, fusion.fused_response, risk.interventions)
    result = constraint_verifier.verify(
        ConstraintContext(rubric_snapshot=snapshot, seed_match_score=seed_match_score, plan=plan)
    )

    if result.ok:
        final_text = fusion.fused_response
    else:
        final_text = select_safe_fallback(snapshot)

    return PipelineOutcome(
        final_text=final_text,
        decision=decision,
        fusion=fusion,
        constraint_result=result,
        assessments=tuple(assessments),
        rubric_snapshot=snapshot,
        risk=risk,
        preservation=preservation,
        used_fallback=not result.ok,
    )


async def process(
    user_text: str,
    seeds: Sequence[Seed],
    similarities: Sequence[Any],
    config: StrictnessConfig,
    state: PipelineState | None = None,
    *,
    catalogue: RubricCatalogue | None = None,
    context: DecisionContext | None = None,
    td_score: float | None = None,
) -> PipelineOutcome:
    """Run the full pipeline for one message. Never raises.

    config and catalogue are read once here, so a strictness or catalogue swap
    during the run does not affect it.
    """
    state = state or PipelineState()
    start = time.monotonic()
    try:
        outcome = await _run(
            user_text, seeds, similarities, config, state, catalogue, context, td_score
        )
    except Exception as exc:
        logger.exception("Pipeline failed; returning safety fallback")
        outcome = PipelineOutcome(
            final_text=SAFETY_FALLBACK_RESPONSE,
            decision=None,
            fusion=None,
            constraint_result=ConstraintResult(
                ok=False, reason="error", violations=(f"ERROR: pipeline failed: {exc}",)
            ),
            used_fallback=True,
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        "Pipeline complete: ok=%s fallback=%s in %dms",
        outcome.constraint_result.ok,
        outcome.used_fallback,
        elapsed_ms,
        extra={
            "response_type": outcome.decision.response_type.value if outcome.decision else None,
            "strategy": outcome.fusion.strategy.value if outcome.fusion else None,
            "violations": list(outcome.constraint_result.violations),
        },
    )
    return replace(outcome, processing_ms=elapsed_ms)


def diagnose(
    user_text: str,
    seeds: Sequence[Seed],
    similarities: Sequence[Any],
    config: StrictnessConfig,
    *,
    catalogue: RubricCatalogue | None = None,
    now: datetime | None = None,
) -> Diagnostics:
    """Intermediate lists for admin analytics. Read-only: no seed usage, no learning."""
    catalogue = _resolve_catalogue(catalogue)
    assessments = rubric_assessor.assess(user_text, catalogue)
    return Diagnostics(
        assessments=tuple(assessments),
        symbolic_matches=tuple(symbolic_matcher.match(user_text, seeds, now=now)),
        neural_matches=tuple(neural_evaluator.evaluate(similarities)),
        overall_risk=rubric_assessor.calculate_overall_risk(assessments),
        rubric_snapshot=rubric_assessor.build_rubric_snapshot(assessments),
        risk=rubric_assessor.classify_risk(assessments, config, catalogue),
    )
