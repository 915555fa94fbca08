"""Chat layer entry point: one message in, one verified response out; seed feedback."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api.deps import (
    get_db,
    get_embedder,
    get_pipeline_state,
    get_similarity_store,
    get_weight_store,
)
from app.config import get_settings
from app.llm.provider import EmbeddingProvider
from app.rubrics.loader import get_rubric_catalogue
from app.rubrics.strictness import get_strictness_config
from app.schemas.chat import (
    ChatProcessRequest,
    ChatProcessResponse,
    ConstraintRead,
    DecisionRead,
    FusionRead,
    SeedFeedbackCreate,
    SeedFeedbackRead,
    SimilarityIn,
)
from app.services.learning import record_outcome
from app.services.nesy.pipeline import PipelineOutcome, PipelineState, process
from app.services.nesy.types import DecisionContext, SimilarityResult
from app.services.nesy.weight_cache import WeightLearningStore
from app.services.seed_store import get_seed_catalogue, save_seed_feedback
from app.services.similarity import SimilarityStore, retrieve_similarities

logger = logging.getLogger(__name__)

router = APIRouter()


def similarities_from_request(items: list[SimilarityIn]) -> list[SimilarityResult]:
    results = [item.to_domain() for item in items]
    return [r for r in results if r is not None]


def outcome_to_response(outcome: PipelineOutcome) -> ChatProcessResponse:
    decision = outcome.decision
    fusion = outcome.fusion
    return ChatProcessResponse(
        final_text=outcome.final_text,
        used_fallback=outcome.used_fallback,
        decision=DecisionRead(
            response_type=decision.response_type,
            label=decision.label,
            confidence=decision.confidence,
            reasoning=decision.reasoning,
            symbolic_contribution=decision.symbolic_contribution,
            neural_contribution=decision.neural_contribution,
            seed_id=decision.seed.id if decision.seed else None,
        )
        if decision
        else None,
        fusion=FusionRead(
            strategy=fusion.strategy,
            context_type=fusion.context_type,
            fused_confidence=fusion.fused_confidence,
            symbolic_weight=fusion.symbolic_weight,
            neural_weight=fusion.neural_weight,
            preservation_score=fusion.preservation_score,
        )
        if fusion
        else None,
        constraint=ConstraintRead(
            ok=outcome.constraint_result.ok,
            reason=outcome.constraint_result.reason,
            violations=list(outcome.constraint_result.violations),
        ),
        processing_ms=outcome.processing_ms,
    )


@router.post("/process", response_model=ChatProcessResponse)
async def process_message(
    payload: ChatProcessRequest,
    background_tasks: BackgroundTasks,
    state: PipelineState = Depends(get_pipeline_state),
    embedder: EmbeddingProvider | None = Depends(get_embedder),
    similarity_store: SimilarityStore = Depends(get_similarity_store),
    weight_store: WeightLearningStore = Depends(get_weight_store),
):
    """Run the decision-and-fusion core for one message.

    Learning (seed usage, audit log, weight update) runs after the response.
    """
    settings = get_settings()
    # One snapshot per request; hot swaps apply to the next request
    config = get_strictness_config()
    catalogue = get_rubric_catalogue()
    seed_catalogue = get_seed_catalogue()

    if payload.similarities is not None:
        similarities = similarities_from_request(payload.similarities)
    else:
        similarities = await asyncio.to_thread(
            retrieve_similarities,
            payload.message,
            embedder,
            similarity_store,
            settings.similarity_threshold,
            settings.similarity_max_results,
        )

    outcome = await process(
        payload.message,
        seed_catalogue.snapshot(),
        similarities,
        config,
        state,
        catalogue=catalogue,
        context=DecisionContext(disliked_label=payload.disliked_label),
        td_score=payload.td_score,
    )

    background_tasks.add_task(
        record_outcome,
        payload.message,
        outcome,
        weight_store=weight_store,
        weight_cache=state.weight_cache,
        learning_rate=settings.weight_learning_rate,
        seed_catalogue=seed_catalogue,
    )
    return outcome_to_response(outcome)


@router.post("/feedback", response_model=SeedFeedbackRead, status_code=status.HTTP_201_CREATED)
def post_seed_feedback(payload: SeedFeedbackCreate, db: Session = Depends(get_db)):
    """Record a thumbs up/down on a seed response."""
    row = save_seed_feedback(db, payload.seed_id, payload.rating, payload.notes)
    if row is None:
        raise HTTPException(status_code=404, detail="Seed not found")
    return row
