"""Post-response learning: seed usage, decision audit log, fusion weights.

Runs as a FastAPI background task after the response has been sent. Each step
is independent; failures are logged and swallowed, never retried into the
request path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.decision_log import DecisionLog
from app.services.nesy.pipeline import PipelineOutcome
from app.services.nesy.weight_cache import (
    FusionWeightCache,
    WeightLearningStore,
    learn_from_fusion,
)
from app.services.seed_store import SeedCatalogue, record_seed_usage

logger = logging.getLogger(__name__)

# Stored input is truncated; the audit row is not a transcript store
MAX_LOGGED_INPUT_CHARS = 500


def write_decision_log(db: Session, user_text: str, outcome: PipelineOutcome) -> DecisionLog:
    decision = outcome.decision
    fusion = outcome.fusion
    row = DecisionLog(
        input_text=user_text[:MAX_LOGGED_INPUT_CHARS],
        response_type=decision.response_type.value if decision else "error",
        label=decision.label.value if decision else None,
        seed_id=decision.seed.id if decision and decision.seed else None,
        decision_confidence=decision.confidence if decision else 0.0,
        fusion_strategy=fusion.strategy.value if fusion else "none",
        context_type=fusion.context_type.value if fusion else "none",
        symbolic_weight=fusion.symbolic_weight if fusion else 0.0,
        neural_weight=fusion.neural_weight if fusion else 0.0,
        preservation_score=fusion.preservation_score if fusion else 0.0,
        constraint_ok=outcome.constraint_result.ok,
        constraint_reason=outcome.constraint_result.reason,
        violations=list(outcome.constraint_result.violations),
        used_fallback=outcome.used_fallback,
        final_text=outcome.final_text,
        processing_ms=outcome.processing_ms,
    )
    db.add(row)
    db.commit()
    return row


def record_outcome(
    user_text: str,
    outcome: PipelineOutcome,
    *,
    weight_store: WeightLearningStore | None = None,
    weight_cache: FusionWeightCache | None = None,
    learning_rate: float = 0.05,
    seed_catalogue: SeedCatalogue | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """Background task. Uses its own DB session."""
    try:
        db = session_factory()
    except Exception:
        logger.exception("Could not open a session; seed usage and decision log skipped")
        db = None
    if db is not None:
        _record_usage_and_log(db, user_text, outcome, seed_catalogue)

    # Learn only from approved runs that actually had a generated variant to fuse
    fusion = outcome.fusion
    if (
        weight_store is None
        or fusion is None
        or outcome.used_fallback
        or outcome.preservation is None
    ):
        return
    try:
        learn_from_fusion(
            weight_store, fusion.context_type, fusion.strategy, learning_rate, cache=weight_cache
        )
    except Exception:
        logger.exception("Fusion weight learning failed for %s", fusion.context_type.value)


def _record_usage_and_log(
    db: Session,
    user_text: str,
    outcome: PipelineOutcome,
    seed_catalogue: SeedCatalogue | None,
) -> None:
    try:
        seed_id = outcome.accepted_seed_id
        if seed_id is not None:
            try:
                if record_seed_usage(db, seed_id) and seed_catalogue is not None:
                    seed_catalogue.record_usage(seed_id)
            except Exception:
                db.rollback()
                logger.exception("Seed usage update failed for %s", seed_id)

        try:
            write_decision_log(db, user_text, outcome)
        except Exception:
            db.rollback()
            logger.exception("Decision log write failed")
    finally:
        db.close()
