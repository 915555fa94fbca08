"""Admin endpoints for the analytics dashboard and operators.

Secured with the static internal token (X-Internal-Token header). Diagnostics
are read-only: no seed usage, no learning.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.chat import similarities_from_request
from app.api.deps import get_db, get_similarity_store, require_internal_token
from app.rubrics.loader import reload_rubric_catalogue
from app.rubrics.strictness import get_strictness_config
from app.schemas.admin import (
    CatalogueReloadResponse,
    SeedDeactivateResponse,
    StrictnessRead,
    StrictnessUpdate,
)
from app.schemas.chat import (
    AssessmentRead,
    DiagnosticsRequest,
    DiagnosticsResponse,
    NeuralMatchRead,
    RubricSnapshotRead,
    SymbolicMatchRead,
)
from app.services.nesy.pipeline import diagnose
from app.services.seed_store import deactivate_seed, get_seed_catalogue
from app.services.settings_service import update_strictness
from app.services.similarity import InMemorySimilarityStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_internal_token)])


@router.post("/diagnostics", response_model=DiagnosticsResponse)
def run_diagnostics(payload: DiagnosticsRequest):
    """Return the intermediate assessment and match lists for one message."""
    result = diagnose(
        payload.message,
        get_seed_catalogue().snapshot(),
        similarities_from_request(payload.similarities),
        get_strictness_config(),
    )
    return DiagnosticsResponse(
        assessments=[
            AssessmentRead(
                rubric_id=a.rubric_id,
                risk_score=a.risk_score,
                protective_score=a.protective_score,
                overall_score=a.overall_score,
                matched_phrases=sorted(a.matched_phrases),
            )
            for a in result.assessments
        ],
        symbolic_matches=[
            SymbolicMatchRead(
                seed_id=m.seed.id,
                emotion=m.seed.emotion,
                label=m.seed.label,
                score=m.score,
                confidence=m.confidence,
                matched_triggers=list(m.matched_triggers),
            )
            for m in result.symbolic_matches
        ],
        neural_matches=[
            NeuralMatchRead(
                content_id=m.similarity.content_id,
                content_type=m.similarity.content_type,
                similarity_score=m.similarity.similarity_score,
                relevance_score=m.relevance_score,
                contextual_fit=m.contextual_fit,
            )
            for m in result.neural_matches
        ],
        overall_risk=result.overall_risk,
        risk_level=result.risk.risk_level,
        alert_rubric_ids=list(result.risk.alert_rubric_ids),
        interventions=list(result.risk.interventions),
        protective_sufficient=result.risk.protective_sufficient,
        rubric_snapshot=RubricSnapshotRead(
            crisis=result.rubric_snapshot.crisis,
            distress=result.rubric_snapshot.distress,
            support=result.rubric_snapshot.support,
            coping=result.rubric_snapshot.coping,
        ),
    )


@router.get("/strictness", response_model=StrictnessRead)
def read_strictness():
    return StrictnessRead.from_config(get_strictness_config())


@router.put("/strictness", response_model=StrictnessRead)
def put_strictness(payload: StrictnessUpdate, db: Session = Depends(get_db)):
    """Persist and activate a strictness level. In-flight requests keep their config."""
    return StrictnessRead.from_config(update_strictness(db, payload.level))


@router.post("/seeds/{seed_id}/deactivate", response_model=SeedDeactivateResponse)
def post_deactivate_seed(
    seed_id: str,
    db: Session = Depends(get_db),
    similarity_store: InMemorySimilarityStore = Depends(get_similarity_store),
):
    if not deactivate_seed(db, seed_id):
        raise HTTPException(status_code=404, detail="Seed not found")
    get_seed_catalogue().deactivate(seed_id)
    similarity_store.remove(seed_id)
    return SeedDeactivateResponse(seed_id=seed_id, is_active=False)


@router.post("/catalogues/reload", response_model=CatalogueReloadResponse)
def post_reload_catalogues(db: Session = Depends(get_db)):
    """Reload the rubric file and the seed table; each swap is atomic."""
    try:
        catalogue = reload_rubric_catalogue()
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Rubric catalogue reload rejected: %s", exc)
        raise HTTPException(status_code=422, detail=str(exc)) from None
    seed_count = get_seed_catalogue().refresh(db)
    return CatalogueReloadResponse(
        rubric_version=catalogue.version,
        rubric_count=len(catalogue.rubrics),
        seed_count=seed_count,
    )
