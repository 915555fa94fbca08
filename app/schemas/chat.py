"""Chat processing, seed feedback and diagnostics schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.services.nesy.types import (
    ContextType,
    FusionStrategy,
    ResponseType,
    SeedLabel,
    SimilarityResult,
)


class SimilarityIn(BaseModel):
    """Externally supplied similarity hit. A missing score is skipped, not rejected."""

    model_config = ConfigDict(extra="forbid")

    content_id: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field("", max_length=64)
    content_text: str = Field("", max_length=4000)
    similarity_score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> SimilarityResult | None:
        if self.similarity_score is None:
            return None
        return SimilarityResult(
            content_id=self.content_id,
            content_type=self.content_type,
            content_text=self.content_text,
            similarity_score=self.similarity_score,
            metadata=dict(self.metadata),
        )


class ChatProcessRequest(BaseModel):
    """One user message for the decision core.

    When similarities is omitted the server retrieves them through the
    configured embedding provider; an empty list disables neural matching.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=4000)
    disliked_label: SeedLabel | None = None
    td_score: float | None = Field(None, ge=0.0, le=1.0)
    similarities: list[SimilarityIn] | None = Field(None, max_length=50)


class DecisionRead(BaseModel):
    response_type: ResponseType
    label: SeedLabel
    confidence: float
    reasoning: str
    symbolic_contribution: float
    neural_contribution: float
    seed_id: str | None = None


class FusionRead(BaseModel):
    strategy: FusionStrategy
    context_type: ContextType
    fused_confidence: float
    symbolic_weight: float
    neural_weight: float
    preservation_score: float


class ConstraintRead(BaseModel):
    ok: bool
    reason: str
    violations: list[str] = Field(default_factory=list)


class ChatProcessResponse(BaseModel):
    final_text: str
    used_fallback: bool
    decision: DecisionRead | None = None
    fusion: FusionRead | None = None
    constraint: ConstraintRead
    processing_ms: int


# ── Seed feedback ───────────────────────────────────────────────────────────


class SeedFeedbackCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    seed_id: str = Field(..., min_length=1, max_length=64)
    rating: Literal["up", "down"]
    notes: str = Field("", max_length=2000)


class SeedFeedbackRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    seed_id: str
    rating: str
    notes: str
    created_at: datetime


# ── Diagnostics ─────────────────────────────────────────────────────────────


class DiagnosticsRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    message: str = Field(..., min_length=1, max_length=4000)
    similarities: list[SimilarityIn] = Field(default_factory=list, max_length=50)


class AssessmentRead(BaseModel):
    rubric_id: str
    risk_score: float
    protective_score: float
    overall_score: float
    matched_phrases: list[str]


class SymbolicMatchRead(BaseModel):
    seed_id: str
    emotion: str
    label: SeedLabel
    score: float
    confidence: float
    matched_triggers: list[str]


class NeuralMatchRead(BaseModel):
    content_id: str
    content_type: str
    similarity_score: float
    relevance_score: float
    contextual_fit: float


class RubricSnapshotRead(BaseModel):
    crisis: int
    distress: int
    support: int
    coping: int


class DiagnosticsResponse(BaseModel):
    assessments: list[AssessmentRead]
    symbolic_matches: list[SymbolicMatchRead]
    neural_matches: list[NeuralMatchRead]
    overall_risk: float
    risk_level: str
    alert_rubric_ids: list[str]
    interventions: list[str]
    protective_sufficient: bool
    rubric_snapshot: RubricSnapshotRead
