"""Domain types for the decision-and-fusion core.

Plain dataclasses and closed ``str`` enums. Ephemeral results (matches,
decisions, fusion results) are created per pipeline run and never shared
across requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class SeedLabel(str, Enum):
    """Therapeutic label attached to a seed response."""

    VALIDATE = "Validate"
    REFLECTIVE_QUESTION = "ReflectiveQuestion"
    SUGGESTION = "Suggestion"
    INTERVENTION = "Intervention"
    ERROR = "Error"


class Severity(str, Enum):
    NONE = "none"
    HIGH = "high"
    CRITICAL = "critical"


class ResponseType(str, Enum):
    """Which branch produced the hybrid decision text."""

    SYMBOLIC = "symbolic"
    NEURAL = "neural"
    HYBRID = "hybrid"
    GENERATED = "generated"


class FusionStrategy(str, Enum):
    NEURAL_ENHANCED = "neural_enhanced"
    WEIGHTED_BLEND = "weighted_blend"
    SYMBOLIC_FALLBACK = "symbolic_fallback"


class ContextType(str, Enum):
    """Context classes for learned fusion weights."""

    GREETING = "greeting"
    CRISIS = "crisis"
    LOW_CONFIDENCE = "low_confidence"
    HIGH_CONFIDENCE = "high_confidence"
    USER_AGENCY_HIGH = "user_agency_high"
    NORMAL = "normal"


class PlanStrategy(str, Enum):
    """Response strategy checked by the constraint verifier."""

    VALIDATION = "validation"
    REFLECTION = "reflection"
    SELF_HELP = "self-help"
    DIRECT_ADVICE = "direct-advice"
    REFER = "refer"


class StrictnessLevel(str, Enum):
    FLEXIBLE = "flexible"
    MODERATE = "moderate"
    STRICT = "strict"


# ── Catalogue entities ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Seed:
    """Authored trigger→response pattern for one emotional pattern."""

    id: str
    emotion: str
    triggers: tuple[str, ...]
    response: str
    label: SeedLabel = SeedLabel.VALIDATE
    severity: Severity = Severity.NONE
    weight: float = 1.0
    usage_count: int = 0
    last_used_at: datetime | None = None
    is_active: bool = True
    confidence: float | None = None  # author confidence; matcher defaults to 0.5

    def with_usage(self, used_at: datetime | None = None) -> Seed:
        """Return a copy with usage_count incremented and last_used_at set."""
        return replace(
            self,
            usage_count=self.usage_count + 1,
            last_used_at=used_at or datetime.now(UTC),
        )


@dataclass(frozen=True)
class RubricDefinition:
    id: str
    name: str
    category: str
    risk_factor_phrases: frozenset[str]
    protective_factor_phrases: frozenset[str]
    interventions: tuple[str, ...]
    risk_weight: float
    protective_weight: float
    # Catalogue order, used for deterministic matched_phrases ordering
    risk_phrase_order: tuple[str, ...] = ()
    protective_phrase_order: tuple[str, ...] = ()


@dataclass(frozen=True)
class RubricAssessment:
    rubric_id: str
    risk_score: float
    protective_score: float
    overall_score: float
    matched_phrases: frozenset[str]
    timestamp: datetime
    matched_risk_count: int = 0
    matched_protective_count: int = 0


@dataclass(frozen=True)
class StrictnessThresholds:
    risk_alert: float
    overall_risk_high: float
    overall_risk_moderate: float
    protective_factors_min: int
    intervention_trigger: float


@dataclass(frozen=True)
class StrictnessWeights:
    risk_multiplier: float
    protective_multiplier: float


@dataclass(frozen=True)
class StrictnessConfig:
    level: StrictnessLevel
    thresholds: StrictnessThresholds
    weights: StrictnessWeights


# ── Matcher / evaluator outputs ─────────────────────────────────────────────


@dataclass(frozen=True)
class SymbolicMatch:
    seed: Seed
    score: float
    matched_triggers: tuple[str, ...]
    confidence: float


@dataclass(frozen=True)
class SimilarityResult:
    """Embedding-similarity hit supplied by the similarity store."""

    content_id: str
    content_type: str
    content_text: str
    similarity_score: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NeuralMatch:
    similarity: SimilarityResult
    relevance_score: float
    contextual_fit: float


@dataclass(frozen=True)
class HybridDecision:
    response_text: str
    response_type: ResponseType
    confidence: float
    reasoning: str
    symbolic_contribution: float
    neural_contribution: float
    label: SeedLabel = SeedLabel.VALIDATE
    seed: Seed | None = None


@dataclass(frozen=True)
class DecisionContext:
    """Per-request context for the hybrid decision maker."""

    disliked_label: SeedLabel | None = None


# ── Fusion ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SymbolicBranch:
    response: str
    emotion: str
    confidence: float


@dataclass(frozen=True)
class NeuralBranch:
    response: str
    confidence: float


@dataclass(frozen=True)
class FusionValidation:
    validated: bool
    constraints_ok: bool
    td_score: float | None = None  # secondary threat/deviation score


@dataclass(frozen=True)
class FusionContext:
    symbolic: SymbolicBranch
    neural: NeuralBranch | None
    validation: FusionValidation


@dataclass(frozen=True)
class FusionWeights:
    symbolic_weight: float
    neural_weight: float


@dataclass(frozen=True)
class FusionResult:
    fused_response: str
    fused_confidence: float
    symbolic_weight: float
    neural_weight: float
    preservation_score: float
    strategy: FusionStrategy
    context_type: ContextType = ContextType.NORMAL


@dataclass(frozen=True)
class TherapeuticIntent:
    validation: bool
    reflection: bool
    suggestion: bool
    empathy: bool


@dataclass(frozen=True)
class PreservationCheck:
    preserved: bool
    similarity: float
    deviations: tuple[str, ...]


# ── Constraint verification ─────────────────────────────────────────────────


@dataclass(frozen=True)
class RubricSnapshot:
    """Integer 0–100 dimensions fed to the constraint verifier."""

    crisis: int
    distress: int
    support: int
    coping: int


@dataclass(frozen=True)
class Plan:
    strategy: PlanStrategy | str | None = None
    contains_pii: bool = False
    length: int | None = None
    interventions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConstraintContext:
    rubric_snapshot: RubricSnapshot
    seed_match_score: float = 0.0
    plan: Plan = field(default_factory=Plan)


@dataclass(frozen=True)
class ConstraintResult:
    ok: bool
    reason: str
    violations: tuple[str, ...] = ()
