"""Constants, thresholds and fixed texts for the decision-and-fusion core.

Deterministic heuristics. The multiplicative usage/recency penalties and the
fixed divisor of 5 in overall risk are kept exactly as tuned in production.
"""

from __future__ import annotations

from app.services.nesy.types import (
    SeedLabel,
    StrictnessConfig,
    StrictnessLevel,
    StrictnessThresholds,
    StrictnessWeights,
)

# ── Rubric assessor ─────────────────────────────────────────────────────────

# Assumed max risk factors per rubric when normalising overall risk to 0–100.
OVERALL_RISK_DIVISOR: int = 5
OVERALL_RISK_CAP: float = 100.0

# Rubric ids feeding the constraint snapshot
CRISIS_RUBRIC_ID: str = "crisis-safety"
COPING_RUBRIC_ID: str = "coping-strategies"
SUPPORT_RUBRIC_ID: str = "social-connection"

# ── Symbolic matcher ────────────────────────────────────────────────────────

SYMBOLIC_TOP_K: int = 5
TRIGGER_SCORE: float = 10.0  # per matched trigger, times seed weight
HIGH_SEVERITY_HELP_BONUS: float = 5.0
CRITICAL_SEVERITY_CRISIS_BONUS: float = 10.0
HELP_TOKEN: str = "help"
CRISIS_TOKENS: frozenset[str] = frozenset({"crisis", "emergency", "noodgeval", "nood"})
OVERUSE_THRESHOLD: int = 3
OVERUSE_PENALTY: float = 0.8
RECENCY_WINDOW_SECONDS: float = 3600.0
RECENCY_PENALTY: float = 0.5
CONFIDENCE_PER_TRIGGER: float = 0.3
DEFAULT_SEED_CONFIDENCE: float = 0.5
MIN_SYMBOLIC_CONFIDENCE: float = 0.1
MAX_SYMBOLIC_CONFIDENCE: float = 0.95

# ── Neural evaluator ────────────────────────────────────────────────────────

NEURAL_TOP_K: int = 5
NEURAL_MIN_FIT: float = 0.5  # strictly greater than
EMOTIONAL_VOCABULARY_BOOST: float = 1.2
THERAPEUTIC_CONTENT_BOOST: float = 1.3
LENGTH_PENALTY: float = 0.8
MIN_CONTENT_LENGTH: int = 20
MAX_CONTENT_LENGTH: int = 500
THERAPEUTIC_CONTENT_TYPES: frozenset[str] = frozenset({"seed", "therapeutic", "seed_response"})

# Bilingual (Dutch/English) emotional vocabulary
EMOTIONAL_VOCABULARY: tuple[str, ...] = (
    "voel", "gevoel", "emotie", "verdriet", "verdrietig", "angst", "bang", "boos",
    "stress", "eenzaam", "moeilijk", "pijn", "blij", "onzeker",
    "feel", "feeling", "emotion", "sad", "anxious", "afraid", "angry", "lonely",
    "hurt", "overwhelmed", "worried", "happy",
)

# ── Hybrid decision ─────────────────────────────────────────────────────────

FALLBACK_RESPONSE: str = (
    "Ik begrijp je en wil graag helpen. Kun je me meer vertellen over hoe je je voelt?"
)
FALLBACK_CONFIDENCE: float = 0.3
STRONG_SYMBOLIC_CONFIDENCE: float = 0.8
STRONG_NEURAL_FIT: float = 0.8
HYBRID_SYMBOLIC_FACTOR: float = 0.6
HYBRID_NEURAL_FACTOR: float = 0.4

# Fixed iteration order for one-shot disliked-label avoidance
LABEL_SUBSTITUTION_ORDER: tuple[SeedLabel, ...] = (
    SeedLabel.VALIDATE,
    SeedLabel.REFLECTIVE_QUESTION,
    SeedLabel.SUGGESTION,
)

# ── Fusion ──────────────────────────────────────────────────────────────────

DEFAULT_SYMBOLIC_WEIGHT: float = 0.7
DEFAULT_NEURAL_WEIGHT: float = 0.3
SAFETY_SYMBOLIC_WEIGHT: float = 0.9
LOW_CONFIDENCE_THRESHOLD: float = 0.6
HIGH_CONFIDENCE_THRESHOLD: float = 0.8
GREETING_CONFIDENCE: float = 0.9
GREETING_EMOTIONS: frozenset[str] = frozenset({"neutral", "neutraal"})
USER_AGENCY_TD_THRESHOLD: float = 0.4
LOW_CONFIDENCE_NUDGE: float = 0.1
MIN_NUDGED_SYMBOLIC_WEIGHT: float = 0.5

SENTENCE_PRESERVED_SIMILARITY: float = 0.6
BLEND_NOVELTY_SIMILARITY: float = 0.7
BLEND_MAX_NEURAL_SENTENCES: int = 2
NEURAL_ENHANCED_PRESERVATION: float = 0.7
WEIGHTED_BLEND_PRESERVATION: float = 0.4
SEED_PRESERVED_SIMILARITY: float = 0.4

# Weight learning bounds
MIN_LEARNED_WEIGHT: float = 0.1
MAX_LEARNED_WEIGHT: float = 0.9

# ── Constraint verifier ─────────────────────────────────────────────────────

CRISIS_NO_SELF_HELP: int = 80
DISTRESS_NEEDS_RESOURCES: int = 70
RESOURCE_SUFFICIENT: int = 50
DIRECT_ADVICE_MAX_DISTRESS: int = 40
CRISIS_REFERRAL_REQUIRED: int = 90
PLAN_MIN_LENGTH: int = 10
PLAN_MAX_LENGTH: int = 1000

# ── Pre-approved safe fallbacks ─────────────────────────────────────────────

CRISIS_REFERRAL_RESPONSE: str = (
    "Ik merk dat je in een moeilijke situatie zit. Het is belangrijk dat je hier niet "
    "alleen mee bent. Kun je contact opnemen met een volwassene die je vertrouwt, "
    "of bel 113 voor directe ondersteuning?"
)
SAFETY_FALLBACK_RESPONSE: str = (
    "Het spijt me, ik kan hier niet goed op reageren. Laten we het over iets anders "
    "hebben, of zoek hulp bij een volwassene als het dringend is."
)

# ── Strictness presets ──────────────────────────────────────────────────────

STRICTNESS_CONFIGS: dict[StrictnessLevel, StrictnessConfig] = {
    StrictnessLevel.FLEXIBLE: StrictnessConfig(
        level=StrictnessLevel.FLEXIBLE,
        thresholds=StrictnessThresholds(
            risk_alert=3.0,
            overall_risk_high=70,
            overall_risk_moderate=40,
            protective_factors_min=2,
            intervention_trigger=2.5,
        ),
        weights=StrictnessWeights(risk_multiplier=0.8, protective_multiplier=1.2),
    ),
    StrictnessLevel.MODERATE: StrictnessConfig(
        level=StrictnessLevel.MODERATE,
        thresholds=StrictnessThresholds(
            risk_alert=2.0,
            overall_risk_high=60,
            overall_risk_moderate=30,
            protective_factors_min=3,
            intervention_trigger=2.0,
        ),
        weights=StrictnessWeights(risk_multiplier=1.0, protective_multiplier=1.0),
    ),
    StrictnessLevel.STRICT: StrictnessConfig(
        level=StrictnessLevel.STRICT,
        thresholds=StrictnessThresholds(
            risk_alert=1.5,
            overall_risk_high=50,
            overall_risk_moderate=20,
            protective_factors_min=4,
            intervention_trigger=1.5,
        ),
        weights=StrictnessWeights(risk_multiplier=1.3, protective_multiplier=0.8),
    ),
}
