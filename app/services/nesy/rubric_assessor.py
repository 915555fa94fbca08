"""Score free text against the risk/protective rubric catalogue.

A phrase matches when every one of its words occurs in the message's token set
(word order ignored); a word also matches through the catalogue's synonym
table. Multi-word phrases never match on a single word.

Pure functions of the text, the catalogue snapshot and the strictness config.
Strictness rescales thresholds only; raw scores are never multiplied.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from app.services.nesy.constants import (
    COPING_RUBRIC_ID,
    CRISIS_RUBRIC_ID,
    OVERALL_RISK_CAP,
    OVERALL_RISK_DIVISOR,
    SUPPORT_RUBRIC_ID,
)
from app.services.nesy.types import RubricAssessment, RubricSnapshot, StrictnessConfig

if TYPE_CHECKING:
    from app.rubrics.loader import RubricCatalogue

# Unicode letters/digits (and in-word apostrophes); underscore excluded
_TOKEN_RE = re.compile(r"(?:[^\W_]|')+")


def tokenize(text: str) -> list[str]:
    """Return lower-cased word tokens in order of appearance."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.lower())


def _word_matches(word: str, tokens: frozenset[str], synonyms: Mapping[str, Sequence[str]]) -> bool:
    if word in tokens:
        return True
    return any(s in tokens for s in synonyms.get(word, ()))


def phrase_matches(
    phrase: str,
    tokens: frozenset[str],
    synonyms: Mapping[str, Sequence[str]] | None = None,
) -> bool:
    """True when every word of phrase (or one of its synonyms) is in tokens."""
    words = tokenize(phrase)
    if not words:
        return False
    syn = synonyms or {}
    return all(_word_matches(w, tokens, syn) for w in words)


def assess(text: str, catalogue: RubricCatalogue | None = None) -> list[RubricAssessment]:
    """Score text against every rubric; emit one assessment per rubric with a hit.

    riskScore = matched risk phrases × riskWeight,
    protectiveScore = matched protective phrases × protectiveWeight,
    overallScore = max(0, riskScore − protectiveScore).
    Empty text yields no assessments.
    """
    if catalogue is None:
        from app.rubrics.loader import get_rubric_catalogue

        catalogue = get_rubric_catalogue()

    tokens = frozenset(tokenize(text))
    if not tokens:
        return []

    now = datetime.now(UTC)
    assessments: list[RubricAssessment] = []
    for rubric in catalogue.rubrics:
        risk_order = rubric.risk_phrase_order or tuple(sorted(rubric.risk_factor_phrases))
        protective_order = rubric.protective_phrase_order or tuple(
            sorted(rubric.protective_factor_phrases)
        )
        matched_risk = [p for p in risk_order if phrase_matches(p, tokens, catalogue.synonyms)]
        matched_protective = [
            p for p in protective_order if phrase_matches(p, tokens, catalogue.synonyms)
        ]
        if not matched_risk and not matched_protective:
            continue

        risk_score = len(matched_risk) * rubric.risk_weight
        protective_score = len(matched_protective) * rubric.protective_weight
        assessments.append(
            RubricAssessment(
                rubric_id=rubric.id,
                risk_score=risk_score,
                protective_score=protective_score,
                overall_score=max(0.0, risk_score - protective_score),
                matched_phrases=frozenset(matched_risk + matched_protective),
                timestamp=now,
                matched_risk_count=len(matched_risk),
                matched_protective_count=len(matched_protective),
            )
        )
    return assessments


def calculate_overall_risk(assessments: Sequence[RubricAssessment]) -> float:
    """Return min(100, 100 × Σ overallScore / (count × 5)); 0 for no assessments."""
    if not assessments:
        return 0.0
    total = sum(a.overall_score for a in assessments)
    max_possible = len(assessments) * OVERALL_RISK_DIVISOR
    return min(OVERALL_RISK_CAP, (total / max_possible) * 100)


def _level(score: float) -> int:
    """Scale a single rubric score to 0–100 using the same divisor of 5."""
    return int(min(100, max(0, round(100 * score / OVERALL_RISK_DIVISOR))))


def _by_id(assessments: Iterable[RubricAssessment]) -> dict[str, RubricAssessment]:
    return {a.rubric_id: a for a in assessments}


def build_rubric_snapshot(assessments: Sequence[RubricAssessment]) -> RubricSnapshot:
    """Derive the crisis/distress/support/coping integers for constraint checks.

    distress = overall risk; crisis = risk level of the crisis rubric;
    coping / support = protective level of the coping and social rubrics.
    Missing rubrics contribute 0.
    """
    by_id = _by_id(assessments)
    crisis = by_id.get(CRISIS_RUBRIC_ID)
    coping = by_id.get(COPING_RUBRIC_ID)
    support = by_id.get(SUPPORT_RUBRIC_ID)
    return RubricSnapshot(
        crisis=_level(crisis.risk_score) if crisis else 0,
        distress=int(round(calculate_overall_risk(assessments))),
        support=_level(support.protective_score) if support else 0,
        coping=_level(coping.protective_score) if coping else 0,
    )


@dataclass(frozen=True)
class RiskProfile:
    """Strictness-scaled reading of a set of assessments."""

    overall_risk: float
    risk_level: str  # low | moderate | high
    alert_rubric_ids: tuple[str, ...]
    interventions: tuple[str, ...]
    protective_sufficient: bool


def classify_risk(
    assessments: Sequence[RubricAssessment],
    config: StrictnessConfig,
    catalogue: RubricCatalogue | None = None,
) -> RiskProfile:
    """Classify overall risk against the active strictness thresholds.

    Thresholds are divided by riskMultiplier (stricter presets lower the bar);
    the protective minimum is divided by protectiveMultiplier. Raw scores are
    left untouched.
    """
    if catalogue is None:
        from app.rubrics.loader import get_rubric_catalogue

        catalogue = get_rubric_catalogue()

    thresholds = config.thresholds
    risk_mult = config.weights.risk_multiplier or 1.0
    protective_mult = config.weights.protective_multiplier or 1.0

    overall = calculate_overall_risk(assessments)
    if overall >= thresholds.overall_risk_high / risk_mult:
        level = "high"
    elif overall >= thresholds.overall_risk_moderate / risk_mult:
        level = "moderate"
    else:
        level = "low"

    alerts: list[str] = []
    interventions: list[str] = []
    for a in assessments:
        if a.risk_score >= thresholds.risk_alert / risk_mult:
            alerts.append(a.rubric_id)
        if a.risk_score >= thresholds.intervention_trigger / risk_mult:
            rubric = catalogue.get(a.rubric_id)
            if rubric is not None:
                interventions.extend(i for i in rubric.interventions if i not in interventions)

    protective_count = sum(a.matched_protective_count for a in assessments)
    return RiskProfile(
        overall_risk=overall,
        risk_level=level,
        alert_rubric_ids=tuple(alerts),
        interventions=tuple(interventions),
        protective_sufficient=protective_count >= thresholds.protective_factors_min / protective_mult,
    )
