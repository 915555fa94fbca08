"""Score text against trigger-based seeds.

Score per seed = 10 × weight per matched trigger (case-insensitive substring),
plus severity bonuses (crisis tokens match whole words only), then multiplicative overuse (×0.8) and recency (×0.5)
penalties. Returns the top 5 by score; ties keep catalogue order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from app.services.nesy.constants import (
    CONFIDENCE_PER_TRIGGER,
    CRISIS_TOKENS,
    CRITICAL_SEVERITY_CRISIS_BONUS,
    DEFAULT_SEED_CONFIDENCE,
    HELP_TOKEN,
    HIGH_SEVERITY_HELP_BONUS,
    MAX_SYMBOLIC_CONFIDENCE,
    MIN_SYMBOLIC_CONFIDENCE,
    OVERUSE_PENALTY,
    OVERUSE_THRESHOLD,
    RECENCY_PENALTY,
    RECENCY_WINDOW_SECONDS,
    SYMBOLIC_TOP_K,
    TRIGGER_SCORE,
)
from app.services.nesy.rubric_assessor import tokenize
from app.services.nesy.types import Seed, Severity, SymbolicMatch

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def usage_penalty(seed: Seed, now: datetime) -> float:
    """Return the combined overuse/recency multiplier for a seed (1.0, 0.8, 0.5 or 0.4)."""
    factor = 1.0
    if seed.usage_count > OVERUSE_THRESHOLD:
        factor *= OVERUSE_PENALTY
    if seed.last_used_at is not None:
        elapsed = (_as_utc(now) - _as_utc(seed.last_used_at)).total_seconds()
        if elapsed < RECENCY_WINDOW_SECONDS:
            factor *= RECENCY_PENALTY
    return factor


def score_seed(seed: Seed, normalized_input: str, now: datetime) -> SymbolicMatch | None:
    """Score one active seed against lower-cased input. None when no trigger matches."""
    matched = tuple(
        trigger for trigger in seed.triggers if trigger and trigger.lower() in normalized_input
    )
    if not matched:
        return None

    score = TRIGGER_SCORE * seed.weight * len(matched)
    if seed.severity == Severity.HIGH and HELP_TOKEN in normalized_input:
        score += HIGH_SEVERITY_HELP_BONUS
    if seed.severity == Severity.CRITICAL and not CRISIS_TOKENS.isdisjoint(
        tokenize(normalized_input)
    ):
        score += CRITICAL_SEVERITY_CRISIS_BONUS

    score *= usage_penalty(seed, now)

    base_confidence = seed.confidence if seed.confidence is not None else DEFAULT_SEED_CONFIDENCE
    confidence = min(
        MAX_SYMBOLIC_CONFIDENCE,
        max(MIN_SYMBOLIC_CONFIDENCE, CONFIDENCE_PER_TRIGGER * len(matched) + base_confidence),
    )
    return SymbolicMatch(seed=seed, score=score, matched_triggers=matched, confidence=confidence)


def match(
    text: str,
    seeds: Iterable[Seed],
    now: datetime | None = None,
    top_k: int = SYMBOLIC_TOP_K,
) -> list[SymbolicMatch]:
    """Return up to top_k symbolic matches in descending score order.

    Inactive seeds and seeds without a matched trigger are excluded. Python's
    sort is stable, so equal scores keep the order of ``seeds``.
    """
    normalized = (text or "").lower()
    if not normalized.strip():
        return []
    now = now or datetime.now(UTC)

    matches: list[SymbolicMatch] = []
    for seed in seeds:
        if not seed.is_active:
            continue
        m = score_seed(seed, normalized, now)
        if m is not None:
            matches.append(m)

    matches.sort(key=lambda m: m.score, reverse=True)
    top = matches[:top_k]
    logger.debug(
        "Symbolic matching: %d candidates, top=%s",
        len(matches),
        [(m.seed.id, round(m.score, 2)) for m in top],
    )
    return top
