"""Re-score externally supplied similarity results for contextual fit."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any

from app.services.nesy.constants import (
    EMOTIONAL_VOCABULARY,
    EMOTIONAL_VOCABULARY_BOOST,
    LENGTH_PENALTY,
    MAX_CONTENT_LENGTH,
    MIN_CONTENT_LENGTH,
    NEURAL_MIN_FIT,
    NEURAL_TOP_K,
    THERAPEUTIC_CONTENT_BOOST,
    THERAPEUTIC_CONTENT_TYPES,
)
from app.services.nesy.types import NeuralMatch, SimilarityResult

logger = logging.getLogger(__name__)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _valid_score(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _has_emotional_vocabulary(text: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in EMOTIONAL_VOCABULARY)


def score_similarity(similarity: SimilarityResult) -> NeuralMatch:
    """Compute relevance and contextual fit for one similarity hit."""
    text = similarity.content_text or ""

    relevance = float(similarity.similarity_score)
    if _has_emotional_vocabulary(text):
        relevance *= EMOTIONAL_VOCABULARY_BOOST
    relevance = _clamp01(relevance)

    fit = relevance
    if (similarity.content_type or "").lower() in THERAPEUTIC_CONTENT_TYPES:
        fit *= THERAPEUTIC_CONTENT_BOOST
    if not MIN_CONTENT_LENGTH <= len(text) <= MAX_CONTENT_LENGTH:
        fit *= LENGTH_PENALTY
    return NeuralMatch(similarity=similarity, relevance_score=relevance, contextual_fit=_clamp01(fit))


def evaluate(similarities: Iterable[Any], top_k: int = NEURAL_TOP_K) -> list[NeuralMatch]:
    """Return up to top_k neural matches with contextual fit > 0.5, best first.

    Entries that are not SimilarityResult or lack a finite numeric score are
    skipped, never fatal.
    """
    matches: list[NeuralMatch] = []
    skipped = 0
    for similarity in similarities or ():
        if not isinstance(similarity, SimilarityResult) or not _valid_score(
            similarity.similarity_score
        ):
            skipped += 1
            continue
        m = score_similarity(similarity)
        if m.contextual_fit > NEURAL_MIN_FIT:
            matches.append(m)

    if skipped:
        logger.warning("Neural evaluation skipped %d malformed similarity entries", skipped)
    matches.sort(key=lambda m: m.contextual_fit, reverse=True)
    return matches[:top_k]
