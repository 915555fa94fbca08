"""Sentence splitting and word-overlap similarity used by fusion."""

from __future__ import annotations

import re

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_WHITESPACE_RE = re.compile(r"\s+")

# Words of this length or shorter are ignored ("de", "je", "is", ...)
_MIN_WORD_LENGTH = 2


def split_sentences(text: str) -> list[str]:
    """Split on runs of . ! ? and drop empty pieces."""
    if not text:
        return []
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def _word_set(text: str) -> set[str]:
    return {w for w in _WHITESPACE_RE.split(text.lower()) if len(w) > _MIN_WORD_LENGTH}


def jaccard_similarity(a: str, b: str) -> float:
    """Word-set Jaccard similarity in [0, 1]; 0 when either side has no words."""
    words_a = _word_set(a)
    words_b = _word_set(b)
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)
