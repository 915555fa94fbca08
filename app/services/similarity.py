"""Similarity retrieval: embedding provider + similarity store.

retrieve_similarities never raises. Any embedding or store failure is logged
and degrades to an empty result, which leaves the pipeline symbolic-only.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from app.llm.provider import EmbeddingProvider
from app.services.nesy.types import Seed, SimilarityResult

logger = logging.getLogger(__name__)


def _normalize(vector: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, zero-length or mismatched vectors."""
    vec_a = np.asarray(a, dtype=np.float32)
    vec_b = np.asarray(b, dtype=np.float32)
    if vec_a.size == 0 or vec_a.shape != vec_b.shape:
        return 0.0
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class SimilarityStore(ABC):
    @abstractmethod
    def find_similar(
        self, vector: Sequence[float], threshold: float, max_results: int
    ) -> list[SimilarityResult]:
        """Return stored items with similarity ≥ threshold, best first."""
        ...


@dataclass(frozen=True, eq=False)
class _Entry:
    content_id: str
    content_type: str
    content_text: str
    vector: np.ndarray  # unit length (or all zeros)
    metadata: dict[str, Any] = field(default_factory=dict)


class InMemorySimilarityStore(SimilarityStore):
    """Brute-force cosine similarity over a stacked matrix of unit vectors.

    The matrix is rebuilt lazily after an add or remove; a query is one
    matrix-vector product.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._index: tuple[list[_Entry], np.ndarray] | None = None

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def dimension(self) -> int | None:
        with self._lock:
            entry = next(iter(self._entries.values()), None)
        return None if entry is None else int(entry.vector.shape[0])

    def add(
        self,
        content_id: str,
        content_type: str,
        content_text: str,
        vector: Sequence[float],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Store vector under content_id, replacing any previous entry.

        Raises:
            ValueError: If vector is empty or its dimension differs from the stored vectors.
        """
        array = np.asarray(vector, dtype=np.float32).reshape(-1)
        if array.size == 0:
            raise ValueError(f"empty vector for {content_id}")
        entry = _Entry(content_id, content_type, content_text, _normalize(array), dict(metadata or {}))
        with self._lock:
            others = (e for e in self._entries.values() if e.content_id != content_id)
            existing = next(others, None)
            if existing is not None and existing.vector.shape != array.shape:
                raise ValueError(
                    f"vector dimension {array.shape[0]} for {content_id} does not match "
                    f"store dimension {existing.vector.shape[0]}"
                )
            self._entries[content_id] = entry
            self._index = None

    def remove(self, content_id: str) -> None:
        with self._lock:
            if self._entries.pop(content_id, None) is not None:
                self._index = None

    def _snapshot(self) -> tuple[list[_Entry], np.ndarray]:
        with self._lock:
            if self._index is None:
                entries = list(self._entries.values())
                matrix = (
                    np.vstack([e.vector for e in entries])
                    if entries
                    else np.empty((0, 0), dtype=np.float32)
                )
                self._index = (entries, matrix)
            return self._index

    def find_similar(
        self, vector: Sequence[float], threshold: float, max_results: int
    ) -> list[SimilarityResult]:
        entries, matrix = self._snapshot()
        if not entries or max_results <= 0:
            return []
        query = np.asarray(vector, dtype=np.float32).reshape(-1)
        if query.shape[0] != matrix.shape[1]:
            logger.warning(
                "Query dimension %d does not match store dimension %d",
                query.shape[0],
                matrix.shape[1],
            )
            return []
        if not np.any(query):
            return []

        scores = matrix @ _normalize(query)
        candidates = np.flatnonzero(scores >= threshold)
        # Stable sort keeps insertion order for equal scores
        ranked = candidates[np.argsort(-scores[candidates], kind="stable")][:max_results]
        return [
            SimilarityResult(
                content_id=entries[i].content_id,
                content_type=entries[i].content_type,
                content_text=entries[i].content_text,
                similarity_score=float(np.clip(scores[i], 0.0, 1.0)),
                metadata=dict(entries[i].metadata),
            )
            for i in ranked
        ]


def retrieve_similarities(
    text: str,
    embedder: EmbeddingProvider | None,
    store: SimilarityStore | None,
    threshold: float,
    max_results: int,
) -> list[SimilarityResult]:
    """Embed text and query the store; [] when unconfigured or on any failure."""
    if embedder is None or store is None or not (text or "").strip():
        return []
    try:
        vector = embedder.embed(text)
        return store.find_similar(vector, threshold, max_results)
    except Exception:
        logger.exception("Similarity retrieval failed; continuing symbolic-only")
        return []


def index_seeds(
    store: InMemorySimilarityStore,
    embedder: EmbeddingProvider,
    seeds: Iterable[Seed],
) -> int:
    """Embed each active seed response into store. Returns the number indexed.

    Seeds whose embedding fails (or has the wrong dimension) are skipped and logged.
    """
    indexed = 0
    for seed in seeds:
        if not seed.is_active:
            store.remove(seed.id)
            continue
        try:
            vector = embedder.embed(seed.response)
            store.add(
                seed.id,
                "seed_response",
                seed.response,
                vector,
                {"emotion": seed.emotion, "label": seed.label.value},
            )
        except Exception:
            logger.exception("Embedding failed for seed %s; not indexed", seed.id)
            continue
        indexed += 1
    logger.info("Indexed %d seeds for similarity retrieval", indexed)
    return indexed
