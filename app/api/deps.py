"""Shared FastAPI dependencies for API routes.

Process-wide collaborators are built lazily once and cached; tests replace
them through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
import secrets
from functools import lru_cache

from fastapi import Header, HTTPException

from app.config import get_settings
from app.db.session import get_db  # re-export
from app.llm.generator import SeedVariantGenerator
from app.llm.provider import EmbeddingProvider
from app.llm.router import ModelRole, get_embedding_provider, get_llm_provider
from app.services.nesy.pipeline import PipelineState
from app.services.nesy.weight_cache import FusionWeightCache, SqlWeightStore, WeightLearningStore
from app.services.similarity import InMemorySimilarityStore

logger = logging.getLogger(__name__)

__all__ = [
    "get_db",
    "get_embedder",
    "get_pipeline_state",
    "get_similarity_store",
    "get_weight_store",
    "require_internal_token",
]


def require_internal_token(x_internal_token: str = Header(...)) -> None:
    """Validate the internal token from the request header.

    Uses constant-time comparison to prevent timing attacks.
    Raises 403 if the token is empty or does not match the configured value.
    """
    expected = get_settings().internal_job_token
    if not expected or not secrets.compare_digest(x_internal_token, expected):
        logger.warning("Admin endpoint auth failed: invalid or missing token")
        raise HTTPException(status_code=403, detail="Invalid internal token")


@lru_cache(maxsize=1)
def get_weight_store() -> WeightLearningStore:
    return SqlWeightStore()


@lru_cache(maxsize=1)
def get_similarity_store() -> InMemorySimilarityStore:
    return InMemorySimilarityStore()


@lru_cache(maxsize=1)
def get_embedder() -> EmbeddingProvider | None:
    """Embedding provider, or None when no LLM key is configured (symbolic-only)."""
    settings = get_settings()
    if not settings.llm_api_key:
        return None
    try:
        return get_embedding_provider(settings)
    except ValueError as exc:
        logger.warning("Embedding provider unavailable: %s", exc)
        return None


@lru_cache(maxsize=1)
def get_pipeline_state() -> PipelineState:
    settings = get_settings()
    generator = None
    if settings.llm_api_key:
        try:
            generator = SeedVariantGenerator(get_llm_provider(ModelRole.GENERATION, settings))
        except ValueError as exc:
            logger.warning("Generation provider unavailable: %s", exc)
    return PipelineState(
        weight_cache=FusionWeightCache(
            get_weight_store(),
            ttl_seconds=settings.weight_cache_ttl_seconds,
            timeout=settings.weight_lookup_timeout,
        ),
        generator=generator,
        generation_timeout=settings.generation_timeout,
    )
