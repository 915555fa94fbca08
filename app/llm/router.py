"""
LLM provider router / factory.

Returns the correct provider implementation based on application settings.
Provider instances are cached per (provider_name, role) to reuse connections.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from app.llm.provider import EmbeddingProvider, LLMProvider

if TYPE_CHECKING:
    from app.config import Settings
    from app.llm.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)


class ModelRole(str, Enum):
    """Model role for task-based routing."""

    GENERATION = "generation"  # seed variant generation
    EMBEDDING = "embedding"  # similarity retrieval


# Module-level cache: "provider_name:role" -> instance
_provider_cache: dict[str, OpenAIProvider] = {}


def _get_provider(role: ModelRole, settings: Settings | None) -> OpenAIProvider:
    if settings is None:
        from app.config import get_settings

        settings = get_settings()

    provider_name = settings.llm_provider.lower()
    cache_key = f"{provider_name}:{role.value}"

    if cache_key in _provider_cache:
        return _provider_cache[cache_key]

    if provider_name == "openai":
        if not settings.llm_api_key:
            raise ValueError(
                "LLM_API_KEY is required for the OpenAI provider. "
                "Set it in your environment or .env file."
            )

        from app.llm.openai_provider import OpenAIProvider

        model = {
            ModelRole.GENERATION: settings.llm_model_generation,
            ModelRole.EMBEDDING: settings.llm_model_embedding,
        }[role]

        provider = OpenAIProvider(
            api_key=settings.llm_api_key,
            model=model,
            timeout=settings.llm_timeout,
            max_retries=settings.llm_max_retries,
        )
    else:
        raise ValueError(
            f"Unknown LLM provider: '{provider_name}'. "
            f"Supported providers: openai"
        )

    _provider_cache[cache_key] = provider
    logger.info("Created LLM provider: %s role=%s model=%s", provider_name, role.value, model)
    return provider


def get_llm_provider(
    role: ModelRole = ModelRole.GENERATION,
    settings: Settings | None = None,
) -> LLMProvider:
    """Return a completion provider for the configured provider and role.

    Raises:
        ValueError: If the configured provider is not supported or API key is missing.
    """
    return _get_provider(role, settings)


def get_embedding_provider(settings: Settings | None = None) -> EmbeddingProvider:
    """Return the embedding provider (EMBEDDING role).

    Raises:
        ValueError: If the configured provider is not supported or API key is missing.
    """
    return _get_provider(ModelRole.EMBEDDING, settings)


def clear_provider_cache() -> None:
    """Clear the provider cache. Useful for testing."""
    _provider_cache.clear()
