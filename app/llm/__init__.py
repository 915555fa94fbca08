"""LLM collaborators: seed variant generation and embeddings. Never orchestration."""

from app.llm.generator import SeedVariantGenerator
from app.llm.openai_provider import OpenAIProvider
from app.llm.provider import EmbeddingProvider, LLMProvider
from app.llm.router import ModelRole, get_embedding_provider, get_llm_provider

__all__ = [
    "EmbeddingProvider",
    "LLMProvider",
    "ModelRole",
    "OpenAIProvider",
    "SeedVariantGenerator",
    "get_embedding_provider",
    "get_llm_provider",
]
