"""
LLM provider abstractions.

The models are collaborators of the decision core only. A completion model
rewrites an authored seed into a contextual variant; an embedding model turns
text into a vector for similarity retrieval. Neither decides what is safe to
send: every generated text still passes fusion and constraint verification.
"""

from abc import ABC, abstractmethod
from typing import Any


class LLMProvider(ABC):
    """Abstract base for completion providers."""

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Send prompt and return completion text."""
        ...


class EmbeddingProvider(ABC):
    """Abstract base for embedding providers."""

    @abstractmethod
    def embed(self, text: str) -> list[float]:
        """Return the embedding vector for text."""
        ...
