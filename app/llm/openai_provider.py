"""
OpenAI provider implementation.

Uses the openai Python SDK (>=1.0.0) with synchronous client for chat
completions and embeddings. Supports retry with exponential backoff for
rate-limit, timeout, and connection errors.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from openai import APIConnectionError, APIError, APITimeoutError, OpenAI, RateLimitError

from app.llm.provider import EmbeddingProvider, LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Retry configuration
INITIAL_BACKOFF = 1.0  # seconds
BACKOFF_MULTIPLIER = 2.0

# Errors that trigger retry
_RETRYABLE_ERRORS = (RateLimitError, APITimeoutError, APIConnectionError)


class OpenAIProvider(LLMProvider, EmbeddingProvider):
    """Concrete provider backed by the OpenAI API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        max_retries: int = 2,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = OpenAI(api_key=api_key, timeout=timeout)

    # ------------------------------------------------------------------
    # LLMProvider interface
    # ------------------------------------------------------------------

    def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> str:
        """Send prompt to OpenAI and return the completion text.

        Supported kwargs:
            temperature (float): Sampling temperature (default 0.7).
            max_tokens (int): Maximum tokens in the response.
        """
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": kwargs.get("temperature", 0.7),
        }
        if "max_tokens" in kwargs:
            create_kwargs["max_tokens"] = kwargs["max_tokens"]

        def _call() -> str:
            start = time.monotonic()
            response = self._client.chat.completions.create(**create_kwargs)
            elapsed = time.monotonic() - start
            usage = response.usage
            prompt_preview = (prompt[:100] + "...") if len(prompt) > 100 else prompt
            logger.info(
                "LLM call: model=%s prompt_preview=%r tokens_in=%d tokens_out=%d latency=%.2fs",
                self.model,
                prompt_preview,
                usage.prompt_tokens if usage else 0,
                usage.completion_tokens if usage else 0,
                elapsed,
            )
            logger.debug("LLM prompt (full): %s", prompt)
            return response.choices[0].message.content or ""

        return self._call_with_retry("completion", _call)

    # ------------------------------------------------------------------
    # EmbeddingProvider interface
    # ------------------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        """Return the embedding for text using the configured embedding model."""

        def _call() -> list[float]:
            start = time.monotonic()
            response = self._client.embeddings.create(model=self.model, input=text)
            logger.info(
                "Embedding call: model=%s chars=%d latency=%.2fs",
                self.model,
                len(text),
                time.monotonic() - start,
            )
            return list(response.data[0].embedding)

        return self._call_with_retry("embedding", _call)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _call_with_retry(self, operation: str, call: Callable[[], T]) -> T:
        """Run call with exponential-backoff retry on rate limit/timeout/connection."""
        backoff = INITIAL_BACKOFF
        for attempt in range(1, self.max_retries + 1):
            try:
                return call()
            except _RETRYABLE_ERRORS as exc:
                if attempt == self.max_retries:
                    logger.error(
                        "OpenAI %s retryable error: giving up after %d attempts: %s",
                        operation,
                        self.max_retries,
                        exc,
                    )
                    raise
                logger.warning(
                    "OpenAI %s %s: retry %d/%d in %.1fs",
                    operation,
                    type(exc).__name__,
                    attempt,
                    self.max_retries,
                    backoff,
                )
                time.sleep(backoff)
                backoff *= BACKOFF_MULTIPLIER
            except APIError as exc:
                logger.error("OpenAI %s API error: %s", operation, exc)
                raise
        raise RuntimeError(f"OpenAI {operation}: max_retries must be >= 1")
