"""Seed variant generation: rewrite an authored seed for the user's message."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from app.llm.provider import LLMProvider
from app.prompts.loader import load_prompt, render_prompt

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = "seed_variant_system_v1"
USER_PROMPT_TEMPLATE = "seed_variant_v1"
MAX_TOKENS = 200

_QUOTE_CHARS = "\"'“”‘’„"


class SeedVariantGenerator:
    """Generation provider for fusion: generate(seed_text, context) → text."""

    def __init__(self, provider: LLMProvider, temperature: float = 0.7) -> None:
        self.provider = provider
        self.temperature = temperature

    def generate(
        self,
        seed_text: str,
        user_input: str,
        emotion: str = "",
        label: str = "",
        interventions: Sequence[str] = (),
    ) -> str:
        """Return a variant of seed_text for user_input; '' when the model returns nothing.

        Provider errors propagate; the pipeline degrades them to symbolic fallback.
        """
        prompt = render_prompt(
            USER_PROMPT_TEMPLATE,
            EMOTION=emotion or "onbekend",
            LABEL=label or "onbekend",
            INTERVENTIONS=", ".join(interventions) or "geen",
            USER_INPUT=user_input,
            SEED_TEXT=seed_text,
        )
        text = self.provider.complete(
            prompt,
            system_prompt=load_prompt(SYSTEM_PROMPT_TEMPLATE),
            temperature=self.temperature,
            max_tokens=MAX_TOKENS,
        )
        variant = (text or "").strip().strip(_QUOTE_CHARS).strip()
        if not variant:
            logger.warning("Seed variant generation returned empty text")
        return variant
