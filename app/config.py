"""
Application configuration. Loads from environment variables.
Secrets and sensitive config must never be hardcoded.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

STRICTNESS_LEVELS = ("flexible", "moderate", "strict")


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached settings instance."""
    return Settings()


class Settings:
    """Application settings loaded from environment."""

    # App
    app_name: str = "NeSy Core"
    debug: bool = False

    # Database (postgresql+psycopg for psycopg3; sqlite:// accepted for local runs)
    database_url: str = "postgresql+psycopg://localhost:5432/nesy_dev"
    db_connect_timeout: int = 10  # seconds

    # Security
    internal_job_token: str = ""  # Required for /api/admin/* endpoints

    # LLM (generation + embeddings)
    llm_provider: str = "openai"
    llm_api_key: Optional[str] = None
    llm_model_generation: str = "gpt-4o-mini"
    llm_model_embedding: str = "text-embedding-3-small"
    llm_timeout: float = 60.0
    llm_max_retries: int = 3

    # Rubrics
    rubric_strictness: str = "flexible"

    # Fusion weight learning
    weight_cache_ttl_seconds: float = 300.0
    weight_lookup_timeout: float = 0.25  # seconds; fusion never waits longer
    weight_learning_rate: float = 0.05

    # Pipeline
    generation_timeout: float = 8.0  # seconds
    similarity_threshold: float = 0.7
    similarity_max_results: int = 10

    def __init__(self) -> None:
        self.app_name = os.getenv("APP_NAME", self.app_name)
        self.debug = os.getenv("DEBUG", "false").lower() == "true"

        default_user = os.getenv("PGUSER") or os.getenv("USER") or "postgres"
        default_url = (
            f"postgresql+psycopg://{default_user}:"
            f"{os.getenv('PGPASSWORD', '')}@"
            f"{os.getenv('PGHOST', 'localhost')}:"
            f"{os.getenv('PGPORT', '5432')}/"
            f"{os.getenv('PGDATABASE', 'nesy_dev')}"
        )
        raw_url = os.getenv("DATABASE_URL", default_url)
        # Ensure psycopg3 driver if URL uses generic postgresql://
        if raw_url.startswith("postgresql://") and not raw_url.startswith("postgresql+psycopg"):
            raw_url = raw_url.replace("postgresql://", "postgresql+psycopg://", 1)
        self.database_url = raw_url
        self.db_connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", str(self.db_connect_timeout)))

        self.internal_job_token = os.getenv("INTERNAL_JOB_TOKEN", "")

        self.llm_provider = os.getenv("LLM_PROVIDER", self.llm_provider)
        self.llm_api_key = os.getenv("LLM_API_KEY")
        self.llm_model_generation = os.getenv("LLM_MODEL_GENERATION", self.llm_model_generation)
        self.llm_model_embedding = os.getenv("LLM_MODEL_EMBEDDING", self.llm_model_embedding)
        self.llm_timeout = float(os.getenv("LLM_TIMEOUT", str(self.llm_timeout)))
        self.llm_max_retries = int(os.getenv("LLM_MAX_RETRIES", str(self.llm_max_retries)))

        strictness = os.getenv("RUBRIC_STRICTNESS", self.rubric_strictness).strip().lower()
        if strictness not in STRICTNESS_LEVELS:
            logger.warning("Unknown RUBRIC_STRICTNESS=%r, using 'flexible'", strictness)
            strictness = "flexible"
        self.rubric_strictness = strictness

        self.weight_cache_ttl_seconds = float(
            os.getenv("WEIGHT_CACHE_TTL_SECONDS", str(self.weight_cache_ttl_seconds))
        )
        self.weight_lookup_timeout = float(
            os.getenv("WEIGHT_LOOKUP_TIMEOUT", str(self.weight_lookup_timeout))
        )
        self.weight_learning_rate = float(
            os.getenv("WEIGHT_LEARNING_RATE", str(self.weight_learning_rate))
        )

        self.generation_timeout = float(
            os.getenv("GENERATION_TIMEOUT", str(self.generation_timeout))
        )
        self.similarity_threshold = float(
            os.getenv("SIMILARITY_THRESHOLD", str(self.similarity_threshold))
        )
        self.similarity_max_results = int(
            os.getenv("SIMILARITY_MAX_RESULTS", str(self.similarity_max_results))
        )
