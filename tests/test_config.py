"""
Configuration tests.
"""

import pytest

from app.config import Settings, get_settings


def test_get_settings_returns_settings() -> None:
    """get_settings returns a Settings instance."""
    settings = get_settings()
    assert isinstance(settings, Settings)
    assert settings.app_name == "NeSy Core"


def test_settings_defaults() -> None:
    """Weight cache, generation and similarity defaults."""
    settings = get_settings()
    assert settings.weight_cache_ttl_seconds == 300.0
    assert settings.weight_lookup_timeout == 0.25
    assert settings.weight_learning_rate == 0.05
    assert settings.generation_timeout == 8.0
    assert settings.similarity_threshold == 0.7
    assert settings.similarity_max_results == 10


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """LLM and pipeline settings load from env."""
    monkeypatch.setenv("LLM_MODEL_GENERATION", "gpt-4o")
    monkeypatch.setenv("LLM_MODEL_EMBEDDING", "text-embedding-3-large")
    monkeypatch.setenv("LLM_TIMEOUT", "90")
    monkeypatch.setenv("LLM_MAX_RETRIES", "5")
    monkeypatch.setenv("WEIGHT_LOOKUP_TIMEOUT", "0.1")
    monkeypatch.setenv("GENERATION_TIMEOUT", "3")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.llm_model_generation == "gpt-4o"
    assert settings.llm_model_embedding == "text-embedding-3-large"
    assert settings.llm_timeout == 90.0
    assert settings.llm_max_retries == 5
    assert settings.weight_lookup_timeout == 0.1
    assert settings.generation_timeout == 3.0


def test_postgresql_url_gets_psycopg_driver(monkeypatch: pytest.MonkeyPatch) -> None:
    """A generic postgresql:// URL is rewritten for psycopg3."""
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/nesy")
    get_settings.cache_clear()
    assert get_settings().database_url == "postgresql+psycopg://u:p@db:5432/nesy"


@pytest.mark.parametrize("raw,expected", [("STRICT", "strict"), (" moderate ", "moderate")])
def test_rubric_strictness_normalised(
    monkeypatch: pytest.MonkeyPatch, raw: str, expected: str
) -> None:
    monkeypatch.setenv("RUBRIC_STRICTNESS", raw)
    get_settings.cache_clear()
    assert get_settings().rubric_strictness == expected


def test_unknown_rubric_strictness_falls_back_to_flexible(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RUBRIC_STRICTNESS", "extreme")
    get_settings.cache_clear()
    assert get_settings().rubric_strictness == "flexible"
