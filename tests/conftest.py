"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.test_constants import TEST_DATABASE_URL, TEST_INTERNAL_JOB_TOKEN

# Force the test DB when pytest runs; don't inherit from .env
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["INTERNAL_JOB_TOKEN"] = TEST_INTERNAL_JOB_TOKEN
os.environ["LLM_API_KEY"] = ""  # symbolic-only unless a test wires a provider
os.environ["RUBRIC_STRICTNESS"] = "flexible"


@pytest.fixture(scope="session", autouse=True)
def _create_tables() -> None:
    """Create every table once on the shared in-memory database."""
    import app.models  # noqa: F401
    from app.db.session import Base, engine

    Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_tables() -> None:
    """Empty all tables after each test (background tasks write through SessionLocal)."""
    yield
    from app.db.session import Base, engine

    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(autouse=True)
def _reset_process_state() -> None:
    """Reset cached settings, catalogues and collaborators before and after each test."""

    def _reset() -> None:
        from app.api import deps
        from app.config import get_settings
        from app.llm.router import clear_provider_cache
        from app.rubrics.loader import reset_rubric_catalogue
        from app.rubrics.strictness import reset_strictness
        from app.services.seed_store import get_seed_catalogue

        get_settings.cache_clear()
        reset_rubric_catalogue()
        reset_strictness()
        clear_provider_cache()
        get_seed_catalogue().swap([])
        for factory in (
            deps.get_weight_store,
            deps.get_similarity_store,
            deps.get_embedder,
            deps.get_pipeline_state,
        ):
            factory.cache_clear()

    _reset()
    yield
    _reset()


@pytest.fixture
def db() -> Session:
    """Database session for model and service tests."""
    from app.db.session import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client (lifespan not run)."""
    from app.main import app

    c = TestClient(app)
    yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Internal-Token": TEST_INTERNAL_JOB_TOKEN}


@pytest.fixture
def seeded_db(db: Session) -> Session:
    """Persist the factory seeds and load them into the seed catalogue."""
    from app.services.seed_store import get_seed_catalogue, upsert_seed
    from tests.factories import SEED_ROWS

    for row in SEED_ROWS:
        upsert_seed(db, row)
    db.commit()
    get_seed_catalogue().refresh(db)
    return db
