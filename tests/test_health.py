"""Tests for /health and application startup."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from app.main import app
from app.rubrics.strictness import get_strictness_config
from app.services.seed_store import get_seed_catalogue, upsert_seed
from app.services.settings_service import update_app_settings
from tests.factories import SEED_ROWS


def test_health_ok(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["database"] == "connected"
    assert data["rubric_version"] == "5.6.1"
    assert data["strictness"] == "flexible"


def test_health_database_down(client: TestClient) -> None:
    broken = MagicMock()
    broken.connect.side_effect = RuntimeError("connection refused")
    with patch("app.main.engine", broken):
        resp = client.get("/health")
    assert resp.status_code == 503
    assert resp.json()["database"] == "disconnected"


def test_startup_loads_seeds_and_strictness(db) -> None:
    upsert_seed(db, SEED_ROWS[0])
    db.commit()
    update_app_settings(db, {"rubric_strictness": "strict"})

    # Shutdown disposes the engine; keep the shared in-memory database alive.
    with patch("app.main.engine"), TestClient(app):
        assert [s.id for s in get_seed_catalogue().snapshot()] == [SEED_ROWS[0]["id"]]
        assert get_strictness_config().level.value == "strict"
