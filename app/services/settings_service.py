"""Persisted application settings (rubric strictness)."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.models.app_settings import AppSettings
from app.rubrics.strictness import resolve_strictness_level, set_strictness_level
from app.services.nesy.types import StrictnessConfig, StrictnessLevel

logger = logging.getLogger(__name__)

STRICTNESS_KEY = "rubric_strictness"


def get_app_settings(db: Session) -> dict:
    """Load all AppSettings rows and return as a dict.

    Returns a dict mapping key -> value for every row in the app_settings table.
    """
    rows = db.query(AppSettings).all()
    return {row.key: row.value for row in rows}


def update_app_settings(db: Session, updates: dict) -> dict:
    """Upsert key-value pairs into AppSettings.

    For each key in *updates*, creates or updates the corresponding row.
    Returns the full settings dict after the update.
    """
    for key, value in updates.items():
        row = db.query(AppSettings).filter(AppSettings.key == key).first()
        if row is None:
            row = AppSettings(key=key, value=value)
            db.add(row)
        else:
            row.value = value
    db.commit()
    return get_app_settings(db)


def get_persisted_strictness(db: Session) -> StrictnessLevel | None:
    """Stored strictness level, or None when unset or invalid."""
    value = get_app_settings(db).get(STRICTNESS_KEY)
    if value is None:
        return None
    try:
        return resolve_strictness_level(value)
    except ValueError:
        logger.warning("Ignoring invalid persisted strictness %r", value)
        return None


def update_strictness(db: Session, level: str | StrictnessLevel) -> StrictnessConfig:
    """Persist level and make it the active config for new pipeline runs.

    Raises:
        ValueError: If level is not flexible, moderate or strict.
    """
    resolved = resolve_strictness_level(level)
    update_app_settings(db, {STRICTNESS_KEY: resolved.value})
    return set_strictness_level(resolved)


def apply_persisted_strictness(db: Session) -> StrictnessConfig | None:
    """Activate the stored strictness level, if any. Called at startup."""
    level = get_persisted_strictness(db)
    if level is None:
        return None
    return set_strictness_level(level)
