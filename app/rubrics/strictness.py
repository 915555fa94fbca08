"""Active rubric strictness config.

Exactly one StrictnessConfig is active per process. Updates swap the reference
atomically; a pipeline run reads it once at start, so in-flight requests keep
the config they started with.
"""

from __future__ import annotations

import logging
import threading

from app.services.nesy.constants import STRICTNESS_CONFIGS
from app.services.nesy.types import StrictnessConfig, StrictnessLevel

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_active: StrictnessConfig | None = None


def resolve_strictness_level(value: str | StrictnessLevel | None) -> StrictnessLevel:
    """Map a raw level to StrictnessLevel.

    Raises:
        ValueError: If value is not one of flexible, moderate, strict.
    """
    if isinstance(value, StrictnessLevel):
        return value
    if value is None:
        raise ValueError("strictness level is required")
    try:
        return StrictnessLevel(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"Unknown strictness level {value!r}; expected one of "
            f"{[lvl.value for lvl in StrictnessLevel]}"
        ) from None


def get_strictness_config() -> StrictnessConfig:
    """Return the active config, initialised from settings on first use."""
    config = _active
    if config is None:
        from app.config import get_settings

        with _lock:
            if _active is None:
                _set(STRICTNESS_CONFIGS[resolve_strictness_level(get_settings().rubric_strictness)])
            config = _active
    return config


def set_strictness_level(level: str | StrictnessLevel) -> StrictnessConfig:
    """Swap the active config to the preset for level and return it."""
    config = STRICTNESS_CONFIGS[resolve_strictness_level(level)]
    with _lock:
        _set(config)
    logger.info("Rubric strictness set to %s", config.level.value)
    return config


def reset_strictness() -> None:
    """Forget the active config so the next read re-initialises from settings. For tests."""
    with _lock:
        _set(None)


def _set(config: StrictnessConfig | None) -> None:
    global _active
    _active = config
