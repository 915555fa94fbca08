"""Rubric catalogue and strictness presets."""

from app.rubrics.loader import (
    RubricCatalogue,
    get_rubric_catalogue,
    load_rubric_catalogue,
    swap_rubric_catalogue,
)
from app.rubrics.strictness import get_strictness_config, set_strictness_level

__all__ = [
    "RubricCatalogue",
    "get_rubric_catalogue",
    "get_strictness_config",
    "load_rubric_catalogue",
    "set_strictness_level",
    "swap_rubric_catalogue",
]
