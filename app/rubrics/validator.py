"""Rubric catalogue schema validation.

Validates that rubrics.yaml has the required structure:
- rubrics: non-empty list of rubric dicts with unique ids
- each rubric: name, category, risk_factors, protective_factors, interventions,
  numeric non-negative risk_weight / protective_weight
- synonyms (optional): dict of word -> list of words
"""

from __future__ import annotations

from typing import Any

_REQUIRED_LIST_KEYS = ("risk_factors", "protective_factors", "interventions")


class RubricCatalogueValidationError(ValueError):
    """Raised when rubric catalogue validation fails.

    Subclasses ValueError so callers can catch it via ``except ValueError``
    alongside ``FileNotFoundError`` without needing to import this class.
    """


def _validate_string_list(value: Any, where: str) -> None:
    if not isinstance(value, list):
        raise RubricCatalogueValidationError(f"{where} must be a list")
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise RubricCatalogueValidationError(
                f"{where} entries must be non-empty strings, got {item!r}"
            )


def validate_rubric_catalogue(data: dict[str, Any]) -> None:
    """Validate rubric catalogue structure.

    Args:
        data: Loaded rubrics.yaml content.

    Raises:
        RubricCatalogueValidationError: When structure is invalid.
    """
    if not isinstance(data, dict):
        raise RubricCatalogueValidationError("rubric catalogue must be a dict")

    rubrics = data.get("rubrics")
    if not isinstance(rubrics, list) or not rubrics:
        raise RubricCatalogueValidationError("rubric catalogue 'rubrics' must be a non-empty list")

    seen: set[str] = set()
    for i, rubric in enumerate(rubrics):
        if not isinstance(rubric, dict):
            raise RubricCatalogueValidationError(f"rubrics[{i}] must be a dict")
        rubric_id = rubric.get("id")
        if not isinstance(rubric_id, str) or not rubric_id.strip():
            raise RubricCatalogueValidationError(f"rubrics[{i}].id must be a non-empty string")
        if rubric_id in seen:
            raise RubricCatalogueValidationError(f"duplicate rubric id: '{rubric_id}'")
        seen.add(rubric_id)

        for key in ("name", "category"):
            if not isinstance(rubric.get(key), str):
                raise RubricCatalogueValidationError(f"rubric '{rubric_id}' missing '{key}'")
        for key in _REQUIRED_LIST_KEYS:
            _validate_string_list(rubric.get(key), f"rubric '{rubric_id}'.{key}")
        for key in ("risk_weight", "protective_weight"):
            w = rubric.get(key)
            if isinstance(w, bool) or not isinstance(w, (int, float)) or w < 0:
                raise RubricCatalogueValidationError(
                    f"rubric '{rubric_id}'.{key} must be a non-negative number, got {w!r}"
                )

    synonyms = data.get("synonyms")
    if synonyms is not None:
        if not isinstance(synonyms, dict):
            raise RubricCatalogueValidationError("rubric catalogue 'synonyms' must be a dict")
        for word, alternatives in synonyms.items():
            _validate_string_list(alternatives, f"synonyms.{word}")
