"""Rubric catalogue loader and hot-swappable holder.

The catalogue is immutable once loaded. Updates replace the whole catalogue in
one reference assignment, so an assessment that took a snapshot never sees a
partially updated catalogue.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from app.services.nesy.types import RubricDefinition

logger = logging.getLogger(__name__)

_RUBRICS_PATH = Path(__file__).parent / "rubrics.yaml"


@dataclass(frozen=True)
class RubricCatalogue:
    """Immutable rubric catalogue plus the synonym table used for phrase matching."""

    version: str
    rubrics: tuple[RubricDefinition, ...]
    synonyms: dict[str, tuple[str, ...]]

    def get(self, rubric_id: str) -> RubricDefinition | None:
        for rubric in self.rubrics:
            if rubric.id == rubric_id:
                return rubric
        return None


def parse_rubric_catalogue(data: dict[str, Any], fallback_version: str = "") -> RubricCatalogue:
    """Validate raw catalogue content and build a RubricCatalogue.

    Raises:
        RubricCatalogueValidationError: If the content is structurally invalid.
    """
    from app.rubrics.validator import validate_rubric_catalogue

    validate_rubric_catalogue(data)
    rubrics: list[RubricDefinition] = []
    for raw in data["rubrics"]:
        risk = tuple(p.strip().lower() for p in raw["risk_factors"])
        protective = tuple(p.strip().lower() for p in raw["protective_factors"])
        rubrics.append(
            RubricDefinition(
                id=raw["id"],
                name=raw["name"],
                category=raw["category"],
                risk_factor_phrases=frozenset(risk),
                protective_factor_phrases=frozenset(protective),
                interventions=tuple(raw["interventions"]),
                risk_weight=float(raw["risk_weight"]),
                protective_weight=float(raw["protective_weight"]),
                risk_phrase_order=risk,
                protective_phrase_order=protective,
            )
        )
    synonyms = {
        str(word).lower(): tuple(s.lower() for s in alts)
        for word, alts in (data.get("synonyms") or {}).items()
    }
    version = data.get("version")
    if not isinstance(version, str) or not version.strip():
        version = fallback_version
    return RubricCatalogue(version=str(version).strip(), rubrics=tuple(rubrics), synonyms=synonyms)


def load_rubric_catalogue_file(path: Path) -> RubricCatalogue:
    """Load and validate a rubric catalogue from a YAML file (uncached).

    Raises:
        FileNotFoundError: If the file is missing.
        ValueError: If the YAML is malformed or the catalogue is invalid.
    """
    try:
        with path.open(encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Rubric catalogue YAML is malformed: {exc}") from exc
    return parse_rubric_catalogue(data, fallback_version=hashlib.sha256(path.read_bytes()).hexdigest())


@lru_cache(maxsize=1)
def load_rubric_catalogue() -> RubricCatalogue:
    """Load the bundled rubric catalogue (cached after first call)."""
    return load_rubric_catalogue_file(_RUBRICS_PATH)


# ── Active catalogue holder ──────────────────────────────────────────────────

_swap_lock = threading.Lock()
_active: RubricCatalogue | None = None


def get_rubric_catalogue() -> RubricCatalogue:
    """Return the active catalogue snapshot, loading the bundled one on first use."""
    catalogue = _active
    if catalogue is None:
        with _swap_lock:
            if _active is None:
                _set_active(load_rubric_catalogue())
            catalogue = _active
    return catalogue


def swap_rubric_catalogue(catalogue: RubricCatalogue) -> RubricCatalogue | None:
    """Atomically replace the active catalogue. Returns the previous one (may be None)."""
    with _swap_lock:
        previous = _active
        _set_active(catalogue)
    logger.info(
        "Rubric catalogue swapped: version=%s rubrics=%d",
        catalogue.version,
        len(catalogue.rubrics),
    )
    return previous


def reset_rubric_catalogue() -> None:
    """Drop the active catalogue so the next access reloads the bundled file. For tests."""
    with _swap_lock:
        _set_active(None)
    load_rubric_catalogue.cache_clear()


def _set_active(catalogue: RubricCatalogue | None) -> None:
    global _active
    _active = catalogue


def reload_rubric_catalogue(path: Path | None = None) -> RubricCatalogue:
    """Re-read the catalogue file and swap it in. The active one stays on error.

    Raises:
        FileNotFoundError: If the file is missing.
        ValueError: If the YAML is malformed or the catalogue is invalid.
    """
    catalogue = load_rubric_catalogue_file(path or _RUBRICS_PATH)
    swap_rubric_catalogue(catalogue)
    return catalogue
