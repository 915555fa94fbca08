"""Seed persistence and the in-process seed catalogue.

The catalogue holds an immutable tuple snapshot; readers take the whole tuple,
writers swap it under a lock, so no request ever sees a partial catalogue.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.models.seed import Seed as SeedRow
from app.models.seed_feedback import SeedFeedback
from app.services.nesy.types import Seed, SeedLabel, Severity

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def row_to_seed(row: SeedRow) -> Seed:
    return Seed(
        id=row.id,
        emotion=row.emotion,
        triggers=tuple(str(t) for t in (row.triggers or [])),
        response=row.response,
        label=SeedLabel(row.label),
        severity=Severity(row.severity),
        weight=row.weight,
        usage_count=row.usage_count,
        last_used_at=_aware(row.last_used_at),
        is_active=row.is_active,
        confidence=row.confidence,
    )


def load_active_seeds(db: Session) -> list[Seed]:
    """Active seeds in id order; rows with an unknown label or severity are skipped."""
    rows = db.query(SeedRow).filter(SeedRow.is_active.is_(True)).order_by(SeedRow.id).all()
    seeds: list[Seed] = []
    for row in rows:
        try:
            seeds.append(row_to_seed(row))
        except ValueError:
            logger.warning(
                "Skipping seed %s: invalid label %r or severity %r",
                row.id,
                row.label,
                row.severity,
            )
    return seeds


def record_seed_usage(db: Session, seed_id: str, used_at: datetime | None = None) -> bool:
    """Increment usage_count in a single UPDATE. Returns False for unknown ids."""
    used_at = used_at or datetime.now(UTC)
    result = db.execute(
        update(SeedRow)
        .where(SeedRow.id == seed_id)
        .values(usage_count=SeedRow.usage_count + 1, last_used_at=used_at.replace(tzinfo=None))
    )
    db.commit()
    return result.rowcount > 0


def deactivate_seed(db: Session, seed_id: str) -> bool:
    """Mark a seed inactive. Returns False for unknown ids."""
    row = db.get(SeedRow, seed_id)
    if row is None:
        return False
    row.is_active = False
    row.updated_at = datetime.now(UTC)
    db.commit()
    logger.info("Seed %s deactivated", seed_id)
    return True


FEEDBACK_RATINGS = ("up", "down")


def save_seed_feedback(
    db: Session, seed_id: str, rating: str, notes: str = ""
) -> SeedFeedback | None:
    """Store a rating for a seed response. Returns None for unknown seed ids.

    Raises:
        ValueError: If rating is not "up" or "down".
    """
    if rating not in FEEDBACK_RATINGS:
        raise ValueError(f"rating must be one of {FEEDBACK_RATINGS}, got {rating!r}")
    if db.get(SeedRow, seed_id) is None:
        return None
    row = SeedFeedback(seed_id=seed_id, rating=rating, notes=notes or "")
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Seed feedback recorded: %s %s", seed_id, rating)
    return row


def upsert_seed(db: Session, data: Mapping[str, Any]) -> SeedRow:
    """Create or update a seed from a mapping (import format). Does not commit.

    Raises:
        ValueError: If id, response or triggers are missing, or label/severity is unknown.
    """
    seed_id = str(data.get("id") or "").strip()
    response = str(data.get("response") or "").strip()
    triggers = data.get("triggers") or []
    if not seed_id or not response:
        raise ValueError("seed requires non-empty 'id' and 'response'")
    if not isinstance(triggers, list) or not triggers:
        raise ValueError(f"seed {seed_id}: 'triggers' must be a non-empty list")
    label = SeedLabel(data.get("label", SeedLabel.VALIDATE.value)).value
    severity = Severity(data.get("severity", Severity.NONE.value)).value

    row = db.get(SeedRow, seed_id)
    if row is None:
        row = SeedRow(id=seed_id, usage_count=0)
        db.add(row)
    else:
        row.updated_at = datetime.now(UTC)
    row.emotion = str(data.get("emotion") or "")
    row.triggers = [str(t) for t in triggers]
    row.response = response
    row.label = label
    row.severity = severity
    row.weight = float(data.get("weight", 1.0))
    row.confidence = data.get("confidence")
    row.is_active = bool(data.get("is_active", True))
    return row


class SeedCatalogue:
    """Atomic holder for the active seed snapshot."""

    def __init__(self, seeds: Iterable[Seed] = ()) -> None:
        self._lock = threading.Lock()
        self._seeds: tuple[Seed, ...] = tuple(seeds)

    def snapshot(self) -> tuple[Seed, ...]:
        return self._seeds

    def swap(self, seeds: Iterable[Seed]) -> None:
        new = tuple(seeds)
        with self._lock:
            self._seeds = new
        logger.info("Seed catalogue swapped: %d seeds", len(new))

    def record_usage(self, seed_id: str, used_at: datetime | None = None) -> None:
        with self._lock:
            self._seeds = tuple(
                s.with_usage(used_at) if s.id == seed_id else s for s in self._seeds
            )

    def deactivate(self, seed_id: str) -> None:
        with self._lock:
            self._seeds = tuple(
                replace(s, is_active=False) if s.id == seed_id else s for s in self._seeds
            )

    def refresh(self, db: Session) -> int:
        seeds = load_active_seeds(db)
        self.swap(seeds)
        return len(seeds)


_catalogue = SeedCatalogue()


def get_seed_catalogue() -> SeedCatalogue:
    return _catalogue
