"""Import seeds from a YAML file into the seeds table.

Usage:
    python -m app.scripts.import_seeds [path/to/seeds.yaml] [--dry-run]

The file holds a top-level ``seeds`` list; each entry has id, emotion,
triggers, response and optionally label, severity, weight, confidence,
is_active. Existing ids are updated in place (usage counters kept).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.services.seed_store import upsert_seed

DEFAULT_SEEDS_PATH = Path(__file__).resolve().parent.parent / "seeds" / "default_seeds.yaml"


def read_seed_file(path: Path) -> list[dict[str, Any]]:
    """Return the seed entries in path.

    Raises:
        ValueError: If the file is not a mapping with a ``seeds`` list.
    """
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    seeds = data.get("seeds") if isinstance(data, dict) else None
    if not isinstance(seeds, list):
        raise ValueError(f"{path}: expected a top-level 'seeds' list")
    return seeds


def import_seeds(db: Session, entries: list[dict[str, Any]]) -> tuple[int, list[str]]:
    """Upsert every valid entry. Returns (imported count, error messages)."""
    imported = 0
    errors: list[str] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            errors.append(f"entry {index}: not a mapping")
            continue
        try:
            upsert_seed(db, entry)
            imported += 1
        except ValueError as exc:
            errors.append(f"entry {index}: {exc}")
    return imported, errors


def main() -> None:
    parser = argparse.ArgumentParser(description="Import seeds into NeSy Core")
    parser.add_argument("path", nargs="?", default=str(DEFAULT_SEEDS_PATH), help="Seed YAML file")
    parser.add_argument("--dry-run", action="store_true", help="Validate without committing")
    args = parser.parse_args()

    try:
        entries = read_seed_file(Path(args.path))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Cannot read seeds: {exc}")
        sys.exit(1)

    db = SessionLocal()
    try:
        imported, errors = import_seeds(db, entries)
        for message in errors:
            print(f"Skipped {message}")
        if args.dry_run:
            db.rollback()
            print(f"Dry run: {imported} seeds valid, {len(errors)} skipped.")
        else:
            db.commit()
            print(f"Imported {imported} seeds, {len(errors)} skipped.")
    finally:
        db.close()

    if errors:
        sys.exit(2)


if __name__ == "__main__":
    main()
