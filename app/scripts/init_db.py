"""Create all NeSy Core tables.

Usage:
    python -m app.scripts.init_db
"""

from __future__ import annotations

import logging

import app.models  # noqa: F401  (registers models on Base.metadata)
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)
    tables = sorted(Base.metadata.tables)
    print(f"Created/verified {len(tables)} tables: {', '.join(tables)}")


if __name__ == "__main__":
    main()
