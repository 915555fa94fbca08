"""SeedFeedback model."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class SeedFeedback(Base):
    """A thumbs up/down rating on a seed response, with optional notes."""

    __tablename__ = "seed_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    seed_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rating: Mapped[str] = mapped_column(String(8), nullable=False)  # up | down
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False
    )
