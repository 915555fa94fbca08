"""FusionWeight model."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class FusionWeight(Base):
    """Learned symbolic/neural blend ratio for one fusion context type.

    symbolic_weight + neural_weight == 1.0 for every row.
    """

    __tablename__ = "fusion_weights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    context_type: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    symbolic_weight: Mapped[float] = mapped_column(Float, nullable=False)
    neural_weight: Mapped[float] = mapped_column(Float, nullable=False)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False
    )
