"""DecisionLog model."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.session import Base


class DecisionLog(Base):
    """Audit row for one pipeline run, written after the response is returned."""

    __tablename__ = "decision_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(UTC), nullable=False, index=True
    )
    input_text: Mapped[str] = mapped_column(Text, nullable=False)
    response_type: Mapped[str] = mapped_column(String(16), nullable=False)
    label: Mapped[str | None] = mapped_column(String(32), nullable=True)
    seed_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    decision_confidence: Mapped[float] = mapped_column(Float, nullable=False)
    fusion_strategy: Mapped[str] = mapped_column(String(32), nullable=False)
    context_type: Mapped[str] = mapped_column(String(32), nullable=False)
    symbolic_weight: Mapped[float] = mapped_column(Float, nullable=False)
    neural_weight: Mapped[float] = mapped_column(Float, nullable=False)
    preservation_score: Mapped[float] = mapped_column(Float, nullable=False)
    constraint_ok: Mapped[bool] = mapped_column(Boolean, nullable=False)
    constraint_reason: Mapped[str] = mapped_column(String(16), nullable=False)
    violations: Mapped[list | None] = mapped_column(JSON, nullable=True)
    used_fallback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    final_text: Mapped[str] = mapped_column(Text, nullable=False)
    processing_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
