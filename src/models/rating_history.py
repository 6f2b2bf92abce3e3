"""rating_history table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class RatingHistory(Base):
    """Append-only rating change log (one row per player per rated match)."""

    __tablename__ = "rating_history"
    __table_args__ = (
        UniqueConstraint("match_id", "player_id", "ladder", name="uq_rating_history_match_player_ladder"),
        CheckConstraint("actual_score >= 0.0 AND actual_score <= 1.0", name="ck_rating_history_actual_score"),
        CheckConstraint(
            "expected_score >= 0.0 AND expected_score <= 1.0",
            name="ck_rating_history_expected_score",
        ),
        CheckConstraint("new_rating - old_rating = rating_change", name="ck_rating_history_change"),
        Index("idx_rating_history_player_event", "player_id", "ladder", "created_at"),
        Index("idx_rating_history_match", "match_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[str] = mapped_column(String(128), nullable=False)
    player_id: Mapped[str] = mapped_column(String(128), nullable=False)
    ladder: Mapped[str] = mapped_column(String(16), nullable=False)
    old_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    new_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_change: Mapped[int] = mapped_column(Integer, nullable=False)
    expected_score: Mapped[float] = mapped_column(Float, nullable=False)
    actual_score: Mapped[float] = mapped_column(Float, nullable=False)
    coefficient: Mapped[float] = mapped_column(Float, nullable=False)
    coefficient_tier: Mapped[str] = mapped_column(String(32), nullable=False)
    is_placement: Mapped[bool] = mapped_column(Boolean, nullable=False)
    streak_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    margin_bonus: Mapped[int | None] = mapped_column(Integer, nullable=True)
    placement: Mapped[int] = mapped_column(Integer, nullable=False)
    player_count: Mapped[int] = mapped_column(Integer, nullable=False)
    opponent_ids: Mapped[list[str]] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    opponent_mean_rating: Mapped[float] = mapped_column(Float, nullable=False)
    confidence_level: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
