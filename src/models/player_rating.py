"""player_ratings table model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class PlayerRating(Base):
    """Current rating state for one player on one ladder (ranked or casual)."""

    __tablename__ = "player_ratings"
    __table_args__ = (
        UniqueConstraint("player_id", "ladder", name="uq_player_ratings_player_ladder"),
        CheckConstraint("ladder IN ('ranked', 'casual')", name="ck_player_ratings_ladder"),
        CheckConstraint("games_played = wins + losses", name="ck_player_ratings_games"),
        CheckConstraint(
            "win_streak = 0 OR loss_streak = 0",
            name="ck_player_ratings_streak_exclusive",
        ),
        CheckConstraint("version >= 1", name="ck_player_ratings_version"),
        Index("idx_player_ratings_ladder_rating", "ladder", "rating"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    player_id: Mapped[str] = mapped_column(String(128), nullable=False)
    ladder: Mapped[str] = mapped_column(String(16), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    rating_deviation: Mapped[float] = mapped_column(Float, nullable=False)
    peak_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    games_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    losses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    win_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    loss_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_game_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
