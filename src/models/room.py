"""rooms and room_players table models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base


class Room(Base):
    """Game room snapshot used for matchmaking."""

    __tablename__ = "rooms"
    __table_args__ = (
        CheckConstraint("status IN ('waiting', 'active', 'finished')", name="ck_rooms_status"),
        CheckConstraint("capacity >= 2", name="ck_rooms_capacity"),
        Index("idx_rooms_ranked_status", "is_ranked", "status"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    host_player_id: Mapped[str] = mapped_column(String(128), nullable=False)
    is_ranked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="waiting")
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    countdown_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
    countdown_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )


class RoomPlayer(Base):
    """Room membership; `rating` is the player's ranked rating at join time."""

    __tablename__ = "room_players"
    __table_args__ = (
        UniqueConstraint("room_id", "player_id", name="uq_room_players_room_player"),
        Index("idx_room_players_room", "room_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False)
    player_id: Mapped[str] = mapped_column(String(128), nullable=False)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        server_default=func.now(),
    )
