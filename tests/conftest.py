"""Shared fixtures: a throwaway SQLite database per test."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine

from db import create_db_engine
from domain.ratings.common import PlayerRatingRecord, RatingHistoryEntry
from domain.ratings.protocol import Ladder
from repositories import SqlPlayerRatingStore, SqlRoomStore

NOW = datetime(2026, 1, 15, 12, 0, 0)


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ratings.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def rating_store(sqlite_engine: Engine) -> SqlPlayerRatingStore:
    store = SqlPlayerRatingStore(sqlite_engine)
    store.ensure_schema()
    return store


@pytest.fixture
def room_store(sqlite_engine: Engine) -> SqlRoomStore:
    store = SqlRoomStore(sqlite_engine, default_capacity=4)
    store.ensure_schema()
    return store


def history_for(record: PlayerRatingRecord, match_id: str, *, old_rating: int | None = None) -> RatingHistoryEntry:
    """Minimal history row accompanying a direct record write."""
    old = record.rating if old_rating is None else old_rating
    return RatingHistoryEntry(
        match_id=match_id,
        player_id=record.player_id,
        ladder=record.ladder,
        old_rating=old,
        new_rating=record.rating,
        rating_change=record.rating - old,
        expected_score=0.5,
        actual_score=1.0 if record.rating >= old else 0.0,
        coefficient=32.0,
        coefficient_tier="normal",
        is_placement=False,
        streak_bonus=0,
        margin_bonus=None,
        placement=1,
        player_count=2,
        opponent_ids=("seed-opponent",),
        opponent_mean_rating=float(old),
        confidence_level="Moderate",
        created_at=NOW,
    )


def seed_record(
    store: SqlPlayerRatingStore,
    player_id: str,
    *,
    rating: int = 1500,
    games_played: int = 50,
    rating_deviation: float = 120.0,
    win_streak: int = 0,
    loss_streak: int = 0,
    last_game_at: datetime | None = NOW,
    ladder: Ladder = Ladder.RANKED,
) -> PlayerRatingRecord:
    wins = games_played // 2
    record = PlayerRatingRecord(
        player_id=player_id,
        ladder=ladder,
        rating=rating,
        rating_deviation=rating_deviation,
        peak_rating=rating,
        games_played=games_played,
        wins=wins,
        losses=games_played - wins,
        win_streak=win_streak,
        loss_streak=loss_streak,
        last_game_at=last_game_at,
    )
    return store.save_record(record, history_for(record, f"seed-{player_id}"))
