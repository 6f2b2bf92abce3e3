"""SQLAlchemy store for per-player rating records and their history."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from db import create_session_factory
from domain.ratings.common import PlayerRatingRecord, RatingHistoryEntry
from domain.ratings.errors import (
    DuplicateRatingUpdateError,
    PersistenceConflictError,
    RecordNotFoundError,
)
from domain.ratings.protocol import Ladder
from models.player_rating import PlayerRating
from models.rating_history import RatingHistory
from repositories.common import (
    apply_statement_timeout,
    ensure_tables,
    is_unique_violation,
    storage_errors,
    utcnow,
)


class SqlPlayerRatingStore:
    """PlayerRatingStore backed by `player_ratings` and `rating_history`.

    Writes are conditional on the record's `version` column; a stale version
    raises PersistenceConflictError and leaves the row untouched.
    """

    def __init__(self, engine: Engine, session_factory: sessionmaker[Session] | None = None) -> None:
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    def ensure_schema(self) -> None:
        ensure_tables(self.engine, PlayerRating, RatingHistory)

    def get_record(
        self,
        player_id: str,
        ladder: Ladder,
        *,
        timeout: float | None = None,
    ) -> PlayerRatingRecord:
        with storage_errors(f"get_record player_id={player_id}"), self.session_factory() as session:
            with session.begin():
                apply_statement_timeout(session, timeout)
                row = session.execute(
                    select(PlayerRating).where(
                        PlayerRating.player_id == player_id,
                        PlayerRating.ladder == ladder.value,
                    )
                ).scalar_one_or_none()
        if row is None:
            raise RecordNotFoundError(player_id, ladder.value)
        return _row_to_record(row)

    def save_record(
        self,
        record: PlayerRatingRecord,
        history: RatingHistoryEntry,
        *,
        timeout: float | None = None,
    ) -> PlayerRatingRecord:
        saved = replace(record, version=record.version + 1)
        with storage_errors(f"save_record player_id={record.player_id}"), self.session_factory() as session:
            try:
                apply_statement_timeout(session, timeout)
                if record.is_persisted:
                    self._update_record(session, record, saved)
                else:
                    self._insert_record(session, saved)
                self._insert_history(session, history)
                session.commit()
            except Exception:
                session.rollback()
                raise
        return saved

    def list_history(
        self,
        player_id: str,
        ladder: Ladder,
        *,
        limit: int = 50,
    ) -> list[RatingHistoryEntry]:
        """Most recent history rows first."""
        with self.session_factory() as session:
            rows = session.execute(
                select(RatingHistory)
                .where(RatingHistory.player_id == player_id, RatingHistory.ladder == ladder.value)
                .order_by(RatingHistory.created_at.desc(), RatingHistory.id.desc())
                .limit(limit)
            ).scalars()
            return [_row_to_history(row) for row in rows]

    def _update_record(self, session: Session, current: PlayerRatingRecord, saved: PlayerRatingRecord) -> None:
        result = session.execute(
            update(PlayerRating)
            .where(
                PlayerRating.player_id == current.player_id,
                PlayerRating.ladder == current.ladder.value,
                PlayerRating.version == current.version,
            )
            .values(**_record_values(saved), updated_at=utcnow())
        )
        if result.rowcount != 1:
            raise PersistenceConflictError(
                f"player_id={current.player_id} ladder={current.ladder.value} "
                f"changed since version {current.version}"
            )

    def _insert_record(self, session: Session, saved: PlayerRatingRecord) -> None:
        try:
            session.execute(
                insert(PlayerRating).values(
                    player_id=saved.player_id,
                    ladder=saved.ladder.value,
                    created_at=utcnow(),
                    updated_at=utcnow(),
                    **_record_values(saved),
                )
            )
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            raise PersistenceConflictError(
                f"player_id={saved.player_id} ladder={saved.ladder.value} was created concurrently"
            ) from exc

    def _insert_history(self, session: Session, history: RatingHistoryEntry) -> None:
        try:
            session.execute(insert(RatingHistory).values(**_history_values(history)))
        except IntegrityError as exc:
            if not is_unique_violation(exc):
                raise
            raise DuplicateRatingUpdateError(history.match_id, history.player_id, history.ladder.value) from exc


def _record_values(record: PlayerRatingRecord) -> dict[str, Any]:
    return {
        "rating": record.rating,
        "rating_deviation": record.rating_deviation,
        "peak_rating": record.peak_rating,
        "games_played": record.games_played,
        "wins": record.wins,
        "losses": record.losses,
        "win_streak": record.win_streak,
        "loss_streak": record.loss_streak,
        "last_game_at": record.last_game_at,
        "version": record.version,
    }


def _history_values(history: RatingHistoryEntry) -> dict[str, Any]:
    return {
        "match_id": history.match_id,
        "player_id": history.player_id,
        "ladder": history.ladder.value,
        "old_rating": history.old_rating,
        "new_rating": history.new_rating,
        "rating_change": history.rating_change,
        "expected_score": history.expected_score,
        "actual_score": history.actual_score,
        "coefficient": history.coefficient,
        "coefficient_tier": history.coefficient_tier,
        "is_placement": history.is_placement,
        "streak_bonus": history.streak_bonus,
        "margin_bonus": history.margin_bonus,
        "placement": history.placement,
        "player_count": history.player_count,
        "opponent_ids": list(history.opponent_ids),
        "opponent_mean_rating": history.opponent_mean_rating,
        "confidence_level": history.confidence_level,
        "created_at": history.created_at,
    }


def _row_to_record(row: PlayerRating) -> PlayerRatingRecord:
    return PlayerRatingRecord(
        player_id=row.player_id,
        ladder=Ladder(row.ladder),
        rating=int(row.rating),
        rating_deviation=float(row.rating_deviation),
        peak_rating=int(row.peak_rating),
        games_played=int(row.games_played),
        wins=int(row.wins),
        losses=int(row.losses),
        win_streak=int(row.win_streak),
        loss_streak=int(row.loss_streak),
        last_game_at=row.last_game_at,
        version=int(row.version),
    )


def _row_to_history(row: RatingHistory) -> RatingHistoryEntry:
    return RatingHistoryEntry(
        match_id=row.match_id,
        player_id=row.player_id,
        ladder=Ladder(row.ladder),
        old_rating=int(row.old_rating),
        new_rating=int(row.new_rating),
        rating_change=int(row.rating_change),
        expected_score=float(row.expected_score),
        actual_score=float(row.actual_score),
        coefficient=float(row.coefficient),
        coefficient_tier=row.coefficient_tier,
        is_placement=bool(row.is_placement),
        streak_bonus=int(row.streak_bonus),
        margin_bonus=None if row.margin_bonus is None else int(row.margin_bonus),
        placement=int(row.placement),
        player_count=int(row.player_count),
        opponent_ids=tuple(row.opponent_ids or ()),
        opponent_mean_rating=float(row.opponent_mean_rating),
        confidence_level=row.confidence_level,
        created_at=row.created_at,
    )


__all__ = ["SqlPlayerRatingStore"]
