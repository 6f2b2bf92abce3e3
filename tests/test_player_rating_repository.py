"""Persistence tests for the SQLAlchemy rating store (SQLite backend)."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from conftest import NOW, history_for, seed_record
from domain.ratings.common import PlayerRatingRecord
from domain.ratings.errors import (
    DuplicateRatingUpdateError,
    InvalidInputError,
    PersistenceConflictError,
    PersistenceError,
    PersistenceTimeoutError,
    RecordNotFoundError,
)
from domain.ratings.protocol import Ladder, PlayerRatingStore
from repositories import SqlPlayerRatingStore


def test_store_satisfies_protocol(rating_store: SqlPlayerRatingStore) -> None:
    assert isinstance(rating_store, PlayerRatingStore)


def test_missing_record_raises_not_found(rating_store: SqlPlayerRatingStore) -> None:
    with pytest.raises(RecordNotFoundError) as excinfo:
        rating_store.get_record("ghost", Ladder.RANKED)

    assert excinfo.value.player_id == "ghost"


def test_insert_then_read_round_trip(rating_store: SqlPlayerRatingStore) -> None:
    saved = seed_record(rating_store, "alice", rating=1640, games_played=12, win_streak=3)

    loaded = rating_store.get_record("alice", Ladder.RANKED)

    assert saved.version == 1
    assert loaded == saved
    assert loaded.last_game_at == NOW


def test_ladders_are_independent(rating_store: SqlPlayerRatingStore) -> None:
    seed_record(rating_store, "alice", rating=1640)
    seed_record(rating_store, "alice", rating=1210, ladder=Ladder.CASUAL)

    assert rating_store.get_record("alice", Ladder.RANKED).rating == 1640
    assert rating_store.get_record("alice", Ladder.CASUAL).rating == 1210


def test_stale_version_write_conflicts(rating_store: SqlPlayerRatingStore) -> None:
    stale = seed_record(rating_store, "alice", rating=1500)

    fresh = rating_store.save_record(
        replace(stale, rating=1516, peak_rating=1516),
        history_for(replace(stale, rating=1516), "m1", old_rating=1500),
    )
    assert fresh.version == 2

    with pytest.raises(PersistenceConflictError):
        rating_store.save_record(
            replace(stale, rating=1484),
            history_for(replace(stale, rating=1484), "m2", old_rating=1500),
        )

    current = rating_store.get_record("alice", Ladder.RANKED)
    assert current.rating == 1516
    assert current.version == 2
    history = rating_store.list_history("alice", Ladder.RANKED)
    assert [entry.match_id for entry in history] == ["m1", "seed-alice"]


def test_concurrent_first_insert_conflicts(rating_store: SqlPlayerRatingStore) -> None:
    record = PlayerRatingRecord.initial("bob", Ladder.RANKED, rating=1200, rating_deviation=350.0)
    rating_store.save_record(record, history_for(record, "m1"))

    with pytest.raises(PersistenceConflictError):
        rating_store.save_record(record, history_for(record, "m2"))


def test_duplicate_match_history_is_rejected_and_rolled_back(rating_store: SqlPlayerRatingStore) -> None:
    seeded = seed_record(rating_store, "carol", rating=1500)
    updated = rating_store.save_record(
        replace(seeded, rating=1516),
        history_for(replace(seeded, rating=1516), "m1", old_rating=1500),
    )

    with pytest.raises(DuplicateRatingUpdateError) as excinfo:
        rating_store.save_record(
            replace(updated, rating=1530),
            history_for(replace(updated, rating=1530), "m1", old_rating=1516),
        )

    assert excinfo.value.retryable is False
    current = rating_store.get_record("carol", Ladder.RANKED)
    assert current.rating == 1516
    assert current.version == updated.version


def test_list_history_respects_limit(rating_store: SqlPlayerRatingStore) -> None:
    record = seed_record(rating_store, "dave", rating=1500)
    for index in range(3):
        next_record = replace(record, rating=record.rating + 10)
        record = rating_store.save_record(
            next_record,
            history_for(next_record, f"m{index}", old_rating=record.rating),
        )

    entries = rating_store.list_history("dave", Ladder.RANKED, limit=2)

    assert len(entries) == 2
    assert all(entry.opponent_ids == ("seed-opponent",) for entry in entries)
    assert rating_store.list_history("dave", Ladder.CASUAL) == []


def test_lock_errors_surface_as_timeouts(rating_store: SqlPlayerRatingStore) -> None:
    locked = OperationalError("SELECT 1", {}, Exception("database is locked"))

    with patch.object(rating_store, "session_factory", side_effect=locked):
        with pytest.raises(PersistenceTimeoutError):
            rating_store.get_record("alice", Ladder.RANKED)


def test_dropped_connections_surface_as_persistence_errors(rating_store: SqlPlayerRatingStore) -> None:
    refused = OperationalError("SELECT 1", {}, Exception("connection refused"))

    with patch.object(rating_store, "session_factory", side_effect=refused):
        with pytest.raises(PersistenceError, match="connection refused") as excinfo:
            rating_store.get_record("alice", Ladder.RANKED)

    assert excinfo.value.retryable is True


def test_check_violation_on_insert_is_not_a_conflict(rating_store: SqlPlayerRatingStore) -> None:
    record = replace(
        PlayerRatingRecord.initial("erin", Ladder.RANKED, rating=1200, rating_deviation=350.0),
        games_played=3,
        wins=1,
        losses=1,
    )

    with pytest.raises(InvalidInputError, match="constraint") as excinfo:
        rating_store.save_record(record, history_for(record, "m1"))

    assert not isinstance(excinfo.value, PersistenceConflictError)
    assert excinfo.value.retryable is False
    with pytest.raises(RecordNotFoundError):
        rating_store.get_record("erin", Ladder.RANKED)
