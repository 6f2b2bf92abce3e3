"""Apply a finished match to every participant's persisted rating record."""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass, replace
from datetime import UTC, datetime

from tenacity.wait import wait_base

from domain.ratings.common import (
    MatchOutcome,
    PlayerRatingRecord,
    RatedParticipant,
    RatingHistoryEntry,
    RatingUpdateResult,
)
from domain.ratings.config import EngineConfig, default_engine_config
from domain.ratings.elo.calculator import clamp_rating, validate_rating_inputs
from domain.ratings.elo.multiplayer import (
    compute_pairwise_updates,
    distribute_multiplayer,
    mean_opponent_rating,
)
from domain.ratings.errors import (
    ErrorKind,
    InvalidInputError,
    PersistenceError,
    RatingEngineError,
    RecordNotFoundError,
)
from domain.ratings.protocol import Ladder, PlayerRatingStore
from domain.ratings.retry import build_retrying
from domain.ratings.tiers import (
    DeviationParameters,
    confidence_level,
    days_inactive,
    decay_rating_deviation,
    shrink_rating_deviation,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerUpdateFailure:
    """Why one participant's rating was not updated."""

    player_id: str
    match_id: str
    kind: ErrorKind
    message: str
    retryable: bool
    old_rating: int | None = None
    attempted_rating: int | None = None


@dataclass(frozen=True)
class MatchRatingReport:
    """Per-player outcome of applying one match."""

    match_id: str
    ladder: Ladder
    updates: dict[str, RatingUpdateResult]
    failures: dict[str, PlayerUpdateFailure]

    @property
    def ok(self) -> bool:
        return not self.failures

    def retryable_player_ids(self) -> tuple[str, ...]:
        return tuple(player_id for player_id, failure in self.failures.items() if failure.retryable)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def validate_outcome(outcome: MatchOutcome) -> None:
    """Reject malformed outcomes before any record is read or written."""
    if not str(outcome.match_id).strip():
        raise InvalidInputError("match_id is required")
    if len(outcome.participants) < 2:
        raise InvalidInputError(
            f"match_id={outcome.match_id}: need at least 2 participants, got {len(outcome.participants)}"
        )

    player_ids = [participant.player_id for participant in outcome.participants]
    if any(not str(player_id).strip() for player_id in player_ids):
        raise InvalidInputError(f"match_id={outcome.match_id}: player_id must not be blank")
    if len(player_ids) != len(set(player_ids)):
        raise InvalidInputError(f"match_id={outcome.match_id}: duplicate player ids {player_ids}")

    placements = [participant.placement for participant in outcome.participants]
    if any(placement < 1 for placement in placements):
        raise InvalidInputError(f"match_id={outcome.match_id}: placements must be >= 1, got {placements}")
    if len(placements) != len(set(placements)):
        raise InvalidInputError(f"match_id={outcome.match_id}: placements must be distinct, got {placements}")

    for participant in outcome.participants:
        if participant.votes_received is not None and participant.votes_received < 0:
            raise InvalidInputError(
                f"match_id={outcome.match_id}: votes_received must be >= 0 "
                f"for player_id={participant.player_id}"
            )


def validate_record(record: PlayerRatingRecord) -> None:
    validate_rating_inputs(rating=record.rating, games_played=record.games_played, streak=record.streak)
    if record.win_streak > 0 and record.loss_streak > 0:
        raise InvalidInputError(
            f"player_id={record.player_id}: win_streak and loss_streak are both non-zero"
        )


def apply_rating_result(
    record: PlayerRatingRecord,
    result: RatingUpdateResult,
    *,
    now: datetime,
    engine_config: EngineConfig,
) -> tuple[PlayerRatingRecord, RatingUpdateResult]:
    """Fold a computed rating change into a (possibly newer) stored record.

    The change is re-applied as a delta so a record re-read after a conflict
    keeps its own rating as the base.
    """
    deviation = decay_rating_deviation(
        record.rating_deviation,
        days_inactive(record.last_game_at, now),
        engine_config.deviation,
    )
    won = result.won
    new_rating = clamp_rating(record.rating + result.rating_change, engine_config.rating)
    win_streak = record.win_streak + 1 if won else 0
    loss_streak = 0 if won else record.loss_streak + 1

    updated = replace(
        record,
        rating=new_rating,
        rating_deviation=shrink_rating_deviation(deviation, engine_config.deviation),
        peak_rating=max(record.peak_rating, new_rating),
        games_played=record.games_played + 1,
        wins=record.wins + (1 if won else 0),
        losses=record.losses + (0 if won else 1),
        win_streak=win_streak,
        loss_streak=loss_streak,
        last_game_at=now,
    )
    applied = replace(
        result,
        old_rating=record.rating,
        new_rating=new_rating,
        rating_change=new_rating - record.rating,
        win_streak=win_streak,
        loss_streak=loss_streak,
    )
    return updated, applied


class RatingUpdateOrchestrator:
    """Read, compute and conditionally write ratings for one finished match.

    Each participant is persisted independently. One player's failure is
    reported and never rolls back another player's update.
    """

    def __init__(
        self,
        store: PlayerRatingStore,
        engine_config: EngineConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self.store = store
        self.config = engine_config or default_engine_config()
        self.clock = clock or _utcnow
        self.retry_wait = retry_wait

    @property
    def deviation(self) -> DeviationParameters:
        return self.config.deviation

    def apply_match_outcome(
        self,
        outcome: MatchOutcome,
        *,
        timeout: float | None = None,
        only_players: Collection[str] | None = None,
    ) -> MatchRatingReport:
        validate_outcome(outcome)
        ladder = outcome.ladder
        now = self.clock()
        timeout = self.config.timeout_seconds if timeout is None else timeout

        participant_ids = {participant.player_id for participant in outcome.participants}
        if only_players is not None:
            unknown = sorted(set(only_players) - participant_ids)
            if unknown:
                raise InvalidInputError(f"match_id={outcome.match_id}: unknown players in only_players {unknown}")

        failures: dict[str, PlayerUpdateFailure] = {}
        records: dict[str, PlayerRatingRecord] = {}
        rated: list[RatedParticipant] = []
        for participant in outcome.by_placement():
            try:
                record = self._load_record(participant.player_id, ladder, timeout=timeout)
                validate_record(record)
            except Exception as exc:
                failures[participant.player_id] = self._failure(outcome, participant.player_id, exc)
                continue

            records[participant.player_id] = record
            rated.append(
                RatedParticipant(
                    player_id=participant.player_id,
                    rating=record.rating,
                    games_played=record.games_played,
                    placement=participant.placement,
                    streak=record.streak,
                    votes_received=participant.votes_received,
                )
            )

        if len(rated) < 2:
            retryable = any(failure.retryable for failure in failures.values())
            for participant in rated:
                failures[participant.player_id] = PlayerUpdateFailure(
                    player_id=participant.player_id,
                    match_id=outcome.match_id,
                    kind=ErrorKind.INVALID_INPUT,
                    message="not rated: fewer than two rateable participants",
                    retryable=retryable,
                    old_rating=participant.rating,
                )
            logger.error(
                "match_id=%s not rated: %s of %s participants rateable",
                outcome.match_id,
                len(rated),
                len(outcome.participants),
            )
            return MatchRatingReport(match_id=outcome.match_id, ladder=ladder, updates={}, failures=failures)

        if len(rated) == 2:
            results = compute_pairwise_updates(rated, self.config.rating)
        else:
            results = distribute_multiplayer(rated, self.config.rating)

        updates: dict[str, RatingUpdateResult] = {}
        for participant in rated:
            if only_players is not None and participant.player_id not in only_players:
                continue
            result = results[participant.player_id]
            try:
                updates[participant.player_id] = self._persist_player(
                    outcome,
                    participant,
                    rated,
                    records[participant.player_id],
                    result,
                    now=now,
                    timeout=timeout,
                )
            except Exception as exc:
                failures[participant.player_id] = self._failure(
                    outcome,
                    participant.player_id,
                    exc,
                    old_rating=result.old_rating,
                    attempted_rating=result.new_rating,
                )

        return MatchRatingReport(match_id=outcome.match_id, ladder=ladder, updates=updates, failures=failures)

    def _load_record(self, player_id: str, ladder: Ladder, *, timeout: float | None) -> PlayerRatingRecord:
        for attempt in build_retrying(self.config.retry, wait=self.retry_wait):
            with attempt:
                try:
                    return self.store.get_record(player_id, ladder, timeout=timeout)
                except RecordNotFoundError:
                    return PlayerRatingRecord.initial(
                        player_id,
                        ladder,
                        rating=self.config.rating.initial_rating,
                        rating_deviation=self.deviation.initial_rd,
                    )
        raise AssertionError("unreachable: tenacity reraises the final error")

    def _persist_player(
        self,
        outcome: MatchOutcome,
        participant: RatedParticipant,
        rated: list[RatedParticipant],
        record: PlayerRatingRecord,
        result: RatingUpdateResult,
        *,
        now: datetime,
        timeout: float | None,
    ) -> RatingUpdateResult:
        current = record
        for attempt in build_retrying(self.config.retry, wait=self.retry_wait):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    current = self._load_record(participant.player_id, outcome.ladder, timeout=timeout)
                updated, applied = apply_rating_result(current, result, now=now, engine_config=self.config)
                history = RatingHistoryEntry(
                    match_id=outcome.match_id,
                    player_id=participant.player_id,
                    ladder=outcome.ladder,
                    old_rating=applied.old_rating,
                    new_rating=applied.new_rating,
                    rating_change=applied.rating_change,
                    expected_score=applied.expected_score,
                    actual_score=applied.actual_score,
                    coefficient=applied.coefficient,
                    coefficient_tier=applied.coefficient_tier,
                    is_placement=applied.is_placement,
                    streak_bonus=applied.streak_bonus,
                    margin_bonus=applied.margin_bonus,
                    placement=participant.placement,
                    player_count=len(rated),
                    opponent_ids=tuple(other.player_id for other in rated if other.player_id != participant.player_id),
                    opponent_mean_rating=mean_opponent_rating(participant.player_id, rated),
                    confidence_level=confidence_level(updated.rating_deviation, self.deviation),
                    created_at=now,
                )
                self.store.save_record(updated, history, timeout=timeout)
                logger.info(
                    "Applied match_id=%s player_id=%s ladder=%s rating %s -> %s (%+d, %s)",
                    outcome.match_id,
                    participant.player_id,
                    outcome.ladder.value,
                    applied.old_rating,
                    applied.new_rating,
                    applied.rating_change,
                    applied.coefficient_tier,
                )
                return applied
        raise AssertionError("unreachable: tenacity reraises the final error")

    def _failure(
        self,
        outcome: MatchOutcome,
        player_id: str,
        exc: Exception,
        *,
        old_rating: int | None = None,
        attempted_rating: int | None = None,
    ) -> PlayerUpdateFailure:
        # Store implementations may leak driver errors; report them per player.
        error = exc if isinstance(exc, RatingEngineError) else PersistenceError(f"{type(exc).__name__}: {exc}")
        logger.error(
            "Rating update failed match_id=%s player_id=%s kind=%s old_rating=%s attempted_rating=%s: %s",
            outcome.match_id,
            player_id,
            error.kind.value,
            old_rating,
            attempted_rating,
            error,
            exc_info=None if error is exc else exc,
        )
        return PlayerUpdateFailure(
            player_id=player_id,
            match_id=outcome.match_id,
            kind=error.kind,
            message=str(error),
            retryable=error.retryable,
            old_rating=old_rating,
            attempted_rating=attempted_rating,
        )


__all__ = [
    "MatchRatingReport",
    "PlayerUpdateFailure",
    "RatingUpdateOrchestrator",
    "apply_rating_result",
    "validate_outcome",
    "validate_record",
]
