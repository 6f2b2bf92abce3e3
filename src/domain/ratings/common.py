"""Shared types for the rating engine and matchmaking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from domain.ratings.protocol import Ladder, RoomStatus


@dataclass(frozen=True)
class StreakState:
    """Consecutive wins/losses before a game; at most one side is non-zero."""

    win_streak: int = 0
    loss_streak: int = 0


@dataclass(frozen=True)
class MarginInputs:
    """Vote counts used for the margin-of-victory bonus."""

    winner_votes: int
    second_place_votes: int
    total_votes: int


@dataclass(frozen=True)
class MatchParticipant:
    """One participant line of a finished match."""

    player_id: str
    placement: int
    votes_received: int | None = None


@dataclass(frozen=True)
class MatchOutcome:
    """Finalized result handed to the orchestrator once a match ends."""

    match_id: str
    participants: tuple[MatchParticipant, ...]
    is_ranked: bool = True

    @property
    def ladder(self) -> Ladder:
        return Ladder.RANKED if self.is_ranked else Ladder.CASUAL

    def by_placement(self) -> tuple[MatchParticipant, ...]:
        """Participants ordered best placement first."""
        return tuple(sorted(self.participants, key=lambda participant: participant.placement))


@dataclass(frozen=True)
class RatedParticipant:
    """Participant joined with the rating state needed to compute an update."""

    player_id: str
    rating: int
    games_played: int
    placement: int
    streak: StreakState = StreakState()
    votes_received: int | None = None


@dataclass(frozen=True)
class RatingUpdateResult:
    """Outcome of one rating computation for one player in one match."""

    old_rating: int
    new_rating: int
    rating_change: int
    expected_score: float
    actual_score: float
    coefficient: float
    coefficient_tier: str
    is_placement: bool
    win_streak: int
    loss_streak: int
    streak_bonus: int = 0
    margin_bonus: int | None = None

    @property
    def won(self) -> bool:
        return self.win_streak > 0


@dataclass(frozen=True)
class PlayerRatingRecord:
    """Persisted rating state for one player on one ladder."""

    player_id: str
    ladder: Ladder
    rating: int
    rating_deviation: float
    peak_rating: int
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    win_streak: int = 0
    loss_streak: int = 0
    last_game_at: datetime | None = None
    version: int = 0

    @classmethod
    def initial(
        cls,
        player_id: str,
        ladder: Ladder,
        *,
        rating: int,
        rating_deviation: float,
    ) -> PlayerRatingRecord:
        """Default record for a player's first game on a ladder."""
        return cls(
            player_id=player_id,
            ladder=ladder,
            rating=rating,
            rating_deviation=rating_deviation,
            peak_rating=rating,
        )

    @property
    def streak(self) -> StreakState:
        return StreakState(win_streak=self.win_streak, loss_streak=self.loss_streak)

    @property
    def is_persisted(self) -> bool:
        return self.version > 0


@dataclass(frozen=True)
class RatingHistoryEntry:
    """Append-only audit row written alongside each record update."""

    match_id: str
    player_id: str
    ladder: Ladder
    old_rating: int
    new_rating: int
    rating_change: int
    expected_score: float
    actual_score: float
    coefficient: float
    coefficient_tier: str
    is_placement: bool
    streak_bonus: int
    margin_bonus: int | None
    placement: int
    player_count: int
    opponent_ids: tuple[str, ...]
    opponent_mean_rating: float
    confidence_level: str
    created_at: datetime


@dataclass(frozen=True)
class RoomCandidate:
    """Room snapshot read for matchmaking; the engine never mutates rooms."""

    room_id: str
    is_ranked: bool
    status: RoomStatus
    capacity: int
    player_ratings: tuple[float | None, ...] = field(default_factory=tuple)
    countdown_started_at: datetime | None = None
    countdown_duration: float | None = None

    @property
    def occupancy(self) -> int:
        return len(self.player_ratings)


__all__ = [
    "MarginInputs",
    "MatchOutcome",
    "MatchParticipant",
    "PlayerRatingRecord",
    "RatedParticipant",
    "RatingHistoryEntry",
    "RatingUpdateResult",
    "RoomCandidate",
    "StreakState",
]
