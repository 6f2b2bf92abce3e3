"""Player-level Elo logic for one-on-one outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from math import floor, isfinite

from domain.ratings.common import MarginInputs, RatingUpdateResult, StreakState
from domain.ratings.errors import InvalidInputError


@dataclass(frozen=True)
class CoefficientTier:
    """One row of the coefficient ladder.

    A row matches when the player is still below `max_games_played` (experience
    rows) or at/above `min_rating` (rating rows). A row with neither bound is
    the catch-all.
    """

    name: str
    coefficient: float
    max_games_played: int | None = None
    min_rating: float | None = None

    def matches(self, *, rating: float, games_played: int) -> bool:
        if self.max_games_played is not None and games_played >= self.max_games_played:
            return False
        if self.min_rating is not None and rating < self.min_rating:
            return False
        return True


@dataclass(frozen=True)
class RatingParameters:
    initial_rating: int = 1200
    min_rating: int = 100
    max_rating: int = 4000
    scale_factor: float = 400.0
    placement_games: int = 10
    provisional_games: int = 30
    high_threshold: int = 2000
    master_threshold: int = 2400
    placement_coefficient: float = 60.0
    provisional_coefficient: float = 50.0
    normal_coefficient: float = 32.0
    high_coefficient: float = 20.0
    master_coefficient: float = 16.0
    streak_threshold: int = 3
    streak_unit: int = 2
    max_streak_bonus: int = 10
    margin_max: int = 5

    def coefficient_ladder(self) -> tuple[CoefficientTier, ...]:
        """Coefficient rows in evaluation order; experience rows come first."""
        return (
            CoefficientTier("placement", self.placement_coefficient, max_games_played=self.placement_games),
            CoefficientTier("provisional", self.provisional_coefficient, max_games_played=self.provisional_games),
            CoefficientTier("master", self.master_coefficient, min_rating=self.master_threshold),
            CoefficientTier("high", self.high_coefficient, min_rating=self.high_threshold),
            CoefficientTier("normal", self.normal_coefficient),
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going toward +infinity."""
    return int(floor(value + 0.5))


def clamp_rating(rating: float, params: RatingParameters) -> int:
    return int(max(params.min_rating, min(rating, params.max_rating)))


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float = 400.0) -> float:
    """Compute the Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def select_coefficient(
    *,
    rating: float,
    games_played: int,
    params: RatingParameters,
) -> CoefficientTier:
    for tier in params.coefficient_ladder():
        if tier.matches(rating=rating, games_played=games_played):
            return tier
    raise InvalidInputError(f"No coefficient tier matches rating={rating} games_played={games_played}")


def calculate_streak_bonus(win_streak: int, params: RatingParameters) -> int:
    if win_streak < params.streak_threshold:
        return 0
    bonus = (win_streak - (params.streak_threshold - 1)) * params.streak_unit
    return min(bonus, params.max_streak_bonus)


def calculate_margin_bonus(margin: MarginInputs, params: RatingParameters) -> int:
    _validate_margin(margin)
    if margin.total_votes == 0:
        return 0
    share_gap = (margin.winner_votes - margin.second_place_votes) / margin.total_votes
    bonus = round_half_up(share_gap * params.margin_max)
    return max(0, min(bonus, params.margin_max))


def validate_rating_inputs(
    *,
    rating: float,
    games_played: int,
    streak: StreakState,
) -> None:
    """Raise InvalidInputError for state the calculator cannot rate."""
    if not isfinite(rating):
        raise InvalidInputError(f"rating must be finite, got {rating}")
    if games_played < 0:
        raise InvalidInputError(f"games_played must be >= 0, got {games_played}")
    if streak.win_streak < 0 or streak.loss_streak < 0:
        raise InvalidInputError(
            f"streaks must be >= 0, got win={streak.win_streak} loss={streak.loss_streak}"
        )


def _validate_margin(margin: MarginInputs) -> None:
    if margin.winner_votes < 0 or margin.second_place_votes < 0 or margin.total_votes < 0:
        raise InvalidInputError(
            "vote counts must be >= 0, got "
            f"winner={margin.winner_votes} second={margin.second_place_votes} "
            f"total={margin.total_votes}"
        )


def compute_update(
    *,
    player_rating: int,
    opponent_rating: int,
    won: bool,
    games_played: int,
    streak: StreakState = StreakState(),
    margin: MarginInputs | None = None,
    params: RatingParameters = RatingParameters(),
) -> RatingUpdateResult:
    """Rating change for one player after a one-on-one result."""
    validate_rating_inputs(rating=player_rating, games_played=games_played, streak=streak)
    if not isfinite(opponent_rating):
        raise InvalidInputError(f"opponent_rating must be finite, got {opponent_rating}")

    expected = calculate_expected_score(player_rating, opponent_rating, params.scale_factor)
    actual = 1.0 if won else 0.0
    tier = select_coefficient(rating=player_rating, games_played=games_played, params=params)

    total_change = round_half_up(tier.coefficient * (actual - expected))
    streak_bonus = 0
    margin_bonus: int | None = None
    if won:
        streak_bonus = calculate_streak_bonus(streak.win_streak, params)
        total_change += streak_bonus
        if margin is not None:
            margin_bonus = calculate_margin_bonus(margin, params)
            total_change += margin_bonus

    new_rating = clamp_rating(player_rating + total_change, params)
    return RatingUpdateResult(
        old_rating=player_rating,
        new_rating=new_rating,
        rating_change=new_rating - player_rating,
        expected_score=expected,
        actual_score=actual,
        coefficient=tier.coefficient,
        coefficient_tier=tier.name,
        is_placement=games_played < params.placement_games,
        win_streak=streak.win_streak + 1 if won else 0,
        loss_streak=0 if won else streak.loss_streak + 1,
        streak_bonus=streak_bonus,
        margin_bonus=margin_bonus,
    )


__all__ = [
    "CoefficientTier",
    "RatingParameters",
    "calculate_expected_score",
    "calculate_margin_bonus",
    "calculate_streak_bonus",
    "clamp_rating",
    "compute_update",
    "round_half_up",
    "select_coefficient",
    "validate_rating_inputs",
]
