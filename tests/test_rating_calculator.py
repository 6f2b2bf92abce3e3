"""Unit tests for one-on-one Elo rating updates."""

from __future__ import annotations

import pytest

from domain.ratings.common import MarginInputs, StreakState
from domain.ratings.elo.calculator import (
    RatingParameters,
    calculate_expected_score,
    calculate_margin_bonus,
    calculate_streak_bonus,
    compute_update,
    round_half_up,
    select_coefficient,
)
from domain.ratings.errors import InvalidInputError

PARAMS = RatingParameters()


def test_even_match_moves_both_players_by_sixteen() -> None:
    winner = compute_update(player_rating=1500, opponent_rating=1500, won=True, games_played=50)
    loser = compute_update(player_rating=1500, opponent_rating=1500, won=False, games_played=50)

    assert winner.expected_score == pytest.approx(0.5)
    assert winner.coefficient == pytest.approx(32.0)
    assert winner.rating_change == 16
    assert winner.new_rating == 1516
    assert loser.rating_change == -16
    assert loser.new_rating == 1484
    assert winner.is_placement is False


def test_placement_upset_uses_placement_coefficient() -> None:
    result = compute_update(player_rating=1200, opponent_rating=2000, won=True, games_played=5)

    assert result.is_placement is True
    assert result.coefficient_tier == "placement"
    assert result.rating_change > 40


def test_dominant_win_adds_streak_and_margin_bonus() -> None:
    baseline = compute_update(player_rating=1500, opponent_rating=1500, won=True, games_played=50)
    dominant = compute_update(
        player_rating=1500,
        opponent_rating=1500,
        won=True,
        games_played=50,
        streak=StreakState(win_streak=5),
        margin=MarginInputs(winner_votes=5, second_place_votes=0, total_votes=5),
    )

    assert dominant.streak_bonus == 6
    assert dominant.margin_bonus == 5
    assert dominant.rating_change == baseline.rating_change + 11


def test_expected_scores_are_symmetric() -> None:
    for rating, opponent in ((1500, 1500), (1200, 2000), (100, 4000), (2450, 2390)):
        forward = calculate_expected_score(rating, opponent)
        backward = calculate_expected_score(opponent, rating)
        assert forward + backward == pytest.approx(1.0)
        assert 0.0 < forward < 1.0


def test_ratings_stay_within_bounds() -> None:
    floor_case = compute_update(player_rating=110, opponent_rating=110, won=False, games_played=50)
    ceiling_case = compute_update(player_rating=3995, opponent_rating=3995, won=True, games_played=50)
    far_underdog = compute_update(player_rating=150, opponent_rating=2000, won=False, games_played=50)

    assert floor_case.new_rating == PARAMS.min_rating
    assert floor_case.rating_change == -10
    assert ceiling_case.new_rating == PARAMS.max_rating
    assert ceiling_case.rating_change == 5
    assert far_underdog.new_rating >= PARAMS.min_rating


def test_coefficient_ladder_prefers_experience_over_rating() -> None:
    def tier(rating: int, games_played: int) -> str:
        return select_coefficient(rating=rating, games_played=games_played, params=PARAMS).name

    assert tier(2500, 5) == "placement"
    assert tier(2500, 20) == "provisional"
    assert tier(2500, 50) == "master"
    assert tier(2100, 50) == "high"
    assert tier(1500, 50) == "normal"
    assert tier(2000, 30) == "high"
    assert tier(2400, 30) == "master"

    coefficients = [row.coefficient for row in PARAMS.coefficient_ladder()]
    placement, provisional, master, high, normal = coefficients
    assert placement > provisional > normal > high > master


def test_streak_bonus_is_monotonic_and_capped() -> None:
    bonuses = [calculate_streak_bonus(streak, PARAMS) for streak in range(0, 20)]

    assert bonuses[:3] == [0, 0, 0]
    assert bonuses[3] == 2
    assert bonuses[4] == 4
    assert all(later >= earlier for earlier, later in zip(bonuses, bonuses[1:]))
    assert max(bonuses) == PARAMS.max_streak_bonus
    assert calculate_streak_bonus(1000, PARAMS) == PARAMS.max_streak_bonus


def test_margin_bonus_bounds() -> None:
    assert calculate_margin_bonus(MarginInputs(5, 0, 5), PARAMS) == PARAMS.margin_max
    assert calculate_margin_bonus(MarginInputs(12, 0, 40), PARAMS) == 2
    assert calculate_margin_bonus(MarginInputs(0, 0, 0), PARAMS) == 0
    assert calculate_margin_bonus(MarginInputs(3, 3, 6), PARAMS) == 0
    assert calculate_margin_bonus(MarginInputs(4, 2, 10), PARAMS) == 1

    for winner_votes in range(0, 11):
        for second_votes in range(0, 11):
            bonus = calculate_margin_bonus(
                MarginInputs(winner_votes, second_votes, winner_votes + second_votes),
                PARAMS,
            )
            assert 0 <= bonus <= PARAMS.margin_max


def test_negative_votes_are_rejected() -> None:
    with pytest.raises(InvalidInputError, match="vote counts"):
        calculate_margin_bonus(MarginInputs(winner_votes=2, second_place_votes=1, total_votes=-1), PARAMS)


def test_streaks_are_mutually_exclusive_after_update() -> None:
    win = compute_update(
        player_rating=1500,
        opponent_rating=1500,
        won=True,
        games_played=50,
        streak=StreakState(loss_streak=4),
    )
    loss = compute_update(
        player_rating=1500,
        opponent_rating=1500,
        won=False,
        games_played=50,
        streak=StreakState(win_streak=7),
    )

    assert (win.win_streak, win.loss_streak) == (1, 0)
    assert (loss.win_streak, loss.loss_streak) == (0, 1)
    assert loss.streak_bonus == 0
    assert loss.margin_bonus is None


def test_loser_never_receives_bonuses() -> None:
    result = compute_update(
        player_rating=1500,
        opponent_rating=1500,
        won=False,
        games_played=50,
        streak=StreakState(win_streak=0, loss_streak=2),
        margin=MarginInputs(5, 0, 5),
    )

    assert result.rating_change == -16
    assert result.margin_bonus is None


def test_invalid_calculator_inputs_raise() -> None:
    with pytest.raises(InvalidInputError, match="games_played"):
        compute_update(player_rating=1500, opponent_rating=1500, won=True, games_played=-1)
    with pytest.raises(InvalidInputError, match="streaks"):
        compute_update(
            player_rating=1500,
            opponent_rating=1500,
            won=True,
            games_played=3,
            streak=StreakState(win_streak=-2),
        )
    with pytest.raises(InvalidInputError, match="finite"):
        compute_update(player_rating=1500, opponent_rating=float("nan"), won=True, games_played=3)


def test_round_half_up() -> None:
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(-0.5) == 0
    assert round_half_up(-1.6) == -2
