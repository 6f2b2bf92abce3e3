"""Unit tests for multiplayer (free-for-all) rating distribution."""

from __future__ import annotations

import pytest

from domain.ratings.common import RatedParticipant, StreakState
from domain.ratings.elo.calculator import RatingParameters, compute_update
from domain.ratings.elo.multiplayer import (
    compute_pairwise_updates,
    distribute_multiplayer,
    margin_inputs_for,
    mean_opponent_rating,
)
from domain.ratings.errors import InvalidInputError

PARAMS = RatingParameters()


def _participant(
    player_id: str,
    placement: int,
    *,
    rating: int = 1500,
    games_played: int = 50,
    win_streak: int = 0,
    votes: int | None = None,
) -> RatedParticipant:
    return RatedParticipant(
        player_id=player_id,
        rating=rating,
        games_played=games_played,
        placement=placement,
        streak=StreakState(win_streak=win_streak),
        votes_received=votes,
    )


def test_three_even_players_split_by_placement() -> None:
    results = distribute_multiplayer(
        [_participant("c", 3), _participant("a", 1), _participant("b", 2)],
        PARAMS,
    )

    assert results["a"].rating_change == 16
    assert results["b"].rating_change == 0
    assert results["c"].rating_change == -16
    assert results["a"].actual_score == pytest.approx(1.0)
    assert results["b"].actual_score == pytest.approx(0.5)
    assert results["c"].actual_score == pytest.approx(0.0)
    for result in results.values():
        assert result.expected_score == pytest.approx(0.5)


def test_only_outright_winner_gets_win_streak_and_margin() -> None:
    results = distribute_multiplayer(
        [
            _participant("a", 1, votes=6),
            _participant("b", 2, votes=2, win_streak=4),
            _participant("c", 3, votes=2),
        ],
        PARAMS,
    )

    assert results["a"].margin_bonus == 2
    assert results["a"].rating_change == 18
    assert (results["a"].win_streak, results["a"].loss_streak) == (1, 0)
    assert results["b"].margin_bonus is None
    assert (results["b"].win_streak, results["b"].loss_streak) == (0, 1)
    assert results["b"].streak_bonus == 2
    assert results["b"].rating_change == 2
    assert results["c"].streak_bonus == 0
    assert (results["c"].win_streak, results["c"].loss_streak) == (0, 1)


def test_winner_streak_bonus_is_not_diluted() -> None:
    results = distribute_multiplayer(
        [_participant("a", 1, win_streak=3), _participant("b", 2), _participant("c", 3)],
        PARAMS,
    )

    assert results["a"].streak_bonus == 2
    assert results["a"].rating_change == 18


def test_two_players_match_pairwise_calculator() -> None:
    winner = _participant("a", 1, rating=1400, games_played=12, win_streak=3, votes=4)
    loser = _participant("b", 2, rating=1650, games_played=80, votes=1)

    distributed = distribute_multiplayer([loser, winner], PARAMS)
    pairwise = compute_pairwise_updates([winner, loser], PARAMS)
    direct = compute_update(
        player_rating=1400,
        opponent_rating=1650,
        won=True,
        games_played=12,
        streak=StreakState(win_streak=3),
        margin=margin_inputs_for([winner, loser]),
        params=PARAMS,
    )

    assert distributed == pairwise
    assert distributed["a"] == direct


def test_large_lobby_changes_are_normalized() -> None:
    participants = [
        _participant(f"p{placement}", placement, rating=1000 + (placement * 25))
        for placement in range(1, 13)
    ]
    results = distribute_multiplayer(participants, PARAMS)

    assert len(results) == 12
    for result in results.values():
        assert abs(result.rating_change) <= PARAMS.normal_coefficient
        assert PARAMS.min_rating <= result.new_rating <= PARAMS.max_rating
    assert results["p1"].rating_change > 0
    assert results["p12"].rating_change < 0


def test_margin_inputs_need_votes_for_everyone() -> None:
    assert margin_inputs_for([_participant("a", 1, votes=3), _participant("b", 2)]) is None

    margin = margin_inputs_for(
        [_participant("b", 2, votes=1), _participant("a", 1, votes=5), _participant("c", 3, votes=0)]
    )
    assert margin is not None
    assert (margin.winner_votes, margin.second_place_votes, margin.total_votes) == (5, 1, 6)


def test_duplicate_placements_are_rejected() -> None:
    with pytest.raises(InvalidInputError, match="distinct"):
        distribute_multiplayer([_participant("a", 1), _participant("b", 1), _participant("c", 2)], PARAMS)


def test_single_participant_is_rejected() -> None:
    with pytest.raises(InvalidInputError, match="at least 2"):
        distribute_multiplayer([_participant("a", 1)], PARAMS)


def test_mean_opponent_rating_excludes_self() -> None:
    participants = [
        _participant("a", 1, rating=1000),
        _participant("b", 2, rating=1200),
        _participant("c", 3, rating=1400),
    ]

    assert mean_opponent_rating("a", participants) == pytest.approx(1300.0)
