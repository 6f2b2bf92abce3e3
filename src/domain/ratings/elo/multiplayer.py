"""Free-for-all Elo distribution via round-robin pairwise comparisons."""

from __future__ import annotations

from collections.abc import Sequence

from domain.ratings.common import MarginInputs, RatedParticipant, RatingUpdateResult
from domain.ratings.elo.calculator import (
    RatingParameters,
    calculate_margin_bonus,
    clamp_rating,
    compute_update,
    round_half_up,
    select_coefficient,
)
from domain.ratings.errors import InvalidInputError


def margin_inputs_for(participants: Sequence[RatedParticipant]) -> MarginInputs | None:
    """Winner vs runner-up vote gap over all votes cast; None without vote data."""
    ordered = sorted(participants, key=lambda participant: participant.placement)
    if len(ordered) < 2 or any(participant.votes_received is None for participant in ordered):
        return None
    return MarginInputs(
        winner_votes=int(ordered[0].votes_received or 0),
        second_place_votes=int(ordered[1].votes_received or 0),
        total_votes=sum(int(participant.votes_received or 0) for participant in ordered),
    )


def compute_pairwise_updates(
    participants: Sequence[RatedParticipant],
    params: RatingParameters,
) -> dict[str, RatingUpdateResult]:
    """Two-player path: the better placement wins, margin goes to the winner."""
    if len(participants) != 2:
        raise InvalidInputError(f"pairwise path needs exactly 2 participants, got {len(participants)}")
    winner, loser = sorted(participants, key=lambda participant: participant.placement)
    _validate_distinct_placements((winner, loser))

    return {
        winner.player_id: compute_update(
            player_rating=winner.rating,
            opponent_rating=loser.rating,
            won=True,
            games_played=winner.games_played,
            streak=winner.streak,
            margin=margin_inputs_for(participants),
            params=params,
        ),
        loser.player_id: compute_update(
            player_rating=loser.rating,
            opponent_rating=winner.rating,
            won=False,
            games_played=loser.games_played,
            streak=loser.streak,
            params=params,
        ),
    }


def distribute_multiplayer(
    participants: Sequence[RatedParticipant],
    params: RatingParameters,
) -> dict[str, RatingUpdateResult]:
    """Rate an N-player result as C(N, 2) pairwise games scaled by 1/(N-1).

    Each pair is rated with the better-placed player as winner, streak bonus
    included, so any player who beats someone carries a share of it. Only the
    outright winner earns the margin bonus, added once after accumulation.
    """
    if len(participants) == 2:
        return compute_pairwise_updates(participants, params)
    if len(participants) < 2:
        raise InvalidInputError(f"need at least 2 participants, got {len(participants)}")

    ordered = sorted(participants, key=lambda participant: participant.placement)
    _validate_distinct_placements(ordered)

    player_count = len(ordered)
    comparisons = float(player_count - 1)
    accumulated = {participant.player_id: 0.0 for participant in ordered}
    expected_totals = {participant.player_id: 0.0 for participant in ordered}
    streak_totals = {participant.player_id: 0.0 for participant in ordered}

    for i, better in enumerate(ordered):
        for worse in ordered[i + 1 :]:
            better_update = compute_update(
                player_rating=better.rating,
                opponent_rating=worse.rating,
                won=True,
                games_played=better.games_played,
                streak=better.streak,
                params=params,
            )
            worse_update = compute_update(
                player_rating=worse.rating,
                opponent_rating=better.rating,
                won=False,
                games_played=worse.games_played,
                streak=worse.streak,
                params=params,
            )
            accumulated[better.player_id] += better_update.rating_change / comparisons
            accumulated[worse.player_id] += worse_update.rating_change / comparisons
            expected_totals[better.player_id] += better_update.expected_score
            expected_totals[worse.player_id] += worse_update.expected_score
            streak_totals[better.player_id] += better_update.streak_bonus / comparisons

    winner = ordered[0]
    margin = margin_inputs_for(ordered)
    winner_margin_bonus = calculate_margin_bonus(margin, params) if margin is not None else None

    results: dict[str, RatingUpdateResult] = {}
    for index, participant in enumerate(ordered):
        is_winner = participant.player_id == winner.player_id
        total_change = round_half_up(accumulated[participant.player_id])
        if is_winner and winner_margin_bonus is not None:
            total_change += winner_margin_bonus

        new_rating = clamp_rating(participant.rating + total_change, params)
        tier = select_coefficient(
            rating=participant.rating,
            games_played=participant.games_played,
            params=params,
        )
        results[participant.player_id] = RatingUpdateResult(
            old_rating=participant.rating,
            new_rating=new_rating,
            rating_change=new_rating - participant.rating,
            expected_score=expected_totals[participant.player_id] / comparisons,
            actual_score=(player_count - 1 - index) / comparisons,
            coefficient=tier.coefficient,
            coefficient_tier=tier.name,
            is_placement=participant.games_played < params.placement_games,
            win_streak=participant.streak.win_streak + 1 if is_winner else 0,
            loss_streak=0 if is_winner else participant.streak.loss_streak + 1,
            streak_bonus=round_half_up(streak_totals[participant.player_id]),
            margin_bonus=winner_margin_bonus if is_winner else None,
        )
    return results


def mean_opponent_rating(participant_id: str, participants: Sequence[RatedParticipant]) -> float:
    opponents = [participant.rating for participant in participants if participant.player_id != participant_id]
    if not opponents:
        return 0.0
    return sum(opponents) / float(len(opponents))


def _validate_distinct_placements(ordered: Sequence[RatedParticipant]) -> None:
    placements = [participant.placement for participant in ordered]
    if len(placements) != len(set(placements)):
        raise InvalidInputError(f"placements must be distinct, got {placements}")


__all__ = [
    "compute_pairwise_updates",
    "distribute_multiplayer",
    "margin_inputs_for",
    "mean_opponent_rating",
]
