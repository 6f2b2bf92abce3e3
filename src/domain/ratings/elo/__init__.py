"""Elo rating modules."""

from domain.ratings.elo.calculator import (
    CoefficientTier,
    RatingParameters,
    calculate_expected_score,
    compute_update,
)
from domain.ratings.elo.multiplayer import compute_pairwise_updates, distribute_multiplayer

__all__ = [
    "CoefficientTier",
    "RatingParameters",
    "calculate_expected_score",
    "compute_pairwise_updates",
    "compute_update",
    "distribute_multiplayer",
]
