"""Tier/division classification and rating-deviation (confidence) helpers."""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from math import ceil, floor

_ROMAN_DIVISIONS = ("I", "II", "III", "IV", "V")


@dataclass(frozen=True)
class TierBand:
    """One tier of the ladder; `max_rating=None` marks the open-ended top tier."""

    name: str
    min_rating: int
    max_rating: int | None = None
    divisions: int = 3

    def division_labels(self) -> tuple[str, ...]:
        """Labels from lowest to highest division, e.g. Gold III, Gold II, Gold I."""
        if self.divisions == 1:
            return (self.name,)
        return tuple(
            f"{self.name} {_ROMAN_DIVISIONS[index]}" for index in reversed(range(self.divisions))
        )

    def division_size(self) -> float | None:
        if self.max_rating is None:
            return None
        return (self.max_rating - self.min_rating) / float(self.divisions)

    def division_index(self, rating: float) -> int:
        size = self.division_size()
        if size is None or size <= 0.0:
            return 0
        index = floor((rating - self.min_rating) / size)
        return max(0, min(index, self.divisions - 1))


DEFAULT_TIER_BANDS: tuple[TierBand, ...] = (
    TierBand("Bronze", 0, 999),
    TierBand("Silver", 1000, 1499),
    TierBand("Gold", 1500, 1999),
    TierBand("Platinum", 2000, 2499),
    TierBand("Diamond", 2500, 2999),
    TierBand("Master", 3000, 3499, divisions=1),
    TierBand("Grandmaster", 3500, 3999, divisions=1),
    TierBand("Legend", 4000, None, divisions=1),
)


@dataclass(frozen=True)
class ConfidenceThreshold:
    min_rating_deviation: float
    label: str


@dataclass(frozen=True)
class DeviationParameters:
    initial_rd: float = 350.0
    min_rd: float = 50.0
    max_rd: float = 350.0
    decay_per_day: float = 1.0
    shrink_per_game: float = 10.0
    confidence_ladder: tuple[ConfidenceThreshold, ...] = (
        ConfidenceThreshold(250.0, "Uncertain"),
        ConfidenceThreshold(150.0, "Developing"),
        ConfidenceThreshold(100.0, "Moderate"),
    )
    confident_label: str = "Confident"


@dataclass(frozen=True)
class TierClassification:
    tier: str
    division: str
    band: TierBand


@dataclass(frozen=True)
class RankProgression:
    current_tier: str
    current_division: str
    next_tier: str | None
    next_division: str | None
    rating_to_next: int
    progress_percent: float


@dataclass(frozen=True)
class RatingDisplay:
    rating: int
    tier: str
    division: str
    confidence_level: str
    is_placement: bool
    placement_progress: str | None


def _sorted_bands(bands: Sequence[TierBand]) -> list[TierBand]:
    if not bands:
        raise ValueError("at least one tier band is required")
    return sorted(bands, key=lambda band: band.min_rating)


def classify(rating: float, bands: Sequence[TierBand] = DEFAULT_TIER_BANDS) -> TierClassification:
    """Map a rating to its tier and division.

    Bands are looked up by floor. Ratings under the lowest floor fall into the
    lowest division of the lowest tier.
    """
    ordered = _sorted_bands(bands)
    position = bisect_right([band.min_rating for band in ordered], rating) - 1
    if position < 0:
        band = ordered[0]
        return TierClassification(tier=band.name, division=band.division_labels()[0], band=band)

    band = ordered[position]
    labels = band.division_labels()
    return TierClassification(
        tier=band.name,
        division=labels[band.division_index(rating)],
        band=band,
    )


def rank_progression(rating: float, bands: Sequence[TierBand] = DEFAULT_TIER_BANDS) -> RankProgression:
    """How far a rating is from the next division or tier."""
    ordered = _sorted_bands(bands)
    current = classify(rating, ordered)
    band = current.band
    index = band.division_index(rating) if rating >= band.min_rating else 0
    labels = band.division_labels()

    if index < band.divisions - 1:
        size = band.division_size() or 0.0
        floor_rating = band.min_rating + (index * size)
        next_floor = band.min_rating + ((index + 1) * size)
        return RankProgression(
            current_tier=band.name,
            current_division=current.division,
            next_tier=band.name,
            next_division=labels[index + 1],
            rating_to_next=max(0, ceil(next_floor - rating)),
            progress_percent=_progress(rating, floor_rating, next_floor),
        )

    band_position = ordered.index(band)
    if band_position == len(ordered) - 1:
        return RankProgression(
            current_tier=band.name,
            current_division=current.division,
            next_tier=None,
            next_division=None,
            rating_to_next=0,
            progress_percent=100.0,
        )

    next_band = ordered[band_position + 1]
    size = band.division_size() or 0.0
    floor_rating = band.min_rating + (index * size)
    return RankProgression(
        current_tier=band.name,
        current_division=current.division,
        next_tier=next_band.name,
        next_division=next_band.division_labels()[0],
        rating_to_next=max(0, ceil(next_band.min_rating - rating)),
        progress_percent=_progress(rating, floor_rating, next_band.min_rating),
    )


def _progress(rating: float, start: float, end: float) -> float:
    if end <= start:
        return 100.0
    return max(0.0, min(100.0, ((rating - start) / (end - start)) * 100.0))


def confidence_level(rating_deviation: float, params: DeviationParameters = DeviationParameters()) -> str:
    for threshold in params.confidence_ladder:
        if rating_deviation >= threshold.min_rating_deviation:
            return threshold.label
    return params.confident_label


def clamp_rating_deviation(rating_deviation: float, params: DeviationParameters) -> float:
    return max(params.min_rd, min(rating_deviation, params.max_rd))


def decay_rating_deviation(
    rating_deviation: float,
    days_since_last_game: int,
    params: DeviationParameters = DeviationParameters(),
) -> float:
    """Grow uncertainty with inactivity, capped at MAX_RD."""
    grown = rating_deviation + (max(days_since_last_game, 0) * params.decay_per_day)
    return clamp_rating_deviation(grown, params)


def shrink_rating_deviation(
    rating_deviation: float,
    params: DeviationParameters = DeviationParameters(),
) -> float:
    """Tighten uncertainty after a completed game, floored at MIN_RD."""
    return clamp_rating_deviation(rating_deviation - params.shrink_per_game, params)


def days_inactive(last_game_at: datetime | None, now: datetime) -> int:
    """Whole days elapsed since the last game; 0 for a player who never played."""
    if last_game_at is None:
        return 0
    elapsed_days = (now - last_game_at).total_seconds() / 86_400.0
    return max(0, floor(elapsed_days))


def describe_rating(
    rating: int,
    games_played: int,
    rating_deviation: float,
    *,
    placement_games: int = 10,
    bands: Sequence[TierBand] = DEFAULT_TIER_BANDS,
    deviation: DeviationParameters = DeviationParameters(),
) -> RatingDisplay:
    classification = classify(rating, bands)
    is_placement = games_played < placement_games
    return RatingDisplay(
        rating=rating,
        tier=classification.tier,
        division=classification.division,
        confidence_level=confidence_level(rating_deviation, deviation),
        is_placement=is_placement,
        placement_progress=f"{games_played}/{placement_games}" if is_placement else None,
    )


def format_rating_change(
    rating_change: int,
    *,
    is_placement: bool = False,
    margin_bonus: int | None = None,
    confidence: str | None = None,
    confident_label: str = "Confident",
) -> str:
    message = f"{'+' if rating_change > 0 else ''}{rating_change}"
    if is_placement:
        message += " (Placement)"
    if margin_bonus:
        message += f" [+{margin_bonus} margin bonus]"
    if confidence and confidence != confident_label:
        message += f" ({confidence})"
    return message


__all__ = [
    "ConfidenceThreshold",
    "DEFAULT_TIER_BANDS",
    "DeviationParameters",
    "RankProgression",
    "RatingDisplay",
    "TierBand",
    "TierClassification",
    "classify",
    "clamp_rating_deviation",
    "confidence_level",
    "days_inactive",
    "decay_rating_deviation",
    "describe_rating",
    "format_rating_change",
    "rank_progression",
    "shrink_rating_deviation",
]
