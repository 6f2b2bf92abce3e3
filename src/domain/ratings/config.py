"""Load rating engine definitions from TOML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from domain.config_base import BaseSystemConfig, load_system_configs, parse_system_metadata, read_toml
from domain.matchmaking import MatchmakingParameters
from domain.ratings.elo.calculator import RatingParameters
from domain.ratings.retry import RetryPolicy
from domain.ratings.tiers import (
    DEFAULT_TIER_BANDS,
    ConfidenceThreshold,
    DeviationParameters,
    TierBand,
)


@dataclass(frozen=True)
class EngineConfig(BaseSystemConfig):
    """Configuration for one rating engine deployment."""

    rating: RatingParameters = field(default_factory=RatingParameters)
    deviation: DeviationParameters = field(default_factory=DeviationParameters)
    matchmaking: MatchmakingParameters = field(default_factory=MatchmakingParameters)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    timeout_seconds: float | None = 5.0
    tiers: tuple[TierBand, ...] = DEFAULT_TIER_BANDS

    def as_config_json(self) -> dict[str, Any]:
        return {
            "rating": {
                "initial_rating": self.rating.initial_rating,
                "min_rating": self.rating.min_rating,
                "max_rating": self.rating.max_rating,
                "scale_factor": self.rating.scale_factor,
                "placement_games": self.rating.placement_games,
                "provisional_games": self.rating.provisional_games,
                "high_threshold": self.rating.high_threshold,
                "master_threshold": self.rating.master_threshold,
                "placement_coefficient": self.rating.placement_coefficient,
                "provisional_coefficient": self.rating.provisional_coefficient,
                "normal_coefficient": self.rating.normal_coefficient,
                "high_coefficient": self.rating.high_coefficient,
                "master_coefficient": self.rating.master_coefficient,
                "streak_threshold": self.rating.streak_threshold,
                "streak_unit": self.rating.streak_unit,
                "max_streak_bonus": self.rating.max_streak_bonus,
                "margin_max": self.rating.margin_max,
            },
            "deviation": {
                "initial_rd": self.deviation.initial_rd,
                "min_rd": self.deviation.min_rd,
                "max_rd": self.deviation.max_rd,
                "decay_per_day": self.deviation.decay_per_day,
                "shrink_per_game": self.deviation.shrink_per_game,
                "confident_label": self.deviation.confident_label,
                "confidence": [
                    {"min_rating_deviation": threshold.min_rating_deviation, "label": threshold.label}
                    for threshold in self.deviation.confidence_ladder
                ],
            },
            "matchmaking": {
                "neutral_rating": self.matchmaking.neutral_rating,
                "browse_tolerance": self.matchmaking.browse_tolerance,
                "default_countdown_seconds": self.matchmaking.default_countdown_seconds,
                "default_capacity": self.matchmaking.default_capacity,
            },
            "persistence": {
                "max_attempts": self.retry.max_attempts,
                "wait_min_seconds": self.retry.wait_min_seconds,
                "wait_max_seconds": self.retry.wait_max_seconds,
                "deadline_seconds": self.retry.deadline_seconds,
                "timeout_seconds": self.timeout_seconds,
            },
            "tiers": [
                {
                    "name": band.name,
                    "min_rating": band.min_rating,
                    "max_rating": band.max_rating,
                    "divisions": band.divisions,
                }
                for band in self.tiers
            ],
        }


def default_engine_config() -> EngineConfig:
    return EngineConfig(name="default", description="Built-in defaults", file_path=Path("<defaults>"))


def load_engine_configs(config_dir: Path) -> list[EngineConfig]:
    """Load and validate all engine TOML config files in a directory."""
    return load_system_configs(
        config_dir,
        _parse_engine_config,
        duplicate_name_label="engine",
    )


def load_engine_config(file_path: Path) -> EngineConfig:
    return _parse_engine_config(read_toml(file_path), file_path)


def _parse_engine_config(raw: dict[str, Any], file_path: Path) -> EngineConfig:
    name, description = parse_system_metadata(raw, file_path)

    rating = _parse_rating(raw.get("rating", {}))
    _validate_rating(file_path=file_path, rating=rating)

    deviation = _parse_deviation(raw.get("deviation", {}), file_path)
    _validate_deviation(file_path=file_path, deviation=deviation)

    matchmaking = _parse_matchmaking(raw.get("matchmaking", {}))
    _validate_matchmaking(file_path=file_path, matchmaking=matchmaking)

    persistence_raw = raw.get("persistence", {})
    retry = RetryPolicy(
        max_attempts=int(persistence_raw.get("max_attempts", 3)),
        wait_min_seconds=float(persistence_raw.get("wait_min_seconds", 0.05)),
        wait_max_seconds=float(persistence_raw.get("wait_max_seconds", 1.0)),
        deadline_seconds=_optional_float(persistence_raw.get("deadline_seconds")),
    )
    timeout_seconds = _optional_float(persistence_raw.get("timeout_seconds", 5.0))
    _validate_persistence(file_path=file_path, retry=retry, timeout_seconds=timeout_seconds)

    tiers_raw = raw.get("tiers")
    tiers = DEFAULT_TIER_BANDS if tiers_raw is None else _parse_tiers(tiers_raw, file_path)
    _validate_tiers(file_path=file_path, tiers=tiers)

    return EngineConfig(
        name=name,
        description=description,
        file_path=file_path,
        rating=rating,
        deviation=deviation,
        matchmaking=matchmaking,
        retry=retry,
        timeout_seconds=timeout_seconds,
        tiers=tiers,
    )


def _optional_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _parse_rating(rating_raw: dict[str, Any]) -> RatingParameters:
    defaults = RatingParameters()
    return RatingParameters(
        initial_rating=int(rating_raw.get("initial_rating", defaults.initial_rating)),
        min_rating=int(rating_raw.get("min_rating", defaults.min_rating)),
        max_rating=int(rating_raw.get("max_rating", defaults.max_rating)),
        scale_factor=float(rating_raw.get("scale_factor", defaults.scale_factor)),
        placement_games=int(rating_raw.get("placement_games", defaults.placement_games)),
        provisional_games=int(rating_raw.get("provisional_games", defaults.provisional_games)),
        high_threshold=int(rating_raw.get("high_threshold", defaults.high_threshold)),
        master_threshold=int(rating_raw.get("master_threshold", defaults.master_threshold)),
        placement_coefficient=float(rating_raw.get("placement_coefficient", defaults.placement_coefficient)),
        provisional_coefficient=float(
            rating_raw.get("provisional_coefficient", defaults.provisional_coefficient)
        ),
        normal_coefficient=float(rating_raw.get("normal_coefficient", defaults.normal_coefficient)),
        high_coefficient=float(rating_raw.get("high_coefficient", defaults.high_coefficient)),
        master_coefficient=float(rating_raw.get("master_coefficient", defaults.master_coefficient)),
        streak_threshold=int(rating_raw.get("streak_threshold", defaults.streak_threshold)),
        streak_unit=int(rating_raw.get("streak_unit", defaults.streak_unit)),
        max_streak_bonus=int(rating_raw.get("max_streak_bonus", defaults.max_streak_bonus)),
        margin_max=int(rating_raw.get("margin_max", defaults.margin_max)),
    )


def _parse_deviation(deviation_raw: dict[str, Any], file_path: Path) -> DeviationParameters:
    defaults = DeviationParameters()
    confidence_raw = deviation_raw.get("confidence")
    if confidence_raw is None:
        ladder = defaults.confidence_ladder
    else:
        if not isinstance(confidence_raw, list):
            raise ValueError(f"{file_path}: [[deviation.confidence]] must be an array of tables")
        ladder = tuple(
            ConfidenceThreshold(
                min_rating_deviation=float(entry["min_rating_deviation"]),
                label=str(entry["label"]),
            )
            for entry in confidence_raw
        )

    return DeviationParameters(
        initial_rd=float(deviation_raw.get("initial_rd", defaults.initial_rd)),
        min_rd=float(deviation_raw.get("min_rd", defaults.min_rd)),
        max_rd=float(deviation_raw.get("max_rd", defaults.max_rd)),
        decay_per_day=float(deviation_raw.get("decay_per_day", defaults.decay_per_day)),
        shrink_per_game=float(deviation_raw.get("shrink_per_game", defaults.shrink_per_game)),
        confidence_ladder=ladder,
        confident_label=str(deviation_raw.get("confident_label", defaults.confident_label)),
    )


def _parse_matchmaking(matchmaking_raw: dict[str, Any]) -> MatchmakingParameters:
    defaults = MatchmakingParameters()
    return MatchmakingParameters(
        neutral_rating=float(matchmaking_raw.get("neutral_rating", defaults.neutral_rating)),
        browse_tolerance=float(matchmaking_raw.get("browse_tolerance", defaults.browse_tolerance)),
        default_countdown_seconds=float(
            matchmaking_raw.get("default_countdown_seconds", defaults.default_countdown_seconds)
        ),
        default_capacity=int(matchmaking_raw.get("default_capacity", defaults.default_capacity)),
    )


def _parse_tiers(tiers_raw: Any, file_path: Path) -> tuple[TierBand, ...]:
    if not isinstance(tiers_raw, list) or not tiers_raw:
        raise ValueError(f"{file_path}: [[tiers]] must be a non-empty array of tables")

    bands: list[TierBand] = []
    for entry in tiers_raw:
        name = str(entry.get("name", "")).strip()
        if not name:
            raise ValueError(f"{file_path}: [[tiers]].name is required")
        if "min_rating" not in entry:
            raise ValueError(f"{file_path}: [[tiers]].min_rating is required for tier {name}")
        max_rating = entry.get("max_rating")
        bands.append(
            TierBand(
                name=name,
                min_rating=int(entry["min_rating"]),
                max_rating=None if max_rating is None else int(max_rating),
                divisions=int(entry.get("divisions", 3)),
            )
        )
    return tuple(bands)


def _validate_rating(*, file_path: Path, rating: RatingParameters) -> None:
    if rating.min_rating < 0:
        raise ValueError(f"{file_path}: [rating].min_rating must be >= 0")
    if rating.max_rating <= rating.min_rating:
        raise ValueError(f"{file_path}: [rating].max_rating must be > min_rating")
    if not rating.min_rating <= rating.initial_rating <= rating.max_rating:
        raise ValueError(f"{file_path}: [rating].initial_rating must be between min_rating and max_rating")
    if rating.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [rating].scale_factor must be > 0")
    if rating.placement_games < 0:
        raise ValueError(f"{file_path}: [rating].placement_games must be >= 0")
    if rating.provisional_games < rating.placement_games:
        raise ValueError(f"{file_path}: [rating].provisional_games must be >= placement_games")
    if rating.master_threshold < rating.high_threshold:
        raise ValueError(f"{file_path}: [rating].master_threshold must be >= high_threshold")
    for key in (
        "placement_coefficient",
        "provisional_coefficient",
        "normal_coefficient",
        "high_coefficient",
        "master_coefficient",
    ):
        if getattr(rating, key) <= 0.0:
            raise ValueError(f"{file_path}: [rating].{key} must be > 0")
    if rating.streak_threshold < 1:
        raise ValueError(f"{file_path}: [rating].streak_threshold must be >= 1")
    if rating.streak_unit < 0:
        raise ValueError(f"{file_path}: [rating].streak_unit must be >= 0")
    if rating.max_streak_bonus < 0:
        raise ValueError(f"{file_path}: [rating].max_streak_bonus must be >= 0")
    if rating.margin_max < 0:
        raise ValueError(f"{file_path}: [rating].margin_max must be >= 0")


def _validate_deviation(*, file_path: Path, deviation: DeviationParameters) -> None:
    if deviation.min_rd <= 0.0:
        raise ValueError(f"{file_path}: [deviation].min_rd must be > 0")
    if deviation.max_rd < deviation.min_rd:
        raise ValueError(f"{file_path}: [deviation].max_rd must be >= min_rd")
    if not deviation.min_rd <= deviation.initial_rd <= deviation.max_rd:
        raise ValueError(f"{file_path}: [deviation].initial_rd must be between min_rd and max_rd")
    if deviation.decay_per_day < 0.0:
        raise ValueError(f"{file_path}: [deviation].decay_per_day must be >= 0")
    if deviation.shrink_per_game < 0.0:
        raise ValueError(f"{file_path}: [deviation].shrink_per_game must be >= 0")

    thresholds = [threshold.min_rating_deviation for threshold in deviation.confidence_ladder]
    if any(later >= earlier for earlier, later in zip(thresholds, thresholds[1:])):
        raise ValueError(
            f"{file_path}: [[deviation.confidence]] thresholds must be strictly descending, got {thresholds}"
        )


def _validate_matchmaking(*, file_path: Path, matchmaking: MatchmakingParameters) -> None:
    if matchmaking.neutral_rating <= 0.0:
        raise ValueError(f"{file_path}: [matchmaking].neutral_rating must be > 0")
    if matchmaking.browse_tolerance < 0.0:
        raise ValueError(f"{file_path}: [matchmaking].browse_tolerance must be >= 0")
    if matchmaking.default_countdown_seconds <= 0.0:
        raise ValueError(f"{file_path}: [matchmaking].default_countdown_seconds must be > 0")
    if matchmaking.default_capacity < 2:
        raise ValueError(f"{file_path}: [matchmaking].default_capacity must be >= 2")


def _validate_persistence(*, file_path: Path, retry: RetryPolicy, timeout_seconds: float | None) -> None:
    if retry.max_attempts < 1:
        raise ValueError(f"{file_path}: [persistence].max_attempts must be >= 1")
    if retry.wait_min_seconds < 0.0:
        raise ValueError(f"{file_path}: [persistence].wait_min_seconds must be >= 0")
    if retry.wait_max_seconds < retry.wait_min_seconds:
        raise ValueError(f"{file_path}: [persistence].wait_max_seconds must be >= wait_min_seconds")
    if retry.deadline_seconds is not None and retry.deadline_seconds <= 0.0:
        raise ValueError(f"{file_path}: [persistence].deadline_seconds must be > 0")
    if timeout_seconds is not None and timeout_seconds <= 0.0:
        raise ValueError(f"{file_path}: [persistence].timeout_seconds must be > 0")


def _validate_tiers(*, file_path: Path, tiers: tuple[TierBand, ...]) -> None:
    floors = [band.min_rating for band in tiers]
    if floors != sorted(floors) or len(floors) != len(set(floors)):
        raise ValueError(f"{file_path}: [[tiers]] must be listed by strictly ascending min_rating")
    for index, band in enumerate(tiers):
        if not 1 <= band.divisions <= 5:
            raise ValueError(f"{file_path}: [[tiers]].divisions must be between 1 and 5 for tier {band.name}")
        if band.max_rating is None:
            if index != len(tiers) - 1:
                raise ValueError(f"{file_path}: only the last tier may omit max_rating, got {band.name}")
            if band.divisions != 1:
                raise ValueError(f"{file_path}: open-ended tier {band.name} must have a single division")
            continue
        if band.max_rating < band.min_rating:
            raise ValueError(f"{file_path}: [[tiers]].max_rating must be >= min_rating for tier {band.name}")


__all__ = [
    "EngineConfig",
    "default_engine_config",
    "load_engine_config",
    "load_engine_configs",
]
