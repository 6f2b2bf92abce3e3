"""Tests for tier classification, progression and rating-deviation helpers."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from domain.ratings.tiers import (
    DeviationParameters,
    TierBand,
    classify,
    confidence_level,
    days_inactive,
    decay_rating_deviation,
    describe_rating,
    format_rating_change,
    rank_progression,
    shrink_rating_deviation,
)


@pytest.mark.parametrize(
    ("rating", "tier", "division"),
    [
        (-50, "Bronze", "Bronze III"),
        (0, "Bronze", "Bronze III"),
        (999, "Bronze", "Bronze I"),
        (1000, "Silver", "Silver III"),
        (1200, "Silver", "Silver II"),
        (1500, "Gold", "Gold III"),
        (1700, "Gold", "Gold II"),
        (1999, "Gold", "Gold I"),
        (2600, "Diamond", "Diamond III"),
        (3200, "Master", "Master"),
        (3999, "Grandmaster", "Grandmaster"),
        (4000, "Legend", "Legend"),
        (9000, "Legend", "Legend"),
    ],
)
def test_classify_default_bands(rating: int, tier: str, division: str) -> None:
    classification = classify(rating)

    assert classification.tier == tier
    assert classification.division == division


def test_classify_uses_configured_bands() -> None:
    bands = (
        TierBand("Iron", 500, 899, divisions=2),
        TierBand("Steel", 900, None, divisions=1),
    )

    assert classify(100, bands).division == "Iron II"
    assert classify(750, bands).division == "Iron I"
    assert classify(5000, bands).division == "Steel"


def test_rank_progression_within_tier() -> None:
    progression = rank_progression(1200)

    assert progression.current_division == "Silver II"
    assert progression.next_division == "Silver I"
    assert progression.rating_to_next == 133
    assert 0.0 < progression.progress_percent < 100.0


def test_rank_progression_crosses_into_next_tier() -> None:
    progression = rank_progression(1450)

    assert progression.current_division == "Silver I"
    assert progression.next_tier == "Gold"
    assert progression.next_division == "Gold III"
    assert progression.rating_to_next == 50


def test_rank_progression_at_top_tier() -> None:
    progression = rank_progression(4100)

    assert progression.next_tier is None
    assert progression.next_division is None
    assert progression.rating_to_next == 0
    assert progression.progress_percent == pytest.approx(100.0)


@pytest.mark.parametrize(
    ("rating_deviation", "label"),
    [
        (350.0, "Uncertain"),
        (250.0, "Uncertain"),
        (249.9, "Developing"),
        (150.0, "Developing"),
        (100.0, "Moderate"),
        (99.9, "Confident"),
        (50.0, "Confident"),
    ],
)
def test_confidence_levels(rating_deviation: float, label: str) -> None:
    assert confidence_level(rating_deviation) == label


def test_deviation_decay_and_shrink_stay_in_range() -> None:
    params = DeviationParameters()

    assert decay_rating_deviation(300.0, 10, params) == pytest.approx(310.0)
    assert decay_rating_deviation(340.0, 30, params) == pytest.approx(params.max_rd)
    assert decay_rating_deviation(120.0, 0, params) == pytest.approx(120.0)
    assert shrink_rating_deviation(200.0, params) == pytest.approx(190.0)
    assert shrink_rating_deviation(55.0, params) == pytest.approx(params.min_rd)


def test_days_inactive_counts_whole_days() -> None:
    now = datetime(2026, 3, 10, 12, 0, 0)

    assert days_inactive(None, now) == 0
    assert days_inactive(now - timedelta(days=2, hours=23), now) == 2
    assert days_inactive(now - timedelta(days=45), now) == 45
    assert days_inactive(now + timedelta(hours=1), now) == 0


def test_describe_rating_for_placement_player() -> None:
    display = describe_rating(1200, 3, 350.0)

    assert display.division == "Silver II"
    assert display.confidence_level == "Uncertain"
    assert display.is_placement is True
    assert display.placement_progress == "3/10"

    settled = describe_rating(2100, 120, 60.0)
    assert settled.is_placement is False
    assert settled.placement_progress is None
    assert settled.confidence_level == "Confident"


def test_format_rating_change() -> None:
    assert format_rating_change(16) == "+16"
    assert format_rating_change(-16) == "-16"
    assert format_rating_change(0) == "0"
    assert (
        format_rating_change(25, is_placement=True, margin_bonus=3, confidence="Developing")
        == "+25 (Placement) [+3 margin bonus] (Developing)"
    )
    assert format_rating_change(12, confidence="Confident") == "+12"
