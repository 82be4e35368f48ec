"""Tests for per-player rating state and performance estimation."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from domain.common import PromotionEvent
from domain.protocol import Regime
from domain.ratings.state import (
    EstimationGame,
    PlayerRatingState,
    PromotionLedger,
    estimate_performance_rating,
    estimation_weight,
)

WINDOW = {
    "long_window_games": 12,
    "long_window_divisor": 6.0,
    "short_window_games": 6,
    "short_window_multiplier": 2.0,
}


def _games(opponent_rating: float, scores: list[float]) -> list[EstimationGame]:
    return [
        EstimationGame(opponent_rating=opponent_rating, score=score, weight=estimation_weight(opponent_rating))
        for score in scores
    ]


def test_estimation_weight_favours_strong_opponents() -> None:
    assert estimation_weight(500.0) == pytest.approx(1.0)
    assert estimation_weight(4000.0) == pytest.approx(2.0)


def test_perfect_record_is_capped_above_strongest_win() -> None:
    assert estimate_performance_rating(_games(2000.0, [1.0] * 12)) == pytest.approx(2150.0)


def test_winless_record_is_floored_below_weakest_loss() -> None:
    assert estimate_performance_rating(_games(1500.0, [0.0] * 12)) == pytest.approx(1350.0)


def test_even_record_matches_average_opponent() -> None:
    assert estimate_performance_rating(_games(1800.0, [1.0, 0.0] * 6)) == pytest.approx(1800.0)


def test_rating_difference_is_clamped() -> None:
    games = _games(1800.0, [1.0] * 11 + [0.0]) + _games(2400.0, [1.0])
    estimated = estimate_performance_rating(games)

    weight_sum = sum(game.weight for game in games)
    average = sum(game.opponent_rating * game.weight for game in games) / weight_sum
    assert estimated == pytest.approx(average + 200.0)


def test_empty_window_returns_default() -> None:
    assert estimate_performance_rating([], default_rating=1650.0) == pytest.approx(1650.0)


def test_long_window_multiplier_decays_linearly() -> None:
    state = PlayerRatingState(player_id="p", rating=1700.0, initial_rating=1700.0, regime=Regime.DYNAMIC_LONG)

    assert state.is_hidden
    assert state.k_multiplier(**WINDOW) == pytest.approx(3.0)
    state.match_count = 6
    assert state.k_multiplier(**WINDOW) == pytest.approx(2.0)
    state.close_estimation(1800.0)
    assert state.k_multiplier(**WINDOW) == pytest.approx(1.0)
    assert not state.is_hidden
    assert state.estimated_initial_rating == pytest.approx(1800.0)


def test_short_window_is_fixed_then_reverts() -> None:
    state = PlayerRatingState(player_id="p", rating=2100.0, initial_rating=2100.0, regime=Regime.DYNAMIC_SHORT)

    assert not state.is_hidden
    assert state.k_multiplier(**WINDOW) == pytest.approx(2.0)
    state.match_count = 5
    assert state.k_multiplier(**WINDOW) == pytest.approx(2.0)
    state.match_count = 6
    assert state.k_multiplier(**WINDOW) == pytest.approx(1.0)


def test_long_absence_opens_short_window() -> None:
    state = PlayerRatingState(player_id="p", rating=2000.0, initial_rating=2000.0, regime=Regime.ESTABLISHED)
    gap = timedelta(days=730)

    state.record_activity(datetime(2023, 1, 1), return_gap=gap)
    state.record_rated_game(2000.0)
    assert not state.is_dynamic(short_window_games=6)

    state.record_activity(datetime(2025, 6, 1), return_gap=gap)
    assert state.matches_since_return == 0
    assert state.is_dynamic(short_window_games=6)
    assert state.previous_match_time == datetime(2023, 1, 1)

    for _ in range(6):
        state.record_rated_game(2000.0)
    assert not state.is_dynamic(short_window_games=6)


def test_promotion_ledger_consumes_each_event_once() -> None:
    ledger = PromotionLedger()
    event = PromotionEvent(
        effective_date=datetime(2024, 3, 1),
        organization="SWA",
        old_rank="3K",
        new_rank="2K",
    )

    assert ledger.add(event)
    assert not ledger.add(event)
    assert ledger.pop_due(datetime(2024, 2, 1)) == []
    assert ledger.pop_due(datetime(2024, 3, 1)) == [event]
    assert ledger.pop_due(datetime(2024, 4, 1)) == []
