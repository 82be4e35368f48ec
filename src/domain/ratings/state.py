"""Per-player bookkeeping for one rating replay."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from math import log, sqrt

from domain.common import PromotionEvent
from domain.protocol import Regime

ESTIMATION_EPSILON = 1e-6


@dataclass(frozen=True)
class EstimationGame:
    opponent_rating: float
    score: float
    weight: float


@dataclass(frozen=True)
class PromotionConsumption:
    """Outcome of checking one promotion event for a player."""

    player_id: str
    event: PromotionEvent
    applied_at: datetime
    rating_before: float | None
    rating_floor: float | None
    bonus_amount: float = 0.0

    @property
    def applied(self) -> bool:
        return self.bonus_amount > 0.0


def estimation_weight(opponent_rating: float) -> float:
    """Stronger opponents tell us more about a player's true level."""
    return sqrt(max(1000.0, opponent_rating) / 1000.0)


def estimate_performance_rating(
    games: list[EstimationGame],
    *,
    default_rating: float = 1700.0,
    max_rating_diff: float = 200.0,
    result_margin: float = 150.0,
) -> float:
    """Estimate a player's strength from a window of results.

    The estimate is the weighted average opponent rating shifted by a clamped
    logit of the weighted win rate. It can never exceed the strongest opponent
    beaten by more than ``result_margin`` and can never fall further than
    ``result_margin`` below the weakest opponent lost to. Draws count toward both
    bounds.
    """
    if not games:
        return default_rating

    weight_sum = sum(game.weight for game in games)
    weighted_opponent = sum(game.opponent_rating * game.weight for game in games) / weight_sum
    win_rate = sum(game.score * game.weight for game in games) / weight_sum
    win_rate = min(max(win_rate, ESTIMATION_EPSILON), 1.0 - ESTIMATION_EPSILON)

    rating_diff = 100.0 * log(win_rate / (1.0 - win_rate))
    rating_diff = min(max(rating_diff, -max_rating_diff), max_rating_diff)
    estimated = weighted_opponent + rating_diff

    wins = [game.opponent_rating for game in games if game.score >= 0.5]
    losses = [game.opponent_rating for game in games if game.score <= 0.5]
    if wins:
        estimated = min(estimated, max(wins) + result_margin)
    if losses:
        estimated = max(estimated, min(losses) - result_margin)
    return estimated


@dataclass
class PromotionLedger:
    """Pending promotion events for one player, each consumed at most once."""

    pending: list[PromotionEvent] = field(default_factory=list)
    consumed: list[PromotionConsumption] = field(default_factory=list)
    _seen: set[PromotionEvent] = field(default_factory=set, repr=False)

    def add(self, event: PromotionEvent) -> bool:
        if event in self._seen:
            return False
        self._seen.add(event)
        self.pending.append(event)
        self.pending.sort(key=lambda item: item.effective_date)
        return True

    def pop_due(self, as_of: datetime) -> list[PromotionEvent]:
        due = [event for event in self.pending if event.effective_date <= as_of]
        if due:
            self.pending = [event for event in self.pending if event.effective_date > as_of]
        return due

    def record(self, consumption: PromotionConsumption) -> None:
        self.consumed.append(consumption)


@dataclass
class PlayerRatingState:
    """Mutable per-run accumulator. Never shared between engine runs."""

    player_id: str
    rating: float
    initial_rating: float
    regime: Regime = Regime.DYNAMIC_LONG
    is_pro: bool = False
    explicit_initial_rating: bool = False
    match_count: int = 0
    unrated_match_count: int = 0
    bye_count: int = 0
    first_match_time: datetime | None = None
    last_match_time: datetime | None = None
    previous_match_time: datetime | None = None
    matches_since_return: int | None = None
    has_rating: bool = False
    estimation_open: bool = False
    estimated_initial_rating: float | None = None
    estimation_games: list[EstimationGame] = field(default_factory=list)
    promotions: PromotionLedger = field(default_factory=PromotionLedger)

    def __post_init__(self) -> None:
        if self.regime is Regime.DYNAMIC_LONG:
            self.estimation_open = True

    @property
    def is_active(self) -> bool:
        return self.match_count > 0 or self.bye_count > 0

    @property
    def is_hidden(self) -> bool:
        return self.long_window_open

    @property
    def long_window_open(self) -> bool:
        return self.regime is Regime.DYNAMIC_LONG and self.estimation_open

    def short_window_open(self, window_games: int) -> bool:
        if self.regime is Regime.DYNAMIC_SHORT and self.match_count < window_games:
            return True
        return self.matches_since_return is not None and self.matches_since_return < window_games

    def is_dynamic(self, *, short_window_games: int) -> bool:
        return self.long_window_open or self.short_window_open(short_window_games)

    def k_multiplier(
        self,
        *,
        long_window_games: int,
        long_window_divisor: float,
        short_window_games: int,
        short_window_multiplier: float,
    ) -> float:
        if self.long_window_open:
            return 1.0 + max(0.0, (long_window_games - self.match_count) / long_window_divisor)
        if self.short_window_open(short_window_games):
            return short_window_multiplier
        return 1.0

    def record_activity(self, event_time: datetime, *, return_gap: timedelta) -> None:
        """Advance activity dates and detect a return after a long absence."""
        if self.last_match_time is not None and event_time - self.last_match_time > return_gap:
            self.matches_since_return = 0
        self.previous_match_time = self.last_match_time
        self.last_match_time = event_time
        if self.first_match_time is None:
            self.first_match_time = event_time

    def record_rated_game(self, new_rating: float) -> None:
        self.rating = new_rating
        self.has_rating = True
        self.match_count += 1
        if self.matches_since_return is not None:
            self.matches_since_return += 1

    def track_estimation_game(self, opponent_rating: float, score: float) -> int:
        self.estimation_games.append(
            EstimationGame(
                opponent_rating=opponent_rating,
                score=score,
                weight=estimation_weight(opponent_rating),
            )
        )
        return len(self.estimation_games)

    def close_estimation(self, estimated_rating: float | None = None) -> None:
        self.estimation_open = False
        self.estimation_games.clear()
        if estimated_rating is not None:
            self.estimated_initial_rating = estimated_rating


__all__ = [
    "EstimationGame",
    "PlayerRatingState",
    "PromotionConsumption",
    "PromotionLedger",
    "estimate_performance_rating",
    "estimation_weight",
]
