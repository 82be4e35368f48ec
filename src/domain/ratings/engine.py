"""Chronological replay of a match history into player ratings."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from domain.common import (
    MatchRecord,
    PlayerClass,
    PlayerProfile,
    PromotionEvent,
    validate_matches,
)
from domain.protocol import Regime, RatingFormula
from domain.ratings.formula import FormulaParameters, create_formula
from domain.ratings.rankings import (
    get_single_rank_difference,
    is_kyu_rank,
    is_local_organization,
    is_trusted_organization,
    rank_rating,
)
from domain.ratings.state import (
    PlayerRatingState,
    PromotionConsumption,
    estimate_performance_rating,
)

logger = logging.getLogger(__name__)

RATING_START_DATE = datetime(2023, 1, 1)


@dataclass(frozen=True)
class EngineParameters:
    rating_start_date: datetime | None = RATING_START_DATE
    subset_keyword: str | None = None
    default_rating: float = 1700.0
    international: bool = False
    long_window_games: int = 12
    long_window_divisor: float = 6.0
    short_window_games: int = 6
    short_window_multiplier: float = 2.0
    protection_multiplier: float = 0.5
    mutual_dynamic_cap: float = 2.0
    return_gap_days: int = 730
    estimation_correction: float = 0.5
    estimation_max_diff: float = 200.0
    estimation_margin: float = 150.0
    promotion_enabled: bool = True
    promotion_ceiling: float = 2500.0
    promotion_floor_fraction: float = 0.5
    ranked_window_days: int = 730


@dataclass(frozen=True)
class MatchRatingAudit:
    """Before/after ratings for one rated match."""

    match_id: str
    event_time: datetime
    first_player_id: str
    second_player_id: str
    first_rating_before: float
    second_rating_before: float
    first_rating_after: float
    second_rating_after: float
    first_k_factor: float
    second_k_factor: float
    first_expected_score: float
    first_actual_score: float

    @property
    def first_shift(self) -> float:
        return self.first_rating_after - self.first_rating_before

    @property
    def second_shift(self) -> float:
        return self.second_rating_after - self.second_rating_before

    def rating_before(self, player_id: str) -> float:
        if player_id == self.first_player_id:
            return self.first_rating_before
        if player_id == self.second_player_id:
            return self.second_rating_before
        raise KeyError(player_id)

    def rating_after(self, player_id: str) -> float:
        if player_id == self.first_player_id:
            return self.first_rating_after
        if player_id == self.second_player_id:
            return self.second_rating_after
        raise KeyError(player_id)


@dataclass(frozen=True)
class PlayerSummary:
    """Read-only snapshot of a player's state at the end of a run."""

    player_id: str
    rating: float
    initial_rating: float
    estimated_initial_rating: float | None
    regime: Regime
    is_pro: bool
    match_count: int
    unrated_match_count: int
    first_match_time: datetime | None
    last_match_time: datetime | None
    hidden: bool


@dataclass(frozen=True)
class RatingHistoryPoint:
    match_id: str
    event_time: datetime
    rating_before: float
    rating_after: float


@dataclass(frozen=True)
class RatingEngineResult:
    cutoff: datetime
    ratings: dict[str, float]
    active_players: frozenset[str]
    hidden_players: frozenset[str]
    audits: tuple[MatchRatingAudit, ...]
    players: dict[str, PlayerSummary]
    promotions: tuple[PromotionConsumption, ...]
    ranked_window: timedelta = field(default=timedelta(days=730))

    def rating_for(self, player_id: str, default: float | None = None) -> float | None:
        return self.ratings.get(player_id, default)

    def is_ranked(self, player_id: str) -> bool:
        """Shown on the main leaderboard: recently active or pro, and not hidden."""
        summary = self.players.get(player_id)
        if summary is None or summary.hidden or player_id not in self.active_players:
            return False
        if summary.is_pro:
            return True
        if summary.last_match_time is None:
            return False
        return summary.last_match_time > _align_tz(self.cutoff - self.ranked_window, summary.last_match_time)

    def promotion_bonus(
        self,
        player_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> float:
        total = 0.0
        for consumption in self.promotions:
            if consumption.player_id != player_id:
                continue
            effective_date = consumption.event.effective_date
            if start is not None and effective_date < _align_tz(start, effective_date):
                continue
            if end is not None and effective_date > _align_tz(end, effective_date):
                continue
            total += consumption.bonus_amount
        return total

    def audit_for(self, match_id: str) -> MatchRatingAudit | None:
        for audit in self.audits:
            if audit.match_id == match_id:
                return audit
        return None

    def history(self, player_id: str) -> list[RatingHistoryPoint]:
        points: list[RatingHistoryPoint] = []
        for audit in self.audits:
            if player_id not in (audit.first_player_id, audit.second_player_id):
                continue
            points.append(
                RatingHistoryPoint(
                    match_id=audit.match_id,
                    event_time=audit.event_time,
                    rating_before=audit.rating_before(player_id),
                    rating_after=audit.rating_after(player_id),
                )
            )
        return points


def _align_tz(value: datetime, like: datetime) -> datetime:
    """Make ``value`` comparable with ``like`` (naive values are treated as UTC)."""
    if (value.tzinfo is None) == (like.tzinfo is None):
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC).replace(tzinfo=None)


def sort_matches(matches: list[MatchRecord]) -> list[MatchRecord]:
    """Order by (event_time, sequence, input position); warn when input was unsorted."""
    indexed = list(enumerate(matches))
    ordered = sorted(indexed, key=lambda item: (*item[1].sort_key(), item[0]))
    if [index for index, _ in ordered] != list(range(len(matches))):
        logger.warning(
            "Match input was not in chronological order; sorted %d matches before replay",
            len(matches),
        )
    return [match for _, match in ordered]


def matches_subset(match: MatchRecord, keyword: str | None) -> bool:
    if not keyword:
        return True
    if match.organizer and keyword in match.organizer:
        return True
    return bool(match.match_name and f"{keyword} " in match.match_name)


def filter_matches(
    matches: Iterable[MatchRecord],
    *,
    cutoff: datetime,
    start: datetime | None = None,
    subset_keyword: str | None = None,
) -> list[MatchRecord]:
    """Keep matches inside ``[start, cutoff]`` and the configured subset."""
    kept: list[MatchRecord] = []
    for match in matches:
        if start is not None and match.event_time < _align_tz(start, match.event_time):
            continue
        if match.event_time > _align_tz(cutoff, match.event_time):
            continue
        if not matches_subset(match, subset_keyword):
            continue
        kept.append(match)
    return kept


class RatingEngine:
    """Replay matches through per-player state using one rating formula.

    The engine holds configuration only; every ``run`` builds a fresh state map, so
    one instance can serve any number of independent cutoffs.
    """

    def __init__(
        self,
        params: EngineParameters | None = None,
        formula: RatingFormula | None = None,
    ) -> None:
        self.params = params or EngineParameters()
        self.formula = formula or create_formula(FormulaParameters())
        self._return_gap = timedelta(days=self.params.return_gap_days)

    def run(
        self,
        matches: Iterable[MatchRecord],
        profiles: Mapping[str, PlayerProfile] | None = None,
        *,
        cutoff: datetime,
    ) -> RatingEngineResult:
        validated = validate_matches(matches)
        ordered = sort_matches(validated)
        window = filter_matches(
            ordered,
            cutoff=cutoff,
            start=self.params.rating_start_date,
            subset_keyword=self.params.subset_keyword,
        )

        profile_map = dict(profiles or {})
        states: dict[str, PlayerRatingState] = {}
        audits: list[MatchRatingAudit] = []

        for match in window:
            audit = self._process_match(match, states, profile_map)
            if audit is not None:
                audits.append(audit)

        for state in states.values():
            if state.is_active:
                self._apply_due_promotions(state, cutoff)

        return self._build_result(cutoff=cutoff, states=states, audits=audits)

    def _state(
        self,
        player_id: str,
        states: dict[str, PlayerRatingState],
        profiles: Mapping[str, PlayerProfile],
    ) -> PlayerRatingState:
        state = states.get(player_id)
        if state is not None:
            return state

        profile = profiles.get(player_id) or PlayerProfile(player_id=player_id)
        is_pro = profile.is_pro or profile.classification is PlayerClass.PRO
        if profile.initial_rating is not None:
            initial_rating = float(profile.initial_rating)
        elif profile.initial_rank:
            initial_rating = float(
                rank_rating(
                    profile.initial_rank,
                    organization=profile.organization,
                    international=self.params.international,
                )
            )
        else:
            initial_rating = self.params.default_rating

        state = PlayerRatingState(
            player_id=player_id,
            rating=max(initial_rating, self.formula.min_rating),
            initial_rating=initial_rating,
            regime=Regime.for_class(profile.classification),
            is_pro=is_pro,
            explicit_initial_rating=profile.initial_rating is not None,
        )
        if self.params.promotion_enabled:
            for event in profile.promotions:
                state.promotions.add(event)
        states[player_id] = state
        return state

    def _process_match(
        self,
        match: MatchRecord,
        states: dict[str, PlayerRatingState],
        profiles: Mapping[str, PlayerProfile],
    ) -> MatchRatingAudit | None:
        if match.is_bye:
            self._process_bye(match, states, profiles)
            return None

        first = self._state(str(match.first_player_id), states, profiles)
        second = self._state(str(match.second_player_id), states, profiles)

        if not match.is_rated:
            for state in (first, second):
                state.record_activity(match.event_time, return_gap=self._return_gap)
                state.unrated_match_count += 1
            return None

        for state in (first, second):
            state.record_activity(match.event_time, return_gap=self._return_gap)
            self._apply_due_promotions(state, match.event_time)

        first_before = first.rating
        second_before = second.rating
        first_k, second_k = self._effective_k_factors(first, second, match.factor)
        first_score = match.first_player_result
        second_score = 1.0 - first_score

        first_after = self.formula.new_rating(first_before, second_before, first_score, first_k)
        second_after = self.formula.new_rating(second_before, first_before, second_score, second_k)
        first.record_rated_game(first_after)
        second.record_rated_game(second_after)

        self._track_estimation(first, opponent_rating=second_before, score=first_score)
        self._track_estimation(second, opponent_rating=first_before, score=second_score)

        return MatchRatingAudit(
            match_id=match.match_id,
            event_time=match.event_time,
            first_player_id=first.player_id,
            second_player_id=second.player_id,
            first_rating_before=first_before,
            second_rating_before=second_before,
            first_rating_after=first.rating,
            second_rating_after=second.rating,
            first_k_factor=first_k,
            second_k_factor=second_k,
            first_expected_score=self.formula.expected_score(first_before, second_before),
            first_actual_score=first_score,
        )

    def _process_bye(
        self,
        match: MatchRecord,
        states: dict[str, PlayerRatingState],
        profiles: Mapping[str, PlayerProfile],
    ) -> None:
        player_id = match.present_player_id
        if player_id is None:
            return
        if not match.is_rated and match.present_player_score <= 0:
            return

        state = self._state(player_id, states, profiles)
        state.record_activity(match.event_time, return_gap=self._return_gap)
        if match.is_rated:
            state.bye_count += 1
        else:
            state.unrated_match_count += 1

    def _effective_k_factors(
        self,
        first: PlayerRatingState,
        second: PlayerRatingState,
        factor: float,
    ) -> tuple[float, float]:
        first_k = self.formula.k_factor(first.rating)
        second_k = self.formula.k_factor(second.rating)
        if factor != 1.0:
            return first_k * factor, second_k * factor

        params = self.params
        first_dynamic = first.is_dynamic(short_window_games=params.short_window_games)
        second_dynamic = second.is_dynamic(short_window_games=params.short_window_games)
        first_multiplier = 1.0
        second_multiplier = 1.0

        if first_dynamic:
            first_multiplier = self._k_multiplier(first)
            if not second_dynamic and not second.is_pro:
                second_multiplier = params.protection_multiplier
        if second_dynamic:
            second_multiplier = self._k_multiplier(second)
            if not first_dynamic and not first.is_pro:
                first_multiplier = params.protection_multiplier
        if first_dynamic and second_dynamic:
            first_multiplier = min(first_multiplier, params.mutual_dynamic_cap)
            second_multiplier = min(second_multiplier, params.mutual_dynamic_cap)

        return first_k * first_multiplier, second_k * second_multiplier

    def _k_multiplier(self, state: PlayerRatingState) -> float:
        return state.k_multiplier(
            long_window_games=self.params.long_window_games,
            long_window_divisor=self.params.long_window_divisor,
            short_window_games=self.params.short_window_games,
            short_window_multiplier=self.params.short_window_multiplier,
        )

    def _track_estimation(self, state: PlayerRatingState, *, opponent_rating: float, score: float) -> None:
        if not state.long_window_open:
            return

        games_tracked = state.track_estimation_game(opponent_rating, score)
        if games_tracked < self.params.long_window_games:
            return

        estimated = estimate_performance_rating(
            state.estimation_games,
            default_rating=self.params.default_rating,
            max_rating_diff=self.params.estimation_max_diff,
            result_margin=self.params.estimation_margin,
        )
        correction = (estimated - state.initial_rating) * self.params.estimation_correction
        state.rating = max(state.rating + correction, self.formula.min_rating)
        state.close_estimation(estimated)
        logger.debug(
            "Closed estimation window for %s: estimated=%.1f correction=%.1f",
            state.player_id,
            estimated,
            correction,
        )

    def _apply_due_promotions(self, state: PlayerRatingState, as_of: datetime) -> None:
        if not self.params.promotion_enabled or not state.promotions.pending:
            return

        for event in state.promotions.pop_due(_align_tz(as_of, state.promotions.pending[0].effective_date)):
            state.promotions.record(self._consume_promotion(state, event, as_of))

    def _consume_promotion(
        self,
        state: PlayerRatingState,
        event: PromotionEvent,
        as_of: datetime,
    ) -> PromotionConsumption:
        international = self.params.international
        old_rating = float(rank_rating(event.old_rank, international=international))
        new_rating = (
            float(event.new_rank_rating)
            if event.new_rank_rating is not None
            else float(rank_rating(event.new_rank, international=international))
        )

        def skipped() -> PromotionConsumption:
            return PromotionConsumption(
                player_id=state.player_id,
                event=event,
                applied_at=as_of,
                rating_before=state.rating if state.has_rating else None,
                rating_floor=None,
            )

        if not state.has_rating:
            # The player enters at their current rank instead of an outdated one.
            if not state.explicit_initial_rating and new_rating > old_rating:
                state.rating = max(new_rating, self.formula.min_rating)
                state.initial_rating = new_rating
            return skipped()
        if not is_trusted_organization(event.organization) or new_rating <= old_rating:
            return skipped()

        close_window = is_kyu_rank(event.old_rank)
        if state.is_pro or not is_local_organization(event.organization):
            rating_floor = new_rating
            close_window = False
        elif new_rating < self.params.promotion_ceiling:
            step = get_single_rank_difference(new_rating)
            rating_floor = new_rating - step * self.params.promotion_floor_fraction
        else:
            return skipped()

        rating_before = state.rating
        bonus_amount = 0.0
        if rating_before < rating_floor:
            bonus_amount = rating_floor - rating_before
            state.rating = rating_floor
            if close_window and state.long_window_open:
                state.close_estimation()
            logger.debug(
                "Promotion bonus for %s: %s -> %s floor=%.1f bonus=%.1f",
                state.player_id,
                event.old_rank,
                event.new_rank,
                rating_floor,
                bonus_amount,
            )

        return PromotionConsumption(
            player_id=state.player_id,
            event=event,
            applied_at=as_of,
            rating_before=rating_before,
            rating_floor=rating_floor,
            bonus_amount=bonus_amount,
        )

    def _build_result(
        self,
        *,
        cutoff: datetime,
        states: dict[str, PlayerRatingState],
        audits: list[MatchRatingAudit],
    ) -> RatingEngineResult:
        active = frozenset(player_id for player_id, state in states.items() if state.is_active)
        hidden = frozenset(player_id for player_id in active if states[player_id].is_hidden)
        players = {
            player_id: PlayerSummary(
                player_id=player_id,
                rating=state.rating,
                initial_rating=state.initial_rating,
                estimated_initial_rating=state.estimated_initial_rating,
                regime=state.regime,
                is_pro=state.is_pro,
                match_count=state.match_count,
                unrated_match_count=state.unrated_match_count,
                first_match_time=state.first_match_time,
                last_match_time=state.last_match_time,
                hidden=state.is_hidden,
            )
            for player_id, state in states.items()
        }
        consumptions = tuple(
            consumption for state in states.values() for consumption in state.promotions.consumed
        )
        return RatingEngineResult(
            cutoff=cutoff,
            ratings={player_id: state.rating for player_id, state in states.items()},
            active_players=active,
            hidden_players=hidden,
            audits=tuple(audits),
            players=players,
            promotions=consumptions,
            ranked_window=timedelta(days=self.params.ranked_window_days),
        )


__all__ = [
    "EngineParameters",
    "MatchRatingAudit",
    "PlayerSummary",
    "RATING_START_DATE",
    "RatingEngine",
    "RatingEngineResult",
    "RatingHistoryPoint",
    "filter_matches",
    "matches_subset",
    "sort_matches",
]
