"""Rating rebuilds and tournament reports built from engine runs."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from domain.common import MatchRecord, PlayerProfile
from domain.protocol import TeamScoringMode
from domain.ratings.config import RatingSystemConfig
from domain.ratings.engine import MatchRatingAudit, RatingEngine, RatingEngineResult
from domain.standings.ranking import PlayerStanding, order_for_display, rank_players
from domain.standings.swiss import SwissSummary, summarize_tournament
from domain.standings.teams import TeamStanding, rank_teams


@dataclass(frozen=True)
class RebuildSummary:
    """Outcome for one rebuilt system config."""

    system_name: str
    config_file: str
    cutoff: datetime
    input_matches: int
    rated_matches: int
    active_players: int
    hidden_players: int
    promotion_bonuses: int


@dataclass(frozen=True)
class TournamentReport:
    tournament_id: str | None
    summary: SwissSummary
    players: list[PlayerStanding]
    teams: list[TeamStanding]
    audits: dict[str, MatchRatingAudit]


def rebuild_single_system(
    *,
    system_config: RatingSystemConfig,
    matches: Iterable[MatchRecord],
    profiles: Mapping[str, PlayerProfile] | None = None,
    cutoff: datetime,
    echo: Callable[[str], None] | None = None,
) -> tuple[RebuildSummary, RatingEngineResult]:
    """Replay one configured system up to ``cutoff``."""
    match_list = list(matches)
    result = system_config.create_engine().run(match_list, profiles, cutoff=cutoff)

    summary = RebuildSummary(
        system_name=system_config.name,
        config_file=system_config.file_path.name,
        cutoff=cutoff,
        input_matches=len(match_list),
        rated_matches=len(result.audits),
        active_players=len(result.active_players),
        hidden_players=len(result.hidden_players),
        promotion_bonuses=sum(1 for consumption in result.promotions if consumption.applied),
    )
    if echo is not None:
        echo(
            f"config={summary.config_file} "
            f"system={summary.system_name} "
            f"cutoff={cutoff.isoformat()} "
            f"input_matches={summary.input_matches} "
            f"rated_matches={summary.rated_matches} "
            f"active_players={summary.active_players} "
            f"hidden_players={summary.hidden_players} "
            f"promotion_bonuses={summary.promotion_bonuses}"
        )
    return summary, result


def build_tournament_report(
    tournament_matches: Iterable[MatchRecord],
    *,
    start: datetime,
    end: datetime,
    engine: RatingEngine | None = None,
    history: Iterable[MatchRecord] | None = None,
    profiles: Mapping[str, PlayerProfile] | None = None,
    memberships: Mapping[str, str] | None = None,
    team_mode: TeamScoringMode | None = None,
    saved_positions: Mapping[str, int] | None = None,
    saved_team_positions: Mapping[str, int] | None = None,
) -> TournamentReport:
    """Standings for one tournament, optionally enriched with ratings.

    Ratings come from two independent engine runs: one just before ``start`` and
    one at ``end``. A rating is only attached where the player was ranked at that
    point. Standings never feed back into the engine.
    """
    matches = list(tournament_matches)
    summary = summarize_tournament(matches)
    players = rank_players(summary, saved_positions)
    audits: dict[str, MatchRatingAudit] = {}

    if engine is not None:
        history_list = list(history) if history is not None else matches
        before = engine.run(history_list, profiles, cutoff=start - timedelta(microseconds=1))
        after = engine.run(history_list, profiles, cutoff=end)
        players = order_for_display(
            [_with_ratings(standing, before, after, start=start, end=end) for standing in players]
        )
        match_ids = {match.match_id for match in matches}
        audits = {audit.match_id: audit for audit in after.audits if audit.match_id in match_ids}

    teams: list[TeamStanding] = []
    if team_mode is not None and memberships:
        teams = rank_teams(
            team_mode,
            matches=matches,
            memberships=memberships,
            player_standings=players,
            saved_positions=saved_team_positions,
        )

    tournament_ids = {match.tournament_id for match in matches if match.tournament_id is not None}
    return TournamentReport(
        tournament_id=next(iter(tournament_ids)) if len(tournament_ids) == 1 else None,
        summary=summary,
        players=players,
        teams=teams,
        audits=audits,
    )


def _with_ratings(
    standing: PlayerStanding,
    before: RatingEngineResult,
    after: RatingEngineResult,
    *,
    start: datetime,
    end: datetime,
) -> PlayerStanding:
    player_id = standing.player_id
    rating_before = before.rating_for(player_id) if before.is_ranked(player_id) else None
    rating_after = after.rating_for(player_id) if after.is_ranked(player_id) else None
    return replace(
        standing,
        rating_before=rating_before,
        rating_after=rating_after,
        promotion_bonus=after.promotion_bonus(player_id, start, end),
    )


__all__ = [
    "RebuildSummary",
    "TournamentReport",
    "build_tournament_report",
    "rebuild_single_system",
]
