"""Team tournament standings."""

from __future__ import annotations

import sys
from collections import defaultdict
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field, replace

from domain.common import MatchRecord
from domain.protocol import TeamScoringMode
from domain.standings.ranking import PlayerStanding
from domain.standings.swiss import calculate_swiss_stats

MAIN_MATCH_WIN_BONUS = 0.5
MAIN_MATCH_DRAW_BONUS = 0.25


@dataclass(frozen=True)
class TeamStanding:
    team_id: str
    mode: TeamScoringMode
    members: tuple[str, ...]
    score: float
    total_wins: float
    sos: float
    sosos: float
    calculated_position: int | None
    saved_position: int | None = None
    counting_members: tuple[str, ...] = ()
    round_points: float = 0.0

    @property
    def display_position(self) -> int | None:
        if self.saved_position is not None:
            return self.saved_position
        return self.calculated_position

    @property
    def is_ranked(self) -> bool:
        return self.calculated_position is not None


@dataclass
class TeamRoundRecord:
    round_wins: float = 0.0
    round_points: float = 0.0
    opponents: list[str] = field(default_factory=list)


def _assign_positions(keys: list[tuple]) -> list[int]:
    """Competition ranking: equal keys share a position and leave a gap."""
    positions: list[int] = []
    for index, key in enumerate(keys):
        if index > 0 and key == keys[index - 1]:
            positions.append(positions[-1])
        else:
            positions.append(index + 1)
    return positions


def _display_order(standings: list[TeamStanding]) -> list[TeamStanding]:
    computed_order = {standing.team_id: index for index, standing in enumerate(standings)}
    return sorted(
        standings,
        key=lambda standing: (
            sys.maxsize if standing.display_position is None else standing.display_position,
            computed_order[standing.team_id],
        ),
    )


def _group_members(memberships: Mapping[str, str]) -> dict[str, list[str]]:
    teams: dict[str, list[str]] = defaultdict(list)
    for player_id, team_id in memberships.items():
        if team_id:
            teams[team_id].append(player_id)
    return dict(teams)


def rank_teams_personal_award(
    player_standings: list[PlayerStanding],
    memberships: Mapping[str, str],
    *,
    player_count: int | None = None,
    saved_positions: Mapping[str, int] | None = None,
    counted_members: int = 3,
    minimum_members: int = 2,
) -> list[TeamStanding]:
    """Rank teams by the sum of their best individual positions (lower is better).

    Teams with fewer than ``minimum_members`` ranked players are listed without a
    position. Each counting slot left empty costs ``player_count`` points. Ties fall
    back to the counting members' total wins, then their SOS, then their SOSOS.
    """
    saved = dict(saved_positions or {})
    by_player = {standing.player_id: standing for standing in player_standings}
    penalty = player_count if player_count is not None else len(player_standings)
    display_rank = {standing.player_id: index for index, standing in enumerate(player_standings)}

    ranked: list[tuple[tuple, TeamStanding]] = []
    excluded: list[TeamStanding] = []
    for team_id, members in _group_members(memberships).items():
        ranked_members = sorted(
            (by_player[player_id] for player_id in members if player_id in by_player),
            key=lambda standing: (standing.display_position, display_rank[standing.player_id]),
        )
        counting = ranked_members[:counted_members]
        total_wins = sum(standing.stats.wins for standing in counting)
        sos = sum(standing.sos for standing in counting)
        sosos = sum(standing.sosos for standing in counting)
        score = float(sum(standing.display_position for standing in counting))
        score += (counted_members - len(counting)) * penalty

        standing = TeamStanding(
            team_id=team_id,
            mode=TeamScoringMode.PERSONAL_AWARD,
            members=tuple(members),
            score=score,
            total_wins=total_wins,
            sos=sos,
            sosos=sosos,
            calculated_position=None,
            saved_position=saved.get(team_id),
            counting_members=tuple(member.player_id for member in counting),
        )
        if len(counting) < minimum_members:
            excluded.append(standing)
            continue
        ranked.append(((score, -total_wins, -sos, -sosos), standing))

    ranked.sort(key=lambda item: item[0])
    positions = _assign_positions([key for key, _ in ranked])
    standings = [
        _with_position(standing, position) for (_, standing), position in zip(ranked, positions)
    ]
    return _display_order(standings + excluded)


def _with_position(standing: TeamStanding, position: int) -> TeamStanding:
    return replace(standing, calculated_position=position)


def _game_points(score: int, opponent_score: int) -> float:
    if score > opponent_score:
        return 1.0
    if score < opponent_score:
        return 0.0
    return 0.5


def _round_key(match: MatchRecord) -> Hashable:
    """Games without a round number are grouped by the day they were played."""
    if match.round_number is not None:
        return match.round_number
    return match.event_time.date()


def calculate_team_rounds(
    matches: Iterable[MatchRecord],
    memberships: Mapping[str, str],
) -> dict[str, TeamRoundRecord]:
    """Score every team-vs-team pairing per round.

    The first game between two teams in a round is the main game and carries a
    bonus on top of its base point. The pairing is won by the team with more
    aggregate points.
    """
    # round -> pairing -> team -> points, in play order
    pairings: dict[Hashable, dict[frozenset[str], dict[str, float]]] = defaultdict(dict)

    for match in sorted(matches, key=lambda item: item.sort_key()):
        if match.is_bye:
            continue
        first_team = memberships.get(str(match.first_player_id))
        second_team = memberships.get(str(match.second_player_id))
        if not first_team or not second_team or first_team == second_team:
            continue

        round_pairings = pairings[_round_key(match)]
        pair = frozenset((first_team, second_team))
        is_main = pair not in round_pairings
        points = round_pairings.setdefault(pair, {first_team: 0.0, second_team: 0.0})

        first_points = _game_points(match.first_player_score, match.second_player_score)
        second_points = 1.0 - first_points
        if is_main:
            if first_points == 0.5:
                first_points += MAIN_MATCH_DRAW_BONUS
                second_points += MAIN_MATCH_DRAW_BONUS
            elif first_points > second_points:
                first_points += MAIN_MATCH_WIN_BONUS
            else:
                second_points += MAIN_MATCH_WIN_BONUS

        points[first_team] += first_points
        points[second_team] += second_points

    records: dict[str, TeamRoundRecord] = defaultdict(TeamRoundRecord)
    for round_pairings in pairings.values():
        for points in round_pairings.values():
            (team_a, points_a), (team_b, points_b) = points.items()
            record_a = records[team_a]
            record_b = records[team_b]
            record_a.round_points += points_a
            record_b.round_points += points_b
            record_a.opponents.append(team_b)
            record_b.opponents.append(team_a)
            if points_a > points_b:
                record_a.round_wins += 1.0
            elif points_a < points_b:
                record_b.round_wins += 1.0
            else:
                record_a.round_wins += 0.5
                record_b.round_wins += 0.5
    return dict(records)


def rank_teams_by_rounds(
    matches: Iterable[MatchRecord],
    memberships: Mapping[str, str],
    *,
    saved_positions: Mapping[str, int] | None = None,
) -> list[TeamStanding]:
    """Rank teams on round wins, team SOS, team SOSOS, then members' game wins."""
    match_list = list(matches)
    saved = dict(saved_positions or {})
    records = calculate_team_rounds(match_list, memberships)
    player_stats = calculate_swiss_stats(match_list)
    members_by_team = _group_members(memberships)

    team_ids = list(members_by_team)
    team_ids.extend(team_id for team_id in records if team_id not in members_by_team)
    empty = TeamRoundRecord()
    team_sos = {
        team_id: sum(records[opponent].round_wins for opponent in records.get(team_id, empty).opponents)
        for team_id in team_ids
    }
    team_sosos = {
        team_id: sum(team_sos.get(opponent, 0.0) for opponent in records.get(team_id, empty).opponents)
        for team_id in team_ids
    }

    ranked: list[tuple[tuple, TeamStanding]] = []
    for team_id in team_ids:
        record = records.get(team_id, empty)
        members = tuple(members_by_team.get(team_id, ()))
        total_wins = sum(player_stats[member].wins for member in members if member in player_stats)
        standing = TeamStanding(
            team_id=team_id,
            mode=TeamScoringMode.TEAM,
            members=members,
            score=record.round_wins,
            total_wins=total_wins,
            sos=team_sos[team_id],
            sosos=team_sosos[team_id],
            calculated_position=None,
            saved_position=saved.get(team_id),
            round_points=record.round_points,
        )
        key = (-record.round_wins, -team_sos[team_id], -team_sosos[team_id], -total_wins)
        ranked.append((key, standing))

    ranked.sort(key=lambda item: item[0])
    positions = _assign_positions([key for key, _ in ranked])
    return _display_order(
        [_with_position(standing, position) for (_, standing), position in zip(ranked, positions)]
    )


def rank_teams(
    mode: TeamScoringMode,
    *,
    matches: Iterable[MatchRecord],
    memberships: Mapping[str, str],
    player_standings: list[PlayerStanding],
    saved_positions: Mapping[str, int] | None = None,
) -> list[TeamStanding]:
    if mode is TeamScoringMode.PERSONAL_AWARD:
        return rank_teams_personal_award(
            player_standings,
            memberships,
            player_count=len(player_standings),
            saved_positions=saved_positions,
        )
    return rank_teams_by_rounds(matches, memberships, saved_positions=saved_positions)


__all__ = [
    "MAIN_MATCH_DRAW_BONUS",
    "MAIN_MATCH_WIN_BONUS",
    "TeamRoundRecord",
    "TeamStanding",
    "calculate_team_rounds",
    "rank_teams",
    "rank_teams_by_rounds",
    "rank_teams_personal_award",
]
