"""Swiss-system tournament statistics: results, SOS and SOSOS."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from domain.common import MatchRecord


@dataclass
class SwissPlayerStats:
    """Per-player aggregate over one tournament's games."""

    player_id: str
    wins: float = 0.0
    losses: int = 0
    draws: int = 0
    points_for: int = 0
    points_against: int = 0
    byes: int = 0
    opponents: list[str] = field(default_factory=list)

    @property
    def decisive_wins(self) -> float:
        return self.wins - 0.5 * self.draws

    @property
    def point_differential(self) -> int:
        return self.points_for - self.points_against

    @property
    def is_undefeated(self) -> bool:
        return self.losses == 0 and self.decisive_wins >= 1.0


@dataclass(frozen=True)
class SwissSummary:
    stats: dict[str, SwissPlayerStats]
    sos: dict[str, float]
    sosos: dict[str, float]

    @property
    def player_count(self) -> int:
        return len(self.stats)


def _stats_for(stats: dict[str, SwissPlayerStats], player_id: str) -> SwissPlayerStats:
    player_stats = stats.get(player_id)
    if player_stats is None:
        player_stats = SwissPlayerStats(player_id=player_id)
        stats[player_id] = player_stats
    return player_stats


def calculate_swiss_stats(matches: Iterable[MatchRecord]) -> dict[str, SwissPlayerStats]:
    """Aggregate W/L/D, points and opponents, keyed in first-seen order."""
    stats: dict[str, SwissPlayerStats] = {}

    for match in sorted(matches, key=lambda item: item.sort_key()):
        if match.is_bye:
            player_id = match.present_player_id
            if player_id is None:
                continue
            player_stats = _stats_for(stats, player_id)
            player_stats.byes += 1
            if match.present_player_score > match.absent_player_score:
                player_stats.wins += 1.0
            else:
                player_stats.losses += 1
            continue

        first = _stats_for(stats, str(match.first_player_id))
        second = _stats_for(stats, str(match.second_player_id))

        if match.first_player_score > match.second_player_score:
            first.wins += 1.0
            second.losses += 1
        elif match.first_player_score < match.second_player_score:
            second.wins += 1.0
            first.losses += 1
        else:
            first.wins += 0.5
            second.wins += 0.5
            first.draws += 1
            second.draws += 1

        first.points_for += match.first_player_score
        first.points_against += match.second_player_score
        second.points_for += match.second_player_score
        second.points_against += match.first_player_score
        first.opponents.append(second.player_id)
        second.opponents.append(first.player_id)

    return stats


def calculate_sos(stats: Mapping[str, SwissPlayerStats]) -> dict[str, float]:
    """Sum of opponents' wins, one term per game played against them."""
    return {
        player_id: sum(stats[opponent].wins for opponent in player_stats.opponents if opponent in stats)
        for player_id, player_stats in stats.items()
    }


def calculate_sosos(stats: Mapping[str, SwissPlayerStats], sos: Mapping[str, float]) -> dict[str, float]:
    """Sum of opponents' SOS values."""
    return {
        player_id: sum(sos.get(opponent, 0.0) for opponent in player_stats.opponents)
        for player_id, player_stats in stats.items()
    }


def summarize_tournament(matches: Iterable[MatchRecord]) -> SwissSummary:
    stats = calculate_swiss_stats(matches)
    sos = calculate_sos(stats)
    return SwissSummary(stats=stats, sos=sos, sosos=calculate_sosos(stats, sos))


__all__ = [
    "SwissPlayerStats",
    "SwissSummary",
    "calculate_sos",
    "calculate_sosos",
    "calculate_swiss_stats",
    "summarize_tournament",
]
