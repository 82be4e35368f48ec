"""Individual tournament standings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from domain.standings.swiss import SwissPlayerStats, SwissSummary


@dataclass(frozen=True)
class PlayerStanding:
    player_id: str
    stats: SwissPlayerStats
    sos: float
    sosos: float
    is_undefeated: bool
    calculated_position: int
    saved_position: int | None = None
    rating_before: float | None = None
    rating_after: float | None = None
    promotion_bonus: float = 0.0

    @property
    def display_position(self) -> int:
        """A saved position wins over a computed one."""
        if self.saved_position is not None:
            return self.saved_position
        return self.calculated_position

    @property
    def wins(self) -> float:
        return self.stats.wins

    @property
    def rating_change(self) -> float | None:
        if self.rating_before is None or self.rating_after is None:
            return None
        return self.rating_after - self.rating_before

    def tie_key(self) -> tuple[float, float, float]:
        return (self.stats.wins, self.sos, self.sosos)


def _sort_key(summary: SwissSummary, player_id: str, index: int) -> tuple[bool, float, float, float, int, int]:
    stats = summary.stats[player_id]
    return (
        not stats.is_undefeated,
        -stats.wins,
        -summary.sos[player_id],
        -summary.sosos[player_id],
        -stats.point_differential,
        index,
    )


def rank_players(
    summary: SwissSummary,
    saved_positions: Mapping[str, int] | None = None,
) -> list[PlayerStanding]:
    """Order players and assign positions.

    Every undefeated player shares position 1. Everyone else takes their 1-based
    place in the sorted list, except that a player tied on wins, SOS and SOSOS with
    the (non-undefeated) player above shares that player's position. The returned
    list is in display order: saved position first, computed order second.
    """
    saved = dict(saved_positions or {})
    first_seen = {player_id: index for index, player_id in enumerate(summary.stats)}
    ordered_ids = sorted(
        summary.stats,
        key=lambda player_id: _sort_key(summary, player_id, first_seen[player_id]),
    )

    standings: list[PlayerStanding] = []
    for index, player_id in enumerate(ordered_ids):
        stats = summary.stats[player_id]
        undefeated = stats.is_undefeated
        tie_key = (stats.wins, summary.sos[player_id], summary.sosos[player_id])

        if undefeated:
            position = 1
        else:
            position = index + 1
            if standings:
                previous = standings[-1]
                if not previous.is_undefeated and previous.tie_key() == tie_key:
                    position = previous.calculated_position

        standings.append(
            PlayerStanding(
                player_id=player_id,
                stats=stats,
                sos=summary.sos[player_id],
                sosos=summary.sosos[player_id],
                is_undefeated=undefeated,
                calculated_position=position,
                saved_position=saved.get(player_id),
            )
        )

    return order_for_display(standings)


def order_for_display(standings: list[PlayerStanding]) -> list[PlayerStanding]:
    computed_order = {standing.player_id: index for index, standing in enumerate(standings)}
    return sorted(
        standings,
        key=lambda standing: (standing.display_position, computed_order[standing.player_id]),
    )


def positions_to_persist(standings: list[PlayerStanding], *, overwrite: bool = False) -> dict[str, int]:
    """Positions a caller may save without clobbering manual overrides."""
    return {
        standing.player_id: standing.calculated_position
        for standing in standings
        if overwrite or standing.saved_position is None
    }


__all__ = [
    "PlayerStanding",
    "order_for_display",
    "positions_to_persist",
    "rank_players",
]
