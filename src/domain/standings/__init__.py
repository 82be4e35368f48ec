"""Swiss-system tournament standings."""

from domain.standings.ranking import PlayerStanding, positions_to_persist, rank_players
from domain.standings.swiss import SwissPlayerStats, SwissSummary, summarize_tournament
from domain.standings.teams import TeamStanding, rank_teams

__all__ = [
    "PlayerStanding",
    "SwissPlayerStats",
    "SwissSummary",
    "TeamStanding",
    "positions_to_persist",
    "rank_players",
    "rank_teams",
    "summarize_tournament",
]
