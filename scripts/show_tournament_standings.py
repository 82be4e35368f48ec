#!/usr/bin/env python3
"""Show Swiss standings for one tournament, optionally with ratings."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from domain.loaders import load_matches, load_memberships, load_players
from domain.pipeline import build_tournament_report
from domain.protocol import TeamScoringMode
from domain.ratings.config import DEFAULT_CONFIG_DIR, load_rating_system_configs

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Tournament standings commands.",
)


def _format_rating(value: float | None) -> str:
    return "-" if value is None else f"{value:7.1f}"


@app.command()
def show(
    matches_file: Annotated[
        Path,
        typer.Argument(help="JSON list of match records (all leagues or one tournament)."),
    ],
    tournament: Annotated[
        str,
        typer.Option("--tournament", help="Tournament id to show."),
    ],
    players_file: Annotated[
        Path | None,
        typer.Option("--players", help="Optional JSON list of player profiles."),
    ] = None,
    teams_file: Annotated[
        Path | None,
        typer.Option("--teams", help="Optional JSON object mapping player ids to team ids."),
    ] = None,
    team_mode: Annotated[
        TeamScoringMode,
        typer.Option("--team-mode", help="Team scoring mode when --teams is given."),
    ] = TeamScoringMode.PERSONAL_AWARD,
    config_dir: Annotated[
        Path,
        typer.Option("--config-dir", help="Directory of rating system TOML files."),
    ] = DEFAULT_CONFIG_DIR,
    config_name: Annotated[
        str | None,
        typer.Option("--config-name", help="Rating system to attach ratings from."),
    ] = None,
) -> None:
    """Print player (and team) standings for one tournament."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    if not matches_file.is_file():
        raise typer.BadParameter(f"File not found: {matches_file}", param_hint="matches_file")

    history = load_matches(matches_file)
    matches = [match for match in history if match.tournament_id == tournament]
    if not matches:
        raise typer.BadParameter(f"No matches found for tournament '{tournament}'", param_hint="--tournament")

    engine = None
    if config_name is not None:
        configs = [
            config
            for config in load_rating_system_configs(config_dir)
            if config.name == config_name or config.file_path.name == config_name
        ]
        if not configs:
            raise typer.BadParameter(
                f"No config named '{config_name}' found in {config_dir}",
                param_hint="--config-name",
            )
        engine = configs[0].create_engine()

    start: datetime = min(match.event_time for match in matches)
    end: datetime = max(match.event_time for match in matches)
    memberships = load_memberships(teams_file) if teams_file is not None else None
    report = build_tournament_report(
        matches,
        start=start,
        end=end,
        engine=engine,
        history=history,
        profiles=load_players(players_file) if players_file is not None else None,
        memberships=memberships,
        team_mode=team_mode if memberships else None,
    )

    typer.echo(f"tournament={tournament} players={report.summary.player_count} start={start} end={end}")
    for standing in report.players:
        line = (
            f"{standing.display_position:3d}. {standing.player_id:<20} "
            f"wins={standing.stats.wins:4.1f} losses={standing.stats.losses:2d} byes={standing.stats.byes:d} "
            f"sos={standing.sos:5.1f} sosos={standing.sosos:6.1f}"
        )
        if engine is not None:
            line += f" before={_format_rating(standing.rating_before)} after={_format_rating(standing.rating_after)}"
            if standing.promotion_bonus > 0.0:
                line += f" promotion=+{standing.promotion_bonus:.1f}"
        typer.echo(line)

    if report.teams:
        typer.echo(f"teams mode={team_mode.value}")
        for team in report.teams:
            position = "-" if team.display_position is None else f"{team.display_position:3d}"
            typer.echo(
                f"{position}. {team.team_id:<20} score={team.score:6.2f} "
                f"wins={team.total_wins:5.1f} sos={team.sos:5.1f} sosos={team.sosos:6.1f}"
            )


if __name__ == "__main__":
    app()
