#!/usr/bin/env python3
"""Replay a match export through one or all configured rating systems."""

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

from domain.loaders import load_matches, load_players
from domain.pipeline import rebuild_single_system
from domain.ratings.config import DEFAULT_CONFIG_DIR, RatingSystemConfig, load_rating_system_configs

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Rating rebuild commands.",
)


def _select_configs(config_dir: Path, config_name: str | None) -> list[RatingSystemConfig]:
    configs = load_rating_system_configs(config_dir)
    if config_name is None:
        return configs

    selected = [
        config for config in configs if config.file_path.name == config_name or config.name == config_name
    ]
    if not selected:
        raise typer.BadParameter(
            f"No config named '{config_name}' found in {config_dir}",
            param_hint="--config-name",
        )
    return selected


def _parse_cutoff(value: str | None) -> datetime:
    if value is None:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid ISO date: {value}", param_hint="--cutoff") from exc


@app.command()
def rebuild(
    matches_file: Annotated[
        Path,
        typer.Argument(help="JSON list of match records."),
    ],
    players_file: Annotated[
        Path | None,
        typer.Option("--players", help="Optional JSON list of player profiles."),
    ] = None,
    config_dir: Annotated[
        Path,
        typer.Option("--config-dir", help="Directory of rating system TOML files."),
    ] = DEFAULT_CONFIG_DIR,
    config_name: Annotated[
        str | None,
        typer.Option(
            "--config-name",
            help="Optional single config (file name such as default.toml, or system name).",
        ),
    ] = None,
    cutoff: Annotated[
        str | None,
        typer.Option("--cutoff", help="Replay matches up to this ISO date. Defaults to now."),
    ] = None,
    top_n: Annotated[
        int,
        typer.Option("--top-n", help="Number of ranked players to print per system."),
    ] = 20,
    include_hidden: Annotated[
        bool,
        typer.Option("--include-hidden", help="Also list players whose estimation window is open."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
) -> None:
    """Rebuild ratings and print the leaderboard for each selected system."""
    if top_n <= 0:
        raise typer.BadParameter("--top-n must be greater than 0")
    if not matches_file.is_file():
        raise typer.BadParameter(f"File not found: {matches_file}", param_hint="matches_file")

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cutoff_time = _parse_cutoff(cutoff)
    configs = _select_configs(config_dir, config_name)
    matches = load_matches(matches_file)
    profiles = load_players(players_file) if players_file is not None else {}

    typer.echo(
        f"loaded_configs={len(configs)} config_dir={config_dir} "
        f"matches={len(matches)} players={len(profiles)}"
    )

    for config in configs:
        _, result = rebuild_single_system(
            system_config=config,
            matches=matches,
            profiles=profiles,
            cutoff=cutoff_time,
            echo=typer.echo,
        )
        listed = [
            player_id
            for player_id in result.active_players
            if result.is_ranked(player_id) or (include_hidden and player_id in result.hidden_players)
        ]
        listed.sort(key=lambda player_id: (-result.ratings[player_id], player_id))
        for index, player_id in enumerate(listed[:top_n], start=1):
            summary = result.players[player_id]
            marker = " (hidden)" if summary.hidden else ""
            typer.echo(
                f"{index:2d}. {player_id:<20} rating={result.ratings[player_id]:8.1f} "
                f"games={summary.match_count:3d} last_match={summary.last_match_time}{marker}"
            )


@app.command()
def list_systems(
    config_dir: Annotated[
        Path,
        typer.Option("--config-dir", help="Directory of rating system TOML files."),
    ] = DEFAULT_CONFIG_DIR,
) -> None:
    """Print all configured rating systems."""
    for config in load_rating_system_configs(config_dir):
        typer.echo(
            f"{config.name:<24} formula={config.formula.kind.value:<14} "
            f"file={config.file_path.name} {config.description or ''}".rstrip()
        )


if __name__ == "__main__":
    app()
