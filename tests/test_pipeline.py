"""Tests for rebuild summaries and tournament reports."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from domain.common import MatchRecord, PlayerClass, PlayerProfile
from domain.pipeline import build_tournament_report, rebuild_single_system
from domain.protocol import TeamScoringMode
from domain.ratings.config import load_rating_system_config
from domain.ratings.engine import RatingEngine

DAY_ZERO = datetime(2024, 2, 1, 18, 0)
TOURNAMENT_START = DAY_ZERO + timedelta(days=30)
TOURNAMENT_END = TOURNAMENT_START + timedelta(hours=8)

PROFILES = {
    "a": PlayerProfile(player_id="a", classification=PlayerClass.RECOGNIZED),
    "b": PlayerProfile(player_id="b", classification=PlayerClass.RECOGNIZED),
}


def _history() -> list[MatchRecord]:
    return [
        MatchRecord(
            match_id="league-1",
            event_time=DAY_ZERO,
            first_player_id="a",
            second_player_id="b",
            first_player_score=1,
            second_player_score=1,
        ),
        MatchRecord(
            match_id="cup-1",
            event_time=TOURNAMENT_START + timedelta(hours=1),
            first_player_id="a",
            second_player_id="b",
            first_player_score=1,
            second_player_score=0,
            tournament_id="cup",
            round_number=1,
        ),
    ]


def _tournament() -> list[MatchRecord]:
    return [match for match in _history() if match.tournament_id == "cup"]


def test_report_attaches_ratings_before_and_after() -> None:
    report = build_tournament_report(
        _tournament(),
        start=TOURNAMENT_START,
        end=TOURNAMENT_END,
        engine=RatingEngine(),
        history=_history(),
        profiles=PROFILES,
    )

    assert report.tournament_id == "cup"
    by_player = {standing.player_id: standing for standing in report.players}
    assert [standing.player_id for standing in report.players] == ["a", "b"]
    assert by_player["a"].rating_before == pytest.approx(1700.0)
    assert by_player["a"].rating_after == pytest.approx(1708.0)
    assert by_player["b"].rating_after == pytest.approx(1692.0)
    assert by_player["a"].rating_change == pytest.approx(8.0)
    assert by_player["a"].promotion_bonus == pytest.approx(0.0)
    assert set(report.audits) == {"cup-1"}
    assert report.audits["cup-1"].first_shift == pytest.approx(8.0)


def test_report_without_engine_has_no_ratings() -> None:
    report = build_tournament_report(_tournament(), start=TOURNAMENT_START, end=TOURNAMENT_END)

    assert all(standing.rating_before is None for standing in report.players)
    assert all(standing.rating_after is None for standing in report.players)
    assert report.audits == {}
    assert report.teams == []


def test_hidden_players_get_no_rating() -> None:
    report = build_tournament_report(
        _tournament(),
        start=TOURNAMENT_START,
        end=TOURNAMENT_END,
        engine=RatingEngine(),
        history=_history(),
    )

    assert all(standing.rating_after is None for standing in report.players)


def test_report_includes_team_standings() -> None:
    report = build_tournament_report(
        _tournament(),
        start=TOURNAMENT_START,
        end=TOURNAMENT_END,
        memberships={"a": "T1", "b": "T2"},
        team_mode=TeamScoringMode.TEAM,
    )

    assert [team.team_id for team in report.teams] == ["T1", "T2"]
    assert [team.calculated_position for team in report.teams] == [1, 2]
    assert report.teams[0].round_points == pytest.approx(1.5)


def test_rebuild_single_system_reports_counts(tmp_path: Path) -> None:
    config_path = tmp_path / "system.toml"
    config_path.write_text('[system]\nname = "tmp_system"\n')
    system = load_rating_system_config(config_path)
    lines: list[str] = []

    summary, result = rebuild_single_system(
        system_config=system,
        matches=_history(),
        profiles=PROFILES,
        cutoff=TOURNAMENT_END,
        echo=lines.append,
    )

    assert summary.system_name == "tmp_system"
    assert summary.config_file == "system.toml"
    assert summary.input_matches == 2
    assert summary.rated_matches == 2
    assert summary.active_players == 2
    assert summary.hidden_players == 0
    assert summary.promotion_bonuses == 0
    assert result.rating_for("a") == pytest.approx(1708.0)
    assert len(lines) == 1
    assert "system=tmp_system" in lines[0]
    assert "rated_matches=2" in lines[0]
