"""Tests for Swiss statistics and individual standings."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from domain.common import MatchRecord
from domain.standings.ranking import positions_to_persist, rank_players
from domain.standings.swiss import (
    SwissPlayerStats,
    calculate_sos,
    calculate_sosos,
    calculate_swiss_stats,
    summarize_tournament,
)

START = datetime(2024, 5, 4, 9, 0)


def _game(
    match_id: str,
    first: str | None,
    second: str | None,
    first_score: int,
    second_score: int,
    round_number: int = 1,
) -> MatchRecord:
    return MatchRecord(
        match_id=match_id,
        event_time=START + timedelta(hours=round_number),
        first_player_id=first,
        second_player_id=second,
        first_player_score=first_score,
        second_player_score=second_score,
        tournament_id="t1",
        round_number=round_number,
    )


def test_sos_and_sosos_sum_over_opponents() -> None:
    stats = {
        "p": SwissPlayerStats(player_id="p", wins=1.0, opponents=["a", "b"]),
        "a": SwissPlayerStats(player_id="a", wins=3.0, opponents=["p"]),
        "b": SwissPlayerStats(player_id="b", wins=5.0, opponents=["p"]),
    }

    sos = calculate_sos(stats)
    sosos = calculate_sosos(stats, sos)

    assert sos["p"] == pytest.approx(8.0)
    assert sos["a"] == pytest.approx(1.0)
    assert sosos["p"] == pytest.approx(sos["a"] + sos["b"])


def test_draws_and_points() -> None:
    stats = calculate_swiss_stats([_game("m1", "a", "b", 3, 3), _game("m2", "a", "c", 5, 2, round_number=2)])

    assert stats["a"].wins == pytest.approx(1.5)
    assert stats["a"].draws == 1
    assert stats["b"].wins == pytest.approx(0.5)
    assert stats["a"].points_for == 8
    assert stats["a"].points_against == 5
    assert stats["a"].opponents == ["b", "c"]
    assert stats["c"].losses == 1


def test_bye_counts_result_without_opponent() -> None:
    stats = calculate_swiss_stats(
        [
            _game("m1", "a", None, 1, 0),
            _game("m2", None, "b", 1, 0),
        ]
    )

    assert stats["a"].wins == pytest.approx(1.0)
    assert stats["a"].opponents == []
    assert stats["a"].points_for == 0
    assert stats["b"].losses == 1
    assert stats["b"].byes == 1


def test_round_robin_with_undefeated_winner() -> None:
    matches = [
        _game("m1", "x", "a", 1, 0, 1),
        _game("m2", "b", "c", 1, 0, 1),
        _game("m3", "x", "b", 1, 0, 2),
        _game("m4", "a", "c", 1, 0, 2),
        _game("m5", "x", "c", 1, 0, 3),
        _game("m6", "a", "b", 1, 0, 3),
    ]

    standings = rank_players(summarize_tournament(matches))

    assert [standing.player_id for standing in standings] == ["x", "a", "b", "c"]
    assert [standing.calculated_position for standing in standings] == [1, 2, 3, 4]
    assert standings[0].is_undefeated


def test_all_undefeated_players_share_first_place() -> None:
    matches = [_game("m1", "x", "a", 1, 0), _game("m2", "y", "b", 1, 0)]

    standings = rank_players(summarize_tournament(matches))

    positions = {standing.player_id: standing.calculated_position for standing in standings}
    assert positions == {"x": 1, "y": 1, "a": 3, "b": 3}


def test_ties_share_position_but_point_differential_orders() -> None:
    matches = [
        _game("m1", "a", "c", 10, 0, 1),
        _game("m2", "b", "d", 1, 0, 1),
        _game("m3", "e", "a", 1, 0, 2),
        _game("m4", "e", "b", 1, 0, 3),
    ]

    standings = rank_players(summarize_tournament(matches))

    assert [standing.player_id for standing in standings] == ["e", "a", "b", "d", "c"]
    assert [standing.calculated_position for standing in standings] == [1, 2, 2, 4, 4]


def test_draw_only_player_is_not_undefeated() -> None:
    summary = summarize_tournament([_game("m1", "a", "b", 2, 2)])

    assert not summary.stats["a"].is_undefeated
    standings = rank_players(summary)
    assert [standing.calculated_position for standing in standings] == [1, 1]


def test_saved_positions_take_precedence() -> None:
    matches = [
        _game("m1", "x", "a", 1, 0, 1),
        _game("m2", "b", "c", 1, 0, 1),
        _game("m3", "x", "b", 1, 0, 2),
        _game("m4", "a", "c", 1, 0, 2),
    ]

    standings = rank_players(summarize_tournament(matches), saved_positions={"c": 1})

    assert [standing.player_id for standing in standings][:2] == ["x", "c"]
    saved = next(standing for standing in standings if standing.player_id == "c")
    assert saved.display_position == 1
    assert saved.calculated_position == 4
    assert "c" not in positions_to_persist(standings)
    assert positions_to_persist(standings, overwrite=True)["c"] == 4


def test_standings_do_not_mutate_input() -> None:
    matches = [_game("m1", "a", "b", 1, 0)]
    snapshot = list(matches)

    summarize_tournament(matches)

    assert matches == snapshot
