"""Tests for the rank ladder used for initial ratings and promotion floors."""

from __future__ import annotations

import pytest

from domain.ratings.rankings import (
    get_dan_rating,
    get_kyu_rating,
    get_pro_rating,
    get_single_rank_difference,
    is_kyu_rank,
    is_trusted_organization,
    parse_ranking_string,
    rank_rating,
)


def test_dan_and_pro_ladders() -> None:
    assert get_dan_rating(1) == 2100
    assert get_dan_rating(7) == 2700
    assert get_pro_rating(1) == 2740
    assert get_pro_rating(9) == 3060


@pytest.mark.parametrize(
    ("kyu", "expected"),
    [(1, 2050), (2, 2025), (5, 1950), (10, 1800), (20, 1400), (30, 900)],
)
def test_kyu_ladder(kyu: int, expected: int) -> None:
    assert get_kyu_rating(kyu) == expected


@pytest.mark.parametrize(
    ("rating", "expected"),
    [(2300, 100), (2200, 100), (2100, 50), (2025, 25), (1900, 30), (1800, 40), (1401, 40), (1400, 50)],
)
def test_single_rank_difference(rating: int, expected: int) -> None:
    assert get_single_rank_difference(rating) == expected


@pytest.mark.parametrize(
    ("ranking", "expected"),
    [
        ("3D", 2300),
        ("(3D)", 2200),
        ("(1D)", 2075),
        ("[2D CWA]", 2100),
        ("5K", 1950),
        ("1P", 2740),
        ("1D (2D)", 2100),
        ("", 1700),
        (None, 1700),
    ],
)
def test_rank_rating_conventions(ranking: str | None, expected: int) -> None:
    assert rank_rating(ranking) == expected


def test_international_leagues_skip_foreign_dan_adjustment() -> None:
    assert rank_rating("[2D CWA]", international=True) == 2200


def test_parse_ranking_string() -> None:
    assert parse_ranking_string("[2D CWA]") == ("2D", "CWA")
    assert parse_ranking_string("(1K)") == ("1K", "TGA")
    assert parse_ranking_string("4d") == ("4D", "SWA")
    assert is_kyu_rank("(12K)")
    assert not is_kyu_rank("1D")


def test_trusted_organizations() -> None:
    assert is_trusted_organization("SWA")
    assert is_trusted_organization("egf")
    assert not is_trusted_organization("CWA")
    assert not is_trusted_organization(None)


def test_bare_grade_uses_issuing_organization() -> None:
    assert rank_rating("3D", organization="EGF") == rank_rating("2D")
    assert rank_rating("3D", organization="SWA") == rank_rating("3D")
    assert rank_rating("[3D EGF]", organization="SWA") == rank_rating("[3D EGF]")
    assert rank_rating("(1K)", organization="EGF") == rank_rating("(1K)")
