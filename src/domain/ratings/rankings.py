"""Rank ladder: convert go grades (kyu, dan, pro) into rating values.

Rank strings follow three conventions:

* ``"3D"`` is a local (SWA) grade,
* ``"(3D)"`` is a TGA grade,
* ``"[3D CWA]"`` is a grade from a foreign organization.

A combined string such as ``"1D (2D)"`` carries both a local and a TGA grade; the
first grade listed is the effective one.
"""

from __future__ import annotations

import re

ONE_D_RATING = 2100
ONE_P_RATING = 2740
DAN_GRADE_DIFF = 100
PRO_GRADE_DIFF = 40
DEFAULT_RATING = 1700
MIN_RATING = -900

THRESHOLD_2D_PLUS = 2200
THRESHOLD_1D = 2100
THRESHOLD_1K_4K = 1950
THRESHOLD_5K_9K = 1800
THRESHOLD_10K_19K = 1400

LOCAL_ORGANIZATIONS = frozenset({"SWA", "TGA"})
TRUSTED_ORGANIZATIONS = frozenset({"SWA", "TGA", "MWA", "KBA", "THAILAND", "VIETNAM", "EGF"})

_NUMBER_PATTERN = re.compile(r"\d+")
_FOREIGN_PATTERN = re.compile(r"\[([^\s\]]+)\s*([^\]]*)\]")


def get_pro_rating(pro: int) -> int:
    return ONE_P_RATING + (pro - 1) * PRO_GRADE_DIFF


def get_dan_rating(dan: int) -> int:
    return ONE_D_RATING + (dan - 1) * DAN_GRADE_DIFF


def get_kyu_difference(kyu: int) -> int:
    """Rating gap between ``kyu`` and the grade one step stronger."""
    if kyu == 1:
        return 50
    if kyu <= 5:
        return 25
    if kyu <= 10:
        return 30
    if kyu <= 20:
        return 40
    return 50


def get_kyu_rating(kyu: int) -> int:
    rating = ONE_D_RATING
    for level in range(1, kyu + 1):
        rating -= get_kyu_difference(level)
    return max(rating, MIN_RATING)


def get_single_rank_difference(rating: float) -> int:
    """Width of one grade step around ``rating``; used for promotion floors."""
    if rating >= THRESHOLD_2D_PLUS:
        return DAN_GRADE_DIFF
    if rating >= THRESHOLD_1D:
        return 50
    if rating > THRESHOLD_1K_4K:
        return 25
    if rating > THRESHOLD_5K_9K:
        return 30
    if rating > THRESHOLD_10K_19K:
        return 40
    return 50


def calculate_rating(grade: str | None, organization: str | None, *, international: bool = False) -> int:
    """Rating for a bare grade such as ``"2D"`` issued by ``organization``.

    Foreign dan grades sit one level below local ones, except a foreign 1D which
    lands halfway between local 1K and 1D. International leagues skip that
    adjustment.
    """
    if not grade:
        return DEFAULT_RATING

    grade = grade.upper()
    number_match = _NUMBER_PATTERN.search(grade)
    number = int(number_match.group()) if number_match else 0

    is_pro = "P" in grade
    is_dan = "D" in grade
    is_kyu = "K" in grade

    delta = 0
    if (organization or "").upper() != "SWA" and not international and is_dan:
        if number == 1:
            delta = -25
        else:
            number -= 1

    if is_pro:
        return get_pro_rating(number)
    if is_dan:
        return get_dan_rating(number) + delta
    if is_kyu:
        return get_kyu_rating(number)
    return DEFAULT_RATING


def get_effective_ranking(ranking: str | None) -> str | None:
    if not ranking:
        return ranking

    ranking = ranking.strip().upper()
    if ranking.startswith("["):
        return ranking
    head, _, _ = ranking.partition(" ")
    return head


def parse_ranking_string(ranking: str | None) -> tuple[str, str]:
    """Split a rank string into ``(grade, organization)``."""
    if not ranking:
        return ("", "SWA")

    effective = get_effective_ranking(ranking) or ""
    if "[" in effective:
        match = _FOREIGN_PATTERN.search(effective)
        if match:
            organization = match.group(2).strip() or "Foreign"
            return (match.group(1), organization)
        return (effective.replace("[", "").replace("]", ""), "Foreign")
    if "(" in effective:
        return (effective.replace("(", "").replace(")", ""), "TGA")
    return (effective, "SWA")


def rank_rating(
    ranking: str | None,
    *,
    organization: str | None = None,
    international: bool = False,
) -> int:
    """Rating for a full rank string in any of the supported conventions.

    A bare grade such as ``"3D"`` is read as issued by ``organization`` when one
    is given. Bracketed and parenthesized ranks name their own organization.
    """
    grade, parsed_organization = parse_ranking_string(ranking)
    effective = get_effective_ranking(ranking) or ""
    if organization and not effective.startswith(("[", "(")):
        parsed_organization = organization
    return calculate_rating(grade, parsed_organization, international=international)


def is_kyu_rank(ranking: str | None) -> bool:
    grade, _ = parse_ranking_string(ranking)
    return "K" in grade


def is_trusted_organization(organization: str | None) -> bool:
    return (organization or "").strip().upper() in TRUSTED_ORGANIZATIONS


def is_local_organization(organization: str | None) -> bool:
    return (organization or "").strip().upper() in LOCAL_ORGANIZATIONS


__all__ = [
    "DEFAULT_RATING",
    "LOCAL_ORGANIZATIONS",
    "MIN_RATING",
    "TRUSTED_ORGANIZATIONS",
    "calculate_rating",
    "get_dan_rating",
    "get_effective_ranking",
    "get_kyu_difference",
    "get_kyu_rating",
    "get_pro_rating",
    "get_single_rank_difference",
    "is_kyu_rank",
    "is_local_organization",
    "is_trusted_organization",
    "parse_ranking_string",
    "rank_rating",
]
