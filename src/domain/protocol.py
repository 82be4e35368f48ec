"""Shared protocols and enums for rating and standings systems."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from domain.common import PlayerClass


class FormulaKind(str, Enum):
    """Shape of the expected-score curve."""

    LOGISTIC = "logistic"
    BRADLEY_TERRY = "bradley_terry"


class Regime(str, Enum):
    """How a player's K-factor is adjusted while their rating is uncertain."""

    ESTABLISHED = "established"
    DYNAMIC_LONG = "dynamic_long"
    DYNAMIC_SHORT = "dynamic_short"

    @classmethod
    def for_class(cls, classification: PlayerClass) -> "Regime":
        if classification in (PlayerClass.RECOGNIZED, PlayerClass.PRO):
            return cls.ESTABLISHED
        if classification is PlayerClass.NEW_LOCAL_DAN:
            return cls.DYNAMIC_SHORT
        return cls.DYNAMIC_LONG


class TeamScoringMode(str, Enum):
    """How team standings are derived from individual games."""

    PERSONAL_AWARD = "personal_award"
    TEAM = "team"


@runtime_checkable
class RatingFormula(Protocol):
    """Contract all Elo-family formula variants satisfy."""

    min_rating: float

    def expected_score(self, rating: float, opponent_rating: float) -> float: ...

    def k_factor(self, rating: float) -> float: ...

    def new_rating(
        self,
        rating: float,
        opponent_rating: float,
        actual_score: float,
        k_factor: float,
    ) -> float: ...

    def rate(
        self,
        rating_a: float,
        rating_b: float,
        score_a: float,
        score_b: float,
        k_factor: float,
    ) -> tuple[float, float]: ...


__all__ = [
    "FormulaKind",
    "RatingFormula",
    "Regime",
    "TeamScoringMode",
]
