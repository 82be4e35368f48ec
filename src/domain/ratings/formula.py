"""Elo-family rating formulas."""

from __future__ import annotations

from dataclasses import dataclass
from math import exp, log

from domain.protocol import FormulaKind, RatingFormula


@dataclass(frozen=True)
class FormulaParameters:
    kind: FormulaKind = FormulaKind.LOGISTIC
    scale_factor: float = 400.0
    k_factor: float = 16.0
    # (threshold, k) rows; a rating uses the k of the highest threshold it reaches.
    k_table: tuple[tuple[float, float], ...] = ()
    ceiling: float = 3300.0
    beta_coefficient: float = 7.0
    con_divisor: float = 200.0
    con_exponent: float = 1.6
    min_rating: float = -900.0
    deflation_bonus: bool = False


def calculate_expected_score(rating: float, opponent_rating: float, scale_factor: float) -> float:
    """Compute the logistic Elo expected score for one side."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / scale_factor))


def calculate_deflation_bonus(rating: float) -> float:
    """Small per-game bonus that counters rating deflation at low ratings."""
    return log(1.0 + exp((2300.0 - rating) / 80.0)) / 5.0


class EloFormula:
    """Update rule shared by every expected-score curve."""

    def __init__(self, params: FormulaParameters) -> None:
        self.params = params
        self.min_rating = params.min_rating

    def expected_score(self, rating: float, opponent_rating: float) -> float:
        raise NotImplementedError

    def k_factor(self, rating: float) -> float:
        raise NotImplementedError

    def bonus(self, rating: float) -> float:
        if not self.params.deflation_bonus:
            return 0.0
        return calculate_deflation_bonus(rating)

    def new_rating(
        self,
        rating: float,
        opponent_rating: float,
        actual_score: float,
        k_factor: float,
    ) -> float:
        expected = self.expected_score(rating, opponent_rating)
        updated = rating + k_factor * (actual_score - expected) + self.bonus(rating)
        return max(updated, self.min_rating)

    def rate(
        self,
        rating_a: float,
        rating_b: float,
        score_a: float,
        score_b: float,
        k_factor: float,
    ) -> tuple[float, float]:
        """Rate one game where both sides share the same K."""
        return (
            self.new_rating(rating_a, rating_b, score_a, k_factor),
            self.new_rating(rating_b, rating_a, score_b, k_factor),
        )


class LogisticFormula(EloFormula):
    """Classic base-10 logistic Elo with a step K table."""

    def expected_score(self, rating: float, opponent_rating: float) -> float:
        return calculate_expected_score(rating, opponent_rating, self.params.scale_factor)

    def k_factor(self, rating: float) -> float:
        k_value = self.params.k_factor
        for threshold, table_k in self.params.k_table:
            if rating >= threshold:
                k_value = table_k
        return k_value


class BradleyTerryFormula(EloFormula):
    """EGD-style formula over beta(r) = -c * ln(ceiling - r)."""

    def _headroom(self, rating: float) -> float:
        # Ratings at or above the ceiling would make the log undefined.
        return max(self.params.ceiling - rating, 1e-9)

    def beta(self, rating: float) -> float:
        return -self.params.beta_coefficient * log(self._headroom(rating))

    def expected_score(self, rating: float, opponent_rating: float) -> float:
        return 1.0 / (1.0 + exp(self.beta(opponent_rating) - self.beta(rating)))

    def k_factor(self, rating: float) -> float:
        return (self._headroom(rating) / self.params.con_divisor) ** self.params.con_exponent


_FORMULAS: dict[FormulaKind, type[EloFormula]] = {
    FormulaKind.LOGISTIC: LogisticFormula,
    FormulaKind.BRADLEY_TERRY: BradleyTerryFormula,
}


def create_formula(params: FormulaParameters) -> RatingFormula:
    """Build the formula variant named by ``params.kind``."""
    try:
        formula_cls = _FORMULAS[FormulaKind(params.kind)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"Unknown formula kind: {params.kind!r}") from exc
    return formula_cls(params)


__all__ = [
    "BradleyTerryFormula",
    "EloFormula",
    "FormulaParameters",
    "LogisticFormula",
    "calculate_deflation_bonus",
    "calculate_expected_score",
    "create_formula",
]
