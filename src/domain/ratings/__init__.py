"""Elo-family rating replay."""

from domain.ratings.config import RatingSystemConfig, load_rating_system_configs
from domain.ratings.engine import EngineParameters, MatchRatingAudit, RatingEngine, RatingEngineResult
from domain.ratings.formula import (
    BradleyTerryFormula,
    FormulaParameters,
    LogisticFormula,
    create_formula,
)

__all__ = [
    "BradleyTerryFormula",
    "EngineParameters",
    "FormulaParameters",
    "LogisticFormula",
    "MatchRatingAudit",
    "RatingEngine",
    "RatingEngineResult",
    "RatingSystemConfig",
    "create_formula",
    "load_rating_system_configs",
]
