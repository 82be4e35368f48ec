"""Rating and tournament standings domain modules."""

from domain.common import InvalidMatchError, MatchRecord, PlayerClass, PlayerProfile, PromotionEvent
from domain.protocol import FormulaKind, RatingFormula, Regime, TeamScoringMode

__all__ = [
    "FormulaKind",
    "InvalidMatchError",
    "MatchRecord",
    "PlayerClass",
    "PlayerProfile",
    "PromotionEvent",
    "RatingFormula",
    "Regime",
    "TeamScoringMode",
]
