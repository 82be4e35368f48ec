"""Shared record types for rating and standings calculations."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class InvalidMatchError(ValueError):
    """Raised when match input cannot be replayed."""


class PlayerClass(str, Enum):
    """External ranking classification of a player at the start of a run."""

    RECOGNIZED = "recognized"
    PRO = "pro"
    UNKNOWN = "unknown"
    FOREIGN_DAN = "foreign_dan"
    FOREIGN_KYU = "foreign_kyu"
    NEW_LOCAL_DAN = "new_local_dan"


@dataclass(frozen=True)
class MatchRecord:
    """Canonical head-to-head result consumed by the engine and standings."""

    match_id: str
    event_time: datetime
    first_player_id: str | None
    second_player_id: str | None
    first_player_score: int
    second_player_score: int
    factor: float = 1.0
    sequence: int = 0
    tournament_id: str | None = None
    round_number: int | None = None
    match_name: str | None = None
    organizer: str | None = None

    @property
    def is_bye(self) -> bool:
        return self.first_player_id is None or self.second_player_id is None

    @property
    def present_player_id(self) -> str | None:
        """The player that actually sat down for a bye."""
        return self.first_player_id if self.first_player_id is not None else self.second_player_id

    @property
    def present_player_score(self) -> int:
        if self.first_player_id is not None:
            return self.first_player_score
        return self.second_player_score

    @property
    def absent_player_score(self) -> int:
        if self.first_player_id is not None:
            return self.second_player_score
        return self.first_player_score

    @property
    def first_player_result(self) -> float:
        """Elo-style actual score for the first player: 1, 0.5 or 0."""
        if self.first_player_score > self.second_player_score:
            return 1.0
        if self.first_player_score < self.second_player_score:
            return 0.0
        return 0.5

    @property
    def is_rated(self) -> bool:
        return self.factor != 0.0

    def sort_key(self) -> tuple[datetime, int]:
        return (self.event_time, self.sequence)


@dataclass(frozen=True)
class PromotionEvent:
    """A rank change reported by an organization on a given date."""

    effective_date: datetime
    organization: str
    old_rank: str
    new_rank: str
    new_rank_rating: float | None = None


@dataclass(frozen=True)
class PlayerProfile:
    """Metadata a caller supplies to select a player's rating regime."""

    player_id: str
    classification: PlayerClass = PlayerClass.UNKNOWN
    initial_rating: float | None = None
    initial_rank: str | None = None
    organization: str | None = None
    is_pro: bool = False
    promotions: tuple[PromotionEvent, ...] = field(default_factory=tuple)


def validate_matches(matches: Iterable[MatchRecord]) -> list[MatchRecord]:
    """Reject malformed input before any state is mutated."""
    validated: list[MatchRecord] = []
    seen_ids: set[str] = set()
    aware: bool | None = None

    for match in matches:
        if not isinstance(match.event_time, datetime):
            raise InvalidMatchError(f"match {match.match_id}: event_time must be a datetime")
        is_aware = match.event_time.tzinfo is not None
        if aware is None:
            aware = is_aware
        elif aware != is_aware:
            raise InvalidMatchError(
                f"match {match.match_id}: cannot mix naive and timezone-aware event times"
            )
        if match.match_id in seen_ids:
            raise InvalidMatchError(f"duplicate match id: {match.match_id}")
        if match.first_player_score < 0 or match.second_player_score < 0:
            raise InvalidMatchError(f"match {match.match_id}: scores must be >= 0")
        if match.factor < 0.0:
            raise InvalidMatchError(f"match {match.match_id}: factor must be >= 0")
        if match.first_player_id is None and match.second_player_id is None:
            raise InvalidMatchError(f"match {match.match_id}: at least one player is required")
        if match.first_player_id is not None and match.first_player_id == match.second_player_id:
            raise InvalidMatchError(f"match {match.match_id}: a player cannot face themselves")

        seen_ids.add(match.match_id)
        validated.append(match)

    return validated


__all__ = [
    "InvalidMatchError",
    "MatchRecord",
    "PlayerClass",
    "PlayerProfile",
    "PromotionEvent",
    "validate_matches",
]
