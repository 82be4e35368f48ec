"""JSON adapters that turn exported league data into domain records."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from domain.common import MatchRecord, PlayerClass, PlayerProfile, PromotionEvent


def _parse_time(value: Any, *, source: Path, index: int, key: str) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"{source}: entry {index} has an invalid {key}: {value!r}") from exc


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _read_entries(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as file:
        raw = json.load(file)
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON list of objects")
    return raw


def parse_match(raw: dict[str, Any], *, source: Path, index: int) -> MatchRecord:
    if "id" not in raw:
        raise ValueError(f"{source}: entry {index} is missing id")
    round_value = raw.get("round")
    factor_value = raw.get("factor")
    return MatchRecord(
        match_id=str(raw["id"]),
        event_time=_parse_time(raw.get("date"), source=source, index=index, key="date"),
        first_player_id=_optional_str(raw.get("first_player")),
        second_player_id=_optional_str(raw.get("second_player")),
        first_player_score=int(raw.get("first_score", 0)),
        second_player_score=int(raw.get("second_score", 0)),
        factor=1.0 if factor_value is None else float(factor_value),
        sequence=int(raw.get("sequence", index)),
        tournament_id=_optional_str(raw.get("tournament")),
        round_number=None if round_value is None else int(round_value),
        match_name=_optional_str(raw.get("name")),
        organizer=_optional_str(raw.get("organizer")),
    )


def parse_player(raw: dict[str, Any], *, source: Path, index: int) -> PlayerProfile:
    if "id" not in raw:
        raise ValueError(f"{source}: entry {index} is missing id")

    class_value = str(raw.get("class", PlayerClass.UNKNOWN.value))
    try:
        classification = PlayerClass(class_value)
    except ValueError as exc:
        valid = ", ".join(item.value for item in PlayerClass)
        raise ValueError(f"{source}: entry {index} class must be one of: {valid}") from exc

    promotions = tuple(
        PromotionEvent(
            effective_date=_parse_time(item.get("date"), source=source, index=index, key="promotion date"),
            organization=str(item.get("organization", "SWA")),
            old_rank=str(item.get("old_rank", "")),
            new_rank=str(item.get("new_rank", "")),
            new_rank_rating=None if item.get("rating") is None else float(item["rating"]),
        )
        for item in raw.get("promotions", [])
    )
    rating_value = raw.get("rating")
    return PlayerProfile(
        player_id=str(raw["id"]),
        classification=classification,
        initial_rating=None if rating_value is None else float(rating_value),
        initial_rank=_optional_str(raw.get("rank")),
        organization=_optional_str(raw.get("organization")),
        is_pro=bool(raw.get("pro", False)),
        promotions=promotions,
    )


def load_matches(path: Path) -> list[MatchRecord]:
    return [parse_match(raw, source=path, index=index) for index, raw in enumerate(_read_entries(path))]


def load_players(path: Path) -> dict[str, PlayerProfile]:
    profiles = [parse_player(raw, source=path, index=index) for index, raw in enumerate(_read_entries(path))]
    return {profile.player_id: profile for profile in profiles}


def load_memberships(path: Path) -> dict[str, str]:
    """Read a ``{"player_id": "team_id"}`` mapping."""
    with path.open("r", encoding="utf-8") as file:
        raw = json.load(file)
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a JSON object mapping players to teams")
    return {str(player_id): str(team_id) for player_id, team_id in raw.items()}


__all__ = [
    "load_matches",
    "load_memberships",
    "load_players",
    "parse_match",
    "parse_player",
]
