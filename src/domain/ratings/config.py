"""Load rating system definitions from TOML files."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any

from domain.config_base import BaseSystemConfig, load_system_config, load_system_configs
from domain.protocol import FormulaKind, RatingFormula
from domain.ratings.engine import RATING_START_DATE, EngineParameters, RatingEngine
from domain.ratings.formula import FormulaParameters, create_formula

ROOT_DIR = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = ROOT_DIR / "configs" / "ratings"


@dataclass(frozen=True)
class RatingSystemConfig(BaseSystemConfig):
    """Configuration for one named rating variant."""

    formula: FormulaParameters
    engine: EngineParameters

    def as_config_json(self) -> dict[str, Any]:
        formula = asdict(self.formula)
        formula["kind"] = self.formula.kind.value
        formula["k_table"] = [list(row) for row in self.formula.k_table]
        engine = asdict(self.engine)
        start = self.engine.rating_start_date
        engine["rating_start_date"] = None if start is None else start.isoformat()
        return {"formula": formula, "engine": engine}

    def create_formula(self) -> RatingFormula:
        return create_formula(self.formula)

    def create_engine(self) -> RatingEngine:
        return RatingEngine(self.engine, self.create_formula())


def load_rating_system_configs(config_dir: Path = DEFAULT_CONFIG_DIR) -> list[RatingSystemConfig]:
    """Load and validate all rating system TOML config files in a directory."""
    return load_system_configs(
        config_dir,
        _parse_rating_system_config,
        duplicate_name_label="rating",
    )


def load_rating_system_config(file_path: Path) -> RatingSystemConfig:
    return load_system_config(file_path, _parse_rating_system_config)


def _parse_datetime(value: Any, *, file_path: Path, key: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError as exc:
        raise ValueError(f"{file_path}: {key} must be an ISO date") from exc


def _parse_k_table(raw: Any, *, file_path: Path) -> tuple[tuple[float, float], ...]:
    if raw is None:
        return ()
    rows: list[tuple[float, float]] = []
    for row in raw:
        if len(row) != 2:
            raise ValueError(f"{file_path}: [formula].k_table rows must be [threshold, k] pairs")
        rows.append((float(row[0]), float(row[1])))
    return tuple(rows)


def _parse_rating_system_config(raw: dict[str, Any], file_path: Path) -> RatingSystemConfig:
    system_raw = raw.get("system", {})
    formula_raw = raw.get("formula", {})
    dynamic_raw = raw.get("dynamic", {})
    promotion_raw = raw.get("promotion", {})

    name = str(system_raw.get("name", "")).strip()
    if not name:
        raise ValueError(f"{file_path}: [system].name is required")

    description_value = system_raw.get("description")
    description = None if description_value is None else str(description_value)

    kind_value = str(formula_raw.get("kind", FormulaKind.LOGISTIC.value))
    try:
        kind = FormulaKind(kind_value)
    except ValueError as exc:
        valid = ", ".join(item.value for item in FormulaKind)
        raise ValueError(f"{file_path}: [formula].kind must be one of: {valid}") from exc

    subset_value = system_raw.get("match_subset")
    start_value = system_raw.get("rating_start_date", RATING_START_DATE)

    formula = FormulaParameters(
        kind=kind,
        scale_factor=float(formula_raw.get("scale_factor", 400.0)),
        k_factor=float(formula_raw.get("k_factor", 16.0)),
        k_table=_parse_k_table(formula_raw.get("k_table"), file_path=file_path),
        ceiling=float(formula_raw.get("ceiling", 3300.0)),
        beta_coefficient=float(formula_raw.get("beta_coefficient", 7.0)),
        con_divisor=float(formula_raw.get("con_divisor", 200.0)),
        con_exponent=float(formula_raw.get("con_exponent", 1.6)),
        min_rating=float(formula_raw.get("min_rating", -900.0)),
        deflation_bonus=bool(formula_raw.get("deflation_bonus", False)),
    )
    engine = EngineParameters(
        rating_start_date=_parse_datetime(start_value, file_path=file_path, key="[system].rating_start_date"),
        subset_keyword=None if not subset_value else str(subset_value),
        default_rating=float(system_raw.get("default_rating", 1700.0)),
        international=bool(system_raw.get("international", False)),
        long_window_games=int(dynamic_raw.get("long_window_games", 12)),
        long_window_divisor=float(dynamic_raw.get("long_window_divisor", 6.0)),
        short_window_games=int(dynamic_raw.get("short_window_games", 6)),
        short_window_multiplier=float(dynamic_raw.get("short_window_multiplier", 2.0)),
        protection_multiplier=float(dynamic_raw.get("protection_multiplier", 0.5)),
        mutual_dynamic_cap=float(dynamic_raw.get("mutual_dynamic_cap", 2.0)),
        return_gap_days=int(dynamic_raw.get("return_gap_days", 730)),
        estimation_correction=float(dynamic_raw.get("estimation_correction", 0.5)),
        estimation_max_diff=float(dynamic_raw.get("estimation_max_diff", 200.0)),
        estimation_margin=float(dynamic_raw.get("estimation_margin", 150.0)),
        promotion_enabled=bool(promotion_raw.get("enabled", True)),
        promotion_ceiling=float(promotion_raw.get("ceiling", 2500.0)),
        promotion_floor_fraction=float(promotion_raw.get("floor_fraction", 0.5)),
        ranked_window_days=int(system_raw.get("ranked_window_days", 730)),
    )
    _validate_formula(file_path=file_path, formula=formula)
    _validate_engine(file_path=file_path, engine=engine)

    return RatingSystemConfig(
        name=name,
        description=description,
        file_path=file_path,
        formula=formula,
        engine=engine,
    )


def _validate_formula(*, file_path: Path, formula: FormulaParameters) -> None:
    if formula.scale_factor <= 0.0:
        raise ValueError(f"{file_path}: [formula].scale_factor must be > 0")
    if formula.k_factor <= 0.0:
        raise ValueError(f"{file_path}: [formula].k_factor must be > 0")
    if formula.con_divisor <= 0.0:
        raise ValueError(f"{file_path}: [formula].con_divisor must be > 0")
    if formula.con_exponent <= 0.0:
        raise ValueError(f"{file_path}: [formula].con_exponent must be > 0")
    if formula.beta_coefficient <= 0.0:
        raise ValueError(f"{file_path}: [formula].beta_coefficient must be > 0")
    if formula.min_rating >= formula.ceiling:
        raise ValueError(f"{file_path}: [formula].min_rating must be below ceiling")

    previous_threshold: float | None = None
    previous_k = formula.k_factor
    for threshold, k_value in formula.k_table:
        if k_value <= 0.0:
            raise ValueError(f"{file_path}: [formula].k_table values must be > 0")
        if previous_threshold is not None and threshold <= previous_threshold:
            raise ValueError(f"{file_path}: [formula].k_table thresholds must be increasing")
        if k_value > previous_k:
            raise ValueError(f"{file_path}: [formula].k_table must be non-increasing in rating")
        previous_threshold = threshold
        previous_k = k_value


def _validate_engine(*, file_path: Path, engine: EngineParameters) -> None:
    if engine.long_window_games <= 0:
        raise ValueError(f"{file_path}: [dynamic].long_window_games must be > 0")
    if engine.short_window_games <= 0:
        raise ValueError(f"{file_path}: [dynamic].short_window_games must be > 0")
    if engine.long_window_divisor <= 0.0:
        raise ValueError(f"{file_path}: [dynamic].long_window_divisor must be > 0")
    if engine.short_window_multiplier <= 0.0:
        raise ValueError(f"{file_path}: [dynamic].short_window_multiplier must be > 0")
    if engine.protection_multiplier <= 0.0:
        raise ValueError(f"{file_path}: [dynamic].protection_multiplier must be > 0")
    if engine.mutual_dynamic_cap <= 0.0:
        raise ValueError(f"{file_path}: [dynamic].mutual_dynamic_cap must be > 0")
    if engine.return_gap_days < 0:
        raise ValueError(f"{file_path}: [dynamic].return_gap_days must be >= 0")
    if engine.estimation_correction < 0.0 or engine.estimation_correction > 1.0:
        raise ValueError(f"{file_path}: [dynamic].estimation_correction must be between 0 and 1")
    if engine.estimation_max_diff <= 0.0:
        raise ValueError(f"{file_path}: [dynamic].estimation_max_diff must be > 0")
    if engine.estimation_margin < 0.0:
        raise ValueError(f"{file_path}: [dynamic].estimation_margin must be >= 0")
    if engine.promotion_floor_fraction < 0.0 or engine.promotion_floor_fraction > 1.0:
        raise ValueError(f"{file_path}: [promotion].floor_fraction must be between 0 and 1")
    if engine.ranked_window_days < 0:
        raise ValueError(f"{file_path}: [system].ranked_window_days must be >= 0")


__all__ = [
    "DEFAULT_CONFIG_DIR",
    "RatingSystemConfig",
    "load_rating_system_config",
    "load_rating_system_configs",
]
