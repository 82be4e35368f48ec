"""TOML loading shared by the named rating variants under ``configs/``.

Each ``*.toml`` file defines one variant (formula, dynamic K and promotion
settings) under a unique ``[system].name``. Parsers turn the raw TOML table into
a frozen config dataclass and raise ``ValueError`` naming the file and key.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar
import tomllib


@dataclass(frozen=True)
class BaseSystemConfig:
    """Name and provenance of one rating variant."""

    name: str
    description: str | None
    file_path: Path

    def as_config_json(self) -> dict[str, Any]:
        raise NotImplementedError


ConfigT = TypeVar("ConfigT", bound=BaseSystemConfig)
ConfigParser = Callable[[dict[str, Any], Path], ConfigT]


def _read_toml(file_path: Path) -> dict[str, Any]:
    with file_path.open("rb") as file:
        return tomllib.load(file)


def load_system_config(file_path: Path, parser: ConfigParser[ConfigT]) -> ConfigT:
    if not file_path.is_file():
        raise FileNotFoundError(f"Config file not found: {file_path}")
    return parser(_read_toml(file_path), file_path)


def load_system_configs(
    config_dir: Path,
    parser: ConfigParser[ConfigT],
    *,
    duplicate_name_label: str = "rating",
) -> list[ConfigT]:
    """Parse every variant in ``config_dir``, sorted by file name.

    Variant names must be unique across the directory since callers select a
    variant by name.
    """
    if not config_dir.is_dir():
        if config_dir.exists():
            raise NotADirectoryError(f"Config path is not a directory: {config_dir}")
        raise FileNotFoundError(f"Config directory not found: {config_dir}")

    config_files = sorted(config_dir.glob("*.toml"))
    if not config_files:
        raise ValueError(f"No .toml config files found in: {config_dir}")

    systems = [load_system_config(file_path, parser) for file_path in config_files]

    duplicated = sorted(name for name, count in Counter(system.name for system in systems).items() if count > 1)
    if duplicated:
        sources = {
            name: [system.file_path.name for system in systems if system.name == name] for name in duplicated
        }
        raise ValueError(
            f"Duplicate {duplicate_name_label} system names found in {config_dir}: {sources}"
        )
    return systems


__all__ = ["BaseSystemConfig", "load_system_config", "load_system_configs"]
