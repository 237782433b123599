"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import yaml

Seeding = Literal["ranked", "random"]


@dataclass
class RatingConfig:
    initial_rating: int = 1200
    k_factor: int = 32
    use_score_margin: bool = True   # scale rating exchange by score margin


@dataclass
class TournamentConfig:
    seeding: Seeding = "ranked"


@dataclass
class CalibrationConfig:
    default_rounds: int = 5


@dataclass
class StorageConfig:
    state_path: str = "./matchups_state.json"
    log_dir: str = "./logs"


@dataclass
class Config:
    rating: RatingConfig = field(default_factory=RatingConfig)
    tournament: TournamentConfig = field(default_factory=TournamentConfig)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    @property
    def state_path(self) -> Path:
        return Path(self.storage.state_path)

    @property
    def log_dir_path(self) -> Path:
        return Path(self.storage.log_dir)


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and adjust it."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        rating_raw = raw.get("rating") or {}
        rating_cfg = RatingConfig(
            initial_rating=int(rating_raw.get("initial_rating", 1200)),
            k_factor=int(rating_raw.get("k_factor", 32)),
            use_score_margin=bool(rating_raw.get("use_score_margin", True)),
        )

        tournament_raw = raw.get("tournament") or {}
        tournament_cfg = TournamentConfig(
            seeding=tournament_raw.get("seeding", "ranked"),
        )

        calibration_raw = raw.get("calibration") or {}
        calibration_cfg = CalibrationConfig(
            default_rounds=int(calibration_raw.get("default_rounds", 5)),
        )

        storage_raw = raw.get("storage") or {}
        storage_cfg = StorageConfig(
            state_path=str(storage_raw.get("state_path", "./matchups_state.json")),
            log_dir=str(storage_raw.get("log_dir", "./logs")),
        )

        config = Config(
            rating=rating_cfg,
            tournament=tournament_cfg,
            calibration=calibration_cfg,
            storage=storage_cfg,
        )
        _validate(config)
        return config

    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _validate(config: Config) -> None:
    valid_seedings = ("ranked", "random")
    if config.tournament.seeding not in valid_seedings:
        raise ValueError(
            f"tournament.seeding must be one of {valid_seedings}, got '{config.tournament.seeding}'"
        )
    if config.rating.k_factor < 1:
        raise ValueError("rating.k_factor must be >= 1")
    if config.calibration.default_rounds < 1:
        raise ValueError("calibration.default_rounds must be >= 1")
