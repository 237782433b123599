"""
Tests for config.yaml loading and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from matchups.config import Config, load_config


def write_config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_uses_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, ""))
        assert config == Config()
        assert config.rating.k_factor == 32
        assert config.tournament.seeding == "ranked"

    def test_values_are_read(self, tmp_path):
        config = load_config(write_config(tmp_path, """
rating:
  initial_rating: 1000
  k_factor: 24
  use_score_margin: false
tournament:
  seeding: random
calibration:
  default_rounds: 3
storage:
  state_path: data/state.json
  log_dir: data/logs
"""))
        assert config.rating.initial_rating == 1000
        assert config.rating.k_factor == 24
        assert config.rating.use_score_margin is False
        assert config.tournament.seeding == "random"
        assert config.calibration.default_rounds == 3
        assert config.state_path == Path("data/state.json")
        assert config.log_dir_path == Path("data/logs")

    @pytest.mark.parametrize("text", [
        "tournament:\n  seeding: swiss\n",
        "rating:\n  k_factor: 0\n",
        "calibration:\n  default_rounds: 0\n",
        "rating: 5\n",
        "- just\n- a list\n",
        "rating:\n  k_factor: lots\n",
    ])
    def test_invalid_config(self, tmp_path, text):
        with pytest.raises(ValueError):
            load_config(write_config(tmp_path, text))
