"""Tests for config loading: TOML defaults, local overrides, env overrides, validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from trendseed.config import AppConfig, RecommendationConfig, load_config


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "TRENDSEED_DB_PATH",
        "TRENDSEED_LOG_LEVEL",
        "TRENDSEED_TIER_TIMEOUT",
        "TRENDSEED_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    def test_loads_toml_sections(self, tmp_path, clean_env):
        cfg = _write(
            tmp_path / "default.toml",
            '[database]\ndb_path = "x.db"\n[recommendations]\ndefault_limit = 5\n'
            '[jobs]\ndefault_job = "trending_refresh"\n',
        )
        config = load_config(cfg)
        assert config.database.db_path == "x.db"
        assert config.recommendations.default_limit == 5
        assert config.recommendations.max_limit == 50
        assert config.jobs.default_job == "trending_refresh"
        assert config.jobs.metrics_date_env == "METRICS_DATE"

    def test_local_toml_overrides_default(self, tmp_path, clean_env):
        cfg = _write(tmp_path / "default.toml", '[logging]\nlevel = "INFO"\n')
        _write(tmp_path / "local.toml", '[logging]\nlevel = "debug"\n')
        assert load_config(cfg).logging.level == "DEBUG"

    def test_env_overrides(self, tmp_path, clean_env):
        cfg = _write(tmp_path / "default.toml", '[database]\ndb_path = "x.db"\n')
        clean_env.setenv("TRENDSEED_DB_PATH", "/tmp/override.db")
        clean_env.setenv("TRENDSEED_TIER_TIMEOUT", "0.5")
        clean_env.setenv("TRENDSEED_DEBUG", "true")
        config = load_config(cfg)
        assert config.database.db_path == "/tmp/override.db"
        assert config.recommendations.tier_timeout_seconds == 0.5
        assert config.debug is True

    def test_missing_file(self, tmp_path, clean_env):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_invalid_value_raises(self, tmp_path, clean_env):
        cfg = _write(tmp_path / "default.toml", '[logging]\nlevel = "LOUD"\n')
        with pytest.raises(ValidationError):
            load_config(cfg)


class TestRecommendationConfig:
    def test_defaults(self):
        rec = AppConfig().recommendations
        assert (rec.default_limit, rec.max_limit) == (8, 50)
        assert (rec.model_fetch_cap, rec.heuristic_fetch_cap, rec.trending_fetch_cap) == (45, 40, 50)

    def test_zero_timeout_disables(self):
        assert RecommendationConfig(tier_timeout_seconds=0).tier_timeout_seconds is None

    def test_default_limit_above_max_rejected(self):
        with pytest.raises(ValidationError):
            RecommendationConfig(default_limit=60, max_limit=50)

    def test_bad_period_rejected(self):
        with pytest.raises(ValidationError):
            RecommendationConfig(default_period="hourly")
