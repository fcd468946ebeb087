"""End-to-end CLI tests using typer's CliRunner against a temp database."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from unittest.mock import patch

import pyarrow.parquet as pq
import pytest
from typer.testing import CliRunner

from trendseed.cli import app
from trendseed.pipeline.seed_sample import SAMPLE_CARD_ID, SAMPLE_DECK_ID

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch) -> dict[str, str]:
    """Config file pointing at a temp DB, quiet logging, no env overrides."""
    for name in ("TRENDSEED_DB_PATH", "TRENDSEED_LOG_LEVEL", "TRENDSEED_TIER_TIMEOUT",
                 "TRENDSEED_DEBUG", "METRICS_DATE"):
        monkeypatch.delenv(name, raising=False)
    db_path = tmp_path / "db" / "cli.db"
    config_path = tmp_path / "test.toml"
    config_path.write_text(
        f'[database]\ndb_path = "{db_path.as_posix()}"\nwal_mode = false\n'
        '[logging]\nlevel = "ERROR"\nlog_file = ""\n',
        encoding="utf-8",
    )
    return {"config": str(config_path), "db": str(db_path)}


def _invoke(cli_env, *args: str):
    return runner.invoke(app, [*args, "--config", cli_env["config"]])


def _seed(cli_env) -> None:
    result = _invoke(cli_env, "run-job", "seed_sample", "--date", "2025-01-15")
    assert result.exit_code == 0, result.output


class TestSetupCommands:
    def test_init_db(self, cli_env):
        result = _invoke(cli_env, "init-db")
        assert result.exit_code == 0
        assert "[OK] Database ready." in result.output
        assert Path(cli_env["db"]).exists()

    def test_validate_config(self, cli_env):
        result = _invoke(cli_env, "validate-config")
        assert result.exit_code == 0
        assert "Default job:      telemetry_rollup" in result.output
        assert "[OK] Config valid." in result.output

    def test_missing_config_exits_1(self, tmp_path):
        result = runner.invoke(app, ["validate-config", "--config", str(tmp_path / "none.toml")])
        assert result.exit_code == 1


class TestRunJob:
    def test_seed_sample(self, cli_env):
        result = _invoke(cli_env, "run-job", "seed_sample", "--date", "2025-01-15")
        assert result.exit_code == 0
        assert "status=succeeded" in result.output
        assert "[OK] seed_sample complete." in result.output

    def test_unsupported_job_exits_2_without_touching_db(self, cli_env):
        result = _invoke(cli_env, "run-job", "reticulate_splines")
        assert result.exit_code == 2
        assert not Path(cli_env["db"]).exists()

    def test_bad_date_exits_2(self, cli_env):
        result = _invoke(cli_env, "run-job", "telemetry_rollup", "--date", "2025-99-01")
        assert result.exit_code == 2
        assert not Path(cli_env["db"]).exists()

    def test_env_date(self, cli_env, monkeypatch):
        monkeypatch.setenv("METRICS_DATE", "2024-12-31")
        result = _invoke(cli_env, "run-job", "telemetry_rollup")
        assert result.exit_code == 0
        assert "day=2024-12-31" in result.output

    def test_default_job_from_config(self, cli_env):
        result = _invoke(cli_env, "run-job", "--date", "2025-01-15")
        assert result.exit_code == 0
        assert "run-job telemetry_rollup" in result.output

    def test_failed_job_exits_1(self, cli_env):
        with patch(
            "trendseed.pipeline.trending.refresh_trending",
            side_effect=RuntimeError("scorer down"),
        ):
            result = _invoke(cli_env, "run-job", "trending_refresh", "--date", "2025-01-15")
        assert result.exit_code == 1
        assert "status=failed" in result.output


class TestReadCommands:
    def test_resolve_json(self, cli_env):
        _seed(cli_env)
        result = _invoke(cli_env, "resolve", "--scope", "card", "--limit", "5")
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["meta"]["resolver"] == "trending"
        assert payload["data"][0]["target_id"] == SAMPLE_CARD_ID

    def test_resolve_bad_scope_exits_2(self, cli_env):
        result = _invoke(cli_env, "resolve", "--scope", "artist")
        assert result.exit_code == 2

    def test_resolve_empty_db_serves_fallback(self, cli_env):
        _invoke(cli_env, "init-db")
        result = _invoke(cli_env, "resolve", "--scope", "deck")
        payload = json.loads(result.stdout)
        assert payload["meta"]["resolver"] == "static-fallback"
        assert all(seed["fallback"] for seed in payload["data"])

    def test_trending(self, cli_env):
        _seed(cli_env)
        result = _invoke(cli_env, "trending", "--scope", "deck")
        assert result.exit_code == 0
        assert "Sample Deck" in result.output
        assert SAMPLE_DECK_ID in result.output

    def test_job_status(self, cli_env):
        _seed(cli_env)
        result = _invoke(cli_env, "job-status")
        assert result.exit_code == 0
        assert "seed_sample" in result.output
        assert "succeeded" in result.output

        as_json = _invoke(cli_env, "job-status", "--json")
        jobs = json.loads(as_json.stdout)
        assert jobs[0]["metadata"]["sample_card"] == SAMPLE_CARD_ID


class TestExportTrending:
    def test_csv(self, cli_env, tmp_path):
        _seed(cli_env)
        out = tmp_path / "exports" / "trending.csv"
        result = _invoke(cli_env, "export-trending", "--output", str(out))
        assert result.exit_code == 0
        with out.open(encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert {r["subject_id"] for r in rows} == {SAMPLE_CARD_ID, SAMPLE_DECK_ID}

    def test_parquet_scope_filter(self, cli_env, tmp_path):
        _seed(cli_env)
        out = tmp_path / "cards.parquet"
        result = _invoke(cli_env, "export-trending", "--output", str(out),
                         "--format", "parquet", "--scope", "card")
        assert result.exit_code == 0
        table = pq.read_table(str(out))
        assert table.column("subject_id").to_pylist() == [SAMPLE_CARD_ID]

    def test_unknown_format_exits_2(self, cli_env, tmp_path):
        result = _invoke(cli_env, "export-trending", "--output", str(tmp_path / "x.xlsx"),
                         "--format", "xlsx")
        assert result.exit_code == 2
