"""Tests for job triggering: input validation, date resolution, concrete jobs."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from trendseed.db.connection import get_connection
from trendseed.db.repositories.catalog_repo import CatalogRepository
from trendseed.db.repositories.event_repo import EventRepository
from trendseed.db.repositories.job_repo import JobRunRepository
from trendseed.db.repositories.metric_repo import MetricRepository
from trendseed.db.repositories.trending_repo import TrendingRepository
from trendseed.models.event import RawEvent
from trendseed.pipeline import runner
from trendseed.pipeline.runner import (
    InvalidTargetDateError,
    UnsupportedJobError,
    resolve_job_name,
    resolve_window,
    run_job,
)
from trendseed.pipeline.seed_sample import SAMPLE_CARD_ID, SAMPLE_DECK_ID
from trendseed.taxonomy.event_taxonomy import JobName

DAY = date(2025, 1, 15)
CARD_1 = "c1c1c1c1-0000-4000-8000-000000000001"


def _job_run_count(db_path: str) -> int:
    with get_connection(db_path, wal_mode=False) as conn:
        return len(JobRunRepository(conn).get_recent_runs())


class TestInputValidation:
    def test_known_job_names(self):
        assert resolve_job_name("seed_sample") == JobName.SEED_SAMPLE
        assert resolve_job_name(" trending_refresh ") == JobName.TRENDING_REFRESH

    def test_unsupported_job_rejected_before_side_effects(self, app_config, file_db):
        with pytest.raises(UnsupportedJobError) as exc_info:
            run_job("rebuild_everything", app_config)
        assert exc_info.value.job_name == "rebuild_everything"
        assert isinstance(exc_info.value, ValueError)
        assert _job_run_count(file_db) == 0

    def test_bad_date_rejected_before_side_effects(self, app_config, file_db):
        with pytest.raises(InvalidTargetDateError) as exc_info:
            run_job("telemetry_rollup", app_config, target_date="2025-02-30")
        assert exc_info.value.source == "argument"
        assert _job_run_count(file_db) == 0


class TestResolveWindow:
    def test_explicit_argument(self, app_config):
        assert resolve_window(app_config, "2025-01-15").metric_date == DAY

    def test_date_object(self, app_config):
        assert resolve_window(app_config, DAY).metric_date == DAY

    def test_env_fallback(self, app_config, monkeypatch):
        monkeypatch.setenv("METRICS_DATE", "2024-12-31")
        assert resolve_window(app_config).metric_date == date(2024, 12, 31)

    def test_argument_beats_env(self, app_config, monkeypatch):
        monkeypatch.setenv("METRICS_DATE", "2024-12-31")
        assert resolve_window(app_config, "2025-01-15").metric_date == DAY

    def test_bad_env_value(self, app_config, monkeypatch):
        monkeypatch.setenv("METRICS_DATE", "soon")
        with pytest.raises(InvalidTargetDateError) as exc_info:
            resolve_window(app_config)
        assert exc_info.value.source == "METRICS_DATE"

    def test_defaults_to_today_utc(self, app_config, monkeypatch):
        monkeypatch.delenv("METRICS_DATE", raising=False)
        fixed = datetime(2025, 3, 1, 23, 30, tzinfo=timezone.utc)
        with patch.object(runner, "utcnow", return_value=fixed):
            assert resolve_window(app_config).metric_date == date(2025, 3, 1)


class TestJobs:
    def test_rollup_survives_malformed_feed_rows(self, app_config, file_db):
        with get_connection(file_db, wal_mode=False) as conn:
            conn.executemany(
                "INSERT INTO raw_events (event_type, subject_id, user_id, occurred_at) "
                "VALUES ('card_viewed', ?, ?, ?);",
                [
                    (CARD_1, "u1", "2025-01-15T09:00:00Z"),
                    (CARD_1, "u2", "2025-01-15Tbroken"),
                    (CARD_1, "u3", "2460691.0"),
                ],
            )

        rollup = run_job("telemetry_rollup", app_config, target_date=DAY)
        assert rollup.status == "succeeded"
        assert rollup.metadata["card_metrics_updated"] == 1
        with get_connection(file_db, wal_mode=False) as conn:
            metric = MetricRepository(conn).get_card_metric(CARD_1, DAY)
        assert metric.views == 1

    def test_rollup_then_trending(self, app_config, file_db):
        noon = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
        with get_connection(file_db, wal_mode=False) as conn:
            EventRepository(conn).insert_events([
                RawEvent(event_type="card_viewed", subject_id=CARD_1, user_id="u1", occurred_at=noon),
                RawEvent(event_type="card_viewed", subject_id=CARD_1, user_id="u2",
                         occurred_at=noon + timedelta(minutes=5)),
            ])

        rollup = run_job("telemetry_rollup", app_config, target_date="2025-01-15")
        assert rollup.status == "succeeded"
        assert rollup.metadata["job"] == "telemetry_rollup"
        assert rollup.metadata["card_metrics_updated"] == 1
        assert rollup.metadata["deck_metrics_updated"] == 0

        refresh = run_job(JobName.TRENDING_REFRESH, app_config, target_date=DAY)
        assert refresh.status == "succeeded"
        assert refresh.metadata["card_snapshots"] == 1

        with get_connection(file_db, wal_mode=False) as conn:
            snap = TrendingRepository(conn).get_snapshot("card", CARD_1, "daily")
        assert snap.trend_score == 0.8

    def test_seed_sample(self, app_config, file_db):
        run = run_job("seed_sample", app_config, target_date="2025-01-15")

        assert run.status == "succeeded"
        assert run.metadata["sample_card"] == SAMPLE_CARD_ID
        assert run.metadata["sample_deck"] == SAMPLE_DECK_ID
        assert run.metadata["card_snapshots"] == 1
        assert run.metadata["deck_snapshots"] == 1

        with get_connection(file_db, wal_mode=False) as conn:
            assert CatalogRepository(conn).get_card(SAMPLE_CARD_ID).name == "Sample Trendsetter"
            metric = MetricRepository(conn).get_card_metric(SAMPLE_CARD_ID, DAY)
            assert metric.views == 420
            deck_snap = TrendingRepository(conn).get_snapshot("deck", SAMPLE_DECK_ID, "daily")
        # 95*0.35 + 18*0.25 + 11*0.2 + 6*0.1 + 0.61*0.1
        assert deck_snap.trend_score == 40.611

    def test_seed_sample_is_repeatable(self, app_config, file_db):
        run_job("seed_sample", app_config, target_date=DAY)
        second = run_job("seed_sample", app_config, target_date=DAY)
        assert second.status == "succeeded"
        with get_connection(file_db, wal_mode=False) as conn:
            assert len(TrendingRepository(conn).get_all()) == 2

    def test_failed_job_returns_failed_run(self, app_config):
        with patch(
            "trendseed.pipeline.trending.refresh_trending",
            side_effect=RuntimeError("scorer unavailable"),
        ):
            run = run_job("trending_refresh", app_config, target_date=DAY)
        assert run.status == "failed"
        assert "scorer unavailable" in run.error_message
