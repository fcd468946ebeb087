"""Tests for schema creation and migrations."""

from __future__ import annotations

import sqlite3

import pytest

from trendseed.db.migrations import MIGRATIONS, run_migrations
from trendseed.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


def test_all_tables_created(in_memory_db):
    tables = set(get_existing_tables(in_memory_db))
    assert set(ALL_TABLE_NAMES) <= tables


def test_key_indexes_exist(in_memory_db):
    indexes = set(get_existing_indexes(in_memory_db))
    assert "idx_raw_events_type_time" in indexes
    assert "idx_trending_scope_period_score" in indexes
    assert "idx_job_runs_type_started" in indexes


def test_apply_schema_idempotent(in_memory_db):
    apply_schema(in_memory_db)
    apply_schema(in_memory_db)
    assert len(set(get_existing_tables(in_memory_db)) & set(ALL_TABLE_NAMES)) == len(ALL_TABLE_NAMES)


def test_trending_scope_check_constraint(in_memory_db):
    with pytest.raises(sqlite3.IntegrityError):
        in_memory_db.execute(
            """
            INSERT INTO trending_snapshots (scope, subject_id, period, trend_score, calculated_at)
            VALUES ('artist', 'x', 'daily', 1.0, '2025-01-15T00:00:00.000000Z');
            """
        )


def test_job_status_check_constraint(in_memory_db):
    with pytest.raises(sqlite3.IntegrityError):
        in_memory_db.execute(
            """
            INSERT INTO job_runs (run_slug, job_type, status, started_at)
            VALUES ('r', 'telemetry_rollup', 'paused', '2025-01-15T00:00:00.000000Z');
            """
        )


def test_deck_cards_requires_known_card(in_memory_db):
    in_memory_db.execute("INSERT INTO decks (deck_id, name) VALUES ('d1', 'Deck');")
    with pytest.raises(sqlite3.IntegrityError):
        in_memory_db.execute(
            "INSERT INTO deck_cards (deck_id, card_id) VALUES ('d1', 'missing-card');"
        )


class TestMigrations:
    def test_fresh_database_applies_all_once(self, in_memory_db):
        assert run_migrations(in_memory_db) == len(MIGRATIONS)
        assert run_migrations(in_memory_db) == 0

    def test_baseline_recorded(self, in_memory_db):
        run_migrations(in_memory_db)
        rows = in_memory_db.execute("SELECT version_id FROM schema_versions;").fetchall()
        assert [r[0] for r in rows] == ["0001_baseline"]
