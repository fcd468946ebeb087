"""
SQLite schema for trendseed.

Tables, grouped by owner:

  Read-only inputs (written by other systems; created here so a local
  database is self-contained):
    1. raw_events               telemetry feed
    2. cards                    catalog
    3. decks                    catalog
    4. deck_cards               catalog (→ decks, cards)
    5. card_similarity_edges    model feed
    6. deck_upgrade_candidates  model feed

  Engine-owned:
    7. card_daily_metrics       aggregator output, UNIQUE(card_id, metric_date)
    8. deck_daily_metrics       aggregator output, UNIQUE(deck_id, metric_date)
    9. trending_snapshots       scorer output, UNIQUE(scope, subject_id, period)
   10. job_runs                 job run tracker

Metric and snapshot rows do not FK to the catalog: events may reference
subjects the catalog has not synced yet.

Decimal metric fields (prices, win rate) are stored as TEXT so exact values
round-trip; the scorer parses them per row.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_RAW_EVENTS = """
CREATE TABLE IF NOT EXISTS raw_events (
    event_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type      TEXT    NOT NULL,
    subject_id      TEXT,
    user_id         TEXT,
    session_id      TEXT,
    occurred_at     TEXT    NOT NULL,
    context         TEXT    NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_raw_events_type_time
    ON raw_events (event_type, occurred_at);
CREATE INDEX IF NOT EXISTS idx_raw_events_time
    ON raw_events (occurred_at);
"""

_DDL_CARDS = """
CREATE TABLE IF NOT EXISTS cards (
    card_id         TEXT    NOT NULL PRIMARY KEY,
    name            TEXT    NOT NULL,
    set_code        TEXT,
    rarity          TEXT,
    mana_cost       TEXT,
    cmc             REAL,
    type_line       TEXT,
    color_identity  TEXT    NOT NULL DEFAULT '[]',
    legality        TEXT    NOT NULL DEFAULT '{}',
    image_uris      TEXT    NOT NULL DEFAULT '{}',
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
CREATE INDEX IF NOT EXISTS idx_cards_name ON cards (name);
"""

_DDL_DECKS = """
CREATE TABLE IF NOT EXISTS decks (
    deck_id         TEXT    NOT NULL PRIMARY KEY,
    name            TEXT    NOT NULL,
    format          TEXT,
    archetype       TEXT,
    power_tier      TEXT,
    visibility      TEXT    NOT NULL DEFAULT 'public',
    description     TEXT,
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_DECK_CARDS = """
CREATE TABLE IF NOT EXISTS deck_cards (
    deck_id         TEXT    NOT NULL REFERENCES decks(deck_id) ON DELETE CASCADE,
    card_id         TEXT    NOT NULL REFERENCES cards(card_id),
    quantity        INTEGER NOT NULL DEFAULT 1 CHECK (quantity > 0),
    board           TEXT    NOT NULL DEFAULT 'main',
    PRIMARY KEY (deck_id, card_id, board)
);
CREATE INDEX IF NOT EXISTS idx_deck_cards_card ON deck_cards (card_id);
"""

_DDL_CARD_SIMILARITY_EDGES = """
CREATE TABLE IF NOT EXISTS card_similarity_edges (
    edge_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    source_card_id  TEXT    NOT NULL,
    target_card_id  TEXT    NOT NULL,
    score           REAL    NOT NULL,
    rationale       TEXT,
    components      TEXT    NOT NULL DEFAULT '{}',
    model_version   TEXT,
    computed_at     TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (source_card_id, target_card_id)
);
CREATE INDEX IF NOT EXISTS idx_similarity_source_score
    ON card_similarity_edges (source_card_id, score DESC);
"""

_DDL_DECK_UPGRADE_CANDIDATES = """
CREATE TABLE IF NOT EXISTS deck_upgrade_candidates (
    candidate_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    deck_id         TEXT    NOT NULL,
    card_id         TEXT    NOT NULL,
    score           REAL    NOT NULL,
    rationale       TEXT,
    components      TEXT    NOT NULL DEFAULT '{}',
    model_version   TEXT,
    computed_at     TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (deck_id, card_id)
);
CREATE INDEX IF NOT EXISTS idx_upgrade_deck_score
    ON deck_upgrade_candidates (deck_id, score DESC);
"""

_DDL_CARD_DAILY_METRICS = """
CREATE TABLE IF NOT EXISTS card_daily_metrics (
    card_id         TEXT    NOT NULL,
    metric_date     TEXT    NOT NULL,
    views           INTEGER NOT NULL DEFAULT 0,
    unique_users    INTEGER NOT NULL DEFAULT 0,
    deck_inclusions INTEGER NOT NULL DEFAULT 0,
    price_avg       TEXT,
    price_change    TEXT,
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    PRIMARY KEY (card_id, metric_date)
);
CREATE INDEX IF NOT EXISTS idx_card_metrics_date ON card_daily_metrics (metric_date);
"""

_DDL_DECK_DAILY_METRICS = """
CREATE TABLE IF NOT EXISTS deck_daily_metrics (
    deck_id         TEXT    NOT NULL,
    metric_date     TEXT    NOT NULL,
    views           INTEGER NOT NULL DEFAULT 0,
    unique_users    INTEGER NOT NULL DEFAULT 0,
    imports         INTEGER NOT NULL DEFAULT 0,
    exports         INTEGER NOT NULL DEFAULT 0,
    bridge_requests INTEGER NOT NULL DEFAULT 0,
    win_rate        TEXT,
    updated_at      TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    PRIMARY KEY (deck_id, metric_date)
);
CREATE INDEX IF NOT EXISTS idx_deck_metrics_date ON deck_daily_metrics (metric_date);
"""

_DDL_TRENDING_SNAPSHOTS = """
CREATE TABLE IF NOT EXISTS trending_snapshots (
    snapshot_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    scope           TEXT    NOT NULL CHECK (scope IN ('card', 'deck')),
    subject_id      TEXT    NOT NULL,
    period          TEXT    NOT NULL CHECK (period IN ('daily', 'weekly')),
    trend_score     REAL    NOT NULL,
    components      TEXT    NOT NULL DEFAULT '{}',
    calculated_at   TEXT    NOT NULL,
    UNIQUE (scope, subject_id, period)
);
CREATE INDEX IF NOT EXISTS idx_trending_scope_period_score
    ON trending_snapshots (scope, period, trend_score DESC);
"""

_DDL_JOB_RUNS = """
CREATE TABLE IF NOT EXISTS job_runs (
    run_id          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug        TEXT    NOT NULL UNIQUE,
    job_type        TEXT    NOT NULL,
    status          TEXT    NOT NULL DEFAULT 'running'
                        CHECK (status IN ('running', 'succeeded', 'failed')),
    metadata        TEXT    NOT NULL DEFAULT '{}',
    error_message   TEXT,
    started_at      TEXT    NOT NULL,
    completed_at    TEXT
);
CREATE INDEX IF NOT EXISTS idx_job_runs_type_started
    ON job_runs (job_type, started_at DESC);
"""

_ALL_DDL: list[str] = [
    _DDL_RAW_EVENTS,
    _DDL_CARDS,
    _DDL_DECKS,
    _DDL_DECK_CARDS,
    _DDL_CARD_SIMILARITY_EDGES,
    _DDL_DECK_UPGRADE_CANDIDATES,
    _DDL_CARD_DAILY_METRICS,
    _DDL_DECK_DAILY_METRICS,
    _DDL_TRENDING_SNAPSHOTS,
    _DDL_JOB_RUNS,
]

ALL_TABLE_NAMES: list[str] = [
    "raw_events",
    "cards",
    "decks",
    "deck_cards",
    "card_similarity_edges",
    "deck_upgrade_candidates",
    "card_daily_metrics",
    "deck_daily_metrics",
    "trending_snapshots",
    "job_runs",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Apply all DDL statements to ``conn``.

    Idempotent — every statement uses ``IF NOT EXISTS``.

    Args:
        conn: An open ``sqlite3.Connection``.
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return the user table names present in the database."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' "
        "AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'index' "
        "AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]
