"""
Shared pytest fixtures for the trendseed test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``file_db``: Path to a schema-initialized SQLite file under ``tmp_path``,
    for code that opens its own connections (job stages, the resolver).
  - ``sample_cards`` / ``sample_decks``: a small catalog with mixed colors,
    types and format legality.
  - ``catalog_db`` / ``catalog_file_db``: the sample catalog loaded into an
    in-memory or file database.
  - ``app_config``: ``AppConfig`` pointing at ``file_db``.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from trendseed.config import AppConfig, DatabaseConfig
from trendseed.db.connection import get_connection
from trendseed.db.repositories.catalog_repo import CatalogRepository
from trendseed.db.schema import apply_schema
from trendseed.models.catalog import Card, Deck


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Schema is applied idempotently.
    Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def file_db(tmp_path) -> str:
    """Path to an on-disk database with the schema applied."""
    path = str(tmp_path / "trendseed-test.db")
    with get_connection(path, wal_mode=False) as conn:
        apply_schema(conn)
    return path


@pytest.fixture
def app_config(file_db) -> AppConfig:
    return AppConfig(database=DatabaseConfig(db_path=file_db, wal_mode=False))


# ── Sample catalog ────────────────────────────────────────────────────────────

@pytest.fixture
def sample_cards() -> dict[str, Card]:
    """Six cards keyed by role.

    ``base`` is the usual subject; ``banned`` is red like it but not legal in
    standard; ``partner`` and ``runner`` are legal red cards; ``blue`` shares
    no color with ``base``; ``black`` is not legal in standard.
    """
    standard_legal = {"standard": "legal", "pioneer": "legal"}
    return {
        "base": Card(
            card_id="aaaaaaaa-0000-4000-8000-000000000001",
            name="Ember Scout",
            set_code="DEV",
            rarity="common",
            mana_cost="{R}",
            cmc=1,
            type_line="Creature — Goblin Scout",
            color_identity=["R"],
            legality=standard_legal,
            image_uris={"normal": "https://img.example/ember-normal.jpg",
                        "art_crop": "https://img.example/ember-art.jpg"},
        ),
        "banned": Card(
            card_id="aaaaaaaa-0000-4000-8000-000000000002",
            name="Banned Blaster",
            rarity="mythic",
            type_line="Creature — Elemental",
            color_identity=["R"],
            legality={"standard": "banned", "pioneer": "legal"},
        ),
        "partner": Card(
            card_id="aaaaaaaa-0000-4000-8000-000000000003",
            name="Flame Herald",
            rarity="rare",
            type_line="Creature — Human Shaman",
            color_identity=["R"],
            legality=standard_legal,
        ),
        "runner": Card(
            card_id="aaaaaaaa-0000-4000-8000-000000000004",
            name="Ridge Runner",
            rarity="uncommon",
            type_line="Creature — Beast",
            color_identity=["R", "G"],
            legality=standard_legal,
        ),
        "blue": Card(
            card_id="aaaaaaaa-0000-4000-8000-000000000005",
            name="Tide Caller",
            rarity="common",
            type_line="Instant",
            color_identity=["U"],
            legality=standard_legal,
        ),
        "black": Card(
            card_id="aaaaaaaa-0000-4000-8000-000000000006",
            name="Grave Whisper",
            rarity="rare",
            type_line="Sorcery",
            color_identity=["B"],
            legality={"standard": "not_legal"},
        ),
    }


@pytest.fixture
def sample_decks() -> dict[str, Deck]:
    return {
        "red": Deck(
            deck_id="dddddddd-0000-4000-8000-000000000001",
            name="Mono Red Aggro",
            format="standard",
            archetype="aggro",
            power_tier="competitive",
        ),
        "control": Deck(
            deck_id="dddddddd-0000-4000-8000-000000000002",
            name="Azorius Control",
            format="pioneer",
            archetype="control",
        ),
    }


def load_catalog(
    conn: sqlite3.Connection,
    cards: dict[str, Card],
    decks: dict[str, Deck],
) -> None:
    """Upsert the sample catalog; the red deck runs ``base`` and ``partner``."""
    repo = CatalogRepository(conn)
    for card in cards.values():
        repo.upsert_card(card)
    for deck in decks.values():
        repo.upsert_deck(deck)
    repo.set_deck_cards(
        decks["red"].deck_id,
        {cards["base"].card_id: 4, cards["partner"].card_id: 2},
    )


@pytest.fixture
def catalog_db(in_memory_db, sample_cards, sample_decks) -> sqlite3.Connection:
    load_catalog(in_memory_db, sample_cards, sample_decks)
    return in_memory_db


@pytest.fixture
def catalog_file_db(file_db, sample_cards, sample_decks) -> str:
    with get_connection(file_db, wal_mode=False) as conn:
        load_catalog(conn, sample_cards, sample_decks)
    return file_db
