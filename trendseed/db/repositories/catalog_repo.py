"""
Read access to the card/deck catalog.

The attribute search behind the resolver's heuristic tier lives here:
color-identity overlap uses SQLite's ``json_each`` over the stored JSON
array, and the type match is a case-insensitive ``LIKE`` substring.

Writes (``upsert_card`` / ``upsert_deck`` / ``set_deck_cards``) are used only
by the ``seed_sample`` development job and by tests.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Sequence
from typing import Optional

from trendseed.db.repositories.base import BaseRepository, dump_json, placeholders
from trendseed.models.catalog import Card, Deck
from trendseed.utils.open_map import load_json_list, load_json_object

logger = logging.getLogger(__name__)

# Canonical WUBRG ordering for aggregate color sets.
COLOR_ORDER: tuple[str, ...] = ("W", "U", "B", "R", "G")


def sort_colors(colors: Iterable[str]) -> list[str]:
    unique = {c.upper() for c in colors}
    known = [c for c in COLOR_ORDER if c in unique]
    return known + sorted(unique - set(COLOR_ORDER))


class CatalogRepository(BaseRepository):
    """Read access to ``cards``, ``decks`` and ``deck_cards``."""

    def ping(self) -> None:
        """Raise if the catalog tables cannot be queried."""
        self.fetchone("SELECT 1 FROM cards LIMIT 1;")
        self.fetchone("SELECT 1 FROM decks LIMIT 1;")

    # ── Cards ─────────────────────────────────────────────────────────────────

    def get_card(self, card_id: str) -> Optional[Card]:
        row = self.fetchone("SELECT * FROM cards WHERE card_id = ?;", (card_id,))
        return _row_to_card(row) if row else None

    def get_cards(self, card_ids: Iterable[str]) -> dict[str, Card]:
        """Fetch cards by id; ids missing from the catalog are absent from the result."""
        ids = sorted(set(card_ids))
        if not ids:
            return {}
        rows = self.fetchall(
            f"SELECT * FROM cards WHERE card_id IN ({placeholders(len(ids))});",
            tuple(ids),
        )
        return {r["card_id"]: _row_to_card(r) for r in rows}

    def find_cards_by_attributes(
        self,
        colors: Sequence[str],
        type_token: Optional[str],
        exclude_ids: Iterable[str],
        limit: int,
    ) -> list[Card]:
        """Search for cards sharing at least one color and (optionally) a type token.

        An empty ``colors`` applies no color filter.

        Args:
            colors: Color letters to overlap with.
            type_token: Substring the type line must contain, case-insensitive.
            exclude_ids: Card ids never to return.
            limit: Maximum rows.

        Returns:
            Matching cards ordered by name then id.
        """
        clauses: list[str] = ["1 = 1"]
        params: list[object] = []

        wanted = sort_colors(colors)
        if wanted:
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(c.color_identity) je "
                f"WHERE upper(je.value) IN ({placeholders(len(wanted))}))"
            )
            params.extend(wanted)

        if type_token:
            clauses.append("c.type_line LIKE ?")
            params.append(f"%{_escape_like(type_token)}%")

        excluded = sorted(set(exclude_ids))
        if excluded:
            clauses.append(f"c.card_id NOT IN ({placeholders(len(excluded))})")
            params.extend(excluded)

        rows = self.fetchall(
            f"""
            SELECT c.* FROM cards c
            WHERE {' AND '.join(clauses)}
            ORDER BY c.name, c.card_id
            LIMIT ?;
            """,
            (*params, limit),
        )
        return [_row_to_card(r) for r in rows]

    def upsert_card(self, card: Card) -> None:
        self.execute(
            """
            INSERT INTO cards (
                card_id, name, set_code, rarity, mana_cost, cmc, type_line,
                color_identity, legality, image_uris
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(card_id) DO UPDATE SET
                name           = excluded.name,
                set_code       = excluded.set_code,
                rarity         = excluded.rarity,
                mana_cost      = excluded.mana_cost,
                cmc            = excluded.cmc,
                type_line      = excluded.type_line,
                color_identity = excluded.color_identity,
                legality       = excluded.legality,
                image_uris     = excluded.image_uris,
                updated_at     = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                card.card_id, card.name, card.set_code, card.rarity,
                card.mana_cost, card.cmc, card.type_line,
                dump_json(card.color_identity), dump_json(card.legality),
                dump_json(card.image_uris),
            ),
        )

    # ── Decks ─────────────────────────────────────────────────────────────────

    def get_deck(self, deck_id: str) -> Optional[Deck]:
        row = self.fetchone("SELECT * FROM decks WHERE deck_id = ?;", (deck_id,))
        return _row_to_deck(row) if row else None

    def get_decks(self, deck_ids: Iterable[str]) -> dict[str, Deck]:
        ids = sorted(set(deck_ids))
        if not ids:
            return {}
        rows = self.fetchall(
            f"SELECT * FROM decks WHERE deck_id IN ({placeholders(len(ids))});",
            tuple(ids),
        )
        return {r["deck_id"]: _row_to_deck(r) for r in rows}

    def get_deck_card_ids(self, deck_id: str) -> set[str]:
        rows = self.fetchall(
            "SELECT DISTINCT card_id FROM deck_cards WHERE deck_id = ?;", (deck_id,)
        )
        return {r["card_id"] for r in rows}

    def get_deck_colors(self, deck_id: str) -> list[str]:
        """Union of the color identities of every card in the deck, WUBRG-ordered."""
        rows = self.fetchall(
            """
            SELECT DISTINCT upper(je.value) AS color
            FROM deck_cards dc
            JOIN cards c ON c.card_id = dc.card_id,
                 json_each(c.color_identity) je
            WHERE dc.deck_id = ?;
            """,
            (deck_id,),
        )
        return sort_colors(r["color"] for r in rows)

    def upsert_deck(self, deck: Deck) -> None:
        self.execute(
            """
            INSERT INTO decks (
                deck_id, name, format, archetype, power_tier, visibility, description
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(deck_id) DO UPDATE SET
                name        = excluded.name,
                format      = excluded.format,
                archetype   = excluded.archetype,
                power_tier  = excluded.power_tier,
                visibility  = excluded.visibility,
                description = excluded.description,
                updated_at  = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (
                deck.deck_id, deck.name, deck.format, deck.archetype,
                deck.power_tier, deck.visibility, deck.description,
            ),
        )

    def set_deck_cards(self, deck_id: str, card_quantities: dict[str, int]) -> None:
        """Replace the main-board list of ``deck_id``."""
        self.execute(
            "DELETE FROM deck_cards WHERE deck_id = ? AND board = 'main';", (deck_id,)
        )
        self.executemany(
            "INSERT INTO deck_cards (deck_id, card_id, quantity) VALUES (?, ?, ?);",
            [(deck_id, card_id, qty) for card_id, qty in card_quantities.items()],
        )


def _escape_like(text: str) -> str:
    # LIKE without an ESCAPE clause treats only % and _ specially
    return text.replace("%", "").replace("_", "")


def _row_to_card(row: sqlite3.Row) -> Card:
    return Card(
        card_id=row["card_id"],
        name=row["name"],
        set_code=row["set_code"],
        rarity=row["rarity"],
        mana_cost=row["mana_cost"],
        cmc=row["cmc"],
        type_line=row["type_line"],
        color_identity=[c for c in load_json_list(row["color_identity"]) if isinstance(c, str)],
        legality={
            k: v for k, v in load_json_object(row["legality"]).items() if isinstance(v, str)
        },
        image_uris={
            k: v for k, v in load_json_object(row["image_uris"]).items() if isinstance(v, str)
        },
    )


def _row_to_deck(row: sqlite3.Row) -> Deck:
    return Deck(
        deck_id=row["deck_id"],
        name=row["name"],
        format=row["format"],
        archetype=row["archetype"],
        power_tier=row["power_tier"],
        visibility=row["visibility"],
        description=row["description"],
    )
