"""
Read access to the precomputed model feed.

Rows are produced by an external similarity/upgrade model and consumed here
in score order. ``upsert_*`` methods let local tooling and tests load a feed.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence

from trendseed.db.repositories.base import BaseRepository, dump_json
from trendseed.models.feed import DeckUpgradeCandidate, SimilarityEdge
from trendseed.utils.open_map import load_json_object
from trendseed.utils.time_utils import from_db_timestamp, to_db_timestamp, utcnow

logger = logging.getLogger(__name__)


class ModelFeedRepository(BaseRepository):
    """Read/write access to ``card_similarity_edges`` and ``deck_upgrade_candidates``."""

    def get_similarity_edges(self, source_card_id: str, limit: int) -> list[SimilarityEdge]:
        """Top edges out of ``source_card_id`` by model score, self-edges excluded."""
        rows = self.fetchall(
            """
            SELECT * FROM card_similarity_edges
            WHERE source_card_id = ? AND target_card_id != source_card_id
            ORDER BY score DESC, target_card_id
            LIMIT ?;
            """,
            (source_card_id, limit),
        )
        return [_row_to_edge(r) for r in rows]

    def get_upgrade_candidates(self, deck_id: str, limit: int) -> list[DeckUpgradeCandidate]:
        """Top upgrade rows for ``deck_id`` that are not already in the deck."""
        rows = self.fetchall(
            """
            SELECT u.* FROM deck_upgrade_candidates u
            WHERE u.deck_id = ?
              AND u.card_id NOT IN (
                  SELECT dc.card_id FROM deck_cards dc WHERE dc.deck_id = u.deck_id
              )
            ORDER BY u.score DESC, u.card_id
            LIMIT ?;
            """,
            (deck_id, limit),
        )
        return [_row_to_candidate(r) for r in rows]

    def upsert_similarity_edges(self, edges: Sequence[SimilarityEdge]) -> int:
        self.executemany(
            """
            INSERT INTO card_similarity_edges (
                source_card_id, target_card_id, score, rationale, components,
                model_version, computed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(source_card_id, target_card_id) DO UPDATE SET
                score         = excluded.score,
                rationale     = excluded.rationale,
                components    = excluded.components,
                model_version = excluded.model_version,
                computed_at   = excluded.computed_at;
            """,
            [
                (
                    e.source_card_id, e.target_card_id, e.score, e.rationale,
                    dump_json(e.components), e.model_version,
                    to_db_timestamp(e.computed_at or utcnow()),
                )
                for e in edges
            ],
        )
        return len(edges)

    def upsert_upgrade_candidates(self, candidates: Sequence[DeckUpgradeCandidate]) -> int:
        self.executemany(
            """
            INSERT INTO deck_upgrade_candidates (
                deck_id, card_id, score, rationale, components,
                model_version, computed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(deck_id, card_id) DO UPDATE SET
                score         = excluded.score,
                rationale     = excluded.rationale,
                components    = excluded.components,
                model_version = excluded.model_version,
                computed_at   = excluded.computed_at;
            """,
            [
                (
                    c.deck_id, c.card_id, c.score, c.rationale,
                    dump_json(c.components), c.model_version,
                    to_db_timestamp(c.computed_at or utcnow()),
                )
                for c in candidates
            ],
        )
        return len(candidates)


def _row_to_edge(row: sqlite3.Row) -> SimilarityEdge:
    return SimilarityEdge(
        source_card_id=row["source_card_id"],
        target_card_id=row["target_card_id"],
        score=row["score"],
        rationale=row["rationale"],
        components=load_json_object(row["components"]),
        model_version=row["model_version"],
        computed_at=from_db_timestamp(row["computed_at"]),
    )


def _row_to_candidate(row: sqlite3.Row) -> DeckUpgradeCandidate:
    return DeckUpgradeCandidate(
        deck_id=row["deck_id"],
        card_id=row["card_id"],
        score=row["score"],
        rationale=row["rationale"],
        components=load_json_object(row["components"]),
        model_version=row["model_version"],
        computed_at=from_db_timestamp(row["computed_at"]),
    )
