"""
Repository for ``trending_snapshots``.

Only the scorer writes here; the resolver's trending tier and the reporting
commands read.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Optional

from trendseed.db.repositories.base import BaseRepository, dump_json, placeholders
from trendseed.models.trending import TrendingSnapshot
from trendseed.utils.open_map import load_json_object
from trendseed.utils.time_utils import from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)


class TrendingRepository(BaseRepository):
    """Read/write access to ``trending_snapshots``."""

    def upsert_snapshots(self, snapshots: Sequence[TrendingSnapshot]) -> int:
        """Insert or fully overwrite one snapshot per (scope, subject, period).

        Returns:
            Number of rows written.
        """
        if not snapshots:
            return 0
        self.executemany(
            """
            INSERT INTO trending_snapshots (
                scope, subject_id, period, trend_score, components, calculated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(scope, subject_id, period) DO UPDATE SET
                trend_score   = excluded.trend_score,
                components    = excluded.components,
                calculated_at = excluded.calculated_at;
            """,
            [
                (
                    s.scope.value,
                    s.subject_id,
                    s.period.value,
                    s.trend_score,
                    dump_json(s.components),
                    to_db_timestamp(s.calculated_at),
                )
                for s in snapshots
            ],
        )
        return len(snapshots)

    def get_top(
        self,
        scope: str,
        period: str,
        limit: int,
        exclude_subject_ids: Iterable[str] = (),
    ) -> list[TrendingSnapshot]:
        """Highest-scoring snapshots for ``scope``/``period``.

        Ties break on ``subject_id`` so the order is deterministic.
        """
        excluded = sorted(set(exclude_subject_ids))
        exclude_sql = (
            f"AND subject_id NOT IN ({placeholders(len(excluded))})" if excluded else ""
        )
        rows = self.fetchall(
            f"""
            SELECT * FROM trending_snapshots
            WHERE scope = ? AND period = ?
            {exclude_sql}
            ORDER BY trend_score DESC, subject_id
            LIMIT ?;
            """,
            (str(scope), str(period), *excluded, limit),
        )
        return [_row_to_snapshot(r) for r in rows]

    def get_scores(
        self,
        scope: str,
        period: str,
        subject_ids: Iterable[str],
    ) -> dict[str, float]:
        """Map subject id → trend score for the ids that have a snapshot."""
        ids = sorted(set(subject_ids))
        if not ids:
            return {}
        rows = self.fetchall(
            f"""
            SELECT subject_id, trend_score FROM trending_snapshots
            WHERE scope = ? AND period = ?
              AND subject_id IN ({placeholders(len(ids))});
            """,
            (str(scope), str(period), *ids),
        )
        return {r["subject_id"]: float(r["trend_score"]) for r in rows}

    def get_snapshot(self, scope: str, subject_id: str, period: str) -> Optional[TrendingSnapshot]:
        row = self.fetchone(
            """
            SELECT * FROM trending_snapshots
            WHERE scope = ? AND subject_id = ? AND period = ?;
            """,
            (str(scope), subject_id, str(period)),
        )
        return _row_to_snapshot(row) if row else None

    def get_all(
        self,
        scope: Optional[str] = None,
        period: Optional[str] = None,
    ) -> list[TrendingSnapshot]:
        where, params = _scope_period_filter(scope, period)
        rows = self.fetchall(
            f"""
            SELECT * FROM trending_snapshots {where}
            ORDER BY scope, period, trend_score DESC, subject_id;
            """,
            tuple(params),
        )
        return [_row_to_snapshot(r) for r in rows]

    def get_last_calculated_at(
        self,
        scope: Optional[str] = None,
        period: Optional[str] = None,
    ) -> Optional[datetime]:
        """Most recent ``calculated_at`` across matching snapshots."""
        where, params = _scope_period_filter(scope, period)
        row = self.fetchone(
            f"SELECT MAX(calculated_at) AS last_at FROM trending_snapshots {where};",
            tuple(params),
        )
        return from_db_timestamp(row["last_at"]) if row and row["last_at"] else None


def _scope_period_filter(
    scope: Optional[str],
    period: Optional[str],
) -> tuple[str, list[str]]:
    clauses: list[str] = []
    params: list[str] = []
    if scope:
        clauses.append("scope = ?")
        params.append(str(scope))
    if period:
        clauses.append("period = ?")
        params.append(str(period))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def _row_to_snapshot(row: sqlite3.Row) -> TrendingSnapshot:
    return TrendingSnapshot(
        snapshot_id=row["snapshot_id"],
        scope=row["scope"],
        subject_id=row["subject_id"],
        period=row["period"],
        trend_score=row["trend_score"],
        components=load_json_object(row["components"]),
        calculated_at=from_db_timestamp(row["calculated_at"]),
    )
