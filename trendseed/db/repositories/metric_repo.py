"""
Repository for the daily metric tables.

Upserts are create-or-replace on (subject, metric_date): re-aggregating a
window overwrites counters, it never adds to them. Card price columns are
only written when ``include_prices=True`` so a rollup cannot erase prices
maintained by the pricing job.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Optional

from trendseed.db.repositories.base import BaseRepository
from trendseed.models.metric import CardDailyMetric, DeckDailyMetric

logger = logging.getLogger(__name__)

_UPSERT_CARD_COUNTERS = """
INSERT INTO card_daily_metrics (
    card_id, metric_date, views, unique_users, deck_inclusions
) VALUES (?, ?, ?, ?, ?)
ON CONFLICT(card_id, metric_date) DO UPDATE SET
    views           = excluded.views,
    unique_users    = excluded.unique_users,
    deck_inclusions = excluded.deck_inclusions,
    updated_at      = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
"""

_UPSERT_CARD_WITH_PRICES = """
INSERT INTO card_daily_metrics (
    card_id, metric_date, views, unique_users, deck_inclusions,
    price_avg, price_change
) VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(card_id, metric_date) DO UPDATE SET
    views           = excluded.views,
    unique_users    = excluded.unique_users,
    deck_inclusions = excluded.deck_inclusions,
    price_avg       = excluded.price_avg,
    price_change    = excluded.price_change,
    updated_at      = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
"""

_UPSERT_DECK = """
INSERT INTO deck_daily_metrics (
    deck_id, metric_date, views, unique_users, imports, exports,
    bridge_requests, win_rate
) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(deck_id, metric_date) DO UPDATE SET
    views           = excluded.views,
    unique_users    = excluded.unique_users,
    imports         = excluded.imports,
    exports         = excluded.exports,
    bridge_requests = excluded.bridge_requests,
    win_rate        = excluded.win_rate,
    updated_at      = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
"""


def _decimal_text(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


class MetricRepository(BaseRepository):
    """Read/write access to ``card_daily_metrics`` and ``deck_daily_metrics``."""

    def upsert_card_metrics(
        self,
        metrics: Sequence[CardDailyMetric],
        include_prices: bool = False,
    ) -> int:
        """Create-or-replace card counters.

        Args:
            metrics: One row per (card, day).
            include_prices: Also overwrite ``price_avg`` / ``price_change``.

        Returns:
            Number of rows written.
        """
        if not metrics:
            return 0
        if include_prices:
            self.executemany(
                _UPSERT_CARD_WITH_PRICES,
                [
                    (
                        m.card_id, m.metric_date.isoformat(), m.views,
                        m.unique_users, m.deck_inclusions,
                        _decimal_text(m.price_avg), _decimal_text(m.price_change),
                    )
                    for m in metrics
                ],
            )
        else:
            self.executemany(
                _UPSERT_CARD_COUNTERS,
                [
                    (m.card_id, m.metric_date.isoformat(), m.views,
                     m.unique_users, m.deck_inclusions)
                    for m in metrics
                ],
            )
        return len(metrics)

    def upsert_deck_metrics(self, metrics: Sequence[DeckDailyMetric]) -> int:
        if not metrics:
            return 0
        self.executemany(
            _UPSERT_DECK,
            [
                (
                    m.deck_id, m.metric_date.isoformat(), m.views, m.unique_users,
                    m.imports, m.exports, m.bridge_requests,
                    _decimal_text(m.win_rate),
                )
                for m in metrics
            ],
        )
        return len(metrics)

    def get_card_metric_rows(self, metric_date: date) -> list[sqlite3.Row]:
        """Raw card rows for ``metric_date``; callers convert row by row."""
        return self.fetchall(
            "SELECT * FROM card_daily_metrics WHERE metric_date = ? ORDER BY card_id;",
            (metric_date.isoformat(),),
        )

    def get_deck_metric_rows(self, metric_date: date) -> list[sqlite3.Row]:
        return self.fetchall(
            "SELECT * FROM deck_daily_metrics WHERE metric_date = ? ORDER BY deck_id;",
            (metric_date.isoformat(),),
        )

    def get_card_metric(self, card_id: str, metric_date: date) -> Optional[CardDailyMetric]:
        row = self.fetchone(
            "SELECT * FROM card_daily_metrics WHERE card_id = ? AND metric_date = ?;",
            (card_id, metric_date.isoformat()),
        )
        return card_metric_from_row(row) if row else None

    def get_deck_metric(self, deck_id: str, metric_date: date) -> Optional[DeckDailyMetric]:
        row = self.fetchone(
            "SELECT * FROM deck_daily_metrics WHERE deck_id = ? AND metric_date = ?;",
            (deck_id, metric_date.isoformat()),
        )
        return deck_metric_from_row(row) if row else None


def card_metric_from_row(row: sqlite3.Row) -> CardDailyMetric:
    """Convert a ``card_daily_metrics`` row.

    Raises:
        pydantic.ValidationError: If a decimal column does not parse.
    """
    return CardDailyMetric(
        card_id=row["card_id"],
        metric_date=date.fromisoformat(row["metric_date"]),
        views=row["views"],
        unique_users=row["unique_users"],
        deck_inclusions=row["deck_inclusions"],
        price_avg=row["price_avg"],
        price_change=row["price_change"],
    )


def deck_metric_from_row(row: sqlite3.Row) -> DeckDailyMetric:
    return DeckDailyMetric(
        deck_id=row["deck_id"],
        metric_date=date.fromisoformat(row["metric_date"]),
        views=row["views"],
        unique_users=row["unique_users"],
        imports=row["imports"],
        exports=row["exports"],
        bridge_requests=row["bridge_requests"],
        win_rate=row["win_rate"],
    )
