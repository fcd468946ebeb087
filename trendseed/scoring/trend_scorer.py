"""
Trend scorer.

Formulas
--------
Card::

    price_growth = price_change / price_avg      (0 when avg is 0 or missing)
    trend_score  = round4(views           * 0.40
                        + deck_inclusions * 0.40
                        + price_growth    * 0.20)

Deck::

    trend_score  = round4(views           * 0.35
                        + imports         * 0.25
                        + exports         * 0.20
                        + bridge_requests * 0.10
                        + win_rate        * 0.10)  (win_rate 0 when null)

The weights are part of the scoring contract and are not
configurable. Each run writes one ``trending_snapshots`` row per
(scope, subject, "daily"), replacing score, components and calculated_at.

A metric row that fails to parse (e.g. a corrupt decimal) is logged and
skipped; the run continues with a smaller snapshot count.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from trendseed.db.repositories.metric_repo import (
    MetricRepository,
    card_metric_from_row,
    deck_metric_from_row,
)
from trendseed.db.repositories.trending_repo import TrendingRepository
from trendseed.models.metric import CardDailyMetric, DeckDailyMetric
from trendseed.models.trending import TrendingSnapshot
from trendseed.taxonomy.event_taxonomy import Period, Scope
from trendseed.utils.rounding import round2, round4
from trendseed.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# ── Weights ───────────────────────────────────────────────────────────────────

CARD_VIEWS_WEIGHT = 0.4
CARD_DECK_INCLUSIONS_WEIGHT = 0.4
CARD_PRICE_GROWTH_WEIGHT = 0.2

DECK_VIEWS_WEIGHT = 0.35
DECK_IMPORTS_WEIGHT = 0.25
DECK_EXPORTS_WEIGHT = 0.2
DECK_BRIDGE_REQUESTS_WEIGHT = 0.1
DECK_WIN_RATE_WEIGHT = 0.1


# ── Pure scoring ──────────────────────────────────────────────────────────────


@dataclass
class CardScore:
    views: int
    deck_inclusions: int
    price_growth: float

    @property
    def total(self) -> float:
        return round4(
            self.views * CARD_VIEWS_WEIGHT
            + self.deck_inclusions * CARD_DECK_INCLUSIONS_WEIGHT
            + self.price_growth * CARD_PRICE_GROWTH_WEIGHT
        )

    def components(self) -> dict[str, Any]:
        return {
            "views": self.views,
            "deck_inclusions": self.deck_inclusions,
            "price_growth": round4(self.price_growth),
        }


@dataclass
class DeckScore:
    views: int
    imports: int
    exports: int
    bridge_requests: int
    win_rate: float

    @property
    def total(self) -> float:
        return round4(
            self.views * DECK_VIEWS_WEIGHT
            + self.imports * DECK_IMPORTS_WEIGHT
            + self.exports * DECK_EXPORTS_WEIGHT
            + self.bridge_requests * DECK_BRIDGE_REQUESTS_WEIGHT
            + self.win_rate * DECK_WIN_RATE_WEIGHT
        )

    def components(self) -> dict[str, Any]:
        return {
            "views": self.views,
            "imports": self.imports,
            "exports": self.exports,
            "bridge_requests": self.bridge_requests,
            "win_rate": round2(self.win_rate),
        }


def compute_price_growth(
    price_avg: Optional[Decimal],
    price_change: Optional[Decimal],
) -> float:
    """Relative price movement for the day; 0 without a usable average.

    Raises:
        decimal.InvalidOperation: If either value is not finite.
    """
    if price_avg is None or price_avg == 0:
        return 0.0
    change = price_change if price_change is not None else Decimal(0)
    return float(change / price_avg)


def score_card(metric: CardDailyMetric) -> CardScore:
    return CardScore(
        views=metric.views,
        deck_inclusions=metric.deck_inclusions,
        price_growth=compute_price_growth(metric.price_avg, metric.price_change),
    )


def score_deck(metric: DeckDailyMetric) -> DeckScore:
    return DeckScore(
        views=metric.views,
        imports=metric.imports,
        exports=metric.exports,
        bridge_requests=metric.bridge_requests,
        win_rate=float(metric.win_rate) if metric.win_rate is not None else 0.0,
    )


# ── DB-backed refresh ─────────────────────────────────────────────────────────


@dataclass
class RefreshResult:
    """Snapshot counts written by one trending refresh."""

    card_snapshots: int = 0
    deck_snapshots: int = 0

    def as_metadata(self) -> dict[str, int]:
        return {
            "card_snapshots": self.card_snapshots,
            "deck_snapshots": self.deck_snapshots,
        }


def build_snapshots(
    conn: sqlite3.Connection,
    metric_date: date,
    calculated_at: datetime,
) -> tuple[list[TrendingSnapshot], list[TrendingSnapshot]]:
    """Score every metric row dated ``metric_date``.

    Returns:
        ``(card_snapshots, deck_snapshots)``; malformed rows are omitted.
    """
    metrics = MetricRepository(conn)

    card_snapshots: list[TrendingSnapshot] = []
    for row in metrics.get_card_metric_rows(metric_date):
        try:
            score = score_card(card_metric_from_row(row))
        except (ValidationError, ArithmeticError) as exc:
            logger.warning("Skipping malformed card metric %s: %s", row["card_id"], exc)
            continue
        card_snapshots.append(
            TrendingSnapshot(
                scope=Scope.CARD,
                subject_id=row["card_id"],
                period=Period.DAILY,
                trend_score=score.total,
                components=score.components(),
                calculated_at=calculated_at,
            )
        )

    deck_snapshots: list[TrendingSnapshot] = []
    for row in metrics.get_deck_metric_rows(metric_date):
        try:
            score = score_deck(deck_metric_from_row(row))
        except (ValidationError, ArithmeticError) as exc:
            logger.warning("Skipping malformed deck metric %s: %s", row["deck_id"], exc)
            continue
        deck_snapshots.append(
            TrendingSnapshot(
                scope=Scope.DECK,
                subject_id=row["deck_id"],
                period=Period.DAILY,
                trend_score=score.total,
                components=score.components(),
                calculated_at=calculated_at,
            )
        )

    return card_snapshots, deck_snapshots


def refresh_trending(
    conn: sqlite3.Connection,
    metric_date: date,
    calculated_at: Optional[datetime] = None,
) -> RefreshResult:
    """Recompute daily trending snapshots from ``metric_date``'s metric rows.

    Args:
        conn: Open connection owned by the caller.
        metric_date: Day whose metric rows are scored.
        calculated_at: Timestamp stamped on every snapshot (default: now).

    Returns:
        ``RefreshResult`` with card/deck snapshot counts.
    """
    calculated_at = calculated_at or utcnow()
    card_snapshots, deck_snapshots = build_snapshots(conn, metric_date, calculated_at)

    trending = TrendingRepository(conn)
    result = RefreshResult(
        card_snapshots=trending.upsert_snapshots(card_snapshots),
        deck_snapshots=trending.upsert_snapshots(deck_snapshots),
    )
    logger.info(
        "Trending refresh %s | card_snapshots=%d deck_snapshots=%d",
        metric_date.isoformat(), result.card_snapshots, result.deck_snapshots,
    )
    return result
