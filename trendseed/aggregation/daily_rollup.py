"""
Daily telemetry rollup.

Purpose
-------
Turns every allow-listed ``raw_events`` row inside one half-open UTC day
window into exactly one ``card_daily_metrics`` or ``deck_daily_metrics`` row
per subject.

Counting rules
--------------
Cards (``card_viewed``, ``deck_card_added``):
    views           = count of card_viewed
    unique_users    = distinct non-null user ids on card_viewed
    deck_inclusions = count of deck_card_added

Decks (``deck_viewed``, ``deck_imported``, ``export_completed``, ``bridge_initiated``):
    views / imports / exports / bridge_requests = count of the matching type
    unique_users = distinct non-null user ids across all four types
    win_rate     = mean of the numeric ``win_rate`` (or legacy ``winRate``)
                   context value on deck_viewed events, rounded to 2 digits;
                   ``None`` when no event carried one

Events whose subject id is missing or not UUID-shaped are dropped.

Idempotence
-----------
Rows are upserted create-or-replace, all inside the caller's transaction, so
re-running a window rewrites the same values and a failure leaves the
previous day state untouched.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from trendseed.db.repositories.event_repo import EventRepository
from trendseed.db.repositories.metric_repo import MetricRepository
from trendseed.models.event import RawEvent
from trendseed.models.metric import CardDailyMetric, DeckDailyMetric
from trendseed.taxonomy.event_taxonomy import (
    CARD_EVENT_TYPES,
    DECK_EVENT_TYPES,
    TRACKED_EVENT_TYPES,
    EventType,
)
from trendseed.utils.open_map import first_number
from trendseed.utils.rounding import quantize
from trendseed.utils.time_utils import DayWindow

logger = logging.getLogger(__name__)

# Context keys carrying a deck's reported win rate, in lookup order.
WIN_RATE_KEYS: tuple[str, ...] = ("win_rate", "winRate")


@dataclass
class _CardTally:
    views: int = 0
    deck_inclusions: int = 0
    users: set[str] = field(default_factory=set)


@dataclass
class _DeckTally:
    views: int = 0
    imports: int = 0
    exports: int = 0
    bridge_requests: int = 0
    users: set[str] = field(default_factory=set)
    win_rate_sum: float = 0.0
    win_rate_samples: int = 0

    @property
    def win_rate(self) -> Optional[Decimal]:
        if self.win_rate_samples == 0:
            return None
        return quantize(self.win_rate_sum / self.win_rate_samples, 2)


@dataclass
class RollupResult:
    """Row counts written by one aggregation run."""

    card_metrics_updated: int = 0
    deck_metrics_updated: int = 0

    def as_metadata(self) -> dict[str, int]:
        return {
            "card_metrics_updated": self.card_metrics_updated,
            "deck_metrics_updated": self.deck_metrics_updated,
        }


def rollup_events(
    events: Iterable[RawEvent],
    metric_date: date,
) -> tuple[list[CardDailyMetric], list[DeckDailyMetric]]:
    """Group events by subject and build one metric row per subject.

    Pure: no I/O. The caller is responsible for having restricted ``events``
    to the window that ``metric_date`` names.

    Args:
        events: Events from a single day window, any types.
        metric_date: Day the resulting rows are keyed on.

    Returns:
        ``(card_rows, deck_rows)``, each sorted by subject id.
    """
    cards: dict[str, _CardTally] = {}
    decks: dict[str, _DeckTally] = {}

    for event in events:
        if not event.has_valid_subject:
            continue
        subject_id = event.subject_id

        if event.event_type in CARD_EVENT_TYPES:
            tally = cards.setdefault(subject_id, _CardTally())
            if event.event_type == EventType.CARD_VIEWED:
                tally.views += 1
                if event.user_id:
                    tally.users.add(event.user_id)
            else:
                tally.deck_inclusions += 1

        elif event.event_type in DECK_EVENT_TYPES:
            deck = decks.setdefault(subject_id, _DeckTally())
            if event.user_id:
                deck.users.add(event.user_id)
            if event.event_type == EventType.DECK_VIEWED:
                deck.views += 1
                win_rate = first_number(event.context, *WIN_RATE_KEYS)
                if win_rate is not None:
                    deck.win_rate_sum += win_rate
                    deck.win_rate_samples += 1
            elif event.event_type == EventType.DECK_IMPORTED:
                deck.imports += 1
            elif event.event_type == EventType.EXPORT_COMPLETED:
                deck.exports += 1
            else:
                deck.bridge_requests += 1

    card_rows: list[CardDailyMetric] = []
    for card_id in sorted(cards):
        tally = cards[card_id]
        try:
            card_rows.append(
                CardDailyMetric(
                    card_id=card_id,
                    metric_date=metric_date,
                    views=tally.views,
                    unique_users=len(tally.users),
                    deck_inclusions=tally.deck_inclusions,
                )
            )
        except ValueError as exc:
            logger.warning("Skipping card %s rollup: %s", card_id, exc)

    deck_rows: list[DeckDailyMetric] = []
    for deck_id in sorted(decks):
        deck = decks[deck_id]
        try:
            deck_rows.append(
                DeckDailyMetric(
                    deck_id=deck_id,
                    metric_date=metric_date,
                    views=deck.views,
                    unique_users=len(deck.users),
                    imports=deck.imports,
                    exports=deck.exports,
                    bridge_requests=deck.bridge_requests,
                    win_rate=deck.win_rate,
                )
            )
        except (ArithmeticError, ValueError) as exc:
            logger.warning("Skipping deck %s rollup: %s", deck_id, exc)

    return card_rows, deck_rows


def aggregate_window(conn: sqlite3.Connection, window: DayWindow) -> RollupResult:
    """Aggregate one day window and upsert the resulting metric rows.

    Reads and writes go through ``conn`` without committing; run inside one
    ``get_connection()`` block so the whole day is written atomically.

    Args:
        conn: Open connection owned by the caller.
        window: Half-open UTC day to aggregate.

    Returns:
        ``RollupResult`` with the number of card and deck rows written.
    """
    events = EventRepository(conn).get_events_in_window(window, TRACKED_EVENT_TYPES)
    logger.info(
        "Rollup window %s → %s | events=%d",
        window.start.isoformat(), window.end.isoformat(), len(events),
    )

    card_rows, deck_rows = rollup_events(events, window.metric_date)

    metrics = MetricRepository(conn)
    result = RollupResult(
        card_metrics_updated=metrics.upsert_card_metrics(card_rows),
        deck_metrics_updated=metrics.upsert_deck_metrics(deck_rows),
    )
    logger.info(
        "Rollup wrote card_metrics=%d deck_metrics=%d",
        result.card_metrics_updated, result.deck_metrics_updated,
    )
    return result
