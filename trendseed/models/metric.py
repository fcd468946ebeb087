"""
Daily metric rows — one per (subject, metric_date), written by the aggregator.

Card rows additionally carry ``price_avg`` / ``price_change``, maintained by an
external pricing job; the aggregator never overwrites them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CardDailyMetric(BaseModel):
    """Daily activity counters for one card.

    Attributes:
        card_id: Card UUID.
        metric_date: UTC day the counters cover.
        views: Count of ``card_viewed`` events.
        unique_users: Distinct users across ``card_viewed`` events.
        deck_inclusions: Count of ``deck_card_added`` events.
        price_avg: Average market price for the day, if known.
        price_change: Price movement for the day, if known.
    """

    model_config = ConfigDict(frozen=True)

    card_id: str
    metric_date: date
    views: int = Field(default=0, ge=0)
    unique_users: int = Field(default=0, ge=0)
    deck_inclusions: int = Field(default=0, ge=0)
    price_avg: Optional[Decimal] = None
    price_change: Optional[Decimal] = None


class DeckDailyMetric(BaseModel):
    """Daily activity counters for one deck.

    Attributes:
        deck_id: Deck UUID.
        metric_date: UTC day the counters cover.
        views: Count of ``deck_viewed`` events.
        unique_users: Distinct users across every deck event type.
        imports: Count of ``deck_imported`` events.
        exports: Count of ``export_completed`` events.
        bridge_requests: Count of ``bridge_initiated`` events.
        win_rate: Mean reported win rate in [0, 1], ``None`` with no samples.
    """

    model_config = ConfigDict(frozen=True)

    deck_id: str
    metric_date: date
    views: int = Field(default=0, ge=0)
    unique_users: int = Field(default=0, ge=0)
    imports: int = Field(default=0, ge=0)
    exports: int = Field(default=0, ge=0)
    bridge_requests: int = Field(default=0, ge=0)
    win_rate: Optional[Decimal] = None
