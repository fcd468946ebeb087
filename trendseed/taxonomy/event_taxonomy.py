"""
Vocabulary shared by the aggregation jobs and the recommendation resolver.

  - ``EventType``   — telemetry event kinds the aggregator counts.
  - ``Scope``       — whether a metric/snapshot/seed concerns a card or a deck.
  - ``Period``      — trending snapshot period.
  - ``SeedSource``  — which resolver tier produced a recommendation seed.
  - ``JobName``     — batch jobs that can be triggered.
  - ``JobStatus``   — job run lifecycle states.

This module has NO imports from any other ``trendseed`` package.
"""

from enum import StrEnum


class EventType(StrEnum):
    """Telemetry event kinds consumed by the metric aggregator."""

    # ── Card activity ─────────────────────────────────────────────────────────
    CARD_VIEWED = "card_viewed"
    """A card detail page was opened."""

    DECK_CARD_ADDED = "deck_card_added"
    """A card was added to some deck list; counts as a deck inclusion."""

    # ── Deck activity ─────────────────────────────────────────────────────────
    DECK_VIEWED = "deck_viewed"
    """A deck page was opened; may carry a win rate in its context."""

    DECK_IMPORTED = "deck_imported"
    EXPORT_COMPLETED = "export_completed"
    BRIDGE_INITIATED = "bridge_initiated"
    """A deck was sent to an external client through the bridge."""


CARD_EVENT_TYPES: frozenset[EventType] = frozenset({
    EventType.CARD_VIEWED,
    EventType.DECK_CARD_ADDED,
})

DECK_EVENT_TYPES: frozenset[EventType] = frozenset({
    EventType.DECK_VIEWED,
    EventType.DECK_IMPORTED,
    EventType.EXPORT_COMPLETED,
    EventType.BRIDGE_INITIATED,
})

TRACKED_EVENT_TYPES: frozenset[EventType] = CARD_EVENT_TYPES | DECK_EVENT_TYPES


class Scope(StrEnum):
    CARD = "card"
    DECK = "deck"


class Period(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"


class SeedSource(StrEnum):
    """Tier tag carried by every recommendation seed."""

    TRENDING_CARD = "trending_card"
    TRENDING_DECK = "trending_deck"
    SIMILAR_CARD = "similar_card"
    DECK_UPGRADE = "deck_upgrade"
    FALLBACK = "fallback"


class JobName(StrEnum):
    TELEMETRY_ROLLUP = "telemetry_rollup"
    TRENDING_REFRESH = "trending_refresh"
    SEED_SAMPLE = "seed_sample"


class JobStatus(StrEnum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
