"""
seed_sample job: plant one sample card and deck with metrics for local use.

Gives a fresh database something to score and recommend without a telemetry
feed. The sample ids are fixed, so re-running the job overwrites the same
rows. After seeding, the trending refresh runs for the same day.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from trendseed.db.repositories.catalog_repo import CatalogRepository
from trendseed.db.repositories.metric_repo import MetricRepository
from trendseed.models.catalog import Card, Deck
from trendseed.models.meta import JobRun
from trendseed.models.metric import CardDailyMetric, DeckDailyMetric
from trendseed.pipeline.base import JobStage
from trendseed.scoring.trend_scorer import refresh_trending
from trendseed.taxonomy.event_taxonomy import JobName
from trendseed.utils.time_utils import DayWindow

logger = logging.getLogger(__name__)

SAMPLE_CARD_ID = "11111111-1111-4111-8111-111111111111"
SAMPLE_DECK_ID = "22222222-2222-4222-8222-222222222222"

SAMPLE_CARD = Card(
    card_id=SAMPLE_CARD_ID,
    name="Sample Trendsetter",
    set_code="DEV",
    rarity="mythic",
    mana_cost="{2}{U}{R}",
    cmc=4,
    type_line="Legendary Creature",
    color_identity=["U", "R"],
    legality={},
)

SAMPLE_DECK = Deck(
    deck_id=SAMPLE_DECK_ID,
    name="Sample Deck",
    format="standard",
    visibility="public",
    description="Seeded by the seed_sample job.",
)


def sample_card_metric(window: DayWindow) -> CardDailyMetric:
    return CardDailyMetric(
        card_id=SAMPLE_CARD_ID,
        metric_date=window.metric_date,
        views=420,
        unique_users=260,
        deck_inclusions=120,
        price_avg=Decimal("12.50"),
        price_change=Decimal("1.50"),
    )


def sample_deck_metric(window: DayWindow) -> DeckDailyMetric:
    return DeckDailyMetric(
        deck_id=SAMPLE_DECK_ID,
        metric_date=window.metric_date,
        views=95,
        unique_users=52,
        imports=18,
        exports=11,
        bridge_requests=6,
        win_rate=Decimal("0.61"),
    )


class SeedSampleStage(JobStage):
    job_name = JobName.SEED_SAMPLE

    def _execute(self, run: JobRun, window: DayWindow) -> dict[str, Any]:
        with self._connect() as conn:
            catalog = CatalogRepository(conn)
            catalog.upsert_card(SAMPLE_CARD)
            catalog.upsert_deck(SAMPLE_DECK)

            metrics = MetricRepository(conn)
            metrics.upsert_card_metrics([sample_card_metric(window)], include_prices=True)
            metrics.upsert_deck_metrics([sample_deck_metric(window)])

            refreshed = refresh_trending(conn, window.metric_date)

        logger.info("Seeded sample card %s and deck %s", SAMPLE_CARD_ID, SAMPLE_DECK_ID)
        return {
            "job": self.job_name.value,
            "sample_card": SAMPLE_CARD_ID,
            "sample_deck": SAMPLE_DECK_ID,
            **refreshed.as_metadata(),
        }
