"""Tests for repository round-trip operations using in-memory SQLite."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from trendseed.db.repositories.catalog_repo import CatalogRepository, sort_colors
from trendseed.db.repositories.event_repo import EventRepository
from trendseed.db.repositories.feed_repo import ModelFeedRepository
from trendseed.db.repositories.job_repo import JobRunRepository
from trendseed.db.repositories.metric_repo import MetricRepository
from trendseed.db.repositories.trending_repo import TrendingRepository
from trendseed.models.event import RawEvent
from trendseed.models.feed import DeckUpgradeCandidate, SimilarityEdge
from trendseed.models.meta import JobRun
from trendseed.models.metric import CardDailyMetric, DeckDailyMetric
from trendseed.models.trending import TrendingSnapshot
from trendseed.taxonomy.event_taxonomy import Period, Scope
from trendseed.utils.time_utils import day_window

DAY = date(2025, 1, 15)
T0 = datetime(2025, 1, 15, 0, 0, tzinfo=timezone.utc)


def _snapshot(
    subject_id: str,
    score: float,
    scope: Scope = Scope.CARD,
    calculated_at: datetime = T0 + timedelta(hours=3),
) -> TrendingSnapshot:
    return TrendingSnapshot(
        scope=scope,
        subject_id=subject_id,
        trend_score=score,
        components={"views": int(score)},
        calculated_at=calculated_at,
    )


# ── Events ────────────────────────────────────────────────────────────────────

class TestEventRepository:
    def test_window_is_half_open(self, in_memory_db):
        repo = EventRepository(in_memory_db)
        repo.insert_events([
            RawEvent(event_type="card_viewed", subject_id="s", occurred_at=T0 - timedelta(microseconds=1)),
            RawEvent(event_type="card_viewed", subject_id="s", occurred_at=T0),
            RawEvent(event_type="card_viewed", subject_id="s", occurred_at=T0 + timedelta(hours=23, minutes=59)),
            RawEvent(event_type="card_viewed", subject_id="s", occurred_at=T0 + timedelta(days=1)),
        ])
        events = repo.get_events_in_window(day_window(DAY), ["card_viewed"])
        assert [e.occurred_at for e in events] == [T0, T0 + timedelta(hours=23, minutes=59)]

    def test_type_allow_list_and_null_subject(self, in_memory_db):
        repo = EventRepository(in_memory_db)
        repo.insert_events([
            RawEvent(event_type="card_viewed", subject_id="s", occurred_at=T0),
            RawEvent(event_type="search_performed", subject_id="s", occurred_at=T0),
            RawEvent(event_type="card_viewed", subject_id=None, occurred_at=T0),
        ])
        events = repo.get_events_in_window(day_window(DAY), ["card_viewed"])
        assert len(events) == 1

    def test_context_round_trip(self, in_memory_db):
        repo = EventRepository(in_memory_db)
        repo.insert_events([
            RawEvent(event_type="deck_viewed", subject_id="d", occurred_at=T0,
                     context={"win_rate": 0.55, "source": "web"}),
        ])
        (event,) = repo.get_events_in_window(day_window(DAY), ["deck_viewed"])
        assert event.context == {"win_rate": 0.55, "source": "web"}


# ── Metrics ───────────────────────────────────────────────────────────────────

class TestMetricRepository:
    def test_counter_upsert_preserves_prices(self, in_memory_db):
        repo = MetricRepository(in_memory_db)
        repo.upsert_card_metrics(
            [CardDailyMetric(card_id="c", metric_date=DAY, views=1,
                             price_avg=Decimal("10.00"), price_change=Decimal("0.50"))],
            include_prices=True,
        )
        repo.upsert_card_metrics([CardDailyMetric(card_id="c", metric_date=DAY, views=7)])

        metric = repo.get_card_metric("c", DAY)
        assert metric.views == 7
        assert metric.price_avg == Decimal("10.00")
        assert metric.price_change == Decimal("0.50")

    def test_deck_upsert_replaces(self, in_memory_db):
        repo = MetricRepository(in_memory_db)
        repo.upsert_deck_metrics([DeckDailyMetric(deck_id="d", metric_date=DAY, views=1,
                                                  win_rate=Decimal("0.60"))])
        repo.upsert_deck_metrics([DeckDailyMetric(deck_id="d", metric_date=DAY, views=2)])
        metric = repo.get_deck_metric("d", DAY)
        assert metric.views == 2
        assert metric.win_rate is None

    def test_rows_filtered_by_date(self, in_memory_db):
        repo = MetricRepository(in_memory_db)
        repo.upsert_card_metrics([
            CardDailyMetric(card_id="c", metric_date=DAY),
            CardDailyMetric(card_id="c", metric_date=DAY + timedelta(days=1)),
        ])
        assert len(repo.get_card_metric_rows(DAY)) == 1

    def test_empty_upsert(self, in_memory_db):
        assert MetricRepository(in_memory_db).upsert_card_metrics([]) == 0


# ── Trending ──────────────────────────────────────────────────────────────────

class TestTrendingRepository:
    def test_upsert_replaces_per_subject_and_period(self, in_memory_db):
        repo = TrendingRepository(in_memory_db)
        repo.upsert_snapshots([_snapshot("c1", 1.0)])
        repo.upsert_snapshots([_snapshot("c1", 9.5)])
        assert len(repo.get_all()) == 1
        assert repo.get_snapshot("card", "c1", "daily").trend_score == 9.5

    def test_top_ordering_and_exclusion(self, in_memory_db):
        repo = TrendingRepository(in_memory_db)
        repo.upsert_snapshots([_snapshot("c3", 5.0), _snapshot("c1", 5.0), _snapshot("c2", 8.0)])
        top = repo.get_top(Scope.CARD, Period.DAILY, 10)
        assert [s.subject_id for s in top] == ["c2", "c1", "c3"]

        top = repo.get_top(Scope.CARD, Period.DAILY, 10, exclude_subject_ids={"c2"})
        assert [s.subject_id for s in top] == ["c1", "c3"]

    def test_scope_isolation(self, in_memory_db):
        repo = TrendingRepository(in_memory_db)
        repo.upsert_snapshots([_snapshot("x", 1.0), _snapshot("x", 2.0, scope=Scope.DECK)])
        assert repo.get_scores(Scope.DECK, Period.DAILY, ["x"]) == {"x": 2.0}
        assert repo.get_scores(Scope.CARD, Period.DAILY, []) == {}

    def test_last_calculated_at(self, in_memory_db):
        repo = TrendingRepository(in_memory_db)
        assert repo.get_last_calculated_at() is None
        later = T0 + timedelta(hours=6)
        repo.upsert_snapshots([_snapshot("a", 1.0), _snapshot("b", 1.0, calculated_at=later)])
        assert repo.get_last_calculated_at(Scope.CARD) == later

    def test_components_round_trip(self, in_memory_db):
        repo = TrendingRepository(in_memory_db)
        repo.upsert_snapshots([_snapshot("c1", 3.0)])
        assert repo.get_snapshot("card", "c1", "daily").components == {"views": 3}


# ── Catalog ───────────────────────────────────────────────────────────────────

class TestCatalogRepository:
    def test_card_round_trip(self, catalog_db, sample_cards):
        card = CatalogRepository(catalog_db).get_card(sample_cards["base"].card_id)
        assert card == sample_cards["base"]

    def test_get_cards_skips_unknown(self, catalog_db, sample_cards):
        found = CatalogRepository(catalog_db).get_cards(
            [sample_cards["blue"].card_id, "ffffffff-0000-4000-8000-000000000000"]
        )
        assert list(found) == [sample_cards["blue"].card_id]

    def test_color_overlap_search(self, catalog_db, sample_cards):
        repo = CatalogRepository(catalog_db)
        found = repo.find_cards_by_attributes(["R"], None, [sample_cards["base"].card_id], 10)
        assert [c.name for c in found] == ["Banned Blaster", "Flame Herald", "Ridge Runner"]

    def test_type_token_search(self, catalog_db):
        found = CatalogRepository(catalog_db).find_cards_by_attributes(["R", "G"], "Beast", [], 10)
        assert [c.name for c in found] == ["Ridge Runner"]

    def test_empty_colors_means_no_color_filter(self, catalog_db):
        found = CatalogRepository(catalog_db).find_cards_by_attributes([], None, [], 10)
        assert len(found) == 6

    def test_deck_cards_and_colors(self, catalog_db, sample_cards, sample_decks):
        repo = CatalogRepository(catalog_db)
        deck_id = sample_decks["red"].deck_id
        assert repo.get_deck_card_ids(deck_id) == {
            sample_cards["base"].card_id,
            sample_cards["partner"].card_id,
        }
        assert repo.get_deck_colors(deck_id) == ["R"]
        assert repo.get_deck(deck_id).format == "standard"

    def test_sort_colors_wubrg(self):
        assert sort_colors(["g", "W", "R", "U"]) == ["W", "U", "R", "G"]


# ── Model feed ────────────────────────────────────────────────────────────────

class TestModelFeedRepository:
    def test_similarity_edges_sorted_without_self_edges(self, in_memory_db):
        repo = ModelFeedRepository(in_memory_db)
        repo.upsert_similarity_edges([
            SimilarityEdge(source_card_id="a", target_card_id="a", score=1.0),
            SimilarityEdge(source_card_id="a", target_card_id="b", score=0.4),
            SimilarityEdge(source_card_id="a", target_card_id="c", score=0.9,
                           rationale="Shared engine", components={"overlap": 0.7}),
        ])
        edges = repo.get_similarity_edges("a", 10)
        assert [e.target_card_id for e in edges] == ["c", "b"]
        assert edges[0].rationale == "Shared engine"
        assert edges[0].components == {"overlap": 0.7}

    def test_upgrade_candidates_exclude_deck_cards(self, catalog_db, sample_cards, sample_decks):
        deck_id = sample_decks["red"].deck_id
        repo = ModelFeedRepository(catalog_db)
        repo.upsert_upgrade_candidates([
            DeckUpgradeCandidate(deck_id=deck_id, card_id=sample_cards["base"].card_id, score=0.99),
            DeckUpgradeCandidate(deck_id=deck_id, card_id=sample_cards["runner"].card_id, score=0.5),
        ])
        candidates = repo.get_upgrade_candidates(deck_id, 10)
        assert [c.card_id for c in candidates] == [sample_cards["runner"].card_id]


# ── Job runs ──────────────────────────────────────────────────────────────────

class TestJobRunRepository:
    def _run(self, slug: str, job_type: str, started_at: datetime) -> JobRun:
        return JobRun(run_slug=slug, job_type=job_type, started_at=started_at,
                      metadata={"window_start": "2025-01-15T00:00:00+00:00"})

    def test_insert_and_update(self, in_memory_db):
        repo = JobRunRepository(in_memory_db)
        run = self._run("r1", "telemetry_rollup", T0)
        run.run_id = repo.insert_run(run)
        run.status = "succeeded"
        run.completed_at = T0 + timedelta(seconds=2)
        run.metadata = {**run.metadata, "card_metrics_updated": 3}
        repo.update_run(run)

        stored = repo.get_run_by_slug("r1")
        assert stored.status == "succeeded"
        assert stored.metadata["card_metrics_updated"] == 3
        assert stored.duration_ms == 2000

    def test_latest_by_type(self, in_memory_db):
        repo = JobRunRepository(in_memory_db)
        repo.insert_run(self._run("old", "telemetry_rollup", T0))
        repo.insert_run(self._run("new", "telemetry_rollup", T0 + timedelta(hours=1)))
        repo.insert_run(self._run("tr", "trending_refresh", T0))

        latest = repo.get_latest_by_type()
        assert latest["telemetry_rollup"].run_slug == "new"
        assert latest["trending_refresh"].run_slug == "tr"
        assert [r.run_slug for r in repo.get_recent_runs("telemetry_rollup")] == ["new", "old"]
