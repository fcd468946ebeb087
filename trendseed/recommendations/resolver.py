"""
Recommendation resolver: a deduplicating, degrading tier cascade.

Tier plan by request shape
--------------------------
card + subject   similarity-model → similar-heuristic → trending   (source similar_card)
deck + subject   deck-upgrade-model → deck-upgrade-heuristic → trending   (source deck_upgrade)
no subject       trending   (source trending_card / trending_deck)

Every plan ends in the static fallback, used only when the live tiers
produced nothing (or the store is unreachable).

Cascade rules
-------------
- Tiers run in order; a tier is entered only while slots remain.
- A running ``seen`` set drops any target already chosen, so the response
  never repeats a ``target_id``.
- Ranks are re-sequenced to 1..N across the whole list after every tier.
- A tier that raises or exceeds ``tier_timeout_seconds`` contributes nothing
  and the cascade moves on. Each tier is one attempt, on its own connection.
- ``meta.resolver`` lists the contributing tiers joined with ``+``, or
  ``static-fallback``.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import AbstractContextManager
from typing import Optional

from trendseed.config import AppConfig
from trendseed.db.connection import connection_factory
from trendseed.db.repositories.catalog_repo import CatalogRepository
from trendseed.models.seed import (
    RecommendationSeed,
    ResolveMeta,
    ResolveRequest,
    ResolveResult,
)
from trendseed.recommendations.fallback import fallback_seeds
from trendseed.recommendations.tiers import (
    TierContext,
    TierFn,
    heuristic_tier,
    precomputed_tier,
    trending_tier,
)
from trendseed.taxonomy.event_taxonomy import Scope, SeedSource

logger = logging.getLogger(__name__)

STATIC_FALLBACK_LABEL = "static-fallback"

ConnectFn = Callable[[], AbstractContextManager[sqlite3.Connection]]

_CARD_SUBJECT_PLAN: list[tuple[str, TierFn]] = [
    ("similarity-model", precomputed_tier),
    ("similar-heuristic", heuristic_tier),
    ("trending", trending_tier),
]
_DECK_SUBJECT_PLAN: list[tuple[str, TierFn]] = [
    ("deck-upgrade-model", precomputed_tier),
    ("deck-upgrade-heuristic", heuristic_tier),
    ("trending", trending_tier),
]
_TRENDING_PLAN: list[tuple[str, TierFn]] = [
    ("trending", trending_tier),
]

_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _tier_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="resolver-tier")
        return _executor


def rerank(seeds: list[RecommendationSeed]) -> list[RecommendationSeed]:
    """Return copies of ``seeds`` with ranks 1..N in list order."""
    return [
        seed if seed.rank == rank else seed.model_copy(update={"rank": rank})
        for rank, seed in enumerate(seeds, start=1)
    ]


def plan_for(request: ResolveRequest) -> tuple[Scope, SeedSource, list[tuple[str, TierFn]]]:
    """Pick (target scope, seed source, tier plan) for a request."""
    if request.subject_id and request.scope == Scope.CARD:
        return Scope.CARD, SeedSource.SIMILAR_CARD, _CARD_SUBJECT_PLAN
    if request.subject_id and request.scope == Scope.DECK:
        return Scope.CARD, SeedSource.DECK_UPGRADE, _DECK_SUBJECT_PLAN
    if request.scope == Scope.DECK:
        return Scope.DECK, SeedSource.TRENDING_DECK, _TRENDING_PLAN
    return Scope.CARD, SeedSource.TRENDING_CARD, _TRENDING_PLAN


class RecommendationResolver:
    """Stateless, read-only resolver over the metric/catalog store.

    Safe to share across threads: every tier opens its own connection.

    Args:
        config: Application config (limits, fetch windows, tier timeout).
        connect: Zero-argument callable returning a connection context
            manager. Defaults to ``get_connection`` on ``config.database``.
        db_path: Override for ``config.database.db_path`` when ``connect``
            is not given.
    """

    def __init__(
        self,
        config: AppConfig,
        connect: Optional[ConnectFn] = None,
        db_path: Optional[str] = None,
    ) -> None:
        self.config = config
        self.settings = config.recommendations
        self._connect = connect or connection_factory(config.database, db_path)

    def clamp_limit(self, limit: Optional[int]) -> int:
        if limit is None or limit <= 0:
            return self.settings.default_limit
        return min(limit, self.settings.max_limit)

    def resolve(self, request: ResolveRequest) -> ResolveResult:
        """Resolve a ranked, deduplicated seed list for ``request``.

        Never raises for store errors; the worst case is the static fallback.
        """
        limit = self.clamp_limit(request.limit)
        target_scope, source, plan = plan_for(request)

        seeds: list[RecommendationSeed] = []
        contributors: list[str] = []
        seen: set[str] = set()
        if request.subject_id:
            seen.add(request.subject_id)

        if self._store_available():
            for label, tier in plan:
                if len(seeds) >= limit:
                    break
                ctx = TierContext(
                    request=request,
                    target_scope=target_scope,
                    source=source,
                    limit=limit - len(seeds),
                    seen=frozenset(seen),
                    settings=self.settings,
                )
                added = 0
                for seed in self._run_tier(label, tier, ctx):
                    if len(seeds) >= limit:
                        break
                    if seed.target_id in seen:
                        continue
                    seen.add(seed.target_id)
                    seeds.append(seed)
                    added += 1
                if added:
                    contributors.append(label)
                seeds = rerank(seeds)
                logger.debug("Tier [%s] added %d seed(s); total=%d", label, added, len(seeds))

        if not seeds:
            seeds = rerank(fallback_seeds(target_scope, limit))
            contributors = [STATIC_FALLBACK_LABEL]

        meta = ResolveMeta(
            scope=request.scope,
            subject_id=request.subject_id,
            format=request.format,
            period=request.period,
            surface=request.surface,
            resolver="+".join(contributors),
            count=len(seeds),
        )
        logger.info(
            "Resolved %d seed(s) | scope=%s subject=%s resolver=%s",
            meta.count, meta.scope, meta.subject_id, meta.resolver,
        )
        return ResolveResult(seeds=seeds, meta=meta)

    # ── Tier execution ────────────────────────────────────────────────────────

    def _store_available(self) -> bool:
        def _ping(conn: sqlite3.Connection, _ctx: None) -> list[RecommendationSeed]:
            CatalogRepository(conn).ping()
            return []

        try:
            self._call_with_timeout(_ping, None)
        except Exception as exc:
            logger.warning("Recommendation store unavailable; serving fallback: %s", exc)
            return False
        return True

    def _run_tier(self, label: str, tier: TierFn, ctx: TierContext) -> list[RecommendationSeed]:
        try:
            return self._call_with_timeout(tier, ctx)
        except TimeoutError:
            logger.warning(
                "Tier [%s] exceeded %.2fs; falling through.",
                label, self.settings.tier_timeout_seconds,
            )
        except Exception as exc:
            logger.warning("Tier [%s] failed; falling through: %s", label, exc)
        return []

    def _call_with_timeout(self, fn, ctx) -> list[RecommendationSeed]:
        timeout = self.settings.tier_timeout_seconds
        if timeout is None:
            return self._call(fn, ctx)
        future: Future = _tier_executor().submit(self._call, fn, ctx)
        try:
            return future.result(timeout=timeout)
        except TimeoutError:
            future.cancel()
            raise

    def _call(self, fn, ctx) -> list[RecommendationSeed]:
        with self._connect() as conn:
            return fn(conn, ctx)
