"""
Resolver tiers.

Each tier is a plain function ``(conn, ctx) -> list[RecommendationSeed]``
that reads from the store and returns candidates in its own preferred order.
Tiers do not deduplicate against each other or assign final ranks; the
resolver does both. ``ctx.seen`` holds the targets already chosen by earlier
tiers so a tier can avoid spending its fetch window on them.

Tiers
-----
precomputed_tier : model feed (similarity edges / deck-upgrade candidates)
heuristic_tier   : catalog attribute search ranked by trend score
trending_tier    : global trending snapshots, re-tagged with the request's source
"""

from __future__ import annotations

import logging
import re
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from trendseed.config import RecommendationConfig
from trendseed.db.repositories.catalog_repo import CatalogRepository, sort_colors
from trendseed.db.repositories.feed_repo import ModelFeedRepository
from trendseed.db.repositories.trending_repo import TrendingRepository
from trendseed.models.catalog import Card, Deck
from trendseed.models.seed import (
    CardEntity,
    CardSummary,
    DeckEntity,
    DeckSummary,
    RecommendationSeed,
    ResolveRequest,
)
from trendseed.taxonomy.event_taxonomy import Period, Scope, SeedSource
from trendseed.utils.rounding import round4
from trendseed.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# Type-line separators: em dash, en dash, or a spaced hyphen.
_TYPE_SEPARATOR_RE = re.compile(r"\s*[—–]\s*|\s+-\s+")


@dataclass(frozen=True)
class TierContext:
    """Everything a tier needs to know about the request in progress.

    Attributes:
        request: Normalized resolver request.
        target_scope: Kind of entity being recommended. Deck-upgrade requests
            recommend cards, so this is ``card`` for them.
        source: Tag to put on produced seeds.
        limit: Slots still open in the response.
        seen: Target ids already chosen.
        settings: Resolver fetch windows.
    """

    request: ResolveRequest
    target_scope: Scope
    source: SeedSource
    limit: int
    seen: frozenset[str] = field(default_factory=frozenset)
    settings: RecommendationConfig = field(default_factory=RecommendationConfig)

    def fetch_size(self, factor: int, cap: int) -> int:
        """Over-fetch ``factor`` × the open slots, bounded by ``cap``."""
        return max(1, min(max(self.limit * factor, self.limit), cap))


TierFn = Callable[[sqlite3.Connection, TierContext], list[RecommendationSeed]]


# ── Shared helpers ────────────────────────────────────────────────────────────


def primary_type_token(type_line: Optional[str]) -> Optional[str]:
    """Text before the first type-line separator, e.g. ``"Legendary Creature"``."""
    if not type_line:
        return None
    token = _TYPE_SEPARATOR_RE.split(type_line, maxsplit=1)[0].strip()
    return token or None


def card_summary(card: Card) -> CardSummary:
    return CardSummary(
        id=card.card_id,
        name=card.name,
        set_code=card.set_code,
        rarity=card.rarity,
        mana_cost=card.mana_cost,
        type_line=card.type_line,
        color_identity=list(card.color_identity),
        image_url=card.image_url(),
    )


def deck_summary(deck: Deck) -> DeckSummary:
    return DeckSummary(
        id=deck.deck_id,
        name=deck.name,
        format=deck.format,
        archetype=deck.archetype,
        power_tier=deck.power_tier,
    )


def seed_id(source: SeedSource, subject_id: Optional[str], target_id: str) -> str:
    if source == SeedSource.SIMILAR_CARD:
        return f"similar-card-{subject_id}-{target_id}"
    if source == SeedSource.DECK_UPGRADE:
        return f"deck-upgrade-{subject_id}-{target_id}"
    if source == SeedSource.TRENDING_DECK:
        return f"trending-deck-{target_id}"
    return f"trending-card-{target_id}"


def _card_seed(
    ctx: TierContext,
    card: Card,
    reason: str,
    trend_score: Optional[float] = None,
    metrics: Optional[dict[str, Any]] = None,
    components: Optional[dict[str, Any]] = None,
    generated_at: Optional[datetime] = None,
) -> RecommendationSeed:
    return RecommendationSeed(
        id=seed_id(ctx.source, ctx.request.subject_id, card.card_id),
        scope=Scope.CARD,
        title=card.name,
        reason=reason,
        target_id=card.card_id,
        source=ctx.source,
        rank=1,
        trend_score=trend_score,
        metrics=metrics,
        components=components or None,
        entity=CardEntity(card=card_summary(card)),
        generated_at=generated_at or utcnow(),
    )


def _period_phrase(period: Period) -> str:
    return "today" if period == Period.DAILY else "this week"


def _shared_colors(a: list[str], b: list[str]) -> list[str]:
    return sort_colors(set(a) & set(b))


# ── Tier 1: precomputed model feed ────────────────────────────────────────────


def precomputed_tier(conn: sqlite3.Connection, ctx: TierContext) -> list[RecommendationSeed]:
    """Model-ranked candidates for the request's subject, best score first.

    Targets not legal in the requested format are dropped.
    """
    subject_id = ctx.request.subject_id
    if not subject_id:
        return []

    feed = ModelFeedRepository(conn)
    catalog = CatalogRepository(conn)
    take = ctx.fetch_size(3, ctx.settings.model_fetch_cap)
    excluded = ctx.seen | {subject_id}

    if ctx.request.scope == Scope.CARD:
        base = catalog.get_card(subject_id)
        base_name = base.name if base else "this card"
        rows = [
            (e.target_card_id, e.score, e.rationale, e.components)
            for e in feed.get_similarity_edges(subject_id, take)
        ]
        metric_key = "similarity"
        default_reason = f"Frequently paired with {base_name} in similar lists."
    else:
        deck = catalog.get_deck(subject_id)
        deck_name = deck.name if deck else "this deck"
        rows = [
            (c.card_id, c.score, c.rationale, c.components)
            for c in feed.get_upgrade_candidates(subject_id, take)
        ]
        metric_key = "upgrade_score"
        default_reason = f"Model-ranked upgrade for {deck_name}."

    cards = catalog.get_cards(target_id for target_id, *_ in rows)
    trend_scores = TrendingRepository(conn).get_scores(Scope.CARD, ctx.request.period, cards)

    seeds: list[RecommendationSeed] = []
    for target_id, score, rationale, components in rows:
        card = cards.get(target_id)
        if card is None or target_id in excluded:
            continue
        if not card.is_legal_in(ctx.request.format):
            continue
        seeds.append(
            _card_seed(
                ctx,
                card,
                reason=rationale or default_reason,
                trend_score=trend_scores.get(target_id),
                metrics={metric_key: round4(score)},
                components=components,
            )
        )
    return seeds


# ── Tier 2: catalog attribute heuristic ───────────────────────────────────────


def heuristic_tier(conn: sqlite3.Connection, ctx: TierContext) -> list[RecommendationSeed]:
    """Catalog cards sharing attributes with the subject, ranked by trend score.

    Cards: overlapping color identity and the subject's primary type token.
    Decks: overlapping the deck's aggregate colors, excluding its own cards.
    Candidates without a snapshot sort after every scored candidate.
    """
    subject_id = ctx.request.subject_id
    if not subject_id:
        return []

    catalog = CatalogRepository(conn)
    take = ctx.fetch_size(4, ctx.settings.heuristic_fetch_cap)

    if ctx.request.scope == Scope.CARD:
        base = catalog.get_card(subject_id)
        if base is None:
            logger.info("Heuristic tier: card %s not in catalog", subject_id)
            return []
        anchor_name = base.name
        anchor_colors = list(base.color_identity)
        type_token = primary_type_token(base.type_line)
        exclude = ctx.seen | {subject_id}
    else:
        deck = catalog.get_deck(subject_id)
        if deck is None:
            logger.info("Heuristic tier: deck %s not in catalog", subject_id)
            return []
        anchor_name = deck.name
        anchor_colors = catalog.get_deck_colors(subject_id)
        type_token = None
        exclude = ctx.seen | catalog.get_deck_card_ids(subject_id)

    candidates = [
        card
        for card in catalog.find_cards_by_attributes(anchor_colors, type_token, exclude, take)
        if card.is_legal_in(ctx.request.format)
    ]
    snapshots = TrendingRepository(conn)
    scores = snapshots.get_scores(Scope.CARD, ctx.request.period, (c.card_id for c in candidates))

    # Stable sort keeps catalog order among equal and unscored candidates.
    candidates.sort(key=lambda c: (c.card_id not in scores, -scores.get(c.card_id, 0.0)))

    seeds: list[RecommendationSeed] = []
    for card in candidates:
        shared = _shared_colors(anchor_colors, card.color_identity)
        if ctx.request.scope == Scope.CARD:
            attribute = (
                f"{''.join(shared)} identity" if shared else f"the {type_token or 'same'} type"
            )
            reason = f"Shares {attribute} with {anchor_name}"
        else:
            reason = (
                f"Fits the {''.join(shared)} colors of {anchor_name}"
                if shared
                else f"Colorless option for {anchor_name}"
            )
        score = scores.get(card.card_id)
        reason += " and is trending in similar lists." if score is not None else "."
        seeds.append(
            _card_seed(
                ctx,
                card,
                reason=reason,
                trend_score=score,
                metrics={"trend_score": score} if score is not None else None,
            )
        )
    return seeds


# ── Tier 3: global trending ───────────────────────────────────────────────────


def trending_tier(conn: sqlite3.Connection, ctx: TierContext) -> list[RecommendationSeed]:
    """Top trending snapshots for the target scope, re-tagged with ``ctx.source``.

    Format filtering: cards must be legal in the format; decks must be
    registered in it. Snapshots whose subject is missing from the catalog are
    skipped.
    """
    request = ctx.request
    snapshots = TrendingRepository(conn)
    catalog = CatalogRepository(conn)
    take = ctx.fetch_size(2, ctx.settings.trending_fetch_cap)

    exclude = set(ctx.seen)
    if request.subject_id:
        exclude.add(request.subject_id)
        if request.scope == Scope.DECK:
            exclude |= catalog.get_deck_card_ids(request.subject_id)

    top = snapshots.get_top(ctx.target_scope, request.period, take, exclude_subject_ids=exclude)
    seeds: list[RecommendationSeed] = []

    if ctx.target_scope == Scope.DECK:
        decks = catalog.get_decks(s.subject_id for s in top)
        for snap in top:
            deck = decks.get(snap.subject_id)
            if deck is None:
                continue
            if request.format and request.format != "any":
                if (deck.format or "").casefold() != request.format:
                    continue
            seeds.append(
                RecommendationSeed(
                    id=seed_id(ctx.source, request.subject_id, deck.deck_id),
                    scope=Scope.DECK,
                    title=deck.name,
                    reason=f"Trending {deck.format or 'casual'} deck {_period_phrase(request.period)}.",
                    target_id=deck.deck_id,
                    source=ctx.source,
                    rank=1,
                    trend_score=snap.trend_score,
                    metrics={"trend_score": snap.trend_score},
                    components=snap.components or None,
                    entity=DeckEntity(deck=deck_summary(deck)),
                    generated_at=snap.calculated_at,
                )
            )
        return seeds

    cards = catalog.get_cards(s.subject_id for s in top)
    if request.format:
        reason = f"Legal in {request.format.upper()} and trending {_period_phrase(request.period)}."
    else:
        reason = "Trending momentum across the catalog."
    for snap in top:
        card = cards.get(snap.subject_id)
        if card is None or not card.is_legal_in(request.format):
            continue
        seeds.append(
            _card_seed(
                ctx,
                card,
                reason=reason,
                trend_score=snap.trend_score,
                metrics={"trend_score": snap.trend_score},
                components=snap.components,
                generated_at=snap.calculated_at,
            )
        )
    return seeds
