"""
Hand-authored fallback seeds.

Served verbatim (re-ranked only) when no live tier produced anything or the
store is unreachable. Card seeds also stand in for deck-upgrade requests,
whose targets are cards.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from trendseed.models.seed import (
    CardEntity,
    CardSummary,
    DeckEntity,
    DeckSummary,
    RecommendationSeed,
)
from trendseed.taxonomy.event_taxonomy import Scope, SeedSource
from trendseed.utils.time_utils import utcnow

FALLBACK_REASON = "Daily fallback seed when database data is unavailable."

_FALLBACK_CARDS: list[dict[str, Any]] = [
    {
        "slug": "sheoldred",
        "name": "Sheoldred, the Apocalypse",
        "set_code": "DMU",
        "rarity": "mythic",
        "mana_cost": "{2}{B}{B}",
        "type_line": "Legendary Creature — Phyrexian Praetor",
        "colors": ["B"],
        "image_url": "https://cards.scryfall.io/art_crop/front/3/9/391fce5f-7779-4b1e-bbbe-1c71cc070918.jpg?1664574018",
        "trend_score": 88.4,
        "components": {"views": 1420, "deck_inclusions": 615, "price_growth": 0.18, "scarcity": 0.22},
    },
    {
        "slug": "fable",
        "name": "Fable of the Mirror-Breaker",
        "set_code": "NEO",
        "rarity": "rare",
        "mana_cost": "{2}{R}",
        "type_line": "Enchantment — Saga",
        "colors": ["R"],
        "image_url": "https://cards.scryfall.io/art_crop/front/8/4/8424d417-f5df-4ddc-a9c2-d58fc9fb8ccc.jpg?1643594833",
        "trend_score": 83.1,
        "components": {"views": 1284, "deck_inclusions": 512, "price_growth": 0.12, "scarcity": 0.31},
    },
    {
        "slug": "atraxa",
        "name": "Atraxa, Grand Unifier",
        "set_code": "ONE",
        "rarity": "mythic",
        "mana_cost": "{3}{G}{W}{U}{B}",
        "type_line": "Legendary Creature — Phyrexian Angel",
        "colors": ["G", "W", "U", "B"],
        "image_url": "https://cards.scryfall.io/art_crop/front/3/4/34f762a0-2f27-44be-994b-15dfbdc97716.jpg?1675957081",
        "trend_score": 79.6,
        "components": {"views": 1104, "deck_inclusions": 471, "price_growth": 0.07, "scarcity": 0.28},
    },
]

_FALLBACK_DECKS: list[dict[str, Any]] = [
    {
        "slug": "izzet-phoenix",
        "name": "Izzet Phoenix",
        "format": "pioneer",
        "power_tier": "competitive",
        "trend_score": 75.2,
        "components": {"views": 284, "imports": 94, "exports": 61, "bridge_requests": 33},
    },
    {
        "slug": "selesnya-enchantments",
        "name": "Selesnya Enchantments",
        "format": "standard",
        "power_tier": "mid",
        "trend_score": 71.8,
        "components": {"views": 242, "imports": 80, "exports": 55, "bridge_requests": 27},
    },
]


def _card_seed(entry: dict[str, Any], rank: int, generated_at: datetime) -> RecommendationSeed:
    target_id = f"fallback-{entry['slug']}"
    return RecommendationSeed(
        id=f"fallback-card-{entry['slug']}",
        scope=Scope.CARD,
        title=entry["name"],
        reason=FALLBACK_REASON,
        target_id=target_id,
        source=SeedSource.FALLBACK,
        rank=rank,
        trend_score=entry["trend_score"],
        components=dict(entry["components"]),
        entity=CardEntity(
            card=CardSummary(
                id=target_id,
                name=entry["name"],
                set_code=entry["set_code"],
                rarity=entry["rarity"],
                mana_cost=entry["mana_cost"],
                type_line=entry["type_line"],
                color_identity=list(entry["colors"]),
                image_url=entry["image_url"],
            )
        ),
        generated_at=generated_at,
        fallback=True,
    )


def _deck_seed(entry: dict[str, Any], rank: int, generated_at: datetime) -> RecommendationSeed:
    target_id = f"fallback-deck-{entry['slug']}"
    return RecommendationSeed(
        id=target_id,
        scope=Scope.DECK,
        title=entry["name"],
        reason=FALLBACK_REASON,
        target_id=target_id,
        source=SeedSource.FALLBACK,
        rank=rank,
        trend_score=entry["trend_score"],
        components=dict(entry["components"]),
        entity=DeckEntity(
            deck=DeckSummary(
                id=target_id,
                name=entry["name"],
                format=entry["format"],
                power_tier=entry["power_tier"],
            )
        ),
        generated_at=generated_at,
        fallback=True,
    )


def fallback_seeds(target_scope: Scope, limit: int) -> list[RecommendationSeed]:
    """Return up to ``limit`` fresh fallback seeds for ``target_scope``, ranked 1..N."""
    generated_at = utcnow()
    if target_scope == Scope.DECK:
        return [
            _deck_seed(entry, rank, generated_at)
            for rank, entry in enumerate(_FALLBACK_DECKS[:limit], start=1)
        ]
    return [
        _card_seed(entry, rank, generated_at)
        for rank, entry in enumerate(_FALLBACK_CARDS[:limit], start=1)
    ]
