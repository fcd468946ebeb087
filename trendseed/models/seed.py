"""
Recommendation seeds and resolver request/response shapes.

Seeds are ephemeral: built fresh for each ``resolve`` call and never
persisted. ``entity`` is a tagged union so a consumer can tell a card
snapshot from a deck snapshot by ``entity.type`` alone.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trendseed.taxonomy.event_taxonomy import Period, Scope, SeedSource


class CardSummary(BaseModel):
    """Denormalized card display snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    set_code: Optional[str] = None
    rarity: Optional[str] = None
    mana_cost: Optional[str] = None
    type_line: Optional[str] = None
    color_identity: list[str] = []
    image_url: Optional[str] = None


class DeckSummary(BaseModel):
    """Denormalized deck display snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    format: Optional[str] = None
    archetype: Optional[str] = None
    power_tier: Optional[str] = None


class CardEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["card"] = "card"
    card: CardSummary


class DeckEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["deck"] = "deck"
    deck: DeckSummary


SeedEntity = Annotated[Union[CardEntity, DeckEntity], Field(discriminator="type")]


class RecommendationSeed(BaseModel):
    """One ranked recommendation.

    Attributes:
        id: Stable seed id, e.g. ``"similar-card-<base>-<target>"``.
        scope: Kind of the recommended target (``card`` or ``deck``).
        title: Display title (target name).
        reason: Human-readable provenance string.
        target_id: Id of the recommended card or deck.
        source: Tier tag.
        rank: 1-based position, contiguous across the whole response.
        trend_score: Target's trending score, when one was used.
        metrics: Diagnostic numbers from the producing tier.
        components: Score components from the producing tier.
        entity: Display snapshot of the target.
        generated_at: When the seed was built.
        fallback: ``True`` for static placeholder seeds.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    scope: Scope
    title: str
    reason: str
    target_id: str
    source: SeedSource
    rank: int = Field(ge=1)
    trend_score: Optional[float] = None
    metrics: Optional[dict[str, Any]] = None
    components: Optional[dict[str, Any]] = None
    entity: SeedEntity
    generated_at: datetime
    fallback: bool = False


class ResolveRequest(BaseModel):
    """Normalized resolver input.

    ``format`` is trimmed and case-folded; blank strings become ``None``.
    ``limit`` is clamped by the resolver, not here.
    """

    model_config = ConfigDict(frozen=True)

    scope: Scope
    subject_id: Optional[str] = None
    format: Optional[str] = None
    surface: Optional[str] = None
    period: Period = Period.DAILY
    limit: Optional[int] = None

    @field_validator("subject_id", "surface")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("format")
    @classmethod
    def normalize_format(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().casefold()
        return v or None

    @field_validator("scope", "period", mode="before")
    @classmethod
    def fold_enum_text(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class ResolveMeta(BaseModel):
    """Response metadata; ``resolver`` names the tiers that contributed."""

    model_config = ConfigDict(frozen=True)

    scope: Scope
    subject_id: Optional[str] = None
    format: Optional[str] = None
    period: Period
    surface: Optional[str] = None
    resolver: str
    count: int


class ResolveResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    seeds: list[RecommendationSeed]
    meta: ResolveMeta

    def to_payload(self) -> dict[str, Any]:
        """Return the ``{"data": [...], "meta": {...}}`` response document."""
        return {
            "data": [s.model_dump(mode="json") for s in self.seeds],
            "meta": self.meta.model_dump(mode="json"),
        }
