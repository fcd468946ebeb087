"""
Card and deck reference entities.

The catalog is owned by another part of the system; the engine reads it to
filter and decorate recommendations.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

# Preferred order when choosing a display image from ``image_uris``.
IMAGE_PREFERENCE: tuple[str, ...] = ("art_crop", "border_crop", "large", "normal", "png")


class Card(BaseModel):
    """A catalog card.

    Attributes:
        card_id: Card UUID.
        name: Display name.
        set_code: Printing set, e.g. ``"DMU"``.
        rarity: ``"common"`` .. ``"mythic"``.
        mana_cost: Cost string such as ``"{2}{B}{B}"``.
        cmc: Converted mana cost.
        type_line: Full type line, e.g. ``"Legendary Creature — Phyrexian"``.
        color_identity: Color letters (``W U B R G``).
        legality: Format → status map, e.g. ``{"standard": "legal"}``.
        image_uris: Named image URLs.
    """

    model_config = ConfigDict(frozen=True)

    card_id: str
    name: str
    set_code: Optional[str] = None
    rarity: Optional[str] = None
    mana_cost: Optional[str] = None
    cmc: Optional[float] = None
    type_line: Optional[str] = None
    color_identity: list[str] = []
    legality: dict[str, str] = {}
    image_uris: dict[str, str] = {}

    @field_validator("color_identity")
    @classmethod
    def normalize_colors(cls, v: list[str]) -> list[str]:
        return [c.upper() for c in v]

    def is_legal_in(self, format_slug: Optional[str]) -> bool:
        """Return ``True`` if this card may be played in ``format_slug``.

        No format (or ``"any"``) accepts every card. Otherwise the legality
        map entry must be exactly ``"legal"``; a missing entry excludes it.
        """
        if not format_slug or format_slug == "any":
            return True
        status = self.legality.get(format_slug)
        return status is not None and status.lower() == "legal"

    def image_url(self) -> Optional[str]:
        for key in IMAGE_PREFERENCE:
            if url := self.image_uris.get(key):
                return url
        return None


class Deck(BaseModel):
    """A catalog deck.

    Attributes:
        deck_id: Deck UUID.
        name: Display name.
        format: Format slug, e.g. ``"standard"``.
        archetype: Free-text archetype label.
        power_tier: Competitive tier label.
        visibility: ``"public"`` / ``"private"`` / ``"unlisted"``.
        description: Optional blurb.
    """

    model_config = ConfigDict(frozen=True)

    deck_id: str
    name: str
    format: Optional[str] = None
    archetype: Optional[str] = None
    power_tier: Optional[str] = None
    visibility: str = "public"
    description: Optional[str] = None
