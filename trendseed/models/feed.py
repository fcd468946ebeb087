"""
Precomputed model-feed rows consumed by the resolver's first tier.

The producing model is external; these rows are an opaque ranked input.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class SimilarityEdge(BaseModel):
    """A scored "cards like this one" edge."""

    model_config = ConfigDict(frozen=True)

    source_card_id: str
    target_card_id: str
    score: float
    rationale: Optional[str] = None
    components: dict[str, Any] = {}
    model_version: Optional[str] = None
    computed_at: Optional[datetime] = None


class DeckUpgradeCandidate(BaseModel):
    """A scored card suggestion for a specific deck."""

    model_config = ConfigDict(frozen=True)

    deck_id: str
    card_id: str
    score: float
    rationale: Optional[str] = None
    components: dict[str, Any] = {}
    model_version: Optional[str] = None
    computed_at: Optional[datetime] = None
