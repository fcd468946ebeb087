"""
Trending snapshots — the scorer's output, one row per (scope, subject, period).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from trendseed.taxonomy.event_taxonomy import Period, Scope


class TrendingSnapshot(BaseModel):
    """Latest trend score for a subject.

    Attributes:
        snapshot_id: DB PK; ``None`` before insertion.
        scope: ``"card"`` or ``"deck"``.
        subject_id: Card or deck id.
        period: ``"daily"`` or ``"weekly"``.
        trend_score: Weighted composite score, 4 fraction digits.
        components: Named sub-scores that produced ``trend_score``.
        calculated_at: When the scorer last wrote this row.
    """

    model_config = ConfigDict(frozen=True)

    snapshot_id: Optional[int] = None
    scope: Scope
    subject_id: str
    period: Period = Period.DAILY
    trend_score: float
    components: dict[str, Any] = {}
    calculated_at: datetime

    @field_validator("trend_score")
    @classmethod
    def round_score(cls, v: float) -> float:
        return round(v, 4)
