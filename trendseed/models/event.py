"""
Raw telemetry events — the read-only input to the metric aggregator.

Events are written by a separate capture path and never modified here.
``context`` is an open map whose keys vary per ``event_type``.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from trendseed.utils.time_utils import ensure_utc

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_uuid_shaped(value: Optional[str]) -> bool:
    """Return ``True`` when ``value`` looks like a canonical 8-4-4-4-12 UUID."""
    return bool(value) and _UUID_RE.match(value) is not None


class RawEvent(BaseModel):
    """A single persisted telemetry event.

    Attributes:
        event_id: DB PK; ``None`` before insertion.
        event_type: Event kind, e.g. ``"card_viewed"``.
        subject_id: Card or deck id the event refers to, if any.
        user_id: Acting user, if known.
        session_id: Client session, if known.
        occurred_at: UTC timestamp of the event.
        context: Free-form event payload.
    """

    model_config = ConfigDict(frozen=True)

    event_id: Optional[int] = None
    event_type: str
    subject_id: Optional[str] = None
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    occurred_at: datetime
    context: dict[str, Any] = {}

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def has_valid_subject(self) -> bool:
        return is_uuid_shaped(self.subject_id)
