"""
Read access to the ``raw_events`` telemetry feed.

The engine only reads events. ``insert_events`` exists for local fixtures
and tests that need a populated feed.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable

from pydantic import ValidationError

from trendseed.db.repositories.base import BaseRepository, dump_json, placeholders
from trendseed.models.event import RawEvent
from trendseed.utils.open_map import load_json_object
from trendseed.utils.time_utils import DayWindow, from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)


class EventRepository(BaseRepository):
    """Read access to ``raw_events``."""

    def get_events_in_window(
        self,
        window: DayWindow,
        event_types: Iterable[str],
    ) -> list[RawEvent]:
        """Fetch events of the given types with ``occurred_at`` in ``[start, end)``.

        ``occurred_at`` is compared through ``julianday()`` because the feed
        may store either ISO ``T``-separated or SQLite ``YYYY-MM-DD HH:MM:SS``
        text. Rows without a subject are filtered in SQL; subject shape is
        checked by the aggregator. A row that cannot be turned into a
        ``RawEvent`` is logged and skipped.

        Args:
            window: Half-open UTC day window.
            event_types: Allow-listed event type strings.

        Returns:
            Events ordered by ``occurred_at`` then ``event_id``.
        """
        types = sorted(str(t) for t in event_types)
        if not types:
            return []
        rows = self.fetchall(
            f"""
            SELECT * FROM raw_events
            WHERE event_type IN ({placeholders(len(types))})
              AND julianday(occurred_at) >= julianday(?)
              AND julianday(occurred_at) <  julianday(?)
              AND subject_id IS NOT NULL
            ORDER BY julianday(occurred_at), event_id;
            """,
            (*types, to_db_timestamp(window.start), to_db_timestamp(window.end)),
        )
        events: list[RawEvent] = []
        for row in rows:
            try:
                events.append(_row_to_event(row))
            except (ValueError, ValidationError) as exc:
                logger.warning("Skipping malformed raw event %s: %s", row["event_id"], exc)
        return events

    def insert_events(self, events: Iterable[RawEvent]) -> int:
        params = [
            (
                e.event_type,
                e.subject_id,
                e.user_id,
                e.session_id,
                to_db_timestamp(e.occurred_at),
                dump_json(e.context),
            )
            for e in events
        ]
        if not params:
            return 0
        self.executemany(
            """
            INSERT INTO raw_events (
                event_type, subject_id, user_id, session_id, occurred_at, context
            ) VALUES (?, ?, ?, ?, ?, ?);
            """,
            params,
        )
        return len(params)


def _row_to_event(row: sqlite3.Row) -> RawEvent:
    return RawEvent(
        event_id=row["event_id"],
        event_type=row["event_type"],
        subject_id=row["subject_id"],
        user_id=row["user_id"],
        session_id=row["session_id"],
        occurred_at=from_db_timestamp(row["occurred_at"]),
        context=load_json_object(row["context"]),
    )
