"""
Base repository with shared SQLite execution helpers.

Repositories receive an open ``sqlite3.Connection`` (normally from
``get_connection()``) and never commit themselves: the caller's ``with``
block decides the transaction boundary.

No ORM. SQL lives in repository methods, parameters are always bound with
``?`` placeholders, and JSON columns are encoded with ``json.dumps``.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)


class BaseRepository:
    """Shared SQL execution helpers for all repository classes.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> sqlite3.Cursor:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def executemany(
        self,
        sql: str,
        params_list: list[tuple[Any, ...] | dict[str, Any]],
    ) -> sqlite3.Cursor:
        """Execute ``sql`` once per parameter set; one round of SQL, one cursor."""
        logger.debug("SQL (many): %s | count: %d", sql.strip(), len(params_list))
        return self.conn.executemany(sql, params_list)

    def fetchone(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(
        self,
        sql: str,
        params: tuple[Any, ...] | dict[str, Any] = (),
    ) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def last_insert_rowid(self) -> int:
        row = self.fetchone("SELECT last_insert_rowid() AS rowid;")
        assert row is not None
        return int(row["rowid"])


def dump_json(value: Any) -> str:
    """Encode a JSON column value with stable key order."""
    return json.dumps(value, sort_keys=True, default=str)


def placeholders(count: int) -> str:
    """Return ``"?, ?, ..."`` for an ``IN (...)`` clause of ``count`` values."""
    return ", ".join("?" for _ in range(count))
