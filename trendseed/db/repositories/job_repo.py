"""
Repository for ``job_runs``, the job run tracker's audit log.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from trendseed.db.repositories.base import BaseRepository, dump_json
from trendseed.models.meta import JobRun
from trendseed.utils.open_map import load_json_object
from trendseed.utils.time_utils import from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)


class JobRunRepository(BaseRepository):
    """Read/write access to ``job_runs``."""

    def insert_run(self, run: JobRun) -> int:
        """Insert a new run record and return its ``run_id``."""
        self.execute(
            """
            INSERT INTO job_runs (
                run_slug, job_type, status, metadata, error_message,
                started_at, completed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                run.run_slug,
                run.job_type,
                run.status,
                dump_json(run.metadata),
                run.error_message,
                to_db_timestamp(run.started_at),
                to_db_timestamp(run.completed_at) if run.completed_at else None,
            ),
        )
        return self.last_insert_rowid()

    def update_run(self, run: JobRun) -> None:
        """Write the mutable fields of an existing run.

        Raises:
            ValueError: If ``run.run_id`` is ``None``.
        """
        if run.run_id is None:
            raise ValueError("Cannot update JobRun without a run_id.")
        self.execute(
            """
            UPDATE job_runs SET
                status        = ?,
                metadata      = ?,
                error_message = ?,
                completed_at  = ?
            WHERE run_id = ?;
            """,
            (
                run.status,
                dump_json(run.metadata),
                run.error_message,
                to_db_timestamp(run.completed_at) if run.completed_at else None,
                run.run_id,
            ),
        )

    def get_run_by_slug(self, run_slug: str) -> Optional[JobRun]:
        row = self.fetchone("SELECT * FROM job_runs WHERE run_slug = ?;", (run_slug,))
        return _row_to_run(row) if row else None

    def get_recent_runs(self, job_type: Optional[str] = None, limit: int = 20) -> list[JobRun]:
        """Most recent runs first, optionally for one job type."""
        if job_type:
            rows = self.fetchall(
                """
                SELECT * FROM job_runs WHERE job_type = ?
                ORDER BY started_at DESC, run_id DESC LIMIT ?;
                """,
                (job_type, limit),
            )
        else:
            rows = self.fetchall(
                "SELECT * FROM job_runs ORDER BY started_at DESC, run_id DESC LIMIT ?;",
                (limit,),
            )
        return [_row_to_run(r) for r in rows]

    def get_latest_by_type(self) -> dict[str, JobRun]:
        """Latest run per ``job_type``."""
        rows = self.fetchall(
            """
            SELECT j.* FROM job_runs j
            WHERE j.run_id = (
                SELECT j2.run_id FROM job_runs j2
                WHERE j2.job_type = j.job_type
                ORDER BY j2.started_at DESC, j2.run_id DESC
                LIMIT 1
            )
            ORDER BY j.job_type;
            """
        )
        return {r["job_type"]: _row_to_run(r) for r in rows}


def _row_to_run(row: sqlite3.Row) -> JobRun:
    return JobRun(
        run_id=row["run_id"],
        run_slug=row["run_slug"],
        job_type=row["job_type"],
        status=row["status"],
        metadata=load_json_object(row["metadata"]),
        error_message=row["error_message"],
        started_at=from_db_timestamp(row["started_at"]),
        completed_at=from_db_timestamp(row["completed_at"]),
    )
