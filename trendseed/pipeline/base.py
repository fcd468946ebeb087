"""
Abstract base class for batch jobs, plus the job run tracker.

Every job follows the same contract:
  1. Receive ``AppConfig`` at construction.
  2. ``run(window)`` is the sole public API.
  3. ``run()`` persists a ``JobRun`` with ``status="running"``, calls
     ``_execute()``, and finalizes the run exactly once in a ``finally``
     block, so no run is ever left ``running``.
  4. ``_execute()`` returns the job's own result map, which is merged into the
     run metadata with ``merge_metadata``.

``run()`` never raises for ordinary job errors: the failure is recorded on
the returned ``JobRun`` (``status="failed"``, ``error_message`` set) and the
caller decides the process exit code. ``BaseException`` (e.g.
``KeyboardInterrupt``) still propagates after the run is marked failed.

Usage::

    class MyJob(JobStage):
        job_name = JobName.TRENDING_REFRESH

        def _execute(self, run: JobRun, window: DayWindow) -> dict[str, Any]:
            return {"card_snapshots": 3}

    run = MyJob(config=app_config).run(day_window(date(2024, 9, 15)))
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Optional
from uuid import uuid4

from trendseed.config import AppConfig
from trendseed.models.meta import JobRun
from trendseed.taxonomy.event_taxonomy import JobName, JobStatus
from trendseed.utils.time_utils import DayWindow, utcnow

logger = logging.getLogger(__name__)


def merge_metadata(*parts: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge metadata maps left to right, last write wins per top-level key.

    Nested values are replaced wholesale, never deep-merged; phases should
    use distinct keys. ``None`` parts are ignored.
    """
    merged: dict[str, Any] = {}
    for part in parts:
        if part:
            merged.update(part)
    return merged


def complete_run(run: JobRun, result: Optional[Mapping[str, Any]]) -> None:
    """Transition ``run`` to ``succeeded`` and fold ``result`` into its metadata.

    Raises:
        RuntimeError: If the run already reached a terminal status.
    """
    _ensure_running(run)
    run.metadata = merge_metadata(run.metadata, result)
    run.status = JobStatus.SUCCEEDED.value
    run.completed_at = utcnow()


def fail_run(run: JobRun, message: str) -> None:
    """Transition ``run`` to ``failed`` with a human-readable ``message``.

    Raises:
        RuntimeError: If the run already reached a terminal status.
    """
    _ensure_running(run)
    run.status = JobStatus.FAILED.value
    run.error_message = message
    run.completed_at = utcnow()


def _ensure_running(run: JobRun) -> None:
    if run.is_terminal:
        raise RuntimeError(
            f"JobRun {run.run_slug} is already '{run.status}'; "
            "a run is finalized exactly once."
        )


class JobStage(ABC):
    """Abstract base for all batch jobs.

    Subclasses must:
      1. Set the ``job_name`` class variable.
      2. Implement ``_execute(run, window) -> dict``.

    Attributes:
        job_name: Which job this class implements.
        config: The application configuration for this run.
        db_path: SQLite path (defaults to ``config.database.db_path``).
    """

    job_name: JobName

    def __init__(
        self,
        config: AppConfig,
        db_path: str | None = None,
    ) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path

    def run(self, window: DayWindow) -> JobRun:
        """Execute this job over ``window`` and return the finalized run.

        Args:
            window: Half-open UTC day the job covers.

        Returns:
            ``JobRun`` with ``status`` ``succeeded`` or ``failed``.
        """
        run = JobRun(
            run_slug=str(uuid4()),
            job_type=self.job_name.value,
            started_at=utcnow(),
            metadata={
                "window_start": window.start.isoformat(),
                "window_end": window.end.isoformat(),
            },
        )
        logger.info(
            "Job [%s] starting | window=%s | run_slug=%s",
            self.job_name, window.metric_date.isoformat(), run.run_slug,
        )
        self._persist_run(run)

        result: Optional[dict[str, Any]] = None
        error: Optional[Exception] = None
        try:
            result = self._execute(run, window)
        except Exception as exc:
            error = exc
            logger.exception(
                "Job [%s] FAILED: %s | run_slug=%s", self.job_name, exc, run.run_slug
            )
        finally:
            if error is None and result is not None:
                complete_run(run, result)
                logger.info(
                    "Job [%s] succeeded | metadata=%s | run_slug=%s",
                    self.job_name, result, run.run_slug,
                )
            elif error is not None:
                fail_run(run, str(error) or error.__class__.__name__)
            else:
                fail_run(run, "Job interrupted before completion.")
            self._persist_run(run)

        return run

    @abstractmethod
    def _execute(self, run: JobRun, window: DayWindow) -> dict[str, Any]:
        """Job-specific work.

        Args:
            run: The in-progress ``JobRun`` (status ``running``).
            window: Day window to process.

        Returns:
            Result map merged into ``run.metadata`` on success.
        """
        ...

    def _connect(self):
        from trendseed.db.connection import get_connection

        return get_connection(
            self.db_path,
            wal_mode=self.config.database.wal_mode,
            busy_timeout_ms=self.config.database.busy_timeout_ms,
        )

    def _persist_run(self, run: JobRun) -> None:
        """Insert or update the run record.

        Persistence errors are logged, not raised, so a broken store cannot
        mask the job's own outcome; the returned ``JobRun`` stays authoritative.
        """
        try:
            from trendseed.db.repositories.job_repo import JobRunRepository

            with self._connect() as conn:
                repo = JobRunRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist JobRun for run_slug=%s: %s", run.run_slug, exc
            )
