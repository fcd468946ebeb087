"""
Report builders over the database.

``build_trending_report`` mirrors what a trending endpoint would serve: the
top snapshots joined to catalog names, the newest ``calculated_at``, and a
summary of the latest run per job. ``build_job_status`` is the observability
view over ``job_runs``.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, Optional

from trendseed.db.repositories.catalog_repo import CatalogRepository
from trendseed.db.repositories.job_repo import JobRunRepository
from trendseed.db.repositories.trending_repo import TrendingRepository
from trendseed.models.meta import JobRun
from trendseed.taxonomy.event_taxonomy import JobName, Scope
from trendseed.utils.time_utils import utcnow

# Snapshots older than this are flagged stale in reports.
FRESHNESS_THRESHOLD_HOURS = 36.0


def age_hours(ts: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    if ts is None:
        return None
    now = now or utcnow()
    return round((now - ts).total_seconds() / 3600.0, 2)


def job_summary(run: JobRun) -> dict[str, Any]:
    return {
        "job_type": run.job_type,
        "run_slug": run.run_slug,
        "status": run.status,
        "started_at": run.started_at.isoformat(),
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
        "duration_ms": run.duration_ms,
        "error_message": run.error_message,
        "metadata": run.metadata,
    }


def build_job_status(conn: sqlite3.Connection) -> list[dict[str, Any]]:
    """Latest run per job type, in ``JobName`` order; never-run jobs are omitted."""
    latest = JobRunRepository(conn).get_latest_by_type()
    return [job_summary(latest[j.value]) for j in JobName if j.value in latest]


def build_trending_report(
    conn: sqlite3.Connection,
    scope: Scope,
    period: str,
    limit: int,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Top ``limit`` snapshots for ``scope``/``period`` with freshness metadata.

    Returns:
        ``{"data": [...], "meta": {...}}``. Each data row carries
        ``rank``, ``subject_id``, ``name`` (``None`` when the subject is not
        in the catalog), ``trend_score``, ``components`` and ``calculated_at``.
    """
    trending = TrendingRepository(conn)
    catalog = CatalogRepository(conn)

    snapshots = trending.get_top(scope, period, limit)
    ids = [s.subject_id for s in snapshots]
    if scope == Scope.CARD:
        names = {k: v.name for k, v in catalog.get_cards(ids).items()}
    else:
        names = {k: v.name for k, v in catalog.get_decks(ids).items()}

    data = [
        {
            "rank": rank,
            "subject_id": s.subject_id,
            "name": names.get(s.subject_id),
            "trend_score": s.trend_score,
            "components": s.components,
            "calculated_at": s.calculated_at.isoformat(),
        }
        for rank, s in enumerate(snapshots, start=1)
    ]

    last_calculated = trending.get_last_calculated_at(scope, period)
    hours = age_hours(last_calculated, now)
    return {
        "data": data,
        "meta": {
            "scope": str(scope),
            "period": str(period),
            "count": len(data),
            "last_calculated_at": last_calculated.isoformat() if last_calculated else None,
            "age_hours": hours,
            "is_fresh": hours is not None and hours <= FRESHNESS_THRESHOLD_HOURS,
            "jobs": build_job_status(conn),
        },
    }
