"""
trending_refresh job: score the window's metric rows into trending snapshots.
"""

from __future__ import annotations

import logging
from typing import Any

from trendseed.models.meta import JobRun
from trendseed.pipeline.base import JobStage
from trendseed.scoring.trend_scorer import refresh_trending
from trendseed.taxonomy.event_taxonomy import JobName
from trendseed.utils.time_utils import DayWindow

logger = logging.getLogger(__name__)


class TrendingRefreshStage(JobStage):
    job_name = JobName.TRENDING_REFRESH

    def _execute(self, run: JobRun, window: DayWindow) -> dict[str, Any]:
        with self._connect() as conn:
            result = refresh_trending(conn, window.metric_date)
        return {"job": self.job_name.value, **result.as_metadata()}
