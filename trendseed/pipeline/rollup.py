"""
telemetry_rollup job: aggregate one day of raw events into daily metrics.
"""

from __future__ import annotations

import logging
from typing import Any

from trendseed.aggregation.daily_rollup import aggregate_window
from trendseed.models.meta import JobRun
from trendseed.pipeline.base import JobStage
from trendseed.taxonomy.event_taxonomy import JobName
from trendseed.utils.time_utils import DayWindow

logger = logging.getLogger(__name__)


class TelemetryRollupStage(JobStage):
    """Aggregates ``raw_events`` in the window into daily metric rows.

    All upserts for the window share one transaction.
    """

    job_name = JobName.TELEMETRY_ROLLUP

    def _execute(self, run: JobRun, window: DayWindow) -> dict[str, Any]:
        with self._connect() as conn:
            result = aggregate_window(conn, window)
        return {"job": self.job_name.value, **result.as_metadata()}
