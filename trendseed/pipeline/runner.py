"""
Job trigger: validate a job request, then run the matching stage.

Input errors (unknown job name, unparseable target date) raise before any
database access. Everything after validation is recorded on a ``JobRun``;
callers map ``run.status`` to a process exit code.

The target day comes from, in order: the explicit ``target_date`` argument,
the environment variable named by ``config.jobs.metrics_date_env``
(``METRICS_DATE`` by default), or the current UTC day.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Optional

from trendseed.config import AppConfig
from trendseed.models.meta import JobRun
from trendseed.pipeline.base import JobStage
from trendseed.pipeline.rollup import TelemetryRollupStage
from trendseed.pipeline.seed_sample import SeedSampleStage
from trendseed.pipeline.trending import TrendingRefreshStage
from trendseed.taxonomy.event_taxonomy import JobName
from trendseed.utils.time_utils import DayWindow, day_window, parse_target_date, utcnow

logger = logging.getLogger(__name__)

JOB_STAGES: dict[JobName, type[JobStage]] = {
    JobName.TELEMETRY_ROLLUP: TelemetryRollupStage,
    JobName.TRENDING_REFRESH: TrendingRefreshStage,
    JobName.SEED_SAMPLE: SeedSampleStage,
}


# ── Custom exceptions ─────────────────────────────────────────────────────────


class UnsupportedJobError(ValueError):
    """Raised for a job name outside ``JobName``.

    Attributes:
        job_name: The rejected name.
    """

    def __init__(self, job_name: str) -> None:
        self.job_name = job_name
        super().__init__(
            f"Unsupported job '{job_name}'. "
            f"Expected one of: {', '.join(j.value for j in JobName)}."
        )


class InvalidTargetDateError(ValueError):
    """Raised when the target date (argument or environment) does not parse.

    Attributes:
        value: The rejected text.
        source: Where it came from (``"argument"`` or the env var name).
    """

    def __init__(self, value: str, source: str) -> None:
        self.value = value
        self.source = source
        super().__init__(f"Invalid target date {value!r} from {source}: expected YYYY-MM-DD.")


# ── Validation ────────────────────────────────────────────────────────────────


def resolve_job_name(job_name: str | JobName) -> JobName:
    try:
        return JobName(str(job_name).strip())
    except ValueError:
        raise UnsupportedJobError(str(job_name)) from None


def resolve_window(
    config: AppConfig,
    target_date: date | str | None = None,
) -> DayWindow:
    """Pick the UTC day window for a job run.

    Raises:
        InvalidTargetDateError: If the chosen date text does not parse.
    """
    if isinstance(target_date, date):
        return day_window(target_date)

    source = "argument"
    text = target_date
    if not text:
        source = config.jobs.metrics_date_env
        text = os.environ.get(source)

    try:
        parsed: Optional[date] = parse_target_date(text)
    except ValueError:
        raise InvalidTargetDateError(str(text), source) from None

    return day_window(parsed if parsed is not None else utcnow())


# ── Entry point ───────────────────────────────────────────────────────────────


def run_job(
    job_name: str | JobName,
    config: AppConfig,
    target_date: date | str | None = None,
    db_path: str | None = None,
) -> JobRun:
    """Validate and run one job.

    Args:
        job_name: ``telemetry_rollup``, ``trending_refresh`` or ``seed_sample``.
        config: Application config.
        target_date: Day to process; see module docstring for defaults.
        db_path: Override for ``config.database.db_path``.

    Returns:
        The finalized ``JobRun``.

    Raises:
        UnsupportedJobError: Unknown job name (nothing is written).
        InvalidTargetDateError: Bad date (nothing is written).
    """
    job = resolve_job_name(job_name)
    window = resolve_window(config, target_date)

    stage = JOB_STAGES[job](config=config, db_path=db_path)
    run = stage.run(window)
    logger.info("run_job %s finished with status=%s", job.value, run.status)
    return run
