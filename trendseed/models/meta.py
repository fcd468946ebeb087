"""
Job run audit records.

``JobRun`` is the only mutable model in the package: ``status``,
``metadata``, ``error_message`` and ``completed_at`` change as the job
executes. Every run starts as ``running`` and receives exactly one terminal
transition (``succeeded`` or ``failed``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from trendseed.taxonomy.event_taxonomy import JobName, JobStatus

VALID_JOB_TYPES = frozenset(j.value for j in JobName)
VALID_JOB_STATUSES = frozenset(s.value for s in JobStatus)
TERMINAL_JOB_STATUSES = frozenset({JobStatus.SUCCEEDED.value, JobStatus.FAILED.value})


class JobRun(BaseModel):
    """One invocation of a batch job.

    Attributes:
        run_id: Auto-assigned DB PK; ``None`` before insertion.
        run_slug: UUID4 string uniquely identifying this run.
        job_type: Which job ran; one of ``VALID_JOB_TYPES``.
        status: ``running`` → ``succeeded`` | ``failed``.
        metadata: Open map, merged last-write-wins across the run.
        error_message: Failure description when ``status == "failed"``.
        started_at: UTC datetime when the run began.
        completed_at: UTC datetime of the terminal transition.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    run_id: Optional[int] = None
    run_slug: str
    job_type: str
    status: str = JobStatus.RUNNING.value
    metadata: dict[str, Any] = {}
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("job_type")
    @classmethod
    def validate_job_type(cls, v: str) -> str:
        if v not in VALID_JOB_TYPES:
            raise ValueError(
                f"Unknown job_type '{v}'. Must be one of {sorted(VALID_JOB_TYPES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_JOB_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_JOB_STATUSES)}."
            )
        return v

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    @property
    def duration_ms(self) -> Optional[int]:
        if self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)
