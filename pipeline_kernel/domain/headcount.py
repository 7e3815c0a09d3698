"""
Headcount closure -- decide whether a hire fills the job.

Pure sub-step of the movement executor.  The executor counts the
enrollments currently at the hired stage (after its own update) and asks
this module whether the job should flip to FILLED.

Invariants enforced:
    - A job becomes FILLED exactly once; an already FILLED job is never
      re-closed and its closure timestamp never moves.
    - Only a movement INTO the job's hired stage can close the job.
"""

from __future__ import annotations

from datetime import datetime

from pipeline_kernel.domain.results import HeadcountDecision
from pipeline_kernel.domain.values import JobOpening, JobStatus, StageDefinition


def evaluate_headcount_closure(
    job: JobOpening,
    target_stage: StageDefinition,
    hired_count: int,
    now: datetime,
) -> HeadcountDecision:
    """
    Args:
        job: The job as read inside the movement's transaction.
        target_stage: Stage the enrollment just moved to.
        hired_count: Enrollments of the job currently at the hired stage,
            including the one just moved.
        now: Closure timestamp to record if the job closes.
    """
    should_close = (
        target_stage.is_hired_stage
        and job.status is not JobStatus.FILLED
        and hired_count >= job.headcount
    )
    return HeadcountDecision(
        should_close=should_close,
        hired_count=hired_count,
        headcount=job.headcount,
        closure_timestamp=now if should_close else None,
    )
