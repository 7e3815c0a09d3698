"""
Module: pipeline_kernel.services.repositories
Responsibility: Write adapters for job openings and enrollments, implementing
    the JobRepository and EnrollmentRepository contracts of
    ``pipeline_kernel.domain.ports``.

Invariants enforced:
    - Only the fields a movement may change are patchable: an enrollment's
      stage, score, comments, responsible actor and last-moved time; a job's
      status and closure timestamp.
    - Enrollment writes are version-checked.  A mismatch found before the
      flush, or a StaleDataError raised by it, becomes OptimisticLockError.

Failure modes:
    - OptimisticLockError on a lost race for the enrollment row.
    - ValueError on an unknown id or a non-patchable field.
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from pipeline_kernel.domain.values import Enrollment, JobOpening
from pipeline_kernel.exceptions import OptimisticLockError
from pipeline_kernel.logging_config import get_logger
from pipeline_kernel.models.enrollment import EnrollmentModel
from pipeline_kernel.models.job import JobOpeningModel
from pipeline_kernel.services.base import BaseService

logger = get_logger("services.repositories")

_ENROLLMENT_PATCHABLE = frozenset(
    {
        "current_stage_id",
        "score",
        "comments",
        "responsible_actor_id",
        "last_moved_at",
    }
)

_JOB_PATCHABLE = frozenset({"status", "closure_timestamp"})


def _column_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class SqlJobRepository(BaseService[JobOpeningModel]):
    def _load(self, job_id: UUID, for_update: bool = False) -> JobOpeningModel | None:
        stmt = select(JobOpeningModel).where(JobOpeningModel.id == job_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, job_id: UUID, for_update: bool = False) -> JobOpening | None:
        model = self._load(job_id, for_update)
        return model.to_dto() if model is not None else None

    def update(self, job_id: UUID, **patch: Any) -> JobOpening:
        unknown = set(patch) - _JOB_PATCHABLE
        if unknown:
            raise ValueError(f"Job fields not patchable: {sorted(unknown)}")
        model = self._load(job_id)
        if model is None:
            raise ValueError(f"Job {job_id} not found")
        for key, value in patch.items():
            setattr(model, key, _column_value(value))
        self.session.flush()
        return model.to_dto()


class SqlEnrollmentRepository(BaseService[EnrollmentModel]):
    """
    Enrollment access inside a movement's transaction.

    ``get(..., for_update=True)`` issues SELECT ... FOR UPDATE (a no-op on
    SQLite, where the version check alone serializes writers).
    """

    def get(
        self, job_id: UUID, candidate_id: UUID, for_update: bool = False
    ) -> Enrollment | None:
        stmt = select(EnrollmentModel).where(
            EnrollmentModel.job_id == job_id,
            EnrollmentModel.candidate_id == candidate_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        model = self.session.execute(stmt).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def update(
        self, enrollment_id: UUID, expected_version: int, **patch: Any
    ) -> Enrollment:
        unknown = set(patch) - _ENROLLMENT_PATCHABLE
        if unknown:
            raise ValueError(f"Enrollment fields not patchable: {sorted(unknown)}")
        model = self.session.get(EnrollmentModel, enrollment_id)
        if model is None:
            raise ValueError(f"Enrollment {enrollment_id} not found")
        if model.version != expected_version:
            logger.warning(
                "enrollment_version_mismatch",
                extra={
                    "enrollment_id": str(enrollment_id),
                    "expected_version": expected_version,
                    "actual_version": model.version,
                },
            )
            raise OptimisticLockError("Enrollment", str(enrollment_id))

        for key, value in patch.items():
            setattr(model, key, value)
        try:
            self.session.flush()
        except StaleDataError:
            raise OptimisticLockError("Enrollment", str(enrollment_id)) from None
        return model.to_dto()
