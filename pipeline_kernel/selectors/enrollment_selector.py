"""Read adapter for enrollments and the per-stage distribution of a job."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from pipeline_kernel.domain.values import Enrollment
from pipeline_kernel.models.enrollment import EnrollmentModel
from pipeline_kernel.selectors.base import BaseSelector


class EnrollmentSelector(BaseSelector[EnrollmentModel]):
    def get(self, job_id: UUID, candidate_id: UUID) -> Enrollment | None:
        model = self.session.execute(
            select(EnrollmentModel).where(
                EnrollmentModel.job_id == job_id,
                EnrollmentModel.candidate_id == candidate_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def get_by_id(self, enrollment_id: UUID) -> Enrollment | None:
        model = self.session.get(EnrollmentModel, enrollment_id)
        return model.to_dto() if model is not None else None

    def stage_counts(self, job_id: UUID) -> dict[str, int]:
        """Number of enrollments per current stage key."""
        rows = self.session.execute(
            select(EnrollmentModel.current_stage_id, func.count())
            .where(EnrollmentModel.job_id == job_id)
            .group_by(EnrollmentModel.current_stage_id)
        ).all()
        return {stage_id: count for stage_id, count in rows}

    def count_at_stage(self, job_id: UUID, stage_id: str) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(EnrollmentModel)
            .where(
                EnrollmentModel.job_id == job_id,
                EnrollmentModel.current_stage_id == stage_id,
            )
        ).scalar_one()
