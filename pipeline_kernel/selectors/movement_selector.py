"""
Module: pipeline_kernel.selectors.movement_selector
Responsibility: Read access to the movement and rejection audit trail.

Ordering contract:
    - Per enrollment: by sequence number.
    - Per candidate (across jobs): by moved_at, then sequence.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from pipeline_kernel.domain.values import MovementRecord, RejectionRecord
from pipeline_kernel.models.job import JobOpeningModel
from pipeline_kernel.models.movement import MovementRecordModel
from pipeline_kernel.models.rejection import RejectionRecordModel
from pipeline_kernel.selectors.base import BaseSelector


class MovementSelector(BaseSelector[MovementRecordModel]):
    """Queries over MovementRecord and RejectionRecord rows."""

    def for_enrollment(self, enrollment_id: UUID) -> tuple[MovementRecord, ...]:
        models = self.session.execute(
            select(MovementRecordModel)
            .where(MovementRecordModel.enrollment_id == enrollment_id)
            .order_by(MovementRecordModel.sequence)
        ).scalars()
        return tuple(m.to_dto() for m in models)

    def for_candidate(
        self,
        candidate_id: UUID,
        company_id: UUID | None = None,
        all_companies: bool = False,
    ) -> tuple[MovementRecord, ...]:
        """
        Movements of a candidate, oldest first.

        Unless ``all_companies`` is set, only movements on jobs owned by
        ``company_id`` are returned (none when company_id is None).
        """
        stmt = (
            select(MovementRecordModel)
            .join(JobOpeningModel, JobOpeningModel.id == MovementRecordModel.job_id)
            .where(MovementRecordModel.candidate_id == candidate_id)
        )
        if not all_companies:
            if company_id is None:
                return ()
            stmt = stmt.where(JobOpeningModel.company_id == company_id)
        stmt = stmt.order_by(
            MovementRecordModel.moved_at,
            MovementRecordModel.sequence,
        )
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars())

    def last_sequence(self, enrollment_id: UUID) -> int:
        """Highest sequence recorded for the enrollment, 0 when none."""
        result = self.session.execute(
            select(func.max(MovementRecordModel.sequence)).where(
                MovementRecordModel.enrollment_id == enrollment_id
            )
        ).scalar_one()
        return result or 0

    def rejections_for_enrollment(
        self, enrollment_id: UUID
    ) -> tuple[RejectionRecord, ...]:
        models = self.session.execute(
            select(RejectionRecordModel)
            .where(RejectionRecordModel.enrollment_id == enrollment_id)
            .order_by(RejectionRecordModel.rejected_at)
        ).scalars()
        return tuple(m.to_dto() for m in models)
