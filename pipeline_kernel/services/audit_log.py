"""
AuditLogService -- the movement audit trail and pipeline statistics.

Responsibility:
    Sole write path for MovementRecord and RejectionRecord rows, plus the
    read side: company-scoped movement history, per-job statistics,
    per-enrollment rejection records and chain verification.

Architecture position:
    Kernel > Services -- imperative shell.  Writes flush only; the caller
    owns the transaction.

Invariants enforced:
    - Movement sequence numbers are assigned here as last sequence + 1.
    - History never leaks movements on jobs of another company, except to
      a super-admin.
    - verify_chain() checks that each record's previous stage is the prior
      record's new stage and that sequence numbers have no gaps.

Failure modes:
    - AuditChainBrokenError from verify_chain().
    - ImmutabilityViolationError if anything tries to rewrite a record.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from pipeline_kernel.domain.clock import Clock, SystemClock
from pipeline_kernel.domain.pipeline_stats import compute_pipeline_stats
from pipeline_kernel.domain.policy import DEFAULT_POLICY, TransitionPolicy
from pipeline_kernel.domain.results import PipelineStats
from pipeline_kernel.domain.values import (
    Actor,
    Enrollment,
    MovementOrigin,
    MovementRecord,
    RejectionPayload,
    RejectionRecord,
    thaw,
)
from pipeline_kernel.exceptions import AuditChainBrokenError
from pipeline_kernel.logging_config import get_logger
from pipeline_kernel.models.movement import MovementRecordModel
from pipeline_kernel.models.rejection import RejectionRecordModel
from pipeline_kernel.selectors.catalog_selector import StageCatalogSelector
from pipeline_kernel.selectors.enrollment_selector import EnrollmentSelector
from pipeline_kernel.selectors.movement_selector import MovementSelector
from pipeline_kernel.services.base import BaseService

logger = get_logger("services.audit_log")


class AuditLogService(BaseService[MovementRecordModel]):
    """
    Contract:
        ``append`` and ``append_rejection`` are the only code paths that
        insert audit rows.  Reads return frozen domain records.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: TransitionPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._policy = policy
        self._movements = MovementSelector(session)

    # =========================================================================
    # Writes
    # =========================================================================

    def append(
        self,
        enrollment: Enrollment,
        previous_stage_id: str | None,
        actor_id: UUID,
        moved_at: datetime | None = None,
        score: Decimal | None = None,
        comments: str | None = None,
        origin: MovementOrigin | None = None,
    ) -> MovementRecord:
        """Record the movement of ``enrollment`` into its current stage."""
        origin = origin or MovementOrigin()
        sequence = self._movements.last_sequence(enrollment.id) + 1
        model = MovementRecordModel(
            enrollment_id=enrollment.id,
            job_id=enrollment.job_id,
            candidate_id=enrollment.candidate_id,
            sequence=sequence,
            previous_stage_id=previous_stage_id,
            new_stage_id=enrollment.current_stage_id,
            score=score,
            comments=comments,
            actor_id=actor_id,
            moved_at=moved_at or self._clock.now(),
            origin_ip=origin.ip,
            detail=thaw(origin.detail),
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "movement_recorded",
            extra={
                "movement_id": str(model.id),
                "sequence": sequence,
                "previous_stage_id": previous_stage_id,
                "new_stage_id": enrollment.current_stage_id,
            },
        )
        return model.to_dto()

    def append_rejection(
        self,
        movement: MovementRecord,
        stage_at_rejection: str,
        rejection: RejectionPayload,
    ) -> RejectionRecord:
        custom_text = rejection.custom_reason_text
        model = RejectionRecordModel(
            enrollment_id=movement.enrollment_id,
            movement_id=movement.id,
            reason_id=rejection.reason_id,
            custom_reason_text=custom_text.strip() if custom_text else None,
            observations=rejection.observations,
            stage_at_rejection=stage_at_rejection,
            actor_id=movement.actor_id,
            rejected_at=movement.moved_at,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "rejection_recorded",
            extra={
                "movement_id": str(movement.id),
                "reason_id": str(rejection.reason_id) if rejection.reason_id else None,
                "stage_at_rejection": stage_at_rejection,
            },
        )
        return model.to_dto()

    # =========================================================================
    # Reads
    # =========================================================================

    def history(
        self, candidate_id: UUID, actor: Actor | None
    ) -> tuple[MovementRecord, ...]:
        """
        The candidate's movements visible to ``actor``, oldest first.

        Entries on another company's jobs are left out rather than refused.
        An unknown actor sees nothing.
        """
        if actor is None:
            return ()
        return self._movements.for_candidate(
            candidate_id,
            company_id=actor.company_id,
            all_companies=self._policy.is_super_admin(actor.role),
        )

    def stats(self, job_id: UUID) -> PipelineStats:
        stages = StageCatalogSelector(self.session).list(job_id)
        counts = EnrollmentSelector(self.session).stage_counts(job_id)
        return compute_pipeline_stats(job_id, stages, counts)

    def rejections(self, enrollment_id: UUID) -> tuple[RejectionRecord, ...]:
        return self._movements.rejections_for_enrollment(enrollment_id)

    def verify_chain(self, enrollment_id: UUID) -> int:
        """
        Re-check the movement chain of an enrollment.

        The first record may start from null or from the stage the
        enrollment was created at; every later record must start where the
        previous one ended.

        Returns:
            Number of records verified.

        Raises:
            AuditChainBrokenError: On a sequence gap or a chain break.
        """
        records = self._movements.for_enrollment(enrollment_id)
        previous: MovementRecord | None = None
        for expected_sequence, record in enumerate(records, start=1):
            if record.sequence != expected_sequence:
                self._report_break(
                    enrollment_id,
                    record.sequence,
                    f"sequence {expected_sequence}",
                    f"sequence {record.sequence}",
                )
            if previous is not None and record.previous_stage_id != previous.new_stage_id:
                self._report_break(
                    enrollment_id,
                    record.sequence,
                    previous.new_stage_id,
                    record.previous_stage_id,
                )
            previous = record

        current = EnrollmentSelector(self.session).get_by_id(enrollment_id)
        if (
            previous is not None
            and current is not None
            and current.current_stage_id != previous.new_stage_id
        ):
            self._report_break(
                enrollment_id,
                previous.sequence,
                current.current_stage_id,
                previous.new_stage_id,
            )
        return len(records)

    def _report_break(
        self,
        enrollment_id: UUID,
        sequence: int,
        expected: str | None,
        actual: str | None,
    ) -> None:
        logger.critical(
            "audit_chain_broken",
            extra={
                "enrollment_id": str(enrollment_id),
                "sequence": sequence,
                "expected": expected,
                "actual": actual,
            },
        )
        raise AuditChainBrokenError(str(enrollment_id), sequence, expected, actual)
