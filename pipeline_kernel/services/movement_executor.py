"""
MovementExecutor -- apply one validated movement inside the caller's transaction.

Responsibility:
    Given an enrollment already validated for a move, write everything the
    move implies, in order:

        1. enrollment update (stage, score, comments, responsible actor,
           last moved time), version-checked
        2. MovementRecord append (sequence = last + 1)
        3. RejectionRecord append, for a rejection stage with a payload
        4. headcount closure, when the target is the job's hired stage

    All four steps share the caller's session and are flushed, never
    committed.  If any step raises, the caller rolls back the whole unit.

Architecture position:
    Kernel > Services -- imperative shell.  Calls the pure
    ``evaluate_headcount_closure`` for step 4.

Concurrency:
    The enrollment row is read FOR UPDATE by the caller and its UPDATE
    carries the version read.  When a hire is recorded, the job row is
    locked FOR UPDATE before hires are counted, so two concurrent hires on
    one job cannot both see a count below headcount.

Failure modes:
    - OptimisticLockError if the enrollment changed since it was read.
    - Any SQLAlchemyError from the flushes (reported as UPDATE_FAILED by
      the pipeline service).
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from pipeline_kernel.db.types import round_score
from pipeline_kernel.domain.clock import Clock, SystemClock
from pipeline_kernel.domain.headcount import evaluate_headcount_closure
from pipeline_kernel.domain.results import ExecutionResult
from pipeline_kernel.domain.values import (
    Actor,
    Enrollment,
    JobStatus,
    MovementOrigin,
    RejectionPayload,
    StageDefinition,
)
from pipeline_kernel.logging_config import get_logger
from pipeline_kernel.models.enrollment import EnrollmentModel
from pipeline_kernel.selectors.catalog_selector import StageCatalogSelector
from pipeline_kernel.selectors.enrollment_selector import EnrollmentSelector
from pipeline_kernel.services.audit_log import AuditLogService
from pipeline_kernel.services.base import BaseService
from pipeline_kernel.services.repositories import (
    SqlEnrollmentRepository,
    SqlJobRepository,
)

logger = get_logger("services.movement_executor")


class MovementExecutor(BaseService[EnrollmentModel]):
    """
    Contract:
        ``execute`` assumes the access guard and transition rules already
        passed for exactly this enrollment snapshot.

    Guarantees:
        - Exactly one MovementRecord per call.
        - At most one RejectionRecord per call, only for rejection stages.
        - The job flips to FILLED at most once.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit_log: AuditLogService | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit_log = audit_log or AuditLogService(session, self._clock)
        self._enrollments = SqlEnrollmentRepository(session)
        self._jobs = SqlJobRepository(session)
        self._stages = StageCatalogSelector(session)
        self._enrollment_reader = EnrollmentSelector(session)

    def execute(
        self,
        enrollment: Enrollment,
        target_stage: StageDefinition,
        actor: Actor,
        score: Decimal | None = None,
        comments: str | None = None,
        rejection: RejectionPayload | None = None,
        origin: MovementOrigin | None = None,
    ) -> ExecutionResult:
        now = self._clock.now()
        stored_score = round_score(score) if score is not None else None

        # Step 1: enrollment
        patch: dict = {
            "current_stage_id": target_stage.stage_id,
            "responsible_actor_id": actor.id,
            "last_moved_at": now,
        }
        if stored_score is not None:
            patch["score"] = stored_score
        if comments is not None:
            patch["comments"] = comments
        updated = self._enrollments.update(enrollment.id, enrollment.version, **patch)

        # Step 2: audit record
        movement = self._audit_log.append(
            enrollment=updated,
            previous_stage_id=enrollment.current_stage_id,
            actor_id=actor.id,
            moved_at=now,
            score=stored_score,
            comments=comments,
            origin=origin,
        )

        # Step 3: rejection
        rejection_record = None
        if target_stage.is_rejection_stage and rejection is not None:
            rejection_record = self._audit_log.append_rejection(
                movement,
                stage_at_rejection=enrollment.current_stage_id,
                rejection=rejection,
            )

        # Step 4: headcount closure
        job, is_hire, job_closed = self._close_job_if_filled(updated, target_stage, now)

        return ExecutionResult(
            enrollment=updated,
            movement=movement,
            job=job,
            previous_enrollment=enrollment,
            rejection=rejection_record,
            is_hire=is_hire,
            job_closed=job_closed,
        )

    def _close_job_if_filled(self, enrollment, target_stage, now):
        hired = self._stages.hired_stage(enrollment.job_id)
        is_hire = hired is not None and hired.stage_id == target_stage.stage_id
        if not is_hire:
            return self._jobs.get(enrollment.job_id), False, False

        job = self._jobs.get(enrollment.job_id, for_update=True)
        hired_count = self._enrollment_reader.count_at_stage(
            enrollment.job_id, hired.stage_id
        )
        decision = evaluate_headcount_closure(job, hired, hired_count, now)
        if not decision.should_close:
            logger.debug(
                "headcount_closure_skipped",
                extra={
                    "hired_count": hired_count,
                    "headcount": job.headcount,
                    "job_status": job.status.value,
                },
            )
            return job, True, False

        job = self._jobs.update(
            job.id,
            status=JobStatus.FILLED,
            closure_timestamp=decision.closure_timestamp,
        )
        logger.info(
            "job_filled",
            extra={
                "hired_count": decision.hired_count,
                "headcount": decision.headcount,
                "closure_timestamp": decision.closure_timestamp,
            },
        )
        return job, True, True
