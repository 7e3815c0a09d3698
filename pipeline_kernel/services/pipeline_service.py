"""
PipelineService -- public surface of the candidate pipeline kernel.

Responsibility:
    Runs each request as one unit of work with its own session:

        move_candidate
            AccessGuard -> transition rules -> MovementExecutor -> commit
            -> HookDispatcher.notify (after commit only)
        get_movement_history
        get_pipeline_stats
        get_rejection_reasons
        verify_movement_chain

Architecture position:
    Kernel > Services -- imperative shell.  Owns the transaction boundary:
    commits on success, rolls back on any refusal or failure.

Error handling:
    Business outcomes come back as ``MoveResult.error`` (a PipelineError).
    A lost optimistic-concurrency race re-runs the whole unit of work in a
    fresh session (full re-authorization and re-validation) up to
    ``policy.max_move_attempts`` times; exhausting the attempts, or any other
    persistence failure, is UPDATE_FAILED.  Hook failures never surface.

Logging:
    Every call binds correlation_id, actor_id, job_id and candidate_id on
    LogContext.  Events: move_started, move_rejected, move_conflict_retry,
    move_update_failed, move_committed.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from pipeline_kernel.db.types import InvalidScoreError, score_from_value
from pipeline_kernel.domain.clock import Clock, SystemClock
from pipeline_kernel.domain.policy import DEFAULT_POLICY, TransitionPolicy
from pipeline_kernel.domain.results import (
    ErrorKind,
    ExecutionResult,
    MoveResult,
    PipelineError,
    PipelineStats,
)
from pipeline_kernel.domain.transition_rules import TransitionRequest, validate
from pipeline_kernel.domain.values import (
    MovementOrigin,
    MovementRecord,
    RejectionPayload,
    RejectionReason,
)
from pipeline_kernel.exceptions import OptimisticLockError, PipelineKernelError
from pipeline_kernel.logging_config import LogContext, get_logger
from pipeline_kernel.selectors.catalog_selector import (
    RejectionReasonSelector,
    StageCatalogSelector,
)
from pipeline_kernel.selectors.directory_selector import (
    ActorDirectorySelector,
    CandidateSelector,
)
from pipeline_kernel.services.access_guard import AccessGuard
from pipeline_kernel.services.audit_log import AuditLogService
from pipeline_kernel.services.hook_dispatcher import HookDispatcher
from pipeline_kernel.services.movement_executor import MovementExecutor
from pipeline_kernel.services.repositories import (
    SqlEnrollmentRepository,
    SqlJobRepository,
)

logger = get_logger("services.pipeline")


class PipelineService:
    """
    Contract:
        Stateless between calls apart from its collaborators; safe to share
        across threads because every call opens its own session.

    Guarantees:
        - A successful move commits exactly one enrollment update and one
          MovementRecord (plus a RejectionRecord and a job closure where
          they apply) atomically.
        - A refused or failed move writes nothing.
        - Engagement hooks run only for committed moves.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        policy: TransitionPolicy = DEFAULT_POLICY,
        dispatcher: HookDispatcher | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._policy = policy
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()

    @property
    def dispatcher(self) -> HookDispatcher | None:
        return self._dispatcher

    @property
    def policy(self) -> TransitionPolicy:
        return self._policy

    # =========================================================================
    # Movement
    # =========================================================================

    def move_candidate(
        self,
        job_id: UUID,
        candidate_id: UUID,
        target_stage_id: str,
        actor_id: UUID,
        score: int | float | str | Decimal | None = None,
        comments: str | None = None,
        rejection: RejectionPayload | None = None,
        origin: MovementOrigin | None = None,
    ) -> MoveResult:
        """
        Move a candidate's enrollment in ``job_id`` to ``target_stage_id``.

        Returns:
            MoveResult with the updated enrollment and the new movement
            record, or with ``error`` set.
        """
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(actor_id),
            job_id=str(job_id),
            candidate_id=str(candidate_id),
        ):
            start_time = time.monotonic()
            logger.info(
                "move_started",
                extra={
                    "target_stage_id": target_stage_id,
                    "has_score": score is not None,
                    "has_rejection": rejection is not None,
                },
            )

            max_attempts = self._policy.max_move_attempts
            for attempt in range(1, max_attempts + 1):
                try:
                    outcome = self._attempt_move(
                        job_id,
                        candidate_id,
                        target_stage_id,
                        actor_id,
                        score,
                        comments,
                        rejection,
                        origin,
                    )
                except (OptimisticLockError, StaleDataError):
                    logger.warning(
                        "move_conflict_retry",
                        extra={"attempt": attempt, "max_attempts": max_attempts},
                    )
                    continue
                except (SQLAlchemyError, PipelineKernelError) as exc:
                    logger.exception(
                        "move_update_failed",
                        extra={"attempt": attempt},
                    )
                    return MoveResult.failure(
                        PipelineError(
                            ErrorKind.UPDATE_FAILED,
                            f"Movement could not be persisted: {type(exc).__name__}",
                        ),
                        attempts=attempt,
                    )

                duration_ms = round((time.monotonic() - start_time) * 1000, 2)
                if isinstance(outcome, PipelineError):
                    logger.info(
                        "move_rejected",
                        extra={
                            "error_kind": outcome.kind.value,
                            "error_field": outcome.field.value if outcome.field else None,
                            "permission": (
                                outcome.permission.value if outcome.permission else None
                            ),
                            "duration_ms": duration_ms,
                        },
                    )
                    return MoveResult.failure(outcome, attempts=attempt)

                logger.info(
                    "move_committed",
                    extra={
                        "enrollment_id": str(outcome.enrollment.id),
                        "movement_id": str(outcome.movement.id),
                        "previous_stage_id": outcome.movement.previous_stage_id,
                        "new_stage_id": outcome.movement.new_stage_id,
                        "sequence": outcome.movement.sequence,
                        "job_closed": outcome.job_closed,
                        "attempt": attempt,
                        "duration_ms": duration_ms,
                    },
                )
                self._notify(outcome)
                return MoveResult.success(outcome, attempts=attempt)

            logger.error(
                "move_attempts_exhausted",
                extra={"max_attempts": max_attempts},
            )
            return MoveResult.failure(
                PipelineError(
                    ErrorKind.UPDATE_FAILED,
                    f"Enrollment kept changing concurrently after {max_attempts} attempts",
                ),
                attempts=max_attempts,
            )

    def _attempt_move(
        self,
        job_id: UUID,
        candidate_id: UUID,
        target_stage_id: str,
        actor_id: UUID,
        score: Any,
        comments: str | None,
        rejection: RejectionPayload | None,
        origin: MovementOrigin | None,
    ) -> ExecutionResult | PipelineError:
        """One unit of work.  Commits on success; rolls back otherwise."""
        session = self._session_factory()
        try:
            stages = StageCatalogSelector(session)
            jobs = SqlJobRepository(session)
            actor = ActorDirectorySelector(session).resolve(actor_id)

            error = AccessGuard(stages, jobs, self._policy).authorize(
                actor, job_id, target_stage_id
            )
            if error is not None:
                session.rollback()
                return error

            try:
                score_value = score_from_value(score)
            except InvalidScoreError:
                session.rollback()
                return PipelineError(
                    ErrorKind.INVALID_NOTE,
                    f"Score {score!r} is not a number",
                )

            job = jobs.get(job_id)
            target_stage = stages.get(job_id, target_stage_id)
            candidate = CandidateSelector(session).get(candidate_id)
            enrollment = SqlEnrollmentRepository(session).get(
                job_id, candidate_id, for_update=True
            )

            current_stage = None
            if enrollment is not None:
                current_stage = stages.get(job_id, enrollment.current_stage_id)
                if current_stage is None:
                    logger.warning(
                        "current_stage_not_in_catalog",
                        extra={"current_stage_id": enrollment.current_stage_id},
                    )

            request = TransitionRequest(
                job=job,
                target_stage=target_stage,
                candidate=candidate,
                enrollment=enrollment,
                current_stage=current_stage,
                score=score_value,
                comments=comments,
                rejection=rejection,
                rejection_reason=self._lookup_reason(session, target_stage, rejection),
                policy=self._policy,
            )
            error = validate(request)
            if error is not None:
                session.rollback()
                return error

            with LogContext.bind(enrollment_id=str(enrollment.id)):
                execution = MovementExecutor(session, self._clock).execute(
                    enrollment,
                    target_stage,
                    actor,
                    score=score_value,
                    comments=comments,
                    rejection=rejection if target_stage.is_rejection_stage else None,
                    origin=origin,
                )
                session.commit()
            return execution
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @staticmethod
    def _lookup_reason(
        session: Session,
        target_stage,
        rejection: RejectionPayload | None,
    ) -> RejectionReason | None:
        if (
            target_stage is None
            or not target_stage.is_rejection_stage
            or rejection is None
            or rejection.reason_id is None
        ):
            return None
        return RejectionReasonSelector(session).get(rejection.reason_id)

    def _notify(self, execution: ExecutionResult) -> None:
        if self._dispatcher is None:
            return
        previous = execution.previous_enrollment
        movement = execution.movement
        self._dispatcher.notify(
            movement,
            previous_stage_id=movement.previous_stage_id,
            new_stage_id=movement.new_stage_id,
            actor_id=movement.actor_id,
            rejection_flag=execution.rejection is not None,
            comments=movement.comments,
            is_hire=execution.is_hire,
            stage_entered_at=previous.last_moved_at or previous.enrolled_at,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_movement_history(
        self, candidate_id: UUID, actor_id: UUID
    ) -> tuple[MovementRecord, ...]:
        """Movements of a candidate visible to the actor, oldest first."""
        with LogContext.bind(actor_id=str(actor_id), candidate_id=str(candidate_id)):
            with self._session_factory() as session:
                actor = ActorDirectorySelector(session).resolve(actor_id)
                history = AuditLogService(
                    session, self._clock, self._policy
                ).history(candidate_id, actor)
            logger.debug("history_read", extra={"entries": len(history)})
            return history

    def get_pipeline_stats(self, job_id: UUID) -> PipelineStats:
        with self._session_factory() as session:
            return AuditLogService(session, self._clock, self._policy).stats(job_id)

    def get_rejection_reasons(self, actor_id: UUID) -> tuple[RejectionReason, ...]:
        """Active rejection reasons the actor's company may use."""
        with self._session_factory() as session:
            actor = ActorDirectorySelector(session).resolve(actor_id)
            if actor is None:
                return ()
            return RejectionReasonSelector(session).list(actor.company_id)

    def verify_movement_chain(self, enrollment_id: UUID) -> int:
        """Re-check an enrollment's audit chain; see AuditLogService.verify_chain."""
        with LogContext.bind(enrollment_id=str(enrollment_id)):
            with self._session_factory() as session:
                return AuditLogService(
                    session, self._clock, self._policy
                ).verify_chain(enrollment_id)
