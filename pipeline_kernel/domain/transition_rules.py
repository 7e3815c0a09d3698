"""
Transition rules -- pure validation of a requested stage movement.

Responsibility:
    Decide whether an already-authorized actor may move an enrollment to a
    target stage with the supplied payload.  Each rule is a plain function
    ``(TransitionRequest) -> PipelineError | None``; ``validate`` runs them
    in order and returns the first failure.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Every lookup
    (job, candidate, enrollment, stages, catalogued rejection reason) is
    performed by the caller beforehand and handed in.

Rule order (first failure wins):
    1. score within policy bounds                 -> INVALID_NOTE
    2. job not closed or cancelled                -> JOB_INACTIVE
    3. candidate exists and is active             -> CANDIDATE_NOT_FOUND /
                                                     CANDIDATE_INACTIVE
    4. enrollment exists                          -> CANDIDATE_NOT_ENROLLED
    5. exit gate of the stage being left          -> MISSING_REQUIRED_FIELD
    6. target differs from current stage          -> NO_MOVEMENT_NEEDED
    7. rejection target carries a usable reason   -> MISSING_REJECTION_REASON

The exit gate only applies to a request that actually leaves the current
stage, so a same-stage request is always NO_MOVEMENT_NEEDED whatever the
payload.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Sequence

from pipeline_kernel.domain.policy import DEFAULT_POLICY, TransitionPolicy
from pipeline_kernel.domain.results import ErrorKind, PipelineError
from pipeline_kernel.domain.values import (
    Candidate,
    Enrollment,
    JobOpening,
    RejectionPayload,
    RejectionReason,
    RequiredField,
    StageDefinition,
)


@dataclass(frozen=True)
class TransitionRequest:
    """Everything the rules need, already resolved."""

    job: JobOpening
    target_stage: StageDefinition
    candidate: Candidate | None
    enrollment: Enrollment | None
    current_stage: StageDefinition | None = None
    score: Decimal | None = None
    comments: str | None = None
    rejection: RejectionPayload | None = None
    rejection_reason: RejectionReason | None = None
    policy: TransitionPolicy = DEFAULT_POLICY

    @property
    def leaves_current_stage(self) -> bool:
        return (
            self.enrollment is not None
            and self.enrollment.current_stage_id != self.target_stage.stage_id
        )


Rule = Callable[[TransitionRequest], "PipelineError | None"]


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def check_score_bounds(request: TransitionRequest) -> PipelineError | None:
    score = request.score
    if score is None:
        return None
    policy = request.policy
    if score < policy.min_score or score > policy.max_score:
        return PipelineError(
            ErrorKind.INVALID_NOTE,
            f"Score {score} is outside [{policy.min_score}, {policy.max_score}]",
        )
    return None


def check_job_active(request: TransitionRequest) -> PipelineError | None:
    if not request.job.is_active:
        return PipelineError(
            ErrorKind.JOB_INACTIVE,
            f"Job {request.job.id} is {request.job.status.value}",
        )
    return None


def check_candidate(request: TransitionRequest) -> PipelineError | None:
    candidate = request.candidate
    if candidate is None:
        return PipelineError(ErrorKind.CANDIDATE_NOT_FOUND, "Candidate not found")
    if not candidate.is_active:
        return PipelineError(
            ErrorKind.CANDIDATE_INACTIVE,
            f"Candidate {candidate.id} is inactive",
        )
    return None


def check_enrolled(request: TransitionRequest) -> PipelineError | None:
    if request.enrollment is None:
        return PipelineError(
            ErrorKind.CANDIDATE_NOT_ENROLLED,
            f"Candidate is not enrolled in job {request.job.id}",
        )
    return None


def check_exit_gate(request: TransitionRequest) -> PipelineError | None:
    """Fields the current stage demands before an enrollment may leave it."""
    current = request.current_stage
    if current is None or not request.leaves_current_stage:
        return None
    # Fixed order keeps the reported field deterministic
    if RequiredField.COMMENT in current.required_fields and not _has_text(
        request.comments
    ):
        return PipelineError(
            ErrorKind.MISSING_REQUIRED_FIELD,
            f"Stage '{current.display_name}' requires a comment before leaving",
            field=RequiredField.COMMENT,
        )
    if RequiredField.SCORE in current.required_fields and request.score is None:
        return PipelineError(
            ErrorKind.MISSING_REQUIRED_FIELD,
            f"Stage '{current.display_name}' requires a score before leaving",
            field=RequiredField.SCORE,
        )
    return None


def check_movement_needed(request: TransitionRequest) -> PipelineError | None:
    if not request.leaves_current_stage:
        return PipelineError(
            ErrorKind.NO_MOVEMENT_NEEDED,
            f"Candidate is already at stage '{request.target_stage.stage_id}'",
        )
    return None


def check_rejection_reason(request: TransitionRequest) -> PipelineError | None:
    if not request.target_stage.is_rejection_stage:
        return None
    rejection = request.rejection
    if rejection is None or not rejection.has_reason:
        return PipelineError(
            ErrorKind.MISSING_REJECTION_REASON,
            f"Stage '{request.target_stage.display_name}' requires a rejection reason",
        )
    if rejection.reason_id is not None:
        reason = request.rejection_reason
        if (
            reason is None
            or reason.id != rejection.reason_id
            or not reason.is_available_to(request.job.company_id)
        ):
            return PipelineError(
                ErrorKind.MISSING_REJECTION_REASON,
                f"Rejection reason {rejection.reason_id} is not available",
            )
    return None


DEFAULT_RULES: tuple[Rule, ...] = (
    check_score_bounds,
    check_job_active,
    check_candidate,
    check_enrolled,
    check_exit_gate,
    check_movement_needed,
    check_rejection_reason,
)


def validate(
    request: TransitionRequest,
    rules: Sequence[Rule] = DEFAULT_RULES,
) -> PipelineError | None:
    """Run ``rules`` in order; return the first failure or None."""
    for rule in rules:
        error = rule(request)
        if error is not None:
            return error
    return None
