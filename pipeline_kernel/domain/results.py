"""
Results -- tagged outcomes of pipeline operations.

Responsibility:
    Business-rule failures are values, not exceptions.  Guards and rule
    functions return ``PipelineError | None``; the pipeline service wraps
    the outcome of a movement in a ``MoveResult``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from pipeline_kernel.domain.values import (
    Enrollment,
    JobOpening,
    MovementRecord,
    RejectionRecord,
    RequiredField,
)


class ErrorKind(str, Enum):
    """Why a movement was refused or failed."""

    PERMISSION_DENIED = "PERMISSION_DENIED"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    JOB_INACTIVE = "JOB_INACTIVE"
    CANDIDATE_NOT_FOUND = "CANDIDATE_NOT_FOUND"
    CANDIDATE_INACTIVE = "CANDIDATE_INACTIVE"
    CANDIDATE_NOT_ENROLLED = "CANDIDATE_NOT_ENROLLED"
    INVALID_STAGE = "INVALID_STAGE"
    INVALID_NOTE = "INVALID_NOTE"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    MISSING_REJECTION_REASON = "MISSING_REJECTION_REASON"
    NO_MOVEMENT_NEEDED = "NO_MOVEMENT_NEEDED"
    UPDATE_FAILED = "UPDATE_FAILED"


class PermissionScope(str, Enum):
    """Which access check produced a PERMISSION_DENIED."""

    ROLE = "role"
    SCOPE = "scope"
    OWNERSHIP = "ownership"
    STAGE = "stage"


@dataclass(frozen=True)
class PipelineError:
    """
    A refused or failed movement.

    ``field`` is set for MISSING_REQUIRED_FIELD; ``permission`` is set for
    PERMISSION_DENIED.
    """

    kind: ErrorKind
    message: str
    field: RequiredField | None = None
    permission: PermissionScope | None = None

    @classmethod
    def denied(cls, permission: PermissionScope, message: str) -> PipelineError:
        return cls(ErrorKind.PERMISSION_DENIED, message, permission=permission)


@dataclass(frozen=True)
class ExecutionResult:
    """What the movement executor wrote inside the transaction."""

    enrollment: Enrollment
    movement: MovementRecord
    job: JobOpening
    previous_enrollment: Enrollment
    rejection: RejectionRecord | None = None
    is_hire: bool = False
    job_closed: bool = False


@dataclass(frozen=True)
class MoveResult:
    """Outcome of ``PipelineService.move_candidate``."""

    enrollment: Enrollment | None = None
    movement: MovementRecord | None = None
    rejection: RejectionRecord | None = None
    job_closed: bool = False
    error: PipelineError | None = None
    attempts: int = 1

    @property
    def is_success(self) -> bool:
        return self.error is None and self.movement is not None

    @classmethod
    def failure(cls, error: PipelineError, attempts: int = 1) -> MoveResult:
        return cls(error=error, attempts=attempts)

    @classmethod
    def success(cls, execution: ExecutionResult, attempts: int = 1) -> MoveResult:
        return cls(
            enrollment=execution.enrollment,
            movement=execution.movement,
            rejection=execution.rejection,
            job_closed=execution.job_closed,
            attempts=attempts,
        )


@dataclass(frozen=True)
class HeadcountDecision:
    """Outcome of the headcount closure sub-step."""

    should_close: bool
    hired_count: int
    headcount: int
    closure_timestamp: datetime | None = None


@dataclass(frozen=True)
class PipelineStats:
    """
    Snapshot of a job's enrollment distribution.

    ``count_by_stage`` preserves catalog order.  ``conversion_rates`` maps
    consecutive (from_stage, to_stage) pairs to count(to) / count(from);
    pairs whose source stage is empty are absent.
    """

    job_id: UUID
    total: int
    count_by_stage: dict[str, int] = field(default_factory=dict)
    conversion_rates: dict[tuple[str, str], float] = field(default_factory=dict)


@dataclass(frozen=True)
class EngagementEvent:
    """Post-commit notification about one movement."""

    movement_id: UUID
    enrollment_id: UUID
    job_id: UUID
    candidate_id: UUID
    previous_stage_id: str | None
    new_stage_id: str
    actor_id: UUID
    occurred_at: datetime
    is_rejection: bool = False
    is_hire: bool = False
    comments: str | None = None
    dwell_seconds: float | None = None
