"""
Values -- pure domain data for the candidate pipeline.

Responsibility:
    Defines the enumerations and immutable records that flow through the
    transition engine: actors, jobs, candidates, stage definitions,
    enrollments, movement and rejection records, rejection reasons, and
    the caller-supplied rejection payload and origin metadata.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ORM models convert themselves into these records via ``to_dto()``; the
    rules in ``transition_rules`` only ever see these records.

Invariants enforced:
    - Every record is a frozen dataclass; origin detail is deep-frozen so
      nothing downstream of the executor can rewrite it.
    - Stage identity is an opaque string key scoped to a job.  There is no
      enumeration of stages anywhere in the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID


def _deep_freeze_dict(d: Mapping[str, Any]) -> MappingProxyType:
    """Convert nested dicts to MappingProxyType and lists to tuples."""
    frozen = {}
    for k, v in d.items():
        frozen[k] = _deep_freeze_value(v)
    return MappingProxyType(frozen)


def _deep_freeze_value(v: Any) -> Any:
    if isinstance(v, Mapping):
        return _deep_freeze_dict(v)
    elif isinstance(v, (list, tuple)):
        return tuple(_deep_freeze_value(item) for item in v)
    return v


def thaw(v: Any) -> Any:
    """Inverse of the deep freeze, producing JSON-serializable containers."""
    if isinstance(v, Mapping):
        return {k: thaw(item) for k, item in v.items()}
    if isinstance(v, tuple):
        return [thaw(item) for item in v]
    return v


class ActorRole(str, Enum):
    """Role of an authenticated actor."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    RECRUITER = "recruiter"
    HIRING_MANAGER = "hiring_manager"
    CANDIDATE = "candidate"


class JobStatus(str, Enum):
    """
    Lifecycle of a job opening.

    OPEN -> FILLED happens only through headcount closure.  CLOSED and
    CANCELLED are set outside this kernel and make the job inactive.
    """

    OPEN = "open"
    FILLED = "filled"
    CLOSED = "closed"
    CANCELLED = "cancelled"


INACTIVE_JOB_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.CLOSED, JobStatus.CANCELLED}
)


class CandidateStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RequiredField(str, Enum):
    """Field a stage demands before an enrollment may leave it."""

    COMMENT = "comment"
    SCORE = "score"


class ReasonCategory(str, Enum):
    """Grouping of catalogued rejection reasons."""

    GENERAL = "general"
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    DOCUMENTAL = "documental"
    OTHER = "other"


@dataclass(frozen=True)
class Actor:
    """An authenticated user as resolved by the actor directory."""

    id: UUID
    name: str
    role: ActorRole
    company_id: UUID | None = None


@dataclass(frozen=True)
class JobOpening:
    id: UUID
    company_id: UUID
    title: str
    headcount: int
    status: JobStatus = JobStatus.OPEN
    owner_id: UUID | None = None
    closure_timestamp: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_JOB_STATUSES


@dataclass(frozen=True)
class Candidate:
    id: UUID
    name: str
    status: CandidateStatus = CandidateStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == CandidateStatus.ACTIVE


@dataclass(frozen=True)
class StageDefinition:
    """
    One stage of a job's pipeline.

    Contract:
        ``ordering`` is used for statistics only; any stage may follow any
        other.  ``required_fields`` is an exit gate checked when an
        enrollment leaves this stage.  An empty ``responsible_actor_ids``
        means no stage-level allow-list.
    """

    job_id: UUID
    stage_id: str
    display_name: str
    ordering: int
    required_fields: frozenset[RequiredField] = frozenset()
    responsible_actor_ids: frozenset[UUID] = frozenset()
    is_rejection_stage: bool = False
    is_hired_stage: bool = False


@dataclass(frozen=True)
class Enrollment:
    id: UUID
    job_id: UUID
    candidate_id: UUID
    current_stage_id: str
    enrolled_at: datetime
    score: Decimal | None = None
    comments: str | None = None
    responsible_actor_id: UUID | None = None
    last_moved_at: datetime | None = None
    version: int = 1


@dataclass(frozen=True)
class MovementOrigin:
    """Request metadata recorded alongside a movement."""

    ip: str | None = None
    detail: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "detail", _deep_freeze_dict(self.detail))


@dataclass(frozen=True)
class MovementRecord:
    """Immutable audit entry for one stage transition."""

    id: UUID
    enrollment_id: UUID
    job_id: UUID
    candidate_id: UUID
    previous_stage_id: str | None
    new_stage_id: str
    actor_id: UUID
    moved_at: datetime
    sequence: int
    score: Decimal | None = None
    comments: str | None = None
    origin: MovementOrigin = field(default_factory=MovementOrigin)


@dataclass(frozen=True)
class RejectionPayload:
    """Caller-supplied reason for moving an enrollment into a rejection stage."""

    reason_id: UUID | None = None
    custom_reason_text: str | None = None
    observations: str | None = None

    @property
    def has_reason(self) -> bool:
        return self.reason_id is not None or bool(
            self.custom_reason_text and self.custom_reason_text.strip()
        )


@dataclass(frozen=True)
class RejectionRecord:
    id: UUID
    enrollment_id: UUID
    movement_id: UUID
    stage_at_rejection: str
    actor_id: UUID
    rejected_at: datetime
    reason_id: UUID | None = None
    custom_reason_text: str | None = None
    observations: str | None = None


@dataclass(frozen=True)
class RejectionReason:
    """Catalogued rejection reason; ``company_id`` None means global."""

    id: UUID
    name: str
    category: ReasonCategory = ReasonCategory.GENERAL
    company_id: UUID | None = None
    description: str | None = None
    is_active: bool = True

    def is_available_to(self, company_id: UUID | None) -> bool:
        """Active and either global or owned by ``company_id``."""
        if not self.is_active:
            return False
        return self.company_id is None or self.company_id == company_id
