"""Collaborator contracts consumed by the transition engine.

SQLAlchemy implementations live in ``pipeline_kernel.selectors`` (reads) and
``pipeline_kernel.services.repositories`` (writes).  Tests and embedding
applications may substitute any object with the same shape.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from pipeline_kernel.domain.results import EngagementEvent
from pipeline_kernel.domain.values import (
    Actor,
    Candidate,
    Enrollment,
    JobOpening,
    RejectionReason,
    StageDefinition,
)


@runtime_checkable
class StageCatalog(Protocol):
    """Per-job stage definitions."""

    def get(self, job_id: UUID, stage_id: str) -> StageDefinition | None:
        ...

    def list(self, job_id: UUID) -> tuple[StageDefinition, ...]:
        """All stages of the job ordered by their ordering index."""
        ...

    def hired_stage(self, job_id: UUID) -> StageDefinition | None:
        ...


@runtime_checkable
class ActorDirectory(Protocol):
    def resolve(self, actor_id: UUID) -> Actor | None:
        ...


@runtime_checkable
class JobRepository(Protocol):
    def get(self, job_id: UUID) -> JobOpening | None:
        ...

    def update(self, job_id: UUID, **patch: Any) -> JobOpening:
        ...


@runtime_checkable
class CandidateRepository(Protocol):
    def get(self, candidate_id: UUID) -> Candidate | None:
        ...


@runtime_checkable
class EnrollmentRepository(Protocol):
    def get(self, job_id: UUID, candidate_id: UUID) -> Enrollment | None:
        ...

    def update(
        self, enrollment_id: UUID, expected_version: int, **patch: Any
    ) -> Enrollment:
        """Apply ``patch`` if the stored version still equals ``expected_version``.

        Raises:
            OptimisticLockError: The enrollment changed since it was read.
        """
        ...


@runtime_checkable
class RejectionReasonCatalog(Protocol):
    def get(self, reason_id: UUID) -> RejectionReason | None:
        ...

    def list(self, company_id: UUID | None) -> tuple[RejectionReason, ...]:
        """Active reasons visible to the company: global plus its own."""
        ...


@runtime_checkable
class EngagementEventSink(Protocol):
    """Receiver of post-commit engagement events. Fire-and-forget."""

    def publish(self, event: EngagementEvent) -> None:
        ...
