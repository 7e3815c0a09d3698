"""
Module: pipeline_kernel.models.enrollment
Responsibility: ORM persistence for the candidate-to-job link that holds the
    candidate's current pipeline stage.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One enrollment per (job_id, candidate_id) (unique constraint).
    - Optimistic concurrency: ``version`` is SQLAlchemy's version_id_col.
      Every UPDATE carries ``WHERE version = <read version>``; a concurrent
      writer that got there first makes the flush raise StaleDataError.
    - Enrollments are never deleted by the kernel.

Failure modes:
    - IntegrityError on a duplicate (job_id, candidate_id).
    - StaleDataError on a lost race (translated to OptimisticLockError by the
      enrollment repository).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import Enrollment


class EnrollmentModel(Base):
    __tablename__ = "enrollments"

    __table_args__ = (
        UniqueConstraint("job_id", "candidate_id", name="uq_enrollments_job_candidate"),
        Index("ix_enrollments_job_stage", "job_id", "current_stage_id"),
        Index("ix_enrollments_candidate", "candidate_id"),
    )

    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("job_openings.id"), nullable=False,
    )
    candidate_id: Mapped[UUID] = mapped_column(
        ForeignKey("candidates.id"), nullable=False,
    )
    current_stage_id: Mapped[str] = mapped_column(String(100), nullable=False)
    score: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    responsible_actor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    enrolled_at: Mapped[datetime] = mapped_column(nullable=False)
    last_moved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<Enrollment {self.id} job={self.job_id} "
            f"stage={self.current_stage_id} v{self.version}>"
        )

    def to_dto(self) -> Enrollment:
        from pipeline_kernel.domain.values import Enrollment

        return Enrollment(
            id=self.id,
            job_id=self.job_id,
            candidate_id=self.candidate_id,
            current_stage_id=self.current_stage_id,
            score=self.score,
            comments=self.comments,
            responsible_actor_id=self.responsible_actor_id,
            enrolled_at=self.enrolled_at,
            last_moved_at=self.last_moved_at,
            version=self.version,
        )
