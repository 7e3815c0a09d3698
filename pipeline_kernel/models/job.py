"""
Module: pipeline_kernel.models.job
Responsibility: ORM persistence for job openings.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - headcount >= 1 (check constraint).
    - status limited to open / filled / closed / cancelled.
    - The kernel writes a job only through headcount closure, with the row
      locked for the duration of the movement's transaction.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import JobOpening


class JobOpeningModel(Base):
    """Persistent job opening."""

    __tablename__ = "job_openings"

    __table_args__ = (
        CheckConstraint("headcount >= 1", name="ck_job_openings_headcount"),
        CheckConstraint(
            "status IN ('open', 'filled', 'closed', 'cancelled')",
            name="ck_job_openings_valid_status",
        ),
        Index("ix_job_openings_company", "company_id"),
    )

    company_id: Mapped[UUID] = mapped_column(nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    headcount: Mapped[int] = mapped_column(nullable=False, default=1)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    owner_id: Mapped[UUID | None] = mapped_column(nullable=True)
    closure_timestamp: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<JobOpening {self.id} {self.title!r} status={self.status}>"

    def to_dto(self) -> JobOpening:
        """Convert ORM model to frozen domain DTO."""
        from pipeline_kernel.domain.values import JobOpening, JobStatus

        return JobOpening(
            id=self.id,
            company_id=self.company_id,
            title=self.title,
            headcount=self.headcount,
            status=JobStatus(self.status),
            owner_id=self.owner_id,
            closure_timestamp=self.closure_timestamp,
        )
