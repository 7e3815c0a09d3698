"""
Module: pipeline_kernel.models.candidate
Responsibility: ORM persistence for candidates.  Read-only to the kernel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import Candidate


class CandidateModel(Base):
    __tablename__ = "candidates"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive')",
            name="ck_candidates_valid_status",
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    def __repr__(self) -> str:
        return f"<Candidate {self.id} {self.name!r}>"

    def to_dto(self) -> Candidate:
        from pipeline_kernel.domain.values import Candidate, CandidateStatus

        return Candidate(
            id=self.id,
            name=self.name,
            status=CandidateStatus(self.status),
        )
