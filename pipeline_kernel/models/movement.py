"""
Module: pipeline_kernel.models.movement
Responsibility: ORM persistence for the append-only stage movement log.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are blocked by the listeners in
      db/immutability.py.
    - Chain: within an enrollment, ``sequence`` runs 1, 2, 3 ... with no
      gaps (unique constraint on (enrollment_id, sequence)) and each
      record's previous_stage_id equals the prior record's new_stage_id.
      AuditLogService.verify_chain() re-checks this.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE through the ORM.
    - IntegrityError if two writers try to claim the same sequence number.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import MovementRecord


class MovementRecordModel(Base):
    """One stage transition of one enrollment."""

    __tablename__ = "movement_records"

    __table_args__ = (
        UniqueConstraint(
            "enrollment_id", "sequence", name="uq_movement_records_enrollment_seq",
        ),
        Index("ix_movement_records_candidate", "candidate_id", "moved_at"),
        Index("ix_movement_records_job", "job_id"),
    )

    enrollment_id: Mapped[UUID] = mapped_column(
        ForeignKey("enrollments.id"), nullable=False,
    )
    job_id: Mapped[UUID] = mapped_column(nullable=False)
    candidate_id: Mapped[UUID] = mapped_column(nullable=False)
    sequence: Mapped[int] = mapped_column(nullable=False)
    previous_stage_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    new_stage_id: Mapped[str] = mapped_column(String(100), nullable=False)
    score: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[UUID] = mapped_column(nullable=False)
    moved_at: Mapped[datetime] = mapped_column(nullable=False)
    origin_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    detail: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return (
            f"<MovementRecord {self.enrollment_id}#{self.sequence} "
            f"{self.previous_stage_id} -> {self.new_stage_id}>"
        )

    def to_dto(self) -> MovementRecord:
        from pipeline_kernel.domain.values import MovementOrigin, MovementRecord

        return MovementRecord(
            id=self.id,
            enrollment_id=self.enrollment_id,
            job_id=self.job_id,
            candidate_id=self.candidate_id,
            previous_stage_id=self.previous_stage_id,
            new_stage_id=self.new_stage_id,
            actor_id=self.actor_id,
            moved_at=self.moved_at,
            sequence=self.sequence,
            score=self.score,
            comments=self.comments,
            origin=MovementOrigin(ip=self.origin_ip, detail=self.detail or {}),
        )
