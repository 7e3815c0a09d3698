"""
Module: pipeline_kernel.models.rejection
Responsibility: ORM persistence for rejection reasons (catalog) and rejection
    records (append-only evidence of why an enrollment was rejected).

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Exactly one RejectionRecord per movement into a rejection stage
      (unique movement_id).
    - A record carries a catalogued reason, a custom text, or both
      (check constraint).
    - RejectionRecord rows are append-only (db/immutability.py).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import RejectionReason, RejectionRecord


class RejectionReasonModel(Base):
    """Catalogued rejection reason.  NULL company_id means global."""

    __tablename__ = "rejection_reasons"

    __table_args__ = (
        CheckConstraint(
            "category IN ('general', 'technical', 'behavioral', 'documental', 'other')",
            name="ck_rejection_reasons_valid_category",
        ),
        Index("ix_rejection_reasons_company", "company_id", "is_active"),
    )

    company_id: Mapped[UUID | None] = mapped_column(nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False, default="general")
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<RejectionReason {self.id} {self.name!r}>"

    def to_dto(self) -> RejectionReason:
        from pipeline_kernel.domain.values import ReasonCategory, RejectionReason

        return RejectionReason(
            id=self.id,
            name=self.name,
            category=ReasonCategory(self.category),
            company_id=self.company_id,
            description=self.description,
            is_active=self.is_active,
        )


class RejectionRecordModel(Base):
    __tablename__ = "rejection_records"

    __table_args__ = (
        CheckConstraint(
            "reason_id IS NOT NULL OR custom_reason_text IS NOT NULL",
            name="ck_rejection_records_has_reason",
        ),
        Index("ix_rejection_records_enrollment", "enrollment_id"),
    )

    enrollment_id: Mapped[UUID] = mapped_column(
        ForeignKey("enrollments.id"), nullable=False,
    )
    movement_id: Mapped[UUID] = mapped_column(
        ForeignKey("movement_records.id"), nullable=False, unique=True,
    )
    reason_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("rejection_reasons.id"), nullable=True,
    )
    custom_reason_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    stage_at_rejection: Mapped[str] = mapped_column(String(100), nullable=False)
    actor_id: Mapped[UUID] = mapped_column(nullable=False)
    rejected_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<RejectionRecord {self.id} movement={self.movement_id}>"

    def to_dto(self) -> RejectionRecord:
        from pipeline_kernel.domain.values import RejectionRecord

        return RejectionRecord(
            id=self.id,
            enrollment_id=self.enrollment_id,
            movement_id=self.movement_id,
            stage_at_rejection=self.stage_at_rejection,
            actor_id=self.actor_id,
            rejected_at=self.rejected_at,
            reason_id=self.reason_id,
            custom_reason_text=self.custom_reason_text,
            observations=self.observations,
        )
