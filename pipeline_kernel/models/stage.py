"""
Module: pipeline_kernel.models.stage
Responsibility: ORM persistence for per-job stage catalogs.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - stage_id is unique within a job (unique constraint).
    - required_fields holds only 'comment' / 'score' tags; unknown tags are
      rejected when the row is converted to a StageDefinition.

The catalog is authored outside the kernel.  The kernel only reads it, so
stage keys are opaque strings and any stage may follow any other.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import StageDefinition


class StageDefinitionModel(Base):
    """One stage of a job's pipeline."""

    __tablename__ = "pipeline_stages"

    __table_args__ = (
        UniqueConstraint("job_id", "stage_id", name="uq_pipeline_stages_job_stage"),
        Index("ix_pipeline_stages_job_ordering", "job_id", "ordering"),
    )

    job_id: Mapped[UUID] = mapped_column(
        ForeignKey("job_openings.id"), nullable=False,
    )
    stage_id: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    ordering: Mapped[int] = mapped_column(nullable=False, default=0)
    required_fields: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list,
    )
    responsible_actor_ids: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list,
    )
    is_rejection_stage: Mapped[bool] = mapped_column(nullable=False, default=False)
    is_hired_stage: Mapped[bool] = mapped_column(nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<StageDefinition {self.job_id}/{self.stage_id}>"

    def to_dto(self) -> StageDefinition:
        from pipeline_kernel.domain.values import RequiredField, StageDefinition

        return StageDefinition(
            job_id=self.job_id,
            stage_id=self.stage_id,
            display_name=self.display_name,
            ordering=self.ordering,
            required_fields=frozenset(
                RequiredField(tag) for tag in self.required_fields or ()
            ),
            responsible_actor_ids=frozenset(
                UUID(str(actor_id)) for actor_id in self.responsible_actor_ids or ()
            ),
            is_rejection_stage=self.is_rejection_stage,
            is_hired_stage=self.is_hired_stage,
        )

    @classmethod
    def from_dto(cls, dto: StageDefinition) -> StageDefinitionModel:
        return cls(
            job_id=dto.job_id,
            stage_id=dto.stage_id,
            display_name=dto.display_name,
            ordering=dto.ordering,
            required_fields=sorted(tag.value for tag in dto.required_fields),
            responsible_actor_ids=sorted(str(a) for a in dto.responsible_actor_ids),
            is_rejection_stage=dto.is_rejection_stage,
            is_hired_stage=dto.is_hired_stage,
        )
