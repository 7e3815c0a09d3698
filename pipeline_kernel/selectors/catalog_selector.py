"""
Read adapters for the per-job stage catalog and the rejection reason catalog.

Implements the StageCatalog and RejectionReasonCatalog contracts of
``pipeline_kernel.domain.ports`` over SQLAlchemy.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select

from pipeline_kernel.domain.values import RejectionReason, StageDefinition
from pipeline_kernel.models.rejection import RejectionReasonModel
from pipeline_kernel.models.stage import StageDefinitionModel
from pipeline_kernel.selectors.base import BaseSelector


class StageCatalogSelector(BaseSelector[StageDefinitionModel]):
    """Stage definitions of a job, looked up by opaque stage key."""

    def get(self, job_id: UUID, stage_id: str) -> StageDefinition | None:
        model = self.session.execute(
            select(StageDefinitionModel).where(
                StageDefinitionModel.job_id == job_id,
                StageDefinitionModel.stage_id == stage_id,
            )
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def list(self, job_id: UUID) -> tuple[StageDefinition, ...]:
        models = self.session.execute(
            select(StageDefinitionModel)
            .where(StageDefinitionModel.job_id == job_id)
            .order_by(StageDefinitionModel.ordering, StageDefinitionModel.stage_id)
        ).scalars()
        return tuple(m.to_dto() for m in models)

    def hired_stage(self, job_id: UUID) -> StageDefinition | None:
        """The job's hired stage; the lowest ordering wins if several are flagged."""
        model = self.session.execute(
            select(StageDefinitionModel)
            .where(
                StageDefinitionModel.job_id == job_id,
                StageDefinitionModel.is_hired_stage.is_(True),
            )
            .order_by(StageDefinitionModel.ordering, StageDefinitionModel.stage_id)
            .limit(1)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None


class RejectionReasonSelector(BaseSelector[RejectionReasonModel]):
    def get(self, reason_id: UUID) -> RejectionReason | None:
        model = self.session.get(RejectionReasonModel, reason_id)
        return model.to_dto() if model is not None else None

    def list(self, company_id: UUID | None) -> tuple[RejectionReason, ...]:
        """Active reasons visible to ``company_id``: global ones plus its own."""
        scope = RejectionReasonModel.company_id.is_(None)
        if company_id is not None:
            scope = or_(scope, RejectionReasonModel.company_id == company_id)
        models = self.session.execute(
            select(RejectionReasonModel)
            .where(RejectionReasonModel.is_active.is_(True), scope)
            .order_by(RejectionReasonModel.category, RejectionReasonModel.name)
        ).scalars()
        return tuple(m.to_dto() for m in models)
