"""Read adapters for actors and candidates."""

from __future__ import annotations

from uuid import UUID

from pipeline_kernel.domain.values import Actor, Candidate
from pipeline_kernel.models.actor import ActorModel
from pipeline_kernel.models.candidate import CandidateModel
from pipeline_kernel.selectors.base import BaseSelector


class ActorDirectorySelector(BaseSelector[ActorModel]):
    def resolve(self, actor_id: UUID) -> Actor | None:
        model = self.session.get(ActorModel, actor_id)
        return model.to_dto() if model is not None else None


class CandidateSelector(BaseSelector[CandidateModel]):
    def get(self, candidate_id: UUID) -> Candidate | None:
        model = self.session.get(CandidateModel, candidate_id)
        return model.to_dto() if model is not None else None
