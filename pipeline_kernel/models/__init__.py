"""ORM models for the pipeline kernel."""

from pipeline_kernel.models.actor import ActorModel
from pipeline_kernel.models.candidate import CandidateModel
from pipeline_kernel.models.enrollment import EnrollmentModel
from pipeline_kernel.models.job import JobOpeningModel
from pipeline_kernel.models.movement import MovementRecordModel
from pipeline_kernel.models.rejection import RejectionReasonModel, RejectionRecordModel
from pipeline_kernel.models.stage import StageDefinitionModel

__all__ = [
    "ActorModel",
    "CandidateModel",
    "EnrollmentModel",
    "JobOpeningModel",
    "MovementRecordModel",
    "RejectionReasonModel",
    "RejectionRecordModel",
    "StageDefinitionModel",
]
