"""Read-only query adapters returning domain records."""

from pipeline_kernel.selectors.base import BaseSelector
from pipeline_kernel.selectors.catalog_selector import (
    RejectionReasonSelector,
    StageCatalogSelector,
)
from pipeline_kernel.selectors.directory_selector import (
    ActorDirectorySelector,
    CandidateSelector,
)
from pipeline_kernel.selectors.enrollment_selector import EnrollmentSelector
from pipeline_kernel.selectors.movement_selector import MovementSelector

__all__ = [
    "BaseSelector",
    "StageCatalogSelector",
    "RejectionReasonSelector",
    "ActorDirectorySelector",
    "CandidateSelector",
    "EnrollmentSelector",
    "MovementSelector",
]
