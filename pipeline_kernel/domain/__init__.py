"""Pure domain core: values, results, rules, and collaborator contracts."""

from pipeline_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pipeline_kernel.domain.headcount import evaluate_headcount_closure
from pipeline_kernel.domain.pipeline_stats import compute_pipeline_stats
from pipeline_kernel.domain.policy import DEFAULT_POLICY, TransitionPolicy
from pipeline_kernel.domain.results import (
    EngagementEvent,
    ErrorKind,
    ExecutionResult,
    HeadcountDecision,
    MoveResult,
    PermissionScope,
    PipelineError,
    PipelineStats,
)
from pipeline_kernel.domain.transition_rules import TransitionRequest, validate
from pipeline_kernel.domain.values import (
    Actor,
    ActorRole,
    Candidate,
    CandidateStatus,
    Enrollment,
    JobOpening,
    JobStatus,
    MovementOrigin,
    MovementRecord,
    ReasonCategory,
    RejectionPayload,
    RejectionReason,
    RejectionRecord,
    RequiredField,
    StageDefinition,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "TransitionPolicy",
    "DEFAULT_POLICY",
    "TransitionRequest",
    "validate",
    "evaluate_headcount_closure",
    "compute_pipeline_stats",
    "ErrorKind",
    "PermissionScope",
    "PipelineError",
    "ExecutionResult",
    "MoveResult",
    "HeadcountDecision",
    "PipelineStats",
    "EngagementEvent",
    "Actor",
    "ActorRole",
    "Candidate",
    "CandidateStatus",
    "Enrollment",
    "JobOpening",
    "JobStatus",
    "MovementOrigin",
    "MovementRecord",
    "ReasonCategory",
    "RejectionPayload",
    "RejectionReason",
    "RejectionRecord",
    "RequiredField",
    "StageDefinition",
]
