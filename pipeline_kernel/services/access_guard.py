"""
AccessGuard -- may this actor move candidates on this job, into this stage?

Responsibility:
    First gate of every movement.  Pure reads through the StageCatalog and
    JobRepository ports; no side effects.  Returns a PERMISSION_DENIED,
    JOB_NOT_FOUND or INVALID_STAGE ``PipelineError`` or None.

Check order:
    0. Actor resolved, role privileged (super-admin implicitly)  -> role
    1. Job exists                                                -> JOB_NOT_FOUND
    2. Actor's company owns the job        (skipped for super-admin) -> scope
    3. Actor is the job's owner, if any    (skipped for super-admin) -> ownership
    4. Target stage exists in the job's catalog                  -> INVALID_STAGE
    5. Actor is on the stage allow-list, if any (skipped for super-admin) -> stage

The super-admin capability is decided once, before any check runs.
"""

from __future__ import annotations

from uuid import UUID

from pipeline_kernel.domain.policy import DEFAULT_POLICY, TransitionPolicy
from pipeline_kernel.domain.ports import JobRepository, StageCatalog
from pipeline_kernel.domain.results import ErrorKind, PermissionScope, PipelineError
from pipeline_kernel.domain.values import Actor
from pipeline_kernel.logging_config import get_logger

logger = get_logger("services.access_guard")


class AccessGuard:
    """
    Contract:
        ``authorize`` never raises for business outcomes and never writes.

    Non-goals:
        Authentication.  The actor id is trusted to be the caller's.
    """

    def __init__(
        self,
        stages: StageCatalog,
        jobs: JobRepository,
        policy: TransitionPolicy = DEFAULT_POLICY,
    ):
        self._stages = stages
        self._jobs = jobs
        self._policy = policy

    def authorize(
        self,
        actor: Actor | None,
        job_id: UUID,
        target_stage_id: str,
    ) -> PipelineError | None:
        if actor is None:
            return PipelineError.denied(PermissionScope.ROLE, "Unknown actor")

        is_super_admin = self._policy.is_super_admin(actor.role)

        if not self._policy.is_privileged(actor.role):
            return PipelineError.denied(
                PermissionScope.ROLE,
                f"Role '{actor.role.value}' may not move candidates",
            )

        job = self._jobs.get(job_id)
        if job is None:
            return PipelineError(ErrorKind.JOB_NOT_FOUND, f"Job {job_id} not found")

        if not is_super_admin:
            if actor.company_id != job.company_id:
                return PipelineError.denied(
                    PermissionScope.SCOPE,
                    "Job belongs to another company",
                )
            if job.owner_id is not None and job.owner_id != actor.id:
                return PipelineError.denied(
                    PermissionScope.OWNERSHIP,
                    "Job is assigned to another recruiter",
                )

        stage = self._stages.get(job_id, target_stage_id)
        if stage is None:
            return PipelineError(
                ErrorKind.INVALID_STAGE,
                f"Stage '{target_stage_id}' does not exist for job {job_id}",
            )

        if (
            not is_super_admin
            and stage.responsible_actor_ids
            and actor.id not in stage.responsible_actor_ids
        ):
            return PipelineError.denied(
                PermissionScope.STAGE,
                f"Actor is not responsible for stage '{stage.display_name}'",
            )

        if is_super_admin:
            logger.debug(
                "super_admin_bypass",
                extra={"target_stage_id": target_stage_id},
            )
        return None
