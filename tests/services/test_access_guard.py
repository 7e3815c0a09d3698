"""
AccessGuard tests.

Check order: role, job existence, company scope, ownership, stage
existence, stage allow-list.  Super-admins skip scope, ownership and
allow-list checks.
"""

from uuid import uuid4

import pytest

from pipeline_kernel.domain.policy import TransitionPolicy
from pipeline_kernel.domain.results import ErrorKind, PermissionScope
from pipeline_kernel.domain.values import ActorRole
from pipeline_kernel.models import StageDefinitionModel
from pipeline_kernel.selectors.catalog_selector import StageCatalogSelector
from pipeline_kernel.selectors.directory_selector import ActorDirectorySelector
from pipeline_kernel.services.access_guard import AccessGuard
from pipeline_kernel.services.repositories import SqlJobRepository


@pytest.fixture
def authorize(session):
    def _authorize(actor_id, job_id, stage_id, policy=None):
        guard = AccessGuard(
            StageCatalogSelector(session),
            SqlJobRepository(session),
            policy or TransitionPolicy(),
        )
        actor = ActorDirectorySelector(session).resolve(actor_id)
        return guard.authorize(actor, job_id, stage_id)

    return _authorize


class TestRoles:
    def test_admin_and_recruiter_are_allowed(self, pipeline, authorize):
        assert authorize(pipeline.admin_id, pipeline.job_id, "triagem") is None
        assert authorize(pipeline.recruiter_id, pipeline.job_id, "triagem") is None

    @pytest.mark.parametrize("actor", ["manager_id", "applicant_id"])
    def test_unprivileged_roles_are_denied(self, pipeline, authorize, actor):
        error = authorize(getattr(pipeline, actor), pipeline.job_id, "triagem")
        assert error.kind == ErrorKind.PERMISSION_DENIED
        assert error.permission == PermissionScope.ROLE

    def test_unknown_actor_is_denied(self, pipeline, authorize):
        error = authorize(uuid4(), pipeline.job_id, "triagem")
        assert error.permission == PermissionScope.ROLE

    def test_policy_can_widen_privileged_roles(self, pipeline, authorize):
        policy = TransitionPolicy(
            privileged_roles=frozenset({ActorRole.ADMIN, ActorRole.HIRING_MANAGER})
        )
        assert authorize(pipeline.manager_id, pipeline.job_id, "triagem", policy) is None
        error = authorize(pipeline.recruiter_id, pipeline.job_id, "triagem", policy)
        assert error.permission == PermissionScope.ROLE

    def test_role_checked_before_job_lookup(self, pipeline, authorize):
        error = authorize(pipeline.manager_id, uuid4(), "triagem")
        assert error.kind == ErrorKind.PERMISSION_DENIED


class TestJobAndStage:
    def test_unknown_job(self, pipeline, authorize):
        error = authorize(pipeline.admin_id, uuid4(), "triagem")
        assert error.kind == ErrorKind.JOB_NOT_FOUND

    def test_unknown_stage(self, pipeline, authorize):
        error = authorize(pipeline.admin_id, pipeline.job_id, "onboarding")
        assert error.kind == ErrorKind.INVALID_STAGE

    def test_stage_of_another_job_is_not_valid(self, pipeline, authorize, session):
        session.add(
            StageDefinitionModel(
                job_id=pipeline.other_job_id,
                stage_id="onboarding",
                display_name="Onboarding",
                ordering=5,
            )
        )
        session.commit()
        error = authorize(pipeline.admin_id, pipeline.job_id, "onboarding")
        assert error.kind == ErrorKind.INVALID_STAGE


class TestScope:
    def test_other_company_is_denied(self, pipeline, authorize):
        error = authorize(pipeline.other_recruiter_id, pipeline.job_id, "triagem")
        assert error.kind == ErrorKind.PERMISSION_DENIED
        assert error.permission == PermissionScope.SCOPE

    def test_super_admin_crosses_companies(self, pipeline, authorize):
        assert authorize(pipeline.super_admin_id, pipeline.other_job_id, "triagem") is None


class TestOwnership:
    def test_owned_job_admits_only_its_owner(self, pipeline, authorize):
        pipeline.update_job(owner_id=pipeline.recruiter_id)
        assert authorize(pipeline.recruiter_id, pipeline.job_id, "triagem") is None
        error = authorize(pipeline.admin_id, pipeline.job_id, "triagem")
        assert error.permission == PermissionScope.OWNERSHIP

    def test_super_admin_ignores_ownership(self, pipeline, authorize):
        pipeline.update_job(owner_id=pipeline.recruiter_id)
        assert authorize(pipeline.super_admin_id, pipeline.job_id, "triagem") is None

    def test_scope_reported_before_ownership(self, pipeline, authorize):
        pipeline.update_job(owner_id=pipeline.recruiter_id)
        error = authorize(pipeline.other_recruiter_id, pipeline.job_id, "triagem")
        assert error.permission == PermissionScope.SCOPE


class TestStageAllowList:
    def test_allow_list_restricts_stage(self, pipeline, authorize):
        pipeline.update_stage("entrevista", responsible_actor_ids=[str(pipeline.admin_id)])
        assert authorize(pipeline.admin_id, pipeline.job_id, "entrevista") is None
        error = authorize(pipeline.recruiter_id, pipeline.job_id, "entrevista")
        assert error.permission == PermissionScope.STAGE

    def test_allow_list_only_applies_to_its_stage(self, pipeline, authorize):
        pipeline.update_stage("entrevista", responsible_actor_ids=[str(pipeline.admin_id)])
        assert authorize(pipeline.recruiter_id, pipeline.job_id, "triagem") is None

    def test_super_admin_ignores_allow_list(self, pipeline, authorize, captured_logs):
        pipeline.update_stage("entrevista", responsible_actor_ids=[str(pipeline.admin_id)])
        assert authorize(pipeline.super_admin_id, pipeline.job_id, "entrevista") is None
        assert any(r["message"] == "super_admin_bypass" for r in captured_logs())

    def test_super_admin_still_needs_existing_stage(self, pipeline, authorize):
        error = authorize(pipeline.super_admin_id, pipeline.job_id, "nowhere")
        assert error.kind == ErrorKind.INVALID_STAGE
