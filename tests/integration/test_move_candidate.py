"""
End-to-end movement tests through PipelineService.move_candidate.

Covers the reference scenarios (plain move, exit gate, rejection reason,
headcount closure, cross-company access) plus every refusal kind, the
conflict retry loop and the all-or-nothing write guarantee.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from conftest import events_named
from pipeline_kernel.domain.results import ErrorKind, PermissionScope
from pipeline_kernel.domain.values import (
    JobStatus,
    MovementOrigin,
    RejectionPayload,
    RequiredField,
)
from pipeline_kernel.exceptions import OptimisticLockError
from pipeline_kernel.models import MovementRecordModel, RejectionRecordModel
from pipeline_kernel.services.audit_log import AuditLogService
from pipeline_kernel.services.repositories import SqlEnrollmentRepository


def _movement_count(session_factory) -> int:
    with session_factory() as s:
        return s.execute(select(func.count()).select_from(MovementRecordModel)).scalar_one()


def _rejection_count(session_factory) -> int:
    with session_factory() as s:
        return s.execute(select(func.count()).select_from(RejectionRecordModel)).scalar_one()


# =============================================================================
# Reference scenarios
# =============================================================================


class TestScenarios:
    def test_a_plain_move(self, pipeline, pipeline_service, session_factory):
        result = pipeline_service.move_candidate(
            pipeline.job_id,
            pipeline.candidate_id,
            "triagem",
            pipeline.admin_id,
            comments="ok",
        )

        assert result.is_success
        assert result.enrollment.current_stage_id == "triagem"
        assert result.movement.previous_stage_id == "recebido"
        assert result.movement.new_stage_id == "triagem"
        assert result.movement.comments == "ok"
        assert pipeline.enrollment(pipeline.candidate_id).current_stage_id == "triagem"
        assert _movement_count(session_factory) == 1

    def test_b_leaving_scored_stage_without_score(
        self, pipeline, pipeline_service, session_factory
    ):
        candidate = pipeline.add_enrolled_candidate("entrevista")

        result = pipeline_service.move_candidate(
            pipeline.job_id, candidate, "proposta", pipeline.admin_id
        )

        assert result.error.kind == ErrorKind.MISSING_REQUIRED_FIELD
        assert result.error.field == RequiredField.SCORE
        assert _movement_count(session_factory) == 0
        assert pipeline.enrollment(candidate).current_stage_id == "entrevista"

    def test_c_rejection_without_reason(self, pipeline, pipeline_service, session_factory):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "reprovado_etico", pipeline.admin_id
        )

        assert result.error.kind == ErrorKind.MISSING_REJECTION_REASON
        assert _movement_count(session_factory) == 0

    def test_d_second_hire_fills_job(
        self, pipeline, pipeline_service, deterministic_clock
    ):
        pipeline.add_enrolled_candidate("contratado")
        deterministic_clock.advance(30)

        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "contratado", pipeline.admin_id
        )

        assert result.is_success
        assert result.job_closed
        job = pipeline.job()
        assert job.status == JobStatus.FILLED
        assert job.closure_timestamp == deterministic_clock.now()

    def test_e_other_company_is_denied(self, pipeline, pipeline_service, session_factory):
        result = pipeline_service.move_candidate(
            pipeline.job_id,
            pipeline.candidate_id,
            "triagem",
            pipeline.other_recruiter_id,
        )

        assert result.error.kind == ErrorKind.PERMISSION_DENIED
        assert result.error.permission == PermissionScope.SCOPE
        assert _movement_count(session_factory) == 0


# =============================================================================
# Refusals
# =============================================================================


class TestRefusals:
    def test_unknown_job(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            uuid4(), pipeline.candidate_id, "triagem", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.JOB_NOT_FOUND

    def test_unknown_stage(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "onboarding", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.INVALID_STAGE

    @pytest.mark.parametrize("status", ["closed", "cancelled"])
    def test_inactive_job(self, pipeline, pipeline_service, status):
        pipeline.update_job(status=status)
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.JOB_INACTIVE

    def test_unknown_candidate(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id, uuid4(), "triagem", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.CANDIDATE_NOT_FOUND

    def test_inactive_candidate(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.inactive_candidate_id, "triagem", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.CANDIDATE_INACTIVE

    def test_not_enrolled(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.unenrolled_candidate_id, "triagem", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.CANDIDATE_NOT_ENROLLED

    def test_same_stage(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "recebido", pipeline.admin_id
        )
        assert result.error.kind == ErrorKind.NO_MOVEMENT_NEEDED

    @pytest.mark.parametrize("score", [11, -1, "10.5"])
    def test_out_of_range_score(self, pipeline, pipeline_service, score):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id, score=score
        )
        assert result.error.kind == ErrorKind.INVALID_NOTE

    @pytest.mark.parametrize("score", ["abc", "NaN", float("inf")])
    def test_non_numeric_score(self, pipeline, pipeline_service, score):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id, score=score
        )
        assert result.error.kind == ErrorKind.INVALID_NOTE

    def test_leaving_comment_stage_without_comment(self, pipeline, pipeline_service):
        candidate = pipeline.add_enrolled_candidate("proposta")
        result = pipeline_service.move_candidate(
            pipeline.job_id, candidate, "contratado", pipeline.admin_id
        )
        assert result.error.field == RequiredField.COMMENT

    def test_hiring_manager_is_denied(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.manager_id
        )
        assert result.error.permission == PermissionScope.ROLE

    @pytest.mark.parametrize(
        "reason_attr", ["other_company_reason_id", "inactive_reason_id", None]
    )
    def test_unusable_rejection_reason(self, pipeline, pipeline_service, reason_attr):
        reason_id = getattr(pipeline, reason_attr) if reason_attr else uuid4()
        result = pipeline_service.move_candidate(
            pipeline.job_id,
            pipeline.candidate_id,
            "reprovado_etico",
            pipeline.admin_id,
            rejection=RejectionPayload(reason_id=reason_id),
        )
        assert result.error.kind == ErrorKind.MISSING_REJECTION_REASON

    def test_refusal_is_logged(self, pipeline, pipeline_service, captured_logs):
        pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "recebido", pipeline.admin_id
        )
        [record] = events_named(captured_logs(), "move_rejected")
        assert record["error_kind"] == "NO_MOVEMENT_NEEDED"
        assert record["job_id"] == str(pipeline.job_id)
        assert record["correlation_id"]


# =============================================================================
# Successful moves
# =============================================================================


class TestSuccess:
    def test_rejection_with_catalogued_reason(
        self, pipeline, pipeline_service, session_factory
    ):
        result = pipeline_service.move_candidate(
            pipeline.job_id,
            pipeline.candidate_id,
            "reprovado_etico",
            pipeline.recruiter_id,
            rejection=RejectionPayload(
                reason_id=pipeline.company_reason_id, observations="Cópia de código"
            ),
        )

        assert result.is_success
        assert result.rejection.reason_id == pipeline.company_reason_id
        assert result.rejection.stage_at_rejection == "recebido"
        assert result.rejection.observations == "Cópia de código"
        assert _rejection_count(session_factory) == 1

    def test_moves_are_not_forced_forward(self, pipeline, pipeline_service):
        candidate = pipeline.add_enrolled_candidate("contratado")
        result = pipeline_service.move_candidate(
            pipeline.job_id, candidate, "recebido", pipeline.admin_id
        )
        assert result.is_success

    def test_full_walk_keeps_chain(self, pipeline, pipeline_service, deterministic_clock):
        steps = [
            ("triagem", {}),
            ("entrevista", {"comments": "agendar"}),
            ("proposta", {"score": "8.5"}),
            ("contratado", {"comments": "aprovado"}),
        ]
        for stage, payload in steps:
            deterministic_clock.advance(3600)
            result = pipeline_service.move_candidate(
                pipeline.job_id, pipeline.candidate_id, stage, pipeline.admin_id, **payload
            )
            assert result.is_success, result.error

        enrollment = pipeline.enrollment(pipeline.candidate_id)
        assert enrollment.score == Decimal("8.50")
        assert enrollment.comments == "aprovado"
        assert pipeline_service.verify_movement_chain(enrollment.id) == 4

    def test_super_admin_moves_on_any_job(self, pipeline, pipeline_service):
        pipeline.enroll(pipeline.candidate_id, job_id=pipeline.other_job_id)
        pipeline.update_stage(
            "triagem",
            job_id=pipeline.other_job_id,
            responsible_actor_ids=[str(pipeline.other_recruiter_id)],
        )
        result = pipeline_service.move_candidate(
            pipeline.other_job_id, pipeline.candidate_id, "triagem", pipeline.super_admin_id
        )
        assert result.is_success

    def test_origin_is_recorded(self, pipeline, pipeline_service):
        result = pipeline_service.move_candidate(
            pipeline.job_id,
            pipeline.candidate_id,
            "triagem",
            pipeline.admin_id,
            origin=MovementOrigin(ip="198.51.100.4", detail={"source": "kanban"}),
        )
        assert result.movement.origin.ip == "198.51.100.4"
        history = pipeline_service.get_movement_history(
            pipeline.candidate_id, pipeline.admin_id
        )
        assert history[0].origin.detail["source"] == "kanban"

    def test_success_is_logged_with_context(self, pipeline, pipeline_service, captured_logs):
        pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id
        )
        records = captured_logs()
        [committed] = events_named(records, "move_committed")
        [recorded] = events_named(records, "movement_recorded")

        assert committed["new_stage_id"] == "triagem"
        assert committed["attempt"] == 1
        assert recorded["enrollment_id"] == committed["enrollment_id"]
        assert recorded["correlation_id"] == committed["correlation_id"]


# =============================================================================
# Conflicts and persistence failures
# =============================================================================


class TestConflicts:
    def test_conflict_is_retried(self, pipeline, pipeline_service, monkeypatch, captured_logs):
        original = SqlEnrollmentRepository.update
        calls = []

        def flaky_update(self, enrollment_id, expected_version, **patch):
            calls.append(enrollment_id)
            if len(calls) == 1:
                raise OptimisticLockError("Enrollment", str(enrollment_id))
            return original(self, enrollment_id, expected_version, **patch)

        monkeypatch.setattr(SqlEnrollmentRepository, "update", flaky_update)

        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id
        )

        assert result.is_success
        assert result.attempts == 2
        assert result.movement.sequence == 1
        assert len(events_named(captured_logs(), "move_conflict_retry")) == 1

    def test_exhausted_attempts_fail(
        self, pipeline, pipeline_service, session_factory, monkeypatch, captured_logs
    ):
        def always_stale(self, enrollment_id, expected_version, **patch):
            raise OptimisticLockError("Enrollment", str(enrollment_id))

        monkeypatch.setattr(SqlEnrollmentRepository, "update", always_stale)

        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id
        )

        assert result.error.kind == ErrorKind.UPDATE_FAILED
        assert result.attempts == 3
        assert _movement_count(session_factory) == 0
        assert events_named(captured_logs(), "move_attempts_exhausted")

    def test_persistence_error_rolls_back_everything(
        self, pipeline, pipeline_service, session_factory, monkeypatch
    ):
        def broken_append(self, *args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(AuditLogService, "append", broken_append)

        result = pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id
        )

        assert result.error.kind == ErrorKind.UPDATE_FAILED
        assert result.attempts == 1
        assert pipeline.enrollment(pipeline.candidate_id).current_stage_id == "recebido"
        assert _movement_count(session_factory) == 0

    def test_failed_move_emits_no_hook(
        self, pipeline, pipeline_service, recording_sink, monkeypatch
    ):
        def broken_append(self, *args, **kwargs):
            raise SQLAlchemyError("connection reset")

        monkeypatch.setattr(AuditLogService, "append", broken_append)
        pipeline_service.move_candidate(
            pipeline.job_id, pipeline.candidate_id, "triagem", pipeline.admin_id
        )
        pipeline_service.dispatcher.drain()
        assert recording_sink.events == []
