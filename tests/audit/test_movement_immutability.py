"""
Append-only enforcement for movement and rejection records.

The ORM listeners abort any flush that would UPDATE or DELETE an audit row.
"""

import pytest
from sqlalchemy import event, select

from pipeline_kernel.db.immutability import (
    _check_movement_record_immutability,
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from pipeline_kernel.domain.values import RejectionPayload
from pipeline_kernel.exceptions import ImmutabilityViolationError
from pipeline_kernel.models import MovementRecordModel, RejectionRecordModel


@pytest.fixture
def rejected(pipeline, pipeline_service):
    result = pipeline_service.move_candidate(
        pipeline.job_id,
        pipeline.candidate_id,
        "reprovado_etico",
        pipeline.admin_id,
        rejection=RejectionPayload(custom_reason_text="Fraude documental"),
    )
    assert result.is_success
    return result


class TestMovementRecords:
    def test_update_is_blocked(self, session, rejected, captured_logs):
        record = session.get(MovementRecordModel, rejected.movement.id)
        record.new_stage_id = "contratado"

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        assert any(
            r["message"] == "immutability_violation_blocked" for r in captured_logs()
        )

    def test_delete_is_blocked(self, session, rejected):
        session.delete(session.get(MovementRecordModel, rejected.movement.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_record_unchanged_after_blocked_update(self, session, session_factory, rejected):
        record = session.get(MovementRecordModel, rejected.movement.id)
        record.comments = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        with session_factory() as fresh:
            stored = fresh.get(MovementRecordModel, rejected.movement.id)
            assert stored.comments is None


class TestRejectionRecords:
    def test_update_is_blocked(self, session, rejected):
        record = session.execute(
            select(RejectionRecordModel).where(
                RejectionRecordModel.movement_id == rejected.movement.id
            )
        ).scalar_one()
        record.custom_reason_text = "Outro motivo"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_is_blocked(self, session, rejected):
        record = session.get(RejectionRecordModel, rejected.rejection.id)
        session.delete(record)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestRegistration:
    def test_register_is_idempotent(self, db_engine):
        register_immutability_listeners()
        register_immutability_listeners()
        assert event.contains(
            MovementRecordModel, "before_update", _check_movement_record_immutability
        )

    def test_unregister_then_register(self, db_engine):
        unregister_immutability_listeners()
        try:
            assert not event.contains(
                MovementRecordModel, "before_update", _check_movement_record_immutability
            )
            unregister_immutability_listeners()
        finally:
            register_immutability_listeners()
        assert event.contains(
            MovementRecordModel, "before_update", _check_movement_record_immutability
        )
