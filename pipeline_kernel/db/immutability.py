"""
ORM-level append-only enforcement for the movement audit trail.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  Listeners registered here intercept them for the audit tables
and raise ImmutabilityViolationError, aborting the flush:

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |                                                        ^
         v                                                        |
    [before_delete event] --> _check_*_delete() -----------------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable           | Rationale
--------------------|--------------------------|------------------------------
MovementRecord      | ALWAYS (from creation)   | Stage history is an audit log
RejectionRecord     | ALWAYS (from creation)   | Rejection reasons are evidence

Bulk ``session.execute(update(...))`` statements bypass mapper events; the
kernel never issues them against these tables.
"""

from sqlalchemy import event

from pipeline_kernel.exceptions import ImmutabilityViolationError
from pipeline_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(target, entity_type: str, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_movement_record_immutability(mapper, connection, target):
    """Prevent any updates to MovementRecord rows."""
    _block(
        target,
        "MovementRecord",
        "UPDATE",
        "Movement records are append-only and cannot be modified",
    )


def _check_movement_record_delete(mapper, connection, target):
    """Prevent deletion of MovementRecord rows."""
    _block(
        target,
        "MovementRecord",
        "DELETE",
        "Movement records are append-only and cannot be deleted",
    )


def _check_rejection_record_immutability(mapper, connection, target):
    _block(
        target,
        "RejectionRecord",
        "UPDATE",
        "Rejection records are append-only and cannot be modified",
    )


def _check_rejection_record_delete(mapper, connection, target):
    _block(
        target,
        "RejectionRecord",
        "DELETE",
        "Rejection records are append-only and cannot be deleted",
    )


def _listeners():
    from pipeline_kernel.models.movement import MovementRecordModel
    from pipeline_kernel.models.rejection import RejectionRecordModel

    return (
        (MovementRecordModel, "before_update", _check_movement_record_immutability),
        (MovementRecordModel, "before_delete", _check_movement_record_delete),
        (RejectionRecordModel, "before_update", _check_rejection_record_immutability),
        (RejectionRecordModel, "before_delete", _check_rejection_record_delete),
    )


def register_immutability_listeners():
    """
    Register the append-only listeners.

    Safe to call more than once; already registered listeners are skipped.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the append-only listeners.

    WARNING: Only use this in tests that need to tamper with the audit
    trail to verify detection (e.g. chain verification).
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
