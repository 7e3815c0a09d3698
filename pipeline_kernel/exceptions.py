"""
Typed exception hierarchy for the pipeline kernel.

===============================================================================
WHAT IS (AND IS NOT) AN EXCEPTION HERE
===============================================================================

Business-rule outcomes of a movement (permission denied, inactive job,
missing required field, ...) are NOT exceptions.  They are returned as a
tagged ``PipelineError`` inside a ``MoveResult`` (see
``pipeline_kernel.domain.results``) so the calling layer can render them
without try/except control flow.

Exceptions are reserved for infrastructure faults that abort a unit of
work: a concurrent writer won the race for the same enrollment, someone
tried to rewrite the append-only audit trail, the movement chain of an
enrollment does not link up, or the configuration is unusable.

    PipelineKernelError (base)
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Concurrency     | OPTIMISTIC_LOCK_CONFLICT    | Enrollment changed under a movement
Immutability    | IMMUTABILITY_VIOLATION      | UPDATE/DELETE of an audit row
Audit           | AUDIT_CHAIN_BROKEN          | Movement chain does not link up
Configuration   | CONFIGURATION_ERROR         | Settings file/env values are invalid

Every class carries a ``code`` class attribute (machine-readable, log and
API safe) and stores its context as attributes, so structured logging can
emit ``exc_code`` and the individual fields.
"""


class PipelineKernelError(Exception):
    """
    Base exception for all pipeline kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PIPELINE_KERNEL_ERROR"


# Concurrency-related exceptions


class ConcurrencyError(PipelineKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Immutability-related exceptions


class ImmutabilityError(PipelineKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    MovementRecord and RejectionRecord rows are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit-related exceptions


class AuditError(PipelineKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """
    The movement records of an enrollment do not form a chain.

    Each record's previous stage must equal the prior record's new stage
    (null for the first), with gap-free sequence numbers.
    """

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(
        self,
        enrollment_id: str,
        sequence: int,
        expected: str | None,
        actual: str | None,
    ):
        self.enrollment_id = enrollment_id
        self.sequence = sequence
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Movement chain broken for enrollment {enrollment_id} at "
            f"sequence {sequence}: expected {expected!r}, found {actual!r}"
        )


# Configuration-related exceptions


class ConfigurationError(PipelineKernelError):
    """Pipeline settings are missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid pipeline setting {key!r}: {reason}")
