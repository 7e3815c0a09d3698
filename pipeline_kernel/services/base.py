"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Provides the common constructor and session-handling contract.  Services
    persist with ``session.flush()`` and never commit or roll back; the
    pipeline service owns the transaction of each movement.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from pipeline_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Read-only queries belong in ``pipeline_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
