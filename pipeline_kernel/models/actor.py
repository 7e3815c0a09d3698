"""
Module: pipeline_kernel.models.actor
Responsibility: ORM persistence for platform users acting on the pipeline.
    Read-only to the kernel; resolved through the actor directory.

Invariants enforced:
    - role limited to the ActorRole values.
    - company_id may be NULL only for super-admins (check constraint).
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from pipeline_kernel.db.base import Base

if TYPE_CHECKING:
    from pipeline_kernel.domain.values import Actor


class ActorModel(Base):
    __tablename__ = "actors"

    __table_args__ = (
        CheckConstraint(
            "role IN ('super_admin', 'admin', 'recruiter', 'hiring_manager', "
            "'candidate')",
            name="ck_actors_valid_role",
        ),
        CheckConstraint(
            "company_id IS NOT NULL OR role = 'super_admin'",
            name="ck_actors_company_required",
        ),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(30), nullable=False)
    company_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Actor {self.id} role={self.role}>"

    def to_dto(self) -> Actor:
        from pipeline_kernel.domain.values import Actor, ActorRole

        return Actor(
            id=self.id,
            name=self.name,
            role=ActorRole(self.role),
            company_id=self.company_id,
        )
