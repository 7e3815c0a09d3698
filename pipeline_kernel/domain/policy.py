"""
TransitionPolicy -- the tunable knobs of the transition engine.

The kernel never reads configuration files.  ``pipeline_config.bridges``
builds a TransitionPolicy from settings; tests construct one directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pipeline_kernel.domain.values import ActorRole


@dataclass(frozen=True)
class TransitionPolicy:
    """
    Contract:
        ``privileged_roles`` may move candidates on jobs of their own
        company.  ``super_admin_role`` bypasses company scope, ownership and
        stage allow-lists.  Scores must fall in [min_score, max_score].

    Guarantees:
        - Frozen; safe to share across threads.
        - min_score <= max_score and max_move_attempts >= 1 (checked on
          construction).
    """

    privileged_roles: frozenset[ActorRole] = frozenset(
        {ActorRole.ADMIN, ActorRole.RECRUITER}
    )
    super_admin_role: ActorRole = ActorRole.SUPER_ADMIN
    min_score: Decimal = Decimal("0")
    max_score: Decimal = Decimal("10")
    max_move_attempts: int = 3

    def __post_init__(self) -> None:
        if self.min_score > self.max_score:
            raise ValueError(
                f"min_score {self.min_score} exceeds max_score {self.max_score}"
            )
        if self.max_move_attempts < 1:
            raise ValueError("max_move_attempts must be at least 1")

    def is_super_admin(self, role: ActorRole) -> bool:
        return role == self.super_admin_role

    def is_privileged(self, role: ActorRole) -> bool:
        return self.is_super_admin(role) or role in self.privileged_roles


DEFAULT_POLICY = TransitionPolicy()
