"""
Config -> Kernel bridges.

Functions that convert PipelineSettings into kernel inputs.  They live in
pipeline_config (the producer) because the kernel must NEVER import
pipeline_config.

Usage:
    from pipeline_config import get_active_config
    from pipeline_config.bridges import build_pipeline_service

    settings = get_active_config()
    service = build_pipeline_service(settings)
"""

from __future__ import annotations

from pipeline_config.schema import PipelineSettings
from pipeline_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
)
from pipeline_kernel.db.immutability import register_immutability_listeners
from pipeline_kernel.domain.clock import Clock
from pipeline_kernel.domain.policy import TransitionPolicy
from pipeline_kernel.domain.ports import EngagementEventSink
from pipeline_kernel.domain.values import ActorRole
from pipeline_kernel.exceptions import ConfigurationError
from pipeline_kernel.logging_config import configure_logging
from pipeline_kernel.services.hook_dispatcher import HookDispatcher
from pipeline_kernel.services.pipeline_service import PipelineService


def build_transition_policy(settings: PipelineSettings) -> TransitionPolicy:
    """Build the kernel's TransitionPolicy from settings."""
    try:
        return TransitionPolicy(
            privileged_roles=frozenset(
                ActorRole(role) for role in settings.access.privileged_roles
            ),
            super_admin_role=ActorRole(settings.access.super_admin_role),
            min_score=settings.scoring.min_score,
            max_score=settings.scoring.max_score,
            max_move_attempts=settings.max_move_attempts,
        )
    except ValueError as exc:
        raise ConfigurationError("access", str(exc)) from exc


def build_hook_dispatcher(
    settings: PipelineSettings,
    sink: EngagementEventSink | None = None,
) -> HookDispatcher:
    """Build an (unstarted) HookDispatcher sized from settings."""
    return HookDispatcher(
        sink=sink,
        queue_size=settings.dispatcher.queue_size,
        stop_timeout=settings.dispatcher.stop_timeout_seconds,
    )


def build_pipeline_service(
    settings: PipelineSettings,
    sink: EngagementEventSink | None = None,
    clock: Clock | None = None,
    create_schema: bool = False,
) -> PipelineService:
    """
    Wire a ready-to-use PipelineService: logging, engine, append-only
    listeners, dispatcher.

    The listeners are registered whether or not the schema is created here.
    The dispatcher is started; callers stop it on shutdown via
    ``service.dispatcher.stop()``.
    """
    configure_logging(level=settings.logging.level)
    init_engine_from_url(
        settings.database.url,
        echo=settings.database.echo,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
    )
    if create_schema:
        create_tables()
    register_immutability_listeners()

    policy = build_transition_policy(settings)
    dispatcher = build_hook_dispatcher(settings, sink)
    dispatcher.start()
    return PipelineService(
        session_factory=get_session_factory(),
        policy=policy,
        dispatcher=dispatcher,
        clock=clock,
    )
