"""Services: the imperative shell around the pure pipeline rules."""

from pipeline_kernel.services.access_guard import AccessGuard
from pipeline_kernel.services.audit_log import AuditLogService
from pipeline_kernel.services.hook_dispatcher import HookDispatcher, LoggingEngagementSink
from pipeline_kernel.services.movement_executor import MovementExecutor
from pipeline_kernel.services.pipeline_service import PipelineService
from pipeline_kernel.services.repositories import SqlEnrollmentRepository, SqlJobRepository

__all__ = [
    "AccessGuard",
    "AuditLogService",
    "HookDispatcher",
    "LoggingEngagementSink",
    "MovementExecutor",
    "PipelineService",
    "SqlEnrollmentRepository",
    "SqlJobRepository",
]
