"""
HookDispatcher -- post-commit engagement events on an outbound channel.

Responsibility:
    After a movement commits, the pipeline service calls ``notify``.  The
    dispatcher builds an EngagementEvent, puts it on a bounded in-process
    queue and returns.  A daemon worker thread drains the queue into an
    EngagementEventSink (analytics, automations, SLA tracking).

Isolation:
    Nothing raised while building, enqueuing or publishing an event ever
    reaches the caller of ``notify``.  Failures are logged with structured
    context and discarded; a full queue drops the event with a warning.
    There is no ordering guarantee between events and no retry.

Lifecycle:
    ``start()`` launches the worker; ``stop(timeout)`` stops it and flushes
    what is left on the queue; ``drain()`` delivers everything queued so
    far before returning (tests and shutdown hooks).  Without ``start()``
    events simply accumulate until ``drain()`` or ``stop()``.
"""

from __future__ import annotations

import queue
import threading
from datetime import datetime
from uuid import UUID

from pipeline_kernel.domain.results import EngagementEvent
from pipeline_kernel.domain.ports import EngagementEventSink
from pipeline_kernel.domain.values import MovementRecord
from pipeline_kernel.logging_config import get_logger

logger = get_logger("services.hook_dispatcher")


class LoggingEngagementSink:
    """Default sink: writes each event to the structured log."""

    def publish(self, event: EngagementEvent) -> None:
        logger.info(
            "engagement_event",
            extra={
                "movement_id": str(event.movement_id),
                "event_job_id": str(event.job_id),
                "event_candidate_id": str(event.candidate_id),
                "previous_stage_id": event.previous_stage_id,
                "new_stage_id": event.new_stage_id,
                "is_rejection": event.is_rejection,
                "is_hire": event.is_hire,
                "dwell_seconds": event.dwell_seconds,
            },
        )


class HookDispatcher:
    """
    Contract:
        ``notify`` is fire-and-forget and never raises.

    Guarantees:
        - At most ``queue_size`` events are buffered.
        - Sink exceptions are contained in the worker.

    Non-goals:
        - Delivery guarantees.  Events queued in a process that dies are lost.
    """

    def __init__(
        self,
        sink: EngagementEventSink | None = None,
        queue_size: int = 1000,
        stop_timeout: float = 5.0,
        poll_interval: float = 0.1,
    ):
        self._sink = sink or LoggingEngagementSink()
        self._queue: queue.Queue[EngagementEvent] = queue.Queue(maxsize=queue_size)
        self._stop_timeout = stop_timeout
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._dropped_lock = threading.Lock()
        self.dropped = 0

    # =========================================================================
    # Producer side
    # =========================================================================

    def notify(
        self,
        movement: MovementRecord,
        previous_stage_id: str | None,
        new_stage_id: str,
        actor_id: UUID,
        rejection_flag: bool = False,
        comments: str | None = None,
        *,
        is_hire: bool = False,
        stage_entered_at: datetime | None = None,
    ) -> None:
        """Queue an engagement event for ``movement``.  Never raises."""
        try:
            dwell_seconds = None
            if stage_entered_at is not None:
                dwell_seconds = (movement.moved_at - stage_entered_at).total_seconds()
            event = EngagementEvent(
                movement_id=movement.id,
                enrollment_id=movement.enrollment_id,
                job_id=movement.job_id,
                candidate_id=movement.candidate_id,
                previous_stage_id=previous_stage_id,
                new_stage_id=new_stage_id,
                actor_id=actor_id,
                occurred_at=movement.moved_at,
                is_rejection=rejection_flag,
                is_hire=is_hire,
                comments=comments,
                dwell_seconds=dwell_seconds,
            )
            self._queue.put_nowait(event)
        except queue.Full:
            with self._dropped_lock:
                self.dropped += 1
            logger.warning(
                "hook_event_dropped",
                extra={
                    "movement_id": str(movement.id),
                    "queue_size": self._queue.maxsize,
                },
            )
        except Exception:
            logger.exception(
                "hook_dispatch_failed",
                extra={"movement_id": str(getattr(movement, "id", None))},
            )

    # =========================================================================
    # Consumer side
    # =========================================================================

    def start(self) -> None:
        """Start the worker thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("hook_dispatcher_already_running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="pipeline-hook-dispatcher",
            daemon=True,
        )
        self._thread.start()
        logger.info("hook_dispatcher_started", extra={"queue_size": self._queue.maxsize})

    def stop(self, timeout: float | None = None) -> None:
        """
        Stop the worker and deliver whatever is still queued.

        Queued events are flushed on the calling thread only once the worker
        has exited.  If the worker is still inside a publish when the
        timeout expires, the remaining events stay queued and a later
        ``stop()`` or ``drain()`` delivers them.

        Args:
            timeout: Max seconds to wait for the worker thread; defaults to
                the configured stop timeout.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout if timeout is not None else self._stop_timeout)
            if self._thread.is_alive():
                logger.warning(
                    "hook_dispatcher_stop_timed_out",
                    extra={"pending": self.pending},
                )
                return
        self._thread = None
        delivered = self._drain_now()
        logger.info("hook_dispatcher_stopped", extra={"flushed": delivered})

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def queue_size(self) -> int:
        return self._queue.maxsize

    def drain(self) -> None:
        """Block until every event queued so far has been handed to the sink."""
        if self.is_running and not self._stop_event.is_set():
            self._queue.join()
            return
        # A stopping worker leaves the rest of the queue behind once it exits
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self._drain_now()

    def _drain_now(self) -> int:
        delivered = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return delivered
            try:
                self._deliver(event)
                delivered += 1
            finally:
                self._queue.task_done()

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                event = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            try:
                self._deliver(event)
            finally:
                self._queue.task_done()

    def _deliver(self, event: EngagementEvent) -> None:
        try:
            self._sink.publish(event)
        except Exception:
            logger.exception(
                "hook_dispatch_failed",
                extra={
                    "movement_id": str(event.movement_id),
                    "new_stage_id": event.new_stage_id,
                    "sink": type(self._sink).__name__,
                },
            )
