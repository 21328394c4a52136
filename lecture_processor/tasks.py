"""Supervised background execution of pipeline runs.

A request handler that does not want to wait for processing hands the run
to a TaskSupervisor. The supervisor keeps a strong reference to every task
and logs anything a task raises, so no failure disappears silently. Runs are
not durable: tasks still pending at shutdown are cancelled after a grace
period.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from lecture_processor.pipeline import LectureProcessingPipeline, ProcessingResult

logger = logging.getLogger(__name__)

# Leaves a 5s buffer before a 30s platform SIGKILL
SHUTDOWN_TIMEOUT_SECONDS = 25


class TaskSupervisor:
    """Owns fire-and-forget tasks and reports their failures."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and supervise it.

        Args:
            coro: Coroutine to run.
            name: Task name used in log lines.

        Returns:
            The created task.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Background task %s failed",
                task.get_name(),
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    def schedule_processing(
        self,
        pipeline: LectureProcessingPipeline,
        lecture_id: str,
        owner_id: str,
        *,
        retry_failed: bool = False,
    ) -> asyncio.Task:
        """Start a pipeline run for a lecture without awaiting it."""

        async def _run() -> ProcessingResult:
            result = await pipeline.process(
                lecture_id, owner_id, retry_failed=retry_failed
            )
            if result.status == "failed" and result.error is not None:
                logger.warning(
                    "Background processing of lecture %s failed: %s",
                    lecture_id,
                    result.error.user_message,
                    extra={"lecture_id": lecture_id},
                )
            return result

        return self.spawn(_run(), name=f"process-lecture-{lecture_id}")

    async def drain(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Wait for running tasks, cancelling whatever outlives ``timeout``."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        logger.info("Waiting for %d background task(s)", len(tasks))
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        if pending:
            logger.warning(
                "Shutdown timeout (%ss) exceeded, cancelling %d task(s)",
                timeout,
                len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
