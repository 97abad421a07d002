"""
Background Job Runner

Owns the asyncio tasks that execute asynchronous generations. Work is
tracked by job id, optionally bounded by a deadline, and any exception that
escapes the work function is logged from the task's done callback.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Optional

from src.core.logging import get_logger

logger = get_logger(__name__)

JobWork = Callable[[], Awaitable[None]]
TimeoutHandler = Callable[[str, float], Awaitable[None]]


class JobRunner:
    """Tracks in-flight background generations."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        on_timeout: Optional[TimeoutHandler] = None
    ):
        self.timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
        self.on_timeout = on_timeout
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def get(self, job_id: str) -> Optional[asyncio.Task]:
        return self._tasks.get(job_id)

    def submit(self, job_id: str, work: JobWork) -> asyncio.Task:
        """Schedule ``work`` on the running loop and return its task."""
        task = asyncio.create_task(self._run(job_id, work), name=f"generation-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        return task

    async def _run(self, job_id: str, work: JobWork):
        if self.timeout_seconds is None:
            await work()
            return

        try:
            await asyncio.wait_for(work(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("job_timed_out", job_id=job_id, timeout_seconds=self.timeout_seconds)
            if self.on_timeout is not None:
                await self.on_timeout(job_id, self.timeout_seconds)

    def _on_done(self, job_id: str, task: asyncio.Task):
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]

        if task.cancelled():
            logger.warning("job_cancelled", job_id=job_id)
            return

        exc = task.exception()
        if exc is not None:
            logger.error(
                "job_crashed",
                job_id=job_id,
                error=str(exc),
                error_type=type(exc).__name__
            )

    async def drain(self):
        """Wait for all in-flight work to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self, cancel: bool = False):
        """Finish, or cancel, all in-flight work."""
        if cancel:
            for task in list(self._tasks.values()):
                task.cancel()
        logger.info("job_runner_shutdown", in_flight=self.pending_count, cancel=cancel)
        await self.drain()
