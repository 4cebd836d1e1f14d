"""In-process durable-style job queue with bounded concurrency and retries.

Jobs are dispatched FIFO to a fixed pool of worker tasks. A failed attempt is
re-enqueued after an exponential backoff (``base * 2**(attempt - 1)``) until
``max_attempts`` is reached; structural failures are never retried.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Callable

from models.schemas.jobs import BaseJob, JobKind, JobStatus
from services.errors import StructuralError
from services.pipeline.base import JobHandler

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobQueue:
    def __init__(
        self,
        handlers: Iterable[JobHandler],
        concurrency: int = 5,
        backoff_base_seconds: float = 5.0,
        retention_seconds: int = 86400,
        now: Callable[[], datetime] = _utc_now,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._handlers: dict[JobKind, JobHandler] = {h.kind: h for h in handlers}
        self._concurrency = concurrency
        self._backoff_base = backoff_base_seconds
        self._retention = timedelta(seconds=retention_seconds)
        self._now = now

        self._queue: asyncio.Queue[BaseJob] = asyncio.Queue()
        self._jobs: dict[str, BaseJob] = {}
        self._done: dict[str, asyncio.Event] = {}
        self._workers: list[asyncio.Task] = []
        self._retries: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def depth(self) -> int:
        return self._queue.qsize()

    def backoff_delay(self, attempts: int) -> float:
        return self._backoff_base * 2 ** (attempts - 1)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"job-worker-{n}")
            for n in range(self._concurrency)
        ]
        logger.info("Job queue started with %d workers", self._concurrency)

    async def stop(self) -> None:
        tasks = [*self._workers, *self._retries]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers = []
        self._retries.clear()
        logger.info("Job queue stopped (%d jobs still pending)", self.depth)

    # ------------------------------------------------------------------
    # Submission and lookup
    # ------------------------------------------------------------------

    async def submit(self, job: BaseJob) -> str:
        if job.kind not in self._handlers:
            raise ValueError(f"No handler registered for job kind '{job.kind.value}'")
        self._handlers[job.kind].validate(job)
        self._prune()
        self._jobs[job.id] = job
        self._done[job.id] = asyncio.Event()
        await self._queue.put(job)
        logger.info("Queued %s job %s", job.kind.value, job.id)
        return job.id

    def get(self, job_id: str) -> BaseJob | None:
        return self._jobs.get(job_id)

    async def wait_for(self, job_id: str, timeout: float | None = None) -> BaseJob:
        """Block until the job reaches a terminal state."""
        event = self._done.get(job_id)
        if event is None:
            raise KeyError(job_id)
        await asyncio.wait_for(event.wait(), timeout=timeout)
        return self._jobs[job_id]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _worker(self, n: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._execute(job)
            except Exception:
                logger.exception("Worker %d crashed while handling job %s", n, job.id)
            finally:
                self._queue.task_done()

    async def _execute(self, job: BaseJob) -> None:
        handler = self._handlers[job.kind]
        job.status = JobStatus.RUNNING
        job.attempts += 1
        logger.info(
            "Running %s job %s (attempt %d/%d)",
            job.kind.value, job.id, job.attempts, job.max_attempts,
        )

        try:
            await handler.process(job)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            await self._fail(handler, job, e)
            return

        job.status = JobStatus.SUCCEEDED
        job.last_error = None
        job.finished_at = self._now()
        logger.info("Job %s succeeded", job.id)
        await self._run_hook(handler.on_success(job), job)
        self._finish(job)

    async def _fail(self, handler: JobHandler, job: BaseJob, error: Exception) -> None:
        final = isinstance(error, StructuralError) or job.attempts >= job.max_attempts
        job.last_error = f"attempt {job.attempts}/{job.max_attempts}: {error}"

        if final:
            job.status = JobStatus.FAILED
            job.finished_at = self._now()
            logger.error("Job %s failed permanently: %s", job.id, job.last_error, exc_info=error)
        else:
            job.status = JobStatus.QUEUED
            logger.warning("Job %s failed, will retry: %s", job.id, job.last_error)

        await self._run_hook(handler.on_failure(job, error, final), job)

        if final:
            self._finish(job)
        else:
            delay = self.backoff_delay(job.attempts)
            task = asyncio.create_task(self._requeue_after(job, delay))
            self._retries.add(task)
            task.add_done_callback(self._retries.discard)

    async def _requeue_after(self, job: BaseJob, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._queue.put(job)
        logger.debug("Re-queued job %s after %.1fs", job.id, delay)

    async def _run_hook(self, hook, job: BaseJob) -> None:
        try:
            await hook
        except Exception:
            logger.exception("Completion hook failed for job %s", job.id)

    def _finish(self, job: BaseJob) -> None:
        event = self._done.get(job.id)
        if event is not None:
            event.set()

    def _prune(self) -> None:
        cutoff = self._now() - self._retention
        expired = [
            job_id
            for job_id, job in self._jobs.items()
            if job.is_terminal and job.finished_at is not None and job.finished_at < cutoff
        ]
        for job_id in expired:
            del self._jobs[job_id]
            self._done.pop(job_id, None)
