"""Background worker pool for extraction runs.

N asyncio workers pull jobs from a queue, one job at a time each. A run
that fails for a retryable reason is put back on the queue after an
exponential delay, up to ``max_attempts`` attempts in total. Unreadable
documents are never retried.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable

from reservation_extractor.core.config import WorkerConfig
from reservation_extractor.pydantic_models import DocumentKind, ExtractionResult, RunStatus
from reservation_extractor.service import ExtractionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionJob:
    """A queued run.

    Attributes:
        run_id: Run to execute.
        provider: Optional provider override.
        attempt: 1-based attempt number.
    """

    run_id: str
    provider: str | None = None
    attempt: int = 1


class ExtractionWorkerPool:
    """Fixed pool of queue consumers around an ExtractionService."""

    def __init__(
        self,
        service: ExtractionService,
        workers: int = WorkerConfig.WORKERS,
        max_attempts: int = WorkerConfig.MAX_ATTEMPTS,
        backoff_base: float = WorkerConfig.BACKOFF_BASE,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.service = service
        self.workers = workers
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep
        self._queue: asyncio.Queue[ExtractionJob] = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []

    def retry_delay(self, attempt: int) -> float:
        """Delay before re-queueing after a failed ``attempt``."""
        return self.backoff_base * 2 ** (attempt - 1)

    def start(self):
        """Start the worker tasks. Must be called inside a running loop."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._work(i), name=f"extraction-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Started {self.workers} extraction worker(s)")

    def enqueue(self, job: ExtractionJob):
        self._queue.put_nowait(job)

    def submit(
        self,
        content: bytes | str,
        declared_kind: str | DocumentKind,
        file_name: str | None = None,
        provider: str | None = None,
    ) -> str:
        """Submit a document and queue its run. Returns the run id."""
        run_id = self.service.submit_document(content, declared_kind, file_name)
        self.enqueue(ExtractionJob(run_id=run_id, provider=provider))
        return run_id

    async def join(self):
        """Wait until every queued job, retries included, has finished."""
        await self._queue.join()

    async def stop(self):
        """Cancel the workers. Jobs still queued are abandoned."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def _work(self, index: int):
        while True:
            job = await self._queue.get()
            try:
                await self._process(job)
            except Exception:
                logger.exception(f"Worker {index} lost job {job.run_id}")
            finally:
                self._queue.task_done()

    async def _process(self, job: ExtractionJob):
        result = await self.service.run(job.run_id, provider=job.provider)
        if self._should_retry(result, job):
            delay = self.retry_delay(job.attempt)
            logger.warning(
                f"Run {job.run_id} failed (attempt {job.attempt}/{self.max_attempts}), "
                f"retrying in {delay:.1f}s: {result.failure_reason}"
            )
            self.service.mark_retrying(job.run_id)
            await self._sleep(delay)
            self.enqueue(replace(job, attempt=job.attempt + 1))
            return

        self.service.release_document(job.run_id)
        logger.info(f"Run {job.run_id} finished: {result.status.value} after {job.attempt} attempt(s)")

    def _should_retry(self, result: ExtractionResult, job: ExtractionJob) -> bool:
        return result.status == RunStatus.FAILED and result.retryable and job.attempt < self.max_attempts
