"""Bounded worker pool for pipeline runs.

Work item ids go into an ``asyncio.Queue`` of fixed size, drained by a fixed
number of worker tasks. ``submit`` waits for queue space; ``submit_nowait``
raises ``QueueFullError`` instead. Each submission returns a future resolved
with the pipeline result or the pipeline exception.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Coroutine

from src.config import settings
from src.errors import QueueFullError
from src.state.models import BatchItemResult, BatchSummary

logger = logging.getLogger(__name__)

Runner = Callable[[str], Awaitable[Any]]


class PipelineWorkerPool:
    """Fixed-size pool of asyncio workers over a bounded queue."""

    def __init__(
        self,
        runner: Runner,
        concurrency: int | None = None,
        queue_size: int | None = None,
    ):
        """
        Args:
            runner: Coroutine function running one work item by id.
            concurrency: Number of worker tasks.
            queue_size: Maximum number of waiting work items.
        """
        self.runner = runner
        self.concurrency = max(1, concurrency or settings.max_concurrent_pipelines)
        self.queue_size = max(1, queue_size or settings.pipeline_queue_size)
        self._queue: asyncio.Queue | None = None
        self._workers: list[asyncio.Task] = []
        self.active = 0
        self.peak_active = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue else 0

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self._workers = [
            asyncio.create_task(self._worker(n), name=f"pipeline-worker-{n}")
            for n in range(self.concurrency)
        ]
        logger.info(
            f"POOL: started {self.concurrency} workers, queue size {self.queue_size}"
        )

    async def stop(self, drain: bool = True) -> None:
        """Stop the workers, after the queue is drained when ``drain`` is set."""
        if not self.running:
            return
        if drain:
            await self._queue.join()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("POOL: stopped")

    async def __aenter__(self) -> "PipelineWorkerPool":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop(drain=exc_type is None)

    async def submit(self, work_item_id: str) -> asyncio.Future:
        """Queue a work item, waiting while the queue is full."""
        await self.start()
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((work_item_id, future))
        return future

    def submit_nowait(self, work_item_id: str) -> asyncio.Future:
        """
        Queue a work item without waiting.

        Raises:
            QueueFullError: The queue is at capacity.
            RuntimeError: The pool is not started.
        """
        if not self.running:
            raise RuntimeError("Worker pool is not started")
        future = asyncio.get_running_loop().create_future()
        try:
            self._queue.put_nowait((work_item_id, future))
        except asyncio.QueueFull:
            raise QueueFullError(self.queue_size) from None
        return future

    async def run_batch(self, work_item_ids: list[str]) -> BatchSummary:
        """Run work items through the pool; one failure never stops the others."""
        futures = [await self.submit(work_item_id) for work_item_id in work_item_ids]
        outcomes = await asyncio.gather(*futures, return_exceptions=True)

        results = []
        for work_item_id, outcome in zip(work_item_ids, outcomes):
            if isinstance(outcome, BaseException):
                results.append(
                    BatchItemResult(work_item_id=work_item_id, success=False, error=str(outcome))
                )
            else:
                results.append(
                    BatchItemResult(
                        work_item_id=work_item_id,
                        success=True,
                        status=getattr(outcome, "status", None),
                    )
                )
        summary = BatchSummary.from_results(results)
        logger.info(
            f"POOL: batch of {summary.total} done, {summary.succeeded} succeeded, "
            f"{summary.failed} failed"
        )
        return summary

    async def _worker(self, number: int) -> None:
        while True:
            work_item_id, future = await self._queue.get()
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
            try:
                result = await self.runner(work_item_id)
            except asyncio.CancelledError:
                future.cancel()
                raise
            except Exception as e:
                logger.warning(f"POOL: worker {number} failed on {work_item_id}: {e}")
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self.active -= 1
                self._queue.task_done()


class BackgroundLoop:
    """An asyncio event loop running in a daemon thread.

    Lets synchronous code (the Flask server) hand coroutines to a long-lived
    loop that owns the worker pool.
    """

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self.loop.run_forever, name="pipeline-loop", daemon=True
        )
        self._thread.start()

    def run(self, coro: Coroutine, timeout: float | None = None) -> Any:
        """Run a coroutine on the loop and wait for its result."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout)

    def close(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
