"""Pipeline orchestrator: the entry point for running work items.

Drives the compiled pipeline graph for one work item at a time per id,
converts failures into a cancelled work item with an error stub, and runs
batches through the bounded worker pool.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from src.errors import InvalidTransitionError, log_error_with_context
from src.graphs.pipeline import PipelineStages, create_pipeline_graph
from src.memory.store import SourceStore
from src.nodes.academic import AcademicWorkGenerator
from src.nodes.content import ContentGenerator
from src.nodes.delivery import DeliveryStage
from src.nodes.outline import OutlineGenerator
from src.nodes.query_formulator import QueryFormulator
from src.nodes.scraping import ScrapeStage
from src.nodes.search import SearchStage
from src.nodes.source_selector import SourceSelector
from src.orders.sync import OrderSynchronizer, StoreOrderRepository
from src.state.enums import StageStatus, WorkItemStatus
from src.state.machine import WORK_ITEM_FAILURE, can_transition, reopen, transition
from src.state.models import (
    AcademicWork,
    BatchSummary,
    PipelineResult,
    SearchResultRecord,
    WorkItem,
)
from src.state.schema import create_initial_state
from src.tools.completion import CompletionClient
from src.tools.scraper import ScraperClient
from src.tools.web_search import WebSearchClient
from src.workers.pool import PipelineWorkerPool

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE = 1000


class PipelineOrchestrator:
    """Runs work items through the document generation graph."""

    def __init__(
        self,
        store: SourceStore,
        completion: CompletionClient,
        search_client: WebSearchClient,
        scraper_client: ScraperClient,
        synchronizer: OrderSynchronizer | None = None,
        *,
        scrape_delay: float | None = None,
        source_budget: int | None = None,
        concurrency: int | None = None,
        queue_size: int | None = None,
    ):
        self.store = store
        self.concurrency = concurrency
        self.queue_size = queue_size
        self.stages = PipelineStages(
            store=store,
            search=SearchStage(store, QueryFormulator(completion), search_client),
            scrape=ScrapeStage(store, scraper_client, delay=scrape_delay),
            select_sources=SourceSelector(store, completion),
            outline=OutlineGenerator(store, completion, source_budget),
            content=ContentGenerator(store, completion, source_budget),
            academic=AcademicWorkGenerator(store, completion, source_budget),
            delivery=DeliveryStage(
                store, synchronizer or OrderSynchronizer(StoreOrderRepository(store))
            ),
        )
        self.graph = create_pipeline_graph(self.stages)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _item_lock(self, work_item_id: str):
        """Serialize runs of one work item; the lock is dropped once unused."""
        lock = self._locks.setdefault(work_item_id, asyncio.Lock())
        self._lock_users[work_item_id] = self._lock_users.get(work_item_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[work_item_id] -= 1
            if not self._lock_users[work_item_id]:
                del self._lock_users[work_item_id]
                del self._locks[work_item_id]

    @classmethod
    def from_settings(cls, store: SourceStore | None = None) -> "PipelineOrchestrator":
        """Orchestrator wired to the configured external services."""
        store = store or SourceStore()
        return cls(store, CompletionClient(), WebSearchClient(), ScraperClient())

    async def run(self, work_item_id: str) -> PipelineResult:
        """
        Run the pipeline for one work item.

        Completed items return at once. Stages whose output is already
        stored are skipped.

        Raises:
            WorkItemNotFoundError: Unknown work item.
            InvalidTransitionError: The item is cancelled or errored.
            PipelineError: Any stage failure (the item is then cancelled).
        """
        async with self._item_lock(work_item_id):
            item = await self.store.require_work_item(work_item_id)
            if item.status == WorkItemStatus.COMPLETED:
                logger.info(f"PIPELINE: work item {item.id} already completed")
                return await self._result(item, [], [])
            if item.status in WORK_ITEM_FAILURE:
                raise InvalidTransitionError(
                    item.status.value, WorkItemStatus.IN_PROGRESS.value, item.id
                )

            if item.status == WorkItemStatus.PENDING:
                transition(item, WorkItemStatus.IN_PROGRESS)
                await self.store.save_work_item(item)
            logger.info(
                f"PIPELINE: running work item {item.id} ({item.content_kind.value}, "
                f"attempt {item.attempt})"
            )

            try:
                state = await self.graph.ainvoke(
                    create_initial_state(item.id, item.content_kind)
                )
            except Exception as e:
                await self._fail(item.id, e)
                raise

            item = await self.store.require_work_item(work_item_id)
            return await self._result(
                item, state.get("completed_stages", []), state.get("skipped_stages", [])
            )

    async def run_batch(
        self,
        work_item_ids: list[str],
        pool: PipelineWorkerPool | None = None,
    ) -> BatchSummary:
        """Run many work items with bounded concurrency."""
        if pool is not None:
            return await pool.run_batch(work_item_ids)
        async with PipelineWorkerPool(self.run, self.concurrency, self.queue_size) as own:
            return await own.run_batch(work_item_ids)

    async def reopen(self, work_item_id: str) -> WorkItem:
        """Start a new attempt for a cancelled or errored work item."""
        async with self._item_lock(work_item_id):
            item = await self.store.require_work_item(work_item_id)
            reopen(item)
            logger.info(f"PIPELINE: work item {item.id} reopened, attempt {item.attempt}")
            return await self.store.save_work_item(item)

    async def _fail(self, work_item_id: str, error: Exception) -> None:
        """Record a failed run: error stub, error message, cancelled status."""
        item = await self.store.require_work_item(work_item_id)
        message = str(error)[:MAX_ERROR_MESSAGE] or error.__class__.__name__
        log_error_with_context(
            error,
            stage=item.status.value,
            context={"work_item_id": item.id, "attempt": item.attempt},
        )

        if await self.store.get_search_result(item.id) is None:
            await self.store.save_search_result(
                SearchResultRecord(
                    work_item_id=item.id,
                    query="",
                    language=item.search_language,
                    status=StageStatus.FAILED,
                    error_message=message,
                )
            )

        item.error_message = message
        if can_transition(item.status, WorkItemStatus.CANCELLED):
            transition(item, WorkItemStatus.CANCELLED)
        await self.store.save_work_item(item)

    async def _result(
        self,
        item: WorkItem,
        completed: list[str],
        skipped: list[str],
    ) -> PipelineResult:
        characters = 0
        if item.is_academic:
            work = await self.store.get_outline(item.id)
            if isinstance(work, AcademicWork):
                characters = work.total_character_count
        else:
            content = await self.store.get_generated_content(item.id)
            if content is not None:
                characters = content.total_characters
        return PipelineResult(
            work_item_id=item.id,
            status=item.status,
            content_kind=item.content_kind,
            completed_stages=completed,
            skipped_stages=skipped,
            character_count=characters,
        )
