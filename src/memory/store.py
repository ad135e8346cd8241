"""Source store: persistence for every pipeline record.

The store enables:
- Persisting work items, search results, scraped sources, selection
  audit records, outlines, generated content and orders
- Namespaced storage (one namespace per record kind, scraped sources
  additionally namespaced per work item)
- Resuming a pipeline from whatever records already exist

Records are pydantic models serialized with ``model_dump(mode="json")``
into a LangGraph ``BaseStore``. The default backend is ``InMemoryStore``;
any other ``BaseStore`` (e.g. ``PostgresStore``) can be passed in.
"""

import logging
from enum import Enum
from typing import Any, TypeVar

from langgraph.store.base import BaseStore
from langgraph.store.memory import InMemoryStore
from pydantic import BaseModel

from src.errors import WorkItemNotFoundError
from src.state.enums import ScrapeStatus
from src.state.models import (
    OUTLINE_ADAPTER,
    GeneratedContent,
    Order,
    Outline,
    ScrapedSource,
    SearchResultRecord,
    SourceSelectionRecord,
    WorkItem,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# BaseStore.search defaults to 10 results
SEARCH_LIMIT = 10_000


class StoreNamespace(str, Enum):
    """Namespaces for the record kinds held in the store."""

    WORK_ITEMS = "work_items"
    SEARCH_RESULTS = "search_results"
    SCRAPED_SOURCES = "scraped_sources"    # + work item id
    SOURCE_SELECTIONS = "source_selections"
    OUTLINES = "outlines"                  # generic outlines and academic works
    GENERATED_CONTENTS = "generated_contents"
    ORDERS = "orders"


def get_source_store() -> InMemoryStore:
    """
    Get an in-memory store backend.

    Note: For production, use a persistent store like PostgresStore.

    Returns:
        InMemoryStore instance.
    """
    return InMemoryStore()


class SourceStore:
    """
    Typed access to pipeline records on top of a LangGraph store.

    Every record is keyed by its work item id, except scraped sources
    (keyed by source id inside a per-work-item namespace) and orders
    (keyed by order id).
    """

    def __init__(self, store: BaseStore | None = None):
        self.store = store or get_source_store()

    # -------------------------------------------------------------------------
    # Generic helpers
    # -------------------------------------------------------------------------

    async def _put(self, namespace: tuple[str, ...], key: str, record: BaseModel) -> None:
        await self.store.aput(namespace, key, record.model_dump(mode="json"))

    async def _get_value(self, namespace: tuple[str, ...], key: str) -> dict[str, Any] | None:
        item = await self.store.aget(namespace, key)
        return item.value if item is not None else None

    async def _get(self, namespace: tuple[str, ...], key: str, model: type[M]) -> M | None:
        value = await self._get_value(namespace, key)
        return model.model_validate(value) if value is not None else None

    async def _list(self, namespace: tuple[str, ...], model: type[M]) -> list[M]:
        items = await self.store.asearch(namespace, limit=SEARCH_LIMIT)
        return [model.model_validate(item.value) for item in items]

    # -------------------------------------------------------------------------
    # Work items
    # -------------------------------------------------------------------------

    async def save_work_item(self, item: WorkItem) -> WorkItem:
        await self._put((StoreNamespace.WORK_ITEMS.value,), item.id, item)
        return item

    async def get_work_item(self, work_item_id: str) -> WorkItem | None:
        return await self._get((StoreNamespace.WORK_ITEMS.value,), work_item_id, WorkItem)

    async def require_work_item(self, work_item_id: str) -> WorkItem:
        """Load a work item or raise ``WorkItemNotFoundError``."""
        item = await self.get_work_item(work_item_id)
        if item is None:
            raise WorkItemNotFoundError(work_item_id)
        return item

    async def list_work_items(self) -> list[WorkItem]:
        items = await self._list((StoreNamespace.WORK_ITEMS.value,), WorkItem)
        return sorted(items, key=lambda i: i.created_at)

    # -------------------------------------------------------------------------
    # Search results
    # -------------------------------------------------------------------------

    async def save_search_result(self, record: SearchResultRecord) -> SearchResultRecord:
        await self._put((StoreNamespace.SEARCH_RESULTS.value,), record.work_item_id, record)
        return record

    async def get_search_result(self, work_item_id: str) -> SearchResultRecord | None:
        return await self._get(
            (StoreNamespace.SEARCH_RESULTS.value,), work_item_id, SearchResultRecord
        )

    # -------------------------------------------------------------------------
    # Scraped sources
    # -------------------------------------------------------------------------

    async def save_scraped_source(self, source: ScrapedSource) -> ScrapedSource:
        await self._put(
            (StoreNamespace.SCRAPED_SOURCES.value, source.work_item_id), source.id, source
        )
        return source

    async def get_scraped_source(self, work_item_id: str, source_id: str) -> ScrapedSource | None:
        return await self._get(
            (StoreNamespace.SCRAPED_SOURCES.value, work_item_id), source_id, ScrapedSource
        )

    async def list_scraped_sources(self, work_item_id: str) -> list[ScrapedSource]:
        """All scraped sources of a work item, in source order."""
        sources = await self._list(
            (StoreNamespace.SCRAPED_SOURCES.value, work_item_id), ScrapedSource
        )
        return sorted(sources, key=lambda s: s.position)

    async def list_completed_sources(self, work_item_id: str) -> list[ScrapedSource]:
        sources = await self.list_scraped_sources(work_item_id)
        return [s for s in sources if s.status == ScrapeStatus.COMPLETED]

    async def list_selected_sources(self, work_item_id: str) -> list[ScrapedSource]:
        sources = await self.list_scraped_sources(work_item_id)
        return [s for s in sources if s.selected_for_generation]

    # -------------------------------------------------------------------------
    # Source selection
    # -------------------------------------------------------------------------

    async def save_selection(self, record: SourceSelectionRecord) -> SourceSelectionRecord:
        await self._put((StoreNamespace.SOURCE_SELECTIONS.value,), record.work_item_id, record)
        return record

    async def get_selection(self, work_item_id: str) -> SourceSelectionRecord | None:
        return await self._get(
            (StoreNamespace.SOURCE_SELECTIONS.value,), work_item_id, SourceSelectionRecord
        )

    # -------------------------------------------------------------------------
    # Outlines (generic outline or academic work)
    # -------------------------------------------------------------------------

    async def save_outline(self, outline: Outline) -> Outline:
        await self._put((StoreNamespace.OUTLINES.value,), outline.work_item_id, outline)
        return outline

    async def get_outline(self, work_item_id: str) -> Outline | None:
        """Load the outline, dispatching on its ``kind`` discriminant."""
        value = await self._get_value((StoreNamespace.OUTLINES.value,), work_item_id)
        return OUTLINE_ADAPTER.validate_python(value) if value is not None else None

    # -------------------------------------------------------------------------
    # Generated content
    # -------------------------------------------------------------------------

    async def save_generated_content(self, content: GeneratedContent) -> GeneratedContent:
        await self._put(
            (StoreNamespace.GENERATED_CONTENTS.value,), content.work_item_id, content
        )
        return content

    async def get_generated_content(self, work_item_id: str) -> GeneratedContent | None:
        return await self._get(
            (StoreNamespace.GENERATED_CONTENTS.value,), work_item_id, GeneratedContent
        )

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def save_order(self, order: Order) -> Order:
        await self._put((StoreNamespace.ORDERS.value,), order.id, order)
        return order

    async def get_order(self, order_id: str) -> Order | None:
        return await self._get((StoreNamespace.ORDERS.value,), order_id, Order)
