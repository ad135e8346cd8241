"""SEARCH node: formulate a query and collect web search results.

If the formulated query finds nothing, the search is retried once with the
first five words of the raw topic. A search result record is persisted
either way; zero results after the retry fail the stage.
"""

import logging
from datetime import datetime, timezone

from src.errors import NoSearchResultsError
from src.memory.store import SourceStore
from src.nodes.query_formulator import QueryFormulator, simplified_query
from src.state.enums import StageStatus
from src.state.models import SearchResultRecord, WorkItem
from src.tools.web_search import WebSearchClient

logger = logging.getLogger(__name__)


class SearchStage:
    """Query formulation plus paginated web search."""

    name = "search"

    def __init__(
        self,
        store: SourceStore,
        formulator: QueryFormulator,
        client: WebSearchClient,
    ):
        self.store = store
        self.formulator = formulator
        self.client = client

    async def is_complete(self, item: WorkItem) -> bool:
        record = await self.store.get_search_result(item.id)
        return record is not None and record.status == StageStatus.COMPLETED

    async def run(self, item: WorkItem) -> SearchResultRecord:
        """
        Search for sources for a work item.

        Raises:
            FormulationError: No query could be formulated.
            NoSearchResultsError: Both queries returned zero results.
        """
        query = await self.formulator.formulate(item)
        response = await self.client.search(query, item.search_language)

        used_fallback = False
        fallback = None
        if not response.results:
            fallback = simplified_query(item.topic)
            if fallback and fallback != query:
                logger.info(f"SEARCH: no results for '{query}', retrying with '{fallback}'")
                used_fallback = True
                response = await self.client.search(fallback, item.search_language)

        record = SearchResultRecord(
            work_item_id=item.id,
            query=response.query,
            language=item.search_language,
            results=response.results,
            total_results=response.total_results,
            search_time=response.search_time,
            used_fallback_query=used_fallback,
        )

        if not record.results:
            record.status = StageStatus.FAILED
            record.error_message = response.error or "No search results"
            await self.store.save_search_result(record)
            raise NoSearchResultsError(query, fallback_query=fallback)

        record.status = StageStatus.COMPLETED
        record.completed_at = datetime.now(timezone.utc)
        await self.store.save_search_result(record)
        logger.info(f"SEARCH: work item {item.id} has {len(record.results)} results")
        return record
