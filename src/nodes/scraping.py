"""SCRAPE node: fetch the text of every candidate URL.

URLs are scraped one at a time in source order (customer links first, then
search results) with a fixed delay between requests. A failing URL is
recorded as failed and never aborts the batch. Sources already scraped
successfully are never scraped again.
"""

import asyncio
import logging
from datetime import datetime, timezone

from src.config import settings
from src.errors import NoUsableSourcesError, ScrapeError, WorkflowError
from src.memory.store import SourceStore
from src.state.enums import ScrapeStatus
from src.state.models import ScrapedSource, WorkItem
from src.tools.scraper import ScraperClient

logger = logging.getLogger(__name__)


class ScrapeStage:
    """Sequential scraping of customer links and search results."""

    name = "scrape"

    def __init__(
        self,
        store: SourceStore,
        client: ScraperClient,
        delay: float | None = None,
    ):
        self.store = store
        self.client = client
        self.delay = settings.scrape_delay if delay is None else delay

    async def target_urls(self, item: WorkItem) -> list[str]:
        """Customer links followed by search result links, without duplicates."""
        search = await self.store.get_search_result(item.id)
        if search is None:
            raise WorkflowError(
                f"No search results for work item {item.id}", work_item_id=item.id, stage="scrape"
            )
        urls: list[str] = []
        for url in [*item.source_links, *search.links]:
            if url and url not in urls:
                urls.append(url)
        return urls

    async def is_complete(self, item: WorkItem) -> bool:
        """Every target URL has a final record and at least one succeeded."""
        search = await self.store.get_search_result(item.id)
        if search is None:
            return False
        sources = {s.url: s for s in await self.store.list_scraped_sources(item.id)}
        urls = await self.target_urls(item)
        final = (ScrapeStatus.COMPLETED, ScrapeStatus.FAILED)
        return (
            all(url in sources and sources[url].status in final for url in urls)
            and any(s.status == ScrapeStatus.COMPLETED for s in sources.values())
        )

    async def run(self, item: WorkItem) -> list[ScrapedSource]:
        """
        Scrape all target URLs of a work item.

        Returns:
            Completed sources in source order.

        Raises:
            NoUsableSourcesError: No URL could be scraped.
        """
        urls = await self.target_urls(item)
        existing = {s.id: s for s in await self.store.list_scraped_sources(item.id)}

        attempted = 0
        async with self.client.session() as http:
            for position, url in enumerate(urls):
                source_id = ScrapedSource.source_id(item.id, url)
                previous = existing.get(source_id)
                if previous is not None and previous.status == ScrapeStatus.COMPLETED:
                    continue

                if attempted:
                    await asyncio.sleep(self.delay)
                attempted += 1

                source = ScrapedSource(
                    id=source_id,
                    work_item_id=item.id,
                    url=url,
                    position=position,
                    status=ScrapeStatus.SCRAPING,
                )
                await self.store.save_scraped_source(source)

                try:
                    text = await self.client.scrape(url, http)
                except ScrapeError as e:
                    logger.warning(f"SCRAPE: {url} failed: {e.message}")
                    source.status = ScrapeStatus.FAILED
                    source.error_message = e.message
                else:
                    source.text = text
                    source.text_length = len(text)
                    source.status = ScrapeStatus.COMPLETED
                source.scraped_at = datetime.now(timezone.utc)
                await self.store.save_scraped_source(source)

        completed = await self.store.list_completed_sources(item.id)
        logger.info(
            f"SCRAPE: work item {item.id}: {len(completed)}/{len(urls)} sources usable"
        )
        if not completed:
            raise NoUsableSourcesError(item.id, len(urls))
        return completed
