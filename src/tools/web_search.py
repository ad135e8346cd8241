"""Web search client for the Google Custom Search JSON API.

Results are fetched in pages of up to 10 and capped at 15 per query, with a
fixed delay between page requests. Collection stops early on a short page
or on a page-level error; pages collected before the error are kept.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from functools import partial
from typing import Any, AsyncIterator

import httpx

from src.config import settings
from src.errors import APIError, RateLimitError, RetryPolicy, create_search_retry_policy, retry_async
from src.state.models import SearchResultEntry

logger = logging.getLogger(__name__)

GOOGLE_MAX_PAGE_SIZE = 10


@dataclass
class SearchResponse:
    """Results collected for one query."""

    query: str
    results: list[SearchResultEntry] = field(default_factory=list)
    total_results: str = "0"
    search_time: float = 0.0
    pages_fetched: int = 0
    error: str | None = None


def _parse_item(item: dict[str, Any]) -> SearchResultEntry | None:
    link = item.get("link")
    if not link:
        return None
    return SearchResultEntry(
        title=item.get("title", ""),
        link=link,
        snippet=item.get("snippet", ""),
        display_link=item.get("displayLink", ""),
    )


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    try:
        return float(value) if value else None
    except ValueError:
        return None


class WebSearchClient:
    """
    Paginated search against the Google Custom Search API.

    Example:
        ```python
        client = WebSearchClient()
        response = await client.search("renewable energy poland", "pl")
        ```
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        api_key: str | None = None,
        cx: str | None = None,
        base_url: str | None = None,
        page_size: int | None = None,
        result_cap: int | None = None,
        page_delay: float | None = None,
        retry_policy: RetryPolicy | None = None,
    ):
        self._http_client = http_client
        self.api_key = api_key if api_key is not None else settings.google_api_key
        self.cx = cx if cx is not None else settings.google_cx
        self.base_url = base_url or settings.google_search_url
        self.page_size = min(page_size or settings.search_page_size, GOOGLE_MAX_PAGE_SIZE)
        self.result_cap = result_cap or settings.search_result_cap
        self.page_delay = settings.search_page_delay if page_delay is None else page_delay
        self.retry_policy = retry_policy or create_search_retry_policy()

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                yield client

    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        query: str,
        language: str,
        start: int,
        num: int,
    ) -> dict[str, Any]:
        params = {
            "key": self.api_key,
            "cx": self.cx,
            "q": query,
            "num": num,
            "start": start,
            "hl": language,
        }
        response = await client.get(self.base_url, params=params)
        if response.status_code == 429:
            raise RateLimitError(
                "Search API rate limit exceeded",
                service="google",
                retry_after=_retry_after(response),
            )
        if response.status_code >= 400:
            raise APIError(
                f"Search API returned HTTP {response.status_code}",
                service="google",
                status_code=response.status_code,
                response_body=response.text,
            )
        return response.json()

    async def search(self, query: str, language: str) -> SearchResponse:
        """
        Run one query, collecting up to ``result_cap`` results.

        Args:
            query: Search query.
            language: Two-letter interface language (``hl``).

        Returns:
            SearchResponse; ``error`` is set when a page request failed.
        """
        response = SearchResponse(query=query)
        start = 1

        async with self._client() as client:
            while len(response.results) < self.result_cap:
                if response.pages_fetched:
                    await asyncio.sleep(self.page_delay)

                num = min(self.page_size, self.result_cap - len(response.results))
                try:
                    data = await retry_async(
                        self.retry_policy,
                        partial(self._fetch_page, client, query, language, start, num),
                        description=f"Search page start={start}",
                    )
                except (APIError, httpx.HTTPError, ValueError) as e:
                    logger.warning(f"SEARCH: page start={start} failed for '{query}': {e}")
                    response.error = str(e)
                    break

                response.pages_fetched += 1
                info = data.get("searchInformation") or {}
                response.total_results = str(info.get("totalResults", response.total_results))
                response.search_time = float(info.get("searchTime", response.search_time) or 0.0)

                items = data.get("items") or []
                for item in items[:num]:
                    entry = _parse_item(item)
                    if entry is not None:
                        response.results.append(entry)

                if len(items) < num:
                    break
                start += len(items)

        logger.info(
            f"SEARCH: '{query}' -> {len(response.results)} results "
            f"in {response.pages_fetched} page(s)"
        )
        return response
