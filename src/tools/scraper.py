"""Client for the scraping microservice.

The service exposes ``POST /scrape`` taking ``{"url": ...}`` and answering
``{"text": ...}``. Every request carries a 30 second timeout; failures are
reported as ``ScrapeError`` so the caller can record them per URL.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from src.config import settings
from src.errors import ScrapeError

logger = logging.getLogger(__name__)


class ScraperClient:
    """Async client for the scraping microservice."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self._http_client = http_client
        self.base_url = (base_url or settings.scraper_url).rstrip("/")
        self.timeout = settings.scrape_timeout if timeout is None else timeout

    @asynccontextmanager
    async def session(self) -> AsyncIterator[httpx.AsyncClient]:
        """Reuse the injected client or open one for a batch of requests."""
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def scrape(self, url: str, client: httpx.AsyncClient | None = None) -> str:
        """
        Scrape one URL and return its text.

        Raises:
            ScrapeError: Timeout, transport failure, non-200 answer or empty text.
        """
        if client is None:
            async with self.session() as session:
                return await self.scrape(url, session)

        try:
            response = await client.post(
                f"{self.base_url}/scrape",
                json={"url": url},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ScrapeError(f"Scrape timed out after {self.timeout:.0f}s", url=url) from e
        except httpx.HTTPError as e:
            raise ScrapeError(f"Scrape request failed: {e}", url=url) from e

        if response.status_code != 200:
            raise ScrapeError(
                f"Scraper returned HTTP {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ScrapeError("Scraper returned invalid JSON", url=url) from e

        text = (data.get("text") or "").strip() if isinstance(data, dict) else ""
        if not text:
            raise ScrapeError("Scraper returned no text", url=url)
        return text
