"""Fixtures for integration tests.

Provides a scripted chat model, mock search and scraper services on an
``httpx.MockTransport`` and a factory for fully wired orchestrators.
"""

import json
import re
from typing import Any, Callable

import httpx
import pytest
from langchain_core.messages import SystemMessage

from src.errors import NO_RETRY_POLICY
from src.graphs.orchestrator import PipelineOrchestrator
from src.memory.store import SourceStore
from src.orders.sync import OrderNotifier, OrderSynchronizer, StoreOrderRepository
from src.state.models import Order, OrderItem
from src.tools.completion import CompletionClient
from src.tools.scraper import ScraperClient
from src.tools.web_search import WebSearchClient

SEARCH_URL = "https://search.test/customsearch/v1"
SCRAPER_URL = "http://scraper.test"


# =============================================================================
# Mock LLM
# =============================================================================


class MockLLMResponse:
    """Mock response from Claude API."""

    def __init__(self, content: str):
        self.content = content
        self.usage_metadata = {"input_tokens": 200, "output_tokens": 100}
        self.response_metadata = {"stop_reason": "end_turn"}


def _words(count: int) -> str:
    return " ".join(["energia"] * max(1, count))


def default_responder(system: str, prompt: str) -> str:
    """Plausible answers keyed on the prompt of each pipeline step."""
    if "Google search queries" in prompt:
        return "Query: odnawialne źródła energii Polska"
    if "You are choosing sources" in prompt:
        return "2, 1, 4"
    if "content strategist" in system:
        count = int(re.search(r"exactly (\d+) headers", prompt).group(1))
        return "\n".join(
            f"<h2>Section {i}</h2>\n<p>What section {i} covers.</p>" for i in range(1, count + 1)
        )
    if "professional copywriter" in system:
        target = int(re.search(r"total length (\d+) characters", prompt).group(1))
        headers = re.findall(r"<h2>(.*?)</h2>", prompt)
        per_section = target // max(1, len(headers))
        body = _words(per_section // 8)
        return "\n".join(f"<h2>{h}</h2>\n<p>{body}</p>" for h in headers)
    if "thesis supervisor" in system:
        count = int(re.search(r"exactly (\d+) chapters", prompt).group(1))
        return "\n".join(
            f"<h2>CHAPTER {n}: Chapter title {n}</h2>\n"
            f"<h3>{n}.1. First part of {n}</h3>\n<p>Description.</p>\n"
            f"<h3>{n}.2. Second part of {n}</h3>\n<p>Description.</p>"
            for n in range(1, count + 1)
        )
    if "chapter by chapter" in system:
        number, title = re.search(r"Write CHAPTER (\d+): (.+)", prompt).groups()
        return (
            f"<h2>CHAPTER {number}: {title}</h2>\n"
            f"<h3>{number}.1. First part</h3>\n"
            f"<p>Chapter {number} text [Kowalski, 2019: 45; Nowak, 2021: 12]. "
            f"More text [Adamczyk, 2018].</p>"
        )
    if "introduction of a thesis" in system:
        return "<h2>Introduction</h2>\n<p>The aim of the work [Kowalski, 2019: 3].</p>"
    if "conclusion of a thesis" in system:
        return "<h2>Conclusion</h2>\n<p>The aim was achieved.</p>"
    if "academic librarian" in system:
        return (
            "<ol>\n<li>Nowak, J. (2021). Energy markets. Kraków: Znak.</li>\n"
            "<li>Kowalski, A. (2019). Renewable energy. Warszawa: PWN.</li>\n"
            "<li>Adamczyk, B. (2018). Solar power. Poznań: UAM.</li>\n</ol>"
        )
    return "Mock answer."


class MockChatModel:
    """Mock Anthropic Chat model answering through a responder function."""

    def __init__(self, responder: Callable[[str, str], str] = default_responder):
        self.responder = responder
        self.call_count = 0
        self.calls: list[dict] = []

    async def ainvoke(self, messages: list, **kwargs) -> MockLLMResponse:
        system = messages[0].content if isinstance(messages[0], SystemMessage) else ""
        prompt = messages[-1].content
        self.calls.append({"system": system, "prompt": prompt})
        self.call_count += 1
        return MockLLMResponse(self.responder(system, prompt))


@pytest.fixture
def mock_llm():
    """Create a mock LLM for testing."""
    return MockChatModel()


# =============================================================================
# Mock HTTP services
# =============================================================================


def make_service_handler(
    links: list[str],
    failing_urls: set[str] | None = None,
    empty_queries: set[str] | None = None,
) -> Callable[[httpx.Request], httpx.Response]:
    """One MockTransport handler for both the search API and the scraper."""
    failing_urls = failing_urls or set()
    empty_queries = empty_queries or set()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "search.test":
            params = request.url.params
            if params["q"] in empty_queries:
                return httpx.Response(200, json={"searchInformation": {"totalResults": "0"}})
            start = int(params["start"])
            num = int(params["num"])
            page = links[start - 1:start - 1 + num]
            return httpx.Response(200, json={
                "searchInformation": {"totalResults": str(len(links)), "searchTime": 0.12},
                "items": [
                    {"title": f"Result {url}", "link": url, "snippet": "...", "displayLink": "x"}
                    for url in page
                ],
            })
        if request.url.host == "scraper.test":
            url = json.loads(request.content)["url"]
            if url in failing_urls:
                return httpx.Response(500, json={"error": "blocked"})
            return httpx.Response(200, json={"text": f"Full text scraped from {url}. " * 20})
        return httpx.Response(404)

    return handler


class RecordingNotifier(OrderNotifier):
    """Notifier that records completed orders."""

    def __init__(self):
        self.completed: list[Order] = []

    async def order_completed(self, order: Order) -> None:
        self.completed.append(order)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def build_orchestrator(notifier):
    """Factory fixture for an orchestrator wired to mock services."""
    def _create(
        store: SourceStore,
        llm: Any = None,
        links: list[str] | None = None,
        failing_urls: set[str] | None = None,
        empty_queries: set[str] | None = None,
        concurrency: int = 2,
    ) -> PipelineOrchestrator:
        llm = llm or MockChatModel()
        links = links if links is not None else [f"https://site{i}.test/a" for i in range(1, 6)]
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(
                make_service_handler(links, failing_urls, empty_queries)
            )
        )
        return PipelineOrchestrator(
            store,
            CompletionClient(lambda name, temperature, max_tokens: llm),
            WebSearchClient(
                http,
                api_key="key",
                cx="cx",
                base_url=SEARCH_URL,
                page_delay=0,
                retry_policy=NO_RETRY_POLICY,
            ),
            ScraperClient(http, base_url=SCRAPER_URL),
            OrderSynchronizer(StoreOrderRepository(store), notifier),
            scrape_delay=0,
            concurrency=concurrency,
        )
    return _create


@pytest.fixture
def make_order():
    """Factory fixture for an order with one item per content type."""
    def _create(*content_types: str, length: int = 6000) -> Order:
        return Order(
            order_number="ZAM-1001",
            user_id="user-1",
            user_email="customer@example.com",
            items=[
                OrderItem(
                    topic=f"Odnawialne źródła energii w Polsce {n}",
                    length=length,
                    content_type=content_type,
                    language="polski",
                )
                for n, content_type in enumerate(content_types, start=1)
            ],
        )
    return _create
