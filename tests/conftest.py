"""Test configuration and fixtures."""

import pytest
from langgraph.store.memory import InMemoryStore

from src.memory.store import SourceStore
from src.state.enums import ContentKind, ScrapeStatus
from src.state.models import ScrapedSource, WorkItem
from src.tools.completion import CompletionResult


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def store() -> SourceStore:
    """Source store over a fresh in-memory langgraph store."""
    return SourceStore(InMemoryStore())


@pytest.fixture
def make_work_item():
    """Factory fixture for work items with sensible defaults."""
    def _create(**overrides) -> WorkItem:
        data = {
            "topic": "Odnawialne źródła energii w Polsce",
            "target_length": 6000,
            "content_type": "artykuł",
            "content_kind": ContentKind.ARTICLE,
            "language": "polski",
            "search_language": "pl",
        }
        data.update(overrides)
        return WorkItem(**data)
    return _create


@pytest.fixture
def make_source():
    """Factory fixture for scraped sources."""
    def _create(
        work_item_id: str,
        url: str,
        position: int = 0,
        text: str = "Source text about renewable energy.",
        status: ScrapeStatus = ScrapeStatus.COMPLETED,
        selected: bool = False,
    ) -> ScrapedSource:
        return ScrapedSource(
            id=ScrapedSource.source_id(work_item_id, url),
            work_item_id=work_item_id,
            url=url,
            position=position,
            text=text if status == ScrapeStatus.COMPLETED else "",
            text_length=len(text) if status == ScrapeStatus.COMPLETED else 0,
            status=status,
            selected_for_generation=selected,
        )
    return _create


class FakeCompletion:
    """Stand-in for CompletionClient returning scripted answers in order."""

    def __init__(self, answers: list | None = None):
        self.answers = list(answers or ["ok"])
        self.calls: list[dict] = []

    async def complete(self, prompt, *, system=None, model=None, max_tokens=4096, temperature=0.7):
        self.calls.append({
            "prompt": prompt,
            "system": system,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        answer = self.answers[min(len(self.calls) - 1, len(self.answers) - 1)]
        if isinstance(answer, Exception):
            raise answer
        return CompletionResult(
            text=answer,
            input_tokens=120,
            output_tokens=80,
            duration_ms=15,
            model=model or "test-model",
        )


@pytest.fixture
def fake_completion():
    """Factory fixture for scripted completion clients."""
    def _create(answers: list | None = None) -> FakeCompletion:
        return FakeCompletion(answers)
    return _create
