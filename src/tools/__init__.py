"""Clients for the external services the pipeline depends on."""

from src.tools.completion import (
    CompletionClient,
    CompletionResult,
    ChatModelFactory,
    create_model,
)
from src.tools.web_search import WebSearchClient, SearchResponse
from src.tools.scraper import ScraperClient

__all__ = [
    # Completion service
    "CompletionClient",
    "CompletionResult",
    "ChatModelFactory",
    "create_model",
    # Web search
    "WebSearchClient",
    "SearchResponse",
    # Scraping
    "ScraperClient",
]
