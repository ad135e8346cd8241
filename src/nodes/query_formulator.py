"""SEARCH QUERY FORMULATOR: turn a work item into one web search query.

The query model answers with a short query; the answer is cleaned of the
prefixes, quotes and bullets models like to add, capped at eight words, and
extended with scholarly operators for academic requests.
"""

import logging
import re

from src.config import settings
from src.errors import APIError, FormulationError
from src.nodes.intake import is_academic_request
from src.state.models import WorkItem
from src.tools.completion import CompletionClient

logger = logging.getLogger(__name__)

MAX_QUERY_WORDS = 8
FALLBACK_QUERY_WORDS = 5
SCHOLARLY_OPERATORS = "(filetype:pdf OR site:scholar.google.com OR site:researchgate.net)"

QUERY_PREFIX = re.compile(
    r"^\s*(?:[-*•]\s*|\d+[.)]\s*)?"
    r"(?:(?:google\s+)?(?:search\s+)?query|zapytanie(?:\s+wyszukiwania)?|answer|odpowiedź|search)"
    r"\s*:\s*",
    re.IGNORECASE,
)
BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
QUOTES = "\"'`“”„‘’«»"

QUERY_PROMPT = """You are an expert at writing Google search queries.

Write ONE Google search query that will find the best sources for the text described below.

TOPIC: {topic}
CONTENT TYPE: {content_type}
GUIDELINES: {guidelines}
KEYWORDS: {keywords}
LANGUAGE OF THE SOURCES: {language}

Rules:
- at most {max_words} words
- written in the language of the sources
- no quotation marks, no explanations, no prefixes like "Query:"

Reply with the query only."""


def clean_query(raw: str) -> str:
    """Reduce a model answer to a bare query of at most eight words."""
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    if not lines:
        return ""
    query = QUERY_PREFIX.sub("", lines[0])
    query = BULLET.sub("", query)
    for quote in QUOTES:
        query = query.replace(quote, "")
    words = query.split()
    return " ".join(words[:MAX_QUERY_WORDS])


def simplified_query(topic: str, max_words: int = FALLBACK_QUERY_WORDS) -> str:
    """First words of the raw topic, used when the formulated query finds nothing."""
    words = [w.strip(QUOTES + ",.;:!?") for w in topic.split()]
    return " ".join([w for w in words if w][:max_words])


class QueryFormulator:
    """Formulate a search query for a work item."""

    def __init__(self, completion: CompletionClient, model: str | None = None):
        self.completion = completion
        self.model = model or settings.query_model

    def build_prompt(self, item: WorkItem) -> str:
        return QUERY_PROMPT.format(
            topic=item.topic,
            content_type=item.content_type,
            guidelines=item.guidelines or "none",
            keywords=", ".join(item.keywords) or "none",
            language=item.search_language,
            max_words=MAX_QUERY_WORDS,
        )

    async def formulate(self, item: WorkItem) -> str:
        """
        Ask the query model for a query and clean it up.

        Raises:
            FormulationError: The model failed or produced an empty query.
        """
        prompt = self.build_prompt(item)
        try:
            result = await self.completion.complete(
                prompt,
                model=self.model,
                max_tokens=1000,
                temperature=0.3,
            )
        except APIError as e:
            raise FormulationError(
                f"Query formulation failed: {e.message}", topic=item.topic
            ) from e

        query = clean_query(result.text)
        if not query:
            raise FormulationError("Query model returned an empty query", topic=item.topic)

        if is_academic_request(item.content_type, item.content_kind):
            query = f"{query} {SCHOLARLY_OPERATORS}"

        logger.info(f"QUERY: work item {item.id} -> '{query}'")
        return query
