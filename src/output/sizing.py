"""Sizing helpers: header counts, length budgets and source limiting."""

import math
from dataclasses import dataclass

from src.config import settings
from src.state.models import ScrapedSource, UsedSource

MIN_HEADERS = 3
MAX_HEADERS = 20
CHARS_PER_HEADER = 2000

# Accepted deviation from the target length
LENGTH_TOLERANCE = 0.2

SNIPPET_LENGTH = 300


def header_count(target_length: int) -> int:
    """Number of <h2> headers for a generic document.

    ``round(L / 2000)`` (halves rounded up) clamped to [3, 20].
    """
    rounded = math.floor(target_length / CHARS_PER_HEADER + 0.5)
    return min(MAX_HEADERS, max(MIN_HEADERS, rounded))


def per_section_budget(target_length: int, headers: int) -> int:
    """Characters available to each section."""
    return target_length // max(headers, 1)


def length_bounds(target_length: int, tolerance: float = LENGTH_TOLERANCE) -> tuple[int, int]:
    """Inclusive (min, max) character bounds around a target."""
    return (
        int(target_length * (1 - tolerance)),
        int(math.ceil(target_length * (1 + tolerance))),
    )


def within_target(actual_length: int, target_length: int) -> bool:
    low, high = length_bounds(target_length)
    return low <= actual_length <= high


def content_max_tokens(target_length: int, cap: int | None = None) -> int:
    """Output token limit for a generic content call.

    Roughly two characters per token plus 30% headroom.
    """
    cap = cap or settings.max_output_tokens
    return min(cap, max(1024, math.ceil(target_length * 1.3 / 2)))


# Share of an academic work reserved for introduction and conclusion
FRAME_SHARE = 0.1


def chapter_length_budget(target_length: int, chapter_count: int) -> int:
    """Characters per chapter of an academic work."""
    return int(target_length * (1 - FRAME_SHARE)) // max(chapter_count, 1)


def frame_length_budget(target_length: int) -> int:
    """Characters for the introduction or the conclusion of an academic work."""
    return int(target_length * FRAME_SHARE) // 2


def description_detail(target_length: int) -> str:
    """How much description each outline header should carry."""
    if target_length < 5000:
        return "a short description (1-2 sentences) of what the section covers"
    if target_length < 10000:
        return "a description (2-3 sentences) of the topics the section covers"
    return (
        "a detailed description (3-5 sentences) listing the topics, arguments "
        "and examples the section covers"
    )


@dataclass
class LimitedSource:
    """Source text trimmed to its share of the prompt budget."""

    url: str
    text: str
    original_length: int
    truncated: bool

    @property
    def text_length(self) -> int:
        return len(self.text)

    @property
    def snippet(self) -> str:
        return self.text[:SNIPPET_LENGTH]

    def to_used_source(self) -> UsedSource:
        return UsedSource(
            url=self.url,
            text_length=self.text_length,
            snippet=self.snippet,
            truncated=self.truncated,
        )


def limit_sources(
    sources: list[ScrapedSource],
    budget: int | None = None,
) -> list[LimitedSource]:
    """Split a character budget evenly across sources and trim each one."""
    if not sources:
        return []
    budget = budget or settings.source_char_budget
    share = budget // len(sources)
    return [
        LimitedSource(
            url=source.url,
            text=source.text[:share],
            original_length=len(source.text),
            truncated=len(source.text) > share,
        )
        for source in sources
    ]


def format_sources_for_prompt(sources: list[LimitedSource]) -> str:
    """Render limited sources as numbered prompt blocks."""
    blocks = []
    for index, source in enumerate(sources, start=1):
        blocks.append(f"SOURCE {index} ({source.url}):\n{source.text}")
    return "\n\n---\n\n".join(blocks)
