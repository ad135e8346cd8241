"""SOURCE SELECTOR node: pick the 3-8 most useful scraped sources.

The model sees a numbered list of successful sources with a short snippet
each and answers with comma-separated indices. Answers that cannot be
parsed fall back to the first three sources; the selector never fails the
pipeline because of the model.
"""

import logging
import re

from src.config import settings
from src.errors import APIError, NoUsableSourcesError
from src.memory.store import SourceStore
from src.state.models import ScrapedSource, SourceSelectionRecord, WorkItem
from src.tools.completion import CompletionClient

logger = logging.getLogger(__name__)

MIN_SELECTED = 3
MAX_SELECTED = 8
SNIPPET_CHARS = 500

REASON_MODEL = "Selected by model ranking"
REASON_PADDED = "Added to reach the minimum number of sources"
REASON_FALLBACK = "Fallback: first sources in search order"
REASON_ALL = "All available sources"

SELECTION_PROMPT = """You are choosing sources for a text.

TOPIC: {topic}
CONTENT TYPE: {content_type}
GUIDELINES: {guidelines}

Below are {count} candidate sources, each with its number, URL and the beginning of its text.

{sources}

Choose between {min_selected} and {max_selected} sources that are the most relevant, reliable and informative for this topic.
Reply ONLY with the numbers of the chosen sources separated by commas, for example: 1, 3, 4"""


def parse_selection(raw: str, candidate_count: int) -> list[int]:
    """Valid 1-based indices from a model answer, in order, without duplicates."""
    indices: list[int] = []
    for token in re.findall(r"\d+", raw or ""):
        index = int(token)
        if 1 <= index <= candidate_count and index not in indices:
            indices.append(index)
    return indices[:MAX_SELECTED]


def apply_selection(parsed: list[int], candidate_count: int) -> tuple[list[int], bool]:
    """
    Final indices to select and whether the fallback was used.

    Fewer than three candidates: all of them. Nothing parsed: the first
    three. Otherwise the parsed indices padded with the first unselected
    candidates up to three.
    """
    if candidate_count <= MIN_SELECTED:
        return list(range(1, candidate_count + 1)), False
    if not parsed:
        return list(range(1, MIN_SELECTED + 1)), True
    indices = list(parsed)
    for index in range(1, candidate_count + 1):
        if len(indices) >= MIN_SELECTED:
            break
        if index not in indices:
            indices.append(index)
    return indices, False


class SourceSelector:
    """LLM-ranked source selection with a deterministic fallback."""

    name = "select_sources"

    def __init__(
        self,
        store: SourceStore,
        completion: CompletionClient,
        model: str | None = None,
    ):
        self.store = store
        self.completion = completion
        self.model = model or settings.default_model

    async def is_complete(self, item: WorkItem) -> bool:
        return await self.store.get_selection(item.id) is not None

    def build_prompt(self, item: WorkItem, candidates: list[ScrapedSource]) -> str:
        blocks = []
        for index, source in enumerate(candidates, start=1):
            snippet = " ".join(source.text[:SNIPPET_CHARS].split())
            blocks.append(f"[{index}] {source.url}\n{snippet}")
        return SELECTION_PROMPT.format(
            topic=item.topic,
            content_type=item.content_type,
            guidelines=item.guidelines or "none",
            count=len(candidates),
            sources="\n\n".join(blocks),
            min_selected=MIN_SELECTED,
            max_selected=MAX_SELECTED,
        )

    async def run(self, item: WorkItem) -> list[ScrapedSource]:
        """
        Select sources for generation and persist the decision.

        Raises:
            NoUsableSourcesError: No completed source exists.
        """
        candidates = await self.store.list_completed_sources(item.id)
        if not candidates:
            raise NoUsableSourcesError(item.id, 0)

        prompt = self.build_prompt(item, candidates)
        raw = ""
        error = None
        if len(candidates) > MIN_SELECTED:
            try:
                result = await self.completion.complete(
                    prompt,
                    model=self.model,
                    max_tokens=200,
                    temperature=0.2,
                )
                raw = result.text
            except APIError as e:
                logger.warning(f"SELECT: model call failed for {item.id}, using fallback: {e}")
                error = e.message

        parsed = parse_selection(raw, len(candidates))
        indices, used_fallback = apply_selection(parsed, len(candidates))

        selected = []
        for index, source in enumerate(candidates, start=1):
            if index in indices:
                source.selected_for_generation = True
                if len(candidates) <= MIN_SELECTED:
                    source.selection_reason = REASON_ALL
                elif used_fallback:
                    source.selection_reason = REASON_FALLBACK
                elif index in parsed:
                    source.selection_reason = REASON_MODEL
                else:
                    source.selection_reason = REASON_PADDED
                selected.append(source)
            else:
                source.selected_for_generation = False
                source.selection_reason = None
            await self.store.save_scraped_source(source)

        await self.store.save_selection(
            SourceSelectionRecord(
                work_item_id=item.id,
                prompt=prompt,
                raw_response=raw,
                selected_indices=indices,
                selected_urls=[s.url for s in selected],
                used_fallback=used_fallback,
                candidate_count=len(candidates),
                error_message=error,
            )
        )
        logger.info(
            f"SELECT: work item {item.id}: {len(selected)}/{len(candidates)} sources selected"
            + (" (fallback)" if used_fallback else "")
        )
        return selected
