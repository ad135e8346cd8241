"""OUTLINE node: header structure of a generic document.

The number of <h2> headers follows the target length (one per ~2000
characters, between 3 and 20). The selected sources are trimmed to a shared
character budget before they go into the prompt.
"""

import logging
from datetime import datetime, timezone

from src.errors import WritingError
from src.memory.store import SourceStore
from src.output.html import count_headings
from src.output.sizing import header_count, limit_sources
from src.state.enums import OutlineStatus
from src.state.models import GenericOutline, WorkItem
from src.tools.completion import CompletionClient
from src.writers import OutlineWriter, WritingContext

logger = logging.getLogger(__name__)


class OutlineGenerator:
    """Generic outline generation over the selected sources."""

    name = "outline"

    def __init__(
        self,
        store: SourceStore,
        completion: CompletionClient,
        source_budget: int | None = None,
    ):
        self.store = store
        self.writer = OutlineWriter(completion)
        self.source_budget = source_budget

    async def is_complete(self, item: WorkItem) -> bool:
        outline = await self.store.get_outline(item.id)
        return isinstance(outline, GenericOutline) and outline.is_completed

    async def run(self, item: WorkItem) -> GenericOutline:
        """
        Generate and persist the outline.

        Raises:
            WritingError: No selected sources, or no header in the answer.
            CompletionError: The completion call failed.
        """
        selected = await self.store.list_selected_sources(item.id)
        if not selected:
            raise WritingError("No sources selected for the outline", section=self.name)

        sources = limit_sources(selected, self.source_budget)
        requested = header_count(item.target_length)
        outline = GenericOutline(
            work_item_id=item.id,
            requested_header_count=requested,
            used_sources=[s.to_used_source() for s in sources],
            total_sources_length=sum(s.text_length for s in sources),
        )
        await self.store.save_outline(outline)
        logger.info(
            f"OUTLINE: work item {item.id}, {requested} headers from {len(sources)} sources"
        )

        try:
            written = await self.writer.write(
                WritingContext(item=item, sources=sources, header_count=requested)
            )
            found = count_headings(written.content)
            if not found:
                raise WritingError("Outline has no <h2> headers", section=self.name)
        except Exception as e:
            outline.status = OutlineStatus.FAILED
            outline.error_message = str(e)
            await self.store.save_outline(outline)
            raise

        if found != requested:
            logger.warning(
                f"OUTLINE: work item {item.id} asked for {requested} headers, got {found}"
            )

        outline.structure = written.content
        outline.header_count = found
        outline.metrics = written.metrics
        outline.status = OutlineStatus.COMPLETED
        outline.completed_at = datetime.now(timezone.utc)
        await self.store.save_outline(outline)
        return outline
