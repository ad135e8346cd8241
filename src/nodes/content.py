"""CONTENT node: full text of a generic document from its outline."""

import logging
from datetime import datetime, timezone

from src.config import settings
from src.errors import WritingError
from src.memory.store import SourceStore
from src.output.html import html_to_text, split_h2_sections, text_length
from src.output.sizing import content_max_tokens, length_bounds, limit_sources, within_target
from src.state.enums import StageStatus
from src.state.models import ContentSection, GeneratedContent, GenericOutline, WorkItem
from src.tools.completion import CompletionClient
from src.writers import ContentWriter, SectionWriterConfig, WritingContext

logger = logging.getLogger(__name__)


class ContentGenerator:
    """One-call content generation over a completed generic outline."""

    name = "content"

    def __init__(
        self,
        store: SourceStore,
        completion: CompletionClient,
        source_budget: int | None = None,
    ):
        self.store = store
        self.completion = completion
        self.source_budget = source_budget

    def writer_for(self, item: WorkItem) -> ContentWriter:
        """Content writer whose token limit follows the target length."""
        return ContentWriter(
            self.completion,
            SectionWriterConfig(
                temperature=ContentWriter.temperature,
                max_tokens=content_max_tokens(item.target_length, settings.max_output_tokens),
            ),
        )

    async def is_complete(self, item: WorkItem) -> bool:
        content = await self.store.get_generated_content(item.id)
        return content is not None and content.is_completed

    async def run(self, item: WorkItem) -> GeneratedContent:
        """
        Generate and persist the content.

        Raises:
            WritingError: The outline is missing or not completed.
            CompletionError: The completion call failed.
        """
        outline = await self.store.get_outline(item.id)
        if not isinstance(outline, GenericOutline) or not outline.is_completed:
            raise WritingError("Content requires a completed outline", section=self.name)

        sources = limit_sources(
            await self.store.list_selected_sources(item.id), self.source_budget
        )
        content = GeneratedContent(work_item_id=item.id, target_length=item.target_length)
        logger.info(
            f"CONTENT: work item {item.id}, target {item.target_length} chars, "
            f"{outline.header_count} sections"
        )

        try:
            written = await self.writer_for(item).write(
                WritingContext(
                    item=item,
                    sources=sources,
                    outline=outline,
                    header_count=outline.header_count,
                )
            )
        except Exception as e:
            content.status = StageStatus.FAILED
            content.error_message = str(e)
            await self.store.save_generated_content(content)
            raise

        content.full_content = written.content
        content.sections = [
            ContentSection(
                number=number,
                title=title,
                content=body,
                word_count=len(html_to_text(body).split()),
            )
            for number, (title, body) in enumerate(split_h2_sections(written.content), start=1)
        ]
        content.total_characters = text_length(written.content)
        content.total_words = len(html_to_text(written.content).split())
        content.within_target = within_target(content.total_characters, item.target_length)
        content.metrics = written.metrics
        content.status = StageStatus.COMPLETED
        content.completed_at = datetime.now(timezone.utc)
        await self.store.save_generated_content(content)

        if not content.within_target:
            low, high = length_bounds(item.target_length)
            logger.warning(
                f"CONTENT: work item {item.id} has {content.total_characters} chars, "
                f"outside {low}-{high}"
            )
        return content
