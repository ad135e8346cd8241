"""Processing progress and timeline of a work item.

Progress is a weighted sum over the stored records:

    10  work item exists
    20  search completed
    30  x completed / total scraped sources
    20  structure completed (generic outline, or academic table of contents)
    20  content completed (generated content, or assembled academic work)
"""

import logging

from src.memory.store import SourceStore
from src.state.enums import ScrapeStatus, StageStatus
from src.state.models import (
    AcademicWork,
    GeneratedContent,
    GenericOutline,
    Outline,
    ProcessingTimeline,
    ScrapedSource,
    SearchResultRecord,
    TimelineEvent,
    WorkItem,
)

logger = logging.getLogger(__name__)

WEIGHT_CREATED = 10
WEIGHT_SEARCH = 20
WEIGHT_SCRAPE = 30
WEIGHT_STRUCTURE = 20
WEIGHT_CONTENT = 20


def structure_completed(outline: Outline | None) -> bool:
    if isinstance(outline, GenericOutline):
        return outline.is_completed
    if isinstance(outline, AcademicWork):
        return outline.has_toc
    return False


def content_completed(outline: Outline | None, content: GeneratedContent | None) -> bool:
    if isinstance(outline, AcademicWork):
        return outline.is_completed
    return content is not None and content.is_completed


def compute_progress(
    item: WorkItem | None,
    search: SearchResultRecord | None,
    sources: list[ScrapedSource],
    outline: Outline | None,
    content: GeneratedContent | None,
) -> int:
    """Weighted progress percentage, 0-100."""
    if item is None:
        return 0
    progress = float(WEIGHT_CREATED)
    if search is not None and search.status == StageStatus.COMPLETED:
        progress += WEIGHT_SEARCH
    if sources:
        done = sum(1 for s in sources if s.status == ScrapeStatus.COMPLETED)
        progress += WEIGHT_SCRAPE * done / len(sources)
    if structure_completed(outline):
        progress += WEIGHT_STRUCTURE
    if content_completed(outline, content):
        progress += WEIGHT_CONTENT
    return min(100, round(progress))


def _timeline_events(
    item: WorkItem,
    search: SearchResultRecord | None,
    sources: list[ScrapedSource],
    outline: Outline | None,
    content: GeneratedContent | None,
) -> list[TimelineEvent]:
    events = [TimelineEvent(stage="work_item", status="created", at=item.created_at)]
    events.extend(
        TimelineEvent(
            stage="work_item",
            status=change.status.value,
            at=change.at,
            detail=f"attempt {change.attempt}",
        )
        for change in item.status_history
    )

    if search is not None:
        events.append(
            TimelineEvent(
                stage="search",
                status=search.status.value,
                at=search.completed_at or search.created_at,
                detail=search.error_message
                or f"{len(search.results)} results for '{search.query}'",
            )
        )

    for source in sources:
        events.append(
            TimelineEvent(
                stage="scrape",
                status=source.status.value,
                at=source.scraped_at,
                detail=source.error_message or source.url,
            )
        )

    if isinstance(outline, GenericOutline):
        events.append(
            TimelineEvent(
                stage="outline",
                status=outline.status.value,
                at=outline.completed_at or outline.created_at,
                detail=outline.error_message or f"{outline.header_count} headers",
            )
        )
    elif isinstance(outline, AcademicWork):
        written = sum(1 for ch in outline.chapters if ch.is_completed)
        events.append(
            TimelineEvent(
                stage="academic",
                status=outline.status.value,
                at=outline.completed_at or outline.started_at,
                detail=outline.error_message
                or f"{written}/{outline.chapter_count} chapters",
            )
        )

    if content is not None:
        events.append(
            TimelineEvent(
                stage="content",
                status=content.status.value,
                at=content.completed_at or content.created_at,
                detail=content.error_message or f"{content.total_characters} characters",
            )
        )
    return events


async def build_timeline(store: SourceStore, work_item_id: str) -> ProcessingTimeline:
    """
    Ordered processing events and weighted progress of a work item.

    Raises:
        WorkItemNotFoundError: Unknown work item.
    """
    item = await store.require_work_item(work_item_id)
    search = await store.get_search_result(work_item_id)
    sources = await store.list_scraped_sources(work_item_id)
    outline = await store.get_outline(work_item_id)
    content = await store.get_generated_content(work_item_id)

    events = _timeline_events(item, search, sources, outline, content)
    dated = sorted((e for e in events if e.at is not None), key=lambda e: e.at)
    undated = [e for e in events if e.at is None]
    return ProcessingTimeline(
        work_item_id=item.id,
        status=item.status,
        progress=compute_progress(item, search, sources, outline, content),
        events=dated + undated,
    )
