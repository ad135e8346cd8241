"""Tests for weighted progress and the processing timeline."""

from datetime import datetime, timezone

import pytest

from src.errors import WorkItemNotFoundError
from src.reporting.progress import build_timeline, compute_progress
from src.state.enums import (
    AcademicStatus,
    AcademicWorkType,
    OutlineStatus,
    ScrapeStatus,
    StageStatus,
    WorkItemStatus,
)
from src.state.machine import transition
from src.state.models import (
    AcademicWork,
    GeneratedContent,
    GenericOutline,
    SearchResultEntry,
    SearchResultRecord,
)


def completed_search(work_item_id: str) -> SearchResultRecord:
    return SearchResultRecord(
        work_item_id=work_item_id,
        query="energia",
        results=[SearchResultEntry(link="https://a.test")],
        status=StageStatus.COMPLETED,
    )


class TestComputeProgress:
    """Tests for the 10/20/30/20/20 weighting."""

    def test_no_item(self):
        assert compute_progress(None, None, [], None, None) == 0

    def test_created_only(self, make_work_item):
        assert compute_progress(make_work_item(), None, [], None, None) == 10

    def test_failed_search_counts_nothing(self, make_work_item):
        item = make_work_item()
        search = SearchResultRecord(work_item_id=item.id, status=StageStatus.FAILED)
        assert compute_progress(item, search, [], None, None) == 10

    def test_scraping_is_fractional(self, make_work_item, make_source):
        item = make_work_item()
        sources = [
            make_source(item.id, "https://a.test", 0),
            make_source(item.id, "https://b.test", 1, status=ScrapeStatus.FAILED),
            make_source(item.id, "https://c.test", 2, status=ScrapeStatus.FAILED),
        ]
        assert compute_progress(item, completed_search(item.id), sources, None, None) == 40

    def test_generic_complete(self, make_work_item, make_source):
        item = make_work_item()
        outline = GenericOutline(work_item_id=item.id, status=OutlineStatus.COMPLETED)
        content = GeneratedContent(work_item_id=item.id, status=StageStatus.COMPLETED)

        progress = compute_progress(
            item,
            completed_search(item.id),
            [make_source(item.id, "https://a.test")],
            outline,
            content,
        )

        assert progress == 100

    def test_generic_outline_still_generating(self, make_work_item):
        item = make_work_item()
        outline = GenericOutline(work_item_id=item.id)
        assert compute_progress(item, completed_search(item.id), [], outline, None) == 30

    def test_academic_structure_and_content(self, make_work_item):
        item = make_work_item()
        work = AcademicWork.create(item.id, AcademicWorkType.LIC)
        assert compute_progress(item, None, [], work, None) == 10

        work.full_structure = "<h2>CHAPTER 1: A</h2>"
        for chapter in work.chapters:
            chapter.title = f"Title {chapter.number}"
        assert compute_progress(item, None, [], work, None) == 30

        work.status = AcademicStatus.COMPLETED
        assert compute_progress(item, None, [], work, None) == 50


class TestBuildTimeline:
    """Tests for the ordered timeline."""

    @pytest.mark.asyncio
    async def test_events_in_time_order(self, store, make_work_item, make_source):
        item = make_work_item()
        transition(item, WorkItemStatus.SEARCHING)
        await store.save_work_item(item)
        await store.save_search_result(completed_search(item.id))
        source = make_source(item.id, "https://a.test")
        source.scraped_at = datetime.now(timezone.utc)
        await store.save_scraped_source(source)

        timeline = await build_timeline(store, item.id)

        assert timeline.status == WorkItemStatus.SEARCHING
        assert timeline.progress == 60
        assert timeline.events[0].stage == "work_item"
        assert timeline.events[0].status == "created"
        stages = [e.stage for e in timeline.events]
        assert "search" in stages
        assert "scrape" in stages
        dated = [e.at for e in timeline.events if e.at is not None]
        assert dated == sorted(dated)

    @pytest.mark.asyncio
    async def test_unknown_work_item(self, store):
        with pytest.raises(WorkItemNotFoundError):
            await build_timeline(store, "missing")
