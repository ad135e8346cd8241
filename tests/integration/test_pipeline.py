"""Integration tests for the full document generation pipeline.

The pipeline runs against a scripted chat model, mock search and scraper
services and an in-memory store.
"""

import asyncio

import pytest

from src.errors import (
    CompletionError,
    FormulationError,
    InvalidTransitionError,
    NoSearchResultsError,
)
from src.nodes.intake import create_work_item
from src.output.html import extract_chapter_titles
from src.reporting.progress import build_timeline
from src.state.enums import (
    AcademicStatus,
    AcademicWorkType,
    ChapterKind,
    ContentKind,
    OrderStatus,
    ScrapeStatus,
    StageStatus,
    WorkItemStatus,
)
from src.state.machine import WORK_ITEM_FLOW
from src.state.models import AcademicWork, GenericOutline

from tests.integration.conftest import MockChatModel, default_responder


async def seed(store, order):
    """Persist an order and create the work items of all its items."""
    await store.save_order(order)
    return [await create_work_item(store, order.id, item.id) for item in order.items]


def assert_forward_only(item):
    ranks = [WORK_ITEM_FLOW.index(change.status) for change in item.status_history
             if change.status in WORK_ITEM_FLOW]
    assert ranks == sorted(ranks)


# =============================================================================
# Generic documents
# =============================================================================


class TestGenericPipeline:
    """Article path: search, scrape, select, outline, content, order sync."""

    @pytest.mark.asyncio
    async def test_article_completes_and_syncs_order(
        self, store, build_orchestrator, make_order, notifier
    ):
        order = make_order("artykuł na bloga")
        [item] = await seed(store, order)
        assert item.content_kind == ContentKind.ARTICLE

        result = await build_orchestrator(store).run(item.id)

        assert result.status == WorkItemStatus.COMPLETED
        assert result.completed_stages == [
            "search", "scrape", "select_sources", "outline", "content", "sync_order",
        ]
        assert result.skipped_stages == []

        stored = await store.require_work_item(item.id)
        assert stored.status == WorkItemStatus.COMPLETED
        assert stored.completed_at is not None
        assert_forward_only(stored)

        outline = await store.get_outline(item.id)
        assert isinstance(outline, GenericOutline)
        assert outline.requested_header_count == 3
        assert outline.header_count == 3

        content = await store.get_generated_content(item.id)
        assert content.status == StageStatus.COMPLETED
        assert len(content.sections) == 3
        assert content.within_target
        assert content.delivered

        synced = await store.get_order(order.id)
        assert synced.items[0].status == OrderStatus.COMPLETED
        assert synced.items[0].content == content.full_content
        assert synced.status == OrderStatus.COMPLETED
        assert [o.id for o in notifier.completed] == [order.id]

    @pytest.mark.asyncio
    async def test_selection_follows_model_answer(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("artykuł"))

        await build_orchestrator(store).run(item.id)

        selection = await store.get_selection(item.id)
        assert selection.selected_indices == [2, 1, 4]
        assert not selection.used_fallback
        selected = await store.list_selected_sources(item.id)
        assert [s.url for s in selected] == [
            "https://site1.test/a", "https://site2.test/a", "https://site4.test/a",
        ]

    @pytest.mark.asyncio
    async def test_failed_urls_do_not_stop_scraping(self, store, build_orchestrator, make_order):
        failing = {"https://site2.test/a", "https://site5.test/a"}
        [item] = await seed(store, make_order("artykuł"))

        result = await build_orchestrator(store, failing_urls=failing).run(item.id)

        assert result.status == WorkItemStatus.COMPLETED
        sources = await store.list_scraped_sources(item.id)
        assert len(sources) == 5
        failed = {s.url for s in sources if s.status == ScrapeStatus.FAILED}
        assert failed == failing
        assert all(s.error_message for s in sources if s.status == ScrapeStatus.FAILED)
        # Three usable sources: all of them are selected without ranking
        assert len(await store.list_selected_sources(item.id)) == 3

    @pytest.mark.asyncio
    async def test_order_stays_open_until_all_items_complete(
        self, store, build_orchestrator, make_order, notifier
    ):
        order = make_order("artykuł", "opis produktu")
        first, second = await seed(store, order)
        orchestrator = build_orchestrator(store)

        await orchestrator.run(first.id)
        assert (await store.get_order(order.id)).status == OrderStatus.IN_PROGRESS
        assert notifier.completed == []

        await orchestrator.run(second.id)
        assert (await store.get_order(order.id)).status == OrderStatus.COMPLETED
        assert len(notifier.completed) == 1


# =============================================================================
# Academic works
# =============================================================================


class TestAcademicPipeline:
    """Thesis path through the academic subgraph."""

    @pytest.mark.asyncio
    async def test_master_thesis_has_four_chapters(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("praca magisterska", length=40000))
        assert item.academic_work_type == AcademicWorkType.MGR

        result = await build_orchestrator(store).run(item.id)

        assert result.status == WorkItemStatus.COMPLETED
        assert "outline" not in result.completed_stages
        assert [s for s in result.completed_stages if s.startswith("chapter_")] == [
            "chapter_1", "chapter_2", "chapter_3", "chapter_4",
        ]

        work = await store.get_outline(item.id)
        assert isinstance(work, AcademicWork)
        assert work.status == AcademicStatus.COMPLETED
        assert [ch.kind for ch in work.chapters] == [
            ChapterKind.THEORETICAL, ChapterKind.STANDARD, ChapterKind.EMPIRICAL, ChapterKind.STANDARD,
        ]
        assert all(ch.is_completed for ch in work.chapters)
        assert work.introduction.is_completed
        assert work.conclusion.is_completed
        assert work.total_tokens_used > 0

        stored = await store.require_work_item(item.id)
        assert WorkItemStatus.STRUCTURE_READY in [c.status for c in stored.status_history]
        assert_forward_only(stored)

    @pytest.mark.asyncio
    async def test_bachelor_thesis_has_three_chapters(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("praca licencjacka"))

        await build_orchestrator(store).run(item.id)

        work = await store.get_outline(item.id)
        assert work.work_type == AcademicWorkType.LIC
        assert len(work.chapters) == 3
        assert work.chapters[2].kind == ChapterKind.EMPIRICAL

    @pytest.mark.asyncio
    async def test_final_document_round_trips_chapter_titles(
        self, store, build_orchestrator, make_order
    ):
        [item] = await seed(store, make_order("praca magisterska"))

        await build_orchestrator(store).run(item.id)

        work = await store.get_outline(item.id)
        assert extract_chapter_titles(work.final_document) == [ch.title for ch in work.chapters]
        document = work.final_document
        assert document.index("<h1>Spis treści</h1>") < document.index("<h2>Introduction</h2>")
        assert document.index("<h2>Introduction</h2>") < document.index("<h2>CHAPTER 1:")
        assert document.index("<h2>CHAPTER 4:") < document.index("<h2>Conclusion</h2>")
        assert document.index("<h2>Conclusion</h2>") < document.index("<h2>Bibliografia</h2>")

    @pytest.mark.asyncio
    async def test_bibliography_is_deduplicated_and_sorted(
        self, store, build_orchestrator, make_order
    ):
        [item] = await seed(store, make_order("praca magisterska"))

        await build_orchestrator(store).run(item.id)

        work = await store.get_outline(item.id)
        entries = work.bibliography.entries
        assert len(entries) == 3
        assert entries == sorted(entries, key=str.casefold)
        assert entries[0].startswith("Adamczyk")
        assert work.bibliography.sources_count == 3
        assert "<h2>Bibliografia</h2>" in work.bibliography.content


# =============================================================================
# Failures, idempotence and resumption
# =============================================================================


def failing_responder(marker: str):
    """Responder that fails whenever the system prompt contains ``marker``."""
    def responder(system: str, prompt: str) -> str:
        if marker in system or marker in prompt:
            raise RuntimeError("model overloaded")
        return default_responder(system, prompt)
    return responder


class TestFailuresAndResume:
    """Cancellation on error, error stubs and stage skipping on resume."""

    @pytest.mark.asyncio
    async def test_formulation_failure_cancels_with_error_stub(
        self, store, build_orchestrator, make_order
    ):
        [item] = await seed(store, make_order("artykuł"))
        llm = MockChatModel(failing_responder("Google search queries"))

        with pytest.raises(FormulationError):
            await build_orchestrator(store, llm=llm).run(item.id)

        stored = await store.require_work_item(item.id)
        assert stored.status == WorkItemStatus.CANCELLED
        assert "model overloaded" in stored.error_message

        stub = await store.get_search_result(item.id)
        assert stub.status == StageStatus.FAILED
        assert stub.query == ""
        assert stub.results == []
        assert stub.error_message == stored.error_message

    @pytest.mark.asyncio
    async def test_no_search_results_after_fallback(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("artykuł"))
        empty = {"odnawialne źródła energii Polska", "Odnawialne źródła energii w Polsce"}

        with pytest.raises(NoSearchResultsError):
            await build_orchestrator(store, empty_queries=empty).run(item.id)

        record = await store.get_search_result(item.id)
        assert record.status == StageStatus.FAILED
        assert record.used_fallback_query
        assert record.query == "Odnawialne źródła energii w Polsce"
        assert (await store.require_work_item(item.id)).status == WorkItemStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancelled_item_must_be_reopened(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("artykuł"))
        llm = MockChatModel(failing_responder("professional copywriter"))
        orchestrator = build_orchestrator(store, llm=llm)

        with pytest.raises(CompletionError):
            await orchestrator.run(item.id)
        with pytest.raises(InvalidTransitionError):
            await orchestrator.run(item.id)

        reopened = await orchestrator.reopen(item.id)
        assert reopened.status == WorkItemStatus.PENDING
        assert reopened.attempt == 2
        assert reopened.error_message is None

    @pytest.mark.asyncio
    async def test_resume_skips_completed_stages(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("artykuł"))

        with pytest.raises(CompletionError):
            await build_orchestrator(
                store, llm=MockChatModel(failing_responder("professional copywriter"))
            ).run(item.id)
        assert (await store.get_generated_content(item.id)).status == StageStatus.FAILED

        llm = MockChatModel()
        orchestrator = build_orchestrator(store, llm=llm)
        await orchestrator.reopen(item.id)
        result = await orchestrator.run(item.id)

        assert result.status == WorkItemStatus.COMPLETED
        assert result.skipped_stages == ["search", "scrape", "select_sources", "outline"]
        assert result.completed_stages == ["content", "sync_order"]
        assert llm.call_count == 1

    @pytest.mark.asyncio
    async def test_academic_resume_keeps_written_chapters(
        self, store, build_orchestrator, make_order
    ):
        [item] = await seed(store, make_order("praca magisterska"))

        with pytest.raises(CompletionError):
            await build_orchestrator(
                store, llm=MockChatModel(failing_responder("Write CHAPTER 3"))
            ).run(item.id)

        work = await store.get_outline(item.id)
        assert work.status == AcademicStatus.FAILED
        assert [ch.is_completed for ch in work.chapters] == [True, True, False, False]
        assert work.chapters[2].error_message

        orchestrator = build_orchestrator(store)
        await orchestrator.reopen(item.id)
        result = await orchestrator.run(item.id)

        assert result.status == WorkItemStatus.COMPLETED
        assert "toc" in result.skipped_stages
        chapters = [s for s in result.completed_stages if s.startswith("chapter_")]
        assert chapters == ["chapter_3", "chapter_4"]

    @pytest.mark.asyncio
    async def test_completed_item_is_not_rerun(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("artykuł"))
        await build_orchestrator(store).run(item.id)

        llm = MockChatModel()
        result = await build_orchestrator(store, llm=llm).run(item.id)

        assert result.status == WorkItemStatus.COMPLETED
        assert result.completed_stages == []
        assert llm.call_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_runs_of_one_item_are_serialized(
        self, store, build_orchestrator, make_order
    ):
        [item] = await seed(store, make_order("artykuł"))
        llm = MockChatModel()
        orchestrator = build_orchestrator(store, llm=llm)

        first, second = await asyncio.gather(orchestrator.run(item.id), orchestrator.run(item.id))

        assert first.status == second.status == WorkItemStatus.COMPLETED
        assert sorted([first.completed_stages == [], second.completed_stages == []]) == [False, True]
        assert orchestrator._locks == {}

    @pytest.mark.asyncio
    async def test_item_locks_released_after_failure_and_reopen(
        self, store, build_orchestrator, make_order
    ):
        [item] = await seed(store, make_order("artykuł"))
        orchestrator = build_orchestrator(
            store, llm=MockChatModel(failing_responder("professional copywriter"))
        )

        with pytest.raises(CompletionError):
            await orchestrator.run(item.id)
        await orchestrator.reopen(item.id)

        assert orchestrator._locks == {}
        assert orchestrator._lock_users == {}


# =============================================================================
# Batches and reporting
# =============================================================================


class TestBatchAndTimeline:
    """Batch runs through the worker pool and the processing timeline."""

    @pytest.mark.asyncio
    async def test_batch_isolates_failures(self, store, build_orchestrator, make_order):
        items = await seed(store, make_order("artykuł", "opis produktu", "post na facebooka"))
        ids = [i.id for i in items]

        summary = await build_orchestrator(store).run_batch(ids + ["missing-id"])

        assert summary.total == 4
        assert summary.succeeded == 3
        assert summary.failed == 1
        failed = [r for r in summary.results if not r.success]
        assert failed[0].work_item_id == "missing-id"
        assert "missing-id" in failed[0].error
        assert all(r.status == WorkItemStatus.COMPLETED for r in summary.results if r.success)

    @pytest.mark.asyncio
    async def test_timeline_of_completed_item(self, store, build_orchestrator, make_order):
        [item] = await seed(store, make_order("artykuł"))
        await build_orchestrator(store).run(item.id)

        timeline = await build_timeline(store, item.id)

        assert timeline.progress == 100
        assert timeline.status == WorkItemStatus.COMPLETED
        stages = [e.stage for e in timeline.events]
        assert stages[0] == "work_item"
        assert {"search", "scrape", "outline", "content"} <= set(stages)
        times = [e.at for e in timeline.events if e.at is not None]
        assert times == sorted(times)
