"""ACADEMIC nodes: thesis generation in strictly ordered sub-stages.

Sub-stages, each persisted on the AcademicWork before the next starts:

1. Table of contents (full HTML structure + simplified text TOC)
2. Chapters, one at a time in order
3. Introduction (from the chapter openings)
4. Conclusion (from the chapter endings and the introduction)
5. Bibliography (from the citation markers in the text)
6. Assembly of the final document

Every sub-stage checks the stored work first and returns without a model
call when its part is already complete, so a failed run resumes from the
first missing part.
"""

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from src.citations import CitationManager, ReferenceListGenerator
from src.errors import WorkflowError, WritingError
from src.memory.store import SourceStore
from src.output.html import (
    assemble_document,
    extract_chapter_structure,
    html_to_text,
    list_items,
    parse_table_of_contents,
    simple_table_of_contents,
)
from src.output.sizing import LimitedSource, limit_sources
from src.state.enums import AcademicStatus, SectionStatus
from src.state.machine import advance_academic, chapter_status, resume_academic
from src.state.models import AcademicSection, AcademicWork, GenerationMetrics, WorkItem
from src.tools.completion import CompletionClient
from src.writers import (
    BibliographyWriter,
    ChapterWriter,
    ConclusionWriter,
    IntroductionWriter,
    TableOfContentsWriter,
    WritingContext,
    chapter_endings,
    chapter_openings,
    parse_entries,
)

logger = logging.getLogger(__name__)

# Headings of the assembled document per search language
DOCUMENT_LABELS = {
    "pl": ("Spis treści", "Bibliografia"),
    "en": ("Table of Contents", "Bibliography"),
    "de": ("Inhaltsverzeichnis", "Literaturverzeichnis"),
}

MAX_CITED_WORKS = 200


def document_labels(language: str) -> tuple[str, str]:
    """(table of contents title, bibliography title) for a language code."""
    return DOCUMENT_LABELS.get(language, DOCUMENT_LABELS["en"])


class AcademicWorkGenerator:
    """Sub-stage operations over one AcademicWork record."""

    name = "academic"

    def __init__(
        self,
        store: SourceStore,
        completion: CompletionClient,
        source_budget: int | None = None,
    ):
        self.store = store
        self.source_budget = source_budget
        self.toc_writer = TableOfContentsWriter(completion)
        self.chapter_writer = ChapterWriter(completion)
        self.introduction_writer = IntroductionWriter(completion)
        self.conclusion_writer = ConclusionWriter(completion)
        self.bibliography_writer = BibliographyWriter(completion)

    # -------------------------------------------------------------------------
    # Loading and persistence
    # -------------------------------------------------------------------------

    async def load(self, item: WorkItem) -> AcademicWork:
        """
        The stored academic work of an item, created on first use.

        A failed work is reset to pending so generation resumes from its
        first incomplete part.

        Raises:
            WorkflowError: The item is not academic or holds a generic outline.
        """
        work_type = item.academic_work_type
        if work_type is None:
            raise WorkflowError(
                f"Work item is not an academic work ({item.content_kind.value})",
                work_item_id=item.id,
                stage=self.name,
            )

        outline = await self.store.get_outline(item.id)
        if outline is None:
            work = AcademicWork.create(item.id, work_type)
            work.used_sources = [s.to_used_source() for s in await self._sources(item)]
            await self.store.save_outline(work)
            logger.info(
                f"ACADEMIC: created {work_type.value} work for {item.id} "
                f"with {work.chapter_count} chapters"
            )
            return work
        if not isinstance(outline, AcademicWork):
            raise WorkflowError(
                "Work item already holds a generic outline",
                work_item_id=item.id,
                stage=self.name,
            )
        if outline.status == AcademicStatus.FAILED:
            logger.info(f"ACADEMIC: resuming failed work for {item.id}")
            resume_academic(outline)
            await self.store.save_outline(outline)
        return outline

    async def _sources(self, item: WorkItem) -> list[LimitedSource]:
        selected = await self.store.list_selected_sources(item.id)
        return limit_sources(selected, self.source_budget)

    async def _advance(self, work: AcademicWork, status: AcademicStatus) -> None:
        advance_academic(work, status)
        await self.store.save_outline(work)

    async def _guarded(
        self,
        work: AcademicWork,
        section: AcademicSection | None,
        stage: str,
        call: Callable[[], Awaitable],
    ):
        """Run a generation call; on failure mark the section and the work failed."""
        try:
            return await call()
        except Exception as e:
            logger.error(f"ACADEMIC: {stage} failed for {work.work_item_id}: {e}")
            if section is not None:
                section.status = SectionStatus.FAILED
                section.error_message = str(e)
            work.error_message = f"{stage}: {e}"
            advance_academic(work, AcademicStatus.FAILED)
            await self.store.save_outline(work)
            raise

    # -------------------------------------------------------------------------
    # Sub-stages
    # -------------------------------------------------------------------------

    async def generate_toc(self, item: WorkItem) -> AcademicWork:
        """
        Generate the full structure and the simplified table of contents.

        Raises:
            WritingError: The structure does not name every chapter.
        """
        work = await self.load(item)
        if work.has_toc:
            return work

        await self._advance(work, AcademicStatus.GENERATING_TOC)
        sources = await self._sources(item)

        async def write():
            written = await self.toc_writer.write(
                WritingContext(item=item, sources=sources, chapter_count=work.chapter_count)
            )
            parsed = {c.number: c for c in parse_table_of_contents(written.content)}
            missing = [n for n in range(1, work.chapter_count + 1) if n not in parsed]
            if missing:
                raise WritingError(
                    f"Table of contents is missing chapters {missing}",
                    section="table_of_contents",
                )
            return written, [parsed[n] for n in range(1, work.chapter_count + 1)]

        written, toc_chapters = await self._guarded(work, None, "table_of_contents", write)

        for chapter, parsed in zip(work.chapters, toc_chapters):
            chapter.title = parsed.title
        work.full_structure = written.content
        work.table_of_contents = simple_table_of_contents(toc_chapters)
        work.toc_metrics = written.metrics
        await self._advance(work, AcademicStatus.TOC_COMPLETED)
        logger.info(f"ACADEMIC: table of contents ready for {item.id}")
        return work

    async def generate_chapter(self, item: WorkItem) -> int:
        """
        Generate the next pending chapter.

        Returns:
            Number of chapters still pending afterwards.

        Raises:
            WritingError: The table of contents is missing.
        """
        work = await self.load(item)
        chapter = work.next_pending_chapter()
        if chapter is None:
            return 0
        if not work.has_toc:
            raise WritingError("Chapters require a table of contents", section="chapter")

        advance_academic(work, chapter_status(chapter.number))
        chapter.status = SectionStatus.GENERATING
        chapter.error_message = None
        await self.store.save_outline(work)
        logger.info(
            f"ACADEMIC: writing chapter {chapter.number}/{work.chapter_count} "
            f"({chapter.kind.value}) for {item.id}"
        )

        sources = await self._sources(item)
        context = WritingContext(
            item=item,
            sources=sources,
            full_structure=work.full_structure,
            table_of_contents=work.table_of_contents,
            chapter_count=work.chapter_count,
            chapter=chapter,
            chapter_structure=extract_chapter_structure(work.full_structure, chapter.number),
            previous_chapters=[
                (ch.number, ch.title, ch.content)
                for ch in work.chapters[: chapter.number - 1]
            ],
        )
        written = await self._guarded(
            work, chapter, f"chapter {chapter.number}",
            lambda: self.chapter_writer.write(context),
        )

        chapter.content = written.content
        chapter.metrics = written.metrics
        chapter.status = SectionStatus.COMPLETED
        advance_academic(work, chapter_status(chapter.number, completed=True))
        await self.store.save_outline(work)
        return sum(1 for ch in work.chapters if not ch.is_completed)

    async def generate_introduction(self, item: WorkItem) -> AcademicWork:
        work = await self.load(item)
        if work.introduction.is_completed:
            return work
        self._require_chapters(work, "introduction")

        await self._advance(work, AcademicStatus.GENERATING_INTRODUCTION)
        context = WritingContext(
            item=item,
            table_of_contents=work.table_of_contents,
            chapter_count=work.chapter_count,
            chapter_excerpts=chapter_openings(self._chapter_parts(work)),
        )
        written = await self._guarded(
            work, work.introduction, "introduction",
            lambda: self.introduction_writer.write(context),
        )
        self._complete_section(work.introduction, written.content, written.metrics)
        await self._advance(work, AcademicStatus.INTRODUCTION_COMPLETED)
        return work

    async def generate_conclusion(self, item: WorkItem) -> AcademicWork:
        work = await self.load(item)
        if work.conclusion.is_completed:
            return work
        self._require_chapters(work, "conclusion")
        if not work.introduction.is_completed:
            raise WritingError("Conclusion requires the introduction", section="conclusion")

        await self._advance(work, AcademicStatus.GENERATING_CONCLUSION)
        context = WritingContext(
            item=item,
            table_of_contents=work.table_of_contents,
            chapter_count=work.chapter_count,
            chapter_excerpts=chapter_endings(self._chapter_parts(work)),
            introduction=work.introduction.content,
        )
        written = await self._guarded(
            work, work.conclusion, "conclusion",
            lambda: self.conclusion_writer.write(context),
        )
        self._complete_section(work.conclusion, written.content, written.metrics)
        await self._advance(work, AcademicStatus.CONCLUSION_COMPLETED)
        return work

    async def generate_bibliography(self, item: WorkItem) -> AcademicWork:
        """
        Build the bibliography from the citation markers in the text.

        Cited works are deduplicated by (author, year) and expanded by the
        model into full entries; without any marker the selected web
        sources are listed instead, with no model call.
        """
        work = await self.load(item)
        if work.bibliography.is_completed:
            return work
        if not work.conclusion.is_completed:
            raise WritingError("Bibliography requires the conclusion", section="bibliography")

        await self._advance(work, AcademicStatus.GENERATING_BIBLIOGRAPHY)
        _, title = document_labels(item.search_language)
        references = ReferenceListGenerator(title=title)

        manager = CitationManager()
        manager.extract_and_record_citations(html_to_text(work.introduction.content), "introduction")
        for chapter in work.chapters:
            manager.extract_and_record_citations(
                html_to_text(chapter.content), f"chapter_{chapter.number}"
            )
        manager.extract_and_record_citations(html_to_text(work.conclusion.content), "conclusion")
        cited = references.sort_citations(manager.unique_citations())[:MAX_CITED_WORKS]
        logger.info(
            f"ACADEMIC: {manager.get_citation_count()} citations, "
            f"{len(cited)} cited works in {item.id}"
        )

        if cited:
            sources = await self._sources(item)
            context = WritingContext(item=item, sources=sources, citations=cited)
            written = await self._guarded(
                work, work.bibliography, "bibliography",
                lambda: self.bibliography_writer.write(context),
            )
            entries = parse_entries(written.content) or [
                references.format_citation(c) for c in cited
            ]
            metrics = written.metrics
        else:
            entries = [source.url for source in work.used_sources]
            metrics = GenerationMetrics()

        entries = references.sort_entries(entries)
        content = references.to_html(entries)
        metrics.character_count = len(html_to_text(content))
        self._complete_section(work.bibliography, content, metrics)
        work.bibliography.entries = entries
        work.bibliography.sources_count = len(list_items(content))
        await self._advance(work, AcademicStatus.BIBLIOGRAPHY_COMPLETED)
        return work

    async def assemble(self, item: WorkItem) -> AcademicWork:
        """Concatenate all parts into the final document and compute totals."""
        work = await self.load(item)
        if work.is_completed:
            return work
        if not work.bibliography.is_completed:
            raise WritingError("Assembly requires the bibliography", section="assemble")

        await self._advance(work, AcademicStatus.ASSEMBLING)
        toc_title, _ = document_labels(item.search_language)
        work.final_document = assemble_document(
            work.table_of_contents,
            work.introduction.content,
            self._chapter_parts(work),
            work.conclusion.content,
            work.bibliography.content,
            toc_title=toc_title,
        )

        metrics = [work.toc_metrics] + [ch.metrics for ch in work.chapters] + [
            work.introduction.metrics,
            work.conclusion.metrics,
            work.bibliography.metrics,
        ]
        work.total_tokens_used = sum(m.tokens_used for m in metrics)
        work.total_generation_time_ms = sum(m.generation_time_ms for m in metrics)
        work.total_character_count = sum(m.character_count for m in metrics[1:])
        await self._advance(work, AcademicStatus.COMPLETED)
        logger.info(
            f"ACADEMIC: work {item.id} assembled, {work.total_character_count} chars, "
            f"{work.total_tokens_used} tokens"
        )
        return work

    async def generate(self, item: WorkItem) -> AcademicWork:
        """Run every remaining sub-stage in order."""
        await self.generate_toc(item)
        while await self.generate_chapter(item):
            pass
        await self.generate_introduction(item)
        await self.generate_conclusion(item)
        await self.generate_bibliography(item)
        return await self.assemble(item)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _chapter_parts(work: AcademicWork) -> list[tuple[int, str, str]]:
        return [(ch.number, ch.title, ch.content) for ch in work.chapters]

    @staticmethod
    def _require_chapters(work: AcademicWork, section: str) -> None:
        if work.next_pending_chapter() is not None:
            raise WritingError(f"{section.capitalize()} requires all chapters", section=section)

    @staticmethod
    def _complete_section(
        section: AcademicSection, content: str, metrics: GenerationMetrics
    ) -> None:
        section.content = content
        section.metrics = metrics
        section.status = SectionStatus.COMPLETED
        section.error_message = None
