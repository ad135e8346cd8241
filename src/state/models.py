"""Pydantic models for the document generation pipeline.

These models describe every record the pipeline persists, from the work item
created at intake through search results, scraped sources, the outline (a
tagged union of generic outline and academic work) and the generated content.
"""

import hashlib
from datetime import datetime, timezone
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from src.state.enums import (
    CHAPTER_COUNTS,
    EMPIRICAL_CHAPTER,
    AcademicStatus,
    AcademicWorkType,
    ChapterKind,
    ContentKind,
    OrderStatus,
    OutlineStatus,
    ScrapeStatus,
    SectionStatus,
    StageStatus,
    Tone,
    WorkItemStatus,
)


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# Work Item
# =============================================================================


class StatusChange(BaseModel):
    """One entry of a work item's status history."""

    status: WorkItemStatus
    at: datetime = Field(default_factory=_utc_now)
    attempt: int = Field(default=1, ge=1)


class WorkItem(BaseModel):
    """A single document to generate, created from one order item."""

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique work item identifier"
    )

    # Request
    topic: str = Field(..., min_length=1, description="Document topic")
    target_length: int = Field(..., gt=0, description="Target length in characters")
    content_type: str = Field(..., description="Content type as ordered (free text)")
    content_kind: ContentKind = Field(
        default=ContentKind.GENERIC,
        description="Classification of content_type, computed once at intake"
    )
    language: str = Field(default="pl", description="Output language (name or code)")
    search_language: str = Field(default="pl", description="Two-letter search language")
    tone: Tone = Field(default=Tone.OFFICIAL)
    guidelines: str = Field(default="", description="Customer guidelines")
    keywords: list[str] = Field(default_factory=list)
    source_links: list[str] = Field(
        default_factory=list,
        max_length=4,
        description="Customer supplied source URLs"
    )

    # Ownership
    user_id: str | None = None
    user_email: str | None = None
    order_id: str | None = None
    order_item_id: str | None = None

    # Lifecycle
    status: WorkItemStatus = Field(default=WorkItemStatus.PENDING)
    status_history: list[StatusChange] = Field(default_factory=list)
    attempt: int = Field(default=1, ge=1, description="Pipeline attempt number")
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None

    @property
    def is_academic(self) -> bool:
        """Whether the item goes through the academic work generator."""
        return self.content_kind.is_academic

    @property
    def academic_work_type(self) -> AcademicWorkType | None:
        """Academic variant derived from the stored classification."""
        if self.content_kind == ContentKind.MASTER_THESIS:
            return AcademicWorkType.MGR
        if self.content_kind == ContentKind.BACHELOR_THESIS:
            return AcademicWorkType.LIC
        return None


# =============================================================================
# Search Results
# =============================================================================


class SearchResultEntry(BaseModel):
    """A single web search hit."""

    title: str = Field(default="")
    link: str = Field(..., description="Result URL")
    snippet: str = Field(default="")
    display_link: str = Field(default="")


class SearchResultRecord(BaseModel):
    """Search results for one work item. Immutable once completed."""

    work_item_id: str
    query: str = Field(default="", description="Query that produced the results")
    language: str = Field(default="")
    results: list[SearchResultEntry] = Field(default_factory=list)
    total_results: str = Field(default="0", description="Total results reported by the API")
    search_time: float = Field(default=0.0, ge=0.0)
    used_fallback_query: bool = False
    status: StageStatus = Field(default=StageStatus.PENDING)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None

    @property
    def links(self) -> list[str]:
        """Result URLs in search order."""
        return [r.link for r in self.results]


# =============================================================================
# Scraped Sources
# =============================================================================


class ScrapedSource(BaseModel):
    """Text scraped from one URL."""

    id: str
    work_item_id: str
    url: str
    position: int = Field(default=0, ge=0, description="Order in the source list")
    text: str = Field(default="")
    text_length: int = Field(default=0, ge=0)
    status: ScrapeStatus = Field(default=ScrapeStatus.PENDING)
    error_message: str | None = None
    scraped_at: datetime | None = None
    selected_for_generation: bool = False
    selection_reason: str | None = None

    @staticmethod
    def source_id(work_item_id: str, url: str) -> str:
        """Stable identifier for the (work item, url) pair."""
        digest = hashlib.sha1(f"{work_item_id}|{url}".encode("utf-8"))
        return digest.hexdigest()[:16]

    @model_validator(mode="after")
    def check_selection(self) -> "ScrapedSource":
        """Only completed sources may be selected for generation."""
        if self.selected_for_generation and self.status != ScrapeStatus.COMPLETED:
            raise ValueError(
                f"Source {self.url} selected for generation with status {self.status.value}"
            )
        return self


class SourceSelectionRecord(BaseModel):
    """Audit record of one source selection decision."""

    work_item_id: str
    prompt: str = Field(default="")
    raw_response: str = Field(default="")
    selected_indices: list[int] = Field(
        default_factory=list,
        description="1-based indices into the candidate list, as applied"
    )
    selected_urls: list[str] = Field(default_factory=list)
    used_fallback: bool = False
    candidate_count: int = Field(default=0, ge=0)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)


class UsedSource(BaseModel):
    """Summary of a source passed to a generation prompt."""

    url: str
    text_length: int = Field(default=0, ge=0)
    snippet: str = Field(default="")
    truncated: bool = False


# =============================================================================
# Outline: generic outline or academic work
# =============================================================================


class GenerationMetrics(BaseModel):
    """Metrics and prompt of one completion call."""

    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    generation_time_ms: int = Field(default=0, ge=0)
    character_count: int = Field(default=0, ge=0)
    prompt_used: str = Field(default="")

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


class GenericOutline(BaseModel):
    """Header structure for a generic (non-academic) document."""

    kind: Literal["generic"] = "generic"
    work_item_id: str
    structure: str = Field(default="", description="HTML list of <h2> headers")
    header_count: int = Field(default=0, ge=0, description="Headers found in the response")
    requested_header_count: int = Field(default=0, ge=0)
    used_sources: list[UsedSource] = Field(default_factory=list)
    total_sources_length: int = Field(default=0, ge=0)
    status: OutlineStatus = Field(default=OutlineStatus.GENERATING)
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == OutlineStatus.COMPLETED


def chapter_kind_for(number: int) -> ChapterKind:
    """Prompt branch for a chapter number."""
    if number == 1:
        return ChapterKind.THEORETICAL
    if number == EMPIRICAL_CHAPTER:
        return ChapterKind.EMPIRICAL
    return ChapterKind.STANDARD


class Chapter(BaseModel):
    """One chapter of an academic work."""

    number: int = Field(..., ge=1)
    title: str = Field(default="")
    kind: ChapterKind = Field(default=ChapterKind.STANDARD)
    content: str = Field(default="")
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    status: SectionStatus = Field(default=SectionStatus.PENDING)
    error_message: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SectionStatus.COMPLETED


class AcademicSection(BaseModel):
    """Introduction or conclusion of an academic work."""

    content: str = Field(default="")
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    status: SectionStatus = Field(default=SectionStatus.PENDING)
    error_message: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == SectionStatus.COMPLETED


class Bibliography(AcademicSection):
    """Bibliography of an academic work."""

    entries: list[str] = Field(default_factory=list, description="Alphabetised entries")
    sources_count: int = Field(default=0, ge=0)


class AcademicWork(BaseModel):
    """A bachelor or master thesis under construction."""

    kind: Literal["academic"] = "academic"
    work_item_id: str
    work_type: AcademicWorkType
    status: AcademicStatus = Field(default=AcademicStatus.PENDING)

    # Table of contents
    table_of_contents: str = Field(default="", description="Simplified plain-text TOC")
    full_structure: str = Field(default="", description="Full HTML structure")
    toc_metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)

    # Sections
    chapters: list[Chapter] = Field(default_factory=list)
    introduction: AcademicSection = Field(default_factory=AcademicSection)
    conclusion: AcademicSection = Field(default_factory=AcademicSection)
    bibliography: Bibliography = Field(default_factory=Bibliography)

    # Result
    final_document: str = Field(default="")
    total_character_count: int = Field(default=0, ge=0)
    total_tokens_used: int = Field(default=0, ge=0)
    total_generation_time_ms: int = Field(default=0, ge=0)
    used_sources: list[UsedSource] = Field(default_factory=list)

    started_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None
    error_message: str | None = None

    @classmethod
    def create(cls, work_item_id: str, work_type: AcademicWorkType) -> "AcademicWork":
        """New academic work with one pending chapter per required chapter."""
        chapters = [
            Chapter(number=n, kind=chapter_kind_for(n))
            for n in range(1, CHAPTER_COUNTS[work_type] + 1)
        ]
        return cls(work_item_id=work_item_id, work_type=work_type, chapters=chapters)

    @model_validator(mode="after")
    def check_chapter_order(self) -> "AcademicWork":
        """Chapters are numbered 1..N and complete strictly in order."""
        for index, chapter in enumerate(self.chapters):
            if chapter.number != index + 1:
                raise ValueError(
                    f"Chapter at position {index} has number {chapter.number}"
                )
            if index and chapter.is_completed and not self.chapters[index - 1].is_completed:
                raise ValueError(
                    f"Chapter {chapter.number} completed before chapter {chapter.number - 1}"
                )
        return self

    @property
    def chapter_count(self) -> int:
        return CHAPTER_COUNTS[self.work_type]

    @property
    def has_toc(self) -> bool:
        return bool(self.full_structure) and all(ch.title for ch in self.chapters)

    @property
    def is_completed(self) -> bool:
        return self.status == AcademicStatus.COMPLETED

    def next_pending_chapter(self) -> Chapter | None:
        """First chapter that is not completed yet."""
        for chapter in self.chapters:
            if not chapter.is_completed:
                return chapter
        return None


Outline = Annotated[Union[GenericOutline, AcademicWork], Field(discriminator="kind")]
"""Tagged union of the two outline shapes, discriminated by ``kind``."""

OUTLINE_ADAPTER: TypeAdapter[Outline] = TypeAdapter(Outline)


# =============================================================================
# Generated Content (generic path)
# =============================================================================


class ContentSection(BaseModel):
    """One <h2> section of generated content."""

    number: int = Field(..., ge=1)
    title: str = Field(default="")
    content: str = Field(default="")
    word_count: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def compute_word_count(self) -> "ContentSection":
        """Compute word count from content."""
        if self.content and not self.word_count:
            self.word_count = len(self.content.split())
        return self


class GeneratedContent(BaseModel):
    """Final content of a generic document."""

    work_item_id: str
    full_content: str = Field(default="")
    sections: list[ContentSection] = Field(default_factory=list)
    total_words: int = Field(default=0, ge=0)
    total_characters: int = Field(default=0, ge=0)
    target_length: int = Field(default=0, ge=0)
    within_target: bool = False
    status: StageStatus = Field(default=StageStatus.PENDING)
    metrics: GenerationMetrics = Field(default_factory=GenerationMetrics)
    delivered: bool = False
    delivered_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == StageStatus.COMPLETED


# =============================================================================
# Orders (external aggregate)
# =============================================================================


class OrderItem(BaseModel):
    """One line of a customer order."""

    id: str = Field(default_factory=lambda: str(uuid4())[:8])
    topic: str
    length: int = Field(..., gt=0)
    content_type: str
    language: str = "pl"
    search_language: str | None = None
    tone: str = "official"
    guidelines: str = ""
    keywords: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    content: str | None = None
    work_item_id: str | None = None


class Order(BaseModel):
    """A customer order holding one or more items."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    order_number: str = Field(default="")
    user_id: str | None = None
    user_email: str | None = None
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    items: list[OrderItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None

    def item(self, item_id: str) -> OrderItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def all_items_completed(self) -> bool:
        return bool(self.items) and all(
            item.status == OrderStatus.COMPLETED for item in self.items
        )


# =============================================================================
# Pipeline and reporting results
# =============================================================================


class PipelineResult(BaseModel):
    """Outcome of one pipeline run."""

    work_item_id: str
    status: WorkItemStatus
    content_kind: ContentKind
    completed_stages: list[str] = Field(default_factory=list)
    skipped_stages: list[str] = Field(default_factory=list)
    character_count: int = Field(default=0, ge=0)


class BatchItemResult(BaseModel):
    """Per-item entry of a batch summary."""

    work_item_id: str
    success: bool
    status: WorkItemStatus | None = None
    error: str | None = None


class BatchSummary(BaseModel):
    """Summary of a batch run."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    results: list[BatchItemResult] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[BatchItemResult]) -> "BatchSummary":
        succeeded = sum(1 for r in results if r.success)
        return cls(
            total=len(results),
            succeeded=succeeded,
            failed=len(results) - succeeded,
            results=results,
        )


class TimelineEvent(BaseModel):
    """One event in a work item's processing timeline."""

    stage: str
    status: str
    at: datetime | None = None
    detail: str | None = None


class ProcessingTimeline(BaseModel):
    """Processing timeline with weighted progress."""

    work_item_id: str
    status: WorkItemStatus
    progress: int = Field(default=0, ge=0, le=100)
    events: list[TimelineEvent] = Field(default_factory=list)
