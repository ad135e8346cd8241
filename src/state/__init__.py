"""State management for the document generation pipeline."""

from src.state.enums import (
    WorkItemStatus,
    ContentKind,
    AcademicWorkType,
    AcademicStatus,
    Tone,
    StageStatus,
    ScrapeStatus,
    OutlineStatus,
    SectionStatus,
    ChapterKind,
    OrderStatus,
    CHAPTER_COUNTS,
    EMPIRICAL_CHAPTER,
)
from src.state.models import (
    WorkItem,
    StatusChange,
    SearchResultEntry,
    SearchResultRecord,
    ScrapedSource,
    SourceSelectionRecord,
    UsedSource,
    GenerationMetrics,
    GenericOutline,
    Chapter,
    AcademicSection,
    Bibliography,
    AcademicWork,
    Outline,
    OUTLINE_ADAPTER,
    ContentSection,
    GeneratedContent,
    Order,
    OrderItem,
    PipelineResult,
    BatchItemResult,
    BatchSummary,
    TimelineEvent,
    ProcessingTimeline,
    chapter_kind_for,
)
from src.state.schema import PipelineState, create_initial_state

__all__ = [
    # Enums
    "WorkItemStatus",
    "ContentKind",
    "AcademicWorkType",
    "AcademicStatus",
    "Tone",
    "StageStatus",
    "ScrapeStatus",
    "OutlineStatus",
    "SectionStatus",
    "ChapterKind",
    "OrderStatus",
    "CHAPTER_COUNTS",
    "EMPIRICAL_CHAPTER",
    # Models
    "WorkItem",
    "StatusChange",
    "SearchResultEntry",
    "SearchResultRecord",
    "ScrapedSource",
    "SourceSelectionRecord",
    "UsedSource",
    "GenerationMetrics",
    "GenericOutline",
    "Chapter",
    "AcademicSection",
    "Bibliography",
    "AcademicWork",
    "Outline",
    "OUTLINE_ADAPTER",
    "ContentSection",
    "GeneratedContent",
    "Order",
    "OrderItem",
    "PipelineResult",
    "BatchItemResult",
    "BatchSummary",
    "TimelineEvent",
    "ProcessingTimeline",
    "chapter_kind_for",
    # Schema
    "PipelineState",
    "create_initial_state",
]
