"""Enums and constants for the document generation pipeline state."""

from enum import Enum


class WorkItemStatus(str, Enum):
    """Coarse lifecycle of a work item.

    Values are declared in pipeline order; the order of declaration is the
    forward direction used by the status machine.
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SEARCHING = "searching"
    SCRAPING = "scraping"
    SOURCE_SELECTION = "source_selection"
    STRUCTURE_GENERATION = "structure_generation"
    STRUCTURE_READY = "structure_ready"
    CONTENT_GENERATION = "content_generation"

    # Terminal states
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


class ContentKind(str, Enum):
    """Classification of the ordered content type, computed once at intake."""

    ARTICLE = "article"
    PRODUCT_DESCRIPTION = "product_description"
    SOCIAL_POST = "social_post"
    GENERIC = "generic"  # any other non-academic text
    BACHELOR_THESIS = "bachelor_thesis"
    MASTER_THESIS = "master_thesis"

    @property
    def is_academic(self) -> bool:
        return self in (ContentKind.BACHELOR_THESIS, ContentKind.MASTER_THESIS)


class AcademicWorkType(str, Enum):
    """Academic work variant; decides the chapter count."""

    LIC = "lic"  # bachelor, 3 chapters
    MGR = "mgr"  # master, 4 chapters


class Tone(str, Enum):
    """Requested writing tone."""

    INFORMAL = "informal"
    OFFICIAL = "official"
    IMPERSONAL = "impersonal"


class StageStatus(str, Enum):
    """Status of a single-shot stage record (search results, generated content)."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapeStatus(str, Enum):
    """Status of one scraped source."""

    PENDING = "pending"
    SCRAPING = "scraping"
    COMPLETED = "completed"
    FAILED = "failed"


class OutlineStatus(str, Enum):
    """Status of a generic outline."""

    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class SectionStatus(str, Enum):
    """Status of one academic section (chapter, introduction, ...)."""

    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


class ChapterKind(str, Enum):
    """Prompt branch used for an academic chapter."""

    THEORETICAL = "theoretical"  # chapter 1
    STANDARD = "standard"        # theory plus practice
    EMPIRICAL = "empirical"      # chapter 3


class AcademicStatus(str, Enum):
    """Fine-grained lifecycle of an academic work.

    Declared in generation order. FAILED is reachable from any
    non-terminal state.
    """

    PENDING = "pending"
    GENERATING_TOC = "generating_toc"
    TOC_COMPLETED = "toc_completed"
    CHAPTER_1_GENERATING = "chapter_1_generating"
    CHAPTER_1_COMPLETED = "chapter_1_completed"
    CHAPTER_2_GENERATING = "chapter_2_generating"
    CHAPTER_2_COMPLETED = "chapter_2_completed"
    CHAPTER_3_GENERATING = "chapter_3_generating"
    CHAPTER_3_COMPLETED = "chapter_3_completed"
    CHAPTER_4_GENERATING = "chapter_4_generating"
    CHAPTER_4_COMPLETED = "chapter_4_completed"
    GENERATING_INTRODUCTION = "generating_introduction"
    INTRODUCTION_COMPLETED = "introduction_completed"
    GENERATING_CONCLUSION = "generating_conclusion"
    CONCLUSION_COMPLETED = "conclusion_completed"
    GENERATING_BIBLIOGRAPHY = "generating_bibliography"
    BIBLIOGRAPHY_COMPLETED = "bibliography_completed"
    ASSEMBLING = "assembling"

    # Terminal states
    COMPLETED = "completed"
    FAILED = "failed"


class OrderStatus(str, Enum):
    """Status of an order or one of its items."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# Chapters per academic work type
CHAPTER_COUNTS: dict[AcademicWorkType, int] = {
    AcademicWorkType.LIC: 3,
    AcademicWorkType.MGR: 4,
}

# Chapter reserved for empirical research in every variant
EMPIRICAL_CHAPTER = 3
