"""Writers module.

Provides one writer per generated text component:
- Outline and content of generic documents
- Table of contents, chapters, introduction, conclusion and
  bibliography of academic works (introduction and conclusion are
  written after the chapters)
"""

from src.writers.base import (
    BaseSectionWriter,
    SectionWriterConfig,
    WritingContext,
    WrittenSection,
)
from src.writers.outline import OutlineWriter
from src.writers.article import ContentWriter
from src.writers.toc import TableOfContentsWriter
from src.writers.chapter import ChapterWriter
from src.writers.introduction import IntroductionWriter, chapter_openings
from src.writers.conclusion import ConclusionWriter, chapter_endings
from src.writers.bibliography import BibliographyWriter, parse_entries
from src.writers.style_guide import get_style_guidelines, language_instruction

__all__ = [
    "BaseSectionWriter",
    "SectionWriterConfig",
    "WritingContext",
    "WrittenSection",
    "OutlineWriter",
    "ContentWriter",
    "TableOfContentsWriter",
    "ChapterWriter",
    "IntroductionWriter",
    "chapter_openings",
    "ConclusionWriter",
    "chapter_endings",
    "BibliographyWriter",
    "parse_entries",
    "get_style_guidelines",
    "language_instruction",
]
