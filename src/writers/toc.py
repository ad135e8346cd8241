"""Table of contents writer for academic works.

Produces the full HTML structure: one <h2> per chapter using the
``CHAPTER n: Title`` marker and numbered <h3> subsections with short
descriptions. Chapter 1 is theoretical and chapter 3 is reserved for the
empirical study.
"""

from src.state.enums import EMPIRICAL_CHAPTER, AcademicWorkType
from src.writers.base import BaseSectionWriter, WritingContext

WORK_TYPE_NAMES = {
    AcademicWorkType.LIC: "bachelor thesis",
    AcademicWorkType.MGR: "master thesis",
}


class TableOfContentsWriter(BaseSectionWriter):
    """Writer for the structure of an academic work."""

    section_type = "table_of_contents"
    section_title = "Table of contents"
    temperature = 0.7
    max_tokens = 12000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are an experienced thesis supervisor designing the structure of a thesis.
{self._get_common_instructions(context.item)}"""

    def get_user_prompt(self, context: WritingContext) -> str:
        item = context.item
        work_name = WORK_TYPE_NAMES.get(item.academic_work_type, "thesis")
        n = context.chapter_count
        return f"""Design the table of contents of a {work_name}.

{self._format_request(item)}
TARGET LENGTH: {item.target_length} characters

REQUIREMENTS:
- exactly {n} chapters
- chapter 1 is purely theoretical (definitions, concepts, review of the literature)
- chapter {EMPIRICAL_CHAPTER} is the empirical chapter: research problem, hypotheses, methodology, results and their analysis
- the remaining chapters combine theory with practice
- every chapter has 3-5 subsections
- do NOT include the introduction, conclusion or bibliography; they are added separately

FORMAT (keep the markers exactly, translate only the titles):
<h2>CHAPTER 1: Chapter title</h2>
<h3>1.1. Subsection title</h3>
<p>Two or three sentences describing what the subsection covers.</p>
<h3>1.2. Subsection title</h3>
<p>...</p>
<h2>CHAPTER 2: Chapter title</h2>
...

SOURCES:
{self._format_sources(context.sources)}

Output only the structure."""
