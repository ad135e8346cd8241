"""Introduction writer for academic works.

Written after the chapters, from the opening of each chapter, so it
describes what the thesis actually contains:
- Relevance of the topic
- Aim and scope of the work
- Research method
- Outline of the chapters
"""

from src.output.html import html_to_text
from src.output.sizing import frame_length_budget
from src.writers.base import BaseSectionWriter, WritingContext

EXCERPT_CHARS = 1500


class IntroductionWriter(BaseSectionWriter):
    """Writer for the introduction of an academic work."""

    section_type = "introduction"
    section_title = "Introduction"
    temperature = 0.7
    max_tokens = 8000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are an experienced academic author writing the introduction of a thesis.
{self._get_common_instructions(context.item)}"""

    def get_user_prompt(self, context: WritingContext) -> str:
        item = context.item
        openings = "\n\n".join(
            f"CHAPTER {number}: {title}\n{excerpt}"
            for number, title, excerpt in context.chapter_excerpts
        )
        return f"""Write the INTRODUCTION of the thesis.

{self._format_request(item)}

TABLE OF CONTENTS:
{context.table_of_contents}

OPENINGS OF THE CHAPTERS:
{openings}

THE INTRODUCTION MUST:
- justify the relevance of the topic
- state the aim of the work and the research questions
- name the research methods used
- describe the content of each chapter in one or two sentences

LENGTH: about {frame_length_budget(item.target_length)} characters.

Start with an <h2> heading with the word "Introduction" in the language of the text, then <p> paragraphs."""


def chapter_openings(chapters: list[tuple[int, str, str]]) -> list[tuple[int, str, str]]:
    """First characters of each chapter's visible text."""
    return [(n, title, html_to_text(content)[:EXCERPT_CHARS]) for n, title, content in chapters]
