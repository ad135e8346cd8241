"""Conclusion writer for academic works.

Written from the closing part of each chapter and the introduction, so the
conclusion answers the aims the introduction set out.
"""

from src.output.html import html_to_text
from src.output.sizing import frame_length_budget
from src.writers.base import BaseSectionWriter, WritingContext

EXCERPT_CHARS = 1500


class ConclusionWriter(BaseSectionWriter):
    """Writer for the conclusion of an academic work."""

    section_type = "conclusion"
    section_title = "Conclusion"
    temperature = 0.7
    max_tokens = 8000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are an experienced academic author writing the conclusion of a thesis.
{self._get_common_instructions(context.item)}"""

    def get_user_prompt(self, context: WritingContext) -> str:
        item = context.item
        endings = "\n\n".join(
            f"CHAPTER {number}: {title}\n...{excerpt}"
            for number, title, excerpt in context.chapter_excerpts
        )
        return f"""Write the CONCLUSION of the thesis.

{self._format_request(item)}

INTRODUCTION:
{html_to_text(context.introduction)}

ENDINGS OF THE CHAPTERS:
{endings}

THE CONCLUSION MUST:
- state whether the aim of the work was achieved
- answer the research questions from the introduction
- summarize the most important findings of each chapter
- give practical recommendations and directions for further research

LENGTH: about {frame_length_budget(item.target_length)} characters.

Start with an <h2> heading with the word "Conclusion" in the language of the text, then <p> paragraphs."""


def chapter_endings(chapters: list[tuple[int, str, str]]) -> list[tuple[int, str, str]]:
    """Last characters of each chapter's visible text."""
    return [(n, title, html_to_text(content)[-EXCERPT_CHARS:]) for n, title, content in chapters]
