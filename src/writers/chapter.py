"""Chapter writer for academic works.

Each chapter is written in one call, under one of three prompt branches:

- THEORETICAL (chapter 1): definitions, concepts and the literature only
- EMPIRICAL (chapter 3): the study itself, from problem to findings
- STANDARD (other chapters): theory tied to practice and examples
"""

from src.citations import extract_citation_markers, format_marker
from src.errors import WritingError
from src.output.html import html_to_text, strip_chapter_heading
from src.output.sizing import chapter_length_budget
from src.state.enums import ChapterKind
from src.writers.base import BaseSectionWriter, WritingContext

EXCERPT_CHARS = 1500

BRANCH_INSTRUCTIONS: dict[ChapterKind, str] = {
    ChapterKind.THEORETICAL: """THIS IS THE THEORETICAL CHAPTER:
- define the key terms and concepts, comparing definitions from different authors
- present the main theories and models relevant to the topic
- review the literature critically: agreements, disputes, gaps
- no empirical research, no case studies, no own survey results""",
    ChapterKind.EMPIRICAL: """THIS IS THE EMPIRICAL CHAPTER:
- state the research problem, the research questions and the hypotheses
- describe the methodology: method, research tool, sample and procedure
- present the results in detail (you may use HTML tables)
- analyse and interpret the results, verify each hypothesis
- discuss the limitations of the study""",
    ChapterKind.STANDARD: """THIS CHAPTER COMBINES THEORY AND PRACTICE:
- build on the theoretical foundations from chapter 1
- analyse practical aspects, examples, regulations and market data
- relate the practice back to the theory, with critical comments""",
}


class ChapterWriter(BaseSectionWriter):
    """Writer for one chapter of an academic work."""

    section_type = "chapter"
    section_title = "Chapter"
    temperature = 0.7
    max_tokens = 30000

    def get_system_prompt(self, context: WritingContext) -> str:
        return f"""You are an experienced academic author writing a thesis chapter by chapter.
{self._get_common_instructions(context.item)}
CITATIONS:
- cite sources in the text as [Surname, year: page], e.g. [Kowalski, 2019: 45]
- several sources in one place: [Kowalski, 2019: 45; Nowak, 2021: 12]
- every paragraph with facts or definitions carries at least one citation"""

    def get_user_prompt(self, context: WritingContext) -> str:
        chapter = context.chapter
        if chapter is None:
            raise WritingError("Chapter writer called without a chapter", section=self.section_type)
        item = context.item
        budget = chapter_length_budget(item.target_length, context.chapter_count)
        own_structure = context.chapter_structure or "(see the full structure)"
        return f"""Write CHAPTER {chapter.number}: {chapter.title}

{self._format_request(item)}

FULL STRUCTURE OF THE THESIS:
{context.full_structure}

STRUCTURE OF THIS CHAPTER (write every subsection, in this order):
{own_structure}

{BRANCH_INSTRUCTIONS[chapter.kind]}

{format_previous_chapters(context.previous_chapters)}LENGTH: about {budget} characters of text.

SOURCES:
{self._format_sources(context.sources)}

Start with <h2>CHAPTER {chapter.number}: {chapter.title}</h2>, then each subsection as <h3> with its number, followed by <p> paragraphs.
Write only this chapter."""

    def _post_process(self, content: str, context: WritingContext) -> str:
        """Normalize to HTML and drop the chapter heading (added at assembly)."""
        return strip_chapter_heading(super()._post_process(content, context)).strip()


def format_previous_chapters(chapters: list[tuple[int, str, str]]) -> str:
    """
    Prompt block carrying the chapters written so far.

    Lists the sources each earlier chapter cited and quotes the end of the
    chapter right before this one, so the new chapter continues from it.
    Empty for the first chapter.
    """
    if not chapters:
        return ""
    lines = ["PREVIOUS CHAPTERS (continue from them, do not repeat them):"]
    for number, title, content in chapters:
        text = html_to_text(content)
        cited = list(dict.fromkeys(
            format_marker(m) for m in extract_citation_markers(text)
        ))
        lines.append(f"CHAPTER {number}: {title}")
        if cited:
            lines.append(f"Cited: {'; '.join(cited)}")
    number, title, content = chapters[-1]
    lines.append(f"\nEND OF CHAPTER {number}:\n...{html_to_text(content)[-EXCERPT_CHARS:]}")
    lines.append(
        "Keep the same terminology and cite the same works the same way as above."
    )
    return "\n".join(lines) + "\n\n"
